"""
Application DI Container (dependency-injector).

Wires backends, terminology and settings into ready-to-use search engines.

Usage::

    from biomed_search.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict({
        "email": "user@example.com",
        "api_key": None,
    })

    engine = container.pubmed_engine()
    page = await engine.search("asthma and exposure to mold")

    # In tests, override any provider:
    container.pubmed_backend.override(providers.Object(fake_backend))
"""

from __future__ import annotations

import logging
from dataclasses import replace

from dependency_injector import containers, providers

from biomed_search.shared.settings import EngineSettings

logger = logging.getLogger(__name__)


def _create_settings(email: str | None, api_key: str | None) -> EngineSettings:
    """Environment settings, with explicit config taking precedence for credentials."""
    settings = EngineSettings.from_env()
    overrides: dict[str, str] = {}
    if email:
        overrides["ncbi_email"] = email
    if api_key:
        overrides["ncbi_api_key"] = api_key
    return replace(settings, **overrides) if overrides else settings


def _create_terminology() -> object:
    """Lazy factory for the static terminology tables."""
    from biomed_search.infrastructure.terminology import StaticTerminologyService

    return StaticTerminologyService()


def _create_pubmed_backend(settings: EngineSettings) -> object:
    """Lazy factory for PubMedBackend (avoids importing Bio at container import)."""
    from biomed_search.infrastructure.ncbi import PubMedBackend

    return PubMedBackend(email=settings.ncbi_email, api_key=settings.ncbi_api_key)


def _create_metrics_backend() -> object:
    """Lazy factory for ICiteMetricsBackend."""
    from biomed_search.infrastructure.ncbi import ICiteMetricsBackend

    return ICiteMetricsBackend()


def _create_trials_backend(settings: EngineSettings) -> object:
    """Lazy factory for ClinicalTrialsBackend."""
    from biomed_search.infrastructure.sources import ClinicalTrialsBackend

    return ClinicalTrialsBackend(timeout=settings.upstream_timeout)


def _create_engine(backend, metrics, terminology, settings: EngineSettings) -> object:
    from biomed_search.application.search import SearchEngine

    return SearchEngine(backend, metrics=metrics, terminology=terminology, settings=settings)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container.

    Manages creation and lifecycle of:
    - ``settings``: EngineSettings from the environment plus config credentials
    - ``pubmed_engine``: publications ranked with iCite metrics
    - ``trials_engine``: ClinicalTrials.gov studies (no citation metrics)
    """

    config = providers.Configuration()

    settings = providers.Singleton(
        _create_settings,
        email=config.email,
        api_key=config.api_key,
    )

    terminology = providers.Singleton(_create_terminology)

    pubmed_backend = providers.Singleton(_create_pubmed_backend, settings=settings)

    metrics_backend = providers.Singleton(_create_metrics_backend)

    trials_backend = providers.Singleton(_create_trials_backend, settings=settings)

    pubmed_engine = providers.Singleton(
        _create_engine,
        backend=pubmed_backend,
        metrics=metrics_backend,
        terminology=terminology,
        settings=settings,
    )

    trials_engine = providers.Singleton(
        _create_engine,
        backend=trials_backend,
        metrics=None,
        terminology=terminology,
        settings=settings,
    )


__all__ = ["ApplicationContainer"]
