"""
Engine settings.

All tunables of the ranking pipeline live here so that tests and deployments
can adjust them without touching the algorithms. Values are read from
``BIOMED_SEARCH_*`` environment variables by :meth:`EngineSettings.from_env`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields

from .exceptions import ConfigurationError, ErrorContext

logger = logging.getLogger(__name__)

ENV_PREFIX = "BIOMED_SEARCH_"


@dataclass(frozen=True)
class EngineSettings:
    """Tunable limits and thresholds for one engine instance."""

    # Retrieval batch = min(batch_cap, max(batch_floor, page_size * batch_multiplier))
    batch_cap: int = 500
    batch_floor: int = 100
    batch_multiplier: int = 50
    # Tier-2 is only issued when tier-1 returns fewer results than this
    tier2_min_results: int = 20
    upstream_timeout: float = 15.0
    metrics_timeout: float = 10.0
    relevance_threshold: float = 0.35
    # Weak-exposure items are offered separately below this primary count
    secondary_threshold: int = 20
    tie_epsilon: float = 0.001
    default_page_size: int = 9

    # NCBI credentials (read from NCBI_EMAIL / NCBI_API_KEY)
    ncbi_email: str = "biomed-search@example.com"
    ncbi_api_key: str | None = None

    def __post_init__(self) -> None:
        if self.batch_cap < 1 or self.batch_floor < 1:
            raise ConfigurationError(
                "Batch limits must be positive",
                context=ErrorContext(operation="settings", input_value=(self.batch_cap, self.batch_floor)),
            )
        if self.batch_floor > self.batch_cap:
            raise ConfigurationError(
                f"batch_floor ({self.batch_floor}) exceeds batch_cap ({self.batch_cap})",
                context=ErrorContext(operation="settings"),
            )
        if not 0.0 <= self.relevance_threshold <= 1.0:
            raise ConfigurationError(
                f"relevance_threshold must be within [0, 1], got {self.relevance_threshold}",
                context=ErrorContext(operation="settings"),
            )
        if self.upstream_timeout <= 0 or self.metrics_timeout <= 0:
            raise ConfigurationError(
                "Timeouts must be positive",
                context=ErrorContext(operation="settings"),
            )
        if self.tie_epsilon <= 0:
            raise ConfigurationError(
                f"tie_epsilon must be positive, got {self.tie_epsilon}",
                context=ErrorContext(operation="settings"),
            )

    def batch_size(self, page_size: int) -> int:
        """Number of candidates to retrieve for a page of ``page_size`` items."""
        return min(self.batch_cap, max(self.batch_floor, page_size * self.batch_multiplier))

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineSettings:
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        for f in fields(cls):
            if f.name.startswith("ncbi_"):
                continue
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            caster = float if f.type in ("float", float) else int
            try:
                values[f.name] = caster(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}",
                    context=ErrorContext(operation="settings", input_value=raw),
                ) from e

        email = env.get("NCBI_EMAIL")
        if email:
            values["ncbi_email"] = email
        api_key = env.get("NCBI_API_KEY")
        if api_key:
            values["ncbi_api_key"] = api_key

        if values:
            logger.debug(f"Settings overrides from environment: {sorted(values)}")
        return cls(**values)
