"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from unittest.mock import MagicMock

import httpx
import pytest

from biomed_search.domain.entities import (
    Candidate,
    CandidateKind,
    CandidateMetrics,
    FetchResult,
    ScoredCandidate,
    SignalBag,
)
from biomed_search.infrastructure.terminology import StaticTerminologyService

REFERENCE_YEAR = 2025


# ============================================================
# Candidate Factories
# ============================================================


def _make_candidate(
    id: str = "1",
    title: str = "",
    abstract: str = "",
    keywords: Sequence[str] = (),
    major_topics: Sequence[str] = (),
    year: int | None = 2024,
    citation_count: int = 0,
    impact_metric: float | None = None,
    kind: CandidateKind = CandidateKind.PUBLICATION,
    **extra,
) -> Candidate:
    return Candidate(
        id=id,
        kind=kind,
        title=title,
        abstract=abstract,
        keywords=tuple(keywords),
        major_topics=tuple(major_topics),
        year=year,
        citation_count=citation_count,
        impact_metric=impact_metric,
        **extra,
    )


@pytest.fixture
def make_candidate():
    """Factory for Candidate objects with sensible defaults."""
    return _make_candidate


@pytest.fixture
def make_scored():
    """Factory for ScoredCandidate objects with explicit signals."""

    def factory(candidate: Candidate, match_percentage: int | None = None, **signals) -> ScoredCandidate:
        return ScoredCandidate(candidate=candidate, signals=SignalBag(**signals), match_percentage=match_percentage)

    return factory


@pytest.fixture
def terminology():
    return StaticTerminologyService()


@pytest.fixture
def reference_year():
    return REFERENCE_YEAR


# ============================================================
# Fake Backends
# ============================================================


class FakeBackend:
    """In-memory RetrievalBackend.

    ``responses`` maps a query string to a FetchResult or an exception;
    unknown queries get ``default``.
    """

    def __init__(
        self,
        responses: dict[str, FetchResult | BaseException] | None = None,
        default: FetchResult | BaseException | None = None,
        delay: float = 0.0,
        dialect: str = "pubmed",
    ) -> None:
        self.responses = responses or {}
        self.default = default if default is not None else FetchResult()
        self.delay = delay
        self.dialect = dialect
        self.calls: list[dict] = []

    async def fetch_candidates(self, query, *, page, page_size, sort, filters):
        self.calls.append({"query": query, "page": page, "page_size": page_size, "sort": sort, "filters": filters})
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.get(query, self.default)
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def queries(self) -> list[str]:
        return [c["query"] for c in self.calls]


class FakeMetrics:
    """In-memory MetricsBackend."""

    def __init__(
        self,
        metrics: dict[str, CandidateMetrics] | None = None,
        error: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self.metrics = metrics or {}
        self.error = error
        self.delay = delay
        self.calls: list[list[str]] = []

    async def fetch_metrics(self, ids):
        self.calls.append(list(ids))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {i: self.metrics[i] for i in ids if i in self.metrics}


def fetch_result(candidates: Sequence[Candidate], total_count: int | None = None) -> FetchResult:
    return FetchResult(
        items=tuple(candidates),
        total_count=len(candidates) if total_count is None else total_count,
    )


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def make_metrics():
    return FakeMetrics


@pytest.fixture
def make_result():
    return fetch_result


# ============================================================
# HTTP Mocks
# ============================================================


def _make_response(status_code: int = 200, json_data=None, headers: dict | None = None, json_error: bool = False):
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.reason_phrase = "Mock"
    response.headers = headers or {}
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = json_data if json_data is not None else {}
    return response


@pytest.fixture
def make_response():
    """Factory for mocked httpx.Response objects."""
    return _make_response


@pytest.fixture
def mock_http_client():
    """Mocked httpx.AsyncClient; set ``.get`` return values per test."""
    client = MagicMock(spec=httpx.AsyncClient)
    client.is_closed = False
    return client
