"""
Collaborator interfaces consumed by the ranking pipeline.

Infrastructure adapters (PubMed, ClinicalTrials.gov, iCite, static
terminology) implement these; tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .entities import CandidateMetrics, FetchResult, SearchFilters, SortMode


@runtime_checkable
class RetrievalBackend(Protocol):
    """Full-text search backend returning candidates in backend order.

    Raises UpstreamUnavailableError for transient failures and
    UpstreamFatalError for authentication / configuration failures.
    """

    dialect: str

    async def fetch_candidates(
        self,
        query: str,
        *,
        page: int,
        page_size: int,
        sort: SortMode,
        filters: SearchFilters,
    ) -> FetchResult: ...


@runtime_checkable
class MetricsBackend(Protocol):
    """Best-effort citation metrics; missing ids are simply absent."""

    async def fetch_metrics(self, ids: Sequence[str]) -> dict[str, CandidateMetrics]: ...


@runtime_checkable
class TerminologyService(Protocol):
    """Pure synonym expansion and controlled-vocabulary mapping."""

    def expand(self, term: str) -> list[str]: ...

    def map_to_controlled_vocabulary(self, term: str) -> str: ...
