"""
Retrieval Coordinator - Tiered Candidate Retrieval

Flow:
    tier1 ──► count < tier2_min_results and tier2 defined?
                  │ yes                     │ no
                  ▼                         │
    tier2 fetch, dedup by id (tier-1 wins)  │
                  │                         │
                  ▼                         ▼
          one metrics lookup for the merged batch

Failure policy:
    - timeout / UpstreamUnavailableError on a tier -> that tier is empty
    - UpstreamFatalError -> propagates, request aborted
    - metrics failures of any kind -> no metrics (citations 0, impact None)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from biomed_search.domain.entities import (
    Candidate,
    CandidateMetrics,
    CompiledQuery,
    FetchResult,
    SearchFilters,
    SortMode,
)
from biomed_search.domain.ports import MetricsBackend, RetrievalBackend
from biomed_search.shared.async_utils import timeout_with_fallback
from biomed_search.shared.exceptions import UpstreamUnavailableError, is_fatal_error
from biomed_search.shared.settings import EngineSettings

logger = logging.getLogger(__name__)


@dataclass
class RetrievalOutcome:
    """Merged candidate batch for one request."""

    candidates: list[Candidate] = field(default_factory=list)
    total_count: int = 0
    tier1_count: int = 0
    tier2_count: int = 0
    tier2_issued: bool = False
    failed_tiers: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.candidates


def _dedup(items: Sequence[Candidate], seen: set[str]) -> list[Candidate]:
    """Keep the first occurrence of each id; ``seen`` is updated in place."""
    unique: list[Candidate] = []
    for item in items:
        if not item.id or item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


class RetrievalCoordinator:
    """Issue tier-1 / tier-2 queries and attach citation metrics."""

    def __init__(
        self,
        backend: RetrievalBackend,
        metrics: MetricsBackend | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self._backend = backend
        self._metrics = metrics
        self._settings = settings or EngineSettings()

    async def retrieve(
        self,
        compiled: CompiledQuery,
        *,
        batch_size: int,
        sort: SortMode = SortMode.RELEVANCE,
        filters: SearchFilters | None = None,
    ) -> RetrievalOutcome:
        filters = filters or SearchFilters()
        outcome = RetrievalOutcome()

        tier1 = await self._fetch_tier("tier1", compiled.tier1, batch_size, sort, filters, outcome)
        seen: set[str] = set()
        merged = _dedup(tier1.items, seen)
        outcome.tier1_count = len(merged)
        total_count = tier1.total_count

        if compiled.tier2 and outcome.tier1_count < self._settings.tier2_min_results:
            logger.info(
                f"tier1 returned {outcome.tier1_count} (< {self._settings.tier2_min_results}); issuing tier2"
            )
            outcome.tier2_issued = True
            tier2 = await self._fetch_tier("tier2", compiled.tier2, batch_size, sort, filters, outcome)
            tier2_items = _dedup(tier2.items, seen)
            outcome.tier2_count = len(tier2_items)
            merged += tier2_items
            total_count = max(total_count, tier2.total_count)

        metrics = await self._fetch_metrics([c.id for c in merged])
        outcome.candidates = [c.with_metrics(metrics.get(c.id)) for c in merged]
        outcome.total_count = max(total_count, len(merged))
        logger.debug(
            f"Retrieved {len(merged)} candidates (tier1={outcome.tier1_count}, tier2={outcome.tier2_count})"
        )
        return outcome

    # -------------------------------------------------------------------------

    async def _fetch_tier(
        self,
        label: str,
        query: str,
        batch_size: int,
        sort: SortMode,
        filters: SearchFilters,
        outcome: RetrievalOutcome,
    ) -> FetchResult:
        """Fetch one tier; transient failures become an empty result."""
        try:
            async with asyncio.timeout(self._settings.upstream_timeout):
                return await self._backend.fetch_candidates(
                    query,
                    page=1,
                    page_size=batch_size,
                    sort=sort,
                    filters=filters,
                )
        except TimeoutError:
            logger.warning(f"{label} timed out after {self._settings.upstream_timeout:.1f}s")
        except Exception as e:
            if is_fatal_error(e):
                raise
            if isinstance(e, UpstreamUnavailableError):
                logger.warning(f"{label} unavailable: {e}")
            else:
                logger.exception(f"{label} failed unexpectedly: {e}")
        outcome.failed_tiers.append(label)
        return FetchResult.empty()

    async def _fetch_metrics(self, ids: list[str]) -> dict[str, CandidateMetrics]:
        """Best-effort metrics lookup, one batch per request; never raises."""
        if self._metrics is None or not ids:
            return {}
        try:
            metrics = await timeout_with_fallback(
                self._metrics.fetch_metrics(ids),
                self._settings.metrics_timeout,
                dict,
                label=f"metrics lookup ({len(ids)} ids)",
            )
            return dict(metrics)
        except Exception as e:
            if is_fatal_error(e):
                logger.error(f"Metrics backend rejected request: {e}")
            else:
                logger.warning(f"Metrics lookup failed: {e}")
        return {}
