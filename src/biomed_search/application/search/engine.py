"""
SearchEngine - Query-Aware Relevance Ranking Pipeline

    raw query
       │
       ▼
    ConceptExtractor ──► Intent + ConceptSet
       │
       ▼
    QueryCompiler ──► CompiledQuery (tier1, tier2?)
       │
       ▼
    RetrievalCoordinator ──► candidate batch (+ citation metrics)
       │
       ▼
    RelevanceScorer ──► SignalBag per candidate
       │
       ▼
    ConceptGate ──► survivors (+ weak-exposure secondary list)
       │
       ▼
    FinalRanker ──► ordered batch ──► page window ──► RankedPage

Only UpstreamFatalError escapes ``search``; every other failure produces a
well-formed (possibly empty) RankedPage.
"""

from __future__ import annotations

import logging
from typing import Any

from biomed_search.domain.entities import (
    ConceptSet,
    RankedPage,
    RankedResult,
    ScoredCandidate,
    SearchFilters,
    SearchQuery,
    SignalBag,
    SortMode,
    UserProfile,
)
from biomed_search.domain.ports import MetricsBackend, RetrievalBackend, TerminologyService
from biomed_search.infrastructure.terminology import StaticTerminologyService
from biomed_search.shared.exceptions import InvalidQueryError
from biomed_search.shared.settings import EngineSettings

from .concept_extractor import ConceptExtractor
from .concept_gate import ConceptGate, GateOutcome
from .final_ranker import FinalRanker, paginate
from .profile_matcher import ProfileMatcher
from .query_compiler import QueryCompiler
from .relevance_scorer import RelevanceScorer
from .retrieval import RetrievalCoordinator, RetrievalOutcome

logger = logging.getLogger(__name__)


def _results(items: list[ScoredCandidate]) -> tuple[RankedResult, ...]:
    return tuple(
        RankedResult(candidate=i.candidate, signals=i.signals, match_percentage=i.match_percentage)
        for i in items
    )


class SearchEngine:
    """
    Compose the ranking pipeline over one retrieval backend.

    Example:
        engine = SearchEngine(PubMedBackend(email="me@example.org"), ICiteMetricsBackend())
        page = await engine.search("migraine and exposure to mold", page_size=9)
        for result in page.results:
            print(result.candidate.title, result.signals.final_score)
    """

    def __init__(
        self,
        backend: RetrievalBackend,
        metrics: MetricsBackend | None = None,
        terminology: TerminologyService | None = None,
        settings: EngineSettings | None = None,
        reference_year: int | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        terminology = terminology or StaticTerminologyService()
        self.extractor = ConceptExtractor(terminology)
        self.compiler = QueryCompiler(terminology, dialect=getattr(backend, "dialect", "pubmed"))
        self.retrieval = RetrievalCoordinator(backend, metrics, self.settings)
        self.scorer = RelevanceScorer(reference_year=reference_year)
        self.gate = ConceptGate(
            relevance_threshold=self.settings.relevance_threshold,
            secondary_threshold=self.settings.secondary_threshold,
        )
        self.ranker = FinalRanker(reference_year=reference_year, tie_epsilon=self.settings.tie_epsilon)
        self.profiles = ProfileMatcher()

    async def search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        profile: UserProfile | None = None,
        page: int = 1,
        page_size: int | None = None,
        sort_mode: SortMode = SortMode.RELEVANCE,
    ) -> RankedPage:
        """Run the full pipeline and return one page of ranked results."""
        request = SearchQuery(
            raw=(query or "").strip(),
            filters=filters or SearchFilters(),
            sort_mode=sort_mode,
            profile=profile,
        )
        page = max(1, page)
        page_size = max(1, page_size or self.settings.default_page_size)

        intent, concepts = self.extractor.extract(request.raw)
        try:
            compiled = self.compiler.compile(concepts)
        except InvalidQueryError as e:
            logger.info(f"Returning empty page: {e}")
            return RankedPage.empty(page, page_size, reason="invalid_query")

        outcome = await self.retrieval.retrieve(
            compiled,
            batch_size=self.settings.batch_size(page_size),
            sort=request.sort_mode,
            filters=request.filters,
        )
        diagnostics = self._diagnostics(request, compiled.tier1, compiled.tier2, concepts, outcome)
        if outcome.is_empty:
            return RankedPage.empty(page, page_size, **diagnostics)

        unscored = concepts.is_empty and not concepts.is_passthrough
        scored = [
            ScoredCandidate(
                candidate=c,
                signals=SignalBag() if unscored else self.scorer.score(c, concepts, intent),
                match_percentage=self.profiles.match_percentage(c, request.profile),
            )
            for c in outcome.candidates
        ]

        if unscored:
            self.ranker.score(scored, intent)
            ordered = scored
            gate = GateOutcome(passed=scored, skipped=True)
        else:
            gate = self.gate.apply(scored, concepts)
            ordered = self.ranker.rank(gate.passed, intent)

        secondary: list[ScoredCandidate] = []
        if gate.secondary and page == 1:
            secondary = self.ranker.rank(list(gate.secondary), intent)[:page_size]

        window = paginate(ordered, page, page_size)
        diagnostics.update(
            gate_skipped=gate.skipped,
            relaxation=gate.relaxation,
            dropped=dict(gate.dropped),
            ranked_count=len(ordered),
            unscored=unscored,
        )
        logger.debug(f"Search {request.raw!r}: {len(ordered)} ranked, page {page} has {len(window.items)}")
        return RankedPage(
            results=_results(window.items),
            total_count=min(outcome.total_count, len(ordered)),
            page=window.page,
            page_size=window.page_size,
            has_more=window.has_more,
            secondary_results=_results(secondary),
            diagnostics=diagnostics,
        )

    @staticmethod
    def _diagnostics(
        request: SearchQuery,
        tier1: str,
        tier2: str | None,
        concepts: ConceptSet,
        outcome: RetrievalOutcome,
    ) -> dict[str, Any]:
        return {
            "query": request.raw,
            "has_field_tags": request.has_field_tags,
            "tier1": tier1,
            "tier2": tier2,
            "tier2_issued": outcome.tier2_issued,
            "tier1_count": outcome.tier1_count,
            "tier2_count": outcome.tier2_count,
            "failed_tiers": list(outcome.failed_tiers),
            "core_concepts": list(concepts.core_concepts),
            "modifier_concepts": list(concepts.modifier_concepts),
            "rare_concepts": list(concepts.rare_concepts),
        }


__all__ = ["SearchEngine"]
