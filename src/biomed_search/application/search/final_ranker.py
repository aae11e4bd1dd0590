"""
Final Ranker - Batch-Relative Scoring, Ordering and Pagination

Completes each SignalBag with batch-relative signals and orders the batch:

    citation_score  = log10(1 + citations) / log10(1 + P95)      (nearest-rank P95)
    influence_score = citation_score                              (no impact metric)
                    = 0.7 * citation_score + 0.3 * min(RCR / 3, 1)
    recency_score   = 1 / (1 + age), rescaled so the oldest item is 0 and age 0 is 1
    final_score     = w_match * match + w_rel * relevance + w_inf * influence + w_rec * recency

Ordering: final_score desc in epsilon-wide buckets; within a bucket ties break
on relevance, then influence, then original batch order (stable sort).
"""

from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from biomed_search.domain.entities import Intent, ScoredCandidate, clamp01

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingConfig:
    """
    Final score weights (sum to 1.0).

    Presets:
    - default(): relevance-led ranking
    - recency_focused(): used when the query asks for recent work
    """

    match_weight: float = 0.35
    relevance_weight: float = 0.35
    influence_weight: float = 0.25
    recency_weight: float = 0.05

    citation_share: float = 0.7
    impact_share: float = 0.3
    impact_cap: float = 3.0

    tie_epsilon: float = 0.001

    @classmethod
    def default(cls, tie_epsilon: float = 0.001) -> RankingConfig:
        return cls(tie_epsilon=tie_epsilon)

    @classmethod
    def recency_focused(cls, tie_epsilon: float = 0.001) -> RankingConfig:
        return cls(
            match_weight=0.30,
            relevance_weight=0.30,
            influence_weight=0.20,
            recency_weight=0.20,
            tie_epsilon=tie_epsilon,
        )

    @classmethod
    def for_intent(cls, intent: Intent, tie_epsilon: float = 0.001) -> RankingConfig:
        if intent.wants_recent:
            return cls.recency_focused(tie_epsilon)
        return cls.default(tie_epsilon)


def percentile_95(values: Sequence[int]) -> int:
    """Nearest-rank 95th percentile; 0 for an empty batch."""
    if not values:
        return 0
    ordered = sorted(values)
    rank = math.ceil(0.95 * len(ordered))
    return ordered[max(0, rank - 1)]


def citation_score(citations: int, p95: int) -> float:
    if p95 <= 0 or citations <= 0:
        return 0.0
    return clamp01(math.log10(1 + citations) / math.log10(1 + p95))


def influence_score(citation: float, impact_metric: float | None, config: RankingConfig) -> float:
    if impact_metric is None:
        return clamp01(citation)
    impact = min(max(impact_metric, 0.0) / config.impact_cap, 1.0)
    return clamp01(config.citation_share * citation + config.impact_share * impact)


@dataclass
class PageSlice:
    items: list[ScoredCandidate]
    page: int
    page_size: int
    has_more: bool


def paginate(items: Sequence[ScoredCandidate], page: int, page_size: int) -> PageSlice:
    """Slice a sorted batch; ``has_more`` is true iff page * page_size < len(items)."""
    page = max(1, page)
    page_size = max(1, page_size)
    start = (page - 1) * page_size
    end = start + page_size
    return PageSlice(
        items=list(items[start:end]),
        page=page,
        page_size=page_size,
        has_more=end < len(items),
    )


class FinalRanker:
    """Fill batch-relative signals and produce a deterministic ordering."""

    def __init__(self, reference_year: int | None = None, tie_epsilon: float = 0.001) -> None:
        self.reference_year = reference_year or datetime.date.today().year
        self.tie_epsilon = tie_epsilon

    def score(self, items: list[ScoredCandidate], intent: Intent) -> RankingConfig:
        """Compute citation / influence / recency / final scores in place."""
        config = RankingConfig.for_intent(intent, self.tie_epsilon)
        if not items:
            return config

        p95 = percentile_95([max(0, item.candidate.citation_count) for item in items])
        ages = [self._age(item) for item in items]
        known = [1.0 / (1 + age) for age in ages if age is not None]
        oldest = min(known) if known else 1.0

        for item, age in zip(items, ages):
            s = item.signals
            s.citation_score = citation_score(item.candidate.citation_count, p95)
            s.influence_score = influence_score(s.citation_score, item.candidate.impact_metric, config)
            if age is None:
                s.recency_score = 0.0
            elif oldest >= 1.0:
                s.recency_score = 1.0
            else:
                s.recency_score = (1.0 / (1 + age) - oldest) / (1.0 - oldest)
            match = (item.match_percentage or 0) / 100
            s.final_score = (
                config.match_weight * clamp01(match)
                + config.relevance_weight * s.query_relevance_score
                + config.influence_weight * s.influence_score
                + config.recency_weight * s.recency_score
            )
            s.clamp()

        logger.debug(f"Ranked {len(items)} candidates (P95 citations={p95}, recent={intent.wants_recent})")
        return config

    def order(self, items: list[ScoredCandidate]) -> list[ScoredCandidate]:
        """Stable sort on final score bucketed by epsilon, then relevance, then influence."""
        eps = self.tie_epsilon

        def key(item: ScoredCandidate) -> tuple[int, float, float]:
            s = item.signals
            return (-round(s.final_score / eps), -s.query_relevance_score, -s.influence_score)

        return sorted(items, key=key)

    def rank(self, items: list[ScoredCandidate], intent: Intent) -> list[ScoredCandidate]:
        self.score(items, intent)
        return self.order(items)

    def _age(self, item: ScoredCandidate) -> int | None:
        year = item.candidate.year
        if year is None or year <= 0:
            return None
        return max(0, self.reference_year - year)
