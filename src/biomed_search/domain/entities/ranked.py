"""
Domain Entities: per-candidate signals and ranked output.

A SignalBag is created by the relevance scorer, completed by the final
ranker and discarded with the response; it is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .candidate import Candidate


class ExposureMatch(str, Enum):
    """How strongly a candidate mentions the query's modifier/rare concepts."""

    NONE = "none"
    WEAK = "weak"
    STRONG = "strong"


def clamp01(value: float) -> float:
    """Clamp a score into [0, 1]."""
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, value))


@dataclass
class SignalBag:
    """Scores attached to one candidate during a single request."""

    query_relevance_score: float = 0.0
    field_weighted_score: float = 0.0
    exposure_match_level: ExposureMatch | None = None
    recency_weight: float = 0.2
    has_cross_link: bool = False
    exact_phrase: bool = False
    citation_score: float = 0.0
    influence_score: float = 0.0
    recency_score: float = 0.0
    final_score: float = 0.0

    def clamp(self) -> SignalBag:
        """Force every numeric signal into [0, 1]."""
        self.query_relevance_score = clamp01(self.query_relevance_score)
        self.field_weighted_score = clamp01(self.field_weighted_score)
        self.recency_weight = clamp01(self.recency_weight)
        self.citation_score = clamp01(self.citation_score)
        self.influence_score = clamp01(self.influence_score)
        self.recency_score = clamp01(self.recency_score)
        self.final_score = clamp01(self.final_score)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "query_relevance_score": round(self.query_relevance_score, 4),
            "field_weighted_score": round(self.field_weighted_score, 4),
            "exposure_match_level": self.exposure_match_level.value if self.exposure_match_level else None,
            "recency_weight": round(self.recency_weight, 4),
            "has_cross_link": self.has_cross_link,
            "citation_score": round(self.citation_score, 4),
            "influence_score": round(self.influence_score, 4),
            "recency_score": round(self.recency_score, 4),
            "final_score": round(self.final_score, 4),
        }


@dataclass
class ScoredCandidate:
    """A candidate paired with its signals while moving through the pipeline."""

    candidate: Candidate
    signals: SignalBag
    match_percentage: int | None = None

    @property
    def id(self) -> str:
        return self.candidate.id


@dataclass(frozen=True)
class RankedResult:
    """One item of a result page."""

    candidate: Candidate
    signals: SignalBag
    match_percentage: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.candidate.to_dict()
        data["signals"] = self.signals.to_dict()
        data["match_percentage"] = self.match_percentage
        return data


@dataclass(frozen=True)
class RankedPage:
    """
    A page of ranked results.

    ``total_count`` is scoped to the retrieved batch (min of the upstream
    total and the number of candidates ranked) and is therefore always an
    estimate.
    """

    results: tuple[RankedResult, ...] = ()
    total_count: int = 0
    page: int = 1
    page_size: int = 9
    has_more: bool = False
    total_is_estimate: bool = True
    secondary_results: tuple[RankedResult, ...] = ()
    diagnostics: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls, page: int = 1, page_size: int = 9, **diagnostics: Any) -> RankedPage:
        return cls(page=page, page_size=page_size, diagnostics=dict(diagnostics))

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "total_count": self.total_count,
            "total_is_estimate": self.total_is_estimate,
            "page": self.page,
            "page_size": self.page_size,
            "has_more": self.has_more,
            "secondary_results": [r.to_dict() for r in self.secondary_results],
            "diagnostics": dict(self.diagnostics),
        }
