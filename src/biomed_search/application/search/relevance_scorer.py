"""
Relevance Scorer - Per-Candidate Query Relevance

Pure function of (Candidate, ConceptSet, Intent, reference year). Produces the
first half of a SignalBag:

    query_relevance_score   tiered term coverage, exact-phrase override,
                            recency / cross-link bonuses, exposure adjustment
    field_weighted_score    title .45, major topics .25, keywords .15, abstract .15
    exposure_match_level    none / weak / strong (only with modifier/rare concepts)
    recency_weight          1.0 (<=2y) / 0.7 (<=5y) / 0.4 (<=10y) / 0.15, unknown 0.2
    has_cross_link          text mentions a trial identifier (NCTxxxxxxxx)

Relevance tiers (all query terms matched somewhere):
    significant ratio >= 0.6  ->  0.85 .. 1.0
    significant ratio >= 0.4  ->  0.75 .. 0.85
    some significant          ->  0.50 .. 0.70
    none significant          ->  0.30  (abstract-only, likely false positive)
Partial coverage scales with the matched fraction and stays below 0.5.
"""

from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass

from biomed_search.domain.entities import (
    Candidate,
    ConceptSet,
    ExposureMatch,
    Intent,
    SignalBag,
    clamp01,
)

from .text_matching import contains_term, exposure_level, in_any, in_title_or_topics

logger = logging.getLogger(__name__)

CROSS_LINK_PATTERN = re.compile(r"\bNCT\d{8}\b", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

UNKNOWN_YEAR_WEIGHT = 0.2


@dataclass(frozen=True)
class FieldWeights:
    """Per-field weights for the field-weighted score (sum to 1.0)."""

    title: float = 0.45
    major_topics: float = 0.25
    keywords: float = 0.15
    abstract: float = 0.15


def recency_weight(year: int | None, reference_year: int) -> float:
    """Step weight by publication age; unknown year scores 0.2."""
    if year is None or year <= 0:
        return UNKNOWN_YEAR_WEIGHT
    age = max(0, reference_year - year)
    if age <= 2:
        return 1.0
    if age <= 5:
        return 0.7
    if age <= 10:
        return 0.4
    return 0.15


def coverage_relevance(matched: int, significant: int, total: int) -> float:
    """Tiered relevance from term coverage counts."""
    if total <= 0 or matched <= 0:
        return 0.0
    if matched < total:
        return min(0.49, 0.5 * matched / total)

    ratio = significant / total
    if ratio >= 0.6:
        return 0.85 + 0.15 * min(1.0, (ratio - 0.6) / 0.4)
    if ratio >= 0.4:
        return 0.75 + 0.10 * (ratio - 0.4) / 0.2
    if ratio > 0:
        return 0.5 + 0.2 * ratio / 0.4
    return 0.3


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", (text or "").lower()).strip()


class RelevanceScorer:
    """
    Score candidates against a query.

    Example:
        scorer = RelevanceScorer(reference_year=2025)
        signals = scorer.score(candidate, concepts, intent)
    """

    def __init__(
        self,
        reference_year: int | None = None,
        weights: FieldWeights | None = None,
        recency_bonus: float = 0.05,
        cross_link_bonus: float = 0.05,
        rare_term_bonus: float = 0.10,
    ) -> None:
        self.reference_year = reference_year or datetime.date.today().year
        self.weights = weights or FieldWeights()
        self.recency_bonus = recency_bonus
        self.cross_link_bonus = cross_link_bonus
        self.rare_term_bonus = rare_term_bonus

    def score(self, candidate: Candidate, concepts: ConceptSet, intent: Intent) -> SignalBag:
        """Score one candidate; any failure degrades to safe defaults."""
        try:
            return self._score(candidate, concepts).clamp()
        except Exception as e:
            logger.exception(f"Scoring failed for {candidate.id}: {e}")
            return SignalBag(query_relevance_score=0.0, recency_weight=UNKNOWN_YEAR_WEIGHT)

    def score_all(
        self,
        candidates: list[Candidate],
        concepts: ConceptSet,
        intent: Intent,
    ) -> list[SignalBag]:
        return [self.score(c, concepts, intent) for c in candidates]

    # -------------------------------------------------------------------------

    def field_weighted_score(self, candidate: Candidate, terms: tuple[str, ...]) -> float:
        if not terms:
            return 0.0
        w = self.weights
        per_term = [
            w.title * contains_term(candidate.title, t)
            + w.major_topics * in_any(candidate.major_topics, t)
            + w.keywords * in_any(candidate.keywords, t)
            + w.abstract * contains_term(candidate.abstract, t)
            for t in terms
        ]
        average = sum(per_term) / len(per_term)
        return max(average, max(per_term))

    def _score(self, candidate: Candidate, concepts: ConceptSet) -> SignalBag:
        terms = concepts.query_terms
        text = " ".join(
            p for p in (candidate.title, candidate.abstract, " ".join(candidate.keywords)) if p
        )
        signals = SignalBag(
            recency_weight=recency_weight(candidate.year, self.reference_year),
            has_cross_link=bool(CROSS_LINK_PATTERN.search(text)),
            field_weighted_score=self.field_weighted_score(candidate, terms),
        )

        raw = _normalize(concepts.raw_query)
        if raw and raw in _normalize(candidate.combined_text):
            signals.exact_phrase = True
            signals.query_relevance_score = 1.0
            if concepts.exposure_terms:
                signals.exposure_match_level = exposure_level(candidate, concepts.exposure_terms)
            return signals

        matched = sum(1 for t in terms if contains_term(text, t) or in_any(candidate.major_topics, t))
        significant = sum(1 for t in terms if in_title_or_topics(candidate, t))
        relevance = max(
            coverage_relevance(matched, significant, len(terms)),
            signals.field_weighted_score,
        )

        if relevance >= 0.5:
            relevance += self.recency_bonus * signals.recency_weight
            if signals.has_cross_link:
                relevance += self.cross_link_bonus
            relevance = min(1.0, relevance)

        if concepts.exposure_terms:
            level = exposure_level(candidate, concepts.exposure_terms)
            signals.exposure_match_level = level
            if level is ExposureMatch.NONE:
                relevance = 0.0
            elif level is ExposureMatch.WEAK:
                relevance /= 2
            if relevance > 0 and any(
                contains_term(candidate.title, r) or in_any(candidate.keywords, r)
                for r in concepts.rare_concepts
            ):
                relevance += self.rare_term_bonus

        signals.query_relevance_score = clamp01(relevance)
        return signals
