"""
Concept Gate

Drops candidates that do not actually discuss the query's concepts:

1. Core gate: a core concept in title, major topics or keywords.
2. Multi-concept gate: strong match on modifier + rare terms (when present).
3. Relevance threshold: relevance >= 0.35, exact-phrase matches always pass.

When every candidate is removed and the query has two concept groups the gate
relaxes to "strong core match AND any modifier mention", then to the full
pre-gate batch. Candidates dropped only for a weak exposure mention are kept
aside as a secondary list when the primary list is short.

Skipped entirely for field-tagged, identifier and empty-concept queries.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from biomed_search.domain.entities import ConceptSet, ExposureMatch, ScoredCandidate

from .text_matching import exposure_level, in_candidate, in_title_or_topics, is_strong_match

logger = logging.getLogger(__name__)

RELAXED_MODIFIER = "strong_core_any_modifier"
RELAXED_PRE_GATE = "pre_gate"


@dataclass
class GateOutcome:
    passed: list[ScoredCandidate] = field(default_factory=list)
    secondary: list[ScoredCandidate] = field(default_factory=list)
    skipped: bool = False
    relaxation: str | None = None
    dropped: Counter[str] = field(default_factory=Counter)

    @property
    def relaxed(self) -> bool:
        return self.relaxation is not None


class ConceptGate:
    """Apply concept and relevance gates to a scored batch."""

    def __init__(self, relevance_threshold: float = 0.35, secondary_threshold: int = 20) -> None:
        self.relevance_threshold = relevance_threshold
        self.secondary_threshold = secondary_threshold

    def apply(self, scored: list[ScoredCandidate], concepts: ConceptSet) -> GateOutcome:
        if concepts.is_passthrough or concepts.is_empty:
            return GateOutcome(passed=list(scored), skipped=True)

        outcome = GateOutcome()
        weak_pool: list[ScoredCandidate] = []
        exposure_terms = concepts.exposure_terms

        for item in scored:
            candidate, signals = item.candidate, item.signals
            if not any(in_title_or_topics(candidate, t) for t in concepts.core_concepts):
                outcome.dropped["core"] += 1
                continue

            if exposure_terms:
                level = signals.exposure_match_level or exposure_level(candidate, exposure_terms)
                if level is not ExposureMatch.STRONG:
                    outcome.dropped["multi_concept"] += 1
                    if level is ExposureMatch.WEAK:
                        weak_pool.append(item)
                    continue

            if signals.query_relevance_score < self.relevance_threshold and not (
                signals.exact_phrase or signals.query_relevance_score >= 1.0
            ):
                outcome.dropped["relevance"] += 1
                continue

            outcome.passed.append(item)

        if not outcome.passed and scored and concepts.group_count >= 2:
            outcome.passed = self._relax(scored, concepts, outcome)
        elif exposure_terms and len(outcome.passed) < self.secondary_threshold:
            outcome.secondary = weak_pool

        logger.debug(
            f"Gate: {len(scored)} in, {len(outcome.passed)} passed, "
            f"{len(outcome.secondary)} secondary, dropped={dict(outcome.dropped)}"
        )
        return outcome

    def _relax(
        self,
        scored: list[ScoredCandidate],
        concepts: ConceptSet,
        outcome: GateOutcome,
    ) -> list[ScoredCandidate]:
        relaxed = [
            item for item in scored
            if is_strong_match(item.candidate, concepts.core_concepts)
            and any(in_candidate(item.candidate, t) for t in concepts.exposure_terms)
        ]
        if relaxed:
            outcome.relaxation = RELAXED_MODIFIER
            logger.info(f"Gate relaxed to strong core + any modifier mention: {len(relaxed)} candidates")
            return relaxed

        outcome.relaxation = RELAXED_PRE_GATE
        logger.info(f"Gate relaxed to full pre-gate batch: {len(scored)} candidates")
        return list(scored)
