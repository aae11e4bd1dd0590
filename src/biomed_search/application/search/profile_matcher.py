"""
Profile Matcher - caller profile vs. candidate match percentage.

Conditions and keywords score 1.0 when found in title / major topics /
keywords and 0.5 when found only in the abstract. Location scores 1.0 when
it matches a trial site or an author affiliation (city or country part).
Parts are weighted conditions 0.5, keywords 0.3, location 0.2 and
renormalized over the parts the profile actually has.
"""

from __future__ import annotations

import logging

from biomed_search.domain.entities import Candidate, UserProfile

from .text_matching import contains_term, in_any, in_title_or_topics

logger = logging.getLogger(__name__)

CONDITION_WEIGHT = 0.5
KEYWORD_WEIGHT = 0.3
LOCATION_WEIGHT = 0.2


def _term_hit(candidate: Candidate, term: str) -> float:
    if in_title_or_topics(candidate, term):
        return 1.0
    if contains_term(candidate.abstract, term):
        return 0.5
    return 0.0


def _location_parts(location: str) -> list[str]:
    return [p.strip() for p in location.split(",") if p.strip()]


class ProfileMatcher:
    """Compute an integer 0-100 match percentage for a candidate."""

    def match_percentage(self, candidate: Candidate, profile: UserProfile | None) -> int | None:
        if profile is None or profile.is_empty:
            return None

        parts: list[tuple[float, float]] = []
        conditions = [c for c in profile.conditions if c.strip()]
        if conditions:
            hits = sum(_term_hit(candidate, c) for c in conditions)
            parts.append((CONDITION_WEIGHT, hits / len(conditions)))

        keywords = [k for k in profile.keywords if k.strip()]
        if keywords:
            hits = sum(_term_hit(candidate, k) for k in keywords)
            parts.append((KEYWORD_WEIGHT, hits / len(keywords)))

        if profile.location and profile.location.strip():
            parts.append((LOCATION_WEIGHT, self._location_score(candidate, profile.location)))

        if not parts:
            return None
        total_weight = sum(w for w, _ in parts)
        score = sum(w * s for w, s in parts) / total_weight
        return max(0, min(100, round(score * 100)))

    @staticmethod
    def _location_score(candidate: Candidate, location: str) -> float:
        places = candidate.locations or candidate.affiliations
        if not places:
            return 0.0
        wanted = _location_parts(location)
        if any(in_any(places, part) for part in wanted):
            return 1.0
        return 0.0
