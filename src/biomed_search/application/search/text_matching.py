"""
Whole-word term matching shared by the scorer, the gate and the profile matcher.

All matching is case-insensitive and word-bounded. Terms may contain
hyphens, dots and spaces ("covid-19", "pm2.5", "mold toxicity"), so the
boundaries are look-arounds on word characters rather than ``\\b``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from biomed_search.domain.entities import Candidate, ExposureMatch

# Section markers whose following sentence states the study subject
_SECTION_MARKER = re.compile(r"\b(?:background|objectives?|aims?)\s*:", re.IGNORECASE)
SECTION_WINDOW = 200
LEAD_FRACTION = 0.25


@lru_cache(maxsize=2048)
def term_pattern(term: str) -> re.Pattern[str]:
    """Compiled whole-word pattern for ``term``; internal whitespace is flexible."""
    parts = [re.escape(p) for p in term.strip().split()]
    body = r"\s+".join(parts)
    return re.compile(rf"(?<!\w){body}(?!\w)", re.IGNORECASE)


def contains_term(text: str, term: str) -> bool:
    if not text or not term:
        return False
    return term_pattern(term).search(text) is not None


def count_term(text: str, term: str) -> int:
    if not text or not term:
        return 0
    return sum(1 for _ in term_pattern(term).finditer(text))


def in_any(texts: Iterable[str], term: str) -> bool:
    return any(contains_term(t, term) for t in texts)


def in_title_or_topics(candidate: Candidate, term: str) -> bool:
    """Term appears in the title, a major-topic tag or a keyword."""
    return (
        contains_term(candidate.title, term)
        or in_any(candidate.major_topics, term)
        or in_any(candidate.keywords, term)
    )


def in_candidate(candidate: Candidate, term: str) -> bool:
    """Term appears anywhere in title, abstract, keywords or topics."""
    return in_title_or_topics(candidate, term) or contains_term(candidate.abstract, term)


def _strong_in_abstract(abstract: str, term: str) -> bool:
    matches = list(term_pattern(term).finditer(abstract))
    if not matches:
        return False
    if len(matches) >= 2:
        return True
    first = matches[0].start()
    if first <= len(abstract) * LEAD_FRACTION:
        return True
    for marker in _SECTION_MARKER.finditer(abstract):
        if 0 <= first - marker.end() <= SECTION_WINDOW:
            return True
    return False


def exposure_level(candidate: Candidate, terms: Iterable[str]) -> ExposureMatch:
    """
    Classify how strongly ``candidate`` mentions any of ``terms``.

    strong: title / major-topic / keyword hit, or an abstract mention that is
        repeated, in the leading quarter, or right after a Background:/Objective:
        marker.
    weak: mentioned in the abstract only, and not strongly.
    none: not mentioned at all.
    """
    level = ExposureMatch.NONE
    for term in terms:
        if in_title_or_topics(candidate, term):
            return ExposureMatch.STRONG
        if contains_term(candidate.abstract, term):
            if _strong_in_abstract(candidate.abstract, term):
                return ExposureMatch.STRONG
            level = ExposureMatch.WEAK
    return level


def is_strong_match(candidate: Candidate, terms: Iterable[str]) -> bool:
    return exposure_level(candidate, terms) is ExposureMatch.STRONG
