"""
Domain Entities

Core business objects for query-aware biomedical search.
"""

from __future__ import annotations

from .candidate import Candidate, CandidateMetrics, FetchResult
from .query import (
    FIELD_TAG_PATTERN,
    CandidateKind,
    CompiledQuery,
    ConceptSet,
    Intent,
    SearchFilters,
    SearchQuery,
    SortMode,
    UserProfile,
    has_field_tags,
)
from .ranked import (
    ExposureMatch,
    RankedPage,
    RankedResult,
    ScoredCandidate,
    SignalBag,
    clamp01,
)

__all__ = [
    # Request entities
    "SearchQuery",
    "SearchFilters",
    "UserProfile",
    "SortMode",
    "FIELD_TAG_PATTERN",
    "has_field_tags",
    # Interpretation
    "Intent",
    "ConceptSet",
    "CompiledQuery",
    # Candidates
    "Candidate",
    "CandidateKind",
    "CandidateMetrics",
    "FetchResult",
    # Ranking output
    "ExposureMatch",
    "SignalBag",
    "ScoredCandidate",
    "RankedResult",
    "RankedPage",
    "clamp01",
]
