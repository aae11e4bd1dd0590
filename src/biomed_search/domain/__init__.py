"""
Domain Layer - Core Business Objects

Contains:
- entities: search request, concepts, candidates, ranked output
"""

from .entities import (
    Candidate,
    CandidateKind,
    ConceptSet,
    Intent,
    RankedPage,
    RankedResult,
    SearchFilters,
    SearchQuery,
    SignalBag,
    SortMode,
    UserProfile,
)

__all__ = [
    "Candidate",
    "CandidateKind",
    "ConceptSet",
    "Intent",
    "RankedPage",
    "RankedResult",
    "SearchFilters",
    "SearchQuery",
    "SignalBag",
    "SortMode",
    "UserProfile",
]
