"""
Biomed Search - Query-Aware Relevance Ranking for Biomedical Search

Turns a free-text clinical question into tiered backend queries, scores the
returned publications or trials against the question's concepts, filters out
items that miss a required concept, and returns a deterministic ranked page.

Usage:
    from biomed_search import SearchEngine
    from biomed_search.infrastructure.ncbi import ICiteMetricsBackend, PubMedBackend

    engine = SearchEngine(PubMedBackend(email="me@example.org"), ICiteMetricsBackend())
    page = await engine.search("pediatric asthma and exposure to mold", page_size=9)

    for result in page.results:
        print(f"{result.candidate.id}: {result.candidate.title}")
"""

from .application.search import SearchEngine
from .domain.entities import (
    Candidate,
    CandidateKind,
    RankedPage,
    RankedResult,
    SearchFilters,
    SortMode,
    UserProfile,
)
from .shared.exceptions import (
    BiomedSearchError,
    InvalidQueryError,
    UpstreamFatalError,
    UpstreamUnavailableError,
)
from .shared.settings import EngineSettings

__version__ = "0.3.0"

__all__ = [
    "SearchEngine",
    "EngineSettings",
    # Request / response
    "SearchFilters",
    "UserProfile",
    "SortMode",
    "Candidate",
    "CandidateKind",
    "RankedPage",
    "RankedResult",
    # Errors
    "BiomedSearchError",
    "InvalidQueryError",
    "UpstreamFatalError",
    "UpstreamUnavailableError",
]
