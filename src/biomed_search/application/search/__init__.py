"""
Query-Aware Search Pipeline

Key Components:
- ConceptExtractor: intent flags and concept groups from free text
- QueryCompiler: field-tagged tier-1 / tier-2 backend queries
- RetrievalCoordinator: tiered retrieval with metrics enrichment
- RelevanceScorer: per-candidate relevance signals
- ConceptGate: concept / relevance gating with relaxation
- FinalRanker: batch-relative influence, recency and final ordering
- SearchEngine: composes the above into one search operation

Architecture:
    User Query
        │
        ▼
    ┌──────────────────┐
    │ ConceptExtractor │  ← Intent + core / modifier / rare concepts
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │  QueryCompiler   │  ← tier1 (all groups), tier2 (rarest dropped)
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │    Retrieval     │  ← tier2 only when tier1 is short
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ Scorer → Gate →  │
    │   FinalRanker    │  ← SignalBag per candidate
    └────────┬─────────┘
             ▼
        RankedPage
"""

from __future__ import annotations

from .concept_extractor import ConceptExtractor, detect_intent, query_terms
from .concept_gate import ConceptGate, GateOutcome
from .engine import SearchEngine
from .final_ranker import FinalRanker, RankingConfig, paginate, percentile_95
from .profile_matcher import ProfileMatcher
from .query_compiler import CTGOV, PUBMED, QueryCompiler
from .relevance_scorer import FieldWeights, RelevanceScorer, recency_weight
from .retrieval import RetrievalCoordinator, RetrievalOutcome

__all__ = [
    # Query understanding
    "ConceptExtractor",
    "detect_intent",
    "query_terms",
    "QueryCompiler",
    "PUBMED",
    "CTGOV",
    # Retrieval
    "RetrievalCoordinator",
    "RetrievalOutcome",
    # Scoring and ranking
    "RelevanceScorer",
    "FieldWeights",
    "recency_weight",
    "ConceptGate",
    "GateOutcome",
    "FinalRanker",
    "RankingConfig",
    "paginate",
    "percentile_95",
    "ProfileMatcher",
    # Pipeline
    "SearchEngine",
]
