"""
Domain Entities: search request and its structured interpretation.

SearchQuery / SearchFilters / UserProfile describe what the caller asked for.
Intent / ConceptSet / CompiledQuery are derived from the raw text by the
extractor and compiler and are immutable for the rest of the request.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

# Expert syntax such as "asthma[tiab]" or "Smith J[au]"
FIELD_TAG_PATTERN = re.compile(r"\[[A-Za-z]{2,}\]")


def has_field_tags(text: str) -> bool:
    """True when the query already carries backend field tags."""
    return bool(FIELD_TAG_PATTERN.search(text or ""))


class SortMode(str, Enum):
    """Requested upstream ordering."""

    RELEVANCE = "relevance"
    DATE = "date"


class CandidateKind(str, Enum):
    """Kind of item a search returns."""

    PUBLICATION = "publication"
    TRIAL = "trial"


@dataclass(frozen=True)
class SearchFilters:
    """Caller filters passed through to the retrieval backend.

    ``date_from`` / ``date_to`` use ``YYYY/MM/DD`` (or ``YYYY``). ``status``
    and ``phase`` are ClinicalTrials.gov enum values (``RECRUITING``,
    ``PHASE2``...). ``location`` is free text.
    """

    date_from: str | None = None
    date_to: str | None = None
    status: tuple[str, ...] = ()
    phase: tuple[str, ...] = ()
    location: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.date_from or self.date_to or self.status or self.phase or self.location)


@dataclass(frozen=True)
class UserProfile:
    """Opaque caller profile used only for match percentages."""

    conditions: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    location: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.conditions or self.keywords or self.location)


@dataclass(frozen=True)
class SearchQuery:
    """One search request as received by the engine."""

    raw: str
    filters: SearchFilters = field(default_factory=SearchFilters)
    sort_mode: SortMode = SortMode.RELEVANCE
    profile: UserProfile | None = None

    @property
    def has_field_tags(self) -> bool:
        return has_field_tags(self.raw)


@dataclass(frozen=True)
class Intent:
    """Independent intent flags detected in the raw query."""

    wants_recent: bool = False
    wants_treatment: bool = False
    wants_trial: bool = False


@dataclass(frozen=True)
class ConceptSet:
    """
    Concept groups extracted from a query.

    - core_concepts: the primary subject (phrase, its tokens, expansions)
    - modifier_concepts: exposure / qualifying subject after a connector
    - rare_concepts: low-frequency discriminating tokens (e.g. "PFAS", "H5N1")
    - intervention_concepts: only present for treatment/trial intent
    - qualifiers: stripped age-group and recency words (not used for gating)
    - query_terms: significant lower-case terms used for coverage scoring

    The ``*_search_terms`` fields hold the phrase-level subset (phrase plus
    its expansions) that the compiler turns into backend clauses; the
    token-level concepts are used for matching only.
    """

    core_concepts: tuple[str, ...] = ()
    modifier_concepts: tuple[str, ...] = ()
    rare_concepts: tuple[str, ...] = ()
    intervention_concepts: tuple[str, ...] = ()
    core_search_terms: tuple[str, ...] = ()
    modifier_search_terms: tuple[str, ...] = ()
    qualifiers: tuple[str, ...] = ()
    query_terms: tuple[str, ...] = ()
    raw_query: str = ""
    has_field_tags: bool = False
    is_identifier_lookup: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.core_concepts or self.modifier_concepts or self.rare_concepts)

    @property
    def is_passthrough(self) -> bool:
        """Raw query is sent verbatim and results are not gated."""
        return self.has_field_tags or self.is_identifier_lookup

    @property
    def exposure_terms(self) -> tuple[str, ...]:
        """Terms whose presence decides the exposure match level."""
        return self.modifier_concepts + self.rare_concepts

    @property
    def group_count(self) -> int:
        """Number of independent concept groups (core, modifier, rare)."""
        return sum(1 for group in (self.core_concepts, self.modifier_concepts, self.rare_concepts) if group)


@dataclass(frozen=True)
class CompiledQuery:
    """Backend query strings: tier1 always, tier2 only with 2+ concept groups."""

    tier1: str
    tier2: str | None = None
    dialect: str = "pubmed"
