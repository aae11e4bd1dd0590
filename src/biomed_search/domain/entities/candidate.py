"""
Domain Entity: Candidate

A publication or clinical trial returned by a retrieval backend, normalized
to the fields the ranking pipeline reads. Backend-specific mapping lives in
the infrastructure adapters.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from typing_extensions import Self

from .query import CandidateKind


@dataclass(frozen=True)
class CandidateMetrics:
    """Citation metrics from the metrics backend (iCite for PubMed)."""

    citation_count: int = 0
    relative_citation_ratio: float | None = None


@dataclass(frozen=True)
class Candidate:
    """One retrievable item.

    ``id`` is stable across tiers (PMID or NCT id) and is the dedup key.
    ``major_topics`` holds MeSH descriptors for publications and conditions
    (plus condition MeSH terms) for trials.
    """

    id: str
    kind: CandidateKind = CandidateKind.PUBLICATION
    title: str = ""
    abstract: str = ""
    keywords: tuple[str, ...] = ()
    major_topics: tuple[str, ...] = ()
    year: int | None = None
    citation_count: int = 0
    impact_metric: float | None = None

    # Display metadata, not used for scoring
    journal: str = ""
    authors: tuple[str, ...] = ()
    doi: str = ""
    url: str = ""
    status: str = ""
    phase: str = ""
    locations: tuple[str, ...] = ()
    affiliations: tuple[str, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def combined_text(self) -> str:
        """Lower-cased title + abstract + keywords + topics, used for phrase search."""
        parts = [self.title, self.abstract, " ".join(self.keywords), " ".join(self.major_topics)]
        return " ".join(p for p in parts if p).lower()

    def with_metrics(self, metrics: CandidateMetrics | None) -> Self:
        """Return a copy carrying citation metrics; unchanged when none are known."""
        if metrics is None:
            return self
        return replace(
            self,
            citation_count=max(0, int(metrics.citation_count or 0)),
            impact_metric=metrics.relative_citation_ratio,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "abstract": self.abstract,
            "keywords": list(self.keywords),
            "major_topics": list(self.major_topics),
            "year": self.year,
            "citation_count": self.citation_count,
            "impact_metric": self.impact_metric,
            "journal": self.journal,
            "authors": list(self.authors),
            "doi": self.doi,
            "url": self.url,
            "status": self.status,
            "phase": self.phase,
            "locations": list(self.locations),
        }


@dataclass(frozen=True)
class FetchResult:
    """One backend response: items in backend order plus the upstream total."""

    items: tuple[Candidate, ...] = ()
    total_count: int = 0

    @classmethod
    def empty(cls) -> Self:
        return cls()
