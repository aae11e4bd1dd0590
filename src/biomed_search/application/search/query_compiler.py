"""
Structured Query Compiler

Turns a ConceptSet into backend query strings: OR within a concept group,
AND across groups.

PubMed dialect (E-utilities):
    (migraine[tiab] OR "Migraine Disorders"[mh]) AND (mold[tiab] OR ...)
    Intervention group uses the PubMed clinical vocabulary
    ("drug therapy"[sh], "randomized controlled trial"[pt], ...)

ClinicalTrials.gov dialect (Essie):
    (migraine OR AREA[ConditionMeshTerm]"Migraine Disorders") AND (mold)
    No intervention group: every record is already a study.
"""

from __future__ import annotations

import logging
import re

from biomed_search.domain.entities import CompiledQuery, ConceptSet
from biomed_search.domain.ports import TerminologyService
from biomed_search.shared.exceptions import ErrorContext, InvalidQueryError

logger = logging.getLogger(__name__)

PUBMED = "pubmed"
CTGOV = "ctgov"

# Intervention concept -> PubMed field-tagged fragment
PUBMED_INTERVENTION_TAGS: dict[str, str] = {
    "drug therapy": '"drug therapy"[sh]',
    "therapy": "therapy[tiab]",
    "treatment": "treatment[tiab]",
    "therapeutics": "therapeutics[mh]",
    "randomized controlled trial": '"randomized controlled trial"[pt]',
    "clinical trial": '"clinical trial"[pt]',
    "placebo": "placebo[tiab]",
    "rct": "RCT[tiab]",
}

_WHITESPACE = re.compile(r"\s+")


def _quote(term: str) -> str:
    term = term.replace('"', "").strip()
    return f'"{term}"' if (" " in term or "-" in term) else term


class QueryCompiler:
    """Compile concept groups to tier-1 / tier-2 queries for one dialect."""

    def __init__(self, terminology: TerminologyService, dialect: str = PUBMED) -> None:
        if dialect not in (PUBMED, CTGOV):
            raise ValueError(f"Unknown query dialect: {dialect}")
        self._terminology = terminology
        self.dialect = dialect

    def compile(self, concepts: ConceptSet) -> CompiledQuery:
        raw = _WHITESPACE.sub(" ", concepts.raw_query or "").strip()
        if not raw:
            raise InvalidQueryError(raw, context=ErrorContext(operation="compile"))

        if concepts.is_passthrough or concepts.is_empty:
            return CompiledQuery(tier1=raw, dialect=self.dialect)

        groups: list[tuple[str, str]] = []
        core_terms = concepts.core_search_terms or concepts.core_concepts
        modifier_terms = concepts.modifier_search_terms or concepts.modifier_concepts
        for name, terms in (
            ("core", core_terms),
            ("modifier", modifier_terms),
            ("rare", concepts.rare_concepts),
        ):
            clause = self._concept_clause(terms)
            if clause:
                groups.append((name, clause))
        intervention = self._intervention_clause(concepts.intervention_concepts)
        if intervention:
            groups.append(("intervention", intervention))

        if not groups:
            return CompiledQuery(tier1=raw, dialect=self.dialect)

        tier1 = " AND ".join(clause for _, clause in groups)
        tier2 = None
        if concepts.group_count >= 2:
            dropped = "rare" if concepts.rare_concepts else "modifier"
            kept = [clause for name, clause in groups if name != dropped]
            if kept:
                tier2 = " AND ".join(kept)

        logger.debug(f"Compiled ({self.dialect}) tier1={tier1!r} tier2={tier2!r}")
        return CompiledQuery(tier1=tier1, tier2=tier2, dialect=self.dialect)

    # -------------------------------------------------------------------------

    def _concept_clause(self, terms: tuple[str, ...]) -> str:
        parts: list[str] = []
        for term in terms:
            term = term.strip()
            if not term:
                continue
            parts.append(self._text_fragment(term))
            mapped = self._terminology.map_to_controlled_vocabulary(term)
            if mapped and mapped.strip().lower() != term.lower():
                parts.append(self._vocabulary_fragment(mapped.strip()))
        parts = list(dict.fromkeys(parts))
        if not parts:
            return ""
        return f"({' OR '.join(parts)})"

    def _text_fragment(self, term: str) -> str:
        if self.dialect == PUBMED:
            return f"{_quote(term)}[tiab]"
        return _quote(term)

    def _vocabulary_fragment(self, heading: str) -> str:
        heading = heading.replace('"', "")
        if self.dialect == PUBMED:
            return f'"{heading}"[mh]'
        return f'AREA[ConditionMeshTerm]"{heading}"'

    def _intervention_clause(self, concepts: tuple[str, ...]) -> str:
        if not concepts or self.dialect == CTGOV:
            return ""
        parts = [PUBMED_INTERVENTION_TAGS.get(c, f"{_quote(c)}[tiab]") for c in concepts]
        return f"({' OR '.join(dict.fromkeys(parts))})"
