"""
ConceptExtractor - Intent and Concept Extraction for Free-Text Queries

This module turns a raw user query into:
1. Intent flags (recent / treatment / trial), detected on the unstripped query
2. Concept groups: core (primary topic), modifier (exposure / secondary
   topic), rare (discriminating tokens of the secondary topic) and
   intervention (only for treatment / trial intent)
3. The significant query terms used for coverage scoring

Architecture Decision:
    ConceptExtractor is stateless and uses patterns only. Synonyms and
    controlled vocabulary come from the injected TerminologyService, which is
    pure, so extraction never performs I/O and never raises.

Example:
    >>> extractor = ConceptExtractor(StaticTerminologyService())
    >>> intent, concepts = extractor.extract("migraine and exposure to mold")
    >>> concepts.core_concepts
    ('migraine',)
    >>> concepts.modifier_concepts
    ('mold',)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from biomed_search.domain.entities import FIELD_TAG_PATTERN, ConceptSet, Intent
from biomed_search.domain.ports import TerminologyService

logger = logging.getLogger(__name__)


# =============================================================================
# Patterns
# =============================================================================

RECENT_PATTERN = re.compile(r"\b(latest|recent|new|updated|emerging|202[0-9]|20[3-9][0-9])\b", re.IGNORECASE)
TREATMENT_PATTERN = re.compile(
    r"\b(treatments?|therapy|therapies|therapeutic|management|drugs?|medications?|interventions?)\b",
    re.IGNORECASE,
)
TRIAL_PATTERN = re.compile(
    r"\b(trials?|randomi[sz]ed|rct|placebo|phase\s+[i\d]+|clinical\s+trials?)\b",
    re.IGNORECASE,
)

# Exact identifier lookups: PMID (optionally prefixed) or NCT number
IDENTIFIER_PATTERN = re.compile(r"^\s*(?:pmid\s*:?\s*\d{1,8}|\d{7,8}|nct\d{8})\s*$", re.IGNORECASE)

# First natural-language connector splits primary topic from exposure topic
CONNECTOR_PATTERN = re.compile(
    r"\s+(?:and\s+(?:exposures?\s+to)|and|with|from|due\s+to|caused\s+by|associated\s+with|"
    r"induced\s+by|after|following|linked\s+to)\s+(?:exposures?\s+to\s+)?",
    re.IGNORECASE,
)

AGE_QUALIFIERS = frozenset({
    "pediatric", "paediatric", "paediatrics", "pediatrics", "adult", "adults", "elderly",
    "children", "child", "childhood", "geriatric", "infant", "infants", "neonatal",
    "adolescent", "adolescents", "older", "aged",
})
# Study populations; "patients with X" is about X
POPULATION_QUALIFIERS = frozenset({
    "patient", "patients", "people", "persons", "individuals", "subjects", "participants",
    "women", "men", "survivors", "population", "populations",
})
RECENCY_QUALIFIERS = frozenset({"latest", "recent", "new", "updated", "emerging"})
_YEAR = re.compile(r"^(?:19|20)\d{2}$")

INTENT_WORDS = frozenset({
    "treatment", "treatments", "therapy", "therapies", "therapeutic", "management",
    "drug", "drugs", "medication", "medications", "intervention", "interventions",
    "trial", "trials", "randomized", "randomised", "rct", "placebo", "phase", "clinical",
})

STOP_WORDS = frozenset({
    "a", "an", "the", "of", "in", "on", "for", "to", "with", "and", "or", "not", "by", "at",
    "from", "about", "as", "is", "are", "was", "be", "vs", "versus", "among", "between",
    "into", "what", "how", "does", "do", "which", "effect", "effects", "their", "its",
    "study", "studies", "research", "publication", "publications", "paper", "papers",
    "article", "articles", "after", "following", "due", "caused", "associated", "induced",
    "exposure", "exposures", "linked",
})

_TOKEN = re.compile(r"\w[\w\-.]*\w|\w")
_PHASE = re.compile(r"\bphase\s+[i\d]+\b", re.IGNORECASE)

# Intervention concept terms per intent; the compiler maps them to field tags
TREATMENT_CONCEPTS = ("drug therapy", "therapy", "treatment", "therapeutics")
TRIAL_CONCEPTS = ("randomized controlled trial", "clinical trial", "placebo", "rct")


def detect_intent(raw_query: str) -> Intent:
    """Detect intent flags on the raw, unstripped query."""
    q = (raw_query or "").strip()
    return Intent(
        wants_recent=bool(RECENT_PATTERN.search(q)),
        wants_treatment=bool(TREATMENT_PATTERN.search(q)),
        wants_trial=bool(TRIAL_PATTERN.search(q)),
    )


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens; keeps inner hyphens and dots ("covid-19", "pm2.5")."""
    return _TOKEN.findall((text or "").lower().replace("_", " "))


def is_qualifier(token: str) -> bool:
    return (
        token in AGE_QUALIFIERS
        or token in POPULATION_QUALIFIERS
        or token in RECENCY_QUALIFIERS
        or bool(_YEAR.match(token))
    )


def is_rare_token(token: str, raw_query: str) -> bool:
    """Low-frequency discriminating token: has a digit or is an acronym in the raw query."""
    if len(token) < 2:
        return False
    if any(ch.isdigit() for ch in token) and any(ch.isalpha() for ch in token):
        return True
    pattern = re.compile(rf"(?<!\w){re.escape(token)}(?!\w)", re.IGNORECASE)
    for match in pattern.finditer(raw_query):
        original = match.group(0)
        if original.isupper() and sum(ch.isalpha() for ch in original) >= 2:
            return True
    return False


def query_terms(raw_query: str) -> tuple[str, ...]:
    """Significant lower-case terms of the query, in order, without duplicates."""
    text = FIELD_TAG_PATTERN.sub(" ", raw_query or "")
    terms = [
        t for t in tokenize(text)
        if len(t) > 2 and t not in STOP_WORDS and not is_qualifier(t)
    ]
    return _unique(terms)


def _unique(items: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        term = item.strip().lower()
        if term and term not in seen:
            seen.add(term)
            out.append(term)
    return tuple(out)


def _content_span(tokens: list[str]) -> list[str]:
    """Trim leading/trailing stop words; inner stop words stay ("quality of life")."""
    start, end = 0, len(tokens)
    while start < end and tokens[start] in STOP_WORDS:
        start += 1
    while end > start and tokens[end - 1] in STOP_WORDS:
        end -= 1
    return tokens[start:end]


class ConceptExtractor:
    """
    Extract intent and concept groups from a raw query.

    Never raises: empty or uninterpretable input yields an empty ConceptSet
    and default Intent, which the engine treats as an unscored pass-through.
    """

    def __init__(self, terminology: TerminologyService) -> None:
        self._terminology = terminology

    def extract(self, raw_query: str) -> tuple[Intent, ConceptSet]:
        raw = (raw_query or "").strip()
        if not raw:
            return Intent(), ConceptSet()

        intent = detect_intent(raw)
        terms = query_terms(raw)

        if FIELD_TAG_PATTERN.search(raw):
            logger.debug(f"Field-tagged query passed through: {raw!r}")
            return intent, ConceptSet(raw_query=raw, has_field_tags=True, query_terms=terms)
        if IDENTIFIER_PATTERN.match(raw):
            logger.debug(f"Identifier lookup passed through: {raw!r}")
            return intent, ConceptSet(raw_query=raw, is_identifier_lookup=True, query_terms=terms)

        try:
            return intent, self._build_concepts(raw, intent, terms)
        except Exception:
            logger.exception(f"Concept extraction failed for {raw!r}; passing query through")
            return intent, ConceptSet(raw_query=raw, query_terms=terms)

    # -------------------------------------------------------------------------

    def _build_concepts(self, raw: str, intent: Intent, terms: tuple[str, ...]) -> ConceptSet:
        qualifiers: list[str] = []
        kept: list[str] = []
        for token in tokenize(_PHASE.sub(" ", raw)):
            if is_qualifier(token):
                qualifiers.append(token)
            elif token not in INTENT_WORDS:
                kept.append(token)
        cleaned = " ".join(kept)

        primary, secondary = self._split_on_connector(cleaned)
        core_tokens = _content_span(primary.split())
        modifier_tokens = _content_span(secondary.split())
        if not core_tokens:
            # "and mold" style leftovers: treat everything as one topic
            core_tokens, modifier_tokens = _content_span(modifier_tokens), []

        rare = [
            t for t in modifier_tokens
            if t not in STOP_WORDS and is_rare_token(t, raw)
        ]
        core_concepts, core_search = self._concept_group(core_tokens)
        non_rare_modifier = [t for t in modifier_tokens if t not in rare]
        if any(t not in STOP_WORDS for t in non_rare_modifier):
            modifier_concepts, modifier_search = self._concept_group(modifier_tokens, exclude=rare)
        else:
            modifier_concepts, modifier_search = (), ()

        intervention: list[str] = []
        if intent.wants_treatment:
            intervention.extend(TREATMENT_CONCEPTS)
        if intent.wants_trial:
            intervention.extend(TRIAL_CONCEPTS)

        concepts = ConceptSet(
            core_concepts=core_concepts,
            modifier_concepts=modifier_concepts,
            rare_concepts=_unique(rare),
            intervention_concepts=_unique(intervention),
            core_search_terms=core_search,
            modifier_search_terms=modifier_search,
            qualifiers=_unique(qualifiers),
            query_terms=terms,
            raw_query=raw,
        )
        logger.debug(
            f"Concepts for {raw!r}: core={concepts.core_concepts} modifier={concepts.modifier_concepts} "
            f"rare={concepts.rare_concepts} intervention={bool(concepts.intervention_concepts)}"
        )
        return concepts

    @staticmethod
    def _split_on_connector(text: str) -> tuple[str, str]:
        match = CONNECTOR_PATTERN.search(f" {text} ")
        if match is None:
            return text, ""
        padded = f" {text} "
        return padded[: match.start()].strip(), padded[match.end():].strip()

    def _concept_group(
        self,
        tokens: list[str],
        exclude: Iterable[str] = (),
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        """Return (match concepts, search terms) for one topic phrase."""
        if not tokens:
            return (), ()
        excluded = set(exclude)
        phrase = " ".join(tokens)
        content = [t for t in tokens if len(t) >= 2 and t not in STOP_WORDS and t not in excluded]

        phrase_expansions = self._expand(phrase)
        token_expansions: list[str] = []
        if len(content) > 1:
            for token in content:
                token_expansions.extend(self._expand(token))

        concepts = _unique([phrase, *content, *phrase_expansions, *token_expansions])
        search_terms = _unique([phrase, *phrase_expansions])
        return concepts, search_terms

    def _expand(self, term: str) -> list[str]:
        expansions = list(self._terminology.expand(term))
        mapped = self._terminology.map_to_controlled_vocabulary(term)
        if mapped and mapped.lower() != term.lower():
            expansions.append(mapped)
        return [e.lower() for e in expansions if e and e.lower() != term.lower()]
