"""
Static Terminology Service

Bundled synonym and MeSH heading tables for the most common lay / clinical
terms. Pure and synchronous: no network access, safe to call per token.

Example:
    >>> terminology = StaticTerminologyService()
    >>> terminology.expand("heart attack")
    ['myocardial infarction']
    >>> terminology.map_to_controlled_vocabulary("heart attack")
    'Myocardial Infarction'
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


# Lay / abbreviated term -> clinical synonyms
SYNONYMS: dict[str, tuple[str, ...]] = {
    "heart attack": ("myocardial infarction",),
    "mi": ("myocardial infarction",),
    "stroke": ("cerebrovascular accident",),
    "high blood pressure": ("hypertension",),
    "cancer": ("neoplasm", "tumor"),
    "tumour": ("tumor",),
    "breast cancer": ("breast neoplasms", "breast carcinoma"),
    "lung cancer": ("lung neoplasms", "lung carcinoma"),
    "diabetes": ("diabetes mellitus",),
    "type 2 diabetes": ("diabetes mellitus type 2", "t2dm"),
    "t2dm": ("type 2 diabetes",),
    "copd": ("chronic obstructive pulmonary disease",),
    "alzheimer": ("alzheimer disease",),
    "alzheimers": ("alzheimer disease",),
    "parkinson": ("parkinson disease",),
    "ms": ("multiple sclerosis",),
    "adhd": ("attention deficit hyperactivity disorder",),
    "ptsd": ("post-traumatic stress disorder",),
    "kidney disease": ("renal insufficiency",),
    "ckd": ("chronic kidney disease",),
    "pfas": ("perfluoroalkyl substances", "polyfluoroalkyl substances"),
    "microplastics": ("microplastic",),
    "covid": ("covid-19", "sars-cov-2"),
    "covid-19": ("sars-cov-2",),
    "flu": ("influenza",),
    "obesity": ("overweight",),
    "depression": ("depressive disorder",),
    "asthma": ("bronchial asthma",),
    "air pollution": ("particulate matter",),
    "smoking": ("tobacco use",),
}

# Term -> MeSH descriptor
MESH_HEADINGS: dict[str, str] = {
    "heart attack": "Myocardial Infarction",
    "myocardial infarction": "Myocardial Infarction",
    "stroke": "Stroke",
    "high blood pressure": "Hypertension",
    "hypertension": "Hypertension",
    "cancer": "Neoplasms",
    "breast cancer": "Breast Neoplasms",
    "lung cancer": "Lung Neoplasms",
    "diabetes": "Diabetes Mellitus",
    "type 2 diabetes": "Diabetes Mellitus, Type 2",
    "copd": "Pulmonary Disease, Chronic Obstructive",
    "alzheimer": "Alzheimer Disease",
    "alzheimers": "Alzheimer Disease",
    "parkinson": "Parkinson Disease",
    "multiple sclerosis": "Multiple Sclerosis",
    "adhd": "Attention Deficit Disorder with Hyperactivity",
    "ptsd": "Stress Disorders, Post-Traumatic",
    "kidney disease": "Kidney Diseases",
    "ckd": "Renal Insufficiency, Chronic",
    "pfas": "Fluorocarbons",
    "microplastics": "Microplastics",
    "covid": "COVID-19",
    "covid-19": "COVID-19",
    "flu": "Influenza, Human",
    "influenza": "Influenza, Human",
    "obesity": "Obesity",
    "depression": "Depression",
    "asthma": "Asthma",
    "air pollution": "Air Pollution",
    "smoking": "Tobacco Smoking",
    "autism": "Autism Spectrum Disorder",
    "migraine": "Migraine Disorders",
    "epilepsy": "Epilepsy",
    "sepsis": "Sepsis",
}


class StaticTerminologyService:
    """Dictionary-backed synonym expansion and MeSH mapping."""

    def __init__(
        self,
        synonyms: Mapping[str, tuple[str, ...]] | None = None,
        mesh_headings: Mapping[str, str] | None = None,
    ) -> None:
        self._synonyms = {k.lower(): tuple(v) for k, v in (synonyms or SYNONYMS).items()}
        self._mesh = {k.lower(): v for k, v in (mesh_headings or MESH_HEADINGS).items()}

    def expand(self, term: str) -> list[str]:
        """Return synonyms for ``term`` (lower-cased), excluding the term itself."""
        key = (term or "").strip().lower()
        if not key:
            return []
        expansions = [s.lower() for s in self._synonyms.get(key, ()) if s.lower() != key]
        if expansions:
            logger.debug(f"Expanded '{key}' -> {expansions}")
        return expansions

    def map_to_controlled_vocabulary(self, term: str) -> str:
        """Return the MeSH heading for ``term``, or the term unchanged."""
        key = (term or "").strip().lower()
        return self._mesh.get(key, term)
