"""
Tests for RelevanceScorer and the whole-word matching helpers it relies on.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from biomed_search.application.search.concept_extractor import ConceptExtractor
from biomed_search.application.search.relevance_scorer import (
    RelevanceScorer,
    coverage_relevance,
    recency_weight,
)
from biomed_search.application.search.text_matching import contains_term, count_term, exposure_level
from biomed_search.domain.entities import ExposureMatch

WEAK_ABSTRACT = (
    "Participants completed daily diaries describing headache frequency, sleep, diet, "
    "caffeine intake and weather conditions over twelve months. "
    "One participant reported visible mold in the home."
)
MARKER_ABSTRACT = ("Headaches are common. " * 10) + "Objective: to assess whether mold triggers attacks."


@pytest.fixture
def scorer(reference_year):
    return RelevanceScorer(reference_year=reference_year)


@pytest.fixture
def extract(terminology):
    extractor = ConceptExtractor(terminology)
    return extractor.extract


# =============================================================================
# Whole-word Matching
# =============================================================================


class TestTextMatching:
    def test_whole_word_only(self):
        assert contains_term("Asthma in adults", "asthma")
        assert not contains_term("Asthmatic adults", "asthma")

    def test_hyphen_and_dot_terms(self):
        assert contains_term("Outcomes of COVID-19 infection", "covid-19")
        assert contains_term("PM2.5 levels", "pm2.5")
        assert not contains_term("COVID-190", "covid-19")

    def test_flexible_internal_whitespace(self):
        assert contains_term("mold\n toxicity", "mold toxicity")

    def test_count_term(self):
        assert count_term("Mold, mold and more MOLD.", "mold") == 3

    def test_exposure_level_section_marker(self, make_candidate):
        candidate = make_candidate(title="Migraine triggers", abstract=MARKER_ABSTRACT)
        assert exposure_level(candidate, ["mold"]) is ExposureMatch.STRONG

    def test_exposure_level_repeated_mention(self, make_candidate):
        abstract = ("Headaches are common. " * 10) + "Mold was sampled. Mold counts were high."
        candidate = make_candidate(abstract=abstract)
        assert exposure_level(candidate, ["mold"]) is ExposureMatch.STRONG

    def test_exposure_level_lead_mention(self, make_candidate):
        abstract = "Mold is common indoors. " + ("Headaches were recorded daily. " * 10)
        candidate = make_candidate(abstract=abstract)
        assert exposure_level(candidate, ["mold"]) is ExposureMatch.STRONG

    def test_exposure_level_weak_and_none(self, make_candidate):
        weak = make_candidate(title="Migraine diaries", abstract=WEAK_ABSTRACT)
        none = make_candidate(title="Migraine diaries", abstract="Weather changes.")
        assert exposure_level(weak, ["mold"]) is ExposureMatch.WEAK
        assert exposure_level(none, ["mold"]) is ExposureMatch.NONE


# =============================================================================
# Recency and Coverage Tiers
# =============================================================================


class TestRecencyWeight:
    @pytest.mark.parametrize(
        "year,expected",
        [(2025, 1.0), (2023, 1.0), (2021, 0.7), (2016, 0.4), (2000, 0.15), (None, 0.2), (0, 0.2)],
    )
    def test_steps(self, year, expected):
        assert recency_weight(year, 2025) == expected


class TestCoverageRelevance:
    def test_all_significant(self):
        assert coverage_relevance(3, 3, 3) == pytest.approx(1.0)

    def test_sixty_percent_significant(self):
        assert coverage_relevance(5, 3, 5) == pytest.approx(0.85)

    def test_forty_percent_significant(self):
        assert coverage_relevance(5, 2, 5) == pytest.approx(0.75)

    def test_some_significant(self):
        assert 0.5 < coverage_relevance(5, 1, 5) < 0.7

    def test_none_significant(self):
        assert coverage_relevance(3, 0, 3) == pytest.approx(0.3)

    def test_partial_coverage_below_half(self):
        assert coverage_relevance(2, 2, 3) == pytest.approx(1 / 3)
        assert coverage_relevance(9, 9, 10) < 0.5

    def test_no_terms(self):
        assert coverage_relevance(0, 0, 0) == 0.0


# =============================================================================
# Relevance Scoring
# =============================================================================


class TestRelevanceScorer:
    def test_title_match_scores_high(self, scorer, extract, make_candidate):
        """Query "Diabetes": a title hit scores at least 0.85."""
        intent, concepts = extract("Diabetes")
        candidate = make_candidate(title="Diabetes outcomes in rural clinics", abstract="We studied outcomes.")

        signals = scorer.score(candidate, concepts, intent)

        assert signals.query_relevance_score >= 0.85
        assert signals.exposure_match_level is None

    def test_all_terms_in_title(self, scorer, extract, make_candidate):
        intent, concepts = extract("diabetes insulin resistance")
        candidate = make_candidate(title="Insulin resistance and diabetes")

        signals = scorer.score(candidate, concepts, intent)

        assert not signals.exact_phrase
        assert signals.query_relevance_score == pytest.approx(1.0)

    def test_abstract_only_match_is_likely_false_positive(self, scorer, extract, make_candidate):
        intent, concepts = extract("diabetes insulin resistance")
        candidate = make_candidate(
            title="Metabolic outcomes",
            abstract="Diabetes and insulin resistance were common.",
        )

        signals = scorer.score(candidate, concepts, intent)

        assert signals.query_relevance_score == pytest.approx(0.3)
        assert signals.field_weighted_score == pytest.approx(0.15)

    def test_exact_phrase_overrides(self, scorer, extract, make_candidate):
        intent, concepts = extract("mold toxicity")
        candidate = make_candidate(title="Indoor air", abstract="Cases of mold  toxicity were reviewed.", year=None)

        signals = scorer.score(candidate, concepts, intent)

        assert signals.exact_phrase
        assert signals.query_relevance_score == 1.0

    def test_cross_link_bonus(self, scorer, extract, make_candidate):
        intent, concepts = extract("diabetes insulin")
        plain = make_candidate(title="Diabetes cohort", abstract="Insulin dosing.", year=None)
        linked = make_candidate(title="Diabetes cohort", abstract="Insulin dosing in NCT01234567.", year=None)

        base = scorer.score(plain, concepts, intent)
        bonus = scorer.score(linked, concepts, intent)

        assert base.query_relevance_score == pytest.approx(0.81)
        assert bonus.has_cross_link
        assert bonus.query_relevance_score - base.query_relevance_score == pytest.approx(0.05)

    def test_scores_are_deterministic(self, scorer, extract, make_candidate):
        intent, concepts = extract("migraine and exposure to mold")
        candidate = make_candidate(title="Migraine and mold", abstract=WEAK_ABSTRACT)
        assert scorer.score(candidate, concepts, intent) == scorer.score(candidate, concepts, intent)


class TestExposureAdjustment:
    def test_no_exposure_zeroes_relevance(self, scorer, extract, make_candidate):
        intent, concepts = extract("migraine and exposure to mold")
        candidate = make_candidate(title="Migraine triggers", abstract="Weather changes.")

        signals = scorer.score(candidate, concepts, intent)

        assert signals.exposure_match_level is ExposureMatch.NONE
        assert signals.query_relevance_score == 0.0

    def test_weak_exposure_halves_relevance(self, scorer, extract, make_candidate):
        intent, concepts = extract("migraine and exposure to mold")
        candidate = make_candidate(title="Migraine in office workers", abstract=WEAK_ABSTRACT, year=2024)

        signals = scorer.score(candidate, concepts, intent)

        assert signals.exposure_match_level is ExposureMatch.WEAK
        # (0.80 coverage + 0.05 recency bonus) / 2
        assert signals.query_relevance_score == pytest.approx(0.425)

    def test_strong_exposure_in_title(self, scorer, extract, make_candidate):
        intent, concepts = extract("migraine and exposure to mold")
        candidate = make_candidate(title="Mold exposure and migraine")

        signals = scorer.score(candidate, concepts, intent)

        assert signals.exposure_match_level is ExposureMatch.STRONG
        assert signals.query_relevance_score == pytest.approx(1.0)

    def test_rare_term_in_title_adds_bonus(self, scorer, extract, make_candidate):
        intent, concepts = extract("influenza with H5N1")
        in_title = make_candidate(title="H5N1 influenza in poultry workers", year=None)
        in_abstract = make_candidate(
            title="Influenza in poultry workers",
            abstract="H5N1 was detected in two farms. H5N1 sequencing followed.",
            year=None,
        )

        title_score = scorer.score(in_title, concepts, intent).query_relevance_score
        abstract_score = scorer.score(in_abstract, concepts, intent).query_relevance_score

        assert title_score > abstract_score


class TestScoreBounds:
    @pytest.mark.parametrize(
        "query",
        ["Diabetes", "migraine and exposure to mold", "lung cancer and PFAS exposure", "latest treatment for asthma"],
    )
    def test_all_signals_within_unit_interval(self, scorer, extract, make_candidate, query):
        intent, concepts = extract(query)
        candidates = [
            make_candidate(title="PFAS and lung cancer in NCT01234567", keywords=["PFAS"], year=2025),
            make_candidate(title="Diabetes", abstract="diabetes " * 50, year=1950),
            make_candidate(title="", abstract="", year=None),
            make_candidate(title="Migraine and mold", abstract=MARKER_ABSTRACT, major_topics=["Asthma"]),
        ]
        for candidate in candidates:
            s = scorer.score(candidate, concepts, intent)
            for value in (s.query_relevance_score, s.field_weighted_score, s.recency_weight):
                assert 0.0 <= value <= 1.0

    def test_scoring_error_degrades_to_defaults(self, scorer, extract, make_candidate):
        intent, concepts = extract("asthma")
        with patch.object(scorer, "_score", side_effect=ValueError("bad record")):
            signals = scorer.score(make_candidate(title="Asthma"), concepts, intent)

        assert signals.query_relevance_score == 0.0
        assert signals.recency_weight == 0.2
