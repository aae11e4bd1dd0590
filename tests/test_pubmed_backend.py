"""
Tests for PubMedBackend - Entrez calls, record parsing and error mapping.

Entrez is patched at the module level; no network access.
"""

from __future__ import annotations

import urllib.error
from unittest.mock import MagicMock, patch

import pytest
from tenacity import wait_none

from biomed_search.domain.entities import CandidateKind, SearchFilters, SortMode
from biomed_search.infrastructure.ncbi import PubMedBackend, build_filtered_query, is_retryable_ncbi
from biomed_search.infrastructure.ncbi.base import map_entrez_error
from biomed_search.shared.exceptions import UpstreamFatalError, UpstreamUnavailableError

ENTREZ = "biomed_search.infrastructure.ncbi.search.Entrez"


class _Element(str):
    """Stand-in for Bio.Entrez StringElement (a str carrying XML attributes)."""

    def __new__(cls, value, attributes=None):
        obj = super().__new__(cls, value)
        obj.attributes = attributes or {}
        return obj


def _article(pmid: str, title: str = "Mold exposure and migraine") -> dict:
    return {
        "MedlineCitation": {
            "PMID": _Element(pmid),
            "Article": {
                "ArticleTitle": title,
                "Abstract": {
                    "AbstractText": [
                        _Element("Mold is common indoors.", {"Label": "BACKGROUND"}),
                        _Element("Migraine days increased.", {"Label": "RESULTS"}),
                    ]
                },
                "Journal": {"Title": "Headache", "JournalIssue": {"PubDate": {"Year": "2023"}}},
                "AuthorList": [
                    {
                        "LastName": "Smith",
                        "ForeName": "Jane",
                        "AffiliationInfo": [{"Affiliation": "University of Toronto, Toronto, Canada"}],
                    },
                    {"CollectiveName": "Headache Study Group"},
                ],
                "ELocationID": [_Element("10.1000/eloc", {"EIdType": "doi"})],
            },
            "KeywordList": [[_Element("mold"), _Element("headache")]],
            "MeshHeadingList": [
                {"DescriptorName": _Element("Migraine Disorders")},
                {"DescriptorName": _Element("Fungi")},
            ],
        },
        "PubmedData": {"ArticleIdList": [_Element(pmid, {"IdType": "pubmed"})]},
    }


@pytest.fixture
def backend():
    return PubMedBackend(email="test@example.com", retry_wait=wait_none())


@pytest.fixture
def mock_entrez():
    with patch(ENTREZ) as entrez:
        entrez.esearch.return_value = MagicMock()
        entrez.efetch.return_value = MagicMock()
        yield entrez


# =============================================================================
# Query Filters
# =============================================================================


class TestBuildFilteredQuery:
    def test_no_filters(self):
        assert build_filtered_query("asthma", None) == "asthma"
        assert build_filtered_query("asthma", SearchFilters()) == "asthma"

    def test_date_and_location(self):
        filters = SearchFilters(date_from="2020/01/01", location="Boston")
        assert build_filtered_query("a OR b", filters) == '(a OR b) AND 2020/01/01:3000/12/31[dp] AND "Boston"[ad]'

    def test_open_start_date(self):
        filters = SearchFilters(date_to="2015")
        assert build_filtered_query("asthma", filters) == "(asthma) AND 1900/01/01:2015[dp]"

    def test_trial_filters_ignored(self):
        filters = SearchFilters(status=("RECRUITING",), phase=("PHASE2",))
        assert build_filtered_query("asthma", filters) == "(asthma)"


# =============================================================================
# Fetch Candidates
# =============================================================================


class TestFetchCandidates:
    async def test_parses_records_in_search_order(self, backend, mock_entrez):
        mock_entrez.read.side_effect = [
            {"IdList": ["222", "111"], "Count": "57"},
            {"PubmedArticle": [_article("111"), _article("222", title="Second")]},
        ]

        result = await backend.fetch_candidates("mold[tiab]", page=1, page_size=100)

        assert [c.id for c in result.items] == ["222", "111"]
        assert result.total_count == 57

        candidate = result.items[1]
        assert candidate.kind is CandidateKind.PUBLICATION
        assert candidate.title == "Mold exposure and migraine"
        assert candidate.abstract == "Background: Mold is common indoors. Results: Migraine days increased."
        assert candidate.year == 2023
        assert candidate.keywords == ("mold", "headache")
        assert candidate.major_topics == ("Migraine Disorders", "Fungi")
        assert candidate.authors == ("Smith Jane", "Headache Study Group")
        assert candidate.affiliations == ("University of Toronto, Toronto, Canada",)
        assert candidate.doi == "10.1000/eloc"
        assert candidate.journal == "Headache"
        assert candidate.url == "https://pubmed.ncbi.nlm.nih.gov/111/"

    async def test_esearch_parameters(self, backend, mock_entrez):
        mock_entrez.read.return_value = {"IdList": [], "Count": "0"}

        await backend.fetch_candidates("asthma", page=3, page_size=50, sort=SortMode.DATE)

        kwargs = mock_entrez.esearch.call_args.kwargs
        assert kwargs["db"] == "pubmed"
        assert kwargs["retmax"] == 50
        assert kwargs["retstart"] == 100
        assert kwargs["sort"] == "pub_date"

    async def test_no_ids_skips_efetch(self, backend, mock_entrez):
        mock_entrez.read.return_value = {"IdList": [], "Count": "0"}

        result = await backend.fetch_candidates("nothing here", page=1, page_size=10)

        assert result.items == ()
        mock_entrez.efetch.assert_not_called()

    async def test_responses_cached(self, backend, mock_entrez):
        mock_entrez.read.return_value = {"IdList": [], "Count": "0"}

        await backend.fetch_candidates("asthma", page=1, page_size=10)
        await backend.fetch_candidates("asthma", page=1, page_size=10)

        assert mock_entrez.esearch.call_count == 1

    async def test_unparseable_record_skipped(self, backend, mock_entrez):
        mock_entrez.read.side_effect = [
            {"IdList": ["111", "222"], "Count": "2"},
            {"PubmedArticle": [_article("111"), {"MedlineCitation": {}}]},
        ]

        result = await backend.fetch_candidates("asthma", page=1, page_size=10)

        assert [c.id for c in result.items] == ["111"]

    def test_medline_date_year(self, backend):
        article = _article("1")
        article["MedlineCitation"]["Article"]["Journal"]["JournalIssue"]["PubDate"] = {"MedlineDate": "2019 Nov-Dec"}
        assert backend._parse_pubmed_article(article).year == 2019


# =============================================================================
# Error Mapping
# =============================================================================


def _http_error(code: int, reason: str = "error") -> urllib.error.HTTPError:
    return urllib.error.HTTPError("https://eutils.ncbi.nlm.nih.gov", code, reason, {}, None)


class TestErrorMapping:
    async def test_forbidden_is_fatal(self, backend, mock_entrez):
        mock_entrez.esearch.side_effect = _http_error(403, "Forbidden")

        with pytest.raises(UpstreamFatalError):
            await backend.fetch_candidates("asthma", page=1, page_size=10)
        assert mock_entrez.esearch.call_count == 1

    async def test_server_error_retried_then_unavailable(self, backend, mock_entrez):
        mock_entrez.esearch.side_effect = _http_error(503, "Service Unavailable")

        with pytest.raises(UpstreamUnavailableError):
            await backend.fetch_candidates("asthma", page=1, page_size=10)
        assert mock_entrez.esearch.call_count == 3

    async def test_transient_then_success(self, backend, mock_entrez):
        mock_entrez.esearch.side_effect = [_http_error(429, "Too Many Requests"), MagicMock()]
        mock_entrez.read.return_value = {"IdList": [], "Count": "0"}

        result = await backend.fetch_candidates("asthma", page=1, page_size=10)

        assert result.total_count == 0
        assert mock_entrez.esearch.call_count == 2

    def test_invalid_api_key_is_fatal(self):
        error = map_entrez_error(_http_error(400, "API key invalid"), "search")
        assert isinstance(error, UpstreamFatalError)

    def test_url_error_is_unavailable(self):
        error = map_entrez_error(urllib.error.URLError("connection refused"), "search")
        assert isinstance(error, UpstreamUnavailableError)

    def test_ncbi_runtime_error_is_unavailable(self):
        error = map_entrez_error(RuntimeError("Search Backend failed"), "search", "asthma")
        assert isinstance(error, UpstreamUnavailableError)
        assert error.context.input_value == "asthma"

    @pytest.mark.parametrize(
        "error,expected",
        [
            (_http_error(500), True),
            (_http_error(429), True),
            (_http_error(404), False),
            (RuntimeError("Database is not supported"), True),
            (ValueError("bad xml"), False),
        ],
    )
    def test_is_retryable(self, error, expected):
        assert is_retryable_ncbi(error) is expected
