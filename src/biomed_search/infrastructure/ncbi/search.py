"""
PubMed Retrieval Backend - esearch + efetch via Bio.Entrez

Implements the RetrievalBackend interface:

    fetch_candidates(query, page, page_size, sort, filters) -> FetchResult

Filters are appended as PubMed field tags:
    date range  ->  AND 2020/01/01:3000/12/31[dp]
    location    ->  AND "Boston"[ad]
Status / phase filters only apply to trial registries and are ignored here.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from Bio import Entrez
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from biomed_search.domain.entities import (
    Candidate,
    CandidateKind,
    FetchResult,
    SearchFilters,
    SortMode,
)
from biomed_search.infrastructure.cache import SEARCH_CACHE_TTL, ResponseCache

from .base import EntrezBase, is_retryable_ncbi, map_entrez_error

logger = logging.getLogger(__name__)

# Retry settings for transient NCBI errors
MAX_RETRIES = 3
RETRY_DELAY = 1  # seconds

PUBMED_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"

SORT_PARAMS = {
    SortMode.RELEVANCE: "relevance",
    SortMode.DATE: "pub_date",
}


def build_filtered_query(query: str, filters: SearchFilters | None) -> str:
    """Append date-range and location filters as PubMed field tags."""
    if filters is None or filters.is_empty:
        return query
    clauses = [f"({query})"]
    if filters.date_from or filters.date_to:
        start = filters.date_from or "1900/01/01"
        end = filters.date_to or "3000/12/31"
        clauses.append(f"{start}:{end}[dp]")
    if filters.location:
        location = filters.location.replace('"', "").strip()
        if location:
            clauses.append(f'"{location}"[ad]')
    if filters.status or filters.phase:
        logger.debug("Status/phase filters are not applicable to PubMed; ignored")
    return " AND ".join(clauses)


class PubMedBackend(EntrezBase):
    """
    PubMed candidate retrieval.

    Example:
        backend = PubMedBackend(email="me@example.org")
        result = await backend.fetch_candidates("asthma[tiab]", page=1, page_size=100,
                                                sort=SortMode.RELEVANCE, filters=SearchFilters())
    """

    dialect = "pubmed"

    def __init__(
        self,
        email: str = "biomed-search@example.com",
        api_key: str | None = None,
        cache: ResponseCache | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        super().__init__(email=email, api_key=api_key)
        self._cache = cache or ResponseCache(max_size=256, ttl=SEARCH_CACHE_TTL)
        self._retry_wait = retry_wait or wait_exponential(
            multiplier=RETRY_DELAY, min=RETRY_DELAY, max=RETRY_DELAY * 4
        )

    async def fetch_candidates(
        self,
        query: str,
        *,
        page: int = 1,
        page_size: int = 100,
        sort: SortMode = SortMode.RELEVANCE,
        filters: SearchFilters | None = None,
    ) -> FetchResult:
        full_query = build_filtered_query(query, filters)
        key = ("pubmed", full_query, page, page_size, sort.value)
        return await self._cache.get_or_fetch(
            key, lambda: self._fetch(full_query, page, page_size, sort)
        )

    async def _fetch(self, query: str, page: int, page_size: int, sort: SortMode) -> FetchResult:
        retstart = max(0, page - 1) * page_size
        try:
            id_list, total_count = await self._search_ids(query, page_size, retstart, SORT_PARAMS[sort])
            if not id_list:
                return FetchResult(items=(), total_count=total_count)
            papers = await self._fetch_records(id_list)
        except Exception as e:
            raise map_entrez_error(e, "search", query) from e

        by_pmid: dict[str, Candidate] = {}
        for article in papers.get("PubmedArticle", []):
            try:
                candidate = self._parse_pubmed_article(article)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unparseable PubMed record: {e}")
                continue
            by_pmid[candidate.id] = candidate

        # efetch does not guarantee esearch order
        items = tuple(by_pmid[pmid] for pmid in id_list if pmid in by_pmid)
        logger.debug(f"PubMed: {len(items)} records for {query!r} (total {total_count})")
        return FetchResult(items=items, total_count=total_count)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(MAX_RETRIES),
            wait=self._retry_wait,
            retry=retry_if_exception(is_retryable_ncbi),
            reraise=True,
        )

    async def _search_ids(self, query: str, retmax: int, retstart: int, sort: str) -> tuple[list[str], int]:
        """esearch with retry on transient errors; returns (ids, total count)."""
        async for attempt in self._retrying():
            with attempt:
                handle = await self._rate_limited_call(
                    Entrez.esearch, db="pubmed", term=query, retmax=retmax, retstart=retstart, sort=sort
                )
                try:
                    record = Entrez.read(handle)
                finally:
                    handle.close()

        warning_list = record.get("WarningList", {})
        for warn_type, warn_msgs in (warning_list or {}).items():
            if isinstance(warn_msgs, list) and warn_msgs:
                logger.warning(f"NCBI {warn_type}: {warn_msgs}")

        total_count = int(record.get("Count", 0))
        return [str(pmid) for pmid in record.get("IdList", [])], total_count

    async def _fetch_records(self, id_list: list[str]) -> Any:
        """efetch XML records with retry on transient errors."""
        async for attempt in self._retrying():
            with attempt:
                handle = await self._rate_limited_call(
                    Entrez.efetch, db="pubmed", id=",".join(id_list), retmode="xml"
                )
                try:
                    papers = Entrez.read(handle)
                finally:
                    handle.close()
        return papers

    # -------------------------------------------------------------------------
    # Record parsing
    # -------------------------------------------------------------------------

    def _parse_pubmed_article(self, article: dict) -> Candidate:
        medline_citation = article["MedlineCitation"]
        article_data = medline_citation["Article"]
        pubmed_data = article.get("PubmedData", {})

        pmid = str(medline_citation.get("PMID", ""))
        if not pmid:
            raise ValueError("record without PMID")

        authors, affiliations = self._extract_authors(article_data)
        journal = article_data.get("Journal", {})

        return Candidate(
            id=pmid,
            kind=CandidateKind.PUBLICATION,
            title=str(article_data.get("ArticleTitle", "")),
            abstract=self._extract_abstract(article_data),
            keywords=tuple(self._extract_keywords(medline_citation)),
            major_topics=tuple(self._extract_mesh_terms(medline_citation)),
            year=self._extract_year(article_data),
            journal=str(journal.get("Title", "")),
            authors=tuple(authors),
            doi=self._extract_doi(article_data, pubmed_data),
            url=PUBMED_URL.format(pmid=pmid),
            affiliations=tuple(affiliations),
        )

    def _extract_authors(self, article_data: dict) -> tuple[list[str], list[str]]:
        authors: list[str] = []
        affiliations: list[str] = []
        for author in article_data.get("AuthorList", []):
            if "LastName" in author:
                authors.append(f"{author['LastName']} {author.get('ForeName', '')}".strip())
            elif "CollectiveName" in author:
                authors.append(str(author["CollectiveName"]))
            for aff_info in author.get("AffiliationInfo", []):
                if "Affiliation" in aff_info:
                    affiliation = str(aff_info["Affiliation"])
                    if affiliation not in affiliations:
                        affiliations.append(affiliation)
        return authors, affiliations

    def _extract_abstract(self, article_data: dict) -> str:
        """Join abstract sections; structured sections become "Label: text"."""
        abstract = article_data.get("Abstract", {})
        parts = abstract.get("AbstractText", []) if abstract else []
        if isinstance(parts, str):
            return str(parts)
        sections = []
        for part in parts:
            label = getattr(part, "attributes", {}).get("Label")
            text = str(part).strip()
            if not text:
                continue
            sections.append(f"{label.title()}: {text}" if label else text)
        return " ".join(sections)

    def _extract_year(self, article_data: dict) -> int | None:
        pub_date = article_data.get("Journal", {}).get("JournalIssue", {}).get("PubDate", {})
        year = str(pub_date.get("Year", ""))
        if not year and "MedlineDate" in pub_date:
            year_match = re.search(r"(\d{4})", str(pub_date["MedlineDate"]))
            if year_match:
                year = year_match.group(1)
        if not year:
            article_dates = article_data.get("ArticleDate", [])
            if article_dates:
                year = str(article_dates[0].get("Year", ""))
        return int(year) if year.isdigit() else None

    def _extract_doi(self, article_data: dict, pubmed_data: dict) -> str:
        for aid in pubmed_data.get("ArticleIdList", []):
            if getattr(aid, "attributes", {}).get("IdType") == "doi":
                return str(aid)
        for eloc in article_data.get("ELocationID", []):
            if getattr(eloc, "attributes", {}).get("EIdType") == "doi":
                return str(eloc)
        return ""

    def _extract_keywords(self, medline_citation: dict) -> list[str]:
        keywords = []
        for kw_list in medline_citation.get("KeywordList", []):
            keywords.extend(str(kw) for kw in kw_list)
        return keywords

    def _extract_mesh_terms(self, medline_citation: dict) -> list[str]:
        mesh_terms = []
        for mesh in medline_citation.get("MeshHeadingList", []):
            if "DescriptorName" in mesh:
                mesh_terms.append(str(mesh["DescriptorName"]))
        return mesh_terms
