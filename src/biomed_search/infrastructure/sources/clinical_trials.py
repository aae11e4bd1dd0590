"""
ClinicalTrials.gov Retrieval Backend

Implements the RetrievalBackend interface over the public v2 API
(no registration required).

API Documentation: https://clinicaltrials.gov/data-api/api

Filters map onto API parameters:
    status    -> filter.overallStatus=RECRUITING,COMPLETED
    phase     -> filter.advanced=AREA[Phase](PHASE2 OR PHASE3)
    location  -> query.locn=<country>  (last part of the location string)
Date-range filters are applied to the study start date.

The API pages with opaque tokens, so page N is reached by walking N-1
token hops.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from biomed_search.domain.entities import (
    Candidate,
    CandidateKind,
    FetchResult,
    SearchFilters,
    SortMode,
)
from biomed_search.infrastructure.cache import SEARCH_CACHE_TTL, ResponseCache
from biomed_search.infrastructure.http import BaseAPIClient

logger = logging.getLogger(__name__)

# Base URL for ClinicalTrials.gov API v2
BASE_URL = "https://clinicaltrials.gov/api/v2"
DEFAULT_TIMEOUT = 15.0
MAX_PAGE_SIZE = 1000  # API maximum

STUDY_URL = "https://clinicaltrials.gov/study/{nct_id}"

SORT_PARAMS = {
    SortMode.RELEVANCE: None,
    SortMode.DATE: "StartDate:desc",
}

_YEAR = re.compile(r"(\d{4})")


def country_from_location(location: str | None) -> str | None:
    """Reduce a free-text location to its country ("Toronto, Canada" -> "Canada")."""
    if not location or not location.strip():
        return None
    location = location.strip()
    if "," in location:
        return location.rsplit(",", 1)[1].strip() or None
    return location.split()[-1]


def _normalize_phase(phase: str) -> str:
    """'Phase 2' / 'phase ii' / 'PHASE2' -> 'PHASE2'."""
    value = re.sub(r"[\s_]+", "", phase.upper())
    roman = {"IV": "4", "III": "3", "II": "2", "I": "1"}
    match = re.fullmatch(r"PHASE(IV|III|II|I)", value)
    if match:
        return f"PHASE{roman[match.group(1)]}"
    if value in ("EARLYPHASE1", "EARLY1"):
        return "EARLY_PHASE1"
    return value


def build_study_params(
    query: str,
    page_size: int,
    sort: SortMode,
    filters: SearchFilters | None,
) -> dict[str, Any]:
    params: dict[str, Any] = {
        "query.term": query,
        "pageSize": max(1, min(page_size, MAX_PAGE_SIZE)),
        "countTotal": "true",
    }
    if SORT_PARAMS.get(sort):
        params["sort"] = SORT_PARAMS[sort]
    if filters is None:
        return params

    if filters.status:
        params["filter.overallStatus"] = ",".join(s.strip().upper().replace(" ", "_") for s in filters.status)

    advanced = []
    if filters.phase:
        phases = " OR ".join(_normalize_phase(p) for p in filters.phase)
        advanced.append(f"AREA[Phase]({phases})")
    if filters.date_from or filters.date_to:
        start = (filters.date_from or "MIN").replace("/", "-")
        end = (filters.date_to or "MAX").replace("/", "-")
        advanced.append(f"AREA[StartDate]RANGE[{start},{end}]")
    if advanced:
        params["filter.advanced"] = " AND ".join(advanced)

    country = country_from_location(filters.location)
    if country:
        params["query.locn"] = country
    return params


class ClinicalTrialsBackend(BaseAPIClient):
    """Clinical trial retrieval from ClinicalTrials.gov."""

    _service_name = "ClinicalTrials.gov"
    dialect = "ctgov"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        cache: ResponseCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(base_url=BASE_URL, timeout=timeout, client=client)
        self._cache = cache or ResponseCache(max_size=256, ttl=SEARCH_CACHE_TTL)

    async def fetch_candidates(
        self,
        query: str,
        *,
        page: int = 1,
        page_size: int = 100,
        sort: SortMode = SortMode.RELEVANCE,
        filters: SearchFilters | None = None,
    ) -> FetchResult:
        params = build_study_params(query, page_size, sort, filters)
        key = ("ctgov", tuple(sorted(params.items())), page)
        return await self._cache.get_or_fetch(key, lambda: self._fetch(params, page))

    async def _fetch(self, params: dict[str, Any], page: int) -> FetchResult:
        data = await self._get_json("/studies", params=params)
        total_count = int(data.get("totalCount") or 0)

        for _ in range(max(0, page - 1)):
            token = data.get("nextPageToken")
            if not token:
                return FetchResult(items=(), total_count=total_count)
            data = await self._get_json("/studies", params={**params, "pageToken": token})

        items = []
        for study in data.get("studies", []):
            candidate = self._normalize_study(study)
            if candidate is not None:
                items.append(candidate)
        logger.debug(f"ClinicalTrials.gov: {len(items)} studies for {params['query.term']!r} (total {total_count})")
        return FetchResult(items=tuple(items), total_count=max(total_count, len(items)))

    def _normalize_study(self, study: dict) -> Candidate | None:
        """Map a v2 study record to a Candidate; records without an NCT id are dropped."""
        protocol = study.get("protocolSection", {})
        id_module = protocol.get("identificationModule", {})
        status_module = protocol.get("statusModule", {})
        design_module = protocol.get("designModule", {})
        conditions_module = protocol.get("conditionsModule", {})
        description_module = protocol.get("descriptionModule", {})
        arms_module = protocol.get("armsInterventionsModule", {})
        locations_module = protocol.get("contactsLocationsModule", {})
        eligibility_module = protocol.get("eligibilityModule", {})
        browse_module = study.get("derivedSection", {}).get("conditionBrowseModule", {})

        nct_id = id_module.get("nctId", "")
        if not nct_id:
            return None

        topics = list(conditions_module.get("conditions", []))
        for mesh in browse_module.get("meshes", []):
            term = mesh.get("term")
            if term and term not in topics:
                topics.append(term)

        locations = []
        for loc in locations_module.get("locations", []):
            parts = [loc.get("city"), loc.get("state"), loc.get("country")]
            label = ", ".join(p for p in parts if p)
            if label and label not in locations:
                locations.append(label)

        year = None
        year_match = _YEAR.search(status_module.get("startDateStruct", {}).get("date", ""))
        if year_match:
            year = int(year_match.group(1))

        interventions = [
            {"type": i.get("type", ""), "name": i.get("name", "")} for i in arms_module.get("interventions", [])
        ]

        eligibility = {
            "criteria": eligibility_module.get("eligibilityCriteria") or "Not specified",
            "gender": eligibility_module.get("sex") or "All",
            "minimum_age": eligibility_module.get("minimumAge") or "Not specified",
            "maximum_age": eligibility_module.get("maximumAge") or "Not specified",
            "healthy_volunteers": eligibility_module.get("healthyVolunteers", "Unknown"),
            "population": eligibility_module.get("studyPopulation", ""),
        }
        central_contacts = [
            {"name": c.get("name", ""), "email": c.get("email", ""), "phone": c.get("phone", "")}
            for c in locations_module.get("centralContacts", [])
        ]

        return Candidate(
            id=nct_id,
            kind=CandidateKind.TRIAL,
            title=id_module.get("officialTitle") or id_module.get("briefTitle", ""),
            abstract=description_module.get("briefSummary") or description_module.get("detailedDescription", ""),
            keywords=tuple(conditions_module.get("keywords", [])),
            major_topics=tuple(topics),
            year=year,
            url=STUDY_URL.format(nct_id=nct_id),
            status=status_module.get("overallStatus", "UNKNOWN"),
            phase=", ".join(design_module.get("phases", [])) or "N/A",
            locations=tuple(locations),
            extra={
                "interventions": interventions,
                "enrollment": design_module.get("enrollmentInfo", {}).get("count"),
                "sponsor": protocol.get("sponsorCollaboratorsModule", {}).get("leadSponsor", {}).get("name", ""),
                "eligibility": eligibility,
                "central_contacts": central_contacts,
            },
        )
