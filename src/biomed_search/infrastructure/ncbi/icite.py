"""
iCite Module - NIH Citation Metrics Integration

Provides the citation signals consumed by the final ranker:
- citation_count: Total citations
- relative_citation_ratio (RCR): Field-normalized citation metric

API Documentation: https://icite.od.nih.gov/api
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from biomed_search.domain.entities import CandidateMetrics
from biomed_search.infrastructure.cache import METRICS_CACHE_TTL, ResponseCache
from biomed_search.infrastructure.http import BaseAPIClient
from biomed_search.shared.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)

ICITE_API_BASE = "https://icite.od.nih.gov/api/pubs"
MAX_PMIDS_PER_REQUEST = 200  # iCite API limit
ICITE_FIELDS = ("pmid", "citation_count", "relative_citation_ratio")


class ICiteMetricsBackend(BaseAPIClient):
    """
    MetricsBackend backed by iCite.

    Results are cached per PMID; only uncached PMIDs are requested. A batch
    that fails transiently is logged and skipped so that the remaining
    batches still contribute metrics.
    """

    _service_name = "iCite"

    def __init__(
        self,
        timeout: float = 30.0,
        cache: ResponseCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(base_url=ICITE_API_BASE, timeout=timeout, client=client)
        self._cache = cache or ResponseCache(max_size=5000, ttl=METRICS_CACHE_TTL)

    async def fetch_metrics(self, ids: list[str]) -> dict[str, CandidateMetrics]:
        """
        Get citation metrics for PubMed IDs.

        Args:
            ids: Candidate ids; non-numeric ids (e.g. NCT numbers) are ignored

        Returns:
            Dict mapping PMID -> CandidateMetrics for PMIDs iCite knows
        """
        pmids = list(dict.fromkeys(str(i) for i in ids if str(i).isdigit()))
        if not pmids:
            return {}

        cached, missing = self._cache.get_many(pmids)
        if not missing:
            logger.debug(f"iCite cache hit: all {len(pmids)} PMIDs cached")
            return cached
        if cached:
            logger.debug(f"iCite cache: {len(cached)} hits, {len(missing)} misses")

        results: dict[str, CandidateMetrics] = dict(cached)
        for i in range(0, len(missing), MAX_PMIDS_PER_REQUEST):
            batch = missing[i : i + MAX_PMIDS_PER_REQUEST]
            try:
                batch_results = await self._fetch_batch(batch)
            except UpstreamUnavailableError as e:
                logger.warning(f"iCite batch of {len(batch)} PMIDs failed: {e}")
                continue
            results.update(batch_results)
            self._cache.put_many(batch_results)

        return results

    async def _fetch_batch(self, pmids: list[str]) -> dict[str, CandidateMetrics]:
        data = await self._get_json(
            ICITE_API_BASE,
            params={"pmids": ",".join(pmids), "fl": ",".join(ICITE_FIELDS)},
        )
        return {pmid: metrics for pmid, metrics in map(_parse_record, data.get("data", [])) if pmid}


def _parse_record(record: dict[str, Any]) -> tuple[str, CandidateMetrics]:
    pmid = str(record.get("pmid") or record.get("_id") or "")
    try:
        citation_count = int(record.get("citation_count") or 0)
    except (TypeError, ValueError):
        citation_count = 0
    rcr = record.get("relative_citation_ratio")
    try:
        rcr = float(rcr) if rcr is not None else None
    except (TypeError, ValueError):
        rcr = None
    return pmid, CandidateMetrics(citation_count=citation_count, relative_citation_ratio=rcr)
