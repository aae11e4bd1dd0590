"""
Base API Client - shared httpx request pattern for JSON backends.

Provides:
- Lazy httpx.AsyncClient management
- Minimum interval between requests (rate limiting)
- Retry on 429 / 503 honouring Retry-After
- Mapping of transport failures onto engine exceptions:
    timeout, connect error, 429, 5xx      -> UpstreamUnavailableError
    401, 403, invalid URL / bad request   -> UpstreamFatalError
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from typing_extensions import Self

from biomed_search.shared.exceptions import (
    ErrorContext,
    UpstreamFatalError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({429, 502, 503, 504})
FATAL_STATUS = frozenset({401, 403})


class BaseAPIClient:
    """
    Base class for external JSON API clients.

    Subclasses set ``_service_name`` and call ``_get_json()``.

    Example:
        class MyClient(BaseAPIClient):
            _service_name = "MyAPI"

            async def get_item(self, item_id: str) -> dict:
                return await self._get_json(f"/items/{item_id}")
    """

    _service_name: str = "API"
    _MAX_RETRIES: int = 2

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        min_interval: float = 0.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._min_interval = min_interval
        self._last_request_time = 0.0
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._headers,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            )
        return self._client

    async def _rate_limit(self) -> None:
        """Enforce minimum interval between requests."""
        if self._min_interval <= 0:
            return
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)
        self._last_request_time = time.monotonic()

    def _build_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._base_url}{url}"

    def _context(self, operation: str, url: str, status: int | None = None) -> ErrorContext:
        return ErrorContext(backend=self._service_name, operation=operation, input_value=url, status_code=status)

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``url`` and decode JSON, retrying rate limits; raises engine errors."""
        full_url = self._build_url(url)

        for attempt in range(self._MAX_RETRIES + 1):
            await self._rate_limit()
            try:
                response = await self.client.get(full_url, params=params)
            except httpx.TimeoutException as e:
                raise UpstreamUnavailableError(
                    f"timeout: {e}", context=self._context("get", full_url)
                ) from e
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                raise UpstreamFatalError(
                    f"invalid request URL: {e}", context=self._context("get", full_url)
                ) from e
            except httpx.TransportError as e:
                raise UpstreamUnavailableError(
                    f"transport error: {e}", context=self._context("get", full_url)
                ) from e

            status = response.status_code
            if status in RETRYABLE_STATUS:
                if attempt < self._MAX_RETRIES:
                    retry_after = self._get_retry_after(response, attempt)
                    logger.warning(
                        f"{self._service_name}: HTTP {status}, retry {attempt + 1}/{self._MAX_RETRIES} "
                        f"in {retry_after:.1f}s"
                    )
                    await asyncio.sleep(retry_after)
                    continue
                raise UpstreamUnavailableError(
                    f"HTTP {status} after {self._MAX_RETRIES} retries",
                    context=self._context("get", full_url, status),
                )
            if status in FATAL_STATUS:
                raise UpstreamFatalError(
                    f"HTTP {status}: {response.reason_phrase}",
                    context=self._context("get", full_url, status),
                )
            if status >= 500:
                raise UpstreamUnavailableError(
                    f"HTTP {status}: {response.reason_phrase}",
                    context=self._context("get", full_url, status),
                )
            if status >= 400:
                raise UpstreamFatalError(
                    f"HTTP {status}: {response.reason_phrase}",
                    context=self._context("get", full_url, status),
                )

            try:
                return response.json()
            except ValueError as e:
                raise UpstreamUnavailableError(
                    f"invalid JSON response: {e}", context=self._context("decode", full_url, status)
                ) from e

        raise UpstreamUnavailableError("retry loop exhausted", context=self._context("get", full_url))

    @staticmethod
    def _get_retry_after(response: httpx.Response, attempt: int) -> float:
        """Extract Retry-After from response headers, with exponential backoff fallback."""
        try:
            return min(float(response.headers.get("Retry-After", 2 ** (attempt + 1))), 10.0)
        except (ValueError, TypeError):
            return float(2 ** (attempt + 1))

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
