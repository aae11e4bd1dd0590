"""
Entrez Base Module - Configuration, Rate Limiting and Error Mapping

Bio.Entrez is synchronous; calls run in a worker thread behind a token
bucket (3 req/s, 10 req/s with an API key). Transport errors raised by
urllib are mapped onto the engine's upstream exceptions.
"""

from __future__ import annotations

import asyncio
import logging
import urllib.error
from collections.abc import Callable
from typing import Any

from Bio import Entrez

from biomed_search.shared.async_utils import RateLimiter
from biomed_search.shared.exceptions import (
    ErrorContext,
    UpstreamFatalError,
    UpstreamUnavailableError,
    is_retryable_error,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "PubMed"


def is_retryable_ncbi(error: BaseException) -> bool:
    """Check if an NCBI error is retryable."""
    if isinstance(error, urllib.error.HTTPError):
        return error.code == 429 or error.code >= 500
    # NCBI also reports "Search Backend failed" style errors as plain text
    return is_retryable_error(error) or "server error" in str(error).lower()


def map_entrez_error(error: BaseException, operation: str, query: str | None = None) -> Exception:
    """Translate an Entrez / urllib failure into an engine exception."""
    ctx = ErrorContext(backend=SERVICE_NAME, operation=operation, input_value=query)
    if isinstance(error, (UpstreamFatalError, UpstreamUnavailableError)):
        return error
    if isinstance(error, urllib.error.HTTPError):
        ctx = ErrorContext(backend=SERVICE_NAME, operation=operation, input_value=query, status_code=error.code)
        if error.code in (401, 403):
            return UpstreamFatalError(f"HTTP {error.code}: {error.reason}", context=ctx)
        if error.code == 400 and "api key" in str(error.reason).lower():
            return UpstreamFatalError(f"API key rejected: {error.reason}", context=ctx)
        return UpstreamUnavailableError(f"HTTP {error.code}: {error.reason}", context=ctx)
    if isinstance(error, urllib.error.URLError):
        return UpstreamUnavailableError(f"connection failed: {error.reason}", context=ctx)
    if isinstance(error, (TimeoutError, ConnectionError, OSError)):
        return UpstreamUnavailableError(f"network error: {error}", context=ctx)
    # Entrez.read raises RuntimeError for NCBI-reported errors and
    # ValueError / parser errors for truncated responses
    return UpstreamUnavailableError(f"{type(error).__name__}: {error}", context=ctx)


class EntrezBase:
    """
    Base class for Entrez API interactions.

    Attributes:
        email: Email address required by NCBI Entrez API.
        api_key: Optional NCBI API key for higher rate limits.
    """

    def __init__(self, email: str = "biomed-search@example.com", api_key: str | None = None):
        Entrez.email = email  # type: ignore[assignment]
        if api_key:
            Entrez.api_key = api_key  # type: ignore[assignment]
        # Retries are handled by tenacity around each call
        Entrez.max_tries = 1

        self._email = email
        self._api_key = api_key
        self._limiter = RateLimiter.for_ncbi(api_key)

    async def _rate_limited_call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute a blocking Entrez function with rate limiting."""
        await self._limiter.acquire()
        return await asyncio.to_thread(func, *args, **kwargs)

    @property
    def email(self) -> str:
        return self._email

    @property
    def api_key(self) -> str | None:
        return self._api_key
