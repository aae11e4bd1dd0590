"""
Async helpers shared by the upstream adapters and the retrieval coordinator.

- ``RateLimiter``: token bucket shared by all Entrez calls of one backend
- ``timeout_with_fallback``: bound an upstream call, degrading on timeout
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# NCBI E-utilities allowance (requests per second)
NCBI_RATE = 3.0
NCBI_RATE_WITH_KEY = 10.0


# =============================================================================
# Rate Limiting
# =============================================================================

@dataclass
class RateLimiter:
    """
    Token bucket: ``rate`` calls per ``per`` seconds, bursting up to ``rate``.

    Example:
        limiter = RateLimiter.for_ncbi(api_key)
        async with limiter:
            handle = Entrez.esearch(...)
    """
    rate: float = NCBI_RATE
    per: float = 1.0
    _tokens: float = field(init=False)
    _refilled_at: float = field(init=False)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        self._tokens = self.rate
        self._refilled_at = time.monotonic()

    @classmethod
    def for_ncbi(cls, api_key: str | None) -> RateLimiter:
        return cls(rate=NCBI_RATE_WITH_KEY if api_key else NCBI_RATE)

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.rate, self._tokens + (now - self._refilled_at) * self.rate / self.per)
        self._refilled_at = now

    async def acquire(self) -> float:
        """Take one token; returns the seconds spent waiting for it."""
        async with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0
            delay = (1 - self._tokens) * self.per / self.rate
            logger.debug(f"Rate limited, sleeping {delay:.2f}s")
            await asyncio.sleep(delay)
            self._refill()
            self._tokens = max(0.0, self._tokens - 1)
            return delay

    async def __aenter__(self) -> RateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        return None


# =============================================================================
# Bounded Calls
# =============================================================================

async def timeout_with_fallback(
    coro: Awaitable[T],
    timeout: float,
    fallback: T | Callable[[], T],
    *,
    label: str = "upstream call",
) -> T:
    """
    Await ``coro`` for at most ``timeout`` seconds.

    On timeout the call is cancelled, a warning is logged under ``label`` and
    ``fallback`` is returned (called first when it is callable). Any other
    exception propagates unchanged.
    """
    try:
        async with asyncio.timeout(timeout):
            return await coro
    except TimeoutError:
        logger.warning(f"{label} timed out after {timeout:.1f}s")
        if callable(fallback):
            return fallback()
        return fallback
