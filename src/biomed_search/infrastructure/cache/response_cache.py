"""
Response Cache

In-memory TTL cache for backend responses (search pages, citation metrics).
Uses cachetools.TTLCache for LRU eviction and TTL expiration.

Unlike a plain memo, fetch errors are never cached and always propagate so
that callers can classify them (transient vs. fatal).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, TypeVar

from cachetools import TTLCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_CACHE_TTL = 300.0  # 5 minutes for search responses
METRICS_CACHE_TTL = 1800.0  # 30 minutes for citation metrics


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0-1)."""
        total = self.total_requests
        return self.hits / total if total > 0 else 0.0


class ResponseCache:
    """
    Async-friendly TTL cache.

    Example:
        cache = ResponseCache(max_size=256, ttl=300)
        page = await cache.get_or_fetch(("asthma", 1), lambda: backend.fetch(...))
    """

    def __init__(self, max_size: int = 256, ttl: float = SEARCH_CACHE_TTL) -> None:
        self._cache: TTLCache[Hashable, Any] = TTLCache(maxsize=max_size, ttl=ttl)
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get(self, key: Hashable) -> Any | None:
        try:
            value = self._cache[key]
            self._stats.hits += 1
            return value
        except KeyError:
            self._stats.misses += 1
            return None

    def set(self, key: Hashable, value: Any) -> None:
        self._cache[key] = value

    def get_many(self, keys: list[str]) -> tuple[dict[str, Any], list[str]]:
        """Return (cached, missing) for a list of keys."""
        cached: dict[str, Any] = {}
        missing: list[str] = []
        for key in keys:
            value = self.get(key)
            if value is None:
                missing.append(key)
            else:
                cached[key] = value
        return cached, missing

    def put_many(self, values: dict[str, Any]) -> None:
        for key, value in values.items():
            self._cache[key] = value

    async def get_or_fetch(self, key: Hashable, fetch_func: Callable[[], Awaitable[T]]) -> T:
        """Cache-aside lookup; the fetch runs outside the lock, errors propagate."""
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key!r}")
            return value

        result = await fetch_func()
        if result is not None:
            async with self._lock:
                self._cache[key] = result
        return result

    def clear(self) -> int:
        count = len(self._cache)
        self._cache.clear()
        return count

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._cache
