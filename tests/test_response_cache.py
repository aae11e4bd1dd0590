"""Tests for ResponseCache."""

from __future__ import annotations

import pytest

from biomed_search.infrastructure.cache import ResponseCache


@pytest.fixture
def cache():
    return ResponseCache(max_size=3, ttl=60)


class TestResponseCache:
    async def test_get_or_fetch_caches(self, cache):
        calls = []

        async def fetch():
            calls.append(1)
            return "page"

        assert await cache.get_or_fetch("k", fetch) == "page"
        assert await cache.get_or_fetch("k", fetch) == "page"
        assert len(calls) == 1
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1
        assert cache.stats.hit_rate == 0.5

    async def test_errors_not_cached(self, cache):
        async def failing():
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", failing)
        assert "k" not in cache

    async def test_none_not_cached(self, cache):
        async def empty():
            return None

        assert await cache.get_or_fetch("k", empty) is None
        assert len(cache) == 0

    def test_get_many(self, cache):
        cache.put_many({"1": "a", "2": "b"})

        cached, missing = cache.get_many(["1", "3", "2"])

        assert cached == {"1": "a", "2": "b"}
        assert missing == ["3"]

    def test_lru_eviction(self, cache):
        for key in "abcd":
            cache.set(key, key.upper())
        assert len(cache) == 3
        assert cache.get("a") is None

    def test_clear(self, cache):
        cache.set("a", 1)
        assert cache.clear() == 1
        assert len(cache) == 0
