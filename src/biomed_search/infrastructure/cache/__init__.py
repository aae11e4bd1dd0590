"""Caching layer for backend responses."""

from .response_cache import METRICS_CACHE_TTL, SEARCH_CACHE_TTL, CacheStats, ResponseCache

__all__ = ["CacheStats", "METRICS_CACHE_TTL", "ResponseCache", "SEARCH_CACHE_TTL"]
