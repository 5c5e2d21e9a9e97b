"""Caching infrastructure."""

from .response_cache import CacheStats, ResponseCache

__all__ = ["CacheStats", "ResponseCache"]
