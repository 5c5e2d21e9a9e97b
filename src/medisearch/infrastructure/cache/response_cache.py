"""
Response Cache

In-memory cache of aggregated search responses.
Uses cachetools.TTLCache for LRU eviction and TTL expiration.

Keys come from ``SearchQuery.cache_key()`` (normalized query text plus every
filter), so two queries differing only in a filter never share an entry.
Entries are stored and returned as copies; callers may mutate what they get.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cachetools import TTLCache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from medisearch.domain.entities import AggregatedSearchResponse

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0-1)."""
        total = self.total_requests
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.expirations = 0


@dataclass
class _KeyLock:
    """Per-key fetch lock and the number of callers holding or awaiting it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class ResponseCache:
    """
    TTL cache for ``AggregatedSearchResponse`` objects.

    Example:
        cache = ResponseCache(max_size=1000, ttl=1800)

        response = await cache.get_or_fetch(
            query.cache_key(),
            lambda: orchestrator.parallel_search(query),
        )
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: float = 1800.0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache[str, AggregatedSearchResponse] = TTLCache(maxsize=max_size, ttl=ttl, timer=timer)
        self._locks: dict[str, _KeyLock] = {}
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get(self, key: str) -> AggregatedSearchResponse | None:
        """Copy of the cached response flagged ``cache_hit``, or None."""
        try:
            value = self._cache[key]
        except KeyError:
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        return self._as_hit(value)

    @staticmethod
    def _as_hit(value: AggregatedSearchResponse) -> AggregatedSearchResponse:
        hit = copy.deepcopy(value)
        hit.cache_hit = True
        return hit

    def set(self, key: str, value: AggregatedSearchResponse) -> None:
        self._cache[key] = copy.deepcopy(value)

    async def get_or_fetch(
        self,
        key: str,
        fetch_func: Callable[[], Awaitable[AggregatedSearchResponse]],
        *,
        cacheable: Callable[[AggregatedSearchResponse], bool] | None = None,
    ) -> AggregatedSearchResponse:
        """
        Cache-aside lookup.

        Concurrent misses for the same key share one fetch; misses for
        different keys never wait on each other. A fetched value is stored
        only when ``cacheable`` accepts it. Fetch errors propagate and
        nothing is cached for them.
        """
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key[:80]}")
            return value

        entry = self._locks.setdefault(key, _KeyLock())
        entry.users += 1
        try:
            async with entry.lock:
                cached = self._cache.get(key)
                if cached is not None:
                    return self._as_hit(cached)
                value = await fetch_func()
                if cacheable is None or cacheable(value):
                    self.set(key, value)
                return value
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    def invalidate(self, key: str) -> bool:
        try:
            del self._cache[key]
        except KeyError:
            return False
        return True

    def clear(self) -> int:
        """Clear all entries and return how many were removed."""
        count = len(self._cache)
        self._cache.clear()
        return count

    def cleanup_expired(self) -> int:
        expired = self._cache.expire()
        self._stats.expirations += len(expired)
        return len(expired)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache
