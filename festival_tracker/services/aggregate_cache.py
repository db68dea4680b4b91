"""
Aggregate Cache

TTL-based read-through cache in front of the statistics queries.

Cache Keys
----------
    Keys are deterministic signatures of the query: kind plus parameters,
    joined with ':' (see cache_key). For example:

        cache_key("daily_rollup", date(2026, 10, 13), date(2026, 10, 19))
        -> "daily_rollup:2026-10-13:2026-10-19"

Cache Invalidation
------------------
    Entries expire after their TTL. invalidate_all() drops every entry at
    once under the lock, so the dashboard never mixes refreshed totals with
    a stale per-ID breakdown.

    Each purge bumps a generation counter. A get_or_compute() that started
    before the purge still returns its result to its caller but does not
    store it, so a refresh cannot be undone by a slow in-flight query.

Thread Safety
-------------
    All reads and writes go through one threading.Lock. Computations run
    outside the lock.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class _Miss:
    """Sentinel returned by get() when a key is absent or expired."""

    def __repr__(self) -> str:
        return "CACHE_MISS"


CACHE_MISS = _Miss()


def cache_key(kind: str, *params: Any) -> str:
    """Build the cache key for a query kind and its parameters."""
    parts = [kind]
    for param in params:
        if isinstance(param, date):
            parts.append(param.isoformat())
        else:
            parts.append(str(param))
    return ":".join(parts)


@dataclass
class CacheEntry:
    """A cached value with its freshness deadline."""
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class AggregateCache:
    """
    In-process TTL cache for computed statistics.

    Example:
        >>> cache = AggregateCache()
        >>> cache.put("total_calls", 42, ttl=3600)
        >>> cache.get("total_calls")
        42
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self._clock = clock

    def get(self, key: str) -> Any:
        """Return the cached value, or CACHE_MISS if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return CACHE_MISS
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return CACHE_MISS
            return entry.value

    def put(self, key: str, value: Any, ttl: float) -> None:
        """Store a value for ttl seconds."""
        with self._lock:
            self._store(key, value, ttl)

    def invalidate(self, key: str) -> None:
        """Drop one key."""
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        """Drop every key atomically."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.info(f"Aggregate cache purged ({count} entries)")

    async def get_or_compute(
        self,
        key: str,
        ttl: float,
        compute: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Read-through lookup.

        Args:
            key: Cache key (see cache_key)
            ttl: Seconds the computed value stays fresh
            compute: Coroutine factory producing the value on a miss

        Returns:
            Cached or freshly computed value

        Exceptions raised by compute propagate and nothing is cached.
        """
        with self._lock:
            generation = self._generation
        value = self.get(key)
        if value is not CACHE_MISS:
            return value

        value = await compute()

        with self._lock:
            if generation == self._generation:
                self._store(key, value, ttl)
            else:
                logger.debug(f"Discarding result for {key} computed before a purge")
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _store(self, key: str, value: Any, ttl: float) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

