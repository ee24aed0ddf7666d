"""In-memory cache provider using cachetools.TLRUCache.

Single-process backend for development and tests.  Unlike a plain
``TTLCache`` it honours a per-item TTL, which the cache-aside layer relies
on for its TTL tiers (in-flight acknowledgements expire long before
completed analyses).
"""

from __future__ import annotations

import math
import time
from typing import Any, NamedTuple

import structlog
from cachetools import TLRUCache

from studylens.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class _Entry(NamedTuple):
    value: Any
    ttl: int | None


def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
    if entry.ttl is None:
        return math.inf
    return now + entry.ttl


class MemoryCacheProvider(ICacheProvider):
    """In-memory TLRU cache backed by ``cachetools.TLRUCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Default time-to-live in seconds when :meth:`set` is called
        without one.
    timer:
        Clock used for expiry; injectable so tests can advance time.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: int | None = 3600,
        timer=time.monotonic,
    ) -> None:
        self._default_ttl = ttl
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=max_size, ttu=_time_to_use, timer=timer
        )

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """Retrieve the cached value for *key*, or ``None`` if missing/expired."""
        entry = self._cache.get(key)
        if entry is not None:
            logger.debug("cache_hit", key=key)
            return entry.value
        logger.debug("cache_miss", key=key)
        return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store *value* under *key* for *ttl* seconds (default TTL when omitted)."""
        effective_ttl = ttl if ttl is not None else self._default_ttl
        if effective_ttl is not None and effective_ttl <= 0:
            self._cache.pop(key, None)
            return False
        self._cache[key] = _Entry(value, effective_ttl)
        logger.debug("cache_set", key=key, ttl=effective_ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Remove *key* from the cache (no-op if absent)."""
        removed = self._cache.pop(key, None) is not None
        logger.debug("cache_delete", key=key, removed=removed)
        return removed

    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not expired."""
        return key in self._cache

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._cache.clear()
