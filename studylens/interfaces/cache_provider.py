"""Abstract base class for cache service providers.

Defines the contract for the key-value cache that fronts document lists,
status snapshots, stats and analysis payloads.  Implementations may use an
in-process TLRU map or Redis.  The cache is never authoritative: a miss
must be handled exactly like a cold start, and a backend failure must look
like a miss rather than an exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


# Concrete implementations: MemoryCacheProvider, RedisCacheProvider
# Located in: studylens/providers/cache/
class ICacheProvider(ABC):
    """Contract for key-value cache services.

    All operations are async to allow for network-backed stores (e.g. Redis)
    without blocking the event loop.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Retrieve the value stored under *key*.

        Parameters
        ----------
        key:
            The cache key to look up.

        Returns
        -------
        Any or None
            The cached value if present and not expired; ``None`` otherwise,
            including when the backend is unreachable.
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store *value* under *key* with an optional time-to-live.

        Parameters
        ----------
        key:
            The cache key.
        value:
            The value to store.  Network backends store strings; callers
            go through :class:`~studylens.services.cache_aside.CacheAside`
            for JSON serialisation.
        ttl:
            Time-to-live in seconds.  ``None`` means the entry does not
            expire automatically.

        Returns
        -------
        bool
            ``True`` if the value was stored.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove the entry stored under *key*.

        This is a no-op (returning ``False``) if the key does not exist.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present in the cache and not expired."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return ``True`` if the backend is reachable."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections; called once on application shutdown."""
