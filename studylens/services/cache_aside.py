"""JSON cache-aside wrapper around any :class:`ICacheProvider`.

The cache is never authoritative, so every method here swallows every
exception: a broken cache backend degrades to "always miss" and never
changes the result of the operation it fronts.

Typical read path::

    cached = await cache.get_json(key)
    if cached is None:
        value = await load_from_store()
        await cache.set_json(key, value, ttl)

Reads that decode into models go through :meth:`CacheAside.get_validated`,
which turns an undecodable entry into a miss.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable, TypeVar

import structlog

from studylens.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")


class CacheAside:
    """JSON serialisation and failure isolation for the cache layer.

    Parameters
    ----------
    provider:
        Backing cache.  ``None`` disables caching entirely (every read is a
        miss, every write a no-op).
    ttl_tiers:
        Named TTLs in seconds, from the ``cache.ttl`` section of
        ``config/config.yaml``.
    """

    def __init__(
        self,
        provider: ICacheProvider | None,
        ttl_tiers: dict[str, int] | None = None,
    ) -> None:
        self._provider = provider
        self._ttl_tiers = dict(ttl_tiers or {})

    def ttl(self, tier: str, default: int = 300) -> int:
        """Look up a named TTL tier."""
        return int(self._ttl_tiers.get(tier, default))

    async def get_json(self, key: str) -> Any | None:
        """Return the decoded value under *key*, or ``None`` on miss or any error."""
        if self._provider is None:
            return None
        try:
            raw = await self._provider.get(key)
            if raw is None:
                return None
            if isinstance(raw, (bytes, bytearray)):
                raw = raw.decode("utf-8")
            if isinstance(raw, str):
                return json.loads(raw)
            return raw
        except Exception as exc:
            logger.warning("cache_read_failed", key=key, error=str(exc))
            return None

    async def get_validated(self, key: str, parse: Callable[[Any], _T]) -> _T | None:
        """Return ``parse(value)`` for the entry under *key*, or ``None``.

        An entry *parse* rejects (wrong shape, older schema) counts as a
        miss and is deleted, so the caller recomputes and rewrites it.
        """
        value = await self.get_json(key)
        if value is None:
            return None
        try:
            return parse(value)
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            # pydantic.ValidationError subclasses ValueError.
            logger.warning("cache_entry_invalid", key=key, error_type=type(exc).__name__)
            await self.delete(key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Encode *value* as JSON and store it; ``False`` on any error."""
        if self._provider is None:
            return False
        try:
            payload = json.dumps(value, default=str)
            return bool(await self._provider.set(key, payload, ttl))
        except Exception as exc:
            logger.warning("cache_write_failed", key=key, error=str(exc))
            return False

    async def delete(self, key: str) -> bool:
        if self._provider is None:
            return False
        try:
            return bool(await self._provider.delete(key))
        except Exception as exc:
            logger.warning("cache_delete_failed", key=key, error=str(exc))
            return False

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Delete each key individually; returns how many were removed."""
        removed = 0
        for key in keys:
            if await self.delete(key):
                removed += 1
        return removed

    async def exists(self, key: str) -> bool:
        if self._provider is None:
            return False
        try:
            return bool(await self._provider.exists(key))
        except Exception as exc:
            logger.warning("cache_exists_failed", key=key, error=str(exc))
            return False

    async def ping(self) -> bool:
        if self._provider is None:
            return False
        try:
            return bool(await self._provider.ping())
        except Exception as exc:
            logger.warning("cache_ping_failed", error=str(exc))
            return False

    async def close(self) -> None:
        if self._provider is None:
            return
        try:
            await self._provider.close()
        except Exception as exc:
            logger.warning("cache_close_failed", error=str(exc))
