"""Redis cache provider using ``redis.asyncio``.

The connection is opened lazily on first use and retried a bounded number
of times.  After a failed connect the provider stays down for a short
cooldown, during which every call is an immediate miss.  Every Redis error
is logged and reported as a miss (``None`` / ``False``): the cache must
never change the outcome of the operation it fronts, so nothing here raises.

Values are stored as strings.  JSON encoding of structured payloads is the
job of :class:`~studylens.services.cache_aside.CacheAside`.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from studylens.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "redis"


class RedisCacheProvider(ICacheProvider):
    """Network cache backed by a single Redis database.

    Parameters
    ----------
    url:
        Redis connection URL, e.g. ``redis://localhost:6379/0``.
    connect_attempts:
        How many times to try the initial ``PING`` before giving up.
        After giving up, the first cache call after the cooldown tries
        again from scratch.
    retry_delay:
        Seconds to wait between connection attempts.
    cooldown_seconds:
        How long calls skip Redis after a failed connect.
    socket_timeout:
        Per-operation socket timeout, kept short so a stalled Redis cannot
        stall request handling.
    client:
        Pre-built ``redis.asyncio.Redis`` instance (tests).
    clock:
        Monotonic time source (tests).
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        connect_attempts: int = 3,
        retry_delay: float = 0.5,
        cooldown_seconds: float = 5.0,
        socket_timeout: float = 2.0,
        client: aioredis.Redis | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._url = url
        self._connect_attempts = max(1, connect_attempts)
        self._retry_delay = retry_delay
        self._cooldown = max(0.0, cooldown_seconds)
        self._clock = clock
        self._unavailable_until = 0.0
        self._socket_timeout = socket_timeout
        self._client: aioredis.Redis | None = client
        self._connected = client is not None
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def _get_client(self) -> aioredis.Redis | None:
        """Return a connected client, connecting lazily; ``None`` if unreachable."""
        if self._connected and self._client is not None:
            return self._client
        if self._clock() < self._unavailable_until:
            return None

        async with self._lock:
            if self._connected and self._client is not None:
                return self._client
            if self._clock() < self._unavailable_until:
                return None

            for attempt in range(1, self._connect_attempts + 1):
                try:
                    client = self._client or aioredis.from_url(
                        self._url,
                        decode_responses=True,
                        socket_timeout=self._socket_timeout,
                        socket_connect_timeout=self._socket_timeout,
                    )
                    await client.ping()
                    self._client = client
                    self._connected = True
                    logger.info("redis_connected", attempt=attempt)
                    return client
                except (RedisError, OSError) as exc:
                    logger.warning(
                        "redis_connect_failed",
                        attempt=attempt,
                        max_attempts=self._connect_attempts,
                        error=str(exc),
                    )
                    if attempt < self._connect_attempts:
                        await asyncio.sleep(self._retry_delay)

            self._unavailable_until = self._clock() + self._cooldown
            logger.error(
                "redis_unavailable", provider=_PROVIDER_NAME, retry_in_seconds=self._cooldown
            )
            return None

    def _mark_disconnected(self, operation: str, key: str, exc: Exception) -> None:
        self._connected = False
        logger.warning(
            "redis_operation_failed",
            operation=operation,
            key=key,
            error=str(exc),
        )

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        client = await self._get_client()
        if client is None:
            return None
        try:
            value = await client.get(key)
        except (RedisError, OSError) as exc:
            self._mark_disconnected("get", key, exc)
            return None
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        client = await self._get_client()
        if client is None:
            return False
        try:
            if ttl is not None and ttl > 0:
                await client.set(key, value, ex=ttl)
            else:
                await client.set(key, value)
        except (RedisError, OSError) as exc:
            self._mark_disconnected("set", key, exc)
            return False
        logger.debug("cache_set", key=key, ttl=ttl)
        return True

    async def delete(self, key: str) -> bool:
        client = await self._get_client()
        if client is None:
            return False
        try:
            removed = await client.delete(key)
        except (RedisError, OSError) as exc:
            self._mark_disconnected("delete", key, exc)
            return False
        logger.debug("cache_delete", key=key, removed=bool(removed))
        return bool(removed)

    async def exists(self, key: str) -> bool:
        client = await self._get_client()
        if client is None:
            return False
        try:
            return bool(await client.exists(key))
        except (RedisError, OSError) as exc:
            self._mark_disconnected("exists", key, exc)
            return False

    async def ping(self) -> bool:
        return await self._get_client() is not None

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except (RedisError, OSError) as exc:
                logger.warning("redis_close_failed", error=str(exc))
        self._client = None
        self._connected = False
        self._unavailable_until = 0.0
