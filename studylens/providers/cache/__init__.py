"""Cache provider implementations."""

from studylens.providers.cache.memory_cache import MemoryCacheProvider
from studylens.providers.cache.redis_cache import RedisCacheProvider

__all__ = ["MemoryCacheProvider", "RedisCacheProvider"]
