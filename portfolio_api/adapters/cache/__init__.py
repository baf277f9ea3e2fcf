"""Cache store adapters - in-process or Redis-backed TTL storage."""

from portfolio_api.adapters.cache.base import AbstractCacheStore, CacheEntry
from portfolio_api.adapters.cache.factory import create_cache_store
from portfolio_api.adapters.cache.in_memory import InMemoryCacheStore
from portfolio_api.adapters.cache.redis_store import RedisCacheStore

__all__ = [
    "AbstractCacheStore",
    "CacheEntry",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "create_cache_store",
]
