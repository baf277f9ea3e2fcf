"""Factory pattern for creating cache store instances."""

from portfolio_api.adapters.cache.base import AbstractCacheStore
from portfolio_api.adapters.cache.in_memory import InMemoryCacheStore
from portfolio_api.adapters.cache.redis_store import RedisCacheStore
from portfolio_api.core.config import CacheSettings
from portfolio_api.core.errors import ValidationAppError


def create_cache_store(cache_settings: CacheSettings) -> AbstractCacheStore:
    """Instantiate the cache store selected by ``CACHE_BACKEND``.

    Args:
        cache_settings: Resolved cache settings.

    Returns:
        AbstractCacheStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    backend = cache_settings.backend.lower()

    if backend == "memory":
        return InMemoryCacheStore(max_entries=cache_settings.max_entries)

    if backend == "redis":
        return RedisCacheStore.from_url(
            cache_settings.redis_url,
            key_prefix=cache_settings.key_prefix,
        )

    raise ValidationAppError(
        code="cache_unknown_backend",
        message=f"Unknown cache backend: '{backend}'. Supported backends: memory, redis",
    )
