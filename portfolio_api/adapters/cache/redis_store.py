"""Redis-backed cache store.

Each entry is stored as a JSON document ``{key, value, created_at,
expires_at}`` under ``<key_prefix><key>`` with a native PX expiry, so Redis
purges expired documents on its own. The stored ``expires_at`` is still
checked on read so an entry is never served past its deadline.

Any ``RedisError`` (connection refused, timeout, protocol error) is raised as
:class:`CacheBackendError`; a missing key is a plain miss.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from portfolio_api.adapters.cache.base import AbstractCacheStore, CacheEntry
from portfolio_api.core.errors import CacheBackendError

logger = logging.getLogger(__name__)


class RedisCacheStore(AbstractCacheStore):
    """Cache store persisting JSON documents in Redis."""

    def __init__(
        self,
        client: Redis,
        *,
        key_prefix: str = "cache:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._prefix = key_prefix
        self._clock = clock

    @classmethod
    def from_url(cls, redis_url: str, *, key_prefix: str = "cache:") -> "RedisCacheStore":
        """Build a store with a lazily-connecting client for ``redis_url``."""
        return cls(Redis.from_url(redis_url, decode_responses=True), key_prefix=key_prefix)

    def _storage_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    @asynccontextmanager
    async def _backend_errors(self, operation: str, key: str | None = None) -> AsyncIterator[None]:
        try:
            yield
        except RedisError as exc:
            logger.error(
                "cache.backend_error",
                extra={
                    "operation": operation,
                    "cache_key": key,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise CacheBackendError(
                code="cache_backend_error",
                message=f"Cache backend failed during {operation}",
                details={"operation": operation},
            ) from exc

    def _decode(self, key: str, raw: str) -> CacheEntry:
        try:
            return CacheEntry.from_document(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            raise CacheBackendError(
                code="cache_corrupt_entry",
                message="Cached document could not be decoded",
                details={"cache_key": key, "operation": "get"},
            ) from exc

    async def get(self, key: str) -> CacheEntry | None:
        async with self._backend_errors("get", key):
            raw = await self._client.get(self._storage_key(key))
        if raw is None:
            return None
        entry = self._decode(key, raw)
        if not entry.is_live(self._clock()):
            return None
        return entry

    async def set(self, key: str, value: Any, ttl_seconds: float) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(key=key, value=value, expires_at=now + ttl_seconds, created_at=now)
        try:
            payload = json.dumps(entry.to_document())
        except (TypeError, ValueError) as exc:
            raise CacheBackendError(
                code="cache_unserializable_value",
                message="Value is not JSON serialisable",
                details={"cache_key": key, "operation": "set"},
            ) from exc

        ttl_ms = max(1, int(ttl_seconds * 1000))
        async with self._backend_errors("set", key):
            await self._client.set(self._storage_key(key), payload, px=ttl_ms)
        return entry

    async def delete(self, key: str) -> bool:
        async with self._backend_errors("delete", key):
            deleted = await self._client.delete(self._storage_key(key))
        return bool(deleted)

    async def _matching_keys(self, pattern: str) -> list[str]:
        return [k async for k in self._client.scan_iter(match=self._storage_key(pattern), count=500)]

    async def delete_pattern(self, pattern: str) -> int:
        async with self._backend_errors("delete_pattern"):
            keys = await self._matching_keys(pattern)
            if not keys:
                return 0
            return int(await self._client.delete(*keys))

    async def ttl(self, key: str) -> float | None:
        entry = await self.get(key)
        if entry is None:
            return None
        return entry.expires_at - self._clock()

    async def sweep(self) -> int:
        # Redis expires documents natively.
        return 0

    async def count(self) -> dict[str, int]:
        async with self._backend_errors("count"):
            keys = await self._matching_keys("*")
        return {"total": len(keys), "active": len(keys), "expired": 0}

    async def clear(self) -> int:
        return await self.delete_pattern("*")

    async def close(self) -> None:
        async with self._backend_errors("close"):
            await self._client.aclose()
