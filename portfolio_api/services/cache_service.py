"""Cache service used by every data-fetching code path.

Wraps an :class:`AbstractCacheStore` with:
- miss semantics (``CacheMissError``) that never return stale values
- a deadline on every store call (``CacheTimeoutError``)
- hit/miss/error counters
- namespaced helpers for GitHub (``github:<username>:<datatype>``) and
  content (``content:<type>``) data and their group invalidation
- a read-through ``get_or_load`` that falls back to the source of truth
  when the cache backend is unavailable
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from typing import Any, Awaitable, Callable, TypeVar

from portfolio_api.adapters.cache.base import AbstractCacheStore, CacheEntry
from portfolio_api.core.errors import (
    CacheBackendError,
    CacheMissError,
    CacheTimeoutError,
    ValidationAppError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


_GLOB_ESCAPES = {"*": "[*]", "?": "[?]", "[": "[[]", "\\": "[\\\\]"}


def escape_glob(text: str) -> str:
    """Quote glob metacharacters so ``text`` only matches itself.

    A one-character class is literal in both ``fnmatch`` and Redis ``MATCH``.
    """
    return "".join(_GLOB_ESCAPES.get(ch, ch) for ch in text)


def github_key(username: str, datatype: str) -> str:
    """Build the cache key for GitHub-derived data."""
    return f"github:{username.lower()}:{datatype}"


def content_key(content_type: str) -> str:
    """Build the cache key for portfolio content."""
    return f"content:{content_type}"


class CacheService:
    """TTL cache facade over a pluggable store.

    Attributes:
        default_ttl_seconds: TTL applied when ``set`` gets none.
        timeout_seconds: Deadline for each store call.
    """

    def __init__(
        self,
        store: AbstractCacheStore,
        *,
        default_ttl_seconds: float = 3600,
        github_ttl_seconds: float = 21_600,
        content_ttl_seconds: float = 86_400,
        timeout_seconds: float = 5.0,
    ) -> None:
        for name, value in (
            ("default_ttl_seconds", default_ttl_seconds),
            ("github_ttl_seconds", github_ttl_seconds),
            ("content_ttl_seconds", content_ttl_seconds),
            ("timeout_seconds", timeout_seconds),
        ):
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a finite number > 0")

        self._store = store
        self.default_ttl_seconds = default_ttl_seconds
        self.github_ttl_seconds = github_ttl_seconds
        self.content_ttl_seconds = content_ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._counter_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._errors = 0

    @property
    def store(self) -> AbstractCacheStore:
        return self._store

    async def _call(
        self,
        operation: str,
        awaitable: Awaitable[T],
        *,
        key: str | None = None,
        timeout: float | None = None,
    ) -> T:
        """Run a store call under a deadline, counting backend failures."""
        deadline = timeout if timeout is not None else self.timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=deadline)
        except asyncio.TimeoutError as exc:
            self._count("errors")
            logger.warning(
                "cache.timeout",
                extra={"operation": operation, "cache_key": key, "timeout_seconds": deadline},
            )
            raise CacheTimeoutError(
                code="cache_timeout",
                message=f"Cache {operation} exceeded {deadline}s",
                details={"operation": operation, "timeout_seconds": deadline},
            ) from exc
        except CacheBackendError:
            self._count("errors")
            raise

    def _count(self, counter: str) -> None:
        with self._counter_lock:
            if counter == "hits":
                self._hits += 1
            elif counter == "misses":
                self._misses += 1
            else:
                self._errors += 1

    async def get(self, key: str, *, timeout: float | None = None) -> Any:
        """Return the cached value for ``key``.

        Raises:
            CacheMissError: If the key is absent or expired.
            CacheBackendError: If the store failed or timed out.
        """
        entry: CacheEntry | None = await self._call("get", self._store.get(key), key=key, timeout=timeout)
        if entry is None:
            self._count("misses")
            logger.debug("cache.miss", extra={"cache_key": key})
            raise CacheMissError(
                code="cache_miss",
                message=f"Cache miss: {key}",
                details={"cache_key": key},
            )

        self._count("hits")
        logger.debug("cache.hit", extra={"cache_key": key})
        return entry.value

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        """Upsert ``key`` so it expires ``ttl_seconds`` from now.

        Raises:
            ValidationAppError: If the TTL is not a finite positive number.
            CacheBackendError: If the store failed or timed out.
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if not math.isfinite(ttl) or ttl <= 0:
            raise ValidationAppError(
                code="cache_invalid_ttl",
                message="Cache TTL must be a finite, positive number of seconds",
                details={"cache_key": key},
            )

        await self._call("set", self._store.set(key, value, ttl), key=key, timeout=timeout)
        logger.debug("cache.set", extra={"cache_key": key, "ttl_s": ttl})

    async def delete(self, key: str, *, timeout: float | None = None) -> None:
        """Remove ``key``; absent keys are not an error."""
        await self._call("delete", self._store.delete(key), key=key, timeout=timeout)

    async def delete_pattern(self, pattern: str, *, timeout: float | None = None) -> int:
        """Remove every entry whose key matches the glob ``pattern``.

        Example:
            ``await cache.delete_pattern("github:alice:*")``
        """
        removed = await self._call(
            "delete_pattern", self._store.delete_pattern(pattern), key=pattern, timeout=timeout
        )
        logger.info("cache.invalidated", extra={"pattern": pattern, "removed": removed})
        return removed

    async def exists(self, key: str, *, timeout: float | None = None) -> bool:
        entry = await self._call("exists", self._store.get(key), key=key, timeout=timeout)
        return entry is not None

    async def get_ttl(self, key: str, *, timeout: float | None = None) -> float:
        """Return the remaining lifetime of ``key`` in seconds.

        Raises:
            CacheMissError: If the key is absent or already expired.
        """
        remaining = await self._call("get_ttl", self._store.ttl(key), key=key, timeout=timeout)
        if remaining is None:
            raise CacheMissError(
                code="cache_miss",
                message=f"Cache miss: {key}",
                details={"cache_key": key},
            )
        return remaining

    async def sweep(self) -> int:
        """Purge expired entries from the store."""
        removed = await self._call("sweep", self._store.sweep())
        if removed:
            logger.info("cache.sweep", extra={"removed": removed})
        return removed

    async def clear(self) -> int:
        removed = await self._call("clear", self._store.clear())
        logger.info("cache.cleared", extra={"removed": removed})
        return removed

    async def stats(self) -> dict[str, Any]:
        """Return counters plus store entry counts."""
        counts = await self._call("stats", self._store.count())
        with self._counter_lock:
            lookups = self._hits + self._misses
            return {
                "total_entries": counts["total"],
                "active_entries": counts["active"],
                "expired_entries": counts["expired"],
                "hits": self._hits,
                "misses": self._misses,
                "errors": self._errors,
                "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
            }

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: float | None = None,
    ) -> T:
        """Read-through helper.

        A miss calls ``loader`` and populates the cache. If the cache backend
        fails on read or write, the value comes from ``loader`` and the failure
        is logged; the loader's own errors propagate.
        """
        try:
            return await self.get(key)
        except CacheMissError:
            pass
        except CacheBackendError as exc:
            logger.warning(
                "cache.bypass",
                extra={"cache_key": key, "operation": "get", "error_code": exc.code},
            )
            return await loader()

        value = await loader()
        try:
            await self.set(key, value, ttl_seconds)
        except CacheBackendError as exc:
            logger.warning(
                "cache.bypass",
                extra={"cache_key": key, "operation": "set", "error_code": exc.code},
            )
        return value

    # GitHub namespace

    async def get_github_data(self, username: str, datatype: str) -> Any:
        return await self.get(github_key(username, datatype))

    async def set_github_data(self, username: str, datatype: str, data: Any) -> None:
        await self.set(github_key(username, datatype), data, self.github_ttl_seconds)

    async def invalidate_github_cache(self, username: str) -> int:
        return await self.delete_pattern(github_key(escape_glob(username), "*"))

    # Content namespace

    async def get_content_data(self, content_type: str) -> Any:
        return await self.get(content_key(content_type))

    async def set_content_data(self, content_type: str, data: Any) -> None:
        await self.set(content_key(content_type), data, self.content_ttl_seconds)

    async def invalidate_content_cache(self) -> int:
        return await self.delete_pattern(content_key("*"))
