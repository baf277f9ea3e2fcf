"""In-memory TTL cache store.

Thread-safe, dependency-free and bounded by an optional LRU limit. Expired
entries are dropped lazily on read and in bulk by :meth:`sweep`.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from fnmatch import fnmatchcase
from typing import Any, Callable

from portfolio_api.adapters.cache.base import AbstractCacheStore, CacheEntry

logger = logging.getLogger(__name__)


class InMemoryCacheStore(AbstractCacheStore):
    """Dict-backed cache store with per-entry expiry and LRU eviction.

    Attributes:
        max_entries: Maximum number of cached items (None for unlimited).
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")

        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryCacheStore(max_entries={self._max_entries}, "
            f"size={len(self._store)}, evictions={self._evictions})"
        )

    async def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if not entry.is_live(self._clock()):
                self._evict_single(key)
                return None
            self._store.move_to_end(key)
            return entry

    async def set(self, key: str, value: Any, ttl_seconds: float) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(key=key, value=value, expires_at=now + ttl_seconds, created_at=now)
        with self._lock:
            self._store[key] = entry
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()
        return entry

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            matched = [k for k in self._store if fnmatchcase(k, pattern)]
            for key in matched:
                del self._store[key]
        return len(matched)

    async def ttl(self, key: str) -> float | None:
        with self._lock:
            entry = self._store.get(key)
        if entry is None:
            return None
        remaining = entry.expires_at - self._clock()
        return remaining if remaining > 0 else None

    async def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired_keys = [k for k, entry in self._store.items() if entry.expires_at <= now]
            for key in expired_keys:
                self._evict_single(key)
        return len(expired_keys)

    async def count(self) -> dict[str, int]:
        with self._lock:
            now = self._clock()
            total = len(self._store)
            active = sum(1 for entry in self._store.values() if entry.is_live(now))
        return {"total": total, "active": active, "expired": total - active}

    async def clear(self) -> int:
        with self._lock:
            removed = len(self._store)
            self._store.clear()
        return removed

    def _evict_single(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_entries is None:
            return

        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            key, _ = self._store.popitem(last=False)
            self._evictions += 1
            logger.debug("cache.lru_evicted", extra={"cache_key": key})
