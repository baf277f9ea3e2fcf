"""Cache store interfaces.

Services talk to :class:`AbstractCacheStore`; the concrete store (in-process
dict or an external document store) is chosen by configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """A cached document with expiration metadata.

    Attributes:
        key: Unique cache key (``<namespace>:<id>:<field>``).
        value: JSON-serialisable payload.
        expires_at: UNIX time after which the entry is a miss.
        created_at: UNIX time of the last write.
    """

    key: str
    value: Any
    expires_at: float
    created_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at

    def to_document(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "expires_at": self.expires_at,
            "created_at": self.created_at,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "CacheEntry":
        return cls(
            key=document["key"],
            value=document["value"],
            expires_at=float(document["expires_at"]),
            created_at=float(document["created_at"]),
        )


class AbstractCacheStore(ABC):
    """Interface for TTL cache stores.

    Implementations must never return an expired entry, and must raise
    ``CacheBackendError`` (not return a miss) when the store itself fails.
    """

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` or None if absent/expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: float) -> CacheEntry:
        """Upsert ``key``, replacing any previous entry wholesale."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if something was deleted."""

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Remove every key matching the glob ``pattern``. Returns the count."""

    @abstractmethod
    async def ttl(self, key: str) -> float | None:
        """Remaining lifetime of ``key`` in seconds, or None if absent/expired."""

    @abstractmethod
    async def sweep(self) -> int:
        """Purge expired entries. Returns the number removed."""

    @abstractmethod
    async def count(self) -> dict[str, int]:
        """Return ``total``, ``active`` and ``expired`` entry counts."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove all entries. Returns the number removed."""

    async def close(self) -> None:
        """Release connections held by the store."""
