"""Portfolio content: versioned documents behind the content cache.

Content is stored per type (meta, skills, experience, projects, education)
as opaque JSON documents. Reads go through the cache (``content:<type>``
and ``content:portfolio``); every write stores a new version and
invalidates the whole ``content:*`` namespace.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from portfolio_api.core.errors import NotFoundAppError
from portfolio_api.services.cache_service import CacheService, content_key

logger = logging.getLogger(__name__)

CONTENT_TYPES: tuple[str, ...] = ("meta", "skills", "experience", "projects", "education")

PORTFOLIO_KEY = "portfolio"

DEFAULT_CONTENT: dict[str, Any] = {
    "meta": {"name": "", "title": "", "bio": "", "location": "", "links": {}},
    "skills": {"languages": [], "frameworks": [], "tools": []},
    "experience": [],
    "projects": [],
    "education": [],
}


@dataclass
class ContentDocument:
    """One version of a content document."""

    type: str
    data: Any
    version: int
    updated_by: str
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "data": self.data,
            "version": self.version,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat(),
        }


class InMemoryContentRepository:
    """Thread-safe store keeping the current document and its history per type."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: dict[str, ContentDocument] = {}
        self._history: dict[str, list[ContentDocument]] = {}

    def get(self, content_type: str) -> ContentDocument | None:
        with self._lock:
            return self._current.get(content_type)

    def all(self) -> dict[str, ContentDocument]:
        with self._lock:
            return dict(self._current)

    def upsert(self, content_type: str, data: Any, updated_by: str) -> ContentDocument:
        with self._lock:
            previous = self._current.get(content_type)
            document = ContentDocument(
                type=content_type,
                data=data,
                version=previous.version + 1 if previous else 1,
                updated_by=updated_by,
            )
            if previous is not None:
                self._history.setdefault(content_type, []).append(previous)
            self._current[content_type] = document
            return document

    def history(self, content_type: str, limit: int) -> list[ContentDocument]:
        """Previous versions of ``content_type``, newest first."""
        with self._lock:
            versions = list(self._history.get(content_type, []))
        return list(reversed(versions))[:limit]

    def seed(self, defaults: dict[str, Any]) -> int:
        """Insert defaults for types that have no document yet."""
        seeded = 0
        for content_type, data in defaults.items():
            with self._lock:
                if content_type in self._current:
                    continue
                self._current[content_type] = ContentDocument(
                    type=content_type, data=data, version=1, updated_by="system"
                )
            seeded += 1
        return seeded


def _contains(value: Any, needle: str) -> bool:
    if isinstance(value, str):
        return needle in value.lower()
    if isinstance(value, dict):
        return any(_contains(v, needle) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(_contains(v, needle) for v in value)
    return False


class ContentService:
    """Cached read access and invalidating writes for portfolio content."""

    def __init__(self, repository: InMemoryContentRepository, cache: CacheService) -> None:
        self._repository = repository
        self._cache = cache

    @staticmethod
    def validate_type(content_type: str) -> str:
        if content_type not in CONTENT_TYPES:
            raise NotFoundAppError(
                code="unknown_content_type",
                message=f"Unknown content type '{content_type}'",
                details={
                    "content_type": content_type,
                    "hint": f"Valid types: {', '.join(CONTENT_TYPES)}",
                },
            )
        return content_type

    def initialize_defaults(self) -> int:
        seeded = self._repository.seed(DEFAULT_CONTENT)
        if seeded:
            logger.info("content.defaults_seeded", extra={"seeded": seeded})
        return seeded

    async def get_content(self, content_type: str) -> dict[str, Any]:
        """Return the current document of ``content_type``.

        Raises:
            NotFoundAppError: If the type is unknown or has no document.
        """
        self.validate_type(content_type)

        async def load() -> dict[str, Any]:
            document = self._repository.get(content_type)
            if document is None:
                raise NotFoundAppError(
                    code="content_not_found",
                    message=f"No content stored for '{content_type}'",
                    details={"content_type": content_type},
                )
            return document.to_dict()

        return await self._cache.get_or_load(
            content_key(content_type), load, self._cache.content_ttl_seconds
        )

    async def get_portfolio(self) -> dict[str, Any]:
        """Return every content type's data in one document."""

        async def load() -> dict[str, Any]:
            documents = self._repository.all()
            portfolio: dict[str, Any] = {
                content_type: documents[content_type].data
                for content_type in CONTENT_TYPES
                if content_type in documents
            }
            portfolio["updated_at"] = max(
                (doc.updated_at for doc in documents.values()),
                default=datetime.now(timezone.utc),
            ).isoformat()
            return portfolio

        return await self._cache.get_or_load(
            content_key(PORTFOLIO_KEY), load, self._cache.content_ttl_seconds
        )

    async def update_content(self, content_type: str, data: Any, updated_by: str) -> dict[str, Any]:
        """Store a new version and invalidate all cached content."""
        self.validate_type(content_type)
        document = self._repository.upsert(content_type, data, updated_by)
        invalidated = await self._cache.invalidate_content_cache()
        logger.info(
            "content.updated",
            extra={
                "content_type": content_type,
                "version": document.version,
                "invalidated": invalidated,
            },
        )
        return document.to_dict()

    def get_history(self, content_type: str, limit: int = 10) -> list[dict[str, Any]]:
        self.validate_type(content_type)
        return [doc.to_dict() for doc in self._repository.history(content_type, limit)]

    def search(self, query: str, content_types: Iterable[str] | None = None) -> list[dict[str, Any]]:
        """Case-insensitive substring search over current documents."""
        needle = query.strip().lower()
        if not needle:
            return []
        types = [self.validate_type(t) for t in content_types] if content_types else list(CONTENT_TYPES)
        documents = self._repository.all()
        return [
            documents[t].to_dict()
            for t in types
            if t in documents and _contains(documents[t].data, needle)
        ]
