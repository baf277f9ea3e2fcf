"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Cache failures come in three distinct kinds that callers must not conflate:
a miss (recompute and populate), a backend failure (bypass the cache or
fail the request) and a timeout, which is a backend failure with a deadline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    limit: int
    remaining: int
    reset_at: int
    window_seconds: float
    retry_after: int
    cache_key: str
    operation: str
    timeout_seconds: float
    content_type: str
    username: str
    upstream_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist."""


@dataclass
class RateLimitAppError(AppError):
    """Raised at the HTTP boundary when a limiter denies a request.

    Attributes:
        headers: X-Rate-Limit-* headers to send with the 429 response.
    """

    headers: dict[str, str] = field(default_factory=dict)


class UpstreamAppError(AppError):
    """Raised when the GitHub API call fails or returns an error."""


class CacheAppError(AppError):
    """Base class for cache layer conditions."""


class CacheMissError(CacheAppError):
    """The key is absent or its entry has expired."""


class CacheBackendError(CacheAppError):
    """The cache store failed (unavailable, protocol error, bad payload)."""


class CacheTimeoutError(CacheBackendError):
    """The cache store did not answer within the caller's deadline."""
