"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so storage backends can be swapped later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit decision.

    A denied request is a normal outcome and is reported here, never raised.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Bucket capacity (max requests per window).
        remaining: Tokens left after this decision (0 when blocked).
        reset_at: UNIX epoch seconds of ``now + window``.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        window_seconds: Configured window length.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    window_seconds: float


class AbstractRateLimiter(ABC):
    """Interface for per-key rate limiters."""

    name: str
    capacity: int
    window_seconds: float

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Consume one unit of budget for a given key.

        Args:
            key: Unique identifier (e.g., client IP address).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    def allow(self, key: str) -> bool:
        """Shortcut for ``consume(key).allowed``."""
        return self.consume(key).allowed

    @abstractmethod
    def remaining(self, key: str) -> int:
        """Return the tokens currently available for ``key`` without consuming."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop idle per-key state. Returns the number of keys removed."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Return lightweight limiter metrics."""
        raise NotImplementedError
