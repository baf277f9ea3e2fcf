"""In-memory token bucket rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the key -> bucket mapping is guarded by a manager lock that is
  taken only to insert or delete buckets; token arithmetic holds the lock of
  the bucket being updated, so unrelated keys never contend.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from portfolio_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    tokens: int
    last_refill: float
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    evicted: bool = False


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one token bucket per key.

    Tokens refill lazily when a key is seen again: ``floor(elapsed * capacity /
    window)`` tokens are added and ``last_refill`` moves to ``now``, so the
    fractional remainder of a partial refill is dropped. A key idle for a
    whole window starts over with a full bucket.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        capacity: int,
        window_seconds: float,
        name: str = "default",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the token bucket limiter.

        Args:
            capacity: Maximum tokens per bucket (requests per window).
            window_seconds: Time for an empty bucket to refill completely.
            name: Limiter name used in logs and stats.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If capacity or window_seconds are invalid.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if not math.isfinite(window_seconds) or window_seconds <= 0:
            raise ValueError("window_seconds must be a finite number > 0")

        self.name = name
        self._capacity = capacity
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[str, _Bucket] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def consume(self, key: str) -> RateLimitResult:
        """Take one token from ``key``'s bucket if one is available.

        Args:
            key: Unique identifier for rate limiting (e.g., client IP).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        while True:
            bucket = self._buckets.get(key)
            if bucket is None:
                with self._lock:
                    bucket = self._buckets.get(key)
                    if bucket is None:
                        now = self._clock()
                        self._buckets[key] = _Bucket(tokens=self._capacity - 1, last_refill=now)
                        return self._build_result(allowed=True, remaining=self._capacity - 1, now=now)

            with bucket.lock:
                # Removed by a concurrent sweep; look the key up again.
                if bucket.evicted:
                    continue
                now = self._clock()
                allowed = self._take_token_locked(bucket, now)
                remaining = bucket.tokens
            return self._build_result(allowed=allowed, remaining=remaining, now=now)

    def _take_token_locked(self, bucket: _Bucket, now: float) -> bool:
        elapsed = max(0.0, now - bucket.last_refill)

        if elapsed >= self._window_seconds:
            bucket.tokens = self._capacity - 1
            bucket.last_refill = now
            return True

        tokens_to_add = int(elapsed * self._capacity / self._window_seconds)
        bucket.tokens = min(self._capacity, bucket.tokens + tokens_to_add)
        bucket.last_refill = now

        if bucket.tokens > 0:
            bucket.tokens -= 1
            return True
        return False

    def _build_result(self, *, allowed: bool, remaining: int, now: float) -> RateLimitResult:
        retry_after = None
        if not allowed:
            retry_after = max(1, math.ceil(self._window_seconds / self._capacity))
        return RateLimitResult(
            allowed=allowed,
            limit=self._capacity,
            remaining=remaining if allowed else 0,
            reset_at=int(now + self._window_seconds),
            retry_after_seconds=retry_after,
            window_seconds=self._window_seconds,
        )

    def remaining(self, key: str) -> int:
        """Return the last computed token count for ``key``.

        Refill is not applied here; unknown keys report a full bucket.
        """
        bucket = self._buckets.get(key)
        if bucket is None:
            return self._capacity
        with bucket.lock:
            return bucket.tokens

    def sweep(self) -> int:
        """Remove buckets idle for more than two windows.

        Holds the manager lock for the whole pass; request threads working on
        existing buckets are only blocked on the bucket being inspected.

        Returns:
            Number of buckets evicted.
        """
        now = self._clock()
        idle_cutoff = 2 * self._window_seconds
        evicted = 0

        with self._lock:
            for key, bucket in list(self._buckets.items()):
                with bucket.lock:
                    if now - bucket.last_refill > idle_cutoff:
                        bucket.evicted = True
                        del self._buckets[key]
                        evicted += 1
            tracked = len(self._buckets)

        if evicted:
            logger.info(
                "rate_limit.sweep",
                extra={"limiter": self.name, "evicted": evicted, "tracked_keys": tracked},
            )
        return evicted

    def stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "capacity": self._capacity,
            "window_seconds": self._window_seconds,
            "tracked_keys": len(self._buckets),
        }
