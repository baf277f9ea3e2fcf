"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency factory only.
- No process-wide limiter: named limiters are built by the app factory and
  looked up on ``request.app.state``.
- Swap-friendly: storage backend can be replaced behind an abstract interface.

Rate limiting strategy:
- Token bucket per client IP.
- A lenient ``default`` limiter on every /api/v1 route, plus a stricter
  ``github`` limiter on the upstream-proxied GitHub endpoints.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response

from portfolio_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from portfolio_api.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from portfolio_api.core.config import AppSettings
from portfolio_api.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

DEFAULT_LIMITER = "default"
GITHUB_LIMITER = "github"


def build_rate_limiters(
    app_settings: AppSettings,
    *,
    clock: Callable[[], float] = time.time,
) -> dict[str, AbstractRateLimiter]:
    """Build the named limiters described by the settings.

    Raises:
        ValueError: If a capacity or window is invalid.
    """

    return {
        DEFAULT_LIMITER: InMemoryTokenBucketRateLimiter(
            capacity=app_settings.rate_limit_requests,
            window_seconds=app_settings.rate_limit_window_seconds,
            name=DEFAULT_LIMITER,
            clock=clock,
        ),
        GITHUB_LIMITER: InMemoryTokenBucketRateLimiter(
            capacity=app_settings.github_rate_limit_requests,
            window_seconds=app_settings.github_rate_limit_window_seconds,
            name=GITHUB_LIMITER,
            clock=clock,
        ),
    }


def get_client_ip(request: Request) -> str:
    """Resolve the client address, honouring proxy headers.

    Args:
        request: FastAPI request.

    Returns:
        str: First X-Forwarded-For hop, X-Real-IP, X-Client-IP, or the peer.
    """

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    for header in ("X-Real-IP", "X-Client-IP"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    return request.client.host if request.client else "unknown"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def format_window(window_seconds: float) -> str:
    """Render a window as ``<seconds>s`` (e.g. ``3600s``)."""
    return f"{window_seconds:g}s"


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Build the X-Rate-Limit-* headers for a decision."""

    headers = {
        "X-Rate-Limit-Limit": str(result.limit),
        "X-Rate-Limit-Remaining": str(result.remaining),
        "X-Rate-Limit-Reset": str(result.reset_at),
        "X-Rate-Limit-Window": format_window(result.window_seconds),
    }
    if not result.allowed and result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


def rate_limit(limiter_name: str = DEFAULT_LIMITER) -> Callable[[Request, Response], Awaitable[None]]:
    """Create a FastAPI dependency enforcing the named limiter.

    Usage:
        router = APIRouter(dependencies=[Depends(rate_limit("github"))])
    """

    async def enforce_rate_limit(request: Request, response: Response) -> None:
        """Consume one token for the caller or raise a 429.

        Raises:
            RateLimitAppError: When the caller's bucket is empty.
        """

        app_settings: AppSettings = request.app.state.settings.app
        if not app_settings.rate_limit_enabled:
            return

        limiter: AbstractRateLimiter = request.app.state.rate_limiters[limiter_name]
        key = get_client_ip(request)
        key_hash = _hash_limiter_key(key)

        result = limiter.consume(key)
        headers = build_rate_limit_headers(result) if app_settings.rate_limit_include_headers else {}

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "limiter": limiter_name,
                    "key_hash": key_hash,
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            response.headers.update(headers)
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "limiter": limiter_name,
                "key_hash": key_hash,
                "limit": result.limit,
                "window_s": result.window_seconds,
                "retry_after_s": result.retry_after_seconds,
            },
        )

        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message="Rate limit exceeded. Try again later.",
            details={
                "limit": result.limit,
                "remaining": 0,
                "reset_at": result.reset_at,
                "window_seconds": result.window_seconds,
                "retry_after": result.retry_after_seconds or 0,
            },
            headers=headers,
        )

    return enforce_rate_limit
