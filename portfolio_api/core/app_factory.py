"""Application factory for FastAPI app.

Centralizes app construction (components, background sweeps, middleware,
handlers, routers) so tests can build isolated instances with their own
settings, cache store, HTTP client and clock.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

import httpx
from fastapi import APIRouter, Depends, FastAPI

from portfolio_api.adapters.cache import AbstractCacheStore, create_cache_store
from portfolio_api.adapters.rate_limit.base import AbstractRateLimiter
from portfolio_api.api.routes import (
    admin_router,
    analytics_router,
    content_router,
    github_router,
    health_router,
    info_router,
)
from portfolio_api.core.config import Settings, settings as default_settings
from portfolio_api.core.exception_handlers import setup_exception_handlers
from portfolio_api.core.logging import configure_logging
from portfolio_api.core.middleware import request_id_middleware
from portfolio_api.core.openapi import apply_openapi_customizations
from portfolio_api.core.rate_limit import DEFAULT_LIMITER, build_rate_limiters, rate_limit
from portfolio_api.core.tasks import PeriodicTask
from portfolio_api.services.cache_service import CacheService
from portfolio_api.services.content_service import ContentService, InMemoryContentRepository
from portfolio_api.services.github_service import GitHubService, create_github_client

logger = logging.getLogger(__name__)


def _limiter_sweep(limiter: AbstractRateLimiter) -> Callable[[], Awaitable[int]]:
    async def sweep() -> int:
        return limiter.sweep()

    return sweep


def build_background_tasks(
    app_settings: Settings,
    rate_limiters: dict[str, AbstractRateLimiter],
    cache: CacheService,
) -> list[PeriodicTask]:
    """One sweep task per limiter plus the cache expiry sweep."""
    tasks = [
        PeriodicTask(
            f"rate_limit_sweep:{name}",
            _limiter_sweep(limiter),
            app_settings.app.rate_limit_sweep_interval_seconds or limiter.window_seconds,
        )
        for name, limiter in rate_limiters.items()
    ]
    tasks.append(
        PeriodicTask("cache_sweep", cache.sweep, app_settings.cache.sweep_interval_seconds)
    )
    return tasks


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the background sweeps, then release every resource on shutdown."""
    for task in app.state.background_tasks:
        await task.start()
    logger.info("app.started", extra={"version": app.version})
    try:
        yield
    finally:
        for task in app.state.background_tasks:
            await task.stop()
        await app.state.http_client.aclose()
        await app.state.cache.store.close()
        logger.info("app.stopped")


def create_app(
    app_settings: Settings | None = None,
    *,
    cache_store: AbstractCacheStore | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; the process-wide settings by default.
        cache_store: Store override (tests); built from settings otherwise.
        http_client: GitHub HTTP client override (tests).
        clock: Time source shared by the rate limiters.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ValueError: If a limiter capacity or window is invalid.
    """
    app_settings = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(app_settings.log)

    rate_limiters = build_rate_limiters(app_settings.app, clock=clock)
    store = cache_store or create_cache_store(app_settings.cache)
    cache = CacheService(
        store,
        github_ttl_seconds=app_settings.cache.github_ttl_seconds,
        content_ttl_seconds=app_settings.cache.content_ttl_seconds,
        timeout_seconds=app_settings.cache.operation_timeout_seconds,
    )

    content_service = ContentService(InMemoryContentRepository(), cache)
    content_service.initialize_defaults()

    client = http_client or create_github_client(app_settings.github)

    app = FastAPI(
        title="Portfolio API",
        description=(
            "Backend for a developer portfolio: versioned content documents, "
            "cached GitHub profile data, per-client token bucket rate limiting "
            "and a TTL cache with pattern invalidation."
        ),
        version=app_settings.app.version,
        debug=app_settings.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.state.settings = app_settings
    app.state.rate_limiters = rate_limiters
    app.state.cache = cache
    app.state.content_service = content_service
    app.state.github_service = GitHubService(client, cache)
    app.state.http_client = client
    app.state.started_at = time.monotonic()
    app.state.background_tasks = build_background_tasks(app_settings, rate_limiters, cache)

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers: every /api/v1 route is throttled by the default limiter
    api_router = APIRouter(dependencies=[Depends(rate_limit(DEFAULT_LIMITER))])
    api_router.include_router(info_router)
    api_router.include_router(content_router)
    api_router.include_router(github_router)
    api_router.include_router(analytics_router)
    api_router.include_router(admin_router)
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
