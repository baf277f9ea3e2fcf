from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from portfolio_api.core.errors import CacheBackendError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _cache_status(request: Request) -> dict[str, Any]:
    start = time.perf_counter()
    try:
        await request.app.state.cache.stats()
    except CacheBackendError as exc:
        logger.warning("health.cache_unhealthy", extra={"error_code": exc.code})
        return {"status": "unhealthy", "error": exc.code}
    return {
        "status": "healthy",
        "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
    }


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint.

    Reports the cache backend status and the uptime of the process. Returns
    503 when the cache backend is unreachable so load balancers can react.
    """

    cache = await _cache_status(request)
    healthy = cache["status"] == "healthy"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "version": request.app.version,
        "uptime_seconds": round(time.monotonic() - request.app.state.started_at, 1),
        "services": {"cache": cache},
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)


@router.get("/readiness")
async def readiness(request: Request) -> JSONResponse:
    cache = await _cache_status(request)
    ready = cache["status"] == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready"},
    )


@router.get("/liveness")
def liveness() -> dict:
    return {"status": "alive"}
