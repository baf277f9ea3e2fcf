from typing import Annotated

from fastapi import APIRouter, Depends, Query

from portfolio_api.api.dependencies import get_cache_service
from portfolio_api.core.auth import verify_api_key
from portfolio_api.core.errors import CacheMissError
from portfolio_api.schemas.responses import APIResponse
from portfolio_api.services.cache_service import CacheService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_api_key)],
)

CacheDep = Annotated[CacheService, Depends(get_cache_service)]


@router.post("/cache/clear", response_model=APIResponse)
async def clear_cache(cache: CacheDep) -> APIResponse:
    removed = await cache.clear()
    return APIResponse(data={"removed": removed}, message="Cache cleared")


@router.post("/cache/sweep", response_model=APIResponse)
async def sweep_cache(cache: CacheDep) -> APIResponse:
    """Run the expired-entry sweep now instead of waiting for the next tick."""
    removed = await cache.sweep()
    return APIResponse(data={"removed": removed})


@router.delete("/cache", response_model=APIResponse)
async def invalidate_cache(
    cache: CacheDep,
    pattern: Annotated[str, Query(min_length=1, description="Glob pattern, e.g. github:alice:*")],
) -> APIResponse:
    removed = await cache.delete_pattern(pattern)
    return APIResponse(data={"pattern": pattern, "removed": removed})


@router.get("/cache/keys/{key:path}", response_model=APIResponse)
async def inspect_cache_key(key: str, cache: CacheDep) -> APIResponse:
    """Report whether ``key`` is live and how long it has left."""
    try:
        ttl_seconds: float | None = round(await cache.get_ttl(key), 3)
    except CacheMissError:
        ttl_seconds = None
    return APIResponse(data={"key": key, "exists": ttl_seconds is not None, "ttl_seconds": ttl_seconds})
