from typing import Annotated

from fastapi import APIRouter, Depends, Request

from portfolio_api.adapters.rate_limit.base import AbstractRateLimiter
from portfolio_api.api.dependencies import (
    get_cache_service,
    get_content_service,
    get_github_service,
    get_rate_limiters,
)
from portfolio_api.schemas.responses import APIResponse
from portfolio_api.services.cache_service import CacheService
from portfolio_api.services.content_service import ContentService
from portfolio_api.services.github_service import GitHubService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/summary", response_model=APIResponse)
async def get_summary(
    request: Request,
    github: Annotated[GitHubService, Depends(get_github_service)],
    content: Annotated[ContentService, Depends(get_content_service)],
    cache: Annotated[CacheService, Depends(get_cache_service)],
) -> APIResponse:
    """Portfolio overview built on the configured user's GitHub stats."""
    username = request.app.state.settings.github.username
    stats = await github.get_stats(username)
    portfolio = await content.get_portfolio()
    cache_stats = await cache.stats()

    return APIResponse(
        data={
            "username": stats["username"],
            "summary": {
                "total_repositories": stats["total_repos"],
                "total_stars": stats["total_stars"],
                "total_forks": stats["total_forks"],
                "content_types": len(portfolio) - 1,
                "content_updated_at": portfolio["updated_at"],
            },
            "github": {
                "top_languages": stats["most_used_languages"],
                "top_repositories": stats["top_repositories"],
            },
            "performance": {
                "cache_hit_rate": cache_stats["hit_rate"],
                "cache_entries": cache_stats["active_entries"],
            },
            "last_updated": stats["last_fetched"],
        },
        message="Analytics summary retrieved successfully",
    )


@router.get("/cache-stats", response_model=APIResponse)
async def get_cache_stats(
    cache: Annotated[CacheService, Depends(get_cache_service)],
    limiters: Annotated[dict[str, AbstractRateLimiter], Depends(get_rate_limiters)],
) -> APIResponse:
    """Cache hit/miss counters, entry counts and rate limiter occupancy."""
    return APIResponse(
        data={
            "cache": await cache.stats(),
            "rate_limiters": [limiter.stats() for limiter in limiters.values()],
        }
    )
