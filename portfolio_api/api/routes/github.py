from typing import Annotated

from fastapi import APIRouter, Depends

from portfolio_api.api.dependencies import get_github_service
from portfolio_api.core.auth import verify_api_key
from portfolio_api.core.rate_limit import GITHUB_LIMITER, rate_limit
from portfolio_api.schemas.responses import APIResponse
from portfolio_api.services.github_service import GitHubService

# Upstream-proxied endpoints get the stricter limiter on top of the default one.
router = APIRouter(
    prefix="/github",
    tags=["GitHub"],
    dependencies=[Depends(rate_limit(GITHUB_LIMITER))],
)

GitHubServiceDep = Annotated[GitHubService, Depends(get_github_service)]


@router.get("/profile/{username}", response_model=APIResponse)
async def get_profile(username: str, service: GitHubServiceDep) -> APIResponse:
    return APIResponse(data=await service.get_profile(username))


@router.get("/repos/{username}", response_model=APIResponse)
async def get_repositories(username: str, service: GitHubServiceDep) -> APIResponse:
    return APIResponse(data=await service.get_repositories(username))


@router.get("/stats/{username}", response_model=APIResponse)
async def get_stats(username: str, service: GitHubServiceDep) -> APIResponse:
    """Stars, forks, language breakdown and top repositories (forks excluded)."""
    return APIResponse(data=await service.get_stats(username))


@router.get("/rate-limit", response_model=APIResponse)
async def get_upstream_rate_limit(service: GitHubServiceDep) -> APIResponse:
    """GitHub's own quota for the configured token (not cached)."""
    return APIResponse(data=await service.get_rate_limit())


@router.post(
    "/sync/{username}",
    response_model=APIResponse,
    dependencies=[Depends(verify_api_key)],
)
async def sync_user(username: str, service: GitHubServiceDep) -> APIResponse:
    """Invalidate ``github:<username>:*`` and refetch from GitHub."""
    return APIResponse(data=await service.sync(username), message="GitHub data resynced")
