"""Accessors for the components built by the application factory."""

from fastapi import Request

from portfolio_api.adapters.rate_limit.base import AbstractRateLimiter
from portfolio_api.services.cache_service import CacheService
from portfolio_api.services.content_service import ContentService
from portfolio_api.services.github_service import GitHubService


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache


def get_content_service(request: Request) -> ContentService:
    return request.app.state.content_service


def get_github_service(request: Request) -> GitHubService:
    return request.app.state.github_service


def get_rate_limiters(request: Request) -> dict[str, AbstractRateLimiter]:
    return request.app.state.rate_limiters
