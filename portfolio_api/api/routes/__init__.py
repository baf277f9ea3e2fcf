from __future__ import annotations

from portfolio_api.api.routes.admin import router as admin_router
from portfolio_api.api.routes.analytics import router as analytics_router
from portfolio_api.api.routes.content import router as content_router
from portfolio_api.api.routes.github import router as github_router
from portfolio_api.api.routes.health import router as health_router
from portfolio_api.api.routes.info import router as info_router

__all__ = [
    "admin_router",
    "analytics_router",
    "content_router",
    "github_router",
    "health_router",
    "info_router",
]
