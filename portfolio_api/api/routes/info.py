from fastapi import APIRouter, Request

from portfolio_api.core.rate_limit import format_window
from portfolio_api.schemas.responses import APIResponse

router = APIRouter(tags=["Info"])


@router.get("/info", response_model=APIResponse)
async def get_api_info(request: Request) -> APIResponse:
    """Describe the API and its active rate limits."""
    app_settings = request.app.state.settings.app
    limiters = request.app.state.rate_limiters
    return APIResponse(
        data={
            "name": request.app.title,
            "version": request.app.version,
            "rate_limiting": {
                "enabled": app_settings.rate_limit_enabled,
                "limits": {
                    name: {
                        "requests": limiter.capacity,
                        "window": format_window(limiter.window_seconds),
                    }
                    for name, limiter in limiters.items()
                },
            },
            "cache_backend": request.app.state.settings.cache.backend,
            "endpoints": {
                "content": "/api/v1/content",
                "github": "/api/v1/github",
                "analytics": "/api/v1/analytics",
                "admin": "/api/v1/admin",
                "health": "/health",
            },
        }
    )
