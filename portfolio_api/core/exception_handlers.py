"""Global exception handlers for consistent error responses.

Every error leaves the API as::

    {"error": {"code", "message", "request_id", "details"?}}

Design:
- AppError subclasses map to a status code (400, 403, 404, 429, 502, 503)
- Unexpected Exception → generic 500 (safety net, no internals leaked)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from portfolio_api.core.errors import (
    AppError,
    AuthenticationAppError,
    CacheBackendError,
    NotFoundAppError,
    RateLimitAppError,
    UpstreamAppError,
    ValidationAppError,
)
from portfolio_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Most specific first; unmatched AppError subclasses fall back to 500.
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (RateLimitAppError, 429),
    (UpstreamAppError, 502),
    (CacheBackendError, 503),
)


def status_for_error(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _request_id(request: Request) -> str | None:
    # ServerErrorMiddleware runs after the request-id contextvar is cleared.
    return get_request_id() or getattr(request.state, "request_id", None)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code, error body and, for rate
        limiting, the X-Rate-Limit-* headers.
    """
    status_code = status_for_error(exc)
    request_id = _request_id(request)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": request_id,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": request_id,
    }
    if exc.details and status_code < 500:
        error_content["details"] = exc.details

    headers = exc.headers if isinstance(exc, RateLimitAppError) else None

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    """
    request_id = _request_id(request)
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": request_id,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": request_id,
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
