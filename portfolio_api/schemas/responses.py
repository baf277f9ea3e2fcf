"""Response envelope shared by the API routes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from portfolio_api.core.logging import get_request_id


class APIResponse(BaseModel):
    """Successful response wrapper.

    Errors use the ``{"error": {...}}`` shape produced by the exception
    handlers instead.
    """

    success: bool = Field(True, description="Always true for successful responses.")
    data: Any = Field(None, description="Endpoint payload.")
    message: str | None = Field(None, description="Optional human-readable note.")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Server time of the response (UTC).",
    )
    request_id: str | None = Field(
        default_factory=get_request_id,
        description="Correlation id, echoed in the X-Request-ID header.",
    )
