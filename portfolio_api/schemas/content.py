"""Pydantic schemas for portfolio content requests."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ContentType = Literal["meta", "skills", "experience", "projects", "education"]


class ContentUpdateRequest(BaseModel):
    """Body of ``PUT /api/v1/content``."""

    type: ContentType = Field(
        ...,
        description="Content type to replace.",
    )
    data: dict[str, Any] | list[Any] = Field(
        ...,
        description="New document for the type (opaque JSON object or list).",
    )
