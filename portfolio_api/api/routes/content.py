from typing import Annotated

from fastapi import APIRouter, Depends, Query

from portfolio_api.api.dependencies import get_content_service
from portfolio_api.core.auth import verify_api_key
from portfolio_api.schemas.content import ContentUpdateRequest
from portfolio_api.schemas.responses import APIResponse
from portfolio_api.services.content_service import CONTENT_TYPES, ContentService

router = APIRouter(prefix="/content", tags=["Content"])

ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]


@router.get("", response_model=APIResponse)
async def get_portfolio(service: ContentServiceDep) -> APIResponse:
    """Return every content type in one document (cached as ``content:portfolio``)."""
    return APIResponse(data=await service.get_portfolio())


@router.get("/search", response_model=APIResponse)
async def search_content(
    service: ContentServiceDep,
    q: Annotated[str, Query(min_length=1, max_length=200, description="Text to search for")],
    types: Annotated[
        str | None,
        Query(description=f"Comma-separated subset of: {', '.join(CONTENT_TYPES)}"),
    ] = None,
) -> APIResponse:
    selected = [t.strip() for t in types.split(",") if t.strip()] if types else None
    results = service.search(q, selected)
    return APIResponse(data=results, message=f"{len(results)} result(s)")


@router.get(
    "/history/{content_type}",
    response_model=APIResponse,
    dependencies=[Depends(verify_api_key)],
)
async def get_content_history(
    content_type: str,
    service: ContentServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> APIResponse:
    """Previous versions of a content type, newest first."""
    return APIResponse(data=service.get_history(content_type, limit))


@router.get("/{content_type}", response_model=APIResponse)
async def get_content(content_type: str, service: ContentServiceDep) -> APIResponse:
    """Return one content type (meta, skills, experience, projects, education)."""
    return APIResponse(data=await service.get_content(content_type))


@router.put(
    "",
    response_model=APIResponse,
    dependencies=[Depends(verify_api_key)],
)
async def update_content(body: ContentUpdateRequest, service: ContentServiceDep) -> APIResponse:
    """Replace a content document and invalidate cached content."""
    document = await service.update_content(body.type, body.data, updated_by="api_key")
    return APIResponse(data=document, message="Content updated")
