"""Edition API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.dependencies import require_cron_secret
from app.schemas.edition import EditionResponse, EditionSummaryResponse, PublishResponse
from app.services.editions import get_edition_service

router = APIRouter()

EDITION_NOT_FOUND_DETAIL = "Edition not found"


@router.get("/", response_model=list[EditionSummaryResponse])
async def list_editions(
    published_only: bool = Query(default=True),
    limit: int | None = Query(default=None, ge=1, le=100),
) -> list[EditionSummaryResponse]:
    """List editions, newest first."""
    editions = await get_edition_service().list_editions(published_only=published_only, limit=limit)
    return [EditionSummaryResponse(**edition.model_dump()) for edition in editions]


@router.post(
    "/publish",
    response_model=PublishResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_cron_secret)],
)
async def publish_latest_edition() -> PublishResponse:
    """Publish the newest unpublished edition."""
    result = await get_edition_service().publish_latest()
    return PublishResponse(
        success=result.success,
        message=result.message or None,
        edition_number=result.edition.edition_number if result.edition else None,
        error=result.error,
    )


@router.get("/{edition_id}", response_model=EditionResponse)
async def get_edition(edition_id: str) -> EditionResponse:
    """Get one edition with its HTML."""
    edition = await get_edition_service().get_edition(edition_id)
    if edition is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=EDITION_NOT_FOUND_DETAIL,
        )
    return EditionResponse(**edition.model_dump())
