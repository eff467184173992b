"""Edition schemas."""

from datetime import datetime

from app.schemas.workflow import CamelModel


class EditionSummaryResponse(CamelModel):
    """Schema for edition list entries."""

    id: str
    edition_number: int
    headline: str
    cover_image_url: str
    article_count: int
    is_published: bool
    publication_date: datetime
    created_at: datetime


class EditionResponse(EditionSummaryResponse):
    """Schema for a full edition including its HTML."""

    html_content: str


class PublishResponse(CamelModel):
    """Schema for the daily publish trigger."""

    success: bool
    message: str | None = None
    edition_number: int | None = None
    error: str | None = None
