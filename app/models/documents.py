"""Document records persisted in the newsroom collections."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentBase(BaseModel):
    """Common fields for every stored document.

    ``id`` is the Redis hash field and is never serialized into the document body.
    """

    id: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude={"id"}, exclude_none=True)


class Lead(DocumentBase):
    """A raw candidate news item before drafting."""

    topic: str
    title: str
    content: str = ""
    url: str = ""
    image_url: str | None = None
    checked: bool = False
    checked_at: datetime | None = None


class DraftStatus(StrEnum):
    DRAFTED = "drafted"
    VALIDATED = "validated"
    PUBLISHED = "published"


class Draft(DocumentBase):
    """A generated article derived from exactly one lead."""

    lead_id: str
    headline: str
    content: str
    image_url: str | None = None
    category: str | None = None
    kicker: str | None = None
    status: DraftStatus = DraftStatus.DRAFTED


class Edition(DocumentBase):
    """A compiled newspaper edition."""

    edition_number: int = Field(ge=1)
    html_content: str
    cover_image_url: str
    headline: str
    article_count: int = 0
    is_published: bool = False
    publication_date: datetime = Field(default_factory=utc_now)


class SportsBox(BaseModel):
    """One compact sports results box used by the layout."""

    sport: str
    title: str
    content: str
    type: str = "scores"


class SportsDataset(DocumentBase):
    """Side dataset gathered by the sports desk during content creation."""

    date: str
    boxes: list[SportsBox] = Field(default_factory=list)
