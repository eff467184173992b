"""Edition reads and the daily publish step."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.models.documents import Edition, utc_now
from app.models.workflow import AgentStatus
from app.persistence.document_store import NEWSPAPER_EDITIONS, DocumentStore, get_document_store
from app.services.progress_board import PUBLISHER, AgentProgressBoard, get_progress_board

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    success: bool
    message: str = ""
    edition: Edition | None = None
    error: str | None = None


class EditionService:
    """Query editions and publish the newest unpublished one."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        board: AgentProgressBoard | None = None,
    ) -> None:
        self.store = store or get_document_store()
        self.board = board or get_progress_board()

    async def list_editions(self, *, published_only: bool = False, limit: int | None = None) -> list[Edition]:
        where = {"is_published": True} if published_only else None
        return await self.store.list_models(
            NEWSPAPER_EDITIONS,
            Edition,
            where=where,
            order_by="edition_number",
            descending=True,
            limit=limit,
        )

    async def get_edition(self, edition_id: str) -> Edition | None:
        return await self.store.get_model(NEWSPAPER_EDITIONS, edition_id, Edition)

    async def publish_latest(self) -> PublishResult:
        """Flip ``is_published`` on the newest unpublished edition.

        Published editions are never touched again, so repeated calls with
        nothing pending are harmless.
        """
        pending = await self.store.list_models(
            NEWSPAPER_EDITIONS,
            Edition,
            where={"is_published": False},
            order_by="edition_number",
            descending=True,
            limit=1,
        )
        if not pending:
            logger.info("No unpublished edition to publish")
            return PublishResult(success=False, error="No unpublished edition found to publish.")

        edition = pending[0]
        await self.board.update_agent(
            PUBLISHER, AgentStatus.WORKING, f"Publishing edition #{edition.edition_number}"
        )
        published_at = utc_now()
        await self.store.update(
            NEWSPAPER_EDITIONS,
            edition.id,
            {"is_published": True, "publication_date": published_at.isoformat()},
        )
        published = edition.model_copy(update={"is_published": True, "publication_date": published_at})

        message = f"Edition #{edition.edition_number} has been published."
        logger.info("Edition published", extra={"edition_number": edition.edition_number})
        await self.board.update_agent(PUBLISHER, AgentStatus.SUCCESS, message)
        return PublishResult(success=True, message=message, edition=published)


_edition_service: EditionService | None = None


def get_edition_service() -> EditionService:
    """Get singleton edition service."""
    global _edition_service
    if _edition_service is None:
        _edition_service = EditionService()
    return _edition_service
