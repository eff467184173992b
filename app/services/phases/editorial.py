"""Phase 3: lay out validated drafts as a new, unpublished edition."""

from __future__ import annotations

import logging

from app.agents.layout_editor import LayoutArticle, LayoutEditorAgent, LayoutEditorInput
from app.core.exceptions import EditorialError
from app.models.documents import Draft, DraftStatus, Edition, SportsDataset, utc_now
from app.models.workflow import AgentStatus, QueueState, WorkflowStatus, WorkflowStep
from app.persistence.document_store import (
    DRAFT_ARTICLES,
    NEWSPAPER_EDITIONS,
    SPORTS_BOXES,
    DocumentStore,
)
from app.services.phases.base_phase import BasePhaseExecutor, PhaseResult
from app.services.phases.content_creation import SPORTS_DOC_ID
from app.services.phases.contracts import LayoutGenerator
from app.services.progress_board import EDITOR, AgentProgressBoard
from app.services.queue_state import QueueStateStore

logger = logging.getLogger(__name__)

# Numbers claimed by concurrent editorial runs are skipped, up to this many
MAX_NUMBER_CLAIMS = 10


def edition_doc_id(edition_number: int) -> str:
    return f"edition-{edition_number}"


def fallback_cover_url(edition_number: int) -> str:
    return f"https://picsum.photos/seed/{edition_number}/800/500"


async def latest_edition_number(store: DocumentStore) -> int:
    editions = await store.list_models(NEWSPAPER_EDITIONS, Edition)
    return max((edition.edition_number for edition in editions), default=0)


class EditorialPhase(BasePhaseExecutor):
    """One large layout call over every validated draft.

    Not checkpointed: a run that outlives the timeout guard is retried from
    scratch by the resume step. ``phase3_start_time`` doubles as a fence so a
    superseded run does not persist a second edition.
    """

    phase_name = "Editorial"
    board_agent = EDITOR

    def __init__(
        self,
        queue: QueueStateStore | None = None,
        store: DocumentStore | None = None,
        board: AgentProgressBoard | None = None,
        layout_generator: LayoutGenerator | None = None,
    ) -> None:
        super().__init__(queue=queue, store=store, board=board)
        self.layout_generator = layout_generator or LayoutEditorAgent()

    async def _execute(self, state: QueueState) -> PhaseResult:
        started_at = utc_now()
        await self.queue.write(phase3_start_time=started_at)
        await self.board.update(current_agent=EDITOR, message="Laying out the edition")

        drafts = await self.store.list_models(
            DRAFT_ARTICLES,
            Draft,
            where={"status": DraftStatus.VALIDATED.value},
            order_by="created_at",
            descending=True,
        )
        if not drafts:
            published = await self.store.count(
                DRAFT_ARTICLES, where={"status": DraftStatus.PUBLISHED.value}
            )
            if not published:
                raise EditorialError("No validated articles to lay out")
            logger.info("Drafts already published, completing", extra={"published": published})
            return await self._complete("Edition already laid out")

        await self.board.update_agent(
            EDITOR, AgentStatus.WORKING, f"Laying out {len(drafts)} articles"
        )
        sports = await self.store.get_model(SPORTS_BOXES, SPORTS_DOC_ID, SportsDataset)
        edition_number = await latest_edition_number(self.store) + 1

        layout = await self.layout_generator.run(
            LayoutEditorInput(
                articles=[
                    LayoutArticle(
                        headline=draft.headline,
                        content=draft.content,
                        image_url=draft.image_url,
                        category=draft.category,
                        kicker=draft.kicker,
                    )
                    for draft in drafts
                ],
                edition_number=edition_number,
                publication_date=started_at.date().isoformat(),
                sports_boxes=sports.boxes if sports else [],
            )
        )

        current = await self.queue.ensure_not_stopped()
        if current.phase3_start_time is not None and current.phase3_start_time != started_at:
            logger.warning(
                "Editorial run superseded, discarding layout",
                extra={"edition_number": edition_number},
            )
            return PhaseResult(
                success=True,
                message="Editorial run superseded by a newer invocation",
                next_step=current.current_step,
            )

        main_article = drafts[0]
        edition_number = await self._store_edition(
            edition_number,
            html=layout.html,
            cover_image_url=main_article.image_url or fallback_cover_url(edition_number),
            headline=main_article.headline,
            article_count=len(drafts),
        )

        batch = self.store.batch(DRAFT_ARTICLES)
        for draft in drafts:
            batch.update(draft.id, {"status": DraftStatus.PUBLISHED.value})
        await batch.commit()

        return await self._complete(f"Edition #{edition_number} created")

    async def _store_edition(
        self,
        edition_number: int,
        *,
        html: str,
        cover_image_url: str,
        headline: str,
        article_count: int,
    ) -> int:
        """Persist the edition under the first free number at or above ``edition_number``."""
        for number in range(edition_number, edition_number + MAX_NUMBER_CLAIMS):
            edition = Edition(
                edition_number=number,
                html_content=html,
                cover_image_url=cover_image_url,
                headline=headline,
                article_count=article_count,
            )
            if await self.store.create_if_absent(
                NEWSPAPER_EDITIONS, edition_doc_id(number), edition.to_document()
            ):
                if number != edition_number:
                    logger.warning(
                        "Edition number already claimed, used next free number",
                        extra={"requested": edition_number, "assigned": number},
                    )
                logger.info(
                    "Edition created",
                    extra={"edition_number": number, "article_count": article_count},
                )
                return number
        raise EditorialError(f"Could not claim an edition number from {edition_number}")

    async def _complete(self, message: str) -> PhaseResult:
        await self.queue.write(current_step=WorkflowStep.COMPLETE, phase3_start_time=None)
        await self.board.reset_agents(status=WorkflowStatus.SUCCESS, message=message)
        return PhaseResult(
            success=True,
            message=message,
            next_step=WorkflowStep.COMPLETE,
            completed=True,
        )
