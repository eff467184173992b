"""Phase 2: draft every sharded lead, deduplicate, validate and admit."""

from __future__ import annotations

import asyncio
import logging

from app.agents.duplicate_judge import DuplicateJudgeAgent
from app.agents.journalist import JournalistAgent, JournalistInput
from app.agents.sports_desk import SportsDeskAgent, SportsDeskInput, SportsDeskOutput
from app.config import settings
from app.core.exceptions import InsufficientContentError, WorkflowStoppedError
from app.integrations.web_search import TavilySearchClient
from app.models.documents import Draft, DraftStatus, Lead, SportsDataset, utc_now
from app.models.workflow import AgentStatus, QueueState, WorkflowStep
from app.persistence.document_store import (
    DRAFT_ARTICLES,
    SPORTS_BOXES,
    DocumentStore,
    shard_collection,
)
from app.services.content_validation import draft_rejection_reason
from app.services.deduplication import draft_candidate, find_duplicate_positions
from app.services.phases.base_phase import BasePhaseExecutor, PhaseResult
from app.services.phases.contracts import ArticleWriter, DuplicateJudge, SportsReporter
from app.services.progress_board import (
    DEDUPLICATOR,
    JOURNALIST,
    SPORTS_DESK,
    VALIDATOR,
    AgentProgressBoard,
    journalist_agent,
)
from app.services.queue_state import QueueStateStore

logger = logging.getLogger(__name__)

SPORTS_DOC_ID = "latest"


class ContentCreationPhase(BasePhaseExecutor):
    """Fan out one journalist per shard plus the sports desk, then gate the drafts.

    A failure on a single lead is logged and the lead discarded; a stop or a
    store failure inside any worker aborts the phase after the join.
    """

    phase_name = "Content Creation"
    board_agent = JOURNALIST

    def __init__(
        self,
        queue: QueueStateStore | None = None,
        store: DocumentStore | None = None,
        board: AgentProgressBoard | None = None,
        writer: ArticleWriter | None = None,
        judge: DuplicateJudge | None = None,
        sports_reporter: SportsReporter | None = None,
        journalist_count: int | None = None,
    ) -> None:
        super().__init__(queue=queue, store=store, board=board)
        self.writer = writer or JournalistAgent()
        self.judge = judge or DuplicateJudgeAgent()
        self.sports_reporter = sports_reporter
        self.journalist_count = journalist_count or settings.journalist_count

    async def _execute(self, state: QueueState) -> PhaseResult:
        await self.board.update(
            current_agent=JOURNALIST,
            message=f"{self.journalist_count} journalists drafting",
        )

        outcomes = await asyncio.gather(
            *(self._run_journalist(index) for index in range(1, self.journalist_count + 1)),
            self._run_sports_desk(),
            return_exceptions=True,
        )
        worker_outcomes = outcomes[:-1]
        for outcome in worker_outcomes:
            if isinstance(outcome, WorkflowStoppedError):
                raise outcome
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        drafted = sum(outcome for outcome in worker_outcomes if isinstance(outcome, int))

        await self.queue.ensure_not_stopped()
        await self._deduplicate_drafts()
        valid_count = await self._validate_drafts()

        return await self._admit(state, drafted=drafted, valid_count=valid_count)

    async def _run_journalist(self, worker_index: int) -> int:
        """Pop leads from this worker's shard until it is empty."""
        agent_name = journalist_agent(worker_index)
        collection = shard_collection(worker_index)
        drafted = 0
        failed = 0

        remaining = await self.store.count(collection)
        await self.board.update_agent(
            agent_name,
            AgentStatus.WORKING,
            f"Drafting {remaining} leads",
            drafted=0,
            remaining=remaining,
        )

        while True:
            await self.queue.ensure_not_stopped()
            leads = await self.store.list_models(collection, Lead, order_by="created_at")
            if not leads:
                break
            lead = leads[0]

            # A re-invoked worker may find leads it already converted
            if await self.store.count(DRAFT_ARTICLES, where={"lead_id": lead.id}):
                logger.info(
                    "Draft already exists for lead",
                    extra={"worker": worker_index, "lead_id": lead.id},
                )
                await self.store.delete(collection, lead.id)
                continue

            try:
                output = await self.writer.run(
                    JournalistInput(
                        title=lead.title,
                        topic=lead.topic,
                        content=lead.content,
                        url=lead.url,
                        category=lead.topic.title(),
                    )
                )
            except Exception as e:
                failed += 1
                logger.warning(
                    "Drafting failed, discarding lead",
                    extra={"worker": worker_index, "lead_id": lead.id, "error": str(e)},
                )
                await self.store.delete(collection, lead.id)
                continue

            draft = Draft(
                lead_id=lead.id,
                headline=output.headline,
                content=output.summary,
                image_url=lead.image_url,
                category=output.category,
                kicker=output.kicker,
            )
            await self.queue.ensure_not_stopped()
            await self.store.create(DRAFT_ARTICLES, draft.to_document())
            await self.store.delete(collection, lead.id)
            drafted += 1

            await self.board.update_agent(
                agent_name,
                AgentStatus.WORKING,
                f"Drafted: {draft.headline[:60]}",
                drafted=drafted,
                remaining=len(leads) - 1,
            )

        logger.info(
            "Journalist finished",
            extra={"worker": worker_index, "drafted": drafted, "failed": failed},
        )
        await self.board.update_agent(
            agent_name,
            AgentStatus.SUCCESS,
            f"Drafted {drafted} articles",
            drafted=drafted,
            remaining=0,
        )
        return drafted

    async def _run_sports_desk(self) -> int:
        """Gather the sports side dataset. Failures yield an empty dataset."""
        today = utc_now().date().isoformat()
        await self.board.update_agent(SPORTS_DESK, AgentStatus.WORKING, "Gathering sports results")

        try:
            output = await self._report_sports(SportsDeskInput(date=today))
            boxes = output.boxes
        except Exception as e:
            logger.warning("Sports desk failed, continuing without sports boxes", extra={"error": str(e)})
            boxes = []

        dataset = SportsDataset(date=today, boxes=boxes)
        await self.store.set(SPORTS_BOXES, SPORTS_DOC_ID, dataset.to_document())
        await self.board.update_agent(
            SPORTS_DESK,
            AgentStatus.SUCCESS if boxes else AgentStatus.ERROR,
            f"Prepared {len(boxes)} sports boxes",
        )
        return len(boxes)

    async def _report_sports(self, input_data: SportsDeskInput) -> SportsDeskOutput:
        if self.sports_reporter is not None:
            return await self.sports_reporter.run(input_data)
        async with TavilySearchClient() as search_client:
            return await SportsDeskAgent(search_client=search_client).run(input_data)

    async def _deduplicate_drafts(self) -> int:
        """Second pass over all unpublished drafts; earlier drafts win."""
        drafts = [
            draft
            for draft in await self.store.list_models(DRAFT_ARTICLES, Draft, order_by="created_at")
            if draft.status != DraftStatus.PUBLISHED
        ]
        await self.board.update_agent(
            DEDUPLICATOR,
            AgentStatus.WORKING,
            f"Checking {len(drafts)} drafts for duplicates",
            checked=0,
            remaining=len(drafts),
        )

        positions = await find_duplicate_positions(
            self.judge,
            [draft_candidate(draft.headline, draft.content) for draft in drafts],
            item_kind="draft news articles",
        )

        await self.queue.ensure_not_stopped()
        batch = self.store.batch(DRAFT_ARTICLES)
        for position in positions:
            batch.delete(drafts[position].id)
        await batch.commit()

        await self.board.update_agent(
            DEDUPLICATOR,
            AgentStatus.SUCCESS,
            f"Removed {len(positions)} duplicate drafts",
            checked=len(drafts),
            remaining=0,
        )
        return len(positions)

    async def _validate_drafts(self) -> int:
        """Promote good drafts to validated, delete the rest. Returns the validated total."""
        drafts = await self.store.list_models(
            DRAFT_ARTICLES, Draft, where={"status": DraftStatus.DRAFTED.value}
        )
        await self.board.update(current_agent=VALIDATOR, message=f"Validating {len(drafts)} drafts")

        batch = self.store.batch(DRAFT_ARTICLES)
        rejected = 0
        for draft in drafts:
            reason = draft_rejection_reason(draft)
            if reason is None:
                batch.update(draft.id, {"status": DraftStatus.VALIDATED.value})
                continue
            rejected += 1
            logger.info("Draft rejected", extra={"draft_id": draft.id, "reason": reason})
            batch.delete(draft.id)

        await self.queue.ensure_not_stopped()
        await batch.commit()

        valid_count = await self.store.count(
            DRAFT_ARTICLES, where={"status": DraftStatus.VALIDATED.value}
        )
        await self.board.update_agent(
            VALIDATOR,
            AgentStatus.SUCCESS,
            f"{valid_count} validated, {rejected} rejected",
        )
        return valid_count

    async def _admit(self, state: QueueState, *, drafted: int, valid_count: int) -> PhaseResult:
        """Advance to editorial, retry preparation, or fail for good."""
        required = settings.min_validated_articles
        drafts_made = state.drafts_made + drafted
        admission = {
            "attempt": state.attempt,
            "valid_count": valid_count,
            "required": required,
        }

        if valid_count >= required:
            logger.info("Admission passed", extra=admission)
            await self.queue.write(
                current_step=WorkflowStep.PHASE3_EDITOR,
                drafts_made=drafts_made,
                valid_count=valid_count,
            )
            return PhaseResult(
                success=True,
                message=f"{valid_count} articles validated",
                next_step=WorkflowStep.PHASE3_EDITOR,
            )

        if state.attempt < settings.max_attempts:
            logger.warning("Admission failed, retrying preparation", extra=admission)
            await self.queue.write(
                current_step=WorkflowStep.PHASE1_PREP,
                attempt=state.attempt + 1,
                drafts_made=drafts_made,
                valid_count=valid_count,
            )
            return PhaseResult(
                success=True,
                message=(
                    f"Only {valid_count} of {required} articles validated, "
                    f"starting attempt {state.attempt + 1}"
                ),
                next_step=WorkflowStep.PHASE1_PREP,
            )

        await self.queue.write(drafts_made=drafts_made, valid_count=valid_count)
        raise InsufficientContentError(required, state.attempt, valid_count)
