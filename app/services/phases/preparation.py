"""Phase 1: gather, deduplicate and shard leads for the journalists."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TypeVar

from app.agents.duplicate_judge import DuplicateJudgeAgent
from app.config import settings
from app.core.exceptions import ShardReconciliationError
from app.integrations.newsdata import NewsdataClient
from app.models.documents import Draft, DraftStatus, Lead, utc_now
from app.models.workflow import AgentStatus, QueueState, WorkflowStatus, WorkflowStep
from app.persistence.document_store import (
    DRAFT_ARTICLES,
    RAW_LEADS,
    DocumentStore,
    new_document_id,
    shard_collection,
)
from app.services.deduplication import find_duplicate_positions, lead_candidate
from app.services.phases.base_phase import BasePhaseExecutor, PhaseResult
from app.services.phases.contracts import DuplicateJudge, LeadSource
from app.services.progress_board import DEDUPLICATOR, SCOUT, AgentProgressBoard
from app.services.queue_state import QueueStateStore

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")


def partition(items: Sequence[ItemT], worker_count: int) -> list[list[ItemT]]:
    """Split ``items`` into ``worker_count`` contiguous shards of ceil(n / w) items.

    Trailing shards may be short or empty; every item lands in exactly one shard.
    """
    if worker_count < 1:
        raise ValueError("worker_count must be >= 1")
    shard_size = -(-len(items) // worker_count)
    if shard_size == 0:
        return [[] for _ in range(worker_count)]
    return [list(items[index * shard_size : (index + 1) * shard_size]) for index in range(worker_count)]


class PreparationPhase(BasePhaseExecutor):
    """Purge, scout, deduplicate and shard leads.

    The first attempt casts wide (``initial_lead_limit``); retries top up with
    ``top_up_lead_limit`` and keep drafts already validated by earlier attempts.
    """

    phase_name = "Preparation"
    board_agent = SCOUT

    def __init__(
        self,
        queue: QueueStateStore | None = None,
        store: DocumentStore | None = None,
        board: AgentProgressBoard | None = None,
        lead_source: LeadSource | None = None,
        judge: DuplicateJudge | None = None,
        journalist_count: int | None = None,
    ) -> None:
        super().__init__(queue=queue, store=store, board=board)
        self.lead_source = lead_source
        self.judge = judge or DuplicateJudgeAgent()
        self.journalist_count = journalist_count or settings.journalist_count

    async def _execute(self, state: QueueState) -> PhaseResult:
        is_retry = state.attempt > 1
        limit = settings.top_up_lead_limit if is_retry else settings.initial_lead_limit

        await self.board.update(
            status=WorkflowStatus.RUNNING,
            current_agent=SCOUT,
            message=f"Attempt {state.attempt}: preparing leads",
        )

        await self.queue.ensure_not_stopped()
        await self._purge(keep_validated=is_retry)

        fetched = await self._scout(limit)
        survivors = await self._deduplicate()
        await self._shard(survivors)

        await self.queue.write(current_step=WorkflowStep.PHASE2_CONTENT)
        return PhaseResult(
            success=True,
            message=f"Prepared {len(survivors)} leads from {fetched} fetched",
            next_step=WorkflowStep.PHASE2_CONTENT,
        )

    async def _purge(self, *, keep_validated: bool) -> None:
        """Remove leftovers from earlier runs or attempts."""
        leads_removed = await self.store.clear(RAW_LEADS)
        for index in range(1, self.journalist_count + 1):
            leads_removed += await self.store.clear(shard_collection(index))

        if keep_validated:
            drafts = await self.store.list_models(DRAFT_ARTICLES, Draft)
            batch = self.store.batch(DRAFT_ARTICLES)
            for draft in drafts:
                if draft.status != DraftStatus.VALIDATED:
                    batch.delete(draft.id)
            drafts_removed = len(batch)
            await batch.commit()
        else:
            drafts_removed = await self.store.clear(DRAFT_ARTICLES)

        logger.info(
            "Purged previous run data",
            extra={
                "leads_removed": leads_removed,
                "drafts_removed": drafts_removed,
                "kept_validated": keep_validated,
            },
        )

    async def _scout(self, limit: int) -> int:
        await self.board.update_agent(SCOUT, AgentStatus.WORKING, f"Searching for up to {limit} leads")

        source = self.lead_source
        if source is None:
            async with NewsdataClient() as client:
                candidates = await client.fetch(settings.lead_topics, limit)
        else:
            candidates = await source.fetch(settings.lead_topics, limit)
        candidates = candidates[:limit]

        await self.queue.ensure_not_stopped()
        batch = self.store.batch(RAW_LEADS)
        for candidate in candidates:
            lead = Lead(
                topic=candidate.topic,
                title=candidate.title,
                content=candidate.content,
                url=candidate.url,
                image_url=candidate.image_url,
            )
            batch.set(new_document_id(), lead.to_document())
        await batch.commit()

        logger.info("Leads scouted", extra={"limit": limit, "count": len(candidates)})
        await self.board.update_agent(SCOUT, AgentStatus.SUCCESS, f"Found {len(candidates)} leads")
        return len(candidates)

    async def _deduplicate(self) -> list[Lead]:
        await self.board.update(current_agent=DEDUPLICATOR, message="Checking leads for duplicates")
        leads = await self.store.list_models(RAW_LEADS, Lead, where={"checked": False}, order_by="created_at")
        await self.board.update_agent(
            DEDUPLICATOR,
            AgentStatus.WORKING,
            f"Checking {len(leads)} leads",
            checked=0,
            remaining=len(leads),
        )

        positions = await find_duplicate_positions(
            self.judge,
            [lead_candidate(lead.title) for lead in leads],
            item_kind="news article titles",
        )
        duplicate_ids = {leads[position].id for position in positions}

        await self.queue.ensure_not_stopped()
        checked_at = utc_now()
        batch = self.store.batch(RAW_LEADS)
        survivors: list[Lead] = []
        for lead in leads:
            if lead.id in duplicate_ids:
                batch.delete(lead.id)
                continue
            batch.update(lead.id, {"checked": True, "checked_at": checked_at.isoformat()})
            survivors.append(lead.model_copy(update={"checked": True, "checked_at": checked_at}))
        await batch.commit()

        await self.board.update_agent(
            DEDUPLICATOR,
            AgentStatus.SUCCESS,
            f"Removed {len(duplicate_ids)} duplicates, {len(survivors)} leads remain",
            checked=len(leads),
            remaining=0,
        )
        return survivors

    async def _shard(self, survivors: list[Lead]) -> None:
        """Copy survivors into per-journalist shards, verify, then drop the pool."""
        shards = partition(survivors, self.journalist_count)

        await self.queue.ensure_not_stopped()
        for index, shard in enumerate(shards, start=1):
            batch = self.store.batch(shard_collection(index))
            for lead in shard:
                batch.set(lead.id, lead.to_document())
            await batch.commit()

        actual = 0
        for index in range(1, self.journalist_count + 1):
            actual += await self.store.count(shard_collection(index))
        if actual != len(survivors):
            raise ShardReconciliationError(expected=len(survivors), actual=actual)

        await self.store.clear(RAW_LEADS)
        logger.info(
            "Leads sharded",
            extra={"leads": len(survivors), "shard_sizes": [len(shard) for shard in shards]},
        )
