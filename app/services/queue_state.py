"""Persisted workflow queue state backed by the document store."""

from __future__ import annotations

import logging
from datetime import datetime

from app.core.exceptions import WorkflowStoppedError
from app.models.documents import utc_now
from app.models.workflow import EDITORIAL_STEPS, QueueState, WorkflowStep
from app.persistence.document_store import WORKFLOW_QUEUE, DocumentStore, get_document_store

logger = logging.getLogger(__name__)

QUEUE_DOC_ID = "current"
STOP_SENTINEL = "Workflow stopped by operator"
UNSET: object = object()


class QueueStateStore:
    """Read and merge-forward writes of the single queue state document."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store or get_document_store()

    async def read(self) -> QueueState | None:
        return await self.store.get_model(WORKFLOW_QUEUE, QUEUE_DOC_ID, QueueState)

    async def write(
        self,
        *,
        current_step: WorkflowStep | None = None,
        attempt: int | None = None,
        drafts_made: int | None = None,
        valid_count: int | None = None,
        is_manual_run: bool | None = None,
        error: str | None = None,
        phase3_start_time: datetime | None | object = UNSET,
    ) -> QueueState:
        """Merge the given fields over the stored state and upsert the result.

        ``error`` survives only while the resulting step is ``error``; it is
        omitted from the document otherwise. ``phase3_start_time`` is kept
        only while the editorial phase is in flight.

        A stored ``error`` state is sticky: moving to any other step raises
        WorkflowStoppedError, so ``reset`` is the only way out of it.
        """
        previous = await self.read() or QueueState()
        if previous.current_step == WorkflowStep.ERROR and current_step not in (None, WorkflowStep.ERROR):
            raise WorkflowStoppedError(previous.error)
        payload = previous.model_dump()

        updates = {
            "current_step": current_step,
            "attempt": attempt,
            "drafts_made": drafts_made,
            "valid_count": valid_count,
            "is_manual_run": is_manual_run,
            "error": error,
        }
        for key, value in updates.items():
            if value is not None:
                payload[key] = value
        if phase3_start_time is not UNSET:
            payload["phase3_start_time"] = phase3_start_time
        if payload["current_step"] not in EDITORIAL_STEPS:
            payload["phase3_start_time"] = None
        payload["last_updated"] = utc_now()

        state = QueueState.model_validate(payload)
        await self.store.set(WORKFLOW_QUEUE, QUEUE_DOC_ID, state.to_document())
        logger.debug(
            "Queue state written",
            extra={"current_step": state.current_step.value, "attempt": state.attempt},
        )
        return state

    async def reset(
        self,
        current_step: WorkflowStep = WorkflowStep.IDLE,
        *,
        is_manual_run: bool = False,
    ) -> QueueState:
        """Overwrite the queue with a fresh state at ``current_step``."""
        state = QueueState(current_step=current_step, is_manual_run=is_manual_run)
        await self.store.set(WORKFLOW_QUEUE, QUEUE_DOC_ID, state.to_document())
        logger.info(
            "Queue state reset",
            extra={"current_step": state.current_step.value, "is_manual_run": is_manual_run},
        )
        return state

    async def ensure_not_stopped(self) -> QueueState:
        """Raise if the queue moved to ``error`` (stop signal or failure)."""
        state = await self.read()
        if state is not None and state.current_step == WorkflowStep.ERROR:
            raise WorkflowStoppedError(state.error)
        return state or QueueState()
