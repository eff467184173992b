"""Step orchestrator: one phase dispatch per external trigger."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from app.config import settings
from app.core.exceptions import UnknownWorkflowStepError
from app.core.logging import bind_workflow_context
from app.models.workflow import EDITORIAL_STEPS, QueueState, WorkflowStatus, WorkflowStep
from app.persistence.document_store import (
    DRAFT_ARTICLES,
    RAW_LEADS,
    DocumentStore,
    get_document_store,
    shard_collection,
)
from app.services.phases.base_phase import BasePhaseExecutor, PhaseResult
from app.services.phases.content_creation import ContentCreationPhase
from app.services.phases.editorial import EditorialPhase
from app.services.phases.preparation import PreparationPhase
from app.services.progress_board import AgentProgressBoard, get_progress_board
from app.services.queue_state import STOP_SENTINEL, QueueStateStore
from app.services.timeout_guard import TimeoutGuard

logger = logging.getLogger(__name__)

KILL_MESSAGE = "Emergency stop activated - all processes terminated"


@dataclass
class StepOutcome:
    """What one trigger did, as reported to the scheduler."""

    success: bool
    message: str
    current_step: WorkflowStep
    next_step: WorkflowStep | None = None
    completed: bool | None = None
    error: str | None = None

    @classmethod
    def from_phase(cls, current_step: WorkflowStep, result: PhaseResult) -> StepOutcome:
        return cls(
            success=result.success,
            message=result.message,
            current_step=current_step,
            next_step=result.next_step,
            completed=result.completed or None,
            error=result.error,
        )


class WorkflowOrchestrator:
    """Reads the queue state and dispatches to the matching phase executor.

    ``execute_next_step`` is an idempotent poll: it is safe to call with no
    work pending and it never raises.
    """

    def __init__(
        self,
        queue: QueueStateStore | None = None,
        store: DocumentStore | None = None,
        board: AgentProgressBoard | None = None,
        phases: dict[WorkflowStep, BasePhaseExecutor] | None = None,
        guard: TimeoutGuard | None = None,
    ) -> None:
        self.store = store or get_document_store()
        self.queue = queue or QueueStateStore(self.store)
        self.board = board or get_progress_board()
        self._phases = phases
        self.guard = guard or TimeoutGuard(self.queue)

    @property
    def phases(self) -> dict[WorkflowStep, BasePhaseExecutor]:
        if self._phases is None:
            self._phases = self._build_default_phases()
        return self._phases

    def _build_default_phases(self) -> dict[WorkflowStep, BasePhaseExecutor]:
        dependencies = {"queue": self.queue, "store": self.store, "board": self.board}
        editorial = EditorialPhase(**dependencies)
        return {
            WorkflowStep.PHASE1_PREP: PreparationPhase(**dependencies),
            WorkflowStep.PHASE2_CONTENT: ContentCreationPhase(**dependencies),
            WorkflowStep.PHASE3_EDITOR: editorial,
            WorkflowStep.PHASE3_EDITOR_RESUME: editorial,
        }

    async def execute_next_step(self) -> StepOutcome:
        """Run at most one phase for the current queue state."""
        current_step = WorkflowStep.IDLE
        try:
            state = await self.queue.read()
            if state is None or state.current_step == WorkflowStep.IDLE:
                return StepOutcome(
                    success=True,
                    message="No workflow running",
                    current_step=WorkflowStep.IDLE,
                    completed=True,
                )
            current_step = state.current_step

            if current_step == WorkflowStep.COMPLETE:
                await self.queue.reset(WorkflowStep.IDLE)
                return StepOutcome(
                    success=True,
                    message="Workflow complete",
                    current_step=current_step,
                    next_step=WorkflowStep.IDLE,
                    completed=True,
                )

            if current_step == WorkflowStep.ERROR:
                return StepOutcome(
                    success=False,
                    message="Workflow in error state",
                    current_step=current_step,
                    error=state.error,
                )

            if current_step in EDITORIAL_STEPS:
                decision = await self.guard.check(state)
                if not decision.proceed:
                    return StepOutcome(
                        success=True,
                        message=decision.message,
                        current_step=current_step,
                        next_step=decision.state.current_step if decision.state else current_step,
                    )

            phase = self.phases.get(current_step)
            if phase is None:
                raise UnknownWorkflowStepError(current_step.value)

            logger.info(
                "Executing workflow step",
                extra={"step": current_step.value, "attempt": state.attempt},
            )
            with bind_workflow_context(
                step=current_step.value, attempt=state.attempt, manual=state.is_manual_run
            ):
                result = await phase.run(state)
            return StepOutcome.from_phase(current_step, result)
        except Exception as e:
            logger.exception("Workflow step dispatch failed", extra={"step": current_step.value})
            return StepOutcome(
                success=False,
                message="Workflow step failed",
                current_step=current_step,
                error=getattr(e, "message", None) or str(e),
            )

    async def execute_scheduled_step(self) -> StepOutcome:
        """Scheduler entry point: cede active manual runs to their own poller."""
        try:
            state = await self.queue.read()
        except Exception as e:
            logger.exception("Failed to read queue state")
            return StepOutcome(
                success=False,
                message="Workflow step failed",
                current_step=WorkflowStep.IDLE,
                error=str(e),
            )

        if state is not None and state.is_manual_run and state.is_active:
            logger.info("Manual run in progress, scheduler skipping", extra={"step": state.current_step.value})
            return StepOutcome(
                success=True,
                message="Manual run in progress - manual poller handling steps",
                current_step=state.current_step,
            )
        return await self.execute_next_step()

    async def run_until_terminal(
        self,
        *,
        poll_interval_seconds: float | None = None,
        max_steps: int | None = None,
    ) -> StepOutcome:
        """Drive steps back to back until the run completes or fails."""
        interval = settings.manual_poll_interval_seconds if poll_interval_seconds is None else poll_interval_seconds
        steps = 0
        while True:
            outcome = await self.execute_next_step()
            steps += 1
            if outcome.completed or not outcome.success:
                return outcome
            if max_steps is not None and steps >= max_steps:
                return outcome
            await asyncio.sleep(interval)

    async def start(self, *, manual: bool = False) -> QueueState:
        """Reset the queue to the first phase. Does not wait for any phase."""
        state = await self.queue.reset(WorkflowStep.PHASE1_PREP, is_manual_run=manual)
        await self.board.initialize()
        logger.info("Workflow started", extra={"is_manual_run": manual})
        return state

    async def stop(self) -> QueueState:
        """Stop an active run with the stop sentinel, or clear a failed one."""
        state = await self.queue.read()
        if state is not None and state.is_active:
            stopped = await self.queue.write(
                current_step=WorkflowStep.ERROR,
                error=STOP_SENTINEL,
                phase3_start_time=None,
            )
            await self.board.update(status=WorkflowStatus.STOPPING, message=STOP_SENTINEL)
            logger.warning("Workflow stop requested", extra={"step": state.current_step.value})
            return stopped

        cleared = await self.queue.reset(WorkflowStep.IDLE)
        await self.board.update(status=WorkflowStatus.IDLE, current_agent=None, message="Workflow stopped")
        return cleared

    async def kill(self) -> QueueState:
        """Unconditionally reset queue and board and purge in-flight data."""
        state = await self.queue.reset(WorkflowStep.IDLE)
        await self.board.clear(KILL_MESSAGE)

        purged = await self.store.clear(RAW_LEADS)
        purged += await self.store.clear(DRAFT_ARTICLES)
        for index in range(1, settings.journalist_count + 1):
            purged += await self.store.clear(shard_collection(index))
        logger.warning("Kill switch activated", extra={"documents_purged": purged})
        return state


_workflow_orchestrator: WorkflowOrchestrator | None = None


def get_workflow_orchestrator() -> WorkflowOrchestrator:
    """Get singleton workflow orchestrator."""
    global _workflow_orchestrator
    if _workflow_orchestrator is None:
        _workflow_orchestrator = WorkflowOrchestrator()
    return _workflow_orchestrator
