"""Base class for workflow phase executors."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.core.exceptions import WorkflowStoppedError
from app.models.workflow import AgentStatus, QueueState, WorkflowStatus, WorkflowStep
from app.persistence.document_store import DocumentStore, get_document_store
from app.services.progress_board import AgentProgressBoard, get_progress_board
from app.services.queue_state import QueueStateStore

logger = logging.getLogger(__name__)


@dataclass
class PhaseResult:
    """Result of one phase invocation."""

    success: bool
    message: str = ""
    next_step: WorkflowStep | None = None
    completed: bool = False
    error: str | None = None


class BasePhaseExecutor(ABC):
    """Abstract base class for the three workflow phases.

    Each phase should:
    1. Define phase_name and the board agent it reports as
    2. Implement _execute, advancing the queue state itself on success

    ``run`` never raises: failures are written to the queue as the ``error``
    step and returned as an unsuccessful ``PhaseResult``. A stop observed
    mid-phase leaves the stored stop message untouched.
    """

    phase_name: str
    board_agent: str

    def __init__(
        self,
        queue: QueueStateStore | None = None,
        store: DocumentStore | None = None,
        board: AgentProgressBoard | None = None,
    ) -> None:
        self.store = store or get_document_store()
        self.queue = queue or QueueStateStore(self.store)
        self.board = board or get_progress_board()

    async def run(self, state: QueueState) -> PhaseResult:
        """Main execution method with error handling and timing."""
        phase_info = {
            "phase": self.phase_name,
            "step": state.current_step.value,
            "attempt": state.attempt,
        }
        logger.info("Phase started", extra=phase_info)
        t0 = time.perf_counter()

        try:
            result = await self._execute(state)
        except WorkflowStoppedError as e:
            logger.warning("Phase stopped", extra={**phase_info, "reason": e.message})
            await self.board.update(status=WorkflowStatus.ERROR, message=e.message)
            return PhaseResult(
                success=False,
                message=f"{self.phase_name} stopped",
                next_step=WorkflowStep.ERROR,
                error=e.message,
            )
        except Exception as e:
            error_message = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.warning(
                "Phase failed",
                extra={**phase_info, "error": error_message},
                exc_info=True,
            )
            await self._record_failure(error_message)
            return PhaseResult(
                success=False,
                message=f"{self.phase_name} failed",
                next_step=WorkflowStep.ERROR,
                error=error_message,
            )

        logger.info(
            "Phase finished",
            extra={
                **phase_info,
                "success": result.success,
                "next_step": result.next_step.value if result.next_step else None,
                "duration_s": round(time.perf_counter() - t0, 2),
            },
        )
        return result

    @abstractmethod
    async def _execute(self, state: QueueState) -> PhaseResult:
        """Override with phase-specific logic."""
        pass

    async def _record_failure(self, error_message: str) -> None:
        try:
            current = await self.queue.read()
            # A stop that landed first keeps its own message
            if current is None or current.current_step != WorkflowStep.ERROR:
                await self.queue.write(current_step=WorkflowStep.ERROR, error=error_message)
        except Exception:
            logger.exception("Failed to record phase failure", extra={"phase": self.phase_name})
        await self.board.update_agent(self.board_agent, AgentStatus.ERROR, error_message)
        await self.board.update(status=WorkflowStatus.ERROR, message=error_message)
