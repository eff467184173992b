"""Timeout guard for the long editorial phase.

The guard runs before an editorial step is dispatched. It never does the
expensive work itself, so its own check-and-rewrite always fits well inside
one invocation's budget.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from app.config import settings
from app.models.documents import utc_now
from app.models.workflow import EDITORIAL_STEPS, QueueState, WorkflowStep
from app.services.queue_state import QueueStateStore

logger = logging.getLogger(__name__)


@dataclass
class GuardDecision:
    proceed: bool
    message: str = ""
    elapsed_seconds: float | None = None
    state: QueueState | None = None


class TimeoutGuard:
    """Decide whether an editorial step may run in this cycle."""

    def __init__(
        self,
        queue: QueueStateStore,
        threshold_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.queue = queue
        self.threshold_seconds = (
            settings.timeout_guard_threshold_seconds if threshold_seconds is None else threshold_seconds
        )
        self.clock = clock

    async def check(self, state: QueueState) -> GuardDecision:
        """Inspect elapsed editorial time.

        - no recorded start: run the phase
        - started and under the threshold: an invocation is in flight, skip
        - started and at/over the threshold: rewrite to the resume step with
          the start time cleared and skip, so the next cycle starts fresh
        """
        if state.current_step not in EDITORIAL_STEPS or state.phase3_start_time is None:
            return GuardDecision(proceed=True, state=state)

        elapsed = (self.clock() - state.phase3_start_time).total_seconds()
        if elapsed < self.threshold_seconds:
            logger.info(
                "Editorial phase in flight, skipping cycle",
                extra={"elapsed_s": round(elapsed, 1), "threshold_s": self.threshold_seconds},
            )
            return GuardDecision(
                proceed=False,
                message=f"Editorial phase in progress ({elapsed:.0f}s elapsed)",
                elapsed_seconds=elapsed,
                state=state,
            )

        resumed = await self.queue.write(
            current_step=WorkflowStep.PHASE3_EDITOR_RESUME,
            phase3_start_time=None,
        )
        logger.warning(
            "Editorial phase exceeded time budget, scheduling resume",
            extra={"elapsed_s": round(elapsed, 1), "threshold_s": self.threshold_seconds},
        )
        return GuardDecision(
            proceed=False,
            message=f"Editorial phase timed out after {elapsed:.0f}s, resuming next cycle",
            elapsed_seconds=elapsed,
            state=resumed,
        )
