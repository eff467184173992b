"""Workflow trigger loop process entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from contextlib import suppress

from app.config import settings
from app.core.logging import setup_logging
from app.core.redis import close_redis
from app.services.workflow_orchestrator import (
    StepOutcome,
    WorkflowOrchestrator,
    get_workflow_orchestrator,
)

logger = logging.getLogger(__name__)


class WorkflowTriggerLoop:
    """Fixed-interval driver for the step orchestrator.

    At most one cycle runs at a time: a tick that arrives while the previous
    cycle is still executing is skipped, not queued. In manual mode the loop
    acts as the operator's poller and drives manual runs that the scheduled
    path cedes.
    """

    def __init__(
        self,
        *,
        orchestrator: WorkflowOrchestrator | None = None,
        interval_seconds: float | None = None,
        manual: bool = False,
    ) -> None:
        self.orchestrator = orchestrator or get_workflow_orchestrator()
        self.manual = manual
        default_interval = (
            settings.manual_poll_interval_seconds if manual else settings.scheduler_interval_seconds
        )
        self.interval_seconds = max(0.1, float(interval_seconds or default_interval))
        self._cycle_lock = asyncio.Lock()
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    async def start(self) -> None:
        """Start the loop task if not already running."""
        if self.is_running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name="workflow-trigger-loop")
        logger.info(
            "Workflow trigger loop started",
            extra={"interval_s": self.interval_seconds, "manual": self.manual},
        )

    async def stop(self) -> None:
        """Stop the loop task."""
        if self._task is None:
            return
        self._stopping.set()
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Workflow trigger loop stopped")

    async def run_cycle(self) -> StepOutcome | None:
        """Trigger one orchestrator step unless a cycle is already running."""
        if self._cycle_lock.locked():
            logger.info("Previous workflow cycle still running, skipping tick")
            return None

        async with self._cycle_lock:
            if self.manual:
                outcome = await self.orchestrator.execute_next_step()
            else:
                outcome = await self.orchestrator.execute_scheduled_step()

        logger.info(
            "Workflow cycle finished",
            extra={
                "success": outcome.success,
                "current_step": outcome.current_step.value,
                "next_step": outcome.next_step.value if outcome.next_step else None,
                "completed": outcome.completed,
                "error": outcome.error,
            },
        )
        return outcome

    async def _loop(self) -> None:
        try:
            while not self._stopping.is_set():
                try:
                    await self.run_cycle()
                except Exception:
                    logger.exception("Workflow cycle failed")
                with suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
        except asyncio.CancelledError:
            pass


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between workflow triggers (defaults to the configured scheduler interval).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Trigger a single workflow step and exit.",
    )
    parser.add_argument(
        "--manual",
        action="store_true",
        help="Act as the manual-run poller instead of the scheduler.",
    )
    return parser.parse_args()


async def run_loop(*, interval: float | None, once: bool, manual: bool) -> None:
    """Run the trigger loop and block until a shutdown signal arrives."""
    setup_logging()
    trigger_loop = WorkflowTriggerLoop(interval_seconds=interval, manual=manual)

    if once:
        try:
            await trigger_loop.run_cycle()
        finally:
            await close_redis()
        return

    await trigger_loop.start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        if not stop_event.is_set():
            logger.info("Shutdown signal received")
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _request_stop)

    try:
        await stop_event.wait()
    finally:
        logger.info("Stopping workflow trigger loop")
        await trigger_loop.stop()
        await close_redis()


def main() -> int:
    """Run the worker process."""
    args = parse_args()
    try:
        asyncio.run(run_loop(interval=args.interval, once=args.once, manual=args.manual))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
