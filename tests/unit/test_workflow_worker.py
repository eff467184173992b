"""Unit tests for the workflow trigger loop."""

from __future__ import annotations

import asyncio

import pytest

from app.models.workflow import WorkflowStep
from app.services.workflow_orchestrator import StepOutcome
from app.workers.workflow_worker import WorkflowTriggerLoop


class RecordingOrchestrator:
    def __init__(self, *, block: asyncio.Event | None = None) -> None:
        self.block = block
        self.scheduled = 0
        self.manual = 0

    async def execute_scheduled_step(self) -> StepOutcome:
        self.scheduled += 1
        if self.block is not None:
            await self.block.wait()
        return StepOutcome(success=True, message="ok", current_step=WorkflowStep.IDLE, completed=True)

    async def execute_next_step(self) -> StepOutcome:
        self.manual += 1
        return StepOutcome(
            success=True,
            message="ok",
            current_step=WorkflowStep.PHASE1_PREP,
            next_step=WorkflowStep.PHASE2_CONTENT,
        )


@pytest.mark.asyncio
async def test_tick_is_skipped_while_previous_cycle_runs() -> None:
    release = asyncio.Event()
    orchestrator = RecordingOrchestrator(block=release)
    trigger_loop = WorkflowTriggerLoop(orchestrator=orchestrator, interval_seconds=60)

    first = asyncio.create_task(trigger_loop.run_cycle())
    await asyncio.sleep(0)
    assert trigger_loop.cycle_in_progress is True

    skipped = await trigger_loop.run_cycle()
    release.set()
    outcome = await first

    assert skipped is None
    assert outcome.success is True
    assert orchestrator.scheduled == 1
    assert trigger_loop.cycle_in_progress is False


@pytest.mark.asyncio
async def test_manual_loop_uses_unconditional_step() -> None:
    orchestrator = RecordingOrchestrator()
    trigger_loop = WorkflowTriggerLoop(orchestrator=orchestrator, interval_seconds=1, manual=True)

    outcome = await trigger_loop.run_cycle()

    assert outcome.next_step == WorkflowStep.PHASE2_CONTENT
    assert orchestrator.manual == 1
    assert orchestrator.scheduled == 0


@pytest.mark.asyncio
async def test_start_and_stop_loop() -> None:
    orchestrator = RecordingOrchestrator()
    trigger_loop = WorkflowTriggerLoop(orchestrator=orchestrator, interval_seconds=0.1)

    await trigger_loop.start()
    await trigger_loop.start()
    await asyncio.sleep(0.05)
    assert trigger_loop.is_running is True

    await trigger_loop.stop()

    assert trigger_loop.is_running is False
    assert orchestrator.scheduled >= 1


def test_interval_has_a_floor() -> None:
    trigger_loop = WorkflowTriggerLoop(orchestrator=RecordingOrchestrator(), interval_seconds=0.01)

    assert trigger_loop.interval_seconds == 0.1
