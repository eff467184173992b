"""Unit tests for the editorial timeout guard."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.config import settings
from app.models.workflow import QueueState, WorkflowStep
from app.services.timeout_guard import TimeoutGuard

NOW = datetime(2026, 1, 5, 5, 10, tzinfo=timezone.utc)


def _guard(queue, threshold: float = 230.0) -> TimeoutGuard:
    return TimeoutGuard(queue, threshold_seconds=threshold, clock=lambda: NOW)


def test_default_threshold_is_fraction_of_invocation_limit(queue) -> None:
    guard = TimeoutGuard(queue)

    assert guard.threshold_seconds == settings.invocation_time_limit_seconds * settings.timeout_guard_ratio
    assert guard.threshold_seconds < settings.invocation_time_limit_seconds


@pytest.mark.asyncio
async def test_proceeds_without_recorded_start(queue) -> None:
    state = QueueState(current_step=WorkflowStep.PHASE3_EDITOR)

    decision = await _guard(queue).check(state)

    assert decision.proceed is True


@pytest.mark.asyncio
async def test_proceeds_outside_editorial_steps(queue) -> None:
    state = QueueState(current_step=WorkflowStep.PHASE2_CONTENT)

    decision = await _guard(queue).check(state)

    assert decision.proceed is True


@pytest.mark.asyncio
async def test_skips_while_run_is_in_flight(queue) -> None:
    started = NOW - timedelta(seconds=60)
    await queue.reset(WorkflowStep.PHASE3_EDITOR)
    state = await queue.write(phase3_start_time=started)

    decision = await _guard(queue).check(state)

    assert decision.proceed is False
    assert decision.elapsed_seconds == 60
    stored = await queue.read()
    assert stored.current_step == WorkflowStep.PHASE3_EDITOR
    assert stored.phase3_start_time == started


@pytest.mark.asyncio
async def test_rewrites_to_resume_after_threshold(queue) -> None:
    await queue.reset(WorkflowStep.PHASE3_EDITOR)
    state = await queue.write(phase3_start_time=NOW - timedelta(seconds=231), valid_count=36)

    decision = await _guard(queue).check(state)

    assert decision.proceed is False
    assert decision.state.current_step == WorkflowStep.PHASE3_EDITOR_RESUME
    stored = await queue.read()
    assert stored.current_step == WorkflowStep.PHASE3_EDITOR_RESUME
    assert stored.phase3_start_time is None
    assert stored.valid_count == 36

    follow_up = await _guard(queue).check(stored)
    assert follow_up.proceed is True
