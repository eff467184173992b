"""Unit tests for the agent progress board."""

from __future__ import annotations

import asyncio

import pytest

from app.models.workflow import AgentStatus, WorkflowStatus
from app.services.progress_board import (
    AgentProgressBoard,
    agent_names,
    journalist_agent,
)


def test_agent_names_include_every_journalist() -> None:
    names = agent_names(3)

    assert names[:3] == ["scout", "deduplicator", "journalist"]
    assert [journalist_agent(index) for index in (1, 2, 3)] == names[3:6]
    assert names[-1] == "publisher"


@pytest.mark.asyncio
async def test_initialize_then_update_agent(board: AgentProgressBoard) -> None:
    await board.initialize()
    await board.update_agent(journalist_agent(2), AgentStatus.WORKING, "Drafting", drafted=3, remaining=4)

    state = await board.read()

    assert state.status == WorkflowStatus.RUNNING
    assert state.current_agent == "scout"
    record = state.progress[journalist_agent(2)]
    assert record.status == AgentStatus.WORKING
    assert record.drafted == 3
    assert record.remaining == 4
    assert state.progress[journalist_agent(1)].status == AgentStatus.IDLE


@pytest.mark.asyncio
async def test_concurrent_agent_updates_are_all_kept(board: AgentProgressBoard) -> None:
    await board.initialize()

    await asyncio.gather(
        *(
            board.update_agent(journalist_agent(index), AgentStatus.SUCCESS, f"Done {index}")
            for index in range(1, 6)
        )
    )

    state = await board.read()
    assert all(state.progress[journalist_agent(index)].status == AgentStatus.SUCCESS for index in range(1, 6))


@pytest.mark.asyncio
async def test_current_agent_can_be_cleared(board: AgentProgressBoard) -> None:
    await board.initialize()

    await board.update(current_agent=None, message="between phases")
    await board.update(status=WorkflowStatus.ERROR)

    state = await board.read()
    assert state.current_agent is None
    assert state.message == "between phases"
    assert state.status == WorkflowStatus.ERROR


@pytest.mark.asyncio
async def test_store_failures_do_not_raise(board: AgentProgressBoard, monkeypatch) -> None:
    async def broken(*args, **kwargs):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(board.store, "set", broken)
    monkeypatch.setattr(board.store, "get_model", broken)

    await board.initialize()
    await board.update_agent("scout", AgentStatus.ERROR, "boom")
    await board.reset_agents()

    assert await board.read() is None
