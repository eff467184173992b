"""Operator-facing agent progress board.

The board is observability only: nothing in the workflow reads it to make a
decision, so every write is best-effort and failures are logged, not raised.
"""

from __future__ import annotations

import asyncio
import logging

from app.config import settings
from app.models.documents import utc_now
from app.models.workflow import AgentProgress, AgentStatus, WorkflowBoard, WorkflowStatus
from app.persistence.document_store import WORKFLOW_STATE, DocumentStore, get_document_store

logger = logging.getLogger(__name__)

BOARD_DOC_ID = "current_workflow"

SCOUT = "scout"
DEDUPLICATOR = "deduplicator"
JOURNALIST = "journalist"
SPORTS_DESK = "sports_desk"
VALIDATOR = "validator"
EDITOR = "editor"
PUBLISHER = "publisher"

UNSET: object = object()


def journalist_agent(worker_index: int) -> str:
    return f"{JOURNALIST}_{worker_index}"


def agent_names(journalist_count: int | None = None) -> list[str]:
    """All board records, in pipeline order."""
    count = journalist_count or settings.journalist_count
    return [
        SCOUT,
        DEDUPLICATOR,
        JOURNALIST,
        *(journalist_agent(index) for index in range(1, count + 1)),
        SPORTS_DESK,
        VALIDATOR,
        EDITOR,
        PUBLISHER,
    ]


def _idle_progress(journalist_count: int | None = None) -> dict[str, AgentProgress]:
    return {name: AgentProgress() for name in agent_names(journalist_count)}


class AgentProgressBoard:
    """Best-effort writer for the ``workflow_state`` board document."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store or get_document_store()
        # Journalists update their own records concurrently
        self._lock = asyncio.Lock()

    async def read(self) -> WorkflowBoard | None:
        try:
            return await self.store.get_model(WORKFLOW_STATE, BOARD_DOC_ID, WorkflowBoard)
        except Exception:
            logger.warning("Failed to read progress board", exc_info=True)
            return None

    async def initialize(self, message: str = "Workflow initiated...") -> None:
        """Start a fresh running board with every agent idle."""
        board = WorkflowBoard(
            status=WorkflowStatus.RUNNING,
            current_agent=SCOUT,
            message=message,
            progress=_idle_progress(),
        )
        await self._save(board)

    async def clear(self, message: str = "") -> None:
        """Unconditionally overwrite the board with its idle shape."""
        board = WorkflowBoard(message=message, progress=_idle_progress())
        await self._save(board)

    async def update(
        self,
        *,
        status: WorkflowStatus | None = None,
        current_agent: str | None | object = UNSET,
        message: str | None = None,
    ) -> None:
        async with self._lock:
            board = await self._load()
            if status is not None:
                board.status = status
            if current_agent is not UNSET:
                board.current_agent = current_agent  # type: ignore[assignment]
            if message is not None:
                board.message = message
            await self._save(board)

    async def update_agent(
        self,
        agent: str,
        status: AgentStatus,
        message: str,
        *,
        drafted: int | None = None,
        checked: int | None = None,
        remaining: int | None = None,
    ) -> None:
        """Overwrite one agent's record. The most recent write wins."""
        async with self._lock:
            board = await self._load()
            record = board.progress.get(agent) or AgentProgress()
            record.status = status
            record.message = message
            if drafted is not None:
                record.drafted = drafted
            if checked is not None:
                record.checked = checked
            if remaining is not None:
                record.remaining = remaining
            board.progress[agent] = record
            await self._save(board)

    async def reset_agents(
        self,
        *,
        status: WorkflowStatus = WorkflowStatus.SUCCESS,
        message: str = "",
    ) -> None:
        """Return every agent record to idle while keeping the run summary."""
        async with self._lock:
            board = await self._load()
            board.status = status
            board.current_agent = None
            board.message = message
            board.progress = _idle_progress()
            await self._save(board)

    async def _load(self) -> WorkflowBoard:
        board = await self.read()
        if board is None:
            return WorkflowBoard(progress=_idle_progress())
        return board

    async def _save(self, board: WorkflowBoard) -> None:
        board.last_updated = utc_now()
        try:
            await self.store.set(
                WORKFLOW_STATE,
                BOARD_DOC_ID,
                board.model_dump(mode="json", exclude_none=True),
            )
        except Exception:
            logger.warning(
                "Failed to write progress board",
                extra={"status": board.status.value, "current_agent": board.current_agent},
                exc_info=True,
            )


_progress_board: AgentProgressBoard | None = None


def get_progress_board() -> AgentProgressBoard:
    """Get singleton progress board."""
    global _progress_board
    if _progress_board is None:
        _progress_board = AgentProgressBoard()
    return _progress_board
