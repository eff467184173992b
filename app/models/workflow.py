"""Workflow control state and the observability board."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from app.models.documents import utc_now


class WorkflowStep(StrEnum):
    IDLE = "idle"
    PHASE1_PREP = "phase1_prep"
    PHASE2_CONTENT = "phase2_content"
    PHASE3_EDITOR = "phase3_editor"
    PHASE3_EDITOR_RESUME = "phase3_editor_resume"
    COMPLETE = "complete"
    ERROR = "error"


ACTIVE_STEPS = frozenset(
    {
        WorkflowStep.PHASE1_PREP,
        WorkflowStep.PHASE2_CONTENT,
        WorkflowStep.PHASE3_EDITOR,
        WorkflowStep.PHASE3_EDITOR_RESUME,
    }
)
EDITORIAL_STEPS = frozenset({WorkflowStep.PHASE3_EDITOR, WorkflowStep.PHASE3_EDITOR_RESUME})


class QueueState(BaseModel):
    """Single persisted record describing which phase runs next.

    ``error`` only exists in the ``error`` step and ``phase3_start_time`` only
    while the editorial phase is in flight; both are omitted from the stored
    document otherwise.
    """

    current_step: WorkflowStep = WorkflowStep.IDLE
    attempt: int = Field(default=1, ge=1)
    drafts_made: int = Field(default=0, ge=0)
    valid_count: int = Field(default=0, ge=0)
    phase3_start_time: datetime | None = None
    error: str | None = None
    is_manual_run: bool = False
    last_updated: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _error_only_in_error_step(self) -> QueueState:
        if self.current_step != WorkflowStep.ERROR:
            self.error = None
        elif not self.error:
            self.error = "Unknown error"
        return self

    @property
    def is_active(self) -> bool:
        return self.current_step in ACTIVE_STEPS

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class AgentStatus(StrEnum):
    IDLE = "idle"
    WORKING = "working"
    SUCCESS = "success"
    ERROR = "error"
    DISABLED = "disabled"


class WorkflowStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    STOPPING = "stopping"


class AgentProgress(BaseModel):
    """Latest status of one worker; most recent write wins."""

    status: AgentStatus = AgentStatus.IDLE
    message: str = ""
    drafted: int | None = None
    checked: int | None = None
    remaining: int | None = None


class WorkflowBoard(BaseModel):
    """Operator-facing progress document. Never read as a control input."""

    status: WorkflowStatus = WorkflowStatus.IDLE
    current_agent: str | None = None
    message: str = ""
    progress: dict[str, AgentProgress] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now)
