"""Workflow control schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.workflow import AgentStatus, WorkflowStatus, WorkflowStep


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys for the scheduler and dashboard."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class StepResponse(CamelModel):
    """Schema for one scheduler trigger."""

    success: bool
    message: str
    current_step: WorkflowStep
    next_step: WorkflowStep | None = None
    completed: bool | None = None
    error: str | None = None


class StartWorkflowRequest(CamelModel):
    """Schema for starting a workflow run."""

    manual: bool = False


class WorkflowActionResponse(CamelModel):
    """Schema for start/stop/kill responses."""

    success: bool
    message: str
    current_step: WorkflowStep


class QueueStateResponse(CamelModel):
    """Schema for the persisted queue state."""

    current_step: WorkflowStep
    attempt: int
    drafts_made: int
    valid_count: int
    phase3_start_time: datetime | None = None
    error: str | None = None
    is_manual_run: bool = False
    last_updated: datetime


class AgentProgressResponse(CamelModel):
    status: AgentStatus
    message: str = ""
    drafted: int | None = None
    checked: int | None = None
    remaining: int | None = None


class WorkflowBoardResponse(CamelModel):
    status: WorkflowStatus
    current_agent: str | None = None
    message: str = ""
    progress: dict[str, AgentProgressResponse] = {}
    started_at: datetime
    last_updated: datetime


class WorkflowStatusResponse(CamelModel):
    """Schema for the operator status view."""

    queue: QueueStateResponse | None = None
    board: WorkflowBoardResponse | None = None
