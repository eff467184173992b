"""Typed records for the newsroom document collections."""

from app.models.documents import (
    DocumentBase,
    Draft,
    DraftStatus,
    Edition,
    Lead,
    SportsBox,
    SportsDataset,
)
from app.models.workflow import (
    AgentProgress,
    AgentStatus,
    QueueState,
    WorkflowBoard,
    WorkflowStatus,
    WorkflowStep,
)

__all__ = [
    "AgentProgress",
    "AgentStatus",
    "DocumentBase",
    "Draft",
    "DraftStatus",
    "Edition",
    "Lead",
    "QueueState",
    "SportsBox",
    "SportsDataset",
    "WorkflowBoard",
    "WorkflowStatus",
    "WorkflowStep",
]
