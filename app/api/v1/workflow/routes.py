"""Workflow control API endpoints."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api.v1.dependencies import require_cron_secret
from app.schemas.workflow import (
    QueueStateResponse,
    StartWorkflowRequest,
    StepResponse,
    WorkflowActionResponse,
    WorkflowBoardResponse,
    WorkflowStatusResponse,
)
from app.services.workflow_orchestrator import StepOutcome, get_workflow_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_cron_secret)])


def step_response(outcome: StepOutcome) -> StepResponse:
    return StepResponse(**asdict(outcome))


def step_failure_response(error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": str(error)},
    )


@router.api_route(
    "/step",
    methods=["GET", "POST"],
    response_model=StepResponse,
    response_model_exclude_none=True,
    summary="Run one scheduled workflow step",
)
async def run_scheduled_step() -> StepResponse | JSONResponse:
    """Execute at most one step. Skips while a manual run is in progress."""
    orchestrator = get_workflow_orchestrator()
    try:
        outcome = await orchestrator.execute_scheduled_step()
    except Exception as e:
        logger.exception("Scheduled workflow step failed")
        return step_failure_response(e)
    return step_response(outcome)


@router.post(
    "/step/manual",
    response_model=StepResponse,
    response_model_exclude_none=True,
    summary="Run one workflow step for the manual poller",
)
async def run_manual_step() -> StepResponse | JSONResponse:
    """Execute at most one step regardless of who owns the run."""
    orchestrator = get_workflow_orchestrator()
    try:
        outcome = await orchestrator.execute_next_step()
    except Exception as e:
        logger.exception("Manual workflow step failed")
        return step_failure_response(e)
    return step_response(outcome)


@router.post(
    "/start",
    response_model=WorkflowActionResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_workflow(request: StartWorkflowRequest | None = None) -> WorkflowActionResponse:
    """Reset the queue to the first phase and return immediately."""
    manual = request.manual if request else False
    state = await get_workflow_orchestrator().start(manual=manual)
    return WorkflowActionResponse(
        success=True,
        message="Manual workflow started" if manual else "Workflow started",
        current_step=state.current_step,
    )


@router.post("/stop", response_model=WorkflowActionResponse)
async def stop_workflow() -> WorkflowActionResponse:
    """Write the stop sentinel (or clear a failed run) and return immediately."""
    state = await get_workflow_orchestrator().stop()
    return WorkflowActionResponse(
        success=True,
        message=state.error or "Workflow stopped",
        current_step=state.current_step,
    )


@router.post("/kill", response_model=WorkflowActionResponse)
async def kill_workflow() -> WorkflowActionResponse:
    """Reset queue and board unconditionally and purge in-flight data."""
    state = await get_workflow_orchestrator().kill()
    return WorkflowActionResponse(
        success=True,
        message="Emergency kill switch activated - all processes stopped and data cleared",
        current_step=state.current_step,
    )


@router.get(
    "/status",
    response_model=WorkflowStatusResponse,
    response_model_exclude_none=True,
)
async def get_workflow_status() -> WorkflowStatusResponse:
    """Queue state and progress board for monitoring."""
    orchestrator = get_workflow_orchestrator()
    state = await orchestrator.queue.read()
    board = await orchestrator.board.read()
    return WorkflowStatusResponse(
        queue=QueueStateResponse(**state.model_dump()) if state else None,
        board=WorkflowBoardResponse(**board.model_dump()) if board else None,
    )
