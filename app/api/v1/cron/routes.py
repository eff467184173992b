"""Scheduler-facing cron endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.v1.dependencies import require_cron_secret
from app.api.v1.workflow.routes import step_failure_response, step_response
from app.schemas.edition import PublishResponse
from app.schemas.workflow import StepResponse, WorkflowActionResponse
from app.services.editions import get_edition_service
from app.services.workflow_orchestrator import get_workflow_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.get(
    "/workflow-step",
    response_model=StepResponse,
    response_model_exclude_none=True,
)
async def cron_workflow_step() -> StepResponse | JSONResponse:
    """Called every minute: advance the workflow by one step."""
    try:
        outcome = await get_workflow_orchestrator().execute_scheduled_step()
    except Exception as e:
        logger.exception("Cron workflow step failed")
        return step_failure_response(e)
    return step_response(outcome)


@router.get("/daily-workflow", response_model=WorkflowActionResponse)
async def cron_daily_workflow() -> WorkflowActionResponse:
    """Called once a day: start a scheduled run."""
    state = await get_workflow_orchestrator().start(manual=False)
    return WorkflowActionResponse(
        success=True,
        message="Daily workflow started",
        current_step=state.current_step,
    )


@router.get(
    "/daily-publish",
    response_model=PublishResponse,
    response_model_exclude_none=True,
)
async def cron_daily_publish() -> PublishResponse:
    """Called once a day: publish the newest unpublished edition."""
    result = await get_edition_service().publish_latest()
    return PublishResponse(
        success=result.success,
        message=result.message or None,
        edition_number=result.edition.edition_number if result.edition else None,
        error=result.error,
    )
