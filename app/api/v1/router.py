"""API v1 router aggregator."""

from fastapi import APIRouter

from app.api.v1.cron.routes import router as cron_router
from app.api.v1.editions.routes import router as editions_router
from app.api.v1.workflow.routes import router as workflow_router

api_router = APIRouter()

api_router.include_router(workflow_router, prefix="/workflow", tags=["Workflow"])
api_router.include_router(cron_router, prefix="/cron", tags=["Cron"])
api_router.include_router(editions_router, prefix="/editions", tags=["Editions"])
