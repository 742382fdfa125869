"""V1 API router, aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from orchestrator.presentation.api.v1.endpoints.devices import router as devices_router
from orchestrator.presentation.api.v1.endpoints.jobs import router as jobs_router
from orchestrator.presentation.api.v1.endpoints.webhooks import router as webhooks_router

router = APIRouter(prefix="/v1")
router.include_router(jobs_router)
router.include_router(devices_router)
router.include_router(webhooks_router)
