"""Liveness, readiness and metrics endpoints."""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.application.services import OrchestrationService
from orchestrator.config import get_settings
from orchestrator.infrastructure.dependencies import get_orchestration_service
from orchestrator.infrastructure.database.session import get_db_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_STARTED_AT = time.monotonic()


@router.get("/health")
async def health_check() -> dict:
    """Returns the current application health status; never touches the database."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.app_version,
        "environment": settings.app_env,
        "uptime_seconds": round(time.monotonic() - _STARTED_AT, 3),
    }


@router.get("/ready")
async def readiness_check(session: AsyncSession = Depends(get_db_session)):
    """Returns 200 once the database answers, 503 otherwise."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        return JSONResponse(status_code=503, content={"status": "not_ready", "database": "unavailable"})
    return {"status": "ready", "database": "ok"}


@router.get("/metrics")
async def metrics(service: OrchestrationService = Depends(get_orchestration_service)) -> dict:
    """Uptime plus job and device counts read from storage."""
    settings = get_settings()
    counts = await service.status_counts()
    return {
        "service": settings.service_name,
        "version": settings.app_version,
        "uptime_seconds": round(time.monotonic() - _STARTED_AT, 3),
        "jobs": {
            "total": counts.jobs_total,
            "by_status": {status.value: count for status, count in counts.jobs_by_status.items()},
        },
        "devices": {"total": counts.devices_total},
    }
