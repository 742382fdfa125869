"""Job endpoints: creation, lookup and listing."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from orchestrator.application.schemas.envelope import ApiResponse
from orchestrator.application.schemas.jobs import (
    ClassificationResponse,
    CreateJobRequest,
    CreateJobResponse,
    DecisionResponse,
    JobListResponse,
    JobResponse,
    UploadGrantResponse,
)
from orchestrator.application.services import OrchestrationService, OrchestratorConfig
from orchestrator.domain.entities import Job, UploadGrant
from orchestrator.infrastructure.dependencies import get_orchestration_service, get_orchestrator_config
from orchestrator.presentation.api.responses import success

router = APIRouter(prefix="/jobs", tags=["Jobs"])


# ── Helpers ──────────────────────────────────────────────────────────


def job_to_response(job: Job) -> JobResponse:
    """Map a Job domain entity to its API response."""
    duration = job.processing_duration()
    return JobResponse(
        job_id=job.job_id,
        device_id=job.device_id,
        status=job.status,
        image_key=job.image_key,
        classification=(
            ClassificationResponse.model_validate(job.classification, from_attributes=True)
            if job.classification
            else None
        ),
        decision=(
            DecisionResponse.model_validate(job.decision, from_attributes=True)
            if job.decision
            else None
        ),
        error_message=job.error_message,
        metadata=job.metadata,
        created_at=job.created_at,
        updated_at=job.updated_at,
        processing_started_at=job.processing_started_at,
        completed_at=job.completed_at,
        processing_duration_ms=int(duration.total_seconds() * 1000) if duration is not None else None,
    )


def grant_to_response(grant: UploadGrant) -> UploadGrantResponse:
    return UploadGrantResponse.model_validate(grant, from_attributes=True)


# ── Endpoints ────────────────────────────────────────────────────────


@router.post("", response_model=ApiResponse[CreateJobResponse], status_code=status.HTTP_201_CREATED)
async def create_job(
    request: Request,
    body: CreateJobRequest,
    service: OrchestrationService = Depends(get_orchestration_service),
):
    """Create a job and return the upload grant for its image."""
    created = await service.create_job(body.device_id, body.metadata)
    return success(
        request,
        CreateJobResponse(
            job=job_to_response(created.job),
            upload_grant=grant_to_response(created.upload_grant),
        ),
    )


@router.get("", response_model=ApiResponse[JobListResponse])
async def list_jobs(
    request: Request,
    device_id: str | None = Query(None, description="Filter by originating device"),
    job_status: str | None = Query(None, alias="status", description="Filter by job status"),
    limit: int = Query(10, description="Page size; negative values are treated as 0"),
    offset: int = Query(0, description="Rows to skip; negative values are treated as 0"),
    service: OrchestrationService = Depends(get_orchestration_service),
    config: OrchestratorConfig = Depends(get_orchestrator_config),
):
    """Retrieve a filtered, paginated list of jobs, newest first."""
    jobs, total = await service.list_jobs(
        device_id=device_id, status=job_status, limit=limit, offset=offset
    )
    return success(
        request,
        JobListResponse(
            items=[job_to_response(j) for j in jobs],
            total=total,
            limit=min(max(limit, 0), config.max_page_size),
            offset=max(offset, 0),
        ),
    )


@router.get("/{job_id}", response_model=ApiResponse[JobResponse])
async def get_job(
    request: Request,
    job_id: str,
    service: OrchestrationService = Depends(get_orchestration_service),
):
    job = await service.get_job(job_id)
    return success(request, job_to_response(job))


@router.patch("/{job_id}", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def update_job(job_id: str):
    """Reserved; jobs are only mutated by callbacks."""
    raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail="Updating jobs is not implemented")


@router.delete("/{job_id}", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def delete_job(job_id: str):
    """Reserved; jobs are retained for audit."""
    raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail="Deleting jobs is not implemented")
