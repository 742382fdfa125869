"""Pydantic DTOs for the jobs API."""

from datetime import datetime

from pydantic import BaseModel, Field, JsonValue

from orchestrator.domain.entities import BinCompartment, DecisionAction, JobStatus


class CreateJobRequest(BaseModel):
    """Request body for creating a classification job."""

    device_id: str = Field(..., min_length=1, max_length=64, examples=["bin-01"])
    metadata: dict[str, JsonValue] = Field(default_factory=dict, examples=[{"firmware": "2.1.0"}])


class AlternativeResponse(BaseModel):
    label: str
    confidence: float

    model_config = {"from_attributes": True}


class ClassificationResponse(BaseModel):
    label: str
    confidence: float
    model_version: str
    alternatives: list[AlternativeResponse]
    processing_time_ms: int | None

    model_config = {"from_attributes": True}


class DecisionResponse(BaseModel):
    action: DecisionAction
    bin_compartment: BinCompartment | None
    message: str
    confidence_threshold_met: bool
    confidence_threshold: float
    rule_applied: str
    rule_version: str
    reasons: list[str]
    metadata: dict[str, JsonValue]
    decided_at: datetime

    model_config = {"from_attributes": True}


class JobResponse(BaseModel):
    """Job representation returned to clients."""

    job_id: str
    device_id: str
    status: JobStatus
    image_key: str
    classification: ClassificationResponse | None
    decision: DecisionResponse | None
    error_message: str | None
    metadata: dict[str, JsonValue]
    created_at: datetime
    updated_at: datetime
    processing_started_at: datetime | None
    completed_at: datetime | None
    processing_duration_ms: int | None = None


class UploadGrantResponse(BaseModel):
    url: str
    method: str
    headers: dict[str, str]
    storage_key: str
    expires_at: datetime

    model_config = {"from_attributes": True}


class CreateJobResponse(BaseModel):
    job: JobResponse
    upload_grant: UploadGrantResponse


class JobListResponse(BaseModel):
    items: list[JobResponse]
    total: int
    limit: int
    offset: int
