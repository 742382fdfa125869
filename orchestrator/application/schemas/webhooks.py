"""Pydantic DTOs for inbound webhooks.

Classification payloads are deliberately loose: a malformed result must
still be acknowledged (and recorded as a job failure), not bounced back
to the producer as a request validation error.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, JsonValue

from orchestrator.domain.entities import JobStatus

from .jobs import JobResponse, UploadGrantResponse


class ClassificationPayload(BaseModel):
    label: Any = None
    confidence: Any = None
    model_version: Any = ""
    alternatives: Any = Field(default_factory=list)
    processing_time_ms: Any = None


class ClassificationCallbackRequest(BaseModel):
    job_id: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1, examples=["completed"])
    classification: ClassificationPayload | None = None
    error: str | None = None


class UploadNotificationRequest(BaseModel):
    job_id: str = Field(..., min_length=1)
    stage: str = Field(..., min_length=1, examples=["completed"])


class CallbackAckResponse(BaseModel):
    job_id: str
    applied: bool
    status: JobStatus | None
    reason: str | None


class DeviceEventRequest(BaseModel):
    event_type: str = Field(..., min_length=1, examples=["device_status"])
    device_id: str = Field(..., min_length=1, max_length=64)
    timestamp: datetime | None = None
    data: dict[str, JsonValue] = Field(default_factory=dict)


class DeviceEventAckResponse(BaseModel):
    device_id: str
    event_type: str
    applied: bool
    reason: str | None
    job: JobResponse | None = None
    upload_grant: UploadGrantResponse | None = None
