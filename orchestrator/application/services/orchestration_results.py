"""Result values returned by OrchestrationService operations."""

from dataclasses import dataclass
from enum import Enum

from orchestrator.domain.entities import Device, DeviceCredential, Job, JobStatus, UploadGrant


class CallbackStatus(str, Enum):
    """Outcome reported by the classification service."""

    COMPLETED = "completed"
    FAILED = "failed"


class UploadStage(str, Enum):
    """Progress reported by the storage upload notification."""

    STARTED = "started"
    COMPLETED = "completed"


class DeviceEventType(str, Enum):
    IMAGE_CAPTURED = "image_captured"
    DEVICE_STATUS = "device_status"
    ERROR = "error"


@dataclass(frozen=True)
class JobCreated:
    job: Job
    upload_grant: UploadGrant


@dataclass(frozen=True)
class CallbackOutcome:
    """Acknowledgement of an inbound callback.

    ``applied`` is ``False`` when the callback was acknowledged without
    changing anything (unknown job, duplicate delivery, stale event).
    """

    job_id: str
    applied: bool
    status: JobStatus | None = None
    reason: str | None = None


@dataclass(frozen=True)
class DeviceRegistered:
    device: Device
    credential: DeviceCredential


@dataclass(frozen=True)
class DeviceEventOutcome:
    device_id: str
    event_type: str
    applied: bool
    reason: str | None = None
    device: Device | None = None
    job_created: JobCreated | None = None


@dataclass(frozen=True)
class StatusCounts:
    """Point-in-time counts for the operational metrics endpoint."""

    jobs_by_status: dict[JobStatus, int]
    devices_total: int

    @property
    def jobs_total(self) -> int:
        return sum(self.jobs_by_status.values())
