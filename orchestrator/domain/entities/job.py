"""Domain entity for classification jobs and their lifecycle state machine."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from orchestrator.domain.entities.classification import Classification
from orchestrator.domain.entities.decision import Decision
from orchestrator.domain.exceptions import InvalidInputError, InvalidTransitionError


class JobStatus(str, Enum):
    """Lifecycle states of a classification job."""

    PENDING = "pending"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

# Every status has an entry; terminal states have no outbound edges.
_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.UPLOADING, JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.UPLOADING: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def allowed_transitions(status: JobStatus) -> frozenset[JobStatus]:
    """Return the statuses reachable in one step from *status*."""
    return _TRANSITIONS[status]


def new_job_id() -> str:
    return f"job_{uuid4().hex}"


def image_key_for(device_id: str, job_id: str) -> str:
    """Deterministic storage key for the image of a job."""
    return f"uploads/{device_id}/{job_id}.jpg"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """One end-to-end classification task for a single captured image.

    All mutations go through :meth:`transition_to` and the ``attach_*``
    methods, which validate before touching any field so a rejected call
    leaves the job unchanged.
    """

    device_id: str
    job_id: str = field(default_factory=new_job_id)
    status: JobStatus = JobStatus.PENDING
    image_key: str = ""
    classification: Classification | None = None
    decision: Decision | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    processing_started_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.image_key:
            self.image_key = image_key_for(self.device_id, self.job_id)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def can_transition_to(self, target: JobStatus) -> bool:
        return target in _TRANSITIONS[self.status]

    def transition_to(
        self,
        target: JobStatus,
        *,
        error_message: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Move the job to *target*, stamping the lifecycle timestamps."""
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.status.value, target.value)
        if target is JobStatus.FAILED and not (error_message and error_message.strip()):
            raise InvalidInputError("a failed job requires an error message", field="error_message")
        if target is JobStatus.COMPLETED and self.decision is None:
            raise InvalidTransitionError(
                self.status.value, target.value, "a decision must be attached first"
            )

        now = now or _utcnow()
        self.status = target
        self.updated_at = now
        if target is JobStatus.PROCESSING:
            self.processing_started_at = now
        if target.is_terminal:
            self.completed_at = now
        if target is JobStatus.FAILED:
            self.error_message = error_message

    def mark_uploading(self) -> None:
        self.transition_to(JobStatus.UPLOADING)

    def mark_processing(self) -> None:
        self.transition_to(JobStatus.PROCESSING)

    def mark_completed(self) -> None:
        self.transition_to(JobStatus.COMPLETED)

    def mark_failed(self, error: str) -> None:
        self.transition_to(JobStatus.FAILED, error_message=error)

    def attach_classification(self, classification: Classification) -> None:
        """Attach the classification result; allowed once, while processing."""
        if self.status is not JobStatus.PROCESSING:
            raise InvalidTransitionError(
                self.status.value, "classified", "classification requires a processing job"
            )
        if self.classification is not None:
            raise InvalidTransitionError(
                self.status.value, "classified", "classification already attached"
            )
        self.classification = classification
        self.updated_at = _utcnow()

    def attach_decision(self, decision: Decision) -> None:
        """Attach the decision; allowed once, after classification."""
        if self.classification is None:
            raise InvalidTransitionError(
                self.status.value, "decided", "decision requires a classification"
            )
        if self.decision is not None:
            raise InvalidTransitionError(
                self.status.value, "decided", "decision already attached"
            )
        self.decision = decision
        self.updated_at = _utcnow()

    def processing_duration(self, now: datetime | None = None) -> timedelta | None:
        """Time spent processing; ``None`` when processing never started."""
        if self.processing_started_at is None:
            return None
        end = self.completed_at or now or _utcnow()
        return end - self.processing_started_at
