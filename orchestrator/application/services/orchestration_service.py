"""Orchestration service: job lifecycle, inbound callbacks and device registry.

Every job mutation is a read-modify-write against the job repository that
is conditional on the status that was read. A terminal job is never written
again, so duplicate or late callbacks are acknowledged without effect.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

from orchestrator.application.interfaces import (
    DecisionEngine,
    DeviceRepository,
    JobRepository,
    TrustIssuer,
    UploadGrantIssuer,
)
from orchestrator.application.services.keyed_lock import KeyedLock
from orchestrator.application.services.orchestration_config import OrchestratorConfig
from orchestrator.application.services.orchestration_results import (
    CallbackOutcome,
    CallbackStatus,
    DeviceEventOutcome,
    DeviceEventType,
    DeviceRegistered,
    JobCreated,
    StatusCounts,
    UploadStage,
)
from orchestrator.domain.entities import (
    BinType,
    Classification,
    Decision,
    Device,
    DeviceStatus,
    DeviceType,
    Job,
    JobStatus,
    Location,
)
from orchestrator.domain.exceptions import (
    CollaboratorError,
    CollaboratorTimeoutError,
    ConcurrentUpdateError,
    DecisionError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
)
from orchestrator.domain.metadata import Metadata, validate_identifier, validate_metadata
from orchestrator.infrastructure.logging.lifecycle_logger import JobLifecycleLogger, LifecycleStage

logger = logging.getLogger(__name__)
lifecycle = JobLifecycleLogger("OrchestrationService")

T = TypeVar("T")
E = TypeVar("E", bound=Enum)

# Returns a reason to acknowledge without writing, or None to write the job.
JobMutation = Callable[[Job], Awaitable[str | None]]


def _parse_enum(enum_cls: type[E], value: Any, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidInputError(f"{field} must be one of: {allowed}", field=field) from None


class OrchestrationService:
    """Coordinates jobs, callbacks and devices. Depends only on ports (DI)."""

    def __init__(
        self,
        *,
        job_repository: JobRepository,
        device_repository: DeviceRepository,
        upload_grant_issuer: UploadGrantIssuer,
        trust_issuer: TrustIssuer,
        decision_engine: DecisionEngine,
        config: OrchestratorConfig | None = None,
        job_locks: KeyedLock | None = None,
    ):
        self._jobs = job_repository
        self._devices = device_repository
        self._grants = upload_grant_issuer
        self._trust = trust_issuer
        self._decision_engine = decision_engine
        self._config = config or OrchestratorConfig()
        self._job_locks = job_locks or KeyedLock()

    # ── Jobs ─────────────────────────────────────────────────────────

    async def create_job(
        self,
        device_id: str,
        metadata: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> JobCreated:
        """Create a pending job and the grant the device uploads its image with.

        The grant is issued before anything is persisted, so a failing
        issuer leaves no orphaned job behind.
        """
        validate_identifier(device_id, "device_id")
        job = Job(device_id=device_id, metadata=validate_metadata(metadata))

        grant = await self._call(
            "upload grant issuer",
            self._grants.issue_put_grant(job.image_key, self._config.upload_url_ttl),
            self._deadline(timeout, self._config.grant_timeout_seconds),
        )
        await self._call(
            "job repository",
            self._jobs.create(job),
            self._deadline(timeout, self._config.storage_timeout_seconds),
        )
        lifecycle.event(
            LifecycleStage.CREATE,
            "Job created",
            job_id=job.job_id,
            device_id=device_id,
            expires_at=grant.expires_at.isoformat(),
        )
        return JobCreated(job=job, upload_grant=grant)

    async def get_job(self, job_id: str, *, timeout: float | None = None) -> Job:
        job = await self._call(
            "job repository",
            self._jobs.get_by_id(job_id),
            self._deadline(timeout, self._config.storage_timeout_seconds),
        )
        if job is None:
            raise EntityNotFoundError("Job", job_id)
        return job

    async def list_jobs(
        self,
        *,
        device_id: str | None = None,
        status: JobStatus | str | None = None,
        limit: int | None = None,
        offset: int = 0,
        timeout: float | None = None,
    ) -> tuple[list[Job], int]:
        """Return a page of jobs (newest first) and the total number of matches."""
        job_status = _parse_enum(JobStatus, status, "status") if status is not None else None
        limit, offset = self._page(limit, offset)
        return await self._call(
            "job repository",
            self._jobs.query(device_id=device_id, status=job_status, limit=limit, offset=offset),
            self._deadline(timeout, self._config.storage_timeout_seconds),
        )

    # ── Callbacks ────────────────────────────────────────────────────

    async def handle_classification_callback(
        self,
        job_id: str,
        status: CallbackStatus | str,
        classification: Classification | None = None,
        error_detail: str | None = None,
        *,
        timeout: float | None = None,
    ) -> CallbackOutcome:
        """Apply the classification service's result to a job.

        Unknown jobs and jobs that are already terminal are acknowledged
        without mutation. A completed callback runs the decision step before
        the job may complete; a malformed payload or a failing decision step
        fails the job instead.
        """
        callback_status = _parse_enum(CallbackStatus, status, "status")

        async def apply(job: Job) -> str | None:
            if callback_status is CallbackStatus.FAILED:
                job.mark_failed((error_detail or "").strip() or "classification failed")
                return None
            await self._complete_with_classification(job, classification, timeout)
            return None

        outcome = await self._mutate_job(job_id, apply, timeout=timeout)
        if outcome.applied:
            stage = LifecycleStage.COMPLETE if outcome.status is JobStatus.COMPLETED else LifecycleStage.FAIL
            lifecycle.event(stage, "Classification callback applied", job_id=job_id, status=outcome.status.value)
        else:
            lifecycle.event(
                LifecycleStage.IGNORED, "Classification callback acknowledged", job_id=job_id, reason=outcome.reason
            )
        return outcome

    async def handle_upload_notification(
        self,
        job_id: str,
        stage: UploadStage | str,
        *,
        timeout: float | None = None,
    ) -> CallbackOutcome:
        """Advance a job when storage reports upload progress.

        ``started`` moves a pending job to uploading; ``completed`` moves a
        pending or uploading job to processing. Notifications that would move
        a job backwards are acknowledged as stale.
        """
        upload_stage = _parse_enum(UploadStage, stage, "stage")
        target = JobStatus.UPLOADING if upload_stage is UploadStage.STARTED else JobStatus.PROCESSING

        async def apply(job: Job) -> str | None:
            if job.status is target:
                return "already_applied"
            if not job.can_transition_to(target):
                return "stale_notification"
            job.transition_to(target)
            return None

        outcome = await self._mutate_job(job_id, apply, timeout=timeout)
        if outcome.applied:
            lifecycle.event(LifecycleStage.UPLOAD, f"Upload {upload_stage.value}", job_id=job_id)
        return outcome

    # ── Devices ──────────────────────────────────────────────────────

    async def register_device(
        self,
        device_id: str,
        device_type: DeviceType | str,
        *,
        location: Location | None = None,
        bin_type: BinType | str | None = None,
        serial_number: str | None = None,
        capacity_liters: float | None = None,
        metadata: Metadata | None = None,
        timeout: float | None = None,
    ) -> DeviceRegistered:
        """Register a new device and issue its identity credential.

        Raises DuplicateEntityError if the device already exists; the
        existing record is left untouched.
        """
        validate_identifier(device_id, "device_id")
        kind = _parse_enum(DeviceType, device_type, "device_type")
        bin_kind = _parse_enum(BinType, bin_type, "bin_type") if bin_type is not None else None
        if capacity_liters is not None and (
            isinstance(capacity_liters, bool)
            or not isinstance(capacity_liters, (int, float))
            or capacity_liters <= 0
        ):
            raise InvalidInputError("capacity_liters must be a positive number", field="capacity_liters")
        metadata = validate_metadata(metadata)
        storage_timeout = self._deadline(timeout, self._config.storage_timeout_seconds)

        existing = await self._call("device repository", self._devices.get_by_id(device_id), storage_timeout)
        if existing is not None:
            raise DuplicateEntityError("Device", "device_id", device_id)

        credential = await self._call(
            "trust issuer",
            self._trust.issue_identity(device_id),
            self._deadline(timeout, self._config.trust_timeout_seconds),
        )
        device = Device(
            device_id=device_id,
            device_type=kind,
            serial_number=serial_number,
            location=location,
            bin_type=bin_kind,
            capacity_liters=capacity_liters,
            certificate=credential.certificate_pem,
            certificate_fingerprint=credential.fingerprint,
            metadata=metadata,
        )
        await self._call("device repository", self._devices.create(device), storage_timeout)
        lifecycle.event(
            LifecycleStage.DEVICE,
            "Device registered",
            device_id=device_id,
            device_type=kind.value,
            fingerprint=credential.fingerprint[:16],
        )
        return DeviceRegistered(device=device, credential=credential)

    async def get_device(self, device_id: str, *, timeout: float | None = None) -> Device:
        device = await self._call(
            "device repository",
            self._devices.get_by_id(device_id),
            self._deadline(timeout, self._config.storage_timeout_seconds),
        )
        if device is None:
            raise EntityNotFoundError("Device", device_id)
        return device

    async def list_devices(
        self,
        *,
        status: DeviceStatus | str | None = None,
        limit: int | None = None,
        offset: int = 0,
        timeout: float | None = None,
    ) -> tuple[list[Device], int]:
        device_status = _parse_enum(DeviceStatus, status, "status") if status is not None else None
        limit, offset = self._page(limit, offset)
        return await self._call(
            "device repository",
            self._devices.query(status=device_status, limit=limit, offset=offset),
            self._deadline(timeout, self._config.storage_timeout_seconds),
        )

    async def record_device_event(
        self,
        device_id: str,
        event_type: str,
        payload: Metadata | None = None,
        *,
        timeout: float | None = None,
    ) -> DeviceEventOutcome:
        """Route a device event by type.

        Unknown event types are logged and acknowledged so that newer
        firmware never fails against an older orchestrator.
        """
        validate_identifier(device_id, "device_id")
        if not isinstance(event_type, str) or not event_type.strip():
            raise InvalidInputError("event_type must be a non-empty string", field="event_type")
        payload = validate_metadata(payload, "payload")

        try:
            kind = DeviceEventType(event_type)
        except ValueError:
            logger.warning("Unsupported device event '%s' from %s acknowledged", event_type, device_id)
            return DeviceEventOutcome(device_id, event_type, applied=False, reason="unsupported_event_type")

        if kind is DeviceEventType.IMAGE_CAPTURED:
            created = await self.create_job(device_id, payload, timeout=timeout)
            device = await self._mark_device_seen(device_id, timeout)
            return DeviceEventOutcome(device_id, event_type, applied=True, device=device, job_created=created)

        storage_timeout = self._deadline(timeout, self._config.storage_timeout_seconds)
        device = await self._call("device repository", self._devices.get_by_id(device_id), storage_timeout)
        if device is None:
            logger.info("Device event '%s' for unregistered device %s acknowledged", event_type, device_id)
            return DeviceEventOutcome(device_id, event_type, applied=False, reason="unknown_device")

        if kind is DeviceEventType.DEVICE_STATUS:
            self._apply_status_payload(device, payload)
            device.mark_seen()
            await self._call("device repository", self._devices.update(device), storage_timeout)
            lifecycle.event(
                LifecycleStage.DEVICE,
                "Telemetry merged",
                device_id=device_id,
                battery=device.battery_status,
                fill=device.fill_status,
            )
            return DeviceEventOutcome(device_id, event_type, applied=True, device=device)

        await self._call(
            "device repository", self._devices.increment_counters(device_id, errors=1), storage_timeout
        )
        device = await self._call("device repository", self._devices.get_by_id(device_id), storage_timeout)
        if device is None:
            return DeviceEventOutcome(device_id, event_type, applied=False, reason="unknown_device")
        device.mark_seen()
        threshold = self._config.device_error_threshold
        if device.exceeds_error_threshold(threshold) and device.status not in (
            DeviceStatus.ERROR,
            DeviceStatus.DECOMMISSIONED,
        ):
            reason = payload.get("message")
            device.change_status(
                DeviceStatus.ERROR,
                reason if isinstance(reason, str) and reason else f"more than {threshold} errors reported",
            )
            lifecycle.failure(
                LifecycleStage.DEVICE, "Device error threshold exceeded", device_id=device_id,
                total_errors=device.total_errors,
            )
        await self._call("device repository", self._devices.update(device), storage_timeout)
        return DeviceEventOutcome(device_id, event_type, applied=True, device=device)

    # ── Metrics ──────────────────────────────────────────────────────

    async def status_counts(self, *, timeout: float | None = None) -> StatusCounts:
        """Count jobs per status (every status present, zero included) and registered devices."""
        storage_timeout = self._deadline(timeout, self._config.storage_timeout_seconds)
        counts = await self._call("job repository", self._jobs.count_by_status(), storage_timeout)
        _, devices_total = await self._call(
            "device repository", self._devices.query(limit=0), storage_timeout
        )
        return StatusCounts(
            jobs_by_status={status: counts.get(status, 0) for status in JobStatus},
            devices_total=devices_total,
        )

    # ── Internals ────────────────────────────────────────────────────

    async def _mutate_job(self, job_id: str, apply: JobMutation, *, timeout: float | None) -> CallbackOutcome:
        storage_timeout = self._deadline(timeout, self._config.storage_timeout_seconds)
        async with self._job_guard(job_id):
            for attempt in range(1, self._config.max_write_attempts + 1):
                job = await self._call("job repository", self._jobs.get_by_id(job_id), storage_timeout)
                if job is None:
                    return CallbackOutcome(job_id, applied=False, reason="unknown_job")
                if job.is_terminal:
                    return CallbackOutcome(job_id, applied=False, status=job.status, reason="already_terminal")

                expected = job.status
                try:
                    skip_reason = await apply(job)
                except InvalidTransitionError as exc:
                    logger.warning("Callback for job %s not applied: %s", job_id, exc)
                    return CallbackOutcome(job_id, applied=False, status=expected, reason="invalid_transition")
                if skip_reason:
                    return CallbackOutcome(job_id, applied=False, status=expected, reason=skip_reason)

                written = await self._call(
                    "job repository", self._jobs.update(job, expected), storage_timeout
                )
                if written:
                    if job.is_terminal:
                        await self._count_job_outcome(job, storage_timeout)
                    return CallbackOutcome(job_id, applied=True, status=job.status)
                logger.info("Job %s changed concurrently (attempt %d); re-reading", job_id, attempt)

        raise ConcurrentUpdateError("Job", job_id, self._config.max_write_attempts)

    async def _complete_with_classification(
        self, job: Job, classification: Classification | None, timeout: float | None
    ) -> None:
        if classification is None:
            job.mark_failed("invalid classification payload: classification is required")
            return
        try:
            classification.validate()
        except InvalidInputError as exc:
            job.mark_failed(f"invalid classification payload: {exc}")
            return

        # A classification proves the image was uploaded.
        if job.status is not JobStatus.PROCESSING:
            job.mark_processing()
        job.attach_classification(classification)
        lifecycle.event(
            LifecycleStage.CLASSIFY,
            "Classification received",
            job_id=job.job_id,
            label=classification.label,
            confidence=classification.confidence,
        )

        try:
            decision = await self._decide(job, classification, timeout)
        except (DecisionError, CollaboratorTimeoutError) as exc:
            job.mark_failed(f"decision step failed: {exc.message}")
            return
        job.attach_decision(decision)
        job.mark_completed()

    async def _decide(self, job: Job, classification: Classification, timeout: float | None) -> Decision:
        # Job error messages are client visible; collaborator detail goes to the log only.
        try:
            device = await self._call(
                "device repository",
                self._devices.get_by_id(job.device_id),
                self._deadline(timeout, self._config.storage_timeout_seconds),
            )
        except CollaboratorTimeoutError:
            raise
        except CollaboratorError as exc:
            logger.warning("Device lookup for job %s failed: %s", job.job_id, exc)
            raise DecisionError("device lookup failed") from exc
        bin_type = device.bin_type if device else None

        with lifecycle.timed_step(LifecycleStage.DECIDE, "Decision step", job_id=job.job_id):
            try:
                decision = await self._call(
                    "decision engine",
                    self._decision_engine.decide(classification, bin_type),
                    self._config.decision_timeout_seconds,
                )
            except CollaboratorTimeoutError:
                raise
            except Exception as exc:
                logger.exception("Decision engine failed for job %s", job.job_id)
                raise DecisionError("decision engine error") from exc

        try:
            decision.validate()
        except InvalidInputError as exc:
            logger.warning("Decision engine returned an invalid decision for job %s: %s", job.job_id, exc)
            raise DecisionError("decision engine returned an invalid decision") from exc
        lifecycle.detail(
            f"Rule {decision.rule_applied} ({decision.rule_version})",
            action=decision.action.value,
            reasons=len(decision.reasons),
        )
        return decision

    async def _count_job_outcome(self, job: Job, timeout: float) -> None:
        errors = 1 if job.status is JobStatus.FAILED else 0
        counted = await self._call(
            "device repository",
            self._devices.increment_counters(job.device_id, jobs=1, errors=errors),
            timeout,
        )
        if not counted:
            logger.info("Device %s is not registered; counters for job %s skipped", job.device_id, job.job_id)

    async def _mark_device_seen(self, device_id: str, timeout: float | None) -> Device | None:
        storage_timeout = self._deadline(timeout, self._config.storage_timeout_seconds)
        device = await self._call("device repository", self._devices.get_by_id(device_id), storage_timeout)
        if device is None:
            return None
        device.mark_seen()
        return await self._call("device repository", self._devices.update(device), storage_timeout)

    @staticmethod
    def _apply_status_payload(device: Device, payload: Metadata) -> None:
        raw_status = payload.get("status")
        new_status = _parse_enum(DeviceStatus, raw_status, "status") if raw_status is not None else None
        reason = payload.get("status_reason")
        if reason is not None and not isinstance(reason, str):
            raise InvalidInputError("status_reason must be a string", field="status_reason")

        device.apply_telemetry(
            battery_level=payload.get("battery_level"),
            fill_level=payload.get("fill_level"),
            signal_strength=payload.get("signal_strength"),
        )
        if new_status is not None:
            device.change_status(new_status, reason)

    def _job_guard(self, job_id: str) -> contextlib.AbstractAsyncContextManager:
        if self._jobs.supports_conditional_writes:
            return contextlib.nullcontext()
        return self._job_locks.hold(job_id)

    def _page(self, limit: int | None, offset: int) -> tuple[int, int]:
        if limit is None:
            limit = self._config.default_page_size
        return min(max(limit, 0), self._config.max_page_size), max(offset, 0)

    @staticmethod
    def _deadline(timeout: float | None, default: float) -> float:
        return timeout if timeout is not None else default

    @staticmethod
    async def _call(collaborator: str, operation: Awaitable[T], timeout: float) -> T:
        try:
            return await asyncio.wait_for(operation, timeout)
        except asyncio.TimeoutError:
            raise CollaboratorTimeoutError(collaborator, timeout) from None
