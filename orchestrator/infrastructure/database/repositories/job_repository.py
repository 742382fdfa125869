"""SQLAlchemy implementation of the JobRepository."""

from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.application.interfaces.job_repository import JobRepository
from orchestrator.domain.entities import (
    Alternative,
    BinCompartment,
    Classification,
    Decision,
    DecisionAction,
    Job,
    JobStatus,
)
from orchestrator.infrastructure.database.models.job_model import JobModel
from orchestrator.infrastructure.database.repositories.errors import as_utc, storage_errors


class SQLAlchemyJobRepository(JobRepository):
    """Job repository backed by SQLAlchemy.

    ``update`` is a single ``UPDATE ... WHERE status = :expected`` statement,
    so the database arbitrates between concurrent writers.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, job_id: str) -> Job | None:
        with storage_errors("Job", job_id):
            result = await self._session.execute(
                select(JobModel)
                .where(JobModel.job_id == job_id)
                .execution_options(populate_existing=True)
            )
            model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def create(self, job: Job) -> Job:
        with storage_errors("Job", job.job_id):
            self._session.add(JobModel(job_id=job.job_id, **self._to_row(job)))
            await self._session.flush()
        return job

    async def update(self, job: Job, expected_status: JobStatus) -> bool:
        with storage_errors("Job", job.job_id):
            result = await self._session.execute(
                update(JobModel)
                .where(
                    JobModel.job_id == job.job_id,
                    JobModel.status == expected_status.value,
                )
                .values(**self._to_row(job))
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def query(
        self,
        *,
        device_id: str | None = None,
        status: JobStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Job], int]:
        filters = []
        if device_id is not None:
            filters.append(JobModel.device_id == device_id)
        if status is not None:
            filters.append(JobModel.status == status.value)

        count_stmt = select(func.count()).select_from(JobModel)
        stmt = select(JobModel)
        if filters:
            count_stmt = count_stmt.where(*filters)
            stmt = stmt.where(*filters)

        with storage_errors("Job", "*"):
            total = (await self._session.execute(count_stmt)).scalar_one()
            result = await self._session.execute(
                stmt
                .order_by(JobModel.created_at.desc(), JobModel.job_id.desc())
                .limit(limit)
                .offset(offset)
            )
            jobs = [self._to_domain(m) for m in result.scalars().all()]
        return jobs, total

    async def count_by_status(self) -> dict[JobStatus, int]:
        stmt = select(JobModel.status, func.count()).group_by(JobModel.status)
        with storage_errors("Job", "*"):
            rows = (await self._session.execute(stmt)).all()
        return {JobStatus(status): count for status, count in rows}

    # ── Mapping ──────────────────────────────────────────────────────

    @classmethod
    def _to_row(cls, job: Job) -> dict[str, Any]:
        return {
            "device_id": job.device_id,
            "status": job.status.value,
            "image_key": job.image_key,
            "classification": cls._classification_to_json(job.classification),
            "decision": cls._decision_to_json(job.decision),
            "error_message": job.error_message,
            "job_metadata": job.metadata,
            "created_at": job.created_at,
            "updated_at": job.updated_at,
            "processing_started_at": job.processing_started_at,
            "completed_at": job.completed_at,
        }

    @classmethod
    def _to_domain(cls, model: JobModel) -> Job:
        return Job(
            job_id=model.job_id,
            device_id=model.device_id,
            status=JobStatus(model.status),
            image_key=model.image_key,
            classification=cls._classification_from_json(model.classification),
            decision=cls._decision_from_json(model.decision),
            error_message=model.error_message,
            metadata=dict(model.job_metadata or {}),
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
            processing_started_at=as_utc(model.processing_started_at),
            completed_at=as_utc(model.completed_at),
        )

    @staticmethod
    def _classification_to_json(classification: Classification | None) -> dict[str, Any] | None:
        if classification is None:
            return None
        return {
            "label": classification.label,
            "confidence": classification.confidence,
            "model_version": classification.model_version,
            "alternatives": [
                {"label": alt.label, "confidence": alt.confidence}
                for alt in classification.alternatives
            ],
            "processing_time_ms": classification.processing_time_ms,
        }

    @staticmethod
    def _classification_from_json(data: dict[str, Any] | None) -> Classification | None:
        if data is None:
            return None
        return Classification(
            label=data["label"],
            confidence=data["confidence"],
            model_version=data.get("model_version", ""),
            alternatives=[
                Alternative(label=alt["label"], confidence=alt["confidence"])
                for alt in data.get("alternatives", [])
            ],
            processing_time_ms=data.get("processing_time_ms"),
        )

    @staticmethod
    def _decision_to_json(decision: Decision | None) -> dict[str, Any] | None:
        if decision is None:
            return None
        return {
            "action": decision.action.value,
            "bin_compartment": decision.bin_compartment.value if decision.bin_compartment else None,
            "message": decision.message,
            "confidence_threshold_met": decision.confidence_threshold_met,
            "confidence_threshold": decision.confidence_threshold,
            "rule_applied": decision.rule_applied,
            "rule_version": decision.rule_version,
            "reasons": list(decision.reasons),
            "metadata": decision.metadata,
            "decided_at": decision.decided_at.isoformat(),
        }

    @staticmethod
    def _decision_from_json(data: dict[str, Any] | None) -> Decision | None:
        if data is None:
            return None
        compartment = data.get("bin_compartment")
        return Decision(
            action=DecisionAction(data["action"]),
            message=data["message"],
            bin_compartment=BinCompartment(compartment) if compartment else None,
            confidence_threshold_met=data.get("confidence_threshold_met", False),
            confidence_threshold=data.get("confidence_threshold", 0.0),
            rule_applied=data.get("rule_applied", ""),
            rule_version=data.get("rule_version", ""),
            reasons=list(data.get("reasons", [])),
            metadata=dict(data.get("metadata") or {}),
            decided_at=as_utc(datetime.fromisoformat(data["decided_at"])),
        )
