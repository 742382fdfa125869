"""SQLAlchemy ORM model for classification jobs."""

from sqlalchemy import Column, DateTime, Index, String, Text, func

from orchestrator.infrastructure.database.base import Base, JSONType


class JobModel(Base):
    """One classification job; classification and decision are embedded JSON."""

    __tablename__ = "jobs"

    job_id = Column(String(64), primary_key=True)
    device_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    image_key = Column(String(255), nullable=False)
    classification = Column(JSONType, nullable=True)
    decision = Column(JSONType, nullable=True)
    error_message = Column(Text, nullable=True)
    job_metadata = Column("metadata", JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_jobs_device_created", "device_id", "created_at"),
        Index("idx_jobs_status_created", "status", "created_at"),
    )
