"""SQLAlchemy ORM model for registered devices."""

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, func

from orchestrator.infrastructure.database.base import Base, JSONType


class DeviceModel(Base):
    """A registered smart-bin device with its latest telemetry."""

    __tablename__ = "devices"

    device_id = Column(String(64), primary_key=True)
    device_type = Column(String(40), nullable=False)
    status = Column(String(20), nullable=False, default="active", index=True)
    status_reason = Column(Text, nullable=True)
    serial_number = Column(String(128), nullable=True)
    location = Column(JSONType, nullable=True)
    bin_type = Column(String(20), nullable=True)
    capacity_liters = Column(Float, nullable=True)
    certificate = Column(Text, nullable=True)
    certificate_fingerprint = Column(String(64), nullable=True, index=True)
    battery_level = Column(Float, nullable=True)
    fill_level = Column(Float, nullable=True)
    signal_strength = Column(Float, nullable=True)
    last_seen = Column(DateTime(timezone=True), nullable=True)
    total_jobs = Column(Integer, nullable=False, default=0)
    total_errors = Column(Integer, nullable=False, default=0)
    device_metadata = Column("metadata", JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
