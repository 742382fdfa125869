"""Pydantic DTOs for the devices API."""

from datetime import datetime

from pydantic import BaseModel, Field, JsonValue

from orchestrator.domain.entities import BinType, DeviceStatus, DeviceType


class LocationSchema(BaseModel):
    building: str | None = None
    floor: str | None = None
    area: str | None = None
    zone: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)

    model_config = {"from_attributes": True}


class RegisterDeviceRequest(BaseModel):
    """Request body for registering a new device."""

    device_id: str = Field(..., min_length=1, max_length=64, examples=["bin-01"])
    device_type: DeviceType
    serial_number: str | None = Field(None, max_length=128)
    location: LocationSchema | None = None
    bin_type: BinType | None = None
    capacity_liters: float | None = Field(None, gt=0)
    metadata: dict[str, JsonValue] = Field(default_factory=dict)


class DeviceResponse(BaseModel):
    """Device representation, including derived health indicators."""

    device_id: str
    device_type: DeviceType
    display_name: str
    status: DeviceStatus
    status_reason: str | None
    serial_number: str | None
    location: LocationSchema | None
    bin_type: BinType | None
    capacity_liters: float | None
    certificate_fingerprint: str | None
    battery_level: float | None
    battery_status: str
    fill_level: float | None
    fill_status: str
    signal_strength: float | None
    has_good_signal: bool
    last_seen: datetime | None
    is_online: bool
    needs_maintenance: bool
    total_jobs: int
    total_errors: int
    metadata: dict[str, JsonValue]
    created_at: datetime
    updated_at: datetime


class DeviceCredentialResponse(BaseModel):
    """Credential issued at registration; the private key is only returned here."""

    certificate_pem: str
    private_key_pem: str
    fingerprint: str
    expires_at: datetime

    model_config = {"from_attributes": True}


class RegisterDeviceResponse(BaseModel):
    device: DeviceResponse
    credential: DeviceCredentialResponse


class DeviceListResponse(BaseModel):
    items: list[DeviceResponse]
    total: int
    limit: int
    offset: int
