"""Domain entity for a physical smart-bin device and its telemetry."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from orchestrator.domain.exceptions import InvalidInputError

ONLINE_WINDOW = timedelta(minutes=5)
LOW_BATTERY_THRESHOLD = 20
HIGH_FILL_THRESHOLD = 90
ERROR_THRESHOLD = 10
GOOD_SIGNAL_DBM = -70


class DeviceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    ERROR = "error"
    DECOMMISSIONED = "decommissioned"


class DeviceType(str, Enum):
    SMART_BIN_V1 = "smart_bin_v1"
    SMART_BIN_V2 = "smart_bin_v2"
    SMART_BIN_INDUSTRIAL = "smart_bin_industrial"


class BinType(str, Enum):
    """Compartment layout of a bin; ``mixed`` bins accept every compartment."""

    RECYCLABLE = "recyclable"
    ORGANIC = "organic"
    GENERAL = "general"
    MIXED = "mixed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_range(value: float | int, field_name: str, low: float, high: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not low <= value <= high:
        raise InvalidInputError(
            f"{field_name} must be a number between {low:g} and {high:g}", field=field_name
        )


@dataclass
class Location:
    """Where a device is installed."""

    building: str | None = None
    floor: str | None = None
    area: str | None = None
    zone: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    def __post_init__(self) -> None:
        if self.latitude is not None:
            _check_range(self.latitude, "location.latitude", -90, 90)
        if self.longitude is not None:
            _check_range(self.longitude, "location.longitude", -180, 180)

    def to_dict(self) -> dict[str, Any]:
        return {
            "building": self.building,
            "floor": self.floor,
            "area": self.area,
            "zone": self.zone,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Location | None":
        if not data:
            return None
        return cls(
            building=data.get("building"),
            floor=data.get("floor"),
            area=data.get("area"),
            zone=data.get("zone"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
        )


@dataclass
class Device:
    """A physical capture unit.

    Telemetry fields are ``None`` when unknown, which is distinct from zero.
    ``total_jobs`` and ``total_errors`` are maintained by the orchestration
    service; repositories update them with atomic increments.
    """

    device_id: str
    device_type: DeviceType
    status: DeviceStatus = DeviceStatus.ACTIVE
    status_reason: str | None = None
    serial_number: str | None = None
    location: Location | None = None
    bin_type: BinType | None = None
    capacity_liters: float | None = None
    certificate: str | None = None
    certificate_fingerprint: str | None = None
    battery_level: float | None = None
    fill_level: float | None = None
    signal_strength: float | None = None
    last_seen: datetime | None = None
    total_jobs: int = 0
    total_errors: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    # ── Derived state ───────────────────────────────────────────────

    def is_online(self, now: datetime | None = None, window: timedelta = ONLINE_WINDOW) -> bool:
        if self.last_seen is None:
            return False
        return (now or _utcnow()) - self.last_seen <= window

    def needs_maintenance(self, error_threshold: int = ERROR_THRESHOLD) -> bool:
        if self.status is DeviceStatus.MAINTENANCE:
            return True
        if self.battery_level is not None and self.battery_level < LOW_BATTERY_THRESHOLD:
            return True
        if self.fill_level is not None and self.fill_level > HIGH_FILL_THRESHOLD:
            return True
        return self.total_errors > error_threshold

    @property
    def battery_status(self) -> str:
        if self.battery_level is None:
            return "unknown"
        if self.battery_level > 80:
            return "high"
        if self.battery_level > 40:
            return "medium"
        if self.battery_level > 20:
            return "low"
        return "critical"

    @property
    def fill_status(self) -> str:
        if self.fill_level is None:
            return "unknown"
        if self.fill_level < 30:
            return "empty"
        if self.fill_level < 70:
            return "half_full"
        if self.fill_level < 90:
            return "almost_full"
        return "full"

    @property
    def has_good_signal(self) -> bool:
        return self.signal_strength is not None and self.signal_strength > GOOD_SIGNAL_DBM

    @property
    def display_name(self) -> str:
        if self.location and self.location.area:
            return f"{self.location.area} - {self.device_id}"
        return self.device_id

    # ── Mutations ───────────────────────────────────────────────────

    def apply_telemetry(
        self,
        *,
        battery_level: float | None = None,
        fill_level: float | None = None,
        signal_strength: float | None = None,
    ) -> list[str]:
        """Merge the supplied telemetry; ``None`` leaves a field unchanged.

        All values are validated before any is written. Returns the names of
        the fields that were updated.
        """
        if battery_level is not None:
            _check_range(battery_level, "battery_level", 0, 100)
        if fill_level is not None:
            _check_range(fill_level, "fill_level", 0, 100)
        if signal_strength is not None:
            _check_range(signal_strength, "signal_strength", -150, 0)

        changed = []
        for name, value in (
            ("battery_level", battery_level),
            ("fill_level", fill_level),
            ("signal_strength", signal_strength),
        ):
            if value is not None:
                setattr(self, name, value)
                changed.append(name)
        if changed:
            self.updated_at = _utcnow()
        return changed

    def change_status(self, status: DeviceStatus, reason: str | None = None) -> None:
        self.status = status
        self.status_reason = reason
        self.updated_at = _utcnow()

    def mark_seen(self, now: datetime | None = None) -> None:
        self.last_seen = now or _utcnow()
        self.updated_at = self.last_seen

    def exceeds_error_threshold(self, error_threshold: int = ERROR_THRESHOLD) -> bool:
        return self.total_errors > error_threshold
