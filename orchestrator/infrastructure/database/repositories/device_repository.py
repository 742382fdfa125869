"""SQLAlchemy implementation of the DeviceRepository."""

from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.application.interfaces.device_repository import DeviceRepository
from orchestrator.domain.entities import BinType, Device, DeviceStatus, DeviceType, Location
from orchestrator.infrastructure.database.models.device_model import DeviceModel
from orchestrator.infrastructure.database.repositories.errors import as_utc, storage_errors


class SQLAlchemyDeviceRepository(DeviceRepository):
    """Device repository backed by SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, device_id: str) -> Device | None:
        with storage_errors("Device", device_id):
            result = await self._session.execute(
                select(DeviceModel)
                .where(DeviceModel.device_id == device_id)
                .execution_options(populate_existing=True)
            )
            model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def create(self, device: Device) -> Device:
        with storage_errors("Device", device.device_id):
            self._session.add(
                DeviceModel(
                    device_id=device.device_id,
                    device_type=device.device_type.value,
                    serial_number=device.serial_number,
                    certificate=device.certificate,
                    certificate_fingerprint=device.certificate_fingerprint,
                    total_jobs=device.total_jobs,
                    total_errors=device.total_errors,
                    created_at=device.created_at,
                    **self._mutable_fields(device),
                )
            )
            await self._session.flush()
        return device

    async def update(self, device: Device) -> Device:
        with storage_errors("Device", device.device_id):
            await self._session.execute(
                update(DeviceModel)
                .where(DeviceModel.device_id == device.device_id)
                .values(**self._mutable_fields(device))
                .execution_options(synchronize_session=False)
            )
        return device

    async def increment_counters(self, device_id: str, *, jobs: int = 0, errors: int = 0) -> bool:
        with storage_errors("Device", device_id):
            result = await self._session.execute(
                update(DeviceModel)
                .where(DeviceModel.device_id == device_id)
                .values(
                    total_jobs=DeviceModel.total_jobs + jobs,
                    total_errors=DeviceModel.total_errors + errors,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def query(
        self,
        *,
        status: DeviceStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Device], int]:
        filters = [DeviceModel.status == status.value] if status is not None else []
        count_stmt = select(func.count()).select_from(DeviceModel)
        stmt = select(DeviceModel)
        if filters:
            count_stmt = count_stmt.where(*filters)
            stmt = stmt.where(*filters)

        with storage_errors("Device", "*"):
            total = (await self._session.execute(count_stmt)).scalar_one()
            result = await self._session.execute(
                stmt
                .order_by(DeviceModel.created_at.desc(), DeviceModel.device_id)
                .limit(limit)
                .offset(offset)
            )
            devices = [self._to_domain(m) for m in result.scalars().all()]
        return devices, total

    # ── Mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _mutable_fields(device: Device) -> dict:
        return {
            "status": device.status.value,
            "status_reason": device.status_reason,
            "location": device.location.to_dict() if device.location else None,
            "bin_type": device.bin_type.value if device.bin_type else None,
            "capacity_liters": device.capacity_liters,
            "battery_level": device.battery_level,
            "fill_level": device.fill_level,
            "signal_strength": device.signal_strength,
            "last_seen": device.last_seen,
            "device_metadata": device.metadata,
            "updated_at": device.updated_at,
        }

    @staticmethod
    def _to_domain(model: DeviceModel) -> Device:
        return Device(
            device_id=model.device_id,
            device_type=DeviceType(model.device_type),
            status=DeviceStatus(model.status),
            status_reason=model.status_reason,
            serial_number=model.serial_number,
            location=Location.from_dict(model.location),
            bin_type=BinType(model.bin_type) if model.bin_type else None,
            capacity_liters=model.capacity_liters,
            certificate=model.certificate,
            certificate_fingerprint=model.certificate_fingerprint,
            battery_level=model.battery_level,
            fill_level=model.fill_level,
            signal_strength=model.signal_strength,
            last_seen=as_utc(model.last_seen),
            total_jobs=model.total_jobs,
            total_errors=model.total_errors,
            metadata=dict(model.device_metadata or {}),
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )
