"""Abstract repository interface (port) for devices."""

from abc import ABC, abstractmethod

from orchestrator.domain.entities.device import Device, DeviceStatus


class DeviceRepository(ABC):
    """Port for device persistence, implemented in the infrastructure layer."""

    @abstractmethod
    async def get_by_id(self, device_id: str) -> Device | None:
        ...

    @abstractmethod
    async def create(self, device: Device) -> Device:
        """Persist a new device. Raises DuplicateEntityError if the ID is taken."""
        ...

    @abstractmethod
    async def update(self, device: Device) -> Device:
        """Write the mutable fields of *device*.

        The ``total_jobs`` / ``total_errors`` counters are not written here;
        use :meth:`increment_counters`.
        """
        ...

    @abstractmethod
    async def increment_counters(self, device_id: str, *, jobs: int = 0, errors: int = 0) -> bool:
        """Atomically add to the device counters. Returns ``False`` if the device is unknown."""
        ...

    @abstractmethod
    async def query(
        self,
        *,
        status: DeviceStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Device], int]:
        """Return a page of matching devices, newest first, and the total match count."""
        ...
