from .device_repository import SQLAlchemyDeviceRepository
from .job_repository import SQLAlchemyJobRepository

__all__ = [
    "SQLAlchemyDeviceRepository",
    "SQLAlchemyJobRepository",
]
