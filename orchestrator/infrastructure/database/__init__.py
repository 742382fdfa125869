from .base import Base
from .session import async_session_factory, build_engine, build_session_factory, engine, get_db_session
from .models import DeviceModel, JobModel

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "get_db_session",
    "DeviceModel",
    "JobModel",
]
