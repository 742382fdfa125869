from .device_model import DeviceModel
from .job_model import JobModel

__all__ = ["DeviceModel", "JobModel"]
