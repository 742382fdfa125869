from .classification import (
    Alternative,
    Classification,
    WasteLabel,
    RECYCLABLE_LABELS,
    ORGANIC_LABELS,
    REVIEW_THRESHOLD,
)
from .decision import BinCompartment, Decision, DecisionAction
from .device import BinType, Device, DeviceStatus, DeviceType, Location
from .device_credential import DeviceCredential
from .job import Job, JobStatus, allowed_transitions, image_key_for, new_job_id
from .upload_grant import UploadGrant

__all__ = [
    "Alternative",
    "Classification",
    "WasteLabel",
    "RECYCLABLE_LABELS",
    "ORGANIC_LABELS",
    "REVIEW_THRESHOLD",
    "BinCompartment",
    "Decision",
    "DecisionAction",
    "BinType",
    "Device",
    "DeviceStatus",
    "DeviceType",
    "Location",
    "DeviceCredential",
    "Job",
    "JobStatus",
    "allowed_transitions",
    "image_key_for",
    "new_job_id",
    "UploadGrant",
]
