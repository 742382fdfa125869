from .decision_engine import DecisionEngine
from .device_repository import DeviceRepository
from .job_repository import JobRepository
from .trust_issuer import TrustIssuer
from .upload_grant_issuer import UploadGrantIssuer

__all__ = [
    "DecisionEngine",
    "DeviceRepository",
    "JobRepository",
    "TrustIssuer",
    "UploadGrantIssuer",
]
