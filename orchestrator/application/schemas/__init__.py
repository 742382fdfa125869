from .envelope import ApiResponse, ErrorDetail, ResponseMetadata
from .jobs import (
    ClassificationResponse,
    CreateJobRequest,
    CreateJobResponse,
    DecisionResponse,
    JobListResponse,
    JobResponse,
    UploadGrantResponse,
)
from .devices import (
    DeviceCredentialResponse,
    DeviceListResponse,
    DeviceResponse,
    LocationSchema,
    RegisterDeviceRequest,
    RegisterDeviceResponse,
)
from .webhooks import (
    CallbackAckResponse,
    ClassificationCallbackRequest,
    ClassificationPayload,
    DeviceEventAckResponse,
    DeviceEventRequest,
    UploadNotificationRequest,
)

__all__ = [
    "ApiResponse",
    "ErrorDetail",
    "ResponseMetadata",
    "ClassificationResponse",
    "CreateJobRequest",
    "CreateJobResponse",
    "DecisionResponse",
    "JobListResponse",
    "JobResponse",
    "UploadGrantResponse",
    "DeviceCredentialResponse",
    "DeviceListResponse",
    "DeviceResponse",
    "LocationSchema",
    "RegisterDeviceRequest",
    "RegisterDeviceResponse",
    "CallbackAckResponse",
    "ClassificationCallbackRequest",
    "ClassificationPayload",
    "DeviceEventAckResponse",
    "DeviceEventRequest",
    "UploadNotificationRequest",
]
