"""Response envelope shared by every API endpoint."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ResponseMetadata(BaseModel):
    timestamp: datetime
    request_id: str
    service: str
    version: str


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class ApiResponse(BaseModel, Generic[T]):
    """``{success, data | error, metadata}`` wrapper around every payload."""

    success: bool = True
    data: T | None = None
    error: ErrorDetail | None = None
    metadata: ResponseMetadata
