"""Helpers building the ``{success, data | error, metadata}`` envelope."""

from datetime import datetime, timezone
from typing import Any, TypeVar
from uuid import uuid4

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from orchestrator.application.schemas.envelope import ApiResponse, ErrorDetail, ResponseMetadata
from orchestrator.config import get_settings

T = TypeVar("T")

REQUEST_ID_HEADER = "X-Request-ID"


def request_id_for(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = uuid4().hex
        request.state.request_id = request_id
    return request_id


def response_metadata(request: Request) -> ResponseMetadata:
    settings = get_settings()
    return ResponseMetadata(
        timestamp=datetime.now(timezone.utc),
        request_id=request_id_for(request),
        service=settings.service_name,
        version=settings.app_version,
    )


def success(request: Request, data: T) -> ApiResponse[T]:
    return ApiResponse(success=True, data=data, metadata=response_metadata(request))


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body = ApiResponse(
        success=False,
        error=ErrorDetail(code=code, message=message, details=details or None),
        metadata=response_metadata(request),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body),
        headers={REQUEST_ID_HEADER: request_id_for(request)},
    )
