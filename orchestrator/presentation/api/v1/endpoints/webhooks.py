"""Inbound webhooks from the classifier, object storage and devices.

Callbacks are acknowledged with 200 whenever the payload is well formed,
including for unknown jobs and duplicate deliveries, so producers never
retry into a callback storm.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from orchestrator.application.schemas.envelope import ApiResponse
from orchestrator.application.schemas.webhooks import (
    CallbackAckResponse,
    ClassificationCallbackRequest,
    ClassificationPayload,
    DeviceEventAckResponse,
    DeviceEventRequest,
    UploadNotificationRequest,
)
from orchestrator.application.services import CallbackOutcome, OrchestrationService
from orchestrator.domain.entities import Alternative, Classification
from orchestrator.infrastructure.dependencies import get_orchestration_service
from orchestrator.presentation.api.responses import success
from orchestrator.presentation.api.v1.endpoints.jobs import grant_to_response, job_to_response

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _to_alternatives(raw: Any) -> Any:
    # Entries that are not objects are passed through for Classification.validate to reject.
    if not isinstance(raw, list):
        return raw
    return [
        Alternative(label=item.get("label"), confidence=item.get("confidence"))
        if isinstance(item, dict)
        else item
        for item in raw
    ]


def _to_classification(payload: ClassificationPayload) -> Classification:
    return Classification(
        label=payload.label,
        confidence=payload.confidence,
        model_version=payload.model_version,
        alternatives=_to_alternatives(payload.alternatives),
        processing_time_ms=payload.processing_time_ms,
    )


def _ack(outcome: CallbackOutcome) -> CallbackAckResponse:
    return CallbackAckResponse(
        job_id=outcome.job_id,
        applied=outcome.applied,
        status=outcome.status,
        reason=outcome.reason,
    )


@router.post("/classification", response_model=ApiResponse[CallbackAckResponse])
async def classification_callback(
    request: Request,
    body: ClassificationCallbackRequest,
    service: OrchestrationService = Depends(get_orchestration_service),
):
    """Result callback from the classification service."""
    outcome = await service.handle_classification_callback(
        body.job_id,
        body.status,
        classification=_to_classification(body.classification) if body.classification else None,
        error_detail=body.error,
    )
    return success(request, _ack(outcome))


@router.post("/upload", response_model=ApiResponse[CallbackAckResponse])
async def upload_notification(
    request: Request,
    body: UploadNotificationRequest,
    service: OrchestrationService = Depends(get_orchestration_service),
):
    """Upload progress notification from object storage."""
    outcome = await service.handle_upload_notification(body.job_id, body.stage)
    return success(request, _ack(outcome))


@router.post("/device-event", response_model=ApiResponse[DeviceEventAckResponse])
async def device_event(
    request: Request,
    body: DeviceEventRequest,
    service: OrchestrationService = Depends(get_orchestration_service),
):
    """Event pushed by a device (image captured, status telemetry, error)."""
    outcome = await service.record_device_event(body.device_id, body.event_type, body.data)
    created = outcome.job_created
    return success(
        request,
        DeviceEventAckResponse(
            device_id=outcome.device_id,
            event_type=outcome.event_type,
            applied=outcome.applied,
            reason=outcome.reason,
            job=job_to_response(created.job) if created else None,
            upload_grant=grant_to_response(created.upload_grant) if created else None,
        ),
    )
