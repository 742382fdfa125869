"""Device endpoints: registration, lookup and listing."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from orchestrator.application.schemas.devices import (
    DeviceCredentialResponse,
    DeviceListResponse,
    DeviceResponse,
    LocationSchema,
    RegisterDeviceRequest,
    RegisterDeviceResponse,
)
from orchestrator.application.schemas.envelope import ApiResponse
from orchestrator.application.services import OrchestrationService, OrchestratorConfig
from orchestrator.domain.entities import Device, Location
from orchestrator.infrastructure.dependencies import get_orchestration_service, get_orchestrator_config
from orchestrator.presentation.api.responses import success

router = APIRouter(prefix="/devices", tags=["Devices"])


def device_to_response(device: Device, config: OrchestratorConfig) -> DeviceResponse:
    """Map a Device domain entity to its API response, including derived state."""
    return DeviceResponse(
        device_id=device.device_id,
        device_type=device.device_type,
        display_name=device.display_name,
        status=device.status,
        status_reason=device.status_reason,
        serial_number=device.serial_number,
        location=LocationSchema.model_validate(device.location, from_attributes=True) if device.location else None,
        bin_type=device.bin_type,
        capacity_liters=device.capacity_liters,
        certificate_fingerprint=device.certificate_fingerprint,
        battery_level=device.battery_level,
        battery_status=device.battery_status,
        fill_level=device.fill_level,
        fill_status=device.fill_status,
        signal_strength=device.signal_strength,
        has_good_signal=device.has_good_signal,
        last_seen=device.last_seen,
        is_online=device.is_online(window=config.device_online_window),
        needs_maintenance=device.needs_maintenance(config.device_error_threshold),
        total_jobs=device.total_jobs,
        total_errors=device.total_errors,
        metadata=device.metadata,
        created_at=device.created_at,
        updated_at=device.updated_at,
    )


@router.post("/register", response_model=ApiResponse[RegisterDeviceResponse], status_code=status.HTTP_201_CREATED)
async def register_device(
    request: Request,
    body: RegisterDeviceRequest,
    service: OrchestrationService = Depends(get_orchestration_service),
    config: OrchestratorConfig = Depends(get_orchestrator_config),
):
    """Register a device and return its one-time credential."""
    registered = await service.register_device(
        body.device_id,
        body.device_type,
        location=Location(**body.location.model_dump()) if body.location else None,
        bin_type=body.bin_type,
        serial_number=body.serial_number,
        capacity_liters=body.capacity_liters,
        metadata=body.metadata,
    )
    return success(
        request,
        RegisterDeviceResponse(
            device=device_to_response(registered.device, config),
            credential=DeviceCredentialResponse.model_validate(registered.credential, from_attributes=True),
        ),
    )


@router.get("", response_model=ApiResponse[DeviceListResponse])
async def list_devices(
    request: Request,
    device_status: str | None = Query(None, alias="status", description="Filter by device status"),
    limit: int = Query(10),
    offset: int = Query(0),
    service: OrchestrationService = Depends(get_orchestration_service),
    config: OrchestratorConfig = Depends(get_orchestrator_config),
):
    devices, total = await service.list_devices(status=device_status, limit=limit, offset=offset)
    return success(
        request,
        DeviceListResponse(
            items=[device_to_response(d, config) for d in devices],
            total=total,
            limit=min(max(limit, 0), config.max_page_size),
            offset=max(offset, 0),
        ),
    )


@router.get("/{device_id}", response_model=ApiResponse[DeviceResponse])
async def get_device(
    request: Request,
    device_id: str,
    service: OrchestrationService = Depends(get_orchestration_service),
    config: OrchestratorConfig = Depends(get_orchestrator_config),
):
    device = await service.get_device(device_id)
    return success(request, device_to_response(device, config))


@router.patch("/{device_id}", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def update_device(device_id: str):
    """Reserved; devices change through device events."""
    raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail="Updating devices is not implemented")


@router.delete("/{device_id}", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def delete_device(device_id: str):
    """Reserved; devices are retired with status=decommissioned."""
    raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail="Deleting devices is not implemented")
