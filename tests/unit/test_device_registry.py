"""Unit tests for device registration, lookup and device events."""

import pytest

from orchestrator.application.services import OrchestratorConfig
from orchestrator.domain.entities import BinType, DeviceStatus, DeviceType, JobStatus, Location
from orchestrator.domain.exceptions import (
    CollaboratorTimeoutError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidInputError,
    TrustIssuerError,
)
from tests.fakes import (
    FakeTrustIssuer,
    InMemoryDeviceRepository,
    InMemoryJobRepository,
    make_device,
    make_service,
)


@pytest.fixture
def devices():
    return InMemoryDeviceRepository()


@pytest.fixture
def jobs():
    return InMemoryJobRepository()


@pytest.fixture
def trust():
    return FakeTrustIssuer()


@pytest.fixture
def service(jobs, devices, trust):
    return make_service(jobs=jobs, devices=devices, trust=trust)


# ── Registration ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_register_device_issues_credential(service, devices, trust):
    registered = await service.register_device(
        "bin-01",
        "smart_bin_v2",
        location=Location(building="HQ", area="Lobby"),
        bin_type="recyclable",
        serial_number="SN-0001",
        capacity_liters=60,
        metadata={"installer": "acme"},
    )

    device = registered.device
    credential = registered.credential
    assert device.device_type is DeviceType.SMART_BIN_V2
    assert device.bin_type is BinType.RECYCLABLE
    assert device.status is DeviceStatus.ACTIVE
    assert device.certificate == credential.certificate_pem
    assert device.certificate_fingerprint == credential.fingerprint
    assert credential.private_key_pem
    assert trust.issued_for == ["bin-01"]
    stored = devices.stored("bin-01")
    assert stored.location.area == "Lobby"
    assert stored.metadata == {"installer": "acme"}
    assert stored.total_jobs == 0


@pytest.mark.asyncio
async def test_duplicate_registration_conflicts_and_keeps_original(service, devices, trust):
    await service.register_device("bin-01", "smart_bin_v1", serial_number="SN-ORIGINAL")
    original = devices.stored("bin-01")

    with pytest.raises(DuplicateEntityError):
        await service.register_device("bin-01", "smart_bin_industrial", serial_number="SN-OTHER")

    assert devices.stored("bin-01") == original
    assert devices.stored("bin-01").serial_number == "SN-ORIGINAL"
    assert trust.issued_for == ["bin-01"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "device_type,kwargs",
    [
        ("toaster", {}),
        ("smart_bin_v1", {"bin_type": "nuclear"}),
        ("smart_bin_v1", {"capacity_liters": 0}),
        ("smart_bin_v1", {"capacity_liters": True}),
        ("smart_bin_v1", {"metadata": {"bad": float("inf")}}),
    ],
)
async def test_register_device_rejects_bad_input(service, devices, trust, device_type, kwargs):
    with pytest.raises(InvalidInputError):
        await service.register_device("bin-01", device_type, **kwargs)
    assert devices.stored("bin-01") is None
    assert trust.issued_for == []


@pytest.mark.asyncio
async def test_trust_failure_persists_nothing(devices):
    service = make_service(devices=devices, trust=FakeTrustIssuer(fail=True))
    with pytest.raises(TrustIssuerError):
        await service.register_device("bin-01", "smart_bin_v1")
    assert devices.stored("bin-01") is None


@pytest.mark.asyncio
async def test_trust_timeout(devices):
    service = make_service(
        devices=devices,
        trust=FakeTrustIssuer(delay=0.5),
        config=OrchestratorConfig(trust_timeout_seconds=0.05),
    )
    with pytest.raises(CollaboratorTimeoutError):
        await service.register_device("bin-01", "smart_bin_v1")
    assert devices.stored("bin-01") is None


# ── Lookup ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_get_and_list_devices(service):
    await service.register_device("bin-01", "smart_bin_v1")
    await service.register_device("bin-02", "smart_bin_v2")

    device = await service.get_device("bin-02")
    assert device.device_type is DeviceType.SMART_BIN_V2

    items, total = await service.list_devices(status="active")
    assert total == 2
    assert {d.device_id for d in items} == {"bin-01", "bin-02"}

    items, total = await service.list_devices(status="maintenance")
    assert (items, total) == ([], 0)


@pytest.mark.asyncio
async def test_get_unknown_device(service):
    with pytest.raises(EntityNotFoundError):
        await service.get_device("bin-99")


# ── Device events ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_image_captured_event_creates_job(service, devices, jobs):
    await devices.create(make_device())

    outcome = await service.record_device_event("bin-01", "image_captured", {"trigger": "lid"})

    assert outcome.applied
    created = outcome.job_created
    assert created is not None
    assert jobs.stored(created.job.job_id).status is JobStatus.PENDING
    assert jobs.stored(created.job.job_id).metadata == {"trigger": "lid"}
    assert devices.stored("bin-01").last_seen is not None


@pytest.mark.asyncio
async def test_status_event_merges_telemetry(service, devices):
    await devices.create(make_device(battery_level=90, fill_level=10, signal_strength=-60))

    outcome = await service.record_device_event(
        "bin-01", "device_status", {"fill_level": 75, "status": "maintenance", "status_reason": "lid stuck"}
    )

    assert outcome.applied
    stored = devices.stored("bin-01")
    assert stored.fill_level == 75
    assert stored.battery_level == 90
    assert stored.signal_strength == -60
    assert stored.status is DeviceStatus.MAINTENANCE
    assert stored.status_reason == "lid stuck"
    assert stored.last_seen is not None


@pytest.mark.asyncio
async def test_status_event_with_bad_telemetry_changes_nothing(service, devices):
    await devices.create(make_device(battery_level=90))
    before = devices.stored("bin-01")

    with pytest.raises(InvalidInputError):
        await service.record_device_event("bin-01", "device_status", {"battery_level": 150})

    assert devices.stored("bin-01") == before


@pytest.mark.asyncio
async def test_error_events_flip_device_past_threshold(jobs, devices):
    service = make_service(jobs=jobs, devices=devices, config=OrchestratorConfig(device_error_threshold=2))
    await devices.create(make_device())

    for _ in range(2):
        await service.record_device_event("bin-01", "error", {"message": "camera fault"})
    assert devices.stored("bin-01").status is DeviceStatus.ACTIVE

    outcome = await service.record_device_event("bin-01", "error", {"message": "camera fault"})

    stored = devices.stored("bin-01")
    assert outcome.applied
    assert stored.total_errors == 3
    assert stored.status is DeviceStatus.ERROR
    assert stored.status_reason == "camera fault"


@pytest.mark.asyncio
async def test_events_for_unknown_device_are_acknowledged(service):
    outcome = await service.record_device_event("bin-77", "device_status", {"fill_level": 10})
    assert (outcome.applied, outcome.reason) == (False, "unknown_device")


@pytest.mark.asyncio
async def test_unsupported_event_type_is_acknowledged(service, devices):
    await devices.create(make_device())
    before = devices.stored("bin-01")

    outcome = await service.record_device_event("bin-01", "firmware_updated", {"version": "3.0"})

    assert not outcome.applied
    assert outcome.reason == "unsupported_event_type"
    assert devices.stored("bin-01") == before


@pytest.mark.asyncio
async def test_blank_event_type_is_invalid(service):
    with pytest.raises(InvalidInputError):
        await service.record_device_event("bin-01", "  ", {})
