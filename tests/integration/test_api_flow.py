"""End-to-end API tests: device registration, job lifecycle and webhooks."""

import pytest

from orchestrator.application.services import OrchestratorConfig
from orchestrator.infrastructure.dependencies import get_orchestrator_config
from orchestrator.main import app
from orchestrator.presentation.api.responses import REQUEST_ID_HEADER


async def _register(client, device_id="bin-01", **extra):
    body = {"device_id": device_id, "device_type": "smart_bin_v2", **extra}
    return await client.post("/api/v1/devices/register", json=body)


async def _create_job(client, device_id="bin-01", metadata=None):
    response = await client.post("/api/v1/jobs", json={"device_id": device_id, "metadata": metadata or {}})
    assert response.status_code == 201
    return response.json()["data"]


# ── Devices ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_register_device_returns_credential(client):
    response = await _register(client, bin_type="recyclable", location={"area": "Lobby"})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    device = body["data"]["device"]
    credential = body["data"]["credential"]
    assert device["device_id"] == "bin-01"
    assert device["status"] == "active"
    assert device["display_name"] == "Lobby - bin-01"
    assert device["battery_status"] == "unknown"
    assert device["certificate_fingerprint"] == credential["fingerprint"]
    assert credential["certificate_pem"].startswith("-----BEGIN CERTIFICATE-----")
    assert "PRIVATE KEY" in credential["private_key_pem"]
    assert body["metadata"]["service"] == "orchestrator"


@pytest.mark.asyncio
async def test_duplicate_registration_returns_conflict(client):
    first = await _register(client, serial_number="SN-1")
    second = await _register(client, serial_number="SN-2")

    assert second.status_code == 409
    body = second.json()
    assert body["success"] is False
    assert body["error"]["code"] == "CONFLICT"

    fetched = await client.get("/api/v1/devices/bin-01")
    assert fetched.json()["data"]["serial_number"] == "SN-1"
    assert (
        fetched.json()["data"]["certificate_fingerprint"]
        == first.json()["data"]["credential"]["fingerprint"]
    )


@pytest.mark.asyncio
async def test_register_rejects_unknown_device_type(client):
    response = await client.post(
        "/api/v1/devices/register", json={"device_id": "bin-01", "device_type": "toaster"}
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_list_devices(client):
    await _register(client, "bin-01")
    await _register(client, "bin-02")

    response = await client.get("/api/v1/devices", params={"status": "active"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert {d["device_id"] for d in data["items"]} == {"bin-01", "bin-02"}


@pytest.mark.asyncio
async def test_unknown_device_returns_not_found_envelope(client):
    response = await client.get("/api/v1/devices/bin-404")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["metadata"]["request_id"] == response.headers[REQUEST_ID_HEADER]


# ── Job lifecycle ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_full_job_lifecycle(client):
    await _register(client, bin_type="mixed")
    created = await _create_job(client, metadata={"trigger": "lid"})

    job = created["job"]
    grant = created["upload_grant"]
    assert job["status"] == "pending"
    assert job["metadata"] == {"trigger": "lid"}
    assert grant["method"] == "PUT"
    assert grant["storage_key"] == job["image_key"]
    assert "signature=" in grant["url"]

    upload = await client.post("/api/v1/webhooks/upload", json={"job_id": job["job_id"], "stage": "completed"})
    assert upload.status_code == 200
    assert upload.json()["data"]["status"] == "processing"

    callback = await client.post(
        "/api/v1/webhooks/classification",
        json={
            "job_id": job["job_id"],
            "status": "completed",
            "classification": {
                "label": "plastic_bottle",
                "confidence": 0.94,
                "model_version": "waste-net-3",
                "alternatives": [{"label": "plastic_container", "confidence": 0.04}],
            },
        },
    )
    assert callback.status_code == 200
    assert callback.json()["data"]["applied"] is True

    fetched = (await client.get(f"/api/v1/jobs/{job['job_id']}")).json()["data"]
    assert fetched["status"] == "completed"
    assert fetched["classification"]["label"] == "plastic_bottle"
    assert fetched["decision"]["action"] == "accept"
    assert fetched["decision"]["bin_compartment"] == "recyclable"
    assert fetched["processing_duration_ms"] >= 0

    device = (await client.get("/api/v1/devices/bin-01")).json()["data"]
    assert device["total_jobs"] == 1
    assert device["total_errors"] == 0


@pytest.mark.asyncio
async def test_duplicate_classification_callback_is_acknowledged(client):
    job = (await _create_job(client))["job"]
    payload = {"job_id": job["job_id"], "status": "failed", "error": "model_error"}

    first = await client.post("/api/v1/webhooks/classification", json=payload)
    second = await client.post("/api/v1/webhooks/classification", json=payload)

    assert first.json()["data"]["applied"] is True
    assert second.status_code == 200
    assert second.json()["data"] == {
        "job_id": job["job_id"],
        "applied": False,
        "status": "failed",
        "reason": "already_terminal",
    }
    fetched = (await client.get(f"/api/v1/jobs/{job['job_id']}")).json()["data"]
    assert fetched["error_message"] == "model_error"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "classification",
    [
        {"label": "paper", "confidence": "high"},
        {"label": "paper", "confidence": 0.9, "processing_time_ms": 12.5},
        {"label": "paper", "confidence": 0.9, "alternatives": [{"label": 7, "confidence": 0.2}]},
        {"label": "paper", "confidence": 0.9, "alternatives": ["cardboard"]},
        {"label": "paper", "confidence": 0.9, "alternatives": "oops"},
        {"label": "paper", "confidence": 0.9, "model_version": ["v3"]},
    ],
)
async def test_malformed_classification_is_acknowledged_and_fails_job(client, classification):
    job = (await _create_job(client))["job"]

    response = await client.post(
        "/api/v1/webhooks/classification",
        json={"job_id": job["job_id"], "status": "completed", "classification": classification},
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "failed"
    fetched = (await client.get(f"/api/v1/jobs/{job['job_id']}")).json()["data"]
    assert fetched["error_message"].startswith("invalid classification payload")


@pytest.mark.asyncio
async def test_callback_for_unknown_job_is_acknowledged(client):
    response = await client.post(
        "/api/v1/webhooks/classification",
        json={"job_id": "job_missing", "status": "completed", "classification": {"label": "paper", "confidence": 0.9}},
    )

    assert response.status_code == 200
    assert response.json()["data"]["reason"] == "unknown_job"
    listing = (await client.get("/api/v1/jobs")).json()["data"]
    assert listing["total"] == 0


@pytest.mark.asyncio
async def test_list_jobs_filters(client):
    for _ in range(3):
        await _create_job(client, "bin-01")
    await _create_job(client, "bin-02")

    response = await client.get("/api/v1/jobs", params={"device_id": "bin-01", "limit": 2})
    data = response.json()["data"]
    assert data["total"] == 3
    assert len(data["items"]) == 2
    assert data["limit"] == 2

    bad = await client.get("/api/v1/jobs", params={"status": "archived"})
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_unknown_job_returns_404(client):
    response = await client.get("/api/v1/jobs/job_missing")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_create_job_validation_error(client):
    response = await client.post("/api/v1/jobs", json={"device_id": ""})

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "INVALID_INPUT"
    assert body["error"]["details"]["errors"]


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["patch", "delete"])
async def test_job_mutation_endpoints_not_implemented(client, method):
    response = await getattr(client, method)("/api/v1/jobs/job_abc")
    assert response.status_code == 501
    assert response.json()["error"]["code"] == "NOT_IMPLEMENTED"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


# ── Request correlation ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/api/v1/jobs", headers={REQUEST_ID_HEADER: "trace-123"})

    assert response.headers[REQUEST_ID_HEADER] == "trace-123"
    assert response.json()["metadata"]["request_id"] == "trace-123"


@pytest.mark.asyncio
async def test_request_id_generated_when_absent(client):
    response = await client.get("/api/v1/jobs")
    assert response.headers[REQUEST_ID_HEADER] == response.json()["metadata"]["request_id"]


# ── Device events ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_image_captured_event_creates_job(client):
    await _register(client)

    response = await client.post(
        "/api/v1/webhooks/device-event",
        json={"event_type": "image_captured", "device_id": "bin-01", "data": {"weight_g": 35}},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["applied"] is True
    assert data["job"]["status"] == "pending"
    assert data["upload_grant"]["storage_key"] == data["job"]["image_key"]


@pytest.mark.asyncio
async def test_status_event_updates_telemetry(client):
    await _register(client)

    response = await client.post(
        "/api/v1/webhooks/device-event",
        json={"event_type": "device_status", "device_id": "bin-01", "data": {"battery_level": 15, "fill_level": 40}},
    )

    assert response.json()["data"]["applied"] is True
    device = (await client.get("/api/v1/devices/bin-01")).json()["data"]
    assert device["battery_level"] == 15
    assert device["battery_status"] == "critical"
    assert device["needs_maintenance"] is True
    assert device["is_online"] is True


@pytest.mark.asyncio
async def test_device_view_uses_orchestrator_config(client):
    app.dependency_overrides[get_orchestrator_config] = lambda: OrchestratorConfig(
        device_error_threshold=0, max_page_size=2
    )
    await _register(client)

    before = (await client.get("/api/v1/devices/bin-01")).json()["data"]
    await client.post(
        "/api/v1/webhooks/device-event",
        json={"event_type": "error", "device_id": "bin-01", "data": {"message": "jam"}},
    )
    after = (await client.get("/api/v1/devices/bin-01")).json()["data"]
    listing = (await client.get("/api/v1/devices", params={"limit": 50})).json()["data"]

    assert before["needs_maintenance"] is False
    assert after["total_errors"] == 1
    assert after["needs_maintenance"] is True
    assert listing["limit"] == 2


@pytest.mark.asyncio
async def test_unsupported_event_is_acknowledged(client):
    response = await client.post(
        "/api/v1/webhooks/device-event",
        json={"event_type": "firmware_updated", "device_id": "bin-01", "data": {}},
    )
    assert response.status_code == 200
    assert response.json()["data"]["reason"] == "unsupported_event_type"
