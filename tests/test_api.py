"""HTTP API integration tests (auth + admin endpoints)."""

import re

import pytest
from fastapi.testclient import TestClient

from conftest import FakeIssuer
from authserver.config import settings
from authserver.main import app
from authserver.services.auth_service import AuthService

DEVICE_ID = "AA:BB:CC:DD:EE:FF"


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "snapshot_path", tmp_path / "devices.json")
    monkeypatch.setattr(settings, "admin_api_key", "")
    with TestClient(app) as c:
        yield c


def _register(client, device_id=DEVICE_ID, **metadata):
    r = client.post("/admin/register", json={"deviceId": device_id, "metadata": metadata})
    assert r.status_code == 200, f"register failed: {r.status_code} {r.text}"
    return r.json()["device"]


# --- Scenarios ---

def test_device_lifecycle_scenario(client):
    # 1. register
    r = client.post("/admin/register", json={"deviceId": DEVICE_ID, "metadata": {}})
    assert r.status_code == 200
    data = r.json()
    assert data["message"] == "Device registered successfully"
    assert data["device"]["deviceId"] == DEVICE_ID
    secret = data["device"]["secret"]
    assert re.fullmatch(r"[0-9a-f]{64}", secret)
    assert client.get("/admin/devices").json()["count"] == 1

    # 2. duplicate
    r = client.post("/admin/register", json={"deviceId": DEVICE_ID, "metadata": {}})
    assert r.status_code == 400
    assert r.json() == {"error": "Device already registered"}
    assert client.get("/admin/devices").json()["count"] == 1

    # 3. token with a lower-case id
    r = client.post("/auth/token", json={"deviceId": "aa:bb:cc:dd:ee:ff", "secret": secret})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["customToken"]
    assert body["expiresIn"] == 3600
    assert body["message"] == "Authentication successful"
    device = client.get(f"/admin/devices/{DEVICE_ID}").json()["device"]
    assert device["authCount"] == 1
    assert device["lastAuthAt"] is not None

    # 4. revoke, then the correct secret no longer works
    r = client.post("/admin/revoke", json={"deviceId": DEVICE_ID, "reason": "lost"})
    assert r.status_code == 200
    assert r.json() == {"message": "Device revoked successfully", "deviceId": DEVICE_ID}
    r = client.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": secret})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid credentials"}

    # 5. list
    r = client.get("/admin/devices")
    listing = r.json()
    assert listing["count"] == 1
    entry = listing["devices"][0]
    assert entry["status"] == "revoked"
    assert entry["revokeReason"] == "lost"
    assert "secret" not in entry
    assert secret not in r.text


# --- /auth/token ---

def test_token_missing_fields(client):
    for body in ({}, {"deviceId": DEVICE_ID}, {"secret": "abc"}, {"deviceId": "", "secret": "abc"}):
        r = client.post("/auth/token", json=body)
        assert r.status_code == 400
        assert r.json() == {"error": "Missing required fields: deviceId, secret"}


def test_token_malformed_body(client):
    r = client.post("/auth/token", json={"deviceId": 42, "secret": ["x"]})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request body"}


def test_token_failures_are_indistinguishable(client):
    secret = _register(client)["secret"]
    _register(client, "11:22:33:44:55:66")
    client.post("/admin/revoke", json={"deviceId": "11:22:33:44:55:66"})

    responses = [
        client.post("/auth/token", json={"deviceId": "00:00:00:00:00:00", "secret": secret}),
        client.post("/auth/token", json={"deviceId": "11:22:33:44:55:66", "secret": secret}),
        client.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": "0" * 64}),
    ]
    assert {(r.status_code, r.text) for r in responses} == {(401, '{"error":"Invalid credentials"}')}


def test_token_firmware_hint_in_claims(client):
    secret = _register(client, firmwareVersion="1.0.0")["secret"]
    r = client.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": secret, "firmwareVersion": "1.1.0"})
    token = r.json()["customToken"]
    claims = client.post("/auth/verify", json={"idToken": token}).json()["claims"]
    assert claims["firmwareVersion"] == "1.1.0"


def test_token_upstream_failure(client):
    secret = _register(client)["secret"]
    state = client.app.state
    state.auth_service = AuthService(state.registry, FakeIssuer(fail=True), server_key=settings.server_secret)

    r = client.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": secret})
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to create token"
    assert client.get(f"/admin/devices/{DEVICE_ID}").json()["device"]["authCount"] == 0


# --- /auth/verify ---

def test_verify_issued_token(client):
    secret = _register(client)["secret"]
    token = client.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": secret}).json()["customToken"]

    r = client.post("/auth/verify", json={"idToken": token})
    assert r.status_code == 200
    data = r.json()
    assert data["valid"] is True
    assert data["deviceId"] == DEVICE_ID
    assert data["claims"]["deviceType"] == "esp8266"


def test_verify_invalid_token(client):
    r = client.post("/auth/verify", json={"idToken": "not-a-token"})
    assert r.status_code == 401
    data = r.json()
    assert data["valid"] is False
    assert data["error"]


def test_verify_missing_token(client):
    r = client.post("/auth/verify", json={})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing idToken"}


# --- /admin ---

def test_register_missing_device_id(client):
    r = client.post("/admin/register", json={"metadata": {}})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing deviceId"}


def test_register_normalizes_and_defaults_metadata(client):
    _register(client, "aa-bb-cc-dd-ee-ff", room="attic")
    device = client.get("/admin/devices/AA:BB:CC:DD:EE:FF").json()["device"]
    assert device["deviceId"] == DEVICE_ID
    assert device["status"] == "active"
    assert device["authCount"] == 0
    assert device["metadata"] == {
        "firmwareVersion": "unknown",
        "hardwareVersion": "unknown",
        "room": "attic",
    }
    assert "secret" not in device


def test_revoke_unknown_device(client):
    r = client.post("/admin/revoke", json={"deviceId": DEVICE_ID, "reason": "lost"})
    assert r.status_code == 400
    assert r.json() == {"error": "Device not found"}


def test_revoke_missing_device_id(client):
    r = client.post("/admin/revoke", json={"reason": "lost"})
    assert r.status_code == 400


def test_get_unknown_device(client):
    r = client.get("/admin/devices/00:00:00:00:00:00")
    assert r.status_code == 404
    assert r.json() == {"error": "Device not found"}


def test_admin_key_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", "admin-key")

    r = client.get("/admin/devices")
    assert r.status_code == 401
    r = client.get("/admin/devices", headers={"Authorization": "Bearer wrong"})
    assert r.status_code == 401
    r = client.get("/admin/devices", headers={"Authorization": "Bearer admin-key"})
    assert r.status_code == 200

    # device endpoints stay open
    r = client.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": "x"})
    assert r.status_code == 401


def test_state_survives_restart(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "snapshot_path", tmp_path / "devices.json")
    monkeypatch.setattr(settings, "admin_api_key", "")
    with TestClient(app) as c:
        secret = _register(c)["secret"]
        c.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": secret})

    with TestClient(app) as c:
        device = c.get(f"/admin/devices/{DEVICE_ID}").json()["device"]
        assert device["authCount"] == 1
        r = c.post("/auth/token", json={"deviceId": DEVICE_ID, "secret": secret})
        assert r.status_code == 200


# --- System ---

def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["environment"] == "development"
    assert data["uptime"] >= 0


def test_unknown_endpoint(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Endpoint not found"}
