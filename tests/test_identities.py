from __future__ import annotations

import hashlib
import hmac
import time

from fastapi.testclient import TestClient


def _signed(api_key: str, method: str, path: str, body: bytes = b"", ts: int | None = None) -> dict[str, str]:
    timestamp = str(ts if ts is not None else int(time.time()))
    message = f"{timestamp}{method}{path}".encode("utf-8") + body
    sig = hmac.new(api_key.encode("utf-8"), message, hashlib.sha256).hexdigest()
    return {
        "Authorization": f"Bearer {api_key}",
        "X-Lattice-Signature": sig,
        "X-Lattice-Timestamp": timestamp,
    }


def test_health_carries_request_id(registry_app):
    with TestClient(registry_app) as client:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.headers["X-Request-Id"].startswith("req_")

        resp = client.get("/health", headers={"X-Request-Id": "req_fixed"})
        assert resp.headers["X-Request-Id"] == "req_fixed"


def test_register_returns_identity_and_key(registry_app, register):
    with TestClient(registry_app) as client:
        body = register(client, "alice")
        assert len(body["identity"]) == 64
        bytes.fromhex(body["identity"])
        assert body["api_key"].startswith("lat_")
        assert body["label"] == "alice"


def test_register_assigns_distinct_identities(registry_app, register):
    with TestClient(registry_app) as client:
        a = register(client)
        b = register(client)
        assert a["identity"] != b["identity"]
        assert a["api_key"] != b["api_key"]


def test_missing_authorization(registry_app):
    with TestClient(registry_app) as client:
        resp = client.post("/v1/anchors")
        assert resp.status_code == 401


def test_wrong_key_format(registry_app):
    with TestClient(registry_app) as client:
        resp = client.post("/v1/anchors", headers={"Authorization": "Bearer ate_123"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid API key format"


def test_unknown_key(registry_app, auth_header):
    with TestClient(registry_app) as client:
        resp = client.post("/v1/anchors", headers=auth_header("lat_" + "0" * 48))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid API key"


def test_signature_required_when_configured(make_app, register, auth_header):
    app = make_app(LATTICE_REQUIRE_SIGNATURES="true")
    with TestClient(app) as client:
        key = register(client)["api_key"]

        resp = client.post("/v1/anchors", headers=auth_header(key))
        assert resp.status_code == 401
        assert "signature required" in resp.json()["detail"]

        resp = client.post("/v1/anchors", headers=_signed(key, "POST", "/v1/anchors"))
        assert resp.status_code == 201, resp.text


def test_bad_or_stale_signature_rejected(registry_app, register):
    with TestClient(registry_app) as client:
        key = register(client)["api_key"]

        headers = _signed(key, "POST", "/v1/anchors")
        headers["X-Lattice-Signature"] = "0" * 64
        resp = client.post("/v1/anchors", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid request signature"

        stale = _signed(key, "POST", "/v1/anchors", ts=int(time.time()) - 3600)
        resp = client.post("/v1/anchors", headers=stale)
        assert resp.status_code == 401
