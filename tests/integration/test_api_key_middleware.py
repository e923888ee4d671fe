import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from bizhub.api.main import app
from bizhub.db import models, schemas
from bizhub.db.repositories import api_keys as api_key_repo
from bizhub.db.repositories import clients as client_repo
from bizhub.utils import api_key_crypto


def _make_key(db_session, permissions, **kwargs):
    payload = schemas.ApiKeyCreateRequest(name=kwargs.pop("name", "integration"), permissions=permissions, **kwargs)
    return api_key_repo.create_api_key(db_session, payload=payload)


def test_admin_creates_key_and_secret_is_shown_once(client, admin_headers, db_session):
    r = client.post("/api-keys", json={"name": "ERP sync", "permissions": ["clients.read"]}, headers=admin_headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["key"].startswith("bz_")
    assert body["last_four"] == body["key"][-4:]

    listed = client.get("/api-keys", headers=admin_headers).json()
    assert [k["name"] for k in listed] == ["ERP sync"]
    assert "key" not in listed[0]
    stored = db_session.query(models.ApiKey).one()
    assert stored.token_hash == api_key_crypto.hash_secret(api_key_crypto.parse_key(body["key"]).secret)


def test_unknown_permission_is_rejected(client, admin_headers):
    r = client.post("/api-keys", json={"name": "bad", "permissions": ["rockets.launch"]}, headers=admin_headers)
    assert r.status_code == 422
    assert r.json()["error"]["message"] == "Validation error"


def test_invalid_key_returns_401(client):
    r = client.get("/clients", headers={"X-API-Key": "bz_garbage"})
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Invalid API key format"


def test_inactive_key_returns_401(client, db_session):
    key, full_key = _make_key(db_session, ["clients.read"])
    api_key_repo.toggle_api_key(db_session, key.id)
    r = client.get("/clients", headers={"X-API-Key": full_key})
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "API key is inactive"


def test_expired_key_returns_401(client, db_session):
    _key, full_key = _make_key(db_session, ["clients.read"], expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    r = client.get("/clients", headers={"Authorization": f"Bearer {full_key}"})
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "API key expired"


def test_key_without_permission_gets_403_and_is_logged(client, db_session):
    key, full_key = _make_key(db_session, ["clients.read"])
    r = client.post("/clients", json={"name": "Acme"}, headers={"X-API-Key": full_key})
    assert r.status_code == 403
    error = r.json()["error"]
    assert error["message"] == "Insufficient permissions"
    assert error["details"] == {"required": "clients.write"}

    db_session.expire_all()
    log = db_session.query(models.ApiLog).one()
    assert log.api_key_id == key.id
    assert log.status_code == 403
    assert log.method == "POST"


def test_successful_request_carries_rate_limit_headers(client, db_session):
    key, full_key = _make_key(db_session, ["clients.write"])
    r = client.post("/clients", json={"name": "Acme Ltd"}, headers={"X-API-Key": full_key})
    assert r.status_code == 201, r.text
    assert r.headers["X-RateLimit-Limit"] == "100"
    assert r.headers["X-RateLimit-Remaining"] == "99"
    assert "X-RateLimit-Reset" in r.headers

    # write implies read
    assert client.get("/clients", headers={"X-API-Key": full_key}).status_code == 200

    db_session.expire_all()
    assert db_session.query(models.ApiLog).filter(models.ApiLog.status_code == 201).count() == 1
    assert db_session.get(models.ApiKey, key.id).last_used_at is not None


def test_rate_limit_exceeded(client, db_session, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "2")
    _key, full_key = _make_key(db_session, ["clients.read"])
    headers = {"X-API-Key": full_key}
    assert client.get("/clients", headers=headers).status_code == 200
    assert client.get("/clients", headers=headers).status_code == 200
    r = client.get("/clients", headers=headers)
    assert r.status_code == 429
    assert r.json()["error"]["message"] == "Rate limit exceeded"
    assert r.json()["error"]["details"]["retry_after"] >= 1
    assert r.headers["X-RateLimit-Remaining"] == "0"
    assert "Retry-After" in r.headers


def test_per_key_rate_limit_overrides_default(client, db_session):
    _key, full_key = _make_key(db_session, ["clients.read"], rate_limit=1)
    headers = {"X-API-Key": full_key}
    assert client.get("/clients", headers=headers).headers["X-RateLimit-Limit"] == "1"
    assert client.get("/clients", headers=headers).status_code == 429


def test_admin_routes_need_admin_key(client, db_session):
    _key, full_key = _make_key(db_session, ["clients.read", "clients.write"])
    r = client.get("/api-keys", headers={"X-API-Key": full_key})
    assert r.status_code == 403
    assert r.json()["error"]["details"] == {"required": "admin"}


def test_key_acts_as_its_creator(client, db_session, user_factory):
    creator = user_factory(email="owner@example.com")
    payload = schemas.ApiKeyCreateRequest(name="bot", permissions=["tasks.read"])
    _key, full_key = api_key_repo.create_api_key(db_session, payload=payload, created_by_user_id=creator.id)
    me = client.get("/auth/me", headers={"X-API-Key": full_key}).json()
    assert me["api_key"]["name"] == "bot"
    assert me["permissions"] == ["tasks.read"]
    assert me["is_admin"] is False


def test_regenerate_invalidates_old_secret(client, admin_headers, db_session):
    key, old_key = _make_key(db_session, ["clients.read"])
    r = client.post(f"/api-keys/{key.id}/regenerate", headers=admin_headers)
    assert r.status_code == 200
    new_key = r.json()["key"]
    assert new_key != old_key
    assert client.get("/clients", headers={"X-API-Key": old_key}).status_code == 401
    assert client.get("/clients", headers={"X-API-Key": new_key}).status_code == 200


def test_key_stats_and_logs(client, admin_headers, db_session):
    key, full_key = _make_key(db_session, ["clients.read"])
    client.get("/clients", headers={"X-API-Key": full_key})
    client.post("/clients", json={"name": "Nope"}, headers={"X-API-Key": full_key})

    stats = client.get(f"/api-keys/{key.id}/stats", headers=admin_headers).json()
    assert stats["total_requests"] == 2
    assert stats["success_requests"] == 1
    assert stats["failed_requests"] == 1
    assert stats["requests_by_status"] == {"200": 1, "403": 1}

    logs = client.get("/logs/api", params={"api_key_id": str(key.id), "status_code": 403}, headers=admin_headers).json()
    assert logs["total_items"] == 1
    assert logs["items"][0]["endpoint"] == "/clients"

    cleaned = client.delete("/logs/api", params={"older_than_days": 1}, headers=admin_headers).json()
    assert cleaned == {"deleted": 0}


def test_delete_key(client, admin_headers, db_session):
    key, _ = _make_key(db_session, ["clients.read"])
    assert client.delete(f"/api-keys/{key.id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api-keys/{key.id}", headers=admin_headers).status_code == 404


def test_request_log_records_forwarded_client_ip(client, db_session):
    key, full_key = _make_key(db_session, ["clients.read"])
    headers = {"X-API-Key": full_key, "X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "erp-sync/2.1"}
    assert client.get("/clients", headers=headers).status_code == 200

    db_session.expire_all()
    log = db_session.query(models.ApiLog).one()
    assert log.ip_address == "203.0.113.7"
    assert log.user_agent == "erp-sync/2.1"


def test_server_error_is_logged_and_reported(db_session, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(client_repo, "list_clients", boom)
    hook = models.WebhookConfig(name="Ops", url="https://hooks.example.com/ops", events=["system.error"], is_active=True)
    db_session.add(hook)
    db_session.commit()
    key, full_key = _make_key(db_session, ["clients.read"])

    response = MagicMock(status_code=200, text="ok")
    with patch("bizhub.services.webhook_service.requests.post", return_value=response) as post:
        r = TestClient(app, raise_server_exceptions=False).get("/clients", headers={"X-API-Key": full_key})

    assert r.status_code == 500
    assert r.json()["error"]["message"] == "Internal server error"

    db_session.expire_all()
    log = db_session.query(models.ApiLog).one()
    assert log.api_key_id == key.id
    assert log.status_code == 500

    payload = json.loads(post.call_args.kwargs["data"])
    assert payload["event"] == "system.error"
    assert payload["data"]["path"] == "/clients"
    assert payload["data"]["error"] == "RuntimeError"
