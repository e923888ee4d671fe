from bizhub.db import models

TEST_PASSWORD = "correct-horse-battery"


def test_login_me_logout_roundtrip(client, user_factory, group_factory, db_session):
    group = group_factory("Support")
    user = user_factory(email="ana@example.com", permissions=("clients.read",), group=group, name="Ana")

    r = client.post("/auth/login", json={"email": "ANA@example.com", "password": TEST_PASSWORD})
    assert r.status_code == 200, r.text
    body = r.json()
    token = body["token"]
    assert body["user"]["email"] == "ana@example.com"
    assert client.cookies.get("bizhub_session") == token

    headers = {"Authorization": f"Bearer {token}"}
    me = client.get("/auth/me", headers=headers).json()
    assert me["id"] == str(user.id)
    assert me["permissions"] == ["clients.read"]
    assert me["is_admin"] is False
    assert me["group"]["name"] == "Support"

    assert client.post("/auth/logout", headers=headers).status_code == 204
    client.cookies.clear()
    r = client.get("/auth/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Authentication required"

    actions = {a.action_type for a in db_session.query(models.AuditLog).all()}
    assert {"login", "logout"} <= actions


def test_login_rejects_bad_password(client, user_factory):
    user_factory(email="bob@example.com")
    r = client.post("/auth/login", json={"email": "bob@example.com", "password": "wrong-password"})
    assert r.status_code == 401
    error = r.json()["error"]
    assert error["message"] == "Invalid credentials"
    assert error["status"] == 401
    assert "timestamp" in error


def test_session_header_alternatives(client, auth_headers):
    token = auth_headers("clients.read")["Authorization"].split(" ", 1)[1]
    assert client.get("/auth/me", headers={"X-Session-Token": token}).status_code == 200
    client.cookies.set("bizhub_session", token)
    assert client.get("/auth/me").status_code == 200


def test_unauthenticated_request_is_rejected(client):
    r = client.get("/clients")
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Authentication required"


def test_dev_mode_grants_admin(client, monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json()["email"] == "dev@localhost"
    assert r.json()["is_admin"] is True


def test_missing_permission_is_forbidden(client, auth_headers):
    r = client.post("/clients", json={"name": "Acme"}, headers=auth_headers("clients.read"))
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Insufficient permissions"


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
