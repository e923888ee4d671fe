from bizhub.db import models
from bizhub.utils import permission_catalog


def test_permission_seed_is_idempotent_and_catalog_lists_names(client, admin_headers, db_session):
    r = client.post("/permissions/seed", headers=admin_headers)
    assert r.status_code == 200
    # the admin fixture already stored "admin"
    assert r.json()["created"] == len(permission_catalog.ALL_PERMISSIONS) - 1
    assert client.post("/permissions/seed", headers=admin_headers).json() == {"created": 0}

    catalog = client.get("/permissions/catalog", headers=admin_headers).json()
    assert "clients.read" in catalog
    assert "helpdesk.manage" in catalog

    listed = client.get("/permissions", params={"resource": "clients"}, headers=admin_headers).json()
    assert {p["action"] for p in listed} >= {"read", "write", "delete"}


def test_permission_crud_and_duplicates(client, admin_headers):
    payload = {"name": "reports.export", "resource": "reports", "action": "export", "description": "Export reports"}
    r = client.post("/permissions", json=payload, headers=admin_headers)
    assert r.status_code == 201, r.text
    permission_id = r.json()["id"]

    dup = client.post("/permissions", json=payload, headers=admin_headers)
    assert dup.status_code == 400
    assert dup.json()["error"]["message"] == "Permission with this name or resource/action already exists"

    r = client.put(f"/permissions/{permission_id}", json={"description": "CSV export"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["description"] == "CSV export"

    assert client.delete(f"/permissions/{permission_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/permissions/{permission_id}", headers=admin_headers).status_code == 404


def test_profile_with_permissions(client, admin_headers):
    client.post("/permissions/seed", headers=admin_headers)
    perms = client.get("/permissions", params={"resource": "tasks"}, headers=admin_headers).json()
    ids = [p["id"] for p in perms]

    r = client.post("/profiles", json={"name": "Operators", "permission_ids": ids}, headers=admin_headers)
    assert r.status_code == 201, r.text
    profile = r.json()
    assert {p["name"] for p in profile["permissions"]} == {p["name"] for p in perms}

    dup = client.post("/profiles", json={"name": "Operators"}, headers=admin_headers)
    assert dup.status_code == 400
    assert dup.json()["error"]["message"] == "Profile name already exists"

    missing = client.post(
        "/profiles",
        json={"name": "Ghosts", "permission_ids": ["00000000-0000-0000-0000-000000000000"]},
        headers=admin_headers,
    )
    assert missing.status_code == 404
    assert missing.json()["error"]["message"] == "One or more permissions not found"

    r = client.put(f"/profiles/{profile['id']}", json={"permission_ids": ids[:1]}, headers=admin_headers)
    assert r.status_code == 200
    assert len(r.json()["permissions"]) == 1

    assert client.delete(f"/profiles/{profile['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/profiles/{profile['id']}", headers=admin_headers).status_code == 404


def test_groups_reject_self_parent(client, admin_headers):
    parent = client.post("/groups", json={"name": "Sales"}, headers=admin_headers).json()
    child = client.post("/groups", json={"name": "Inside Sales", "parent_id": parent["id"]}, headers=admin_headers)
    assert child.status_code == 201
    assert child.json()["parent_id"] == parent["id"]

    r = client.put(f"/groups/{parent['id']}", json={"parent_id": parent["id"]}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "A group cannot be its own parent"

    names = [g["name"] for g in client.get("/groups", headers=admin_headers).json()]
    assert "Sales" in names and "Inside Sales" in names


def test_collaborator_crud_and_search(client, admin_headers, db_session):
    group = client.post("/groups", json={"name": "Support"}, headers=admin_headers).json()
    r = client.post(
        "/collaborators",
        json={"name": "Maria Silva", "email": "Maria@Example.com", "position": "Analyst", "group_id": group["id"]},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    collaborator = r.json()
    assert collaborator["email"] == "maria@example.com"
    assert collaborator["group"]["name"] == "Support"

    dup = client.post("/collaborators", json={"name": "Other", "email": "maria@example.com"}, headers=admin_headers)
    assert dup.status_code == 400
    assert dup.json()["error"]["message"] == "Email already registered"

    bad_profile = client.post(
        "/collaborators",
        json={"name": "Nobody", "email": "nobody@example.com", "profile_id": "00000000-0000-0000-0000-000000000000"},
        headers=admin_headers,
    )
    assert bad_profile.status_code == 404
    assert bad_profile.json()["error"]["message"] == "Profile not found"

    found = client.get("/collaborators", params={"search": "silva"}, headers=admin_headers).json()
    assert [c["name"] for c in found["items"]] == ["Maria Silva"]
    by_group = client.get("/collaborators", params={"group_id": group["id"]}, headers=admin_headers).json()
    assert by_group["total_items"] == 1

    r = client.put(f"/collaborators/{collaborator['id']}", json={"is_active": False}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    assert client.delete(f"/collaborators/{collaborator['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/collaborators/{collaborator['id']}", headers=admin_headers).status_code == 404


def test_collaborator_routes_require_permission(client, auth_headers):
    headers = auth_headers("collaborators.read")
    assert client.get("/collaborators", headers=headers).status_code == 200
    r = client.post("/collaborators", json={"name": "Joao", "email": "joao@example.com"}, headers=headers)
    assert r.status_code == 403


def test_user_create_validates_and_audits(client, admin_headers, db_session):
    short = client.post("/users", json={"email": "ana@example.com", "name": "Ana", "password": "short"}, headers=admin_headers)
    assert short.status_code == 422

    r = client.post(
        "/users",
        json={"email": "ana@example.com", "name": "Ana", "password": "long-enough-pass"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    user = r.json()
    assert "password_hash" not in user
    assert user["is_active"] is True

    dup = client.post(
        "/users",
        json={"email": "ana@example.com", "name": "Ana 2", "password": "long-enough-pass"},
        headers=admin_headers,
    )
    assert dup.status_code == 400

    login = client.post("/auth/login", json={"email": "ana@example.com", "password": "long-enough-pass"})
    assert login.status_code == 200

    listed = client.get("/users", params={"search": "ana@"}, headers=admin_headers).json()
    assert listed["total_items"] == 1

    db_session.expire_all()
    audit = db_session.query(models.AuditLog).filter(models.AuditLog.action_type == "user_create").one()
    assert audit.metadata_json == {"email": "ana@example.com"}


def test_audits_are_admin_only_and_filterable(client, admin_headers, auth_headers):
    client.post("/groups", json={"name": "Ops"}, headers=admin_headers)
    client.post("/permissions", json={"name": "ops.run", "resource": "ops", "action": "run"}, headers=admin_headers)
    client.post("/profiles", json={"name": "Ops"}, headers=admin_headers)

    assert client.get("/audits", headers=auth_headers("users.read")).status_code == 403

    everything = client.get("/audits", headers=admin_headers).json()
    assert {"permission_create", "profile_create"} <= {a["action_type"] for a in everything}

    only_profiles = client.get("/audits", params={"action_type": "profile_create"}, headers=admin_headers).json()
    assert len(only_profiles) == 1
    assert only_profiles[0]["target_type"] == "profile"
    assert only_profiles[0]["metadata"]["name"] == "Ops"
