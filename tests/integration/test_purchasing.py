def _catalog(client, headers):
    cc = client.post("/cost-centers", json={"code": "ADM", "name": "Administration"}, headers=headers)
    assert cc.status_code == 201, cc.text
    product = client.post("/products", json={"code": "P-01", "name": "Toner", "price": 80}, headers=headers)
    assert product.status_code == 201, product.text
    return cc.json(), product.json()


def _request(client, headers, cost_center, product, quantity=3, value=75.5):
    r = client.post(
        "/purchases",
        json={
            "description": "Printer supplies",
            "justification": "Stock is empty",
            "cost_center_id": cost_center["id"],
            "items": [{"product_id": product["id"], "quantity": quantity, "estimated_value": value}],
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_approval_opens_quotation(client, admin_headers):
    cost_center, product = _catalog(client, admin_headers)
    request = _request(client, admin_headers, cost_center, product)
    assert request["status"] == "PENDING"
    assert request["requester_id"] is not None

    r = client.post(f"/purchases/{request['id']}/approve", json={"approved": True, "notes": "ok"}, headers=admin_headers)
    assert r.status_code == 200, r.text
    approved = r.json()
    assert approved["status"] == "APPROVED"
    assert approved["approval_notes"] == "ok"
    [quotation] = approved["quotations"]
    assert quotation["number"].startswith("COT-")
    assert quotation["status"] == "OPEN"
    assert quotation["reference_value"] == 226.5
    assert quotation["items"][0]["quantity"] == 3

    again = client.post(f"/purchases/{request['id']}/approve", json={"approved": True}, headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Only pending requests can be approved or rejected"

    r = client.delete(f"/purchases/{request['id']}", headers=admin_headers)
    assert r.status_code == 400


def test_rejection_and_listing(client, admin_headers):
    cost_center, product = _catalog(client, admin_headers)
    first = _request(client, admin_headers, cost_center, product)
    _request(client, admin_headers, cost_center, product, quantity=1)

    r = client.post(f"/purchases/{first['id']}/approve", json={"approved": False}, headers=admin_headers)
    assert r.json()["status"] == "REJECTED"
    assert r.json()["quotations"] == []

    pending = client.get("/purchases", params={"status": "pending"}, headers=admin_headers).json()
    assert pending["total_items"] == 1
    assert client.get("/purchases", params={"cost_center_id": cost_center["id"]}, headers=admin_headers).json()["total_items"] == 2


def test_pending_request_can_be_deleted(client, admin_headers):
    cost_center, product = _catalog(client, admin_headers)
    request = _request(client, admin_headers, cost_center, product)
    assert client.delete(f"/purchases/{request['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/purchases/{request['id']}", headers=admin_headers).status_code == 404


def test_request_validation(client, admin_headers):
    cost_center, product = _catalog(client, admin_headers)
    r = client.post(
        "/purchases",
        json={"description": "x", "justification": "y", "cost_center_id": cost_center["id"], "items": []},
        headers=admin_headers,
    )
    assert r.status_code == 422
    r = client.post(
        "/purchases",
        json={
            "description": "x", "justification": "y", "cost_center_id": cost_center["id"],
            "items": [{"product_id": "00000000-0000-0000-0000-000000000004", "quantity": 1}],
        },
        headers=admin_headers,
    )
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Product not found"


def test_duplicate_catalog_codes(client, admin_headers):
    _catalog(client, admin_headers)
    r = client.post("/cost-centers", json={"code": "ADM", "name": "Again"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Cost center code already exists"
    found = client.get("/products", params={"search": "ton"}, headers=admin_headers).json()
    assert [p["code"] for p in found] == ["P-01"]


def test_api_key_without_collaborator_cannot_request(client, admin_headers, db_session):
    from bizhub.db import schemas
    from bizhub.db.repositories import api_keys as api_key_repo

    cost_center, product = _catalog(client, admin_headers)
    _key, full_key = api_key_repo.create_api_key(
        db_session, payload=schemas.ApiKeyCreateRequest(name="orphan", permissions=["purchases.write"])
    )
    r = client.post(
        "/purchases",
        json={
            "description": "x", "justification": "y", "cost_center_id": cost_center["id"],
            "items": [{"product_id": product["id"], "quantity": 1}],
        },
        headers={"X-API-Key": full_key},
    )
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "A collaborator profile is required for this operation"
