from datetime import datetime, timedelta, timezone

from bizhub.db import models


def _client(client, headers):
    return client.post("/clients", json={"name": "Fix-It Corp"}, headers=headers).json()


def _order(client, headers, client_id, **extra):
    body = {
        "title": "Air conditioning repair",
        "description": "Unit 3 leaking",
        "client_id": client_id,
        "items": [
            {"description": "Visit", "quantity": 1, "unit_price": 120},
            {"description": "Gas refill", "quantity": 2, "unit_price": 45.25},
        ],
        **extra,
    }
    r = client.post("/service-orders", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def _quote(client, headers, order_id, discount=10):
    r = client.post(
        "/quotes",
        json={
            "title": "AC repair quote",
            "service_order_id": order_id,
            "discount": discount,
            "items": [
                {"kind": "labor", "description": "Technician hours", "quantity": 3, "unit_price": 50},
                {"kind": "MATERIAL", "description": "Refrigerant", "quantity": 1, "unit_price": 80},
            ],
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_order_numbering_totals_and_history(client, admin_headers):
    owner = _client(client, admin_headers)
    first = _order(client, admin_headers, owner["id"])
    second = _order(client, admin_headers, owner["id"])
    now = datetime.now()
    prefix = f"OS{now.year}{now.month:02d}"
    assert first["number"] == f"{prefix}0001"
    assert second["number"] == f"{prefix}0002"
    assert first["status"] == "DRAFT"
    assert first["final_value"] == 210.5

    r = client.put(
        f"/service-orders/{first['id']}",
        json={"status": "in_progress", "items": [{"description": "Visit", "quantity": 1, "unit_price": 99.9}]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["status"] == "IN_PROGRESS"
    assert r.json()["final_value"] == 99.9

    detail = client.get(f"/service-orders/{first['id']}", headers=admin_headers).json()
    assert [h["action"] for h in detail["history"]] == ["created", "status_changed", "items_updated"]
    assert detail["history"][1]["description"] == "DRAFT -> IN_PROGRESS"

    listed = client.get("/service-orders", params={"status": "draft"}, headers=admin_headers).json()
    assert [o["number"] for o in listed["items"]] == [second["number"]]


def test_order_requires_existing_client(client, admin_headers):
    r = client.post(
        "/service-orders",
        json={"title": "x", "description": "y", "client_id": "00000000-0000-0000-0000-000000000005"},
        headers=admin_headers,
    )
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Client not found"


def test_quote_send_and_customer_approval(client, admin_headers, db_session):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    quote = _quote(client, admin_headers, order["id"])
    assert quote["number"].startswith("ORC")
    assert quote["subtotal"] == 230.0
    assert quote["total"] == 220.0
    assert quote["status"] == "DRAFT"
    assert [i["position"] for i in quote["items"]] == [0, 1]
    assert quote["items"][0]["kind"] == "LABOR"

    early = client.post(f"/quotes/{quote['id']}/decision", json={"approved": True}, headers=admin_headers)
    assert early.status_code == 400
    assert early.json()["error"]["message"] == "Only sent quotes can be approved or rejected"

    sent = client.put(f"/quotes/{quote['id']}", json={"status": "SENT"}, headers=admin_headers)
    assert sent.status_code == 200
    assert client.get(f"/service-orders/{order['id']}", headers=admin_headers).json()["status"] == "QUOTE_SENT"

    r = client.post(
        f"/quotes/{quote['id']}/decision",
        json={"approved": True, "comments": "Go ahead"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    decided = r.json()
    assert decided["status"] == "APPROVED"
    assert decided["approved_by_customer"] is True
    assert decided["customer_comments"] == "Go ahead"

    refreshed = client.get(f"/service-orders/{order['id']}", headers=admin_headers).json()
    assert refreshed["status"] == "AWAITING_CUSTOMER_APPROVAL"
    assert refreshed["quote_value"] == 220.0
    assert refreshed["history"][-1]["action"] == "quote_approved"

    detail = client.get(f"/quotes/{quote['id']}", headers=admin_headers).json()
    assert [h["action"] for h in detail["history"]] == ["created", "status_changed", "customer_approved"]

    assert client.delete(f"/quotes/{quote['id']}", headers=admin_headers).status_code == 400
    r = client.delete(f"/service-orders/{order['id']}", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Service order has quotes and cannot be deleted"


def test_quote_rejection_leaves_order_untouched(client, admin_headers):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    quote = _quote(client, admin_headers, order["id"])
    client.put(f"/quotes/{quote['id']}", json={"status": "SENT"}, headers=admin_headers)
    r = client.post(f"/quotes/{quote['id']}/decision", json={"approved": False}, headers=admin_headers)
    assert r.json()["status"] == "REJECTED"
    assert client.get(f"/service-orders/{order['id']}", headers=admin_headers).json()["quote_value"] is None
    assert client.delete(f"/quotes/{quote['id']}", headers=admin_headers).status_code == 204


def test_expired_quote_cannot_be_decided(client, admin_headers, db_session):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    quote = _quote(client, admin_headers, order["id"])
    client.put(f"/quotes/{quote['id']}", json={"status": "SENT"}, headers=admin_headers)

    row = db_session.query(models.Quote).one()
    row.valid_until = datetime.now(timezone.utc) - timedelta(days=1)
    db_session.commit()

    r = client.post(f"/quotes/{quote['id']}/decision", json={"approved": True}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Quote has expired"


def test_quote_total_must_be_positive(client, admin_headers):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    r = client.post(
        "/quotes",
        json={
            "title": "Free",
            "service_order_id": order["id"],
            "discount": 500,
            "items": [{"description": "Anything", "quantity": 1, "unit_price": 10}],
        },
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Quote total must be greater than zero"
    assert client.get("/quotes", headers=admin_headers).json()["total_items"] == 0


def _report(client, headers, order, **extra):
    body = {
        "technician_id": order["created_by_id"],
        "diagnosis": "Compressor valve worn out",
        "recommended_solution": "Replace the valve and recharge",
        "items": [
            {"kind": "DIAGNOSIS", "description": "Pressure test failed"},
            {"kind": "SOLUTION", "description": "New valve", "quantity": 1, "unit_price": 150},
            {"kind": "SOLUTION", "description": "Labour", "quantity": 2, "unit_price": 40},
        ],
        **extra,
    }
    r = client.post(f"/service-orders/{order['id']}/report", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_technical_report_lifecycle(client, admin_headers):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    assert client.get(f"/service-orders/{order['id']}/report", headers=admin_headers).status_code == 404

    report = _report(client, admin_headers, order)
    assert report["status"] == "DRAFT"
    assert [i["position"] for i in report["items"]] == [0, 1, 2]
    assert report["items"][2]["total"] == 80.0

    dup = client.post(
        f"/service-orders/{order['id']}/report",
        json={"technician_id": order["created_by_id"], "diagnosis": "x", "recommended_solution": "y"},
        headers=admin_headers,
    )
    assert dup.status_code == 400
    assert dup.json()["error"]["message"] == "Service order already has a technical report"

    r = client.put(
        f"/service-orders/{order['id']}/report",
        json={"diagnosis": "Valve and seal worn", "recommended_solution": "Replace both", "items": []},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["diagnosis"] == "Valve and seal worn"
    assert r.json()["items"] == []

    early = client.post(f"/service-orders/{order['id']}/report/quote", headers=admin_headers)
    assert early.status_code == 400
    assert early.json()["error"]["message"] == "Technical report must be completed to generate a quote"

    done = client.post(f"/service-orders/{order['id']}/report/complete", headers=admin_headers)
    assert done.status_code == 200
    assert done.json()["status"] == "COMPLETED"
    assert done.json()["completed_at"] is not None
    assert [h["action"] for h in done.json()["history"]] == ["created", "updated", "completed"]
    assert client.get(f"/service-orders/{order['id']}", headers=admin_headers).json()["status"] == "AWAITING_CUSTOMER_APPROVAL"

    again = client.post(f"/service-orders/{order['id']}/report/complete", headers=admin_headers)
    assert again.json()["error"]["message"] == "Technical report is already completed"
    locked = client.put(
        f"/service-orders/{order['id']}/report",
        json={"diagnosis": "a", "recommended_solution": "b"},
        headers=admin_headers,
    )
    assert locked.json()["error"]["message"] == "Technical report cannot be edited in this status"
    gone = client.delete(f"/service-orders/{order['id']}/report", headers=admin_headers)
    assert gone.json()["error"]["message"] == "Technical report cannot be deleted in this status"

    unpriced = client.post(f"/service-orders/{order['id']}/report/quote", headers=admin_headers)
    assert unpriced.status_code == 400
    assert unpriced.json()["error"]["message"] == "No priced items in the technical report"


def test_report_requires_known_technician(client, admin_headers):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    r = client.post(
        f"/service-orders/{order['id']}/report",
        json={"technician_id": "00000000-0000-0000-0000-000000000009", "diagnosis": "x", "recommended_solution": "y"},
        headers=admin_headers,
    )
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Technician not found"
    _report(client, admin_headers, order)
    assert client.delete(f"/service-orders/{order['id']}/report", headers=admin_headers).status_code == 204
    assert client.get(f"/service-orders/{order['id']}/report", headers=admin_headers).status_code == 404


def test_quote_from_completed_report_is_refreshed_while_draft(client, admin_headers):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    _report(client, admin_headers, order)
    client.post(f"/service-orders/{order['id']}/report/complete", headers=admin_headers)

    r = client.post(f"/service-orders/{order['id']}/report/quote", headers=admin_headers)
    assert r.status_code == 201, r.text
    quote = r.json()
    assert quote["auto_generated"] is True
    assert quote["technical_report_id"] is not None
    assert quote["status"] == "DRAFT"
    assert quote["total"] == 230.0
    assert [i["description"] for i in quote["items"]] == ["New valve", "Labour"]
    assert quote["description"] == "Replace the valve and recharge"

    again = client.post(f"/service-orders/{order['id']}/report/quote", headers=admin_headers)
    assert again.json()["id"] == quote["id"]
    assert client.get("/quotes", headers=admin_headers).json()["total_items"] == 1
    detail = client.get(f"/quotes/{quote['id']}", headers=admin_headers).json()
    assert [h["action"] for h in detail["history"]] == ["created", "regenerated"]

    report = client.get(f"/service-orders/{order['id']}/report", headers=admin_headers).json()
    assert report["quote_total"] == 230.0

    client.put(f"/quotes/{quote['id']}", json={"status": "SENT"}, headers=admin_headers)
    blocked = client.post(f"/service-orders/{order['id']}/report/quote", headers=admin_headers)
    assert blocked.status_code == 400
    assert blocked.json()["error"]["message"] == "Generated quote has already been sent and cannot be regenerated"


def test_completing_report_can_generate_quote(client, admin_headers):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])
    _report(client, admin_headers, order, generate_quote=True)
    done = client.post(f"/service-orders/{order['id']}/report/complete", headers=admin_headers).json()
    assert done["quote_total"] == 230.0
    quotes = client.get("/quotes", params={"service_order_id": order["id"]}, headers=admin_headers).json()
    assert quotes["total_items"] == 1
    assert quotes["items"][0]["auto_generated"] is True


def test_generate_quote_from_order_items_with_margin(client, admin_headers):
    owner = _client(client, admin_headers)
    order = _order(client, admin_headers, owner["id"])

    preview = client.post(
        "/quotes/generate",
        json={"service_order_id": order["id"], "margin_percent": 20, "preview": True},
        headers=admin_headers,
    )
    assert preview.status_code == 200, preview.text
    body = preview.json()
    assert [i["unit_price"] for i in body["items"]] == [144.0, 54.3]
    assert body["total"] == 252.6
    assert body["service_order_number"] == order["number"]
    assert client.get("/quotes", headers=admin_headers).json()["total_items"] == 0

    r = client.post(
        "/quotes/generate",
        json={"service_order_id": order["id"], "margin_percent": 20},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    quote = r.json()
    assert quote["total"] == 252.6
    assert quote["auto_generated"] is True
    assert quote["technical_report_id"] is None
    assert quote["title"] == f"Quote for {order['number']} - Air conditioning repair"


def test_generate_quote_validation(client, admin_headers):
    r = client.post("/quotes/generate", json={"margin_percent": 10}, headers=admin_headers)
    assert r.status_code == 422
    r = client.post(
        "/quotes/generate",
        json={"service_order_id": "00000000-0000-0000-0000-000000000001", "margin_percent": 150},
        headers=admin_headers,
    )
    assert r.status_code == 422

    owner = _client(client, admin_headers)
    empty = _order(client, admin_headers, owner["id"], items=[])
    r = client.post("/quotes/generate", json={"service_order_id": empty["id"]}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Service order has no items to quote"
