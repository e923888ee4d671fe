import json
from unittest.mock import MagicMock, patch

import requests

from bizhub.services.webhook_service import verify_signature


def _ok_response(status_code=200, text="ok"):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


def _create(client, headers, **overrides):
    body = {
        "name": "CRM sync",
        "url": "https://hooks.example.com/bizhub",
        "events": ["client.created"],
        "secret": "s3cret",
        "headers": {"X-Tenant": "acme"},
        **overrides,
    }
    r = client.post("/webhooks", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_webhook_crud_hides_secret(client, admin_headers):
    created = _create(client, admin_headers)
    assert created["has_secret"] is True
    assert "secret" not in created

    events = client.get("/webhooks/events", headers=admin_headers).json()
    assert "quote.approved" in events

    r = client.put(f"/webhooks/{created['id']}", json={"events": ["client.created", "task.created"]}, headers=admin_headers)
    assert r.json()["events"] == ["client.created", "task.created"]

    assert client.delete(f"/webhooks/{created['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/webhooks/{created['id']}", headers=admin_headers).status_code == 404


def test_webhook_validation(client, admin_headers):
    r = client.post("/webhooks", json={"name": "x", "url": "ftp://nope", "events": ["client.created"]}, headers=admin_headers)
    assert r.status_code == 422
    r = client.post("/webhooks", json={"name": "x", "url": "https://ok", "events": ["moon.landed"]}, headers=admin_headers)
    assert r.status_code == 422


def test_webhooks_are_admin_only(client, auth_headers):
    assert client.get("/webhooks", headers=auth_headers("clients.write", "logs.read")).status_code == 403


@patch("bizhub.services.webhook_service.requests.post")
def test_event_is_delivered_signed_and_logged(mock_post, client, admin_headers):
    mock_post.return_value = _ok_response()
    webhook = _create(client, admin_headers)

    r = client.post("/clients", json={"name": "Signal Co"}, headers=admin_headers)
    assert r.status_code == 201

    assert mock_post.call_count == 1
    kwargs = mock_post.call_args.kwargs
    body = kwargs["data"]
    payload = json.loads(body)
    assert payload["event"] == "client.created"
    assert payload["data"]["name"] == "Signal Co"
    headers = kwargs["headers"]
    assert headers["X-Webhook-Event"] == "client.created"
    assert headers["X-Tenant"] == "acme"
    assert verify_signature(body, headers["X-Webhook-Signature"], "s3cret")

    logs = client.get(f"/webhooks/{webhook['id']}/logs", headers=admin_headers).json()
    assert logs["total_items"] == 1
    assert logs["items"][0]["success"] is True
    assert logs["items"][0]["is_test"] is False
    assert client.get(f"/webhooks/{webhook['id']}", headers=admin_headers).json()["last_sent_at"] is not None


@patch("bizhub.services.webhook_service.requests.post")
def test_unsubscribed_and_inactive_webhooks_are_skipped(mock_post, client, admin_headers):
    _create(client, admin_headers, events=["task.created"])
    _create(client, admin_headers, name="Off", is_active=False)
    client.post("/clients", json={"name": "Quiet Co"}, headers=admin_headers)
    mock_post.assert_not_called()


@patch("bizhub.services.webhook_service.requests.post")
def test_test_delivery_reports_failures(mock_post, client, admin_headers):
    webhook = _create(client, admin_headers)

    mock_post.return_value = _ok_response(500, "boom")
    r = client.post(f"/webhooks/{webhook['id']}/test", headers=admin_headers)
    assert r.status_code == 200
    result = r.json()
    assert result["success"] is False
    assert result["status_code"] == 500
    assert result["error"].startswith("HTTP 500")

    mock_post.side_effect = requests.ConnectionError("refused")
    result = client.post(f"/webhooks/{webhook['id']}/test", headers=admin_headers).json()
    assert result["success"] is False
    assert result["status_code"] is None
    assert "refused" in result["error"]

    logs = client.get("/logs/webhooks", params={"success": False}, headers=admin_headers).json()
    assert logs["total_items"] == 2
    assert all(item["is_test"] for item in logs["items"])
    assert client.get(f"/webhooks/{webhook['id']}", headers=admin_headers).json()["last_sent_at"] is None
