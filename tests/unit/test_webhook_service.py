import json
from unittest.mock import MagicMock, patch

import requests

from bizhub.db import models
from bizhub.services import webhook_service as ws


def _webhook(db, **overrides):
    values = dict(name="CRM sync", url="https://hooks.example.com/in", events=["client.created"], is_active=True)
    values.update(overrides)
    hook = models.WebhookConfig(**values)
    db.add(hook)
    db.commit()
    db.refresh(hook)
    return hook


def test_sign_and_verify():
    body = b'{"event":"x"}'
    signature = ws.sign(body, "s3cret")
    assert signature.startswith("sha256=")
    assert ws.verify_signature(body, signature, "s3cret")
    assert not ws.verify_signature(body, signature, "other")
    assert not ws.verify_signature(body, None, "s3cret")


def test_build_payload_shape():
    payload = ws.build_payload("client.created", {"id": 1}, delivery_id="abc")
    assert payload["event"] == "client.created"
    assert payload["data"] == {"id": 1}
    assert payload["id"] == "abc"
    assert "timestamp" in payload


def test_deliver_success_signs_and_logs(db_session):
    hook = _webhook(db_session, secret="s3cret", headers={"X-Tenant": "acme"})
    response = MagicMock(status_code=200, text="ok")
    with patch("bizhub.services.webhook_service.requests.post", return_value=response) as post:
        result = ws.WebhookService(db_session).deliver(hook, "client.created", {"id": "1"})

    assert result["success"] is True
    kwargs = post.call_args.kwargs
    headers = kwargs["headers"]
    assert headers["X-Webhook-Event"] == "client.created"
    assert headers["X-Tenant"] == "acme"
    assert ws.verify_signature(kwargs["data"], headers["X-Webhook-Signature"], "s3cret")
    assert json.loads(kwargs["data"])["data"] == {"id": "1"}

    log = db_session.query(models.WebhookLog).one()
    assert log.success is True and log.status_code == 200
    db_session.refresh(hook)
    assert hook.last_sent_at is not None


def test_deliver_failure_is_recorded_not_raised(db_session):
    hook = _webhook(db_session)
    with patch("bizhub.services.webhook_service.requests.post", side_effect=requests.ConnectionError("refused")):
        result = ws.WebhookService(db_session).deliver(hook, "client.created", {})
    assert result["success"] is False
    assert "refused" in result["error"]

    with patch("bizhub.services.webhook_service.requests.post", return_value=MagicMock(status_code=500, text="boom")):
        result = ws.WebhookService(db_session).deliver(hook, "client.created", {})
    assert result["error"].startswith("HTTP 500")
    assert db_session.query(models.WebhookLog).filter(models.WebhookLog.success.is_(False)).count() == 2


def test_trigger_only_hits_subscribed_active_hooks(db_session):
    _webhook(db_session, name="a", events=["client.created", "task.created"])
    _webhook(db_session, name="b", events=["task.created"])
    _webhook(db_session, name="c", events=["client.created"], is_active=False)
    with patch("bizhub.services.webhook_service.requests.post", return_value=MagicMock(status_code=204, text="")) as post:
        results = ws.WebhookService(db_session).trigger("client.created", {"id": "1"})
    assert len(results) == 1
    assert post.call_count == 1


def test_send_test_marks_log(db_session):
    hook = _webhook(db_session)
    with patch("bizhub.services.webhook_service.requests.post", return_value=MagicMock(status_code=200, text="")):
        ws.WebhookService(db_session).send_test(hook)
    log = db_session.query(models.WebhookLog).one()
    assert log.is_test is True and log.event == "test"


def test_emit_without_background_runs_inline(monkeypatch):
    calls = []
    monkeypatch.setattr(ws, "_trigger_in_new_session", lambda event, data: calls.append((event, data)))
    ws.emit("task.created", {"id": "t"})
    assert calls == [("task.created", {"id": "t"})]

    class _Tasks:
        def __init__(self):
            self.added = []

        def add_task(self, fn, *args):
            self.added.append((fn, args))

    tasks = _Tasks()
    ws.emit("task.created", {"id": "t"}, tasks)
    assert tasks.added[0][1] == ("task.created", {"id": "t"})
