import pytest

from bizhub.api import whatsapp as whatsapp_api
from bizhub.api.main import app
from bizhub.services.whatsapp import WhatsAppProviderError


class FakeWorker:
    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.calls = []

    def _maybe_fail(self):
        if self.fail_with:
            raise WhatsAppProviderError(self.fail_with)

    def session(self, collaborator_id, action):
        self.calls.append(("session", collaborator_id, action))
        self._maybe_fail()
        status = "working" if action != "stop" else "stopped"
        return {"collaborator_id": collaborator_id, "status": status, "connected": status == "working", "phone": "5511999990000"}

    def qr_code(self, collaborator_id):
        self.calls.append(("qr", collaborator_id))
        self._maybe_fail()
        return "data:image/png;base64,AAAA"

    def send_message(self, collaborator_id, to, message):
        self.calls.append(("send", collaborator_id, to, message))
        self._maybe_fail()
        return {"success": True, "message_id": "wamid-1"}


class FakeAdapter:
    class config:
        type = "wuzapi"

    def get_status(self):
        return {"status": "online", "version": "1.0"}

    def list_sessions(self):
        return [{"id": "s1", "status": "working"}]

    def test_connection(self):
        return True


@pytest.fixture
def worker():
    fake = FakeWorker()
    app.dependency_overrides[whatsapp_api.get_worker_client] = lambda: fake
    yield fake
    app.dependency_overrides.pop(whatsapp_api.get_worker_client, None)


@pytest.fixture
def wa_headers(auth_headers):
    return auth_headers("whatsapp.read", "whatsapp.write")


def test_session_actions_use_the_caller_collaborator(client, wa_headers, worker, db_session):
    r = client.post("/whatsapp/session", json={"action": "START"}, headers=wa_headers)
    assert r.status_code == 200, r.text
    assert r.json()["connected"] is True

    status = client.get("/whatsapp/session", headers=wa_headers).json()
    assert status["status"] == "working"

    assert client.get("/whatsapp/qr", headers=wa_headers).json() == {"qr_code": "data:image/png;base64,AAAA"}

    collaborator_ids = {call[1] for call in worker.calls}
    assert len(collaborator_ids) == 1
    assert [call[2] for call in worker.calls if call[0] == "session"] == ["start", "status"]


def test_send_message_normalizes_phone(client, wa_headers, worker):
    r = client.post("/whatsapp/send", json={"phone": "+55 (11) 99999-0000", "message": " Hello "}, headers=wa_headers)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message_id": "wamid-1"}
    assert worker.calls[-1][2:] == ("5511999990000", "Hello")

    bad = client.post("/whatsapp/send", json={"phone": "123", "message": "Hi"}, headers=wa_headers)
    assert bad.status_code == 422
    bad_action = client.post("/whatsapp/session", json={"action": "reboot"}, headers=wa_headers)
    assert bad_action.status_code == 422


def test_worker_errors_become_bad_gateway(client, wa_headers, worker):
    worker.fail_with = "Worker unreachable: timeout"
    r = client.post("/whatsapp/send", json={"phone": "5511999990000", "message": "Hi"}, headers=wa_headers)
    assert r.status_code == 502
    assert r.json()["error"]["message"] == "Worker unreachable: timeout"


def test_provider_status_and_sessions(client, wa_headers, monkeypatch):
    monkeypatch.setattr(whatsapp_api, "get_whatsapp_adapter", lambda db: FakeAdapter())
    status = client.get("/whatsapp/status", headers=wa_headers).json()
    assert status["provider"] == "wuzapi"
    assert status["online"] is True
    assert status["details"]["version"] == "1.0"

    assert client.get("/whatsapp/sessions", headers=wa_headers).json() == [{"id": "s1", "status": "working"}]
    assert client.post("/whatsapp/test", headers=wa_headers).json() == {"provider": "wuzapi", "success": True}


def test_whatsapp_requires_permission(client, auth_headers, worker):
    headers = auth_headers("whatsapp.read")
    r = client.post("/whatsapp/send", json={"phone": "5511999990000", "message": "Hi"}, headers=headers)
    assert r.status_code == 403
    assert worker.calls == []
