from unittest.mock import MagicMock, patch

import pytest
import requests

from bizhub.db import schemas
from bizhub.db.repositories import settings as settings_repo
from bizhub.services.whatsapp import (
    ProviderConfig,
    WhatsAppProviderError,
    WorkerClient,
    WorkerConfig,
    create_adapter,
    get_whatsapp_adapter,
    map_worker_status,
    reset_whatsapp_adapter_for_tests,
)
from bizhub.services.whatsapp.waha import WahaAdapter
from bizhub.services.whatsapp.wuzapi import WuzapiAdapter


def _response(status_code=200, body=None, content_type="application/json"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    response.headers = {"content-type": content_type}
    response.json.return_value = body
    response.text = "" if body is None else str(body)
    return response


def _adapter(cls, config, *responses):
    http = MagicMock()
    http.request.side_effect = list(responses)
    return cls(config, session=http), http


def test_provider_config_from_settings():
    assert ProviderConfig.from_settings({}) == ProviderConfig(type="wuzapi", url="http://localhost:8080")
    cfg = ProviderConfig.from_settings({"whatsapp_api_type": "WAHA", "waha_url": "https://waha.local/", "waha_api_key": "k"})
    assert cfg == ProviderConfig(type="waha", url="https://waha.local", api_key="k")
    assert ProviderConfig.from_settings({"whatsapp_api_type": "other"}).type == "wuzapi"


def test_wuzapi_admin_header_and_status_mapping():
    config = ProviderConfig(type="wuzapi", url="http://wuz", admin_token="adm")
    adapter, http = _adapter(
        WuzapiAdapter,
        config,
        _response(body=[{"id": "1", "name": "Ana", "token": "tok-1", "status": "connected"}]),
        _response(body={"status": "qr", "qr": "data:image/png"}),
    )
    users = adapter.list_users()
    assert users[0]["token"] == "tok-1"
    assert http.request.call_args_list[0].kwargs["headers"]["Authorization"] == "adm"

    session = adapter.get_session("tok-1")
    assert session["status"] == "scan_qr" and session["qr"] == "data:image/png"
    assert http.request.call_args_list[1].kwargs["headers"]["token"] == "tok-1"
    assert "Authorization" not in http.request.call_args_list[1].kwargs["headers"]


def test_wuzapi_send_message_failure_returns_error():
    config = ProviderConfig(type="wuzapi", url="http://wuz")
    adapter, _ = _adapter(WuzapiAdapter, config, _response(status_code=500))
    result = adapter.send_message("tok", "5511999999999", "hi")
    assert result["success"] is False
    assert "500" in result["error"]


def test_waha_sessions_and_status():
    config = ProviderConfig(type="waha", url="http://waha", api_key="key")
    adapter, http = _adapter(
        WahaAdapter,
        config,
        _response(body=[{"name": "default", "status": "WORKING"}]),
        _response(body={"version": "2024.1"}),
    )
    sessions = adapter.list_sessions()
    assert sessions == [{"id": "default", "name": "default", "status": "working", "qr": None}]
    assert http.request.call_args_list[0].kwargs["headers"]["X-Api-Key"] == "key"
    assert adapter.get_status() == {"status": "online", "version": "2024.1"}


def test_offline_server_reports_error():
    config = ProviderConfig(type="waha", url="http://waha")
    http = MagicMock()
    http.request.side_effect = requests.ConnectionError("refused")
    adapter = WahaAdapter(config, session=http)
    status = adapter.get_status()
    assert status["status"] == "offline"
    assert adapter.test_connection() is False


def test_factory_caches_until_settings_change(db_session):
    reset_whatsapp_adapter_for_tests()
    first = get_whatsapp_adapter(db_session)
    assert isinstance(first, WuzapiAdapter)
    assert get_whatsapp_adapter(db_session) is first

    settings_repo.upsert_setting(db_session, "whatsapp_api_type", schemas.SettingUpsert(value="waha"))
    second = get_whatsapp_adapter(db_session)
    assert isinstance(second, WahaAdapter)
    reset_whatsapp_adapter_for_tests()

    with pytest.raises(ValueError):
        create_adapter(ProviderConfig(type="nope", url="http://x"))


def test_worker_status_mapping():
    assert map_worker_status("CONNECTED") == "working"
    assert map_worker_status("qr_required") == "scan_qr"
    assert map_worker_status(None) == "stopped"


def test_worker_client_session_and_errors(monkeypatch):
    monkeypatch.setenv("WHATSAPP_WORKER_URL", "http://worker:9000/")
    client = WorkerClient()
    assert client.config.base_url == "http://worker:9000"

    ok = _response(body={"status": "connected", "phone": "5511"})
    with patch("bizhub.services.whatsapp.worker_client.requests.post", return_value=ok) as post:
        result = client.session("c-1", "status")
    assert result["connected"] is True and result["phone"] == "5511"
    assert post.call_args.args[0] == "http://worker:9000/session"
    assert post.call_args.kwargs["json"] == {"collaboratorId": "c-1", "action": "status"}

    failing = _response(status_code=400, body={"error": "session not started"})
    with patch("bizhub.services.whatsapp.worker_client.requests.post", return_value=failing):
        with pytest.raises(WhatsAppProviderError, match="session not started"):
            client.send_message("c-1", "5511", "hi")

    with patch("bizhub.services.whatsapp.worker_client.requests.post", side_effect=requests.Timeout("slow")):
        with pytest.raises(WhatsAppProviderError, match="Worker unreachable"):
            WorkerClient(WorkerConfig("http://w")).qr_code("c-1")
