"""Provider-neutral interface for WhatsApp HTTP gateways."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = (3, 30)

SESSION_STATUSES = ("working", "scan_qr", "starting", "failed", "stopped")


class WhatsAppProviderError(RuntimeError):
    """Raised when a provider request fails or returns a non-2xx status."""


@dataclass
class ProviderConfig:
    type: str
    url: str
    admin_token: Optional[str] = None
    api_key: Optional[str] = None

    @classmethod
    def from_settings(cls, values: Dict[str, Optional[str]]) -> "ProviderConfig":
        kind = (values.get("whatsapp_api_type") or "wuzapi").strip().lower()
        if kind == "waha":
            return cls(
                type="waha",
                url=(values.get("waha_url") or "https://waha.devlike.pro").rstrip("/"),
                api_key=values.get("waha_api_key") or None,
            )
        if kind != "wuzapi":
            logger.warning("Unknown whatsapp_api_type '%s'; using wuzapi.", kind)
        return cls(
            type="wuzapi",
            url=(values.get("wuzapi_url") or "http://localhost:8080").rstrip("/"),
            admin_token=values.get("wuzapi_admin_token") or None,
        )


class WhatsAppAdapter(ABC):
    """Operations every gateway exposes. Sessions are keyed by a token string."""

    name = "base"
    status_map: Dict[str, str] = {}

    def __init__(self, config: ProviderConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.http = session or requests.Session()

    def _headers(self, admin: bool = False) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        admin: bool = False,
    ) -> Any:
        url = f"{self.config.url}{path}"
        merged = self._headers(admin)
        merged.update(headers or {})
        try:
            response = self.http.request(method, url, json=json, headers=merged, timeout=_DEFAULT_TIMEOUT)
        except requests.RequestException as exc:
            raise WhatsAppProviderError(f"{self.name} request failed: {exc}") from exc
        if not response.ok:
            raise WhatsAppProviderError(f"{self.name} error: {response.status_code} {response.reason}")
        if "application/json" in (response.headers.get("content-type") or ""):
            return response.json()
        return response.text

    def map_status(self, status: Optional[str]) -> str:
        return self.status_map.get((status or "").lower(), "stopped")

    @abstractmethod
    def create_user(self, name: str, token: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def list_users(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        ...

    @abstractmethod
    def get_session(self, session_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def send_message(self, session_id: str, to: str, body: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def server_status_path(self) -> str:
        ...

    def list_sessions(self) -> List[Dict[str, Any]]:
        sessions = []
        for user in self.list_users():
            token = user.get("token") or user.get("id")
            try:
                sessions.append(self.get_session(token))
            except WhatsAppProviderError:
                sessions.append({"id": token, "name": user.get("name"), "status": "failed"})
        return sessions

    def get_status(self) -> Dict[str, Any]:
        try:
            response = self._request("GET", self.server_status_path())
        except WhatsAppProviderError as exc:
            logger.info("%s server offline: %s", self.name, exc)
            return {"status": "offline", "error": str(exc)}
        version = response.get("version") if isinstance(response, dict) else None
        return {"status": "online", "version": version}

    def test_connection(self) -> bool:
        return self.get_status()["status"] == "online"
