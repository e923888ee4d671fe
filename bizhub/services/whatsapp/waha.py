"""WAHA gateway: users and sessions are the same thing, authenticated by X-Api-Key."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .base import WhatsAppAdapter, WhatsAppProviderError

logger = logging.getLogger(__name__)


class WahaAdapter(WhatsAppAdapter):
    name = "waha"
    status_map = {
        "working": "working",
        "authenticated": "working",
        "scan_qr": "scan_qr",
        "scan_qr_code": "scan_qr",
        "qr": "scan_qr",
        "starting": "starting",
        "initializing": "starting",
        "failed": "failed",
        "stopped": "failed",
    }

    def _headers(self, admin: bool = False) -> Dict[str, str]:
        headers = super()._headers(admin)
        if self.config.api_key:
            headers["X-Api-Key"] = self.config.api_key
        return headers

    def create_user(self, name: str, token: str) -> Dict[str, Any]:
        self._request("POST", "/api/sessions", json={"name": token})
        return {"id": token, "name": name or token, "token": token, "status": "starting"}

    def list_sessions(self) -> List[Dict[str, Any]]:
        try:
            response = self._request("GET", "/api/sessions")
        except WhatsAppProviderError as exc:
            logger.warning("waha list_sessions failed: %s", exc)
            return []
        if not isinstance(response, list):
            return []
        return [
            {
                "id": session.get("name"),
                "name": session.get("name"),
                "status": self.map_status(session.get("status")),
                "qr": session.get("qr"),
            }
            for session in response
        ]

    def list_users(self) -> List[Dict[str, Any]]:
        return [
            {"id": s["id"], "name": s["name"], "token": s["id"], "status": s["status"]}
            for s in self.list_sessions()
        ]

    def delete_user(self, user_id: str) -> bool:
        try:
            self._request("DELETE", f"/api/sessions/{user_id}")
        except WhatsAppProviderError as exc:
            logger.warning("waha delete_session failed for %s: %s", user_id, exc)
            return False
        return True

    def get_session(self, session_id: str) -> Dict[str, Any]:
        try:
            response = self._request("GET", f"/api/sessions/{session_id}")
        except WhatsAppProviderError:
            return {"id": session_id, "name": session_id, "status": "failed"}
        response = response if isinstance(response, dict) else {}
        return {
            "id": session_id,
            "name": response.get("name") or session_id,
            "status": self.map_status(response.get("status")),
            "qr": response.get("qr"),
        }

    def send_message(self, session_id: str, to: str, body: str) -> Dict[str, Any]:
        try:
            response = self._request(
                "POST",
                "/api/sendText",
                json={"session": session_id, "chatId": to, "text": body},
            )
        except WhatsAppProviderError as exc:
            return {"success": False, "error": str(exc)}
        response = response if isinstance(response, dict) else {}
        return {"success": True, "message_id": response.get("id")}

    def server_status_path(self) -> str:
        return "/api/server/status"
