"""wuzapi gateway: users carry their own token, admin calls use the admin token."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .base import WhatsAppAdapter, WhatsAppProviderError

logger = logging.getLogger(__name__)


class WuzapiAdapter(WhatsAppAdapter):
    name = "wuzapi"
    status_map = {
        "connected": "working",
        "authenticated": "working",
        "qr": "scan_qr",
        "qr_code": "scan_qr",
        "connecting": "starting",
        "initializing": "starting",
        "disconnected": "failed",
        "failed": "failed",
    }

    def _headers(self, admin: bool = False) -> Dict[str, str]:
        headers = super()._headers(admin)
        if admin and self.config.admin_token:
            headers["Authorization"] = self.config.admin_token
        return headers

    def create_user(self, name: str, token: str) -> Dict[str, Any]:
        response = self._request("POST", "/admin/users", json={"name": name, "token": token}, admin=True)
        response = response if isinstance(response, dict) else {}
        return {
            "id": response.get("id") or token,
            "name": name,
            "token": token,
            "status": response.get("status") or "created",
        }

    def list_users(self) -> List[Dict[str, Any]]:
        response = self._request("GET", "/admin/users", admin=True)
        if not isinstance(response, list):
            return []
        return [
            {
                "id": user.get("id") or user.get("token"),
                "name": user.get("name"),
                "token": user.get("token"),
                "status": user.get("status"),
            }
            for user in response
        ]

    def delete_user(self, user_id: str) -> bool:
        try:
            self._request("DELETE", f"/admin/users/{user_id}", admin=True)
        except WhatsAppProviderError as exc:
            logger.warning("wuzapi delete_user failed for %s: %s", user_id, exc)
            return False
        return True

    def get_session(self, session_id: str) -> Dict[str, Any]:
        try:
            response = self._request("GET", f"/{session_id}/status", headers={"token": session_id})
        except WhatsAppProviderError:
            return {"id": session_id, "name": session_id, "status": "failed"}
        response = response if isinstance(response, dict) else {}
        return {
            "id": session_id,
            "name": session_id,
            "status": self.map_status(response.get("status")),
            "qr": response.get("qr"),
        }

    def send_message(self, session_id: str, to: str, body: str) -> Dict[str, Any]:
        try:
            response = self._request(
                "POST",
                f"/{session_id}/send-message",
                json={"phone": to, "message": body},
                headers={"token": session_id},
            )
        except WhatsAppProviderError as exc:
            return {"success": False, "error": str(exc)}
        response = response if isinstance(response, dict) else {}
        return {"success": True, "message_id": response.get("id") or response.get("messageId")}

    def server_status_path(self) -> str:
        return "/status"
