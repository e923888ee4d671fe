"""HTTP client for the per-collaborator WhatsApp session worker."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .base import WhatsAppProviderError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = (3, 30)

# Worker session states -> adapter vocabulary
WORKER_STATUS_MAP = {
    "connected": "working",
    "qr_required": "scan_qr",
    "qr_code": "scan_qr",
    "connecting": "starting",
    "starting": "starting",
    "error": "failed",
    "failed": "failed",
    "disconnected": "stopped",
    "stopped": "stopped",
}


def map_worker_status(status: Optional[str]) -> str:
    return WORKER_STATUS_MAP.get((status or "").lower(), "stopped")


@dataclass
class WorkerConfig:
    base_url: str = "http://localhost:8080"

    @classmethod
    def from_env(cls) -> "WorkerConfig":
        return cls(base_url=(os.getenv("WHATSAPP_WORKER_URL") or "http://localhost:8080").rstrip("/"))


class WorkerClient:
    def __init__(self, config: Optional[WorkerConfig] = None):
        self.config = config or WorkerConfig.from_env()

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.config.base_url}{path}"
        try:
            response = requests.post(url, json=payload, timeout=_DEFAULT_TIMEOUT)
        except requests.RequestException as exc:
            raise WhatsAppProviderError(f"Worker unreachable: {exc}") from exc
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.ok:
            message = body.get("error") if isinstance(body, dict) else None
            raise WhatsAppProviderError(message or f"Worker request failed: {response.status_code}")
        if isinstance(body, dict) and body.get("error"):
            raise WhatsAppProviderError(str(body["error"]))
        return body if isinstance(body, dict) else {}

    def session(self, collaborator_id: str, action: str) -> Dict[str, Any]:
        """Run start/stop/status on a collaborator session and normalize the result."""
        body = self._post("/session", {"collaboratorId": str(collaborator_id), "action": action})
        raw_status = body.get("status")
        status = map_worker_status(raw_status)
        logger.info("whatsapp_session collaborator=%s action=%s status=%s", collaborator_id, action, raw_status)
        return {
            "collaborator_id": str(collaborator_id),
            "status": status,
            "connected": status == "working",
            "phone": body.get("phone"),
            "qr_code": body.get("qrCode"),
            "raw": body,
        }

    def qr_code(self, collaborator_id: str) -> Optional[str]:
        body = self._post("/qr", {"collaboratorId": str(collaborator_id), "action": "get"})
        return body.get("qrCode")

    def send_message(self, collaborator_id: str, to: str, message: str) -> Dict[str, Any]:
        body = self._post("/message", {"collaboratorId": str(collaborator_id), "to": to, "message": message})
        return {"success": True, "message_id": body.get("messageId")}
