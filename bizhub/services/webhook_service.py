"""
Outbound webhook delivery.

Every active webhook subscribed to an event receives a JSON POST:

    {"event": ..., "data": ..., "timestamp": ISO-8601, "id": uuid}

with `X-Webhook-Event`, `X-Webhook-ID`, `X-Webhook-Timestamp`, the
configured custom headers and, when a secret is set,
`X-Webhook-Signature: sha256=<hmac hex of the body>`. Each attempt is
recorded in `webhook_logs`. Delivery failures are logged and never raised
to the caller.
"""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from sqlalchemy.orm import Session

from bizhub.db import models
from bizhub.db.database import open_session
from bizhub.db.repositories import webhooks as webhook_repo

logger = logging.getLogger(__name__)

USER_AGENT = "BizHub-Webhook/1.0"
SIGNATURE_PREFIX = "sha256="


@dataclass
class WebhookDeliveryConfig:
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "WebhookDeliveryConfig":
        raw = os.getenv("WEBHOOK_TIMEOUT_SECONDS", "30")
        try:
            timeout = float(raw)
        except ValueError:
            logger.warning("Invalid WEBHOOK_TIMEOUT_SECONDS '%s'; using 30", raw)
            timeout = 30.0
        return cls(timeout_seconds=max(1.0, timeout))


def sign(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Constant-time check of an `X-Webhook-Signature` header value."""
    if not signature or not secret:
        return False
    return hmac.compare_digest(sign(body, secret), signature.strip())


def build_payload(event: str, data: Any, *, delivery_id: Optional[str] = None, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "event": event,
        "data": data,
        "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat(),
        "id": delivery_id or str(uuid.uuid4()),
    }


def encode_body(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, default=str, separators=(",", ":")).encode("utf-8")


class WebhookService:
    def __init__(self, db: Session, config: Optional[WebhookDeliveryConfig] = None):
        self.db = db
        self.config = config or WebhookDeliveryConfig.from_env()

    def _headers(self, webhook: models.WebhookConfig, payload: Dict[str, Any], body: bytes) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Webhook-Event": payload["event"],
            "X-Webhook-ID": payload["id"],
            "X-Webhook-Timestamp": payload["timestamp"],
        }
        for key, value in (webhook.headers or {}).items():
            headers[str(key)] = str(value)
        if webhook.secret:
            headers["X-Webhook-Signature"] = sign(body, webhook.secret)
        return headers

    def deliver(self, webhook: models.WebhookConfig, event: str, data: Any, *, is_test: bool = False) -> Dict[str, Any]:
        payload = build_payload(event, data)
        body = encode_body(payload)
        headers = self._headers(webhook, payload, body)
        started = time.monotonic()
        status_code = None
        error = None
        try:
            response = requests.post(webhook.url, data=body, headers=headers, timeout=self.config.timeout_seconds)
            status_code = response.status_code
            success = 200 <= response.status_code < 300
            if not success:
                error = f"HTTP {response.status_code}: {response.text[:500]}"
        except requests.RequestException as exc:
            success = False
            error = str(exc) or exc.__class__.__name__
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if success:
            logger.info("webhook_delivered id=%s event=%s status=%s ms=%s", webhook.id, event, status_code, elapsed_ms)
        else:
            logger.warning("webhook_failed id=%s event=%s error=%s", webhook.id, event, error)

        webhook_repo.record_delivery(
            self.db,
            webhook=webhook,
            event=event,
            success=success,
            status_code=status_code,
            response_time_ms=elapsed_ms,
            error=error,
            is_test=is_test,
        )
        return {
            "webhook_id": webhook.id,
            "success": success,
            "status_code": status_code,
            "response_time_ms": elapsed_ms,
            "error": error,
        }

    def trigger(self, event: str, data: Any) -> List[Dict[str, Any]]:
        results = []
        for webhook in webhook_repo.active_for_event(self.db, event):
            try:
                results.append(self.deliver(webhook, event, data))
            except Exception:
                self.db.rollback()
                logger.exception("webhook_dispatch_error id=%s event=%s", webhook.id, event)
        return results

    def send_test(self, webhook: models.WebhookConfig) -> Dict[str, Any]:
        return self.deliver(
            webhook,
            "test",
            {"message": "Test delivery", "webhook_id": str(webhook.id), "webhook_name": webhook.name},
            is_test=True,
        )


def _trigger_in_new_session(event: str, data: Any) -> None:
    db = open_session()
    try:
        WebhookService(db).trigger(event, data)
    except Exception:
        logger.exception("webhook_trigger_failed event=%s", event)
    finally:
        db.close()


def emit(event: str, data: Any, background_tasks=None) -> None:
    """Schedule delivery of `event` after the response is sent.

    Without a BackgroundTasks instance the delivery runs inline.
    """
    if background_tasks is not None:
        background_tasks.add_task(_trigger_in_new_session, event, data)
    else:
        _trigger_in_new_session(event, data)
