"""
Webhook configuration and delivery log repositories.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from bizhub.db import models, schemas


def _now() -> datetime:
    return datetime.now(timezone.utc)


def list_webhooks(db: Session) -> List[models.WebhookConfig]:
    return db.query(models.WebhookConfig).order_by(models.WebhookConfig.created_at.desc()).all()


def get_webhook(db: Session, webhook_id: uuid.UUID) -> Optional[models.WebhookConfig]:
    return db.query(models.WebhookConfig).filter(models.WebhookConfig.id == webhook_id).first()


def create_webhook(db: Session, payload: schemas.WebhookCreate) -> models.WebhookConfig:
    webhook = models.WebhookConfig(**payload.model_dump())
    db.add(webhook)
    db.commit()
    db.refresh(webhook)
    return webhook


def update_webhook(db: Session, webhook_id: uuid.UUID, payload: schemas.WebhookUpdate) -> Optional[models.WebhookConfig]:
    webhook = get_webhook(db, webhook_id)
    if not webhook:
        return None
    for key, value in payload.model_dump(exclude_unset=True).items():
        if key in ("name", "url", "events", "is_active") and value is None:
            continue
        setattr(webhook, key, value)
    db.commit()
    db.refresh(webhook)
    return webhook


def delete_webhook(db: Session, webhook_id: uuid.UUID) -> bool:
    webhook = get_webhook(db, webhook_id)
    if not webhook:
        return False
    db.query(models.WebhookLog).filter(models.WebhookLog.webhook_id == webhook.id).delete(synchronize_session=False)
    db.delete(webhook)
    db.commit()
    return True


def active_for_event(db: Session, event: str) -> List[models.WebhookConfig]:
    # JSON containment differs between dialects; filter subscriptions in Python
    active = db.query(models.WebhookConfig).filter(models.WebhookConfig.is_active.is_(True)).all()
    return [w for w in active if event in (w.events or [])]


def record_delivery(
    db: Session,
    *,
    webhook: models.WebhookConfig,
    event: str,
    success: bool,
    status_code: Optional[int],
    response_time_ms: Optional[int],
    error: Optional[str],
    is_test: bool,
) -> models.WebhookLog:
    entry = models.WebhookLog(
        webhook_id=webhook.id,
        event=event,
        success=success,
        status_code=status_code,
        response_time_ms=response_time_ms,
        error=error,
        is_test=is_test,
        created_at=_now(),
    )
    db.add(entry)
    if not is_test:
        webhook.last_sent_at = _now()
    db.commit()
    return entry


def list_logs(
    db: Session,
    *,
    webhook_id: Optional[uuid.UUID] = None,
    event: Optional[str] = None,
    success: Optional[bool] = None,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[models.WebhookLog], int]:
    query = db.query(models.WebhookLog)
    if webhook_id:
        query = query.filter(models.WebhookLog.webhook_id == webhook_id)
    if event:
        query = query.filter(models.WebhookLog.event == event)
    if success is not None:
        query = query.filter(models.WebhookLog.success.is_(success))
    total = query.count()
    items = query.order_by(models.WebhookLog.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def cleanup_logs(db: Session, *, older_than_days: int) -> int:
    cutoff = _now() - timedelta(days=older_than_days)
    count = db.query(models.WebhookLog).filter(models.WebhookLog.created_at < cutoff).delete(synchronize_session=False)
    db.commit()
    return count
