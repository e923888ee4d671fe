"""
Webhook configuration endpoints (admin only).
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import page_params, require_admin
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import webhooks as webhook_repo
from bizhub.services.webhook_service import WebhookService
from bizhub.utils.pagination import page_payload

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _out(webhook) -> schemas.Webhook:
    out = schemas.Webhook.model_validate(webhook)
    out.has_secret = bool(webhook.secret)
    return out


@router.get("/events", response_model=List[str])
def list_events(user_context=Depends(require_admin)):
    return list(schemas.WEBHOOK_EVENTS)


@router.get("", response_model=List[schemas.Webhook])
def list_webhooks(
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    return [_out(w) for w in webhook_repo.list_webhooks(db)]


@router.post("", response_model=schemas.Webhook, status_code=status.HTTP_201_CREATED)
def create_webhook(
    payload: schemas.WebhookCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _user, current_user = user_context
    webhook = webhook_repo.create_webhook(db, payload)
    log_for(
        db, current_user,
        action=AuditAction.WEBHOOK_CREATE,
        target_type="webhook",
        target_id=webhook.id,
        metadata={"name": webhook.name, "url": webhook.url, "events": list(webhook.events or [])},
    )
    return _out(webhook)


@router.get("/{webhook_id}", response_model=schemas.Webhook)
def get_webhook(
    webhook_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    webhook = webhook_repo.get_webhook(db, webhook_id)
    if not webhook:
        raise HTTPException(status_code=404, detail="Webhook not found")
    return _out(webhook)


@router.put("/{webhook_id}", response_model=schemas.Webhook)
def update_webhook(
    webhook_id: uuid.UUID,
    payload: schemas.WebhookUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _user, current_user = user_context
    webhook = webhook_repo.update_webhook(db, webhook_id, payload)
    if not webhook:
        raise HTTPException(status_code=404, detail="Webhook not found")
    log_for(
        db, current_user,
        action=AuditAction.WEBHOOK_UPDATE,
        target_type="webhook",
        target_id=webhook.id,
        metadata={"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return _out(webhook)


@router.delete("/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_webhook(
    webhook_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _user, current_user = user_context
    if not webhook_repo.delete_webhook(db, webhook_id):
        raise HTTPException(status_code=404, detail="Webhook not found")
    log_for(db, current_user, action=AuditAction.WEBHOOK_DELETE, target_type="webhook", target_id=webhook_id)
    return None


@router.post("/{webhook_id}/test", response_model=schemas.WebhookDeliveryResult)
def test_webhook(
    webhook_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    webhook = webhook_repo.get_webhook(db, webhook_id)
    if not webhook:
        raise HTTPException(status_code=404, detail="Webhook not found")
    return WebhookService(db).send_test(webhook)


@router.get("/{webhook_id}/logs", response_model=schemas.PaginatedWebhookLogs)
def list_webhook_logs(
    webhook_id: uuid.UUID,
    event: Optional[str] = None,
    success: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    if not webhook_repo.get_webhook(db, webhook_id):
        raise HTTPException(status_code=404, detail="Webhook not found")
    page, limit, skip = page_params(page, limit)
    items, total = webhook_repo.list_logs(db, webhook_id=webhook_id, event=event, success=success, skip=skip, limit=limit)
    return page_payload(items, total, page, limit)
