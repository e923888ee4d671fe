"""
Request and webhook delivery logs, plus retention cleanup.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bizhub.api.deps import page_params, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import api_keys as api_key_repo
from bizhub.db.repositories import webhooks as webhook_repo
from bizhub.utils.pagination import page_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("/api", response_model=schemas.PaginatedApiLogs)
def list_api_logs(
    api_key_id: Optional[uuid.UUID] = None,
    method: Optional[str] = None,
    status_code: Optional[int] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("logs.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = api_key_repo.list_logs(
        db,
        api_key_id=api_key_id,
        method=method,
        status_code=status_code,
        since=since,
        until=until,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.get("/webhooks", response_model=schemas.PaginatedWebhookLogs)
def list_webhook_logs(
    webhook_id: Optional[uuid.UUID] = None,
    event: Optional[str] = None,
    success: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("logs.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = webhook_repo.list_logs(
        db,
        webhook_id=webhook_id,
        event=event,
        success=success,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.delete("/api")
def cleanup_api_logs(
    older_than_days: int = Query(default=30, ge=1),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("logs.delete")),
):
    deleted = api_key_repo.cleanup_logs(db, older_than_days=older_than_days)
    logger.info("api_logs_cleanup older_than_days=%s deleted=%s", older_than_days, deleted)
    return {"deleted": deleted}


@router.delete("/webhooks")
def cleanup_webhook_logs(
    older_than_days: int = Query(default=30, ge=1),
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("logs.delete")),
):
    deleted = webhook_repo.cleanup_logs(db, older_than_days=older_than_days)
    logger.info("webhook_logs_cleanup older_than_days=%s deleted=%s", older_than_days, deleted)
    return {"deleted": deleted}
