"""
Repositories for API keys and their request logs.

Implements create/list/get/update/toggle/delete/regenerate, validation of a
presented key, request logging and usage statistics.
"""
from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.models import ensure_aware
from bizhub.utils import api_key_crypto


class ApiKeyValidationError(ValueError):
    """Raised when a presented key cannot be used. The message is safe to return."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_api_key(
    db: Session,
    *,
    payload: schemas.ApiKeyCreateRequest,
    created_by_user_id: Optional[uuid.UUID] = None,
) -> Tuple[models.ApiKey, str]:
    token_id, secret, full_key = api_key_crypto.generate_key()
    prefix, last_four = api_key_crypto.derive_display_parts(full_key)
    key = models.ApiKey(
        name=payload.name,
        description=payload.description,
        token_id=token_id,
        token_hash=api_key_crypto.hash_secret(secret),
        prefix=prefix,
        last_four=last_four,
        permissions=list(payload.permissions),
        is_active=True,
        rate_limit=payload.rate_limit,
        created_by_user_id=created_by_user_id,
        created_at=_now(),
        expires_at=payload.expires_at,
    )
    db.add(key)
    db.commit()
    db.refresh(key)
    return key, full_key


def list_api_keys(db: Session) -> List[models.ApiKey]:
    return db.query(models.ApiKey).order_by(models.ApiKey.created_at.desc()).all()


def get_api_key(db: Session, key_id: uuid.UUID) -> Optional[models.ApiKey]:
    return db.query(models.ApiKey).filter(models.ApiKey.id == key_id).first()


def get_by_token_id(db: Session, *, token_id: str) -> Optional[models.ApiKey]:
    return db.query(models.ApiKey).filter(models.ApiKey.token_id == token_id).first()


def update_api_key(db: Session, key_id: uuid.UUID, payload: schemas.ApiKeyUpdateRequest) -> Optional[models.ApiKey]:
    key = get_api_key(db, key_id)
    if not key:
        return None
    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None and data["name"].strip():
        key.name = data["name"].strip()
    if "description" in data:
        key.description = data["description"]
    if data.get("permissions") is not None:
        key.permissions = list(data["permissions"])
    if data.get("is_active") is not None:
        key.is_active = data["is_active"]
    if "expires_at" in data:
        key.expires_at = data["expires_at"]
    if "rate_limit" in data:
        key.rate_limit = data["rate_limit"]
    db.commit()
    db.refresh(key)
    return key


def toggle_api_key(db: Session, key_id: uuid.UUID) -> Optional[models.ApiKey]:
    key = get_api_key(db, key_id)
    if not key:
        return None
    key.is_active = not key.is_active
    db.commit()
    db.refresh(key)
    return key


def delete_api_key(db: Session, key_id: uuid.UUID) -> bool:
    key = get_api_key(db, key_id)
    if not key:
        return False
    db.query(models.ApiLog).filter(models.ApiLog.api_key_id == key.id).delete(synchronize_session=False)
    db.delete(key)
    db.commit()
    return True


def regenerate_api_key(db: Session, key_id: uuid.UUID) -> Optional[Tuple[models.ApiKey, str]]:
    key = get_api_key(db, key_id)
    if not key:
        return None
    # keep token_id stable so logs stay attributable
    _tid, secret, _ = api_key_crypto.generate_key()
    full_key = api_key_crypto.build_key_string(key.token_id, secret)
    prefix, last_four = api_key_crypto.derive_display_parts(full_key)
    key.token_hash = api_key_crypto.hash_secret(secret)
    key.prefix = prefix
    key.last_four = last_four
    db.commit()
    db.refresh(key)
    return key, full_key


def validate_api_key(db: Session, raw_key: str) -> models.ApiKey:
    """Return the active key matching `raw_key` or raise ApiKeyValidationError."""
    parsed = api_key_crypto.parse_key(raw_key)
    if not parsed:
        raise ApiKeyValidationError("Invalid API key format")
    key = get_by_token_id(db, token_id=parsed.token_id)
    if not key:
        raise ApiKeyValidationError("Invalid API key")
    if not key.is_active:
        raise ApiKeyValidationError("API key is inactive")
    if key.expires_at is not None and _now() > ensure_aware(key.expires_at):
        raise ApiKeyValidationError("API key expired")
    if not api_key_crypto.verify_secret(parsed.secret, key.token_hash):
        raise ApiKeyValidationError("Invalid API key")
    return key


def mark_used_now(db: Session, *, key: models.ApiKey) -> None:
    key.last_used_at = _now()
    db.commit()


def log_request(
    db: Session,
    *,
    api_key_id: uuid.UUID,
    endpoint: str,
    method: str,
    status_code: int,
    response_time_ms: int,
    user_agent: Optional[str],
    ip_address: Optional[str],
) -> models.ApiLog:
    entry = models.ApiLog(
        api_key_id=api_key_id,
        endpoint=endpoint[:255],
        method=method,
        status_code=status_code,
        response_time_ms=response_time_ms,
        user_agent=user_agent,
        ip_address=ip_address,
        created_at=_now(),
    )
    db.add(entry)
    db.commit()
    return entry


def list_logs(
    db: Session,
    *,
    api_key_id: Optional[uuid.UUID] = None,
    method: Optional[str] = None,
    status_code: Optional[int] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[models.ApiLog], int]:
    query = db.query(models.ApiLog)
    if api_key_id:
        query = query.filter(models.ApiLog.api_key_id == api_key_id)
    if method:
        query = query.filter(models.ApiLog.method == method.upper())
    if status_code:
        query = query.filter(models.ApiLog.status_code == status_code)
    if since:
        query = query.filter(models.ApiLog.created_at >= since)
    if until:
        query = query.filter(models.ApiLog.created_at <= until)
    total = query.count()
    items = query.order_by(models.ApiLog.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def cleanup_logs(db: Session, *, older_than_days: int) -> int:
    cutoff = _now() - timedelta(days=older_than_days)
    count = db.query(models.ApiLog).filter(models.ApiLog.created_at < cutoff).delete(synchronize_session=False)
    db.commit()
    return count


def get_stats(db: Session, *, api_key_id: uuid.UUID, days: int = 30) -> Dict:
    since = _now() - timedelta(days=days)
    logs = (
        db.query(models.ApiLog)
        .filter(models.ApiLog.api_key_id == api_key_id, models.ApiLog.created_at >= since)
        .all()
    )
    total = len(logs)
    success = sum(1 for entry in logs if 200 <= entry.status_code < 400)
    avg = (sum(entry.response_time_ms or 0 for entry in logs) / total) if total else 0.0
    by_day = Counter(ensure_aware(entry.created_at).date().isoformat() for entry in logs)
    by_endpoint = Counter(entry.endpoint for entry in logs)
    by_status = Counter(str(entry.status_code) for entry in logs)
    return {
        "total_requests": total,
        "success_requests": success,
        "failed_requests": total - success,
        "average_response_time_ms": round(avg, 2),
        "requests_by_day": dict(sorted(by_day.items())),
        "requests_by_endpoint": dict(by_endpoint.most_common()),
        "requests_by_status": dict(sorted(by_status.items())),
    }
