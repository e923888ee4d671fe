"""
Audit trail persistence and lookup.
"""
from __future__ import annotations

import uuid
from typing import List, Optional
from sqlalchemy.orm import Session

from bizhub.db import schemas, models


def create_audit_log(
    db: Session,
    audit_log: schemas.AuditLogCreate,
    actor_user_id: Optional[uuid.UUID] = None,
    api_key_id: Optional[uuid.UUID] = None,
) -> models.AuditLog:
    values = audit_log.model_dump(exclude={"metadata"})
    entry = models.AuditLog(
        **values,
        actor_user_id=actor_user_id,
        api_key_id=api_key_id,
        metadata_json=audit_log.metadata,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_audit_logs(
    db: Session,
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.AuditLog]:
    """Newest first. Every filter is optional and they combine with AND."""
    criteria = []
    if user_id:
        criteria.append(models.AuditLog.actor_user_id == user_id)
    if action_type:
        criteria.append(models.AuditLog.action_type == action_type)
    if target_type:
        criteria.append(models.AuditLog.target_type == target_type)
    if target_id:
        criteria.append(models.AuditLog.target_id == target_id)
    if status:
        criteria.append(models.AuditLog.status == status)
    return (
        db.query(models.AuditLog)
        .filter(*criteria)
        .order_by(models.AuditLog.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
