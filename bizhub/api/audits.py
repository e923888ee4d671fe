"""
Audit log API endpoints (administrators only).
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bizhub.api.deps import require_admin
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import audits as audit_repo
from bizhub.utils.pagination import clamp

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("", response_model=List[schemas.AuditLog])
def list_audit_logs(
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _page, limit = clamp(1, limit)
    audit_logs = audit_repo.get_audit_logs(
        db,
        user_id=user_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        status=status,
        skip=max(skip, 0),
        limit=limit,
    )
    # Schema expects .metadata; the model attribute is metadata_json
    return [
        schemas.AuditLog(
            id=entry.id,
            action_type=entry.action_type,
            status=entry.status,
            target_type=entry.target_type,
            target_id=entry.target_id,
            reason=entry.reason,
            metadata=entry.metadata_json,
            actor_user_id=entry.actor_user_id,
            api_key_id=entry.api_key_id,
            created_at=entry.created_at,
        )
        for entry in audit_logs
    ]
