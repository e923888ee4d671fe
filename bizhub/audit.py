"""
Audit logging helpers and enums.

Centralized helper to persist normalized audit records for sensitive
operations (API keys, permissions, users, webhooks, approvals).
"""
from __future__ import annotations
import logging
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from bizhub.db import schemas
from bizhub.db.repositories import audits as audit_repo

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    # Users
    USER_CREATE = "user_create"
    USER_UPDATE = "user_update"
    USER_DELETE = "user_delete"
    LOGIN = "login"
    LOGOUT = "logout"
    # RBAC
    PERMISSION_CREATE = "permission_create"
    PERMISSION_UPDATE = "permission_update"
    PERMISSION_DELETE = "permission_delete"
    PROFILE_CREATE = "profile_create"
    PROFILE_UPDATE = "profile_update"
    PROFILE_DELETE = "profile_delete"
    # API keys
    API_KEY_CREATE = "api_key_create"
    API_KEY_UPDATE = "api_key_update"
    API_KEY_REGENERATE = "api_key_regenerate"
    API_KEY_DELETE = "api_key_delete"
    # Webhooks
    WEBHOOK_CREATE = "webhook_create"
    WEBHOOK_UPDATE = "webhook_update"
    WEBHOOK_DELETE = "webhook_delete"
    # Approvals
    PURCHASE_APPROVE = "purchase_approve"
    PURCHASE_REJECT = "purchase_reject"
    # Settings
    SETTING_UPDATE = "setting_update"
    MODULE_UPDATE = "module_update"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: Optional[uuid.UUID] = None,
    api_key_id: Optional[uuid.UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central audit logging helper."""
    # Persist plain string values, not Enum reprs
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(
        db,
        audit_log=audit_log,
        actor_user_id=actor_user_id,
        api_key_id=api_key_id,
    )


def log_for(db: Session, current_user: Optional[Dict[str, Any]], **kwargs):
    """Audit on behalf of the request identity; failures are logged, never raised."""
    api_key = (current_user or {}).get("api_key") or {}
    try:
        return log(
            db,
            actor_user_id=None if api_key else (current_user or {}).get("id"),
            api_key_id=api_key.get("id"),
            **kwargs,
        )
    except Exception:
        db.rollback()
        logger.exception("audit_log_failed action=%s", kwargs.get("action"))
        return None


__all__ = ["AuditAction", "AuditStatus", "log", "log_for"]
