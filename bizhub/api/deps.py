"""
API dependency helpers.

Resolves the request identity and exposes permission guards for routes.
"""
import logging
import os
import uuid
from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from bizhub.db import models
from bizhub.db.database import get_db
from bizhub.db.repositories import api_keys as api_key_repo
from bizhub.db.repositories import rbac as rbac_repo
from bizhub.db.repositories import users as user_repo
from bizhub.utils import passwords, permission_catalog
from bizhub.utils.api_key_crypto import looks_like_api_key
from bizhub.utils.pagination import clamp
from bizhub.utils.runtime import dev_mode_active

logger = logging.getLogger(__name__)

DEV_USER_EMAIL = "dev@localhost"

# Contract:
# Returns (User model or None for API keys, current_user context dict)
# Raises 401 if identity cannot be resolved.


def session_cookie_name() -> str:
    return os.getenv("SESSION_COOKIE_NAME", "bizhub_session")


def bearer_value(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def api_key_from_headers(authorization: Optional[str], x_api_key: Optional[str]) -> Optional[str]:
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    bearer = bearer_value(authorization)
    if looks_like_api_key(bearer):
        return bearer
    return None


def session_token_from_request(request: Request, authorization: Optional[str], x_session_token: Optional[str]) -> Optional[str]:
    bearer = bearer_value(authorization)
    if bearer and not looks_like_api_key(bearer):
        return bearer
    if x_session_token and x_session_token.strip():
        return x_session_token.strip()
    return request.cookies.get(session_cookie_name())


def build_user_context(user: models.User) -> Dict[str, Any]:
    collaborator = user.collaborator
    permissions = rbac_repo.permission_names_for(collaborator)
    profile = collaborator.profile if collaborator is not None else None
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "collaborator_id": collaborator.id if collaborator is not None else None,
        "group_id": collaborator.group_id if collaborator is not None else None,
        "profile": {"id": profile.id, "name": profile.name} if profile is not None else None,
        "permissions": permissions,
        "is_admin": permission_catalog.is_admin(permissions),
        "api_key": None,
    }


def build_api_key_context(db: Session, key: models.ApiKey) -> Dict[str, Any]:
    """API keys act with their own permission list and the creator's collaborator."""
    permissions = set(key.permissions or [])
    creator = user_repo.get_user(db, key.created_by_user_id) if key.created_by_user_id else None
    collaborator = creator.collaborator if creator is not None else None
    return {
        "id": None,
        "email": None,
        "name": key.name,
        "collaborator_id": collaborator.id if collaborator is not None else None,
        "group_id": None,
        "profile": None,
        "permissions": permissions,
        "is_admin": permission_catalog.is_admin(permissions),
        "api_key": {"id": key.id, "name": key.name, "permissions": sorted(permissions)},
    }


def get_or_create_dev_user(db: Session) -> models.User:
    user = user_repo.get_user_by_email(db, DEV_USER_EMAIL)
    if user is None:
        user = models.User(
            email=DEV_USER_EMAIL,
            name="Development User",
            password_hash=passwords.hash_password(passwords.generate_session_token()),
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def get_current_user_context(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None),
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    x_session_token: Optional[str] = Header(default=None, alias="X-Session-Token"),
) -> Tuple[Optional[models.User], Dict[str, Any]]:
    # 1. API key (already validated by the middleware when it ran)
    key_id = getattr(request.state, "api_key_id", None)
    if key_id is not None:
        key = api_key_repo.get_api_key(db, key_id)
        if key is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
        return None, build_api_key_context(db, key)
    raw_key = api_key_from_headers(authorization, x_api_key)
    if raw_key:
        try:
            key = api_key_repo.validate_api_key(db, raw_key)
        except api_key_repo.ApiKeyValidationError as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
        return None, build_api_key_context(db, key)

    # 2. Session token
    token = session_token_from_request(request, authorization, x_session_token)
    if token:
        session = user_repo.get_active_session(db, token)
        if session is not None and session.user is not None and session.user.is_active:
            request.state.session_id = session.id
            return session.user, build_user_context(session.user)

    # 3. Development admin
    if dev_mode_active():
        user = get_or_create_dev_user(db)
        current_user = build_user_context(user)
        current_user["permissions"] = current_user["permissions"] | {permission_catalog.PERMISSION_ADMIN}
        current_user["is_admin"] = True
        return user, current_user

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")


def ensure_permission(current_user: Dict[str, Any], *required: str) -> None:
    """Raise 403 unless the identity holds at least one of `required`."""
    granted = current_user.get("permissions") or set()
    if not permission_catalog.has_any(granted, required):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")


def require_permission(*required: str):
    """Dependency factory: resolve identity and check one of `required`."""

    def _dependency(user_context=Depends(get_current_user_context)):
        _user, current_user = user_context
        ensure_permission(current_user, *required)
        return user_context

    return _dependency


require_admin = require_permission(permission_catalog.PERMISSION_ADMIN)


def require_collaborator(current_user: Dict[str, Any]) -> uuid.UUID:
    collaborator_id = current_user.get("collaborator_id")
    if collaborator_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A collaborator profile is required for this operation")
    return collaborator_id


def actor_from(current_user: Dict[str, Any]) -> Dict[str, Any]:
    """Small actor dict used in history/log entries."""
    return {
        "id": current_user.get("collaborator_id"),
        "name": current_user.get("name") or current_user.get("email"),
    }


def page_params(page: int, limit: int) -> Tuple[int, int, int]:
    page, limit = clamp(page, limit)
    return page, limit, (page - 1) * limit


def has_any(current_user: Dict[str, Any], names: Iterable[str]) -> bool:
    return permission_catalog.has_any(current_user.get("permissions") or set(), names)
