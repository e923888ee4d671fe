"""
Users API endpoints (login accounts).
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import page_params, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import users as user_repo
from bizhub.services.webhook_service import emit
from bizhub.utils.pagination import page_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _public(user) -> dict:
    return schemas.User.model_validate(user).model_dump(mode="json")


@router.get("", response_model=schemas.PaginatedUsers)
def list_users(
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("users.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = user_repo.list_users(db, search=search, skip=skip, limit=limit)
    return page_payload(items, total, page, limit)


@router.post("", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: schemas.UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("users.write")),
):
    _user, current_user = user_context
    user = user_repo.create_user(db, payload)
    log_for(db, current_user, action=AuditAction.USER_CREATE, target_type="user", target_id=user.id, metadata={"email": user.email})
    emit("user.created", _public(user), background_tasks)
    return user


@router.get("/{user_id}", response_model=schemas.User)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("users.read")),
):
    user = user_repo.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/{user_id}", response_model=schemas.User)
def update_user(
    user_id: uuid.UUID,
    payload: schemas.UserUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("users.write")),
):
    _user, current_user = user_context
    user = user_repo.update_user(db, user_id, payload)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    changed = sorted(k for k in payload.model_dump(exclude_unset=True) if k != "password")
    if payload.password:
        changed.append("password")
    log_for(db, current_user, action=AuditAction.USER_UPDATE, target_type="user", target_id=user.id, metadata={"fields": changed})
    emit("user.updated", _public(user), background_tasks)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("users.delete")),
):
    user, current_user = user_context
    if user is not None and user.id == user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    if not user_repo.delete_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    log_for(db, current_user, action=AuditAction.USER_DELETE, target_type="user", target_id=user_id)
    emit("user.deleted", {"id": str(user_id)}, background_tasks)
    return None
