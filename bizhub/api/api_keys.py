"""
API key management (admin only).

The full key is returned once, on create and regenerate; only its sha256
hash is stored.
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import require_admin
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import api_keys as api_key_repo

router = APIRouter(prefix="/api-keys", tags=["api-keys"])


def _with_key(key, full_key: str) -> schemas.ApiKeyCreateResponse:
    return schemas.ApiKeyCreateResponse(
        **schemas.ApiKeyResponse.model_validate(key).model_dump(),
        key=full_key,
    )


@router.get("", response_model=List[schemas.ApiKeyResponse])
def list_api_keys(
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    return api_key_repo.list_api_keys(db)


@router.post("", response_model=schemas.ApiKeyCreateResponse, status_code=status.HTTP_201_CREATED)
def create_api_key(
    payload: schemas.ApiKeyCreateRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    user, current_user = user_context
    key, full_key = api_key_repo.create_api_key(
        db,
        payload=payload,
        created_by_user_id=user.id if user is not None else None,
    )
    # Audit (no secrets)
    log_for(
        db, current_user,
        action=AuditAction.API_KEY_CREATE,
        target_type="api_key",
        target_id=key.id,
        metadata={
            "name": key.name,
            "permissions": list(key.permissions or []),
            "expires_at": key.expires_at.isoformat() if key.expires_at else None,
        },
    )
    return _with_key(key, full_key)


@router.get("/{key_id}", response_model=schemas.ApiKeyResponse)
def get_api_key(
    key_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    key = api_key_repo.get_api_key(db, key_id)
    if not key:
        raise HTTPException(status_code=404, detail="API key not found")
    return key


@router.put("/{key_id}", response_model=schemas.ApiKeyResponse)
def update_api_key(
    key_id: uuid.UUID,
    payload: schemas.ApiKeyUpdateRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _user, current_user = user_context
    key = api_key_repo.update_api_key(db, key_id, payload)
    if not key:
        raise HTTPException(status_code=404, detail="API key not found")
    log_for(
        db, current_user,
        action=AuditAction.API_KEY_UPDATE,
        target_type="api_key",
        target_id=key.id,
        metadata={"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return key


@router.post("/{key_id}/toggle", response_model=schemas.ApiKeyResponse)
def toggle_api_key(
    key_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _user, current_user = user_context
    key = api_key_repo.toggle_api_key(db, key_id)
    if not key:
        raise HTTPException(status_code=404, detail="API key not found")
    log_for(
        db, current_user,
        action=AuditAction.API_KEY_UPDATE,
        target_type="api_key",
        target_id=key.id,
        metadata={"is_active": key.is_active},
    )
    return key


@router.post("/{key_id}/regenerate", response_model=schemas.ApiKeyCreateResponse)
def regenerate_api_key(
    key_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _user, current_user = user_context
    result = api_key_repo.regenerate_api_key(db, key_id)
    if not result:
        raise HTTPException(status_code=404, detail="API key not found")
    key, full_key = result
    log_for(db, current_user, action=AuditAction.API_KEY_REGENERATE, target_type="api_key", target_id=key.id, metadata={"name": key.name})
    return _with_key(key, full_key)


@router.delete("/{key_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_api_key(
    key_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    _user, current_user = user_context
    if not api_key_repo.delete_api_key(db, key_id):
        raise HTTPException(status_code=404, detail="API key not found")
    log_for(db, current_user, action=AuditAction.API_KEY_DELETE, target_type="api_key", target_id=key_id)
    return None


@router.get("/{key_id}/stats", response_model=schemas.ApiKeyStats)
def api_key_stats(
    key_id: uuid.UUID,
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
    user_context=Depends(require_admin),
):
    if not api_key_repo.get_api_key(db, key_id):
        raise HTTPException(status_code=404, detail="API key not found")
    return api_key_repo.get_stats(db, api_key_id=key_id, days=days)
