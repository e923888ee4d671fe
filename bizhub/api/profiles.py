"""
Profiles API endpoints.
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import rbac as rbac_repo

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("", response_model=List[schemas.Profile])
def list_profiles(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.read")),
):
    return rbac_repo.list_profiles(db)


@router.post("", response_model=schemas.Profile, status_code=status.HTTP_201_CREATED)
def create_profile(
    payload: schemas.ProfileCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.write")),
):
    _user, current_user = user_context
    profile = rbac_repo.create_profile(db, payload)
    log_for(
        db, current_user,
        action=AuditAction.PROFILE_CREATE,
        target_type="profile",
        target_id=profile.id,
        metadata={"name": profile.name, "permissions": sorted(p.name for p in profile.permissions)},
    )
    return profile


@router.get("/{profile_id}", response_model=schemas.Profile)
def get_profile(
    profile_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.read")),
):
    profile = rbac_repo.get_profile(db, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/{profile_id}", response_model=schemas.Profile)
def update_profile(
    profile_id: uuid.UUID,
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.write")),
):
    _user, current_user = user_context
    profile = rbac_repo.update_profile(db, profile_id, payload)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    log_for(
        db, current_user,
        action=AuditAction.PROFILE_UPDATE,
        target_type="profile",
        target_id=profile.id,
        metadata={"permissions": sorted(p.name for p in profile.permissions)},
    )
    return profile


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_profile(
    profile_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.delete")),
):
    _user, current_user = user_context
    if not rbac_repo.delete_profile(db, profile_id):
        raise HTTPException(status_code=404, detail="Profile not found")
    log_for(db, current_user, action=AuditAction.PROFILE_DELETE, target_type="profile", target_id=profile_id)
    return None
