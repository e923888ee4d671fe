"""
Permissions API endpoints.

Permissions are `<resource>.<action>` names; profiles bundle them.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import rbac as rbac_repo
from bizhub.utils import permission_catalog

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("", response_model=List[schemas.Permission])
def list_permissions(
    search: Optional[str] = None,
    resource: Optional[str] = None,
    action: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.read")),
):
    return rbac_repo.list_permissions(db, search=search, resource=resource, action=action)


@router.get("/catalog", response_model=List[str])
def permission_catalog_names(user_context=Depends(require_permission("permissions.read"))):
    return list(permission_catalog.ALL_PERMISSIONS)


@router.post("/seed")
def seed_permissions(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.write")),
):
    _user, current_user = user_context
    created = rbac_repo.seed_permission_catalog(db)
    if created:
        log_for(db, current_user, action=AuditAction.PERMISSION_CREATE, target_type="permission", metadata={"seeded": created})
    return {"created": created}


@router.post("", response_model=schemas.Permission, status_code=status.HTTP_201_CREATED)
def create_permission(
    payload: schemas.PermissionCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.write")),
):
    _user, current_user = user_context
    permission = rbac_repo.create_permission(db, payload)
    log_for(db, current_user, action=AuditAction.PERMISSION_CREATE, target_type="permission", target_id=permission.id, metadata={"name": permission.name})
    return permission


@router.get("/{permission_id}", response_model=schemas.Permission)
def get_permission(
    permission_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.read")),
):
    permission = rbac_repo.get_permission(db, permission_id)
    if not permission:
        raise HTTPException(status_code=404, detail="Permission not found")
    return permission


@router.put("/{permission_id}", response_model=schemas.Permission)
def update_permission(
    permission_id: uuid.UUID,
    payload: schemas.PermissionUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.write")),
):
    _user, current_user = user_context
    permission = rbac_repo.update_permission(db, permission_id, payload)
    if not permission:
        raise HTTPException(status_code=404, detail="Permission not found")
    log_for(
        db, current_user,
        action=AuditAction.PERMISSION_UPDATE,
        target_type="permission",
        target_id=permission.id,
        metadata={"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return permission


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_permission(
    permission_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("permissions.delete")),
):
    _user, current_user = user_context
    if not rbac_repo.delete_permission(db, permission_id):
        raise HTTPException(status_code=404, detail="Permission not found")
    log_for(db, current_user, action=AuditAction.PERMISSION_DELETE, target_type="permission", target_id=permission_id)
    return None
