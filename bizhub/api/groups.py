"""
Hierarchy group endpoints.
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.api.deps import require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import rbac as rbac_repo

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("", response_model=List[schemas.HierarchyGroup])
def list_groups(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.read")),
):
    return rbac_repo.list_groups(db)


@router.post("", response_model=schemas.HierarchyGroup, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: schemas.HierarchyGroupCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.write")),
):
    return rbac_repo.create_group(db, payload)


@router.put("/{group_id}", response_model=schemas.HierarchyGroup)
def update_group(
    group_id: uuid.UUID,
    payload: schemas.HierarchyGroupUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.write")),
):
    group = rbac_repo.update_group(db, group_id, payload)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(
    group_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.delete")),
):
    if not rbac_repo.delete_group(db, group_id):
        raise HTTPException(status_code=404, detail="Group not found")
    return None
