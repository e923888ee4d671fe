"""
Collaborators API endpoints.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.api.deps import page_params, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import rbac as rbac_repo
from bizhub.services.webhook_service import emit
from bizhub.utils.pagination import page_payload

router = APIRouter(prefix="/collaborators", tags=["collaborators"])


def _event_data(collaborator) -> dict:
    return schemas.Collaborator.model_validate(collaborator).model_dump(mode="json", exclude={"profile", "group"})


@router.get("", response_model=schemas.PaginatedCollaborators)
def list_collaborators(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    group_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.read")),
):
    page, limit, skip = page_params(page, limit)
    items, total = rbac_repo.list_collaborators(
        db, search=search, is_active=is_active, group_id=group_id, skip=skip, limit=limit
    )
    return page_payload(items, total, page, limit)


@router.post("", response_model=schemas.Collaborator, status_code=status.HTTP_201_CREATED)
def create_collaborator(
    payload: schemas.CollaboratorCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.write")),
):
    collaborator = rbac_repo.create_collaborator(db, payload)
    emit("collaborator.created", _event_data(collaborator), background_tasks)
    return collaborator


@router.get("/{collaborator_id}", response_model=schemas.Collaborator)
def get_collaborator(
    collaborator_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.read")),
):
    collaborator = rbac_repo.get_collaborator(db, collaborator_id)
    if not collaborator:
        raise HTTPException(status_code=404, detail="Collaborator not found")
    return collaborator


@router.put("/{collaborator_id}", response_model=schemas.Collaborator)
def update_collaborator(
    collaborator_id: uuid.UUID,
    payload: schemas.CollaboratorUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.write")),
):
    collaborator = rbac_repo.update_collaborator(db, collaborator_id, payload)
    if not collaborator:
        raise HTTPException(status_code=404, detail="Collaborator not found")
    emit("collaborator.updated", _event_data(collaborator), background_tasks)
    return collaborator


@router.delete("/{collaborator_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_collaborator(
    collaborator_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("collaborators.delete")),
):
    if not rbac_repo.delete_collaborator(db, collaborator_id):
        raise HTTPException(status_code=404, detail="Collaborator not found")
    emit("collaborator.deleted", {"id": str(collaborator_id)}, background_tasks)
    return None
