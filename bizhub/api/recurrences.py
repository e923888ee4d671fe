"""
Task recurrence endpoints.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.api.deps import require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import recurrences as recurrence_repo
from bizhub.services import recurrence_service

router = APIRouter(prefix="/recurrences", tags=["recurrences"])


@router.get("", response_model=List[schemas.Recurrence])
def list_recurrences(
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    return recurrence_repo.list_recurrences(db, is_active=is_active)


@router.get("/stats", response_model=schemas.RecurrenceStats)
def recurrence_stats(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    return recurrence_repo.get_stats(db)


@router.post("", response_model=schemas.Recurrence, status_code=status.HTTP_201_CREATED)
def create_recurrence(
    payload: schemas.RecurrenceCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    _user, current_user = user_context
    return recurrence_service.create_recurrence(db, payload, created_by_id=current_user.get("collaborator_id"))


@router.post("/process", response_model=schemas.RecurrenceRunResult)
def process_recurrences(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    return recurrence_service.process_recurrences(db)


@router.get("/{recurrence_id}", response_model=schemas.Recurrence)
def get_recurrence(
    recurrence_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.read")),
):
    recurrence = recurrence_repo.get_recurrence(db, recurrence_id)
    if not recurrence:
        raise HTTPException(status_code=404, detail="Recurrence not found")
    return recurrence


@router.post("/{recurrence_id}/toggle", response_model=schemas.Recurrence)
def toggle_recurrence(
    recurrence_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.write")),
):
    recurrence = recurrence_repo.toggle_recurrence(db, recurrence_id)
    if not recurrence:
        raise HTTPException(status_code=404, detail="Recurrence not found")
    return recurrence


@router.delete("/{recurrence_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recurrence(
    recurrence_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("tasks.delete")),
):
    if not recurrence_repo.delete_recurrence(db, recurrence_id):
        raise HTTPException(status_code=404, detail="Recurrence not found")
    return None
