"""
System module endpoints: list, toggle/reorder and seed the default catalog.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import get_current_user_context, require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import settings as settings_repo

router = APIRouter(prefix="/modules", tags=["modules"])


@router.get("", response_model=List[schemas.SystemModule])
def list_modules(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("settings.read")),
):
    return settings_repo.list_modules(db)


@router.get("/active", response_model=List[schemas.SystemModule])
def list_active_modules(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return settings_repo.list_modules(db, only_active=True)


@router.post("/seed")
def seed_modules(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("settings.write")),
):
    return {"created": settings_repo.seed_modules(db)}


@router.put("/{name}", response_model=schemas.SystemModule)
def update_module(
    name: str,
    payload: schemas.SystemModuleUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("settings.write")),
):
    _user, current_user = user_context
    module = settings_repo.update_module(db, name, payload)
    if not module:
        raise HTTPException(status_code=404, detail="Module not found")
    log_for(
        db, current_user,
        action=AuditAction.MODULE_UPDATE,
        target_type="system_module",
        target_id=module.id,
        metadata={"name": module.name, **payload.model_dump(exclude_unset=True)},
    )
    return module
