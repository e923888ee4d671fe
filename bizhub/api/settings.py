"""
Key/value settings endpoints.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.audit import AuditAction, log_for
from bizhub.api.deps import require_permission
from bizhub.db import schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import settings as settings_repo

router = APIRouter(prefix="/settings", tags=["settings"])

# Values never echoed back in full
_SECRET_KEYS = {"wuzapi_admin_token", "waha_api_key"}


def _masked(setting) -> schemas.Setting:
    out = schemas.Setting.model_validate(setting)
    if setting.key in _SECRET_KEYS and out.value:
        out.value = "***" + out.value[-4:] if len(out.value) > 4 else "***"
    return out


@router.get("", response_model=List[schemas.Setting])
def list_settings(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("settings.read")),
):
    return [_masked(s) for s in settings_repo.list_settings(db)]


@router.get("/{key}", response_model=schemas.Setting)
def get_setting(
    key: str,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("settings.read")),
):
    setting = settings_repo.get_setting(db, key)
    if not setting:
        raise HTTPException(status_code=404, detail="Setting not found")
    return _masked(setting)


@router.put("/{key}", response_model=schemas.Setting)
def upsert_setting(
    key: str,
    payload: schemas.SettingUpsert,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("settings.write")),
):
    _user, current_user = user_context
    setting = settings_repo.upsert_setting(db, key, payload)
    log_for(db, current_user, action=AuditAction.SETTING_UPDATE, target_type="setting", metadata={"key": key})
    return _masked(setting)


@router.delete("/{key}", status_code=status.HTTP_204_NO_CONTENT)
def delete_setting(
    key: str,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("settings.delete")),
):
    _user, current_user = user_context
    if not settings_repo.delete_setting(db, key):
        raise HTTPException(status_code=404, detail="Setting not found")
    log_for(db, current_user, action=AuditAction.SETTING_UPDATE, target_type="setting", metadata={"key": key, "deleted": True})
    return None
