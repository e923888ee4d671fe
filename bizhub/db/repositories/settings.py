"""
Key/value settings and system module repositories.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.repositories.errors import InvalidStateError
from bizhub.utils import module_catalog


def list_settings(db: Session) -> List[models.Setting]:
    return db.query(models.Setting).order_by(models.Setting.key.asc()).all()


def get_setting(db: Session, key: str) -> Optional[models.Setting]:
    return db.query(models.Setting).filter(models.Setting.key == key).first()


def get_value(db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    setting = get_setting(db, key)
    if setting is None or setting.value is None:
        return default
    return setting.value


def get_values(db: Session, keys) -> Dict[str, Optional[str]]:
    rows = db.query(models.Setting).filter(models.Setting.key.in_(list(keys))).all()
    found = {row.key: row.value for row in rows}
    return {key: found.get(key) for key in keys}


def upsert_setting(db: Session, key: str, payload: schemas.SettingUpsert) -> models.Setting:
    setting = get_setting(db, key)
    if setting is None:
        setting = models.Setting(key=key, value=payload.value, description=payload.description)
        db.add(setting)
    else:
        setting.value = payload.value
        if payload.description is not None:
            setting.description = payload.description
    db.commit()
    db.refresh(setting)
    return setting


def delete_setting(db: Session, key: str) -> bool:
    setting = get_setting(db, key)
    if not setting:
        return False
    db.delete(setting)
    db.commit()
    return True


# System modules

def list_modules(db: Session, *, only_active: bool = False) -> List[models.SystemModule]:
    query = db.query(models.SystemModule)
    if only_active:
        query = query.filter(models.SystemModule.is_active.is_(True))
    return query.order_by(models.SystemModule.order.asc()).all()


def get_module(db: Session, name: str) -> Optional[models.SystemModule]:
    return db.query(models.SystemModule).filter(models.SystemModule.name == name).first()


def update_module(db: Session, name: str, payload: schemas.SystemModuleUpdate) -> Optional[models.SystemModule]:
    module = get_module(db, name)
    if not module:
        return None
    data = payload.model_dump(exclude_unset=True)
    if data.get("is_active") is False and (module.is_core or module_catalog.is_core(module.name)):
        raise InvalidStateError("Core modules cannot be deactivated")
    for key, value in data.items():
        if value is not None:
            setattr(module, key, value)
    db.commit()
    db.refresh(module)
    return module


def seed_modules(db: Session) -> int:
    existing = {name for (name,) in db.query(models.SystemModule.name).all()}
    added = 0
    for entry in module_catalog.DEFAULT_MODULES:
        if entry["name"] in existing:
            continue
        db.add(models.SystemModule(is_active=True, **{"is_core": False, **entry}))
        added += 1
    if added:
        db.commit()
    return added


def is_module_inactive(db: Session, name: str) -> bool:
    module = get_module(db, name)
    return module is not None and not module.is_active
