"""
Repositories for permissions, profiles, hierarchy groups and collaborators.
"""
from __future__ import annotations

import uuid
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.repositories.errors import DuplicateError, NotFoundError
from bizhub.utils import permission_catalog


# Permissions

def list_permissions(
    db: Session,
    *,
    search: Optional[str] = None,
    resource: Optional[str] = None,
    action: Optional[str] = None,
) -> List[models.Permission]:
    query = db.query(models.Permission)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.Permission.name.ilike(like), models.Permission.description.ilike(like)))
    if resource:
        query = query.filter(models.Permission.resource == resource)
    if action:
        query = query.filter(models.Permission.action == action)
    return query.order_by(models.Permission.resource.asc(), models.Permission.action.asc()).all()


def get_permission(db: Session, permission_id: uuid.UUID) -> Optional[models.Permission]:
    return db.query(models.Permission).filter(models.Permission.id == permission_id).first()


def _check_permission_unique(db: Session, *, name: str, resource: str, action: str, exclude_id=None):
    query = db.query(models.Permission).filter(
        or_(
            models.Permission.name == name,
            (models.Permission.resource == resource) & (models.Permission.action == action),
        )
    )
    if exclude_id is not None:
        query = query.filter(models.Permission.id != exclude_id)
    if query.first():
        raise DuplicateError("Permission with this name or resource/action already exists")


def create_permission(db: Session, payload: schemas.PermissionCreate) -> models.Permission:
    _check_permission_unique(db, name=payload.name, resource=payload.resource, action=payload.action)
    permission = models.Permission(**payload.model_dump())
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return permission


def update_permission(db: Session, permission_id: uuid.UUID, payload: schemas.PermissionUpdate) -> Optional[models.Permission]:
    permission = get_permission(db, permission_id)
    if not permission:
        return None
    data = payload.model_dump(exclude_unset=True)
    _check_permission_unique(
        db,
        name=data.get("name", permission.name),
        resource=data.get("resource", permission.resource),
        action=data.get("action", permission.action),
        exclude_id=permission.id,
    )
    for key, value in data.items():
        if value is not None:
            setattr(permission, key, value)
    db.commit()
    db.refresh(permission)
    return permission


def delete_permission(db: Session, permission_id: uuid.UUID) -> bool:
    permission = get_permission(db, permission_id)
    if not permission:
        return False
    db.delete(permission)
    db.commit()
    return True


def seed_permission_catalog(db: Session) -> int:
    """Insert every vocabulary permission that is not yet stored. Returns the count added."""
    existing = {name for (name,) in db.query(models.Permission.name).all()}
    added = 0
    for name in permission_catalog.ALL_PERMISSIONS:
        if name in existing:
            continue
        resource, action = permission_catalog.split_name(name)
        db.add(models.Permission(
            name=name,
            resource=resource,
            action=action,
            description=permission_catalog.describe(name),
        ))
        added += 1
    if added:
        db.commit()
    return added


# Profiles

def _load_permissions(db: Session, permission_ids: Iterable[uuid.UUID]) -> List[models.Permission]:
    ids = list(dict.fromkeys(permission_ids or []))
    if not ids:
        return []
    found = db.query(models.Permission).filter(models.Permission.id.in_(ids)).all()
    if len(found) != len(ids):
        raise NotFoundError("One or more permissions not found")
    return found


def list_profiles(db: Session) -> List[models.Profile]:
    return db.query(models.Profile).order_by(models.Profile.name.asc()).all()


def get_profile(db: Session, profile_id: uuid.UUID) -> Optional[models.Profile]:
    return db.query(models.Profile).filter(models.Profile.id == profile_id).first()


def create_profile(db: Session, payload: schemas.ProfileCreate) -> models.Profile:
    if db.query(models.Profile).filter(models.Profile.name == payload.name).first():
        raise DuplicateError("Profile name already exists")
    profile = models.Profile(name=payload.name, description=payload.description, is_active=payload.is_active)
    profile.permissions = _load_permissions(db, payload.permission_ids)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def update_profile(db: Session, profile_id: uuid.UUID, payload: schemas.ProfileUpdate) -> Optional[models.Profile]:
    profile = get_profile(db, profile_id)
    if not profile:
        return None
    data = payload.model_dump(exclude_unset=True)
    if data.get("name") and data["name"] != profile.name:
        if db.query(models.Profile).filter(models.Profile.name == data["name"]).first():
            raise DuplicateError("Profile name already exists")
    permission_ids = data.pop("permission_ids", None)
    if permission_ids is not None:
        profile.permissions = _load_permissions(db, permission_ids)
    for key, value in data.items():
        if value is not None:
            setattr(profile, key, value)
    db.commit()
    db.refresh(profile)
    return profile


def delete_profile(db: Session, profile_id: uuid.UUID) -> bool:
    profile = get_profile(db, profile_id)
    if not profile:
        return False
    db.delete(profile)
    db.commit()
    return True


# Hierarchy groups

def list_groups(db: Session) -> List[models.HierarchyGroup]:
    return db.query(models.HierarchyGroup).order_by(models.HierarchyGroup.name.asc()).all()


def get_group(db: Session, group_id: uuid.UUID) -> Optional[models.HierarchyGroup]:
    return db.query(models.HierarchyGroup).filter(models.HierarchyGroup.id == group_id).first()


def _check_group(db: Session, group_id: Optional[uuid.UUID]):
    if group_id is not None and not get_group(db, group_id):
        raise NotFoundError("Hierarchy group not found")


def create_group(db: Session, payload: schemas.HierarchyGroupCreate) -> models.HierarchyGroup:
    _check_group(db, payload.parent_id)
    group = models.HierarchyGroup(**payload.model_dump())
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


def update_group(db: Session, group_id: uuid.UUID, payload: schemas.HierarchyGroupUpdate) -> Optional[models.HierarchyGroup]:
    group = get_group(db, group_id)
    if not group:
        return None
    data = payload.model_dump(exclude_unset=True)
    if data.get("parent_id") is not None:
        if data["parent_id"] == group.id:
            raise DuplicateError("A group cannot be its own parent")
        _check_group(db, data["parent_id"])
    for key, value in data.items():
        setattr(group, key, value)
    db.commit()
    db.refresh(group)
    return group


def delete_group(db: Session, group_id: uuid.UUID) -> bool:
    group = get_group(db, group_id)
    if not group:
        return False
    db.delete(group)
    db.commit()
    return True


# Collaborators

def get_collaborator(db: Session, collaborator_id: uuid.UUID) -> Optional[models.Collaborator]:
    return db.query(models.Collaborator).filter(models.Collaborator.id == collaborator_id).first()


def _check_collaborator_refs(db: Session, data: dict):
    if data.get("profile_id") is not None and not get_profile(db, data["profile_id"]):
        raise NotFoundError("Profile not found")
    _check_group(db, data.get("group_id"))


def create_collaborator(db: Session, payload: schemas.CollaboratorCreate) -> models.Collaborator:
    if db.query(models.Collaborator).filter(models.Collaborator.email == payload.email).first():
        raise DuplicateError("Email already registered")
    data = payload.model_dump()
    _check_collaborator_refs(db, data)
    collaborator = models.Collaborator(**data)
    db.add(collaborator)
    db.commit()
    db.refresh(collaborator)
    return collaborator


def list_collaborators(
    db: Session,
    *,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    group_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.Collaborator], int]:
    query = db.query(models.Collaborator)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.Collaborator.name.ilike(like), models.Collaborator.email.ilike(like)))
    if is_active is not None:
        query = query.filter(models.Collaborator.is_active == is_active)
    if group_id:
        query = query.filter(models.Collaborator.group_id == group_id)
    total = query.count()
    items = query.order_by(models.Collaborator.name.asc()).offset(skip).limit(limit).all()
    return items, total


def update_collaborator(db: Session, collaborator_id: uuid.UUID, payload: schemas.CollaboratorUpdate) -> Optional[models.Collaborator]:
    collaborator = get_collaborator(db, collaborator_id)
    if not collaborator:
        return None
    data = payload.model_dump(exclude_unset=True)
    if data.get("email") and data["email"] != collaborator.email:
        if db.query(models.Collaborator).filter(models.Collaborator.email == data["email"]).first():
            raise DuplicateError("Email already registered")
    _check_collaborator_refs(db, data)
    for key, value in data.items():
        if key in ("name", "email") and value is None:
            continue
        setattr(collaborator, key, value)
    db.commit()
    db.refresh(collaborator)
    return collaborator


def delete_collaborator(db: Session, collaborator_id: uuid.UUID) -> bool:
    collaborator = get_collaborator(db, collaborator_id)
    if not collaborator:
        return False
    db.delete(collaborator)
    db.commit()
    return True


def permission_names_for(collaborator: Optional[models.Collaborator]) -> Set[str]:
    if collaborator is None or collaborator.profile is None or not collaborator.profile.is_active:
        return set()
    return {p.name for p in collaborator.profile.permissions}
