"""
Client (CRM) repositories.
"""
from __future__ import annotations

import uuid
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.repositories.errors import DuplicateError, NotFoundError


def get_client(db: Session, client_id: uuid.UUID) -> Optional[models.Client]:
    return db.query(models.Client).filter(models.Client.id == client_id).first()


def _check_email(db: Session, email: Optional[str], exclude_id: Optional[uuid.UUID] = None):
    if not email:
        return
    query = db.query(models.Client.id).filter(models.Client.email == email)
    if exclude_id is not None:
        query = query.filter(models.Client.id != exclude_id)
    if query.first():
        raise DuplicateError("Client email already registered")


def _check_group(db: Session, group_id: Optional[uuid.UUID]):
    if group_id is None:
        return
    if not db.query(models.HierarchyGroup.id).filter(models.HierarchyGroup.id == group_id).first():
        raise NotFoundError("Hierarchy group not found")


def _build_addresses(addresses) -> List[models.Address]:
    return [models.Address(**a.model_dump()) for a in addresses or []]


def create_client(db: Session, payload: schemas.ClientCreate) -> models.Client:
    _check_email(db, payload.email)
    _check_group(db, payload.group_id)
    data = payload.model_dump(exclude={"addresses"})
    client = models.Client(**data)
    client.addresses = _build_addresses(payload.addresses)
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def list_clients(
    db: Session,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    group_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.Client], int]:
    query = db.query(models.Client)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.Client.name.ilike(like), models.Client.email.ilike(like)))
    if status:
        query = query.filter(models.Client.status == status.upper())
    if group_id:
        query = query.filter(models.Client.group_id == group_id)
    total = query.count()
    items = query.order_by(models.Client.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def update_client(db: Session, client_id: uuid.UUID, payload: schemas.ClientUpdate) -> Optional[models.Client]:
    client = get_client(db, client_id)
    if not client:
        return None
    data = payload.model_dump(exclude_unset=True, exclude={"addresses"})
    if "email" in data:
        _check_email(db, data["email"], exclude_id=client.id)
    if "group_id" in data:
        _check_group(db, data["group_id"])
    for key, value in data.items():
        if key in ("name", "kind", "status") and value is None:
            continue
        setattr(client, key, value)
    # Supplied addresses replace the stored set
    if payload.addresses is not None:
        client.addresses = _build_addresses(payload.addresses)
    db.commit()
    db.refresh(client)
    return client


def delete_client(db: Session, client_id: uuid.UUID) -> bool:
    client = get_client(db, client_id)
    if not client:
        return False
    db.delete(client)
    db.commit()
    return True
