"""
Helpdesk repositories: departments, tickets, messages and ticket history.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.repositories.errors import DuplicateError, InvalidStateError, NotFoundError
from bizhub.db.schemas.helpdesk import CLOSED_STATUSES
from bizhub.utils import numbering

_TRACKED_FIELDS = ("status", "priority", "assignee_id", "department_id")


def _now() -> datetime:
    return datetime.now(timezone.utc)


# Departments

def list_departments(db: Session, *, only_active: bool = False) -> List[models.Department]:
    query = db.query(models.Department)
    if only_active:
        query = query.filter(models.Department.is_active.is_(True))
    return query.order_by(models.Department.name.asc()).all()


def get_department(db: Session, department_id: uuid.UUID) -> Optional[models.Department]:
    return db.query(models.Department).filter(models.Department.id == department_id).first()


def create_department(db: Session, payload: schemas.DepartmentCreate) -> models.Department:
    if payload.group_id and not db.query(models.HierarchyGroup.id).filter(models.HierarchyGroup.id == payload.group_id).first():
        raise NotFoundError("Hierarchy group not found")
    department = models.Department(**payload.model_dump())
    db.add(department)
    db.commit()
    db.refresh(department)
    return department


def update_department(db: Session, department_id: uuid.UUID, payload: schemas.DepartmentUpdate) -> Optional[models.Department]:
    department = get_department(db, department_id)
    if not department:
        return None
    for key, value in payload.model_dump(exclude_unset=True).items():
        if key == "name" and value is None:
            continue
        setattr(department, key, value)
    db.commit()
    db.refresh(department)
    return department


def delete_department(db: Session, department_id: uuid.UUID) -> bool:
    department = get_department(db, department_id)
    if not department:
        return False
    if db.query(models.Ticket.id).filter(models.Ticket.department_id == department.id).first():
        # Keep history intact; departments with tickets are only deactivated
        department.is_active = False
    else:
        db.delete(department)
    db.commit()
    return True


# Tickets

def get_ticket(db: Session, ticket_id: uuid.UUID) -> Optional[models.Ticket]:
    return db.query(models.Ticket).filter(models.Ticket.id == ticket_id).first()


def _check_refs(db: Session, data: dict):
    if data.get("department_id") is not None and not get_department(db, data["department_id"]):
        raise NotFoundError("Department not found")
    if data.get("client_id") is not None and not db.query(models.Client.id).filter(models.Client.id == data["client_id"]).first():
        raise NotFoundError("Client not found")
    if data.get("assignee_id") is not None and not db.query(models.Collaborator.id).filter(models.Collaborator.id == data["assignee_id"]).first():
        raise NotFoundError("Assignee not found")


def add_log(db: Session, ticket: models.Ticket, action: str, *, field=None, old_value=None, new_value=None, actor=None, metadata=None):
    entry = models.TicketLog(
        ticket_id=ticket.id,
        action=action,
        field=field,
        old_value=None if old_value is None else str(old_value),
        new_value=None if new_value is None else str(new_value),
        actor_name=(actor or {}).get("name"),
        actor_id=(actor or {}).get("id"),
        metadata_json=metadata,
    )
    db.add(entry)
    return entry


def create_ticket(db: Session, payload: schemas.TicketCreate, *, actor: Optional[dict] = None) -> models.Ticket:
    data = payload.model_dump()
    _check_refs(db, data)
    ticket = models.Ticket(
        **data,
        number=numbering.ticket_number(db, models.Ticket.number),
        status="OPEN",
        opened_at=_now(),
    )
    db.add(ticket)
    db.flush()
    add_log(db, ticket, "created", new_value=ticket.number, actor=actor)
    db.commit()
    db.refresh(ticket)
    return ticket


def list_tickets(
    db: Session,
    *,
    department_ids: Optional[Iterable[uuid.UUID]] = None,
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    department_id: Optional[uuid.UUID] = None,
    assignee_id: Optional[uuid.UUID] = None,
    client_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.Ticket], int]:
    """List tickets; `department_ids` (when not None) restricts to visible departments."""
    query = db.query(models.Ticket)
    if department_ids is not None:
        ids = list(department_ids)
        if not ids:
            return [], 0
        query = query.filter(models.Ticket.department_id.in_(ids))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            models.Ticket.subject.ilike(like),
            models.Ticket.number.ilike(like),
            models.Ticket.requester_name.ilike(like),
            models.Ticket.requester_email.ilike(like),
        ))
    if status:
        query = query.filter(models.Ticket.status == status.upper())
    if priority:
        query = query.filter(models.Ticket.priority == priority.upper())
    if department_id:
        query = query.filter(models.Ticket.department_id == department_id)
    if assignee_id:
        query = query.filter(models.Ticket.assignee_id == assignee_id)
    if client_id:
        query = query.filter(models.Ticket.client_id == client_id)
    total = query.count()
    items = query.order_by(models.Ticket.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def update_ticket(db: Session, ticket: models.Ticket, payload: schemas.TicketUpdate, *, actor: Optional[dict] = None) -> models.Ticket:
    data = payload.model_dump(exclude_unset=True)
    _check_refs(db, data)
    for key, value in data.items():
        if key in ("subject", "description", "priority", "status", "department_id") and value is None:
            continue
        old = getattr(ticket, key)
        if old == value:
            continue
        setattr(ticket, key, value)
        if key in _TRACKED_FIELDS:
            add_log(db, ticket, f"{key}_changed", field=key, old_value=old, new_value=value, actor=actor)
        if key == "status":
            if value in CLOSED_STATUSES:
                ticket.closed_at = _now()
            elif old in CLOSED_STATUSES:
                ticket.closed_at = None
    db.commit()
    db.refresh(ticket)
    return ticket


def delete_ticket(db: Session, ticket: models.Ticket) -> None:
    db.delete(ticket)
    db.commit()


def add_message(
    db: Session,
    ticket: models.Ticket,
    payload: schemas.TicketMessageCreate,
    *,
    author_id: Optional[uuid.UUID] = None,
    actor: Optional[dict] = None,
) -> models.TicketMessage:
    message = models.TicketMessage(ticket_id=ticket.id, author_id=author_id, **payload.model_dump())
    db.add(message)
    ticket.last_reply_at = _now()
    add_log(db, ticket, "message_added", actor=actor, metadata={"internal": payload.is_internal})
    db.commit()
    db.refresh(message)
    return message


def list_messages(db: Session, ticket: models.Ticket, *, include_internal: bool = True) -> List[models.TicketMessage]:
    query = db.query(models.TicketMessage).filter(models.TicketMessage.ticket_id == ticket.id)
    if not include_internal:
        query = query.filter(models.TicketMessage.is_internal.is_(False))
    return query.order_by(models.TicketMessage.created_at.asc()).all()


def forward_ticket(
    db: Session,
    ticket: models.Ticket,
    payload: schemas.TicketForward,
    *,
    author_id: Optional[uuid.UUID] = None,
    actor: Optional[dict] = None,
) -> models.Ticket:
    """Hand the ticket to the first active department of another hierarchy group."""
    group = db.query(models.HierarchyGroup).filter(models.HierarchyGroup.id == payload.group_id).first()
    if not group:
        raise NotFoundError("Hierarchy group not found")
    target = (
        db.query(models.Department)
        .filter(models.Department.group_id == group.id, models.Department.is_active.is_(True))
        .order_by(models.Department.name.asc())
        .first()
    )
    if target is None:
        raise InvalidStateError("No active department in the target group")

    source_name = ticket.department.name if ticket.department else None
    old_department_id = ticket.department_id
    ticket.department_id = target.id
    add_log(
        db,
        ticket,
        "forwarded",
        field="department_id",
        old_value=old_department_id,
        new_value=target.id,
        actor=actor,
        metadata={"group_id": str(group.id), "note": payload.note},
    )
    content = f'Ticket forwarded from "{source_name}" to "{target.name}".'
    if payload.note:
        content = f"{content} Note: {payload.note}"
    db.add(
        models.TicketMessage(
            ticket_id=ticket.id,
            content=content,
            is_internal=True,
            author_id=author_id,
            sender_name=(actor or {}).get("name"),
        )
    )
    db.commit()
    db.refresh(ticket)
    return ticket


def set_client(db: Session, ticket: models.Ticket, client_id: Optional[uuid.UUID], *, actor: Optional[dict] = None) -> models.Ticket:
    if client_id is not None and not db.query(models.Client.id).filter(models.Client.id == client_id).first():
        raise NotFoundError("Client not found")
    old = ticket.client_id
    ticket.client_id = client_id
    add_log(
        db,
        ticket,
        "client_linked" if client_id is not None else "client_unlinked",
        field="client_id",
        old_value=old,
        new_value=client_id,
        actor=actor,
    )
    db.commit()
    db.refresh(ticket)
    return ticket


# Observers

def list_observers(db: Session, ticket: models.Ticket) -> List[models.TicketObserver]:
    return (
        db.query(models.TicketObserver)
        .filter(models.TicketObserver.ticket_id == ticket.id)
        .order_by(models.TicketObserver.created_at.asc())
        .all()
    )


def add_observer(
    db: Session,
    ticket: models.Ticket,
    email: str,
    *,
    added_by_id: Optional[uuid.UUID] = None,
    actor: Optional[dict] = None,
) -> models.TicketObserver:
    exists = (
        db.query(models.TicketObserver.id)
        .filter(models.TicketObserver.ticket_id == ticket.id, models.TicketObserver.email == email)
        .first()
    )
    if exists:
        raise DuplicateError("Observer already added")
    collaborator = db.query(models.Collaborator).filter(models.Collaborator.email == email).first()
    observer = models.TicketObserver(
        ticket_id=ticket.id,
        email=email,
        name=collaborator.name if collaborator else email.split("@", 1)[0],
        collaborator_id=collaborator.id if collaborator else None,
        added_by_id=added_by_id,
    )
    db.add(observer)
    add_log(db, ticket, "observer_added", new_value=email, actor=actor)
    db.commit()
    db.refresh(observer)
    return observer


def remove_observer(db: Session, ticket: models.Ticket, observer_id: uuid.UUID, *, actor: Optional[dict] = None) -> bool:
    observer = (
        db.query(models.TicketObserver)
        .filter(models.TicketObserver.id == observer_id, models.TicketObserver.ticket_id == ticket.id)
        .first()
    )
    if not observer:
        return False
    add_log(db, ticket, "observer_removed", old_value=observer.email, actor=actor)
    db.delete(observer)
    db.commit()
    return True
