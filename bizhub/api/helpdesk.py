"""
Helpdesk API endpoints.

Departments may be bound to a hierarchy group. Collaborators only see
departments of their own group plus public (group-less) departments;
helpdesk administrators and collaborators without a group see everything.
"""
import uuid
from typing import Any, Dict, List, Optional, Set

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.api.deps import actor_from, has_any, page_params, require_permission
from bizhub.db import models, schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import helpdesk as helpdesk_repo
from bizhub.services import notification_service
from bizhub.services.webhook_service import emit
from bizhub.utils import permission_catalog
from bizhub.utils.pagination import page_payload

router = APIRouter(prefix="/helpdesk", tags=["helpdesk"])

HELPDESK_ACCESS = (permission_catalog.HELPDESK_VIEW, permission_catalog.HELPDESK_MANAGE)
HELPDESK_ADMIN = (
    permission_catalog.PERMISSION_ADMIN,
    permission_catalog.PERMISSION_SYSTEM_ADMIN,
    permission_catalog.HELPDESK_MANAGE,
)


def is_helpdesk_admin(current_user: Dict[str, Any]) -> bool:
    return has_any(current_user, HELPDESK_ADMIN)


def can_see_department(current_user: Dict[str, Any], department: models.Department) -> bool:
    if is_helpdesk_admin(current_user):
        return True
    group_id = current_user.get("group_id")
    if group_id is None or department.group_id is None:
        return True
    return department.group_id == group_id


def visible_department_ids(db: Session, current_user: Dict[str, Any]) -> Optional[Set[uuid.UUID]]:
    """None means unrestricted."""
    if is_helpdesk_admin(current_user) or current_user.get("group_id") is None:
        return None
    return {
        d.id for d in helpdesk_repo.list_departments(db)
        if can_see_department(current_user, d)
    }


def _ensure_admin(current_user: Dict[str, Any]) -> None:
    if not is_helpdesk_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Helpdesk administrator access required")


def _visible_ticket(db: Session, ticket_id: uuid.UUID, current_user: Dict[str, Any]) -> models.Ticket:
    ticket = helpdesk_repo.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if ticket.department is not None and not can_see_department(current_user, ticket.department):
        # Hidden tickets look missing
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


# Departments

@router.get("/departments", response_model=List[schemas.Department])
def list_departments(
    only_active: bool = False,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    departments = helpdesk_repo.list_departments(db, only_active=only_active)
    return [d for d in departments if can_see_department(current_user, d)]


@router.post("/departments", response_model=schemas.Department, status_code=status.HTTP_201_CREATED)
def create_department(
    payload: schemas.DepartmentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    _ensure_admin(current_user)
    return helpdesk_repo.create_department(db, payload)


@router.put("/departments/{department_id}", response_model=schemas.Department)
def update_department(
    department_id: uuid.UUID,
    payload: schemas.DepartmentUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    _ensure_admin(current_user)
    department = helpdesk_repo.update_department(db, department_id, payload)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.delete("/departments/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department(
    department_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    _ensure_admin(current_user)
    if not helpdesk_repo.delete_department(db, department_id):
        raise HTTPException(status_code=404, detail="Department not found")
    return None


# Tickets

@router.get("/tickets", response_model=schemas.PaginatedTickets)
def list_tickets(
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    department_id: Optional[uuid.UUID] = None,
    assignee_id: Optional[uuid.UUID] = None,
    client_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    page, limit, skip = page_params(page, limit)
    items, total = helpdesk_repo.list_tickets(
        db,
        department_ids=visible_department_ids(db, current_user),
        search=search,
        status=status,
        priority=priority,
        department_id=department_id,
        assignee_id=assignee_id,
        client_id=client_id,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.post("/tickets", response_model=schemas.Ticket, status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: schemas.TicketCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    department = helpdesk_repo.get_department(db, payload.department_id)
    if department is not None and not can_see_department(current_user, department):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No access to this department")
    ticket = helpdesk_repo.create_ticket(db, payload, actor=actor_from(current_user))
    emit("ticket.created", schemas.Ticket.model_validate(ticket).model_dump(mode="json"), background_tasks)
    if notification_service.notifications_enabled():
        background_tasks.add_task(notification_service.send_ticket_created, notification_service.ticket_context(ticket))
    return ticket


@router.get("/tickets/{ticket_id}", response_model=schemas.TicketDetail)
def get_ticket(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    return _visible_ticket(db, ticket_id, current_user)


@router.put("/tickets/{ticket_id}", response_model=schemas.Ticket)
def update_ticket(
    ticket_id: uuid.UUID,
    payload: schemas.TicketUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    if payload.department_id is not None:
        department = helpdesk_repo.get_department(db, payload.department_id)
        if department is not None and not can_see_department(current_user, department):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No access to this department")
    return helpdesk_repo.update_ticket(db, ticket, payload, actor=actor_from(current_user))


@router.delete("/tickets/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ticket(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    _ensure_admin(current_user)
    ticket = _visible_ticket(db, ticket_id, current_user)
    helpdesk_repo.delete_ticket(db, ticket)
    return None


@router.get("/tickets/{ticket_id}/messages", response_model=List[schemas.TicketMessage])
def list_messages(
    ticket_id: uuid.UUID,
    include_internal: bool = True,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    return helpdesk_repo.list_messages(db, ticket, include_internal=include_internal)


@router.post("/tickets/{ticket_id}/messages", response_model=schemas.TicketMessage, status_code=status.HTTP_201_CREATED)
def add_message(
    ticket_id: uuid.UUID,
    payload: schemas.TicketMessageCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    if payload.sender_name is None:
        payload.sender_name = current_user.get("name")
    if payload.sender_email is None:
        payload.sender_email = current_user.get("email")
    message = helpdesk_repo.add_message(
        db,
        ticket,
        payload,
        author_id=current_user.get("collaborator_id"),
        actor=actor_from(current_user),
    )
    if not message.is_internal and notification_service.notifications_enabled():
        background_tasks.add_task(
            notification_service.send_ticket_reply,
            notification_service.ticket_context(ticket, message),
        )
    return message


@router.get("/tickets/{ticket_id}/logs", response_model=List[schemas.TicketLog])
def list_logs(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    return _visible_ticket(db, ticket_id, current_user).logs


@router.post("/tickets/{ticket_id}/forward", response_model=schemas.Ticket)
def forward_ticket(
    ticket_id: uuid.UUID,
    payload: schemas.TicketForward,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    """Move the ticket to another group's department; the target group need not be visible to the caller."""
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    return helpdesk_repo.forward_ticket(
        db,
        ticket,
        payload,
        author_id=current_user.get("collaborator_id"),
        actor=actor_from(current_user),
    )


@router.post("/tickets/{ticket_id}/client", response_model=schemas.Ticket)
def link_client(
    ticket_id: uuid.UUID,
    payload: schemas.TicketClientLink,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    return helpdesk_repo.set_client(db, ticket, payload.client_id, actor=actor_from(current_user))


@router.delete("/tickets/{ticket_id}/client", response_model=schemas.Ticket)
def unlink_client(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    return helpdesk_repo.set_client(db, ticket, None, actor=actor_from(current_user))


@router.get("/tickets/{ticket_id}/observers", response_model=List[schemas.TicketObserver])
def list_observers(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    return helpdesk_repo.list_observers(db, _visible_ticket(db, ticket_id, current_user))


@router.post("/tickets/{ticket_id}/observers", response_model=schemas.TicketObserver, status_code=status.HTTP_201_CREATED)
def add_observer(
    ticket_id: uuid.UUID,
    payload: schemas.TicketObserverCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    return helpdesk_repo.add_observer(
        db,
        ticket,
        payload.email,
        added_by_id=current_user.get("collaborator_id"),
        actor=actor_from(current_user),
    )


@router.delete("/tickets/{ticket_id}/observers/{observer_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_observer(
    ticket_id: uuid.UUID,
    observer_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission(*HELPDESK_ACCESS)),
):
    _user, current_user = user_context
    ticket = _visible_ticket(db, ticket_id, current_user)
    if not helpdesk_repo.remove_observer(db, ticket, observer_id, actor=actor_from(current_user)):
        raise HTTPException(status_code=404, detail="Observer not found")
    return None
