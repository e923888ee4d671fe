"""
Task repositories: CRUD with change history, comments and dashboard stats.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.models import ensure_aware
from bizhub.db.repositories.errors import NotFoundError, RepositoryError
from bizhub.db.schemas.common import PRIORITIES
from bizhub.db.schemas.tasks import TASK_STATUSES
from bizhub.utils import attachment_storage

OPEN_STATUSES = ("PENDING", "IN_PROGRESS", "WAITING")

# Field -> log kind for tracked updates
_TRACKED = {
    "status": "STATUS_CHANGED",
    "priority": "PRIORITY_CHANGED",
    "assignee_id": "ASSIGNEE_CHANGED",
    "due_date": "DUE_DATE_CHANGED",
    "title": "TITLE_CHANGED",
    "description": "DESCRIPTION_CHANGED",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _fmt(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_aware(value).isoformat()
    return str(value)


def _check_refs(db: Session, data: dict):
    refs = (
        ("assignee_id", models.Collaborator, "Assignee not found"),
        ("client_id", models.Client, "Client not found"),
        ("ticket_id", models.Ticket, "Ticket not found"),
        ("service_order_id", models.ServiceOrder, "Service order not found"),
    )
    for field, model, message in refs:
        value = data.get(field)
        if value is not None and not db.query(model.id).filter(model.id == value).first():
            raise NotFoundError(message)


def add_log(db: Session, task: models.Task, kind: str, *, actor_id=None, description=None, old_value=None, new_value=None):
    entry = models.TaskLog(
        task_id=task.id,
        kind=kind,
        description=description,
        old_value=old_value,
        new_value=new_value,
        actor_id=actor_id,
    )
    db.add(entry)
    return entry


def get_task(db: Session, task_id: uuid.UUID) -> Optional[models.Task]:
    return db.query(models.Task).filter(models.Task.id == task_id).first()


def create_task(
    db: Session,
    payload: schemas.TaskCreate,
    *,
    created_by_id: Optional[uuid.UUID] = None,
    recurrence_id: Optional[uuid.UUID] = None,
    commit: bool = True,
) -> models.Task:
    data = payload.model_dump()
    _check_refs(db, data)
    task = models.Task(**data, created_by_id=created_by_id, recurrence_id=recurrence_id, is_recurring=recurrence_id is not None)
    if task.status == "DONE":
        task.completed_at = _now()
    db.add(task)
    db.flush()
    add_log(db, task, "CREATED", actor_id=created_by_id, description="Task created")
    if commit:
        db.commit()
        db.refresh(task)
    return task


def list_tasks(
    db: Session,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee_id: Optional[uuid.UUID] = None,
    client_id: Optional[uuid.UUID] = None,
    overdue: Optional[bool] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.Task], int]:
    query = db.query(models.Task)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.Task.title.ilike(like), models.Task.description.ilike(like)))
    if status:
        query = query.filter(models.Task.status == status.upper())
    if priority:
        query = query.filter(models.Task.priority == priority.upper())
    if assignee_id:
        query = query.filter(models.Task.assignee_id == assignee_id)
    if client_id:
        query = query.filter(models.Task.client_id == client_id)
    if overdue:
        query = query.filter(models.Task.due_date < _now(), models.Task.status.in_(OPEN_STATUSES))
    if due_from:
        query = query.filter(models.Task.due_date >= due_from)
    if due_to:
        query = query.filter(models.Task.due_date <= due_to)
    total = query.count()
    items = (
        query.order_by(models.Task.due_date.is_(None), models.Task.due_date.asc(), models.Task.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total


def update_task(db: Session, task_id: uuid.UUID, payload: schemas.TaskUpdate, *, actor_id=None) -> Optional[models.Task]:
    task = get_task(db, task_id)
    if not task:
        return None
    data = payload.model_dump(exclude_unset=True)
    _check_refs(db, data)
    for key, value in data.items():
        if key in ("title", "priority", "status") and value is None:
            continue
        old = getattr(task, key)
        if key == "due_date":
            unchanged = ensure_aware(old) == ensure_aware(value)
        else:
            unchanged = old == value
        if unchanged:
            continue
        setattr(task, key, value)
        kind = _TRACKED.get(key)
        if kind:
            add_log(db, task, kind, actor_id=actor_id, old_value=_fmt(old), new_value=_fmt(value))
        if key == "status":
            if value == "DONE":
                task.completed_at = _now()
                add_log(db, task, "COMPLETED", actor_id=actor_id, description="Task completed")
            elif old == "DONE":
                task.completed_at = None
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task_id: uuid.UUID) -> bool:
    task = get_task(db, task_id)
    if not task:
        return False
    stored = [a.storage_path for a in task.attachments]
    db.delete(task)
    db.commit()
    for relative in stored:
        attachment_storage.remove(relative)
    return True


def add_comment(db: Session, task: models.Task, payload: schemas.TaskCommentCreate, *, author_id=None) -> models.TaskComment:
    comment = models.TaskComment(task_id=task.id, content=payload.content, author_id=author_id)
    db.add(comment)
    add_log(db, task, "COMMENT_ADDED", actor_id=author_id, description=payload.content[:200])
    db.commit()
    db.refresh(comment)
    return comment


def delete_comment(db: Session, task: models.Task, comment_id: uuid.UUID) -> bool:
    comment = (
        db.query(models.TaskComment)
        .filter(models.TaskComment.id == comment_id, models.TaskComment.task_id == task.id)
        .first()
    )
    if not comment:
        return False
    db.delete(comment)
    db.commit()
    return True


# Attachments

def get_attachment(db: Session, task: models.Task, attachment_id: uuid.UUID) -> Optional[models.TaskAttachment]:
    return (
        db.query(models.TaskAttachment)
        .filter(models.TaskAttachment.id == attachment_id, models.TaskAttachment.task_id == task.id)
        .first()
    )


def add_attachment(
    db: Session,
    task: models.Task,
    *,
    file_name: str,
    content_type: Optional[str],
    data: bytes,
    uploaded_by_id=None,
) -> models.TaskAttachment:
    limit = attachment_storage.max_attachment_bytes()
    if not data:
        raise RepositoryError("File is empty")
    if len(data) > limit:
        raise RepositoryError(f"File exceeds the maximum size of {limit} bytes")
    display_name = attachment_storage.safe_name(file_name)
    relative = attachment_storage.save(task.id, display_name, data)
    attachment = models.TaskAttachment(
        task_id=task.id,
        file_name=display_name,
        content_type=content_type,
        size=len(data),
        storage_path=relative,
        uploaded_by_id=uploaded_by_id,
    )
    db.add(attachment)
    add_log(db, task, "ATTACHMENT_ADDED", actor_id=uploaded_by_id, new_value=display_name)
    try:
        db.commit()
    except Exception:
        db.rollback()
        attachment_storage.remove(relative)
        raise
    db.refresh(attachment)
    return attachment


def delete_attachment(db: Session, task: models.Task, attachment_id: uuid.UUID, *, actor_id=None) -> bool:
    attachment = get_attachment(db, task, attachment_id)
    if not attachment:
        return False
    relative = attachment.storage_path
    add_log(db, task, "ATTACHMENT_REMOVED", actor_id=actor_id, old_value=attachment.file_name)
    db.delete(attachment)
    db.commit()
    attachment_storage.remove(relative)
    return True


def get_stats(db: Session, *, assignee_id: Optional[uuid.UUID] = None) -> Dict:
    query = db.query(models.Task.status, models.Task.priority, models.Task.due_date)
    if assignee_id:
        query = query.filter(models.Task.assignee_id == assignee_id)
    rows = query.all()
    now = _now()
    by_status = {s: 0 for s in TASK_STATUSES}
    by_priority = {p: 0 for p in PRIORITIES}
    overdue = 0
    for status, priority, due_date in rows:
        by_status[status] = by_status.get(status, 0) + 1
        by_priority[priority] = by_priority.get(priority, 0) + 1
        if due_date is not None and status in OPEN_STATUSES and ensure_aware(due_date) < now:
            overdue += 1
    return {"total": len(rows), "by_status": by_status, "by_priority": by_priority, "overdue": overdue}
