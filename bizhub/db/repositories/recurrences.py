"""
Task recurrence repositories.

Scheduling logic (next run computation, processing) lives in
`bizhub.services.recurrence_service`.
"""
from __future__ import annotations

import uuid
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from bizhub.db import models


def get_recurrence(db: Session, recurrence_id: uuid.UUID) -> Optional[models.TaskRecurrence]:
    return db.query(models.TaskRecurrence).filter(models.TaskRecurrence.id == recurrence_id).first()


def list_recurrences(db: Session, *, is_active: Optional[bool] = None) -> List[models.TaskRecurrence]:
    query = db.query(models.TaskRecurrence)
    if is_active is not None:
        query = query.filter(models.TaskRecurrence.is_active.is_(is_active))
    return query.order_by(models.TaskRecurrence.next_run_at.asc()).all()


def toggle_recurrence(db: Session, recurrence_id: uuid.UUID) -> Optional[models.TaskRecurrence]:
    recurrence = get_recurrence(db, recurrence_id)
    if not recurrence:
        return None
    recurrence.is_active = not recurrence.is_active
    recurrence.deactivation_reason = None if recurrence.is_active else "MANUAL"
    db.commit()
    db.refresh(recurrence)
    return recurrence


def delete_recurrence(db: Session, recurrence_id: uuid.UUID) -> bool:
    recurrence = get_recurrence(db, recurrence_id)
    if not recurrence:
        return False
    # Pending tasks generated by the series go with it; worked tasks are kept
    for task in list(recurrence.tasks):
        if task.status == "PENDING":
            db.delete(task)
        else:
            task.recurrence_id = None
    db.delete(recurrence)
    db.commit()
    return True


def get_stats(db: Session) -> Dict:
    total = db.query(models.TaskRecurrence).count()
    active = db.query(models.TaskRecurrence).filter(models.TaskRecurrence.is_active.is_(True)).count()
    tasks_created = db.query(models.Task).filter(models.Task.is_recurring.is_(True)).count()
    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "tasks_created": tasks_created,
        "success_rate": round(active / total * 100) if total else 0,
    }
