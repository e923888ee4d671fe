"""
Recurring task scheduling.

A `TaskRecurrence` row is both a schedule and a task template. Every time
its `next_run_at` comes due, `process_recurrences` materializes a PENDING
task from the template and moves the schedule forward.

Weekdays use 0=Sunday .. 6=Saturday.
"""
from __future__ import annotations

import calendar
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.models import ensure_aware
from bizhub.db.repositories import tasks as task_repo
from bizhub.db.repositories.errors import NotFoundError

logger = logging.getLogger(__name__)

MAX_OCCURRENCES_REACHED = "MAX_OCCURRENCES_REACHED"
END_DATE_REACHED = "END_DATE_REACHED"


def _sunday_based_weekday(value: datetime) -> int:
    return (value.weekday() + 1) % 7


def _add_months(value: datetime, months: int, day: Optional[int] = None) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    target_day = day if day is not None else value.day
    return value.replace(year=year, month=month, day=min(target_day, last_day))


def _add_years(value: datetime, years: int) -> datetime:
    year = value.year + years
    last_day = calendar.monthrange(year, value.month)[1]
    return value.replace(year=year, day=min(value.day, last_day))


def compute_next_run(
    kind: str,
    current: datetime,
    *,
    interval: int = 1,
    weekdays=None,
    day_of_month: Optional[int] = None,
) -> datetime:
    """Return the run that follows `current` for the given pattern."""
    interval = max(1, int(interval or 1))
    if kind == "DAILY":
        return current + timedelta(days=interval)
    if kind == "WEEKLY":
        days = sorted(set(weekdays or []))
        if not days:
            return current + timedelta(days=7 * interval)
        today = _sunday_based_weekday(current)
        later = [d for d in days if d > today]
        if later:
            return current + timedelta(days=later[0] - today)
        return current + timedelta(days=7 * interval - today + days[0])
    if kind == "MONTHLY":
        return _add_months(current, interval, day_of_month)
    if kind == "YEARLY":
        return _add_years(current, interval)
    raise ValueError(f"Unknown recurrence kind '{kind}'")


def next_run_for(recurrence: models.TaskRecurrence, current: datetime) -> datetime:
    return compute_next_run(
        recurrence.kind,
        current,
        interval=recurrence.interval,
        weekdays=recurrence.weekdays,
        day_of_month=recurrence.day_of_month,
    )


def _task_from_template(db: Session, recurrence: models.TaskRecurrence, now: datetime) -> models.Task:
    payload = schemas.TaskCreate(
        title=recurrence.title,
        description=recurrence.description,
        priority=recurrence.priority,
        status="PENDING",
        due_date=now + timedelta(days=1),
        estimated_minutes=recurrence.estimated_minutes,
        assignee_id=recurrence.assignee_id,
        client_id=recurrence.client_id,
    )
    return task_repo.create_task(
        db,
        payload,
        created_by_id=recurrence.created_by_id,
        recurrence_id=recurrence.id,
        commit=False,
    )


def create_recurrence(
    db: Session,
    payload: schemas.RecurrenceCreate,
    *,
    created_by_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> models.TaskRecurrence:
    """Create the series, its first task and schedule the following run."""
    now = now or datetime.now(timezone.utc)
    data = payload.model_dump()
    start = ensure_aware(data.pop("start_date", None)) or now
    for field, model, message in (
        ("assignee_id", models.Collaborator, "Assignee not found"),
        ("client_id", models.Client, "Client not found"),
    ):
        value = data.get(field)
        if value is not None and not db.query(model.id).filter(model.id == value).first():
            raise NotFoundError(message)

    recurrence = models.TaskRecurrence(**data, created_by_id=created_by_id, is_active=True)
    db.add(recurrence)
    db.flush()

    _task_from_template(db, recurrence, start)
    recurrence.occurrences_generated = 1
    recurrence.last_run_at = now
    recurrence.next_run_at = next_run_for(recurrence, start)
    db.commit()
    db.refresh(recurrence)
    logger.info("recurrence_created id=%s kind=%s next_run_at=%s", recurrence.id, recurrence.kind, recurrence.next_run_at)
    return recurrence


def _deactivate(recurrence: models.TaskRecurrence, reason: str):
    recurrence.is_active = False
    recurrence.deactivation_reason = reason
    logger.info("recurrence_deactivated id=%s reason=%s", recurrence.id, reason)


def process_recurrence(db: Session, recurrence: models.TaskRecurrence, now: datetime) -> str:
    """Run one due recurrence. Returns `created` or `deactivated`."""
    if recurrence.max_occurrences and (recurrence.occurrences_generated or 0) >= recurrence.max_occurrences:
        _deactivate(recurrence, MAX_OCCURRENCES_REACHED)
        db.commit()
        return "deactivated"
    if recurrence.end_date and now > ensure_aware(recurrence.end_date):
        _deactivate(recurrence, END_DATE_REACHED)
        db.commit()
        return "deactivated"

    _task_from_template(db, recurrence, now)
    current = ensure_aware(recurrence.next_run_at) or now
    recurrence.next_run_at = next_run_for(recurrence, current)
    recurrence.last_run_at = now
    recurrence.last_error = None
    recurrence.occurrences_generated = (recurrence.occurrences_generated or 0) + 1
    db.commit()
    return "created"


def process_recurrences(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """Materialize tasks for every due recurrence.

    Rows whose end date already passed are picked up too so they get
    deactivated instead of lingering as active.
    """
    now = now or datetime.now(timezone.utc)
    due = (
        db.query(models.TaskRecurrence)
        .filter(models.TaskRecurrence.is_active.is_(True))
        .filter(models.TaskRecurrence.next_run_at.isnot(None))
        .filter(models.TaskRecurrence.next_run_at <= now)
        .order_by(models.TaskRecurrence.next_run_at.asc())
        .all()
    )
    result = {"processed": 0, "created": 0, "deactivated": 0, "errors": 0}
    for recurrence in due:
        recurrence_id = recurrence.id
        result["processed"] += 1
        try:
            outcome = process_recurrence(db, recurrence, now)
            result[outcome] += 1
        except Exception as exc:
            db.rollback()
            result["errors"] += 1
            logger.exception("recurrence_failed id=%s", recurrence_id)
            failed = db.query(models.TaskRecurrence).filter(models.TaskRecurrence.id == recurrence_id).first()
            if failed is not None:
                failed.last_error = str(exc)[:1000] or exc.__class__.__name__
                db.commit()
    if result["processed"]:
        logger.info("recurrences_processed %s", result)
    return result
