from datetime import datetime, timedelta, timezone

import pytest

from bizhub.db import models, schemas
from bizhub.db.repositories import recurrences as recurrence_repo
from bizhub.services import recurrence_service as rs

UTC = timezone.utc


def test_daily_and_yearly():
    start = datetime(2025, 1, 10, 9, tzinfo=UTC)
    assert rs.compute_next_run("DAILY", start, interval=3) == datetime(2025, 1, 13, 9, tzinfo=UTC)
    assert rs.compute_next_run("YEARLY", datetime(2024, 2, 29, tzinfo=UTC)) == datetime(2025, 2, 28, tzinfo=UTC)


def test_weekly_with_weekdays():
    # 2025-01-08 is a Wednesday (3)
    wednesday = datetime(2025, 1, 8, tzinfo=UTC)
    assert rs.compute_next_run("WEEKLY", wednesday, weekdays=[1, 5]) == datetime(2025, 1, 10, tzinfo=UTC)
    # No later day in the week: wrap to the first listed day
    assert rs.compute_next_run("WEEKLY", wednesday, weekdays=[1, 2]) == datetime(2025, 1, 13, tzinfo=UTC)
    assert rs.compute_next_run("WEEKLY", wednesday, interval=2) == datetime(2025, 1, 22, tzinfo=UTC)


def test_monthly_clamps_day():
    jan31 = datetime(2025, 1, 31, tzinfo=UTC)
    assert rs.compute_next_run("MONTHLY", jan31) == datetime(2025, 2, 28, tzinfo=UTC)
    assert rs.compute_next_run("MONTHLY", datetime(2025, 11, 5, tzinfo=UTC), interval=3, day_of_month=15) == datetime(2026, 2, 15, tzinfo=UTC)


def test_unknown_kind():
    with pytest.raises(ValueError):
        rs.compute_next_run("HOURLY", datetime(2025, 1, 1, tzinfo=UTC))


def test_create_recurrence_makes_first_task(db_session):
    start = datetime(2025, 1, 6, 8, tzinfo=UTC)
    recurrence = rs.create_recurrence(
        db_session,
        schemas.RecurrenceCreate(kind="DAILY", title="Check backups", start_date=start),
        now=start,
    )
    assert recurrence.occurrences_generated == 1
    assert models.ensure_aware(recurrence.next_run_at) == start + timedelta(days=1)
    tasks = db_session.query(models.Task).filter(models.Task.recurrence_id == recurrence.id).all()
    assert len(tasks) == 1
    assert tasks[0].is_recurring is True
    assert tasks[0].status == "PENDING"


def test_create_recurrence_rejects_unknown_assignee(db_session):
    import uuid
    from bizhub.db.repositories.errors import NotFoundError

    with pytest.raises(NotFoundError):
        rs.create_recurrence(
            db_session,
            schemas.RecurrenceCreate(kind="DAILY", title="x", assignee_id=uuid.uuid4()),
        )


def _due(db, **overrides):
    values = dict(
        kind="DAILY",
        interval=1,
        title="Due",
        priority="LOW",
        is_active=True,
        occurrences_generated=0,
        next_run_at=datetime(2025, 1, 1, tzinfo=UTC),
    )
    values.update(overrides)
    rec = models.TaskRecurrence(**values)
    db.add(rec)
    db.commit()
    return rec


def test_process_creates_and_deactivates(db_session):
    now = datetime(2025, 1, 2, 12, tzinfo=UTC)
    active = _due(db_session)
    maxed = _due(db_session, max_occurrences=2, occurrences_generated=2)
    ended = _due(db_session, end_date=datetime(2025, 1, 1, 6, tzinfo=UTC))
    future = _due(db_session, next_run_at=datetime(2025, 2, 1, tzinfo=UTC))

    result = rs.process_recurrences(db_session, now=now)
    assert result == {"processed": 3, "created": 1, "deactivated": 2, "errors": 0}

    db_session.expire_all()
    assert active.occurrences_generated == 1
    assert models.ensure_aware(active.next_run_at) == datetime(2025, 1, 2, tzinfo=UTC)
    assert maxed.is_active is False and maxed.deactivation_reason == rs.MAX_OCCURRENCES_REACHED
    assert ended.is_active is False and ended.deactivation_reason == rs.END_DATE_REACHED
    assert future.occurrences_generated == 0
    assert db_session.query(models.Task).count() == 1


def test_process_records_errors(db_session, monkeypatch):
    rec = _due(db_session)

    def boom(*args, **kwargs):
        raise RuntimeError("template broken")

    monkeypatch.setattr(rs, "_task_from_template", boom)
    result = rs.process_recurrences(db_session, now=datetime(2025, 1, 2, tzinfo=UTC))
    assert result["errors"] == 1
    db_session.expire_all()
    assert rec.last_error == "template broken"
    assert rec.is_active is True


def test_stats_toggle_and_delete(db_session):
    start = datetime(2025, 1, 6, tzinfo=UTC)
    first = rs.create_recurrence(db_session, schemas.RecurrenceCreate(kind="WEEKLY", title="A", weekdays=[1]), now=start)
    rs.create_recurrence(db_session, schemas.RecurrenceCreate(kind="DAILY", title="B"), now=start)

    toggled = recurrence_repo.toggle_recurrence(db_session, first.id)
    assert toggled.is_active is False and toggled.deactivation_reason == "MANUAL"

    stats = recurrence_repo.get_stats(db_session)
    assert stats == {"total": 2, "active": 1, "inactive": 1, "tasks_created": 2, "success_rate": 50}

    task = db_session.query(models.Task).filter(models.Task.recurrence_id == first.id).one()
    task.status = "DONE"
    db_session.commit()
    assert recurrence_repo.delete_recurrence(db_session, first.id) is True
    db_session.expire_all()
    kept = db_session.query(models.Task).filter(models.Task.id == task.id).one()
    assert kept.recurrence_id is None
    assert recurrence_repo.delete_recurrence(db_session, first.id) is False
