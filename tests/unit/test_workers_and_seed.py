from datetime import datetime, timedelta, timezone

from bizhub.db import models
from bizhub.db.database import SessionLocal
from bizhub.utils import permission_catalog
from bizhub.utils.module_catalog import DEFAULT_MODULES
from bizhub.workers import email_sync_worker, recurrence_worker
from scripts import seed_defaults


def test_seed_is_idempotent(db_session):
    summary = seed_defaults.seed(db_session, admin_email="Boss@Example.com", admin_password="s3cret-pass", admin_name="Boss")
    assert summary == {
        "permissions": len(permission_catalog.ALL_PERMISSIONS),
        "modules": len(DEFAULT_MODULES),
        "admin_created": 1,
    }
    user = db_session.query(models.User).filter(models.User.email == "boss@example.com").one()
    assert user.collaborator.profile.name == seed_defaults.ADMIN_PROFILE_NAME
    assert {p.name for p in user.collaborator.profile.permissions} == {"admin"}

    again = seed_defaults.seed(db_session, admin_email="boss@example.com", admin_password="s3cret-pass")
    assert again == {"permissions": 0, "modules": 0, "admin_created": 0}


def test_seed_without_admin_credentials(db_session):
    summary = seed_defaults.seed(db_session, admin_email=None, admin_password=None)
    assert summary["admin_created"] == 0
    assert db_session.query(models.User).count() == 0


def test_seed_main_prints_summary(monkeypatch, capsys):
    monkeypatch.setattr(seed_defaults, "SessionLocal", SessionLocal)
    assert seed_defaults.main(["--admin-email", "root@example.com", "--admin-password", "s3cret-pass"]) == 0
    assert "administrator created" in capsys.readouterr().out


def test_recurrence_worker_once(db_session, monkeypatch):
    db_session.add(models.TaskRecurrence(
        kind="DAILY",
        interval=1,
        title="Water plants",
        priority="LOW",
        is_active=True,
        occurrences_generated=0,
        next_run_at=datetime.now(timezone.utc) - timedelta(hours=1),
    ))
    db_session.add(models.RateLimitEntry(key="stale", count=3, reset_at=datetime.now(timezone.utc) - timedelta(minutes=5)))
    db_session.commit()

    monkeypatch.setattr(recurrence_worker, "SessionLocal", SessionLocal)
    assert recurrence_worker.main(["--once"]) == 0
    db_session.expire_all()
    assert db_session.query(models.Task).count() == 1
    assert db_session.query(models.RateLimitEntry).count() == 0


def test_email_sync_worker_once(monkeypatch):
    calls = []

    def fake_sync(session, folder, limit):
        calls.append((folder, limit))
        return {"accounts": 1, "succeeded": 0, "failed": 1, "new_messages": 0}

    monkeypatch.setattr(email_sync_worker, "sync_all_accounts", fake_sync)
    monkeypatch.setattr(email_sync_worker, "SessionLocal", SessionLocal)
    assert email_sync_worker.main(["--once", "--folder", "Archive", "--limit", "5"]) == 1
    assert calls == [("Archive", 5)]
