import os
import uuid

os.environ.setdefault("PYTEST_RUNNING", "1")
os.environ.setdefault("EMAIL_ENCRYPTION_KEY", "q0YkpTfV4yW0bMZ6yK8n2w6c3xJ5dQk4j7Zr1s9tB2E=")

import pytest
from fastapi.testclient import TestClient

from bizhub.api.main import app
from bizhub.db import models
from bizhub.db.database import SessionLocal, engine
from bizhub.db.repositories import users as user_repo
from bizhub.utils import passwords

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="session", autouse=True)
def create_schema_once():
    """Create all tables once per test session (in-memory SQLite shared via StaticPool)."""
    models.Base.metadata.create_all(bind=engine)
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Delete all rows between tests without dropping metadata."""
    connection = engine.connect()
    trans = connection.begin()
    for table in reversed(models.Base.metadata.sorted_tables):
        connection.execute(table.delete())
    trans.commit()
    connection.close()
    yield


@pytest.fixture(autouse=True)
def _quiet_env(monkeypatch):
    monkeypatch.delenv("DEV_MODE", raising=False)
    monkeypatch.delenv("HELPDESK_EMAIL_NOTIFICATIONS", raising=False)
    monkeypatch.delenv("RATE_LIMIT_MAX_REQUESTS", raising=False)
    monkeypatch.delenv("WHATSAPP_WORKER_URL", raising=False)
    yield


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def group_factory(db_session):
    def _create(name: str = "Team"):
        group = models.HierarchyGroup(name=name)
        db_session.add(group)
        db_session.commit()
        db_session.refresh(group)
        return group
    return _create


@pytest.fixture
def user_factory(db_session):
    """Create a user backed by a collaborator whose profile grants `permissions`."""

    def _create(email: str = None, permissions=("admin",), group=None, name: str = None):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        perms = []
        for perm_name in permissions:
            perm = db_session.query(models.Permission).filter(models.Permission.name == perm_name).first()
            if perm is None:
                resource, _, action = perm_name.partition(".")
                perm = models.Permission(name=perm_name, resource=resource, action=action or "all")
                db_session.add(perm)
            perms.append(perm)
        profile = models.Profile(name=f"profile-{uuid.uuid4().hex[:8]}", is_active=True)
        profile.permissions = perms
        collaborator = models.Collaborator(
            name=name or email.split("@")[0],
            email=email,
            profile=profile,
            group_id=group.id if group is not None else None,
        )
        user = models.User(
            email=email,
            name=name or email.split("@")[0],
            password_hash=passwords.hash_password(TEST_PASSWORD),
            collaborator=collaborator,
        )
        db_session.add_all([profile, collaborator, user])
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create


@pytest.fixture
def auth_headers(db_session, user_factory):
    """Return session headers for a fresh user holding `permissions`."""

    def _headers(*permissions, group=None, user=None):
        if user is None:
            user = user_factory(permissions=permissions or ("admin",), group=group)
        _session, token = user_repo.create_session(db_session, user=user)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers("admin")
