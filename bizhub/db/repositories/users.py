"""
User and session repositories.

Passwords are stored as Argon2id hashes; session tokens as sha256 digests.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.models import ensure_aware
from bizhub.db.repositories.errors import DuplicateError, NotFoundError
from bizhub.utils import passwords
from bizhub.utils.runtime import env_int


def _now() -> datetime:
    return datetime.now(timezone.utc)


def session_ttl() -> timedelta:
    return timedelta(hours=max(1, env_int("SESSION_TTL_HOURS", 168)))


def get_user(db: Session, user_id: uuid.UUID) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == (email or "").strip().lower()).first()


def _check_collaborator(db: Session, collaborator_id: Optional[uuid.UUID]):
    if collaborator_id is None:
        return
    exists = db.query(models.Collaborator.id).filter(models.Collaborator.id == collaborator_id).first()
    if not exists:
        raise NotFoundError("Collaborator not found")


def create_user(db: Session, payload: schemas.UserCreate) -> models.User:
    if get_user_by_email(db, payload.email):
        raise DuplicateError("Email already registered")
    _check_collaborator(db, payload.collaborator_id)
    user = models.User(
        email=payload.email,
        name=payload.name,
        password_hash=passwords.hash_password(payload.password),
        is_active=payload.is_active,
        collaborator_id=payload.collaborator_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def list_users(db: Session, *, search: Optional[str] = None, skip: int = 0, limit: int = 10) -> Tuple[List[models.User], int]:
    query = db.query(models.User)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(models.User.name.ilike(like), models.User.email.ilike(like)))
    total = query.count()
    items = query.order_by(models.User.name.asc()).offset(skip).limit(limit).all()
    return items, total


def update_user(db: Session, user_id: uuid.UUID, payload: schemas.UserUpdate) -> Optional[models.User]:
    user = get_user(db, user_id)
    if not user:
        return None
    data = payload.model_dump(exclude_unset=True)
    if "collaborator_id" in data:
        _check_collaborator(db, data["collaborator_id"])
    password = data.pop("password", None)
    if password:
        user.password_hash = passwords.hash_password(password)
    for key, value in data.items():
        if key == "name" and value is None:
            continue
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: uuid.UUID) -> bool:
    user = get_user(db, user_id)
    if not user:
        return False
    db.delete(user)
    db.commit()
    return True


def authenticate(db: Session, email: str, password: str) -> Optional[models.User]:
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not passwords.verify_password(password, user.password_hash):
        return None
    return user


def create_session(
    db: Session,
    *,
    user: models.User,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[models.UserSession, str]:
    token = passwords.generate_session_token()
    now = _now()
    session = models.UserSession(
        user_id=user.id,
        token_hash=passwords.hash_session_token(token),
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=now,
        last_seen_at=now,
        expires_at=now + session_ttl(),
    )
    user.last_login_at = now
    db.add(session)
    db.commit()
    db.refresh(session)
    return session, token


def get_active_session(db: Session, token: str) -> Optional[models.UserSession]:
    if not token:
        return None
    session = (
        db.query(models.UserSession)
        .filter(models.UserSession.token_hash == passwords.hash_session_token(token))
        .first()
    )
    if not session or session.revoked_at is not None:
        return None
    if ensure_aware(session.expires_at) <= _now():
        return None
    return session


def revoke_session(db: Session, session: models.UserSession) -> None:
    session.revoked_at = _now()
    db.commit()


def purge_expired_sessions(db: Session) -> int:
    count = (
        db.query(models.UserSession)
        .filter(or_(models.UserSession.expires_at < _now(), models.UserSession.revoked_at.isnot(None)))
        .delete(synchronize_session=False)
    )
    db.commit()
    return count
