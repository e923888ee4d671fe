"""
Webmail repositories: accounts, folders and synced messages.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from bizhub.db import models, schemas
from bizhub.db.repositories.errors import DuplicateError
from bizhub.utils import secrets_box


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_account(db: Session, account_id: uuid.UUID) -> Optional[models.EmailAccount]:
    return db.query(models.EmailAccount).filter(models.EmailAccount.id == account_id).first()


def get_account_for(db: Session, collaborator_id: uuid.UUID) -> Optional[models.EmailAccount]:
    return db.query(models.EmailAccount).filter(models.EmailAccount.collaborator_id == collaborator_id).first()


def list_active_accounts(db: Session) -> List[models.EmailAccount]:
    return db.query(models.EmailAccount).filter(models.EmailAccount.is_active.is_(True)).all()


def create_account(db: Session, payload: schemas.EmailAccountCreate, *, collaborator_id: uuid.UUID) -> models.EmailAccount:
    if get_account_for(db, collaborator_id):
        raise DuplicateError("Collaborator already has an email account")
    data = payload.model_dump(exclude={"password"})
    account = models.EmailAccount(
        **data,
        collaborator_id=collaborator_id,
        password_encrypted=secrets_box.encrypt(payload.password),
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def update_account(db: Session, account: models.EmailAccount, payload: schemas.EmailAccountUpdate) -> models.EmailAccount:
    data = payload.model_dump(exclude_unset=True)
    password = data.pop("password", None)
    if password:
        account.password_encrypted = secrets_box.encrypt(password)
    for key, value in data.items():
        if value is not None:
            setattr(account, key, value)
    db.commit()
    db.refresh(account)
    return account


def delete_account(db: Session, account: models.EmailAccount) -> None:
    db.query(models.EmailMessage).filter(models.EmailMessage.account_id == account.id).delete(synchronize_session=False)
    db.delete(account)
    db.commit()


def account_password(account: models.EmailAccount) -> str:
    return secrets_box.decrypt(account.password_encrypted)


def upsert_folder(db: Session, account: models.EmailAccount, *, path: str, name: str, delimiter: Optional[str], special_use: Optional[str]) -> models.EmailFolder:
    folder = (
        db.query(models.EmailFolder)
        .filter(models.EmailFolder.account_id == account.id, models.EmailFolder.path == path)
        .first()
    )
    if folder is None:
        folder = models.EmailFolder(account_id=account.id, path=path, name=name, delimiter=delimiter, special_use=special_use)
        db.add(folder)
    else:
        folder.name = name
        folder.delimiter = delimiter
        folder.special_use = special_use
    db.flush()
    return folder


def list_folders(db: Session, account: models.EmailAccount) -> List[models.EmailFolder]:
    return (
        db.query(models.EmailFolder)
        .filter(models.EmailFolder.account_id == account.id)
        .order_by(models.EmailFolder.path.asc())
        .all()
    )


def get_folder(db: Session, account: models.EmailAccount, folder_id: uuid.UUID) -> Optional[models.EmailFolder]:
    return (
        db.query(models.EmailFolder)
        .filter(models.EmailFolder.account_id == account.id, models.EmailFolder.id == folder_id)
        .first()
    )


def upsert_message(db: Session, account: models.EmailAccount, folder: models.EmailFolder, data: Dict) -> bool:
    """Insert a synced message or refresh the flags of a known one. Returns True when inserted."""
    existing = (
        db.query(models.EmailMessage)
        .filter(models.EmailMessage.account_id == account.id, models.EmailMessage.message_id == data["message_id"])
        .first()
    )
    flags = list(data.get("flags") or [])
    if existing is not None:
        existing.flags = flags
        existing.is_read = "\\Seen" in flags
        existing.is_flagged = "\\Flagged" in flags
        existing.uid = data["uid"]
        existing.folder_id = folder.id
        return False
    db.add(models.EmailMessage(
        account_id=account.id,
        folder_id=folder.id,
        message_id=data["message_id"],
        uid=data["uid"],
        subject=data.get("subject"),
        from_address=data.get("from_address"),
        to_addresses=data.get("to_addresses"),
        cc_addresses=data.get("cc_addresses"),
        date=data.get("date"),
        size=data.get("size"),
        flags=flags,
        is_read="\\Seen" in flags,
        is_flagged="\\Flagged" in flags,
        in_reply_to=data.get("in_reply_to"),
        text_content=data.get("text_content"),
        html_content=data.get("html_content"),
    ))
    db.flush()
    return True


def refresh_folder_counters(db: Session, folder: models.EmailFolder) -> None:
    query = db.query(models.EmailMessage).filter(
        models.EmailMessage.folder_id == folder.id,
        models.EmailMessage.is_deleted.is_(False),
    )
    folder.total_messages = query.count()
    folder.unread_messages = query.filter(models.EmailMessage.is_read.is_(False)).count()


def mark_synced(db: Session, account: models.EmailAccount, *, error: Optional[str] = None) -> None:
    if error is None:
        account.last_sync_at = _now()
    account.last_sync_error = error
    db.commit()


def list_messages(
    db: Session,
    account: models.EmailAccount,
    *,
    folder_id: Optional[uuid.UUID] = None,
    unread_only: bool = False,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[models.EmailMessage], int]:
    query = db.query(models.EmailMessage).filter(
        models.EmailMessage.account_id == account.id,
        models.EmailMessage.is_deleted.is_(False),
    )
    if folder_id:
        query = query.filter(models.EmailMessage.folder_id == folder_id)
    if unread_only:
        query = query.filter(models.EmailMessage.is_read.is_(False))
    if search:
        query = query.filter(models.EmailMessage.subject.ilike(f"%{search.strip()}%"))
    total = query.count()
    items = query.order_by(models.EmailMessage.date.desc()).offset(skip).limit(limit).all()
    return items, total


def get_message(db: Session, account: models.EmailAccount, message_id: uuid.UUID) -> Optional[models.EmailMessage]:
    return (
        db.query(models.EmailMessage)
        .filter(models.EmailMessage.account_id == account.id, models.EmailMessage.id == message_id)
        .first()
    )


def set_read(db: Session, message: models.EmailMessage, is_read: bool = True) -> models.EmailMessage:
    message.is_read = is_read
    flags = [f for f in (message.flags or []) if f != "\\Seen"]
    if is_read:
        flags.append("\\Seen")
    message.flags = flags
    folder = db.query(models.EmailFolder).filter(models.EmailFolder.id == message.folder_id).first()
    if folder is not None:
        db.flush()
        refresh_folder_counters(db, folder)
    db.commit()
    db.refresh(message)
    return message


def find_special_folder(db: Session, account: models.EmailAccount, special_use: str) -> Optional[models.EmailFolder]:
    return (
        db.query(models.EmailFolder)
        .filter(models.EmailFolder.account_id == account.id, models.EmailFolder.special_use == special_use)
        .first()
    )


def move_message(db: Session, message: models.EmailMessage, target: models.EmailFolder) -> models.EmailMessage:
    source = db.query(models.EmailFolder).filter(models.EmailFolder.id == message.folder_id).first()
    message.folder_id = target.id
    db.flush()
    for folder in (source, target):
        if folder is not None:
            refresh_folder_counters(db, folder)
    db.commit()
    db.refresh(message)
    return message


def mark_deleted(db: Session, message: models.EmailMessage) -> None:
    message.is_deleted = True
    flags = [f for f in (message.flags or []) if f != "\\Deleted"]
    message.flags = flags + ["\\Deleted"]
    folder = db.query(models.EmailFolder).filter(models.EmailFolder.id == message.folder_id).first()
    db.flush()
    if folder is not None:
        refresh_folder_counters(db, folder)
    db.commit()
