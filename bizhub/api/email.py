"""
Webmail endpoints: the collaborator's mailbox account, sync, folders,
messages and outgoing mail.
"""
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bizhub.api.deps import page_params, require_collaborator, require_permission
from bizhub.db import models, schemas
from bizhub.db.database import get_db
from bizhub.db.repositories import email as email_repo
from bizhub.services.email_service import EmailService, EmailServiceConfig
from bizhub.services.email_sync_service import EmailSyncService, sync_account
from bizhub.utils.pagination import page_payload
from bizhub.utils.secrets_box import EncryptionKeyMissing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["email"])


def _own_account(db: Session, current_user) -> models.EmailAccount:
    account = email_repo.get_account_for(db, require_collaborator(current_user))
    if not account:
        raise HTTPException(status_code=404, detail="Email account not configured")
    return account


def _account_service(account: models.EmailAccount, from_name: Optional[str]) -> EmailService:
    try:
        password = email_repo.account_password(account)
    except (EncryptionKeyMissing, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return EmailService(EmailServiceConfig.for_account(account, password, from_name=from_name))


def _own_message(db: Session, account: models.EmailAccount, message_id: uuid.UUID) -> models.EmailMessage:
    message = email_repo.get_message(db, account, message_id)
    if not message or message.is_deleted:
        raise HTTPException(status_code=404, detail="Message not found")
    return message


@router.get("/account", response_model=schemas.EmailAccount)
def get_account(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.read")),
):
    _user, current_user = user_context
    return _own_account(db, current_user)


@router.post("/account", response_model=schemas.EmailAccount, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: schemas.EmailAccountCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.write")),
):
    _user, current_user = user_context
    try:
        return email_repo.create_account(db, payload, collaborator_id=require_collaborator(current_user))
    except (EncryptionKeyMissing, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.put("/account", response_model=schemas.EmailAccount)
def update_account(
    payload: schemas.EmailAccountUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.write")),
):
    _user, current_user = user_context
    account = _own_account(db, current_user)
    try:
        return email_repo.update_account(db, account, payload)
    except (EncryptionKeyMissing, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.delete")),
):
    _user, current_user = user_context
    email_repo.delete_account(db, _own_account(db, current_user))
    return None


@router.post("/account/test")
async def test_account(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.read")),
):
    """Check SMTP connectivity with the stored credentials."""
    _user, current_user = user_context
    account = _own_account(db, current_user)
    return await _account_service(account, current_user.get("name")).test_connection()


@router.post("/sync", response_model=schemas.SyncResult)
def sync(
    payload: Optional[schemas.SyncRequest] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.read")),
):
    _user, current_user = user_context
    request = payload or schemas.SyncRequest()
    account = _own_account(db, current_user)
    return sync_account(db, account, folder=request.folder, limit=request.limit)


@router.get("/folders", response_model=List[schemas.EmailFolder])
def list_folders(
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.read")),
):
    _user, current_user = user_context
    return email_repo.list_folders(db, _own_account(db, current_user))


@router.get("/messages", response_model=schemas.PaginatedEmailMessages)
def list_messages(
    folder_id: Optional[uuid.UUID] = None,
    unread_only: bool = False,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.read")),
):
    _user, current_user = user_context
    account = _own_account(db, current_user)
    if folder_id and not email_repo.get_folder(db, account, folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")
    page, limit, skip = page_params(page, limit)
    items, total = email_repo.list_messages(
        db,
        account,
        folder_id=folder_id,
        unread_only=unread_only,
        search=search,
        skip=skip,
        limit=limit,
    )
    return page_payload(items, total, page, limit)


@router.get("/messages/{message_id}", response_model=schemas.EmailMessage)
def get_message(
    message_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.read")),
):
    _user, current_user = user_context
    return _own_message(db, _own_account(db, current_user), message_id)


@router.post("/messages/{message_id}/read", response_model=schemas.EmailMessage)
def mark_read(
    message_id: uuid.UUID,
    is_read: bool = True,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.write")),
):
    _user, current_user = user_context
    message = _own_message(db, _own_account(db, current_user), message_id)
    return email_repo.set_read(db, message, is_read)


@router.post("/messages/{message_id}/move", response_model=schemas.EmailMessage)
def move_message(
    message_id: uuid.UUID,
    payload: schemas.MoveMessageRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.write")),
):
    """Move a message to another folder; the IMAP side is best effort."""
    _user, current_user = user_context
    account = _own_account(db, current_user)
    message = _own_message(db, account, message_id)
    target = email_repo.get_folder(db, account, payload.folder_id)
    if not target:
        raise HTTPException(status_code=404, detail="Folder not found")
    if target.id == message.folder_id:
        raise HTTPException(status_code=400, detail="Message is already in this folder")
    source = email_repo.get_folder(db, account, message.folder_id)
    if source is not None:
        EmailSyncService(db, account).move_remote(source.path, message.uid, target.path)
    return email_repo.move_message(db, message, target)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    message_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.delete")),
):
    """Move to Trash; messages already in Trash (or accounts without one) are deleted."""
    _user, current_user = user_context
    account = _own_account(db, current_user)
    message = _own_message(db, account, message_id)
    source = email_repo.get_folder(db, account, message.folder_id)
    trash = email_repo.find_special_folder(db, account, "\\Trash")
    service = EmailSyncService(db, account)
    if trash is not None and trash.id != message.folder_id:
        if source is not None:
            service.move_remote(source.path, message.uid, trash.path)
        email_repo.move_message(db, message, trash)
    else:
        if source is not None:
            service.delete_remote(source.path, message.uid)
        email_repo.mark_deleted(db, message)
    return None


@router.post("/send")
async def send(
    payload: schemas.SendEmailRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_permission("email.write")),
):
    _user, current_user = user_context
    if not payload.html and not payload.text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message body is required")
    account = _own_account(db, current_user)
    service = _account_service(account, current_user.get("name"))
    result = await service.send_email(
        payload.to,
        payload.subject,
        html_content=payload.html,
        text_content=payload.text,
        cc=payload.cc or None,
        in_reply_to=payload.in_reply_to,
    )
    if not result.get("success"):
        logger.warning("email_send_failed account=%s error=%s", account.id, result.get("error"))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.get("error") or "Failed to send email")
    return {"success": True, "message_id": result.get("message_id")}
