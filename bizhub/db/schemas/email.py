import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .common import check_email


class EmailAccountCreate(BaseModel):
    email: str
    username: Optional[str] = None
    password: str
    imap_host: str
    imap_port: int = 993
    imap_secure: bool = True
    smtp_host: str
    smtp_port: int = 587
    smtp_secure: bool = False

    @field_validator("email")
    @classmethod
    def _email(cls, v: str):
        return check_email(v)

    @field_validator("imap_port", "smtp_port")
    @classmethod
    def _port(cls, v: int):
        if not (0 < v < 65536):
            raise ValueError("port must be 1..65535")
        return v


class EmailAccountUpdate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    imap_host: Optional[str] = None
    imap_port: Optional[int] = None
    imap_secure: Optional[bool] = None
    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = None
    smtp_secure: Optional[bool] = None
    is_active: Optional[bool] = None


class EmailAccount(BaseModel):
    id: uuid.UUID
    collaborator_id: uuid.UUID
    email: str
    username: Optional[str] = None
    imap_host: str
    imap_port: int
    imap_secure: bool
    smtp_host: str
    smtp_port: int
    smtp_secure: bool
    is_active: bool
    last_sync_at: Optional[datetime] = None
    last_sync_error: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class EmailFolder(BaseModel):
    id: uuid.UUID
    name: str
    path: str
    special_use: Optional[str] = None
    total_messages: int
    unread_messages: int
    model_config = ConfigDict(from_attributes=True)


class EmailMessage(BaseModel):
    id: uuid.UUID
    folder_id: uuid.UUID
    message_id: str
    uid: int
    subject: Optional[str] = None
    from_address: Optional[Dict[str, Any]] = None
    to_addresses: Optional[List[Dict[str, Any]]] = None
    cc_addresses: Optional[List[Dict[str, Any]]] = None
    date: Optional[datetime] = None
    flags: Optional[List[str]] = None
    is_read: bool
    is_flagged: bool
    text_content: Optional[str] = None
    html_content: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class MoveMessageRequest(BaseModel):
    folder_id: uuid.UUID


class PaginatedEmailMessages(BaseModel):
    items: List[EmailMessage]
    total_items: int
    total_pages: int
    page: int
    limit: int


class SendEmailRequest(BaseModel):
    to: List[str]
    cc: List[str] = []
    subject: str
    html: Optional[str] = None
    text: Optional[str] = None
    in_reply_to: Optional[str] = None

    @field_validator("to")
    @classmethod
    def _to(cls, v: List[str]):
        if not v:
            raise ValueError("At least one recipient is required")
        return [check_email(a) for a in v]

    @field_validator("cc")
    @classmethod
    def _cc(cls, v: List[str]):
        return [check_email(a) for a in v]


class SyncRequest(BaseModel):
    folder: str = "INBOX"
    limit: int = 50


class SyncResult(BaseModel):
    success: bool
    folders: int = 0
    new_messages: int = 0
    updated_messages: int = 0
    error: Optional[str] = None
