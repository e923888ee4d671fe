import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .common import PRIORITIES, check_choice, check_email, check_length, check_phone

TICKET_STATUSES = ("OPEN", "IN_PROGRESS", "WAITING_CUSTOMER", "RESOLVED", "CLOSED")
CLOSED_STATUSES = ("RESOLVED", "CLOSED")
CONTENT_TYPES = ("TEXT", "HTML", "MARKDOWN")


class DepartmentBase(BaseModel):
    name: str
    description: Optional[str] = None
    email: Optional[str] = None
    group_id: Optional[uuid.UUID] = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 100)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]):
        return check_email(v) if v else None


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    email: Optional[str] = None
    group_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None


class Department(DepartmentBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TicketCreate(BaseModel):
    subject: str
    description: str
    requester_name: str
    requester_email: str
    requester_phone: Optional[str] = None
    department_id: uuid.UUID
    priority: str
    client_id: Optional[uuid.UUID] = None
    assignee_id: Optional[uuid.UUID] = None

    @field_validator("subject")
    @classmethod
    def _subject(cls, v: str):
        return check_length(v, "subject", 1, 255)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str):
        return check_length(v, "description", 1, 10000)

    @field_validator("requester_name")
    @classmethod
    def _requester_name(cls, v: str):
        return check_length(v, "requester_name", 1, 100)

    @field_validator("requester_email")
    @classmethod
    def _requester_email(cls, v: str):
        return check_email(v)

    @field_validator("requester_phone")
    @classmethod
    def _phone(cls, v: Optional[str]):
        return check_phone(v)

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str):
        return check_choice(v, "priority", PRIORITIES)


class TicketUpdate(BaseModel):
    subject: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    assignee_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: Optional[str]):
        return check_choice(v, "priority", PRIORITIES)

    @field_validator("status")
    @classmethod
    def _status(cls, v: Optional[str]):
        return check_choice(v, "status", TICKET_STATUSES)


class TicketMessageCreate(BaseModel):
    content: str
    content_type: str = "TEXT"
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    is_internal: bool = False

    @field_validator("content")
    @classmethod
    def _content(cls, v: str):
        return check_length(v, "content", 1, 20000)

    @field_validator("content_type")
    @classmethod
    def _content_type(cls, v: str):
        return check_choice(v, "content_type", CONTENT_TYPES)


class TicketMessage(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    content: str
    content_type: str
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    is_internal: bool
    author_id: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TicketLog(BaseModel):
    id: uuid.UUID
    action: str
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    actor_name: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class Ticket(BaseModel):
    id: uuid.UUID
    number: str
    subject: str
    description: str
    priority: str
    status: str
    requester_name: str
    requester_email: str
    requester_phone: Optional[str] = None
    department_id: uuid.UUID
    client_id: Optional[uuid.UUID] = None
    assignee_id: Optional[uuid.UUID] = None
    opened_at: datetime
    closed_at: Optional[datetime] = None
    last_reply_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TicketForward(BaseModel):
    group_id: uuid.UUID
    note: Optional[str] = None

    @field_validator("note")
    @classmethod
    def _note(cls, v: Optional[str]):
        return check_length(v, "note", 0, 2000)


class TicketClientLink(BaseModel):
    client_id: uuid.UUID


class TicketObserverCreate(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str):
        return check_email(v)


class TicketObserver(BaseModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    collaborator_id: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TicketDetail(Ticket):
    department: Optional[Department] = None
    messages: List[TicketMessage] = []
    logs: List[TicketLog] = []
    observers: List[TicketObserver] = []


class PaginatedTickets(BaseModel):
    items: List[Ticket]
    total_items: int
    total_pages: int
    page: int
    limit: int
