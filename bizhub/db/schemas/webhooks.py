import uuid
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

WEBHOOK_EVENTS = (
    "client.created",
    "client.updated",
    "client.deleted",
    "collaborator.created",
    "collaborator.updated",
    "collaborator.deleted",
    "user.created",
    "user.updated",
    "user.deleted",
    "task.created",
    "task.status_changed",
    "ticket.created",
    "purchase.approved",
    "quote.approved",
    "system.error",
)


def _events(v: Optional[List[str]]):
    if v is None:
        return None
    cleaned = []
    for e in v:
        e = (e or "").strip()
        if e not in WEBHOOK_EVENTS:
            raise ValueError(f"Unknown event: {e}")
        if e not in cleaned:
            cleaned.append(e)
    if not cleaned:
        raise ValueError("At least one event is required")
    return cleaned


def _url(v: Optional[str]):
    if v is None:
        return None
    v = v.strip()
    if not (v.startswith("http://") or v.startswith("https://")):
        raise ValueError("url must start with http:// or https://")
    return v


class WebhookBase(BaseModel):
    name: str
    url: str
    events: List[str]
    is_active: bool = True
    headers: Optional[Dict[str, str]] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        v = (v or "").strip()
        if not v or len(v) > 100:
            raise ValueError("name must be 1..100 characters")
        return v

    @field_validator("url")
    @classmethod
    def _url(cls, v: str):
        return _url(v)

    @field_validator("events")
    @classmethod
    def _events(cls, v: List[str]):
        return _events(v)


class WebhookCreate(WebhookBase):
    secret: Optional[str] = None


class WebhookUpdate(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
    events: Optional[List[str]] = None
    is_active: Optional[bool] = None
    secret: Optional[str] = None
    headers: Optional[Dict[str, str]] = None

    @field_validator("url")
    @classmethod
    def _url(cls, v: Optional[str]):
        return _url(v)

    @field_validator("events")
    @classmethod
    def _events(cls, v: Optional[List[str]]):
        return _events(v)


class Webhook(WebhookBase):
    id: uuid.UUID
    has_secret: bool = False
    last_sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class WebhookLog(BaseModel):
    id: uuid.UUID
    webhook_id: uuid.UUID
    event: str
    success: bool
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    error: Optional[str] = None
    is_test: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PaginatedWebhookLogs(BaseModel):
    items: List[WebhookLog]
    total_items: int
    total_pages: int
    page: int
    limit: int


class WebhookDeliveryResult(BaseModel):
    webhook_id: uuid.UUID
    success: bool
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    error: Optional[str] = None
