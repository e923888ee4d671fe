from typing import Any, Dict, List, Optional
from pydantic import BaseModel, field_validator


class SendMessageRequest(BaseModel):
    phone: str
    message: str

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str):
        digits = "".join(ch for ch in (v or "") if ch.isdigit())
        if len(digits) < 10:
            raise ValueError("phone must contain at least 10 digits")
        return digits

    @field_validator("message")
    @classmethod
    def _message(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("message is required")
        return v


class SessionAction(BaseModel):
    action: str

    @field_validator("action")
    @classmethod
    def _action(cls, v: str):
        v = (v or "").strip().lower()
        if v not in ("start", "stop", "status"):
            raise ValueError("action must be start, stop or status")
        return v


class SessionStatus(BaseModel):
    collaborator_id: str
    status: str
    connected: bool = False
    phone: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None


class ProviderStatus(BaseModel):
    provider: str
    online: bool
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
