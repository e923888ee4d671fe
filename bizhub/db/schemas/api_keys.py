import uuid
from datetime import date, datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from bizhub.utils.permission_catalog import is_known


def _validate_permissions(v: Optional[List[str]]):
    if v is None:
        return None
    cleaned = []
    for p in v:
        name = (p or "").strip().lower()
        if not is_known(name):
            raise ValueError(f"Invalid permission: {p}")
        if name not in cleaned:
            cleaned.append(name)
    return cleaned


class ApiKeyCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    permissions: List[str]
    expires_at: Optional[datetime] = None
    rate_limit: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        v = (v or "").strip()
        if not v or len(v) > 100:
            raise ValueError("name must be 1..100 characters")
        return v

    @field_validator("permissions")
    @classmethod
    def _permissions(cls, v: List[str]):
        cleaned = _validate_permissions(v)
        if not cleaned:
            raise ValueError("At least one permission is required")
        return cleaned

    @field_validator("rate_limit")
    @classmethod
    def _rate_limit(cls, v: Optional[int]):
        if v is not None and v < 1:
            raise ValueError("rate_limit must be positive")
        return v


class ApiKeyUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None
    rate_limit: Optional[int] = None

    @field_validator("permissions")
    @classmethod
    def _permissions(cls, v: Optional[List[str]]):
        cleaned = _validate_permissions(v)
        if cleaned is not None and not cleaned:
            raise ValueError("At least one permission is required")
        return cleaned


class ApiKeyResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    permissions: List[str]
    is_active: bool
    rate_limit: Optional[int] = None
    prefix: Optional[str] = None
    last_four: Optional[str] = None
    created_by_user_id: Optional[uuid.UUID] = None
    created_at: datetime
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ApiKeyCreateResponse(ApiKeyResponse):
    key: str  # shown once


class ApiKeyStats(BaseModel):
    total_requests: int
    success_requests: int
    failed_requests: int
    average_response_time_ms: float
    requests_by_day: Dict[str, int]
    requests_by_endpoint: Dict[str, int]
    requests_by_status: Dict[str, int]


class ApiLog(BaseModel):
    id: uuid.UUID
    api_key_id: uuid.UUID
    endpoint: str
    method: str
    status_code: int
    response_time_ms: int
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PaginatedApiLogs(BaseModel):
    items: List[ApiLog]
    total_items: int
    total_pages: int
    page: int
    limit: int
