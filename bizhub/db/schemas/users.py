import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .common import check_email, check_length


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str):
        return (v or "").strip().lower()


class UserBase(BaseModel):
    email: str
    name: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str):
        return check_email(v)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 100)


class UserCreate(UserBase):
    password: str
    is_active: bool = True
    collaborator_id: Optional[uuid.UUID] = None

    @field_validator("password")
    @classmethod
    def _password(cls, v: str):
        if not v or len(v) < 8:
            raise ValueError("password must be at least 8 characters")
        return v


class UserUpdate(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None
    collaborator_id: Optional[uuid.UUID] = None
    password: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]):
        return check_length(v, "name", 2, 100)

    @field_validator("password")
    @classmethod
    def _password(cls, v: Optional[str]):
        if v is not None and len(v) < 8:
            raise ValueError("password must be at least 8 characters")
        return v


class User(UserBase):
    id: uuid.UUID
    is_active: bool
    collaborator_id: Optional[uuid.UUID] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PaginatedUsers(BaseModel):
    items: List[User]
    total_items: int
    total_pages: int
    page: int
    limit: int


class LoginResponse(BaseModel):
    token: str
    expires_at: datetime
    user: User
