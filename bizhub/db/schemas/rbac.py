import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .common import check_email, check_length, check_phone


class PermissionBase(BaseModel):
    name: str
    description: Optional[str] = None
    resource: str
    action: str

    @field_validator("name", "resource", "action")
    @classmethod
    def _not_blank(cls, v: str):
        return check_length(v, "value", 1, 100)


class PermissionCreate(PermissionBase):
    pass


class PermissionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None


class Permission(PermissionBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ProfileBase(BaseModel):
    name: str
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 100)


class ProfileCreate(ProfileBase):
    permission_ids: List[uuid.UUID] = []


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    permission_ids: Optional[List[uuid.UUID]] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]):
        return check_length(v, "name", 2, 100)


class Profile(ProfileBase):
    id: uuid.UUID
    permissions: List[Permission] = []
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class HierarchyGroupBase(BaseModel):
    name: str
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 100)


class HierarchyGroupCreate(HierarchyGroupBase):
    pass


class HierarchyGroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None


class HierarchyGroup(HierarchyGroupBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CollaboratorBase(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None
    is_active: bool = True
    profile_id: Optional[uuid.UUID] = None
    group_id: Optional[uuid.UUID] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 100)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str):
        return check_email(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]):
        return check_phone(v)


class CollaboratorCreate(CollaboratorBase):
    pass


class CollaboratorUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    is_active: Optional[bool] = None
    profile_id: Optional[uuid.UUID] = None
    group_id: Optional[uuid.UUID] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]):
        return check_length(v, "name", 2, 100)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]):
        return check_email(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]):
        return check_phone(v)


class Collaborator(CollaboratorBase):
    id: uuid.UUID
    profile: Optional[Profile] = None
    group: Optional[HierarchyGroup] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedCollaborators(BaseModel):
    items: List[Collaborator]
    total_items: int
    total_pages: int
    page: int
    limit: int
