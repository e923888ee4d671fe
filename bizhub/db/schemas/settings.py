import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator


class SettingUpsert(BaseModel):
    value: Optional[str] = None
    description: Optional[str] = None


class Setting(BaseModel):
    key: str
    value: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SystemModuleUpdate(BaseModel):
    title: Optional[str] = None
    is_active: Optional[bool] = None
    icon: Optional[str] = None
    order: Optional[int] = None

    @field_validator("order")
    @classmethod
    def _order(cls, v: Optional[int]):
        if v is not None and v < 0:
            raise ValueError("order must be >= 0")
        return v


class SystemModule(BaseModel):
    id: uuid.UUID
    name: str
    title: str
    is_active: bool
    is_core: bool
    icon: Optional[str] = None
    order: int
    route: Optional[str] = None
    category: Optional[str] = None
    permission: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)
