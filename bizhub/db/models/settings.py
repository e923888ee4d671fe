import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class Setting(Base):
    __tablename__ = 'settings'
    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class SystemModule(Base):
    __tablename__ = 'system_modules'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    title = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_core = Column(Boolean, nullable=False, default=False)
    icon = Column(String(50), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    route = Column(String(100), nullable=True)
    category = Column(String(50), nullable=True)
    permission = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
