import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Integer, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class WebhookConfig(Base):
    __tablename__ = 'webhook_configs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    url = Column(Text, nullable=False)
    events = Column(JSONB, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    secret = Column(Text, nullable=True)
    headers = Column(JSONB, nullable=True)
    last_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class WebhookLog(Base):
    __tablename__ = 'webhook_logs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    webhook_id = Column(UUID(as_uuid=True), ForeignKey('webhook_configs.id', ondelete='CASCADE'), nullable=False)
    event = Column(String(100), nullable=False)
    success = Column(Boolean, nullable=False)
    status_code = Column(Integer, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)
    is_test = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_webhook_logs_webhook_created', 'webhook_id', 'created_at'),
    )
