import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class EmailAccount(Base):
    __tablename__ = 'email_accounts'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    collaborator_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='CASCADE'), nullable=False, unique=True)
    email = Column(String, nullable=False)
    username = Column(String, nullable=True)
    # Fernet token; decrypted only when connecting
    password_encrypted = Column(Text, nullable=False)
    imap_host = Column(String, nullable=False)
    imap_port = Column(Integer, nullable=False, default=993)
    imap_secure = Column(Boolean, nullable=False, default=True)
    smtp_host = Column(String, nullable=False)
    smtp_port = Column(Integer, nullable=False, default=587)
    smtp_secure = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    last_sync_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    folders = relationship("EmailFolder", back_populates="account", cascade="all, delete-orphan")


class EmailFolder(Base):
    __tablename__ = 'email_folders'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(UUID(as_uuid=True), ForeignKey('email_accounts.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    path = Column(String(500), nullable=False)
    delimiter = Column(String(5), nullable=True)
    special_use = Column(String(30), nullable=True)
    total_messages = Column(Integer, nullable=False, default=0)
    unread_messages = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    account = relationship("EmailAccount", back_populates="folders")

    __table_args__ = (
        UniqueConstraint('account_id', 'path', name='uq_email_folders_account_path'),
    )


class EmailMessage(Base):
    __tablename__ = 'email_messages'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(UUID(as_uuid=True), ForeignKey('email_accounts.id', ondelete='CASCADE'), nullable=False)
    folder_id = Column(UUID(as_uuid=True), ForeignKey('email_folders.id', ondelete='CASCADE'), nullable=False)
    message_id = Column(String(500), nullable=False)
    uid = Column(Integer, nullable=False)
    subject = Column(Text, nullable=True)
    from_address = Column(JSONB, nullable=True)
    to_addresses = Column(JSONB, nullable=True)
    cc_addresses = Column(JSONB, nullable=True)
    date = Column(DateTime(timezone=True), nullable=True)
    size = Column(Integer, nullable=True)
    flags = Column(JSONB, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    is_flagged = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    in_reply_to = Column(String(500), nullable=True)
    text_content = Column(Text, nullable=True)
    html_content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint('account_id', 'message_id', name='uq_email_messages_account_message'),
        Index('idx_email_messages_folder_date', 'folder_id', 'date'),
    )
