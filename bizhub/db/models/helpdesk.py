import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Text, CheckConstraint, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Department(Base):
    __tablename__ = 'helpdesk_departments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    email = Column(String, nullable=True)
    group_id = Column(UUID(as_uuid=True), ForeignKey('hierarchy_groups.id', ondelete='SET NULL'), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class Ticket(Base):
    __tablename__ = 'helpdesk_tickets'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    number = Column(String(20), nullable=False, unique=True)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String(10), nullable=False, default='MEDIUM')
    status = Column(String(20), nullable=False, default='OPEN')
    requester_name = Column(String(100), nullable=False)
    requester_email = Column(String, nullable=False)
    requester_phone = Column(String(20), nullable=True)
    department_id = Column(UUID(as_uuid=True), ForeignKey('helpdesk_departments.id'), nullable=False)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id', ondelete='SET NULL'), nullable=True)
    assignee_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    opened_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    last_reply_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    department = relationship("Department")
    messages = relationship("TicketMessage", back_populates="ticket", cascade="all, delete-orphan", order_by="TicketMessage.created_at")
    logs = relationship("TicketLog", back_populates="ticket", cascade="all, delete-orphan", order_by="TicketLog.created_at")
    observers = relationship("TicketObserver", back_populates="ticket", cascade="all, delete-orphan", order_by="TicketObserver.created_at")

    __table_args__ = (
        Index('idx_helpdesk_tickets_status', 'status'),
        Index('idx_helpdesk_tickets_department_id', 'department_id'),
        CheckConstraint("status in ('OPEN','IN_PROGRESS','WAITING_CUSTOMER','RESOLVED','CLOSED')", name='ck_helpdesk_tickets_status'),
    )


class TicketMessage(Base):
    __tablename__ = 'helpdesk_messages'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ticket_id = Column(UUID(as_uuid=True), ForeignKey('helpdesk_tickets.id', ondelete='CASCADE'), nullable=False)
    content = Column(Text, nullable=False)
    content_type = Column(String(10), nullable=False, default='TEXT')
    sender_name = Column(String(100), nullable=True)
    sender_email = Column(String, nullable=True)
    is_internal = Column(Boolean, nullable=False, default=False)
    author_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    ticket = relationship("Ticket", back_populates="messages")


class TicketLog(Base):
    __tablename__ = 'helpdesk_ticket_logs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ticket_id = Column(UUID(as_uuid=True), ForeignKey('helpdesk_tickets.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(50), nullable=False)
    field = Column(String(50), nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    actor_name = Column(String(100), nullable=True)
    actor_id = Column(UUID(as_uuid=True), nullable=True)
    metadata_json = Column('metadata', JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    ticket = relationship("Ticket", back_populates="logs")


class TicketObserver(Base):
    """Extra address kept informed about a ticket; linked to a collaborator when the email matches one."""
    __tablename__ = 'helpdesk_ticket_observers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ticket_id = Column(UUID(as_uuid=True), ForeignKey('helpdesk_tickets.id', ondelete='CASCADE'), nullable=False)
    email = Column(String, nullable=False)
    name = Column(String(100), nullable=True)
    collaborator_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    added_by_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    ticket = relationship("Ticket", back_populates="observers")

    __table_args__ = (
        UniqueConstraint('ticket_id', 'email', name='uq_helpdesk_ticket_observers_ticket_email'),
    )
