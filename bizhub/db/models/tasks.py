import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Integer, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class TaskRecurrence(Base):
    __tablename__ = 'task_recurrences'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kind = Column(String(10), nullable=False)  # DAILY|WEEKLY|MONTHLY|YEARLY
    interval = Column(Integer, nullable=False, default=1)
    weekdays = Column(JSONB, nullable=True)  # 0=Sunday .. 6=Saturday
    day_of_month = Column(Integer, nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    max_occurrences = Column(Integer, nullable=True)
    occurrences_generated = Column(Integer, nullable=False, default=0)
    next_run_at = Column(DateTime(timezone=True), nullable=True)
    last_run_at = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)
    deactivation_reason = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Template copied into every generated task
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(10), nullable=False, default='MEDIUM')
    estimated_minutes = Column(Integer, nullable=True)
    assignee_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id', ondelete='SET NULL'), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    tasks = relationship("Task", back_populates="recurrence")

    __table_args__ = (
        Index('idx_task_recurrences_due', 'is_active', 'next_run_at'),
        CheckConstraint("kind in ('DAILY','WEEKLY','MONTHLY','YEARLY')", name='ck_task_recurrences_kind'),
    )


class Task(Base):
    __tablename__ = 'tasks'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(10), nullable=False, default='MEDIUM')
    status = Column(String(20), nullable=False, default='PENDING')
    due_date = Column(DateTime(timezone=True), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    estimated_minutes = Column(Integer, nullable=True)
    spent_minutes = Column(Integer, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)

    assignee_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id', ondelete='SET NULL'), nullable=True)
    ticket_id = Column(UUID(as_uuid=True), ForeignKey('helpdesk_tickets.id', ondelete='SET NULL'), nullable=True)
    service_order_id = Column(UUID(as_uuid=True), ForeignKey('service_orders.id', ondelete='SET NULL'), nullable=True)
    recurrence_id = Column(UUID(as_uuid=True), ForeignKey('task_recurrences.id', ondelete='SET NULL'), nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    recurrence = relationship("TaskRecurrence", back_populates="tasks")
    comments = relationship("TaskComment", back_populates="task", cascade="all, delete-orphan", order_by="TaskComment.created_at")
    logs = relationship("TaskLog", back_populates="task", cascade="all, delete-orphan", order_by="TaskLog.created_at")
    attachments = relationship("TaskAttachment", back_populates="task", cascade="all, delete-orphan", order_by="TaskAttachment.created_at.desc()")

    __table_args__ = (
        Index('idx_tasks_status', 'status'),
        Index('idx_tasks_assignee_id', 'assignee_id'),
        Index('idx_tasks_due_date', 'due_date'),
        CheckConstraint("priority in ('LOW','MEDIUM','HIGH','URGENT')", name='ck_tasks_priority'),
        CheckConstraint("status in ('PENDING','IN_PROGRESS','WAITING','DONE','CANCELLED')", name='ck_tasks_status'),
    )


class TaskComment(Base):
    __tablename__ = 'task_comments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    author_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    task = relationship("Task", back_populates="comments")


class TaskLog(Base):
    __tablename__ = 'task_logs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    kind = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    actor_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    task = relationship("Task", back_populates="logs")


class TaskAttachment(Base):
    __tablename__ = 'task_attachments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    file_name = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=True)
    size = Column(Integer, nullable=False)
    # Relative to TASK_ATTACHMENTS_DIR
    storage_path = Column(String(500), nullable=False)
    uploaded_by_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    task = relationship("Task", back_populates="attachments")
