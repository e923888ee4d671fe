import uuid
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .common import PRIORITIES, check_choice, check_length

TASK_STATUSES = ("PENDING", "IN_PROGRESS", "WAITING", "DONE", "CANCELLED")
RECURRENCE_KINDS = ("DAILY", "WEEKLY", "MONTHLY", "YEARLY")


def _description(v: Optional[str]):
    if v is not None and len(v) > 5000:
        raise ValueError("description must be at most 5000 characters")
    return v


def _estimated(v: Optional[int]):
    if v is not None and not (1 <= v <= 99999):
        raise ValueError("estimated_minutes must be 1..99999")
    return v


class TaskBase(BaseModel):
    title: str
    description: Optional[str] = None
    priority: str = "MEDIUM"
    status: str = "PENDING"
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    estimated_minutes: Optional[int] = None
    assignee_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    ticket_id: Optional[uuid.UUID] = None
    service_order_id: Optional[uuid.UUID] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str):
        return check_length(v, "title", 1, 255)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]):
        return _description(v)

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str):
        return check_choice(v, "priority", PRIORITIES)

    @field_validator("status")
    @classmethod
    def _status(cls, v: str):
        return check_choice(v, "status", TASK_STATUSES)

    @field_validator("estimated_minutes")
    @classmethod
    def _estimated(cls, v: Optional[int]):
        return _estimated(v)


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    estimated_minutes: Optional[int] = None
    spent_minutes: Optional[int] = None
    assignee_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: Optional[str]):
        return check_length(v, "title", 1, 255)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]):
        return _description(v)

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: Optional[str]):
        return check_choice(v, "priority", PRIORITIES)

    @field_validator("status")
    @classmethod
    def _status(cls, v: Optional[str]):
        return check_choice(v, "status", TASK_STATUSES)

    @field_validator("estimated_minutes")
    @classmethod
    def _estimated(cls, v: Optional[int]):
        return _estimated(v)

    @field_validator("spent_minutes")
    @classmethod
    def _spent(cls, v: Optional[int]):
        if v is not None and v < 0:
            raise ValueError("spent_minutes must be >= 0")
        return v


class TaskComment(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    author_id: Optional[uuid.UUID] = None
    content: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TaskCommentCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _content(cls, v: str):
        return check_length(v, "content", 1, 2000)


class TaskLog(BaseModel):
    id: uuid.UUID
    kind: str
    description: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    actor_id: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class Task(TaskBase):
    id: uuid.UUID
    completed_at: Optional[datetime] = None
    spent_minutes: Optional[int] = None
    is_recurring: bool = False
    recurrence_id: Optional[uuid.UUID] = None
    created_by_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TaskAttachment(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    file_name: str
    content_type: Optional[str] = None
    size: int
    uploaded_by_id: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TaskDetail(Task):
    comments: List[TaskComment] = []
    logs: List[TaskLog] = []
    attachments: List[TaskAttachment] = []


class PaginatedTasks(BaseModel):
    items: List[Task]
    total_items: int
    total_pages: int
    page: int
    limit: int


class TaskStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    overdue: int


class RecurrenceBase(BaseModel):
    kind: str
    interval: int = 1
    weekdays: Optional[List[int]] = None
    day_of_month: Optional[int] = None
    end_date: Optional[datetime] = None
    max_occurrences: Optional[int] = None
    title: str
    description: Optional[str] = None
    priority: str = "MEDIUM"
    estimated_minutes: Optional[int] = None
    assignee_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None

    @field_validator("kind")
    @classmethod
    def _kind(cls, v: str):
        return check_choice(v, "kind", RECURRENCE_KINDS)

    @field_validator("interval")
    @classmethod
    def _interval(cls, v: int):
        if not (1 <= v <= 365):
            raise ValueError("interval must be 1..365")
        return v

    @field_validator("weekdays")
    @classmethod
    def _weekdays(cls, v: Optional[List[int]]):
        if v is None:
            return None
        for d in v:
            if not (0 <= d <= 6):
                raise ValueError("weekdays must be 0 (Sunday)..6 (Saturday)")
        return sorted(set(v))

    @field_validator("day_of_month")
    @classmethod
    def _dom(cls, v: Optional[int]):
        if v is not None and not (1 <= v <= 31):
            raise ValueError("day_of_month must be 1..31")
        return v

    @field_validator("max_occurrences")
    @classmethod
    def _max(cls, v: Optional[int]):
        if v is not None and v < 1:
            raise ValueError("max_occurrences must be positive")
        return v

    @field_validator("title")
    @classmethod
    def _title(cls, v: str):
        return check_length(v, "title", 1, 255)

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str):
        return check_choice(v, "priority", PRIORITIES)


class RecurrenceCreate(RecurrenceBase):
    start_date: Optional[datetime] = None


class Recurrence(RecurrenceBase):
    id: uuid.UUID
    occurrences_generated: int
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None
    deactivation_reason: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RecurrenceStats(BaseModel):
    total: int
    active: int
    inactive: int
    tasks_created: int
    success_rate: float


class RecurrenceRunResult(BaseModel):
    processed: int
    created: int
    deactivated: int
    errors: int
