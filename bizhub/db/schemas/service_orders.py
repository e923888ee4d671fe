import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .common import PRIORITIES, check_choice, check_length

ORDER_STATUSES = (
    "DRAFT",
    "AWAITING_APPROVAL",
    "AWAITING_CUSTOMER_APPROVAL",
    "QUOTE_SENT",
    "APPROVED",
    "REJECTED",
    "IN_PROGRESS",
    "PAUSED",
    "COMPLETED",
    "CANCELLED",
)
QUOTE_STATUSES = ("DRAFT", "SENT", "APPROVED", "REJECTED", "EXPIRED", "CANCELLED")
QUOTE_ITEM_KINDS = ("MATERIAL", "SERVICE", "LABOR")
REPORT_STATUSES = ("DRAFT", "COMPLETED")
REPORT_ITEM_KINDS = ("DIAGNOSIS", "SOLUTION", "RECOMMENDATION", "NOTE")


def _non_negative(v, field):
    if v is not None and v < 0:
        raise ValueError(f"{field} must be >= 0")
    return v


class ServiceOrderItemCreate(BaseModel):
    description: str
    quantity: float = 1
    unit_price: float = 0
    notes: Optional[str] = None

    @field_validator("description")
    @classmethod
    def _description(cls, v: str):
        return check_length(v, "description", 1, 500)

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: float):
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @field_validator("unit_price")
    @classmethod
    def _price(cls, v: float):
        return _non_negative(v, "unit_price")


class ServiceOrderItem(ServiceOrderItemCreate):
    id: uuid.UUID
    total: float
    model_config = ConfigDict(from_attributes=True)


class ServiceOrderHistory(BaseModel):
    id: uuid.UUID
    action: str
    description: Optional[str] = None
    collaborator_id: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ServiceOrderCreate(BaseModel):
    title: str
    description: str
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    priority: str = "MEDIUM"
    notes: Optional[str] = None
    client_id: uuid.UUID
    assignee_id: Optional[uuid.UUID] = None
    items: List[ServiceOrderItemCreate] = []

    @field_validator("title")
    @classmethod
    def _title(cls, v: str):
        return check_length(v, "title", 1, 255)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str):
        return check_length(v, "description", 1, 10000)

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str):
        return check_choice(v, "priority", PRIORITIES)


class ServiceOrderUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    notes: Optional[str] = None
    assignee_id: Optional[uuid.UUID] = None
    items: Optional[List[ServiceOrderItemCreate]] = None

    @field_validator("status")
    @classmethod
    def _status(cls, v: Optional[str]):
        return check_choice(v, "status", ORDER_STATUSES)

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: Optional[str]):
        return check_choice(v, "priority", PRIORITIES)


class ServiceOrder(BaseModel):
    id: uuid.UUID
    number: str
    title: str
    description: str
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    quote_value: Optional[float] = None
    final_value: float
    status: str
    priority: str
    notes: Optional[str] = None
    client_id: uuid.UUID
    assignee_id: Optional[uuid.UUID] = None
    created_by_id: uuid.UUID
    items: List[ServiceOrderItem] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ServiceOrderDetail(ServiceOrder):
    history: List[ServiceOrderHistory] = []


class PaginatedServiceOrders(BaseModel):
    items: List[ServiceOrder]
    total_items: int
    total_pages: int
    page: int
    limit: int


class QuoteItemCreate(BaseModel):
    kind: str = "SERVICE"
    description: str
    quantity: float = 1
    unit: Optional[str] = None
    unit_price: float = 0

    @field_validator("kind")
    @classmethod
    def _kind(cls, v: str):
        return check_choice(v, "kind", QUOTE_ITEM_KINDS)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str):
        return check_length(v, "description", 1, 500)

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: float):
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @field_validator("unit_price")
    @classmethod
    def _price(cls, v: float):
        return _non_negative(v, "unit_price")


class QuoteItem(QuoteItemCreate):
    id: uuid.UUID
    total: float
    position: int
    model_config = ConfigDict(from_attributes=True)


class QuoteHistory(BaseModel):
    id: uuid.UUID
    action: str
    description: Optional[str] = None
    collaborator_id: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class QuoteCreate(BaseModel):
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    service_order_id: uuid.UUID
    discount: float = 0
    validity_days: int = 30
    items: List[QuoteItemCreate]

    @field_validator("title")
    @classmethod
    def _title(cls, v: str):
        return check_length(v, "title", 1, 255)

    @field_validator("discount")
    @classmethod
    def _discount(cls, v: float):
        return _non_negative(v, "discount")

    @field_validator("validity_days")
    @classmethod
    def _validity(cls, v: int):
        if v < 1:
            raise ValueError("validity_days must be positive")
        return v

    @field_validator("items")
    @classmethod
    def _items(cls, v: List[QuoteItemCreate]):
        if not v:
            raise ValueError("At least one item is required")
        return v


class QuoteUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _status(cls, v: Optional[str]):
        return check_choice(v, "status", QUOTE_STATUSES)


class QuoteDecision(BaseModel):
    approved: bool
    comments: Optional[str] = None


class Quote(BaseModel):
    id: uuid.UUID
    number: str
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    service_order_id: uuid.UUID
    created_by_id: uuid.UUID
    subtotal: float
    discount: float
    total: float
    valid_until: Optional[datetime] = None
    status: str
    approved_by_customer: Optional[bool] = None
    decided_at: Optional[datetime] = None
    customer_comments: Optional[str] = None
    technical_report_id: Optional[uuid.UUID] = None
    auto_generated: bool = False
    items: List[QuoteItem] = []
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class QuoteDetail(Quote):
    history: List[QuoteHistory] = []


class PaginatedQuotes(BaseModel):
    items: List[Quote]
    total_items: int
    total_pages: int
    page: int
    limit: int


class QuoteGenerate(BaseModel):
    """Build a quote from a service order's items or from a completed technical report."""
    service_order_id: Optional[uuid.UUID] = None
    technical_report_id: Optional[uuid.UUID] = None
    title: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    validity_days: int = 30
    margin_percent: float = 20
    preview: bool = False

    @field_validator("margin_percent")
    @classmethod
    def _margin(cls, v: float):
        if v < 0 or v > 100:
            raise ValueError("margin_percent must be between 0 and 100")
        return v

    @field_validator("validity_days")
    @classmethod
    def _validity(cls, v: int):
        if v < 1:
            raise ValueError("validity_days must be positive")
        return v

    @model_validator(mode="after")
    def _source(self):
        if self.service_order_id is None and self.technical_report_id is None:
            raise ValueError("service_order_id or technical_report_id is required")
        return self


class QuotePreviewItem(BaseModel):
    kind: str
    description: str
    quantity: float
    unit_price: float
    total: float


class QuotePreview(BaseModel):
    items: List[QuotePreviewItem]
    total: float
    margin_percent: float
    service_order_number: str
    service_order_title: str
    service_order_status: str


# Technical reports

class TechnicalReportItemCreate(BaseModel):
    kind: str
    description: str
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total: Optional[float] = None

    @field_validator("kind")
    @classmethod
    def _kind(cls, v: str):
        return check_choice(v, "kind", REPORT_ITEM_KINDS)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str):
        return check_length(v, "description", 1, 500)

    @field_validator("quantity", "unit_price", "total")
    @classmethod
    def _amounts(cls, v: Optional[float], info):
        return _non_negative(v, info.field_name)


class TechnicalReportItem(TechnicalReportItemCreate):
    id: uuid.UUID
    position: int
    model_config = ConfigDict(from_attributes=True)


class TechnicalReportHistory(BaseModel):
    id: uuid.UUID
    action: str
    description: Optional[str] = None
    collaborator_id: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TechnicalReportUpdate(BaseModel):
    diagnosis: str
    recommended_solution: str
    notes: Optional[str] = None
    generate_quote: bool = False
    items: List[TechnicalReportItemCreate] = []

    @field_validator("diagnosis", "recommended_solution")
    @classmethod
    def _required_text(cls, v: str, info):
        return check_length(v, info.field_name, 1, 10000)


class TechnicalReportCreate(TechnicalReportUpdate):
    technician_id: uuid.UUID


class TechnicalReport(BaseModel):
    id: uuid.UUID
    service_order_id: uuid.UUID
    technician_id: uuid.UUID
    diagnosis: str
    recommended_solution: str
    notes: Optional[str] = None
    status: str
    generate_quote: bool
    quote_total: Optional[float] = None
    completed_at: Optional[datetime] = None
    items: List[TechnicalReportItem] = []
    history: List[TechnicalReportHistory] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
