import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from .common import check_length


class CostCenterBase(BaseModel):
    code: str
    name: str
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _code(cls, v: str):
        return check_length(v, "code", 1, 20)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 100)


class CostCenterCreate(CostCenterBase):
    pass


class CostCenter(CostCenterBase):
    id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class ProductBase(BaseModel):
    code: str
    name: str
    unit: str = "UN"
    price: Optional[float] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _code(cls, v: str):
        return check_length(v, "code", 1, 50)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str):
        return check_length(v, "name", 2, 200)


class ProductCreate(ProductBase):
    pass


class Product(ProductBase):
    id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class PurchaseRequestItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int
    estimated_value: float = 0
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: int):
        if v < 1:
            raise ValueError("quantity must be >= 1")
        return v

    @field_validator("estimated_value")
    @classmethod
    def _value(cls, v: float):
        if v < 0:
            raise ValueError("estimated_value must be >= 0")
        return v


class PurchaseRequestItem(PurchaseRequestItemCreate):
    id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class PurchaseRequestCreate(BaseModel):
    description: str
    justification: str
    cost_center_id: uuid.UUID
    deadline: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[PurchaseRequestItemCreate]

    @field_validator("description")
    @classmethod
    def _description(cls, v: str):
        return check_length(v, "description", 1, 2000)

    @field_validator("justification")
    @classmethod
    def _justification(cls, v: str):
        return check_length(v, "justification", 1, 2000)

    @field_validator("items")
    @classmethod
    def _items(cls, v: List[PurchaseRequestItemCreate]):
        if not v:
            raise ValueError("At least one item is required")
        return v


class ApprovalRequest(BaseModel):
    approved: bool
    notes: Optional[str] = None


class QuotationItem(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    reference_value: float
    model_config = ConfigDict(from_attributes=True)


class Quotation(BaseModel):
    id: uuid.UUID
    number: str
    request_id: uuid.UUID
    status: str
    reference_value: float
    deadline: Optional[datetime] = None
    items: List[QuotationItem] = []
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PurchaseRequest(BaseModel):
    id: uuid.UUID
    description: str
    justification: str
    cost_center_id: uuid.UUID
    deadline: Optional[datetime] = None
    notes: Optional[str] = None
    status: str
    requester_id: Optional[uuid.UUID] = None
    approver_id: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None
    items: List[PurchaseRequestItem] = []
    quotations: List[Quotation] = []
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedPurchaseRequests(BaseModel):
    items: List[PurchaseRequest]
    total_items: int
    total_pages: int
    page: int
    limit: int
