import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Integer, Numeric, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class CostCenter(Base):
    __tablename__ = 'cost_centers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(20), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)


class Product(Base):
    __tablename__ = 'products'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    unit = Column(String(10), nullable=False, default='UN')
    price = Column(Numeric(14, 2, asdecimal=False), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)


class PurchaseRequest(Base):
    __tablename__ = 'purchase_requests'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    description = Column(Text, nullable=False)
    justification = Column(Text, nullable=False)
    cost_center_id = Column(UUID(as_uuid=True), ForeignKey('cost_centers.id'), nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='PENDING')
    requester_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    approver_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    cost_center = relationship("CostCenter")
    items = relationship("PurchaseRequestItem", back_populates="request", cascade="all, delete-orphan")
    quotations = relationship("Quotation", back_populates="request", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("status in ('PENDING','APPROVED','REJECTED')", name='ck_purchase_requests_status'),
    )


class PurchaseRequestItem(Base):
    __tablename__ = 'purchase_request_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(UUID(as_uuid=True), ForeignKey('purchase_requests.id', ondelete='CASCADE'), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    estimated_value = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    request = relationship("PurchaseRequest", back_populates="items")
    product = relationship("Product")


class Quotation(Base):
    __tablename__ = 'quotations'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    number = Column(String(30), nullable=False, unique=True)
    request_id = Column(UUID(as_uuid=True), ForeignKey('purchase_requests.id', ondelete='CASCADE'), nullable=False)
    status = Column(String(20), nullable=False, default='OPEN')
    reference_value = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    deadline = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    request = relationship("PurchaseRequest", back_populates="quotations")
    items = relationship("QuotationItem", back_populates="quotation", cascade="all, delete-orphan")


class QuotationItem(Base):
    __tablename__ = 'quotation_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quotation_id = Column(UUID(as_uuid=True), ForeignKey('quotations.id', ondelete='CASCADE'), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    reference_value = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)

    quotation = relationship("Quotation", back_populates="items")
