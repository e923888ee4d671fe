import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class ServiceOrder(Base):
    __tablename__ = 'service_orders'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    number = Column(String(20), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(500), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    quote_value = Column(Numeric(14, 2, asdecimal=False), nullable=True)
    final_value = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    status = Column(String(40), nullable=False, default='DRAFT')
    priority = Column(String(10), nullable=False, default='MEDIUM')
    notes = Column(Text, nullable=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id'), nullable=False)
    assignee_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    items = relationship("ServiceOrderItem", back_populates="order", cascade="all, delete-orphan")
    history = relationship("ServiceOrderHistory", back_populates="order", cascade="all, delete-orphan", order_by="ServiceOrderHistory.created_at")
    quotes = relationship("Quote", back_populates="service_order")
    report = relationship("TechnicalReport", back_populates="order", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_service_orders_status', 'status'),
    )


class ServiceOrderItem(Base):
    __tablename__ = 'service_order_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey('service_orders.id', ondelete='CASCADE'), nullable=False)
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=1)
    unit_price = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    total = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    order = relationship("ServiceOrder", back_populates="items")


class ServiceOrderHistory(Base):
    __tablename__ = 'service_order_history'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey('service_orders.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    collaborator_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    order = relationship("ServiceOrder", back_populates="history")


class Quote(Base):
    __tablename__ = 'quotes'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    number = Column(String(20), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    service_order_id = Column(UUID(as_uuid=True), ForeignKey('service_orders.id'), nullable=False)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id'), nullable=False)
    subtotal = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    discount = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    total = Column(Numeric(14, 2, asdecimal=False), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default='DRAFT')
    approved_by_customer = Column(Boolean, nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    customer_comments = Column(Text, nullable=True)
    technical_report_id = Column(UUID(as_uuid=True), ForeignKey('technical_reports.id', ondelete='SET NULL'), nullable=True)
    auto_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    service_order = relationship("ServiceOrder", back_populates="quotes")
    items = relationship("QuoteItem", back_populates="quote", cascade="all, delete-orphan")
    history = relationship("QuoteHistory", back_populates="quote", cascade="all, delete-orphan", order_by="QuoteHistory.created_at")


class QuoteItem(Base):
    __tablename__ = 'quote_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quote_id = Column(UUID(as_uuid=True), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False)
    kind = Column(String(20), nullable=False, default='SERVICE')
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=1)
    unit = Column(String(10), nullable=True)
    unit_price = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    total = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    quote = relationship("Quote", back_populates="items")


class QuoteHistory(Base):
    __tablename__ = 'quote_history'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quote_id = Column(UUID(as_uuid=True), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    collaborator_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    quote = relationship("Quote", back_populates="history")


class TechnicalReport(Base):
    """Technician's diagnosis of a service order; at most one per order."""
    __tablename__ = 'technical_reports'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    service_order_id = Column(UUID(as_uuid=True), ForeignKey('service_orders.id', ondelete='CASCADE'), nullable=False, unique=True)
    technician_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id'), nullable=False)
    diagnosis = Column(Text, nullable=False)
    recommended_solution = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='DRAFT')  # DRAFT|COMPLETED
    generate_quote = Column(Boolean, nullable=False, default=False)
    quote_total = Column(Numeric(14, 2, asdecimal=False), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    order = relationship("ServiceOrder", back_populates="report")
    items = relationship(
        "TechnicalReportItem", back_populates="report", cascade="all, delete-orphan",
        order_by="TechnicalReportItem.position",
    )
    history = relationship(
        "TechnicalReportHistory", back_populates="report", cascade="all, delete-orphan",
        order_by="TechnicalReportHistory.created_at",
    )


class TechnicalReportItem(Base):
    __tablename__ = 'technical_report_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_id = Column(UUID(as_uuid=True), ForeignKey('technical_reports.id', ondelete='CASCADE'), nullable=False)
    kind = Column(String(20), nullable=False)  # DIAGNOSIS|SOLUTION|RECOMMENDATION|NOTE
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    unit_price = Column(Numeric(14, 2, asdecimal=False), nullable=True)
    total = Column(Numeric(14, 2, asdecimal=False), nullable=True)
    position = Column(Integer, nullable=False, default=0)

    report = relationship("TechnicalReport", back_populates="items")


class TechnicalReportHistory(Base):
    __tablename__ = 'technical_report_history'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_id = Column(UUID(as_uuid=True), ForeignKey('technical_reports.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    collaborator_id = Column(UUID(as_uuid=True), ForeignKey('collaborators.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    report = relationship("TechnicalReport", back_populates="history")
