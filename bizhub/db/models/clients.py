import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Numeric, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Client(Base):
    __tablename__ = 'clients'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String, nullable=True, unique=True)
    phone = Column(String(20), nullable=True)
    document = Column(String(20), nullable=True)
    kind = Column(String(20), nullable=False, default='PESSOA_FISICA')
    status = Column(String(20), nullable=False, default='LEAD')
    potential_value = Column(Numeric(14, 2, asdecimal=False), nullable=True)
    notes = Column(Text, nullable=True)
    group_id = Column(UUID(as_uuid=True), ForeignKey('hierarchy_groups.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    addresses = relationship("Address", back_populates="client", cascade="all, delete-orphan", order_by="Address.created_at")

    __table_args__ = (
        Index('idx_clients_status', 'status'),
        CheckConstraint("status in ('LEAD','PROSPECT','CLIENT','INACTIVE')", name='ck_clients_status'),
        CheckConstraint("kind in ('PESSOA_FISICA','PESSOA_JURIDICA')", name='ck_clients_kind'),
    )


class Address(Base):
    __tablename__ = 'addresses'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id = Column(UUID(as_uuid=True), ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    street = Column(String(200), nullable=False)
    number = Column(String(20), nullable=True)
    complement = Column(String(100), nullable=True)
    district = Column(String(100), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(2), nullable=False)
    zip_code = Column(String(9), nullable=False)
    kind = Column(String(20), nullable=False, default='COMMERCIAL')
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    client = relationship("Client", back_populates="addresses")
