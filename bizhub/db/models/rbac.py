import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Table, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


profile_permissions = Table(
    'profile_permissions',
    Base.metadata,
    Column('profile_id', UUID(as_uuid=True), ForeignKey('profiles.id', ondelete='CASCADE'), primary_key=True),
    Column('permission_id', UUID(as_uuid=True), ForeignKey('permissions.id', ondelete='CASCADE'), primary_key=True),
)


class Permission(Base):
    __tablename__ = 'permissions'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    resource = Column(String(50), nullable=False)
    action = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    profiles = relationship("Profile", secondary=profile_permissions, back_populates="permissions")

    __table_args__ = (
        UniqueConstraint('resource', 'action', name='uq_permissions_resource_action'),
    )


class Profile(Base):
    __tablename__ = 'profiles'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    permissions = relationship("Permission", secondary=profile_permissions, back_populates="profiles")
    collaborators = relationship("Collaborator", back_populates="profile")


class HierarchyGroup(Base):
    __tablename__ = 'hierarchy_groups'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(UUID(as_uuid=True), ForeignKey('hierarchy_groups.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class Collaborator(Base):
    __tablename__ = 'collaborators'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String, nullable=False, unique=True)
    phone = Column(String(20), nullable=True)
    position = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    profile_id = Column(UUID(as_uuid=True), ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    group_id = Column(UUID(as_uuid=True), ForeignKey('hierarchy_groups.id', ondelete='SET NULL'), nullable=True)
    whatsapp_token = Column(String(64), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    profile = relationship("Profile", back_populates="collaborators")
    group = relationship("HierarchyGroup")
    users = relationship("User", back_populates="collaborator")

    __table_args__ = (
        Index('idx_collaborators_group_id', 'group_id'),
    )
