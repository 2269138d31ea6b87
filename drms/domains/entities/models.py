"""
Entity ORM models

Tables:
- entities
- entity_assignments
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import (
    Column, String, Boolean, DateTime, Float, Enum, ForeignKey, UniqueConstraint, Uuid
)

from drms.core.database import Base, JSONType
from drms.core.enums import EntityType


class Entity(Base):
    """
    Affected location (community, camp, facility, ...)

    Auto-approval rules live in `auto_approval`; see
    verification.auto_approval.AutoApprovalConfig for the shape.
    """
    __tablename__ = "entities"
    __table_args__ = (
        UniqueConstraint("name", "type", name="uq_entities_name_type"),
    )

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    name: str = Column(String(200), nullable=False, comment="Entity name")
    type: EntityType = Column(Enum(EntityType, native_enum=False, length=20), nullable=False, comment="Entity type")
    location: Optional[str] = Column(String(300), comment="Free text location, e.g. LGA / ward")
    latitude: Optional[float] = Column(Float, comment="WGS84 latitude")
    longitude: Optional[float] = Column(Float, comment="WGS84 longitude")
    properties: dict[str, Any] = Column(JSONType, default=dict, comment="Additional attributes")

    is_active: bool = Column(Boolean, nullable=False, default=True)

    auto_approve_enabled: bool = Column(Boolean, nullable=False, default=False, comment="Auto-approval switch")
    auto_approval: Optional[dict[str, Any]] = Column(JSONType, comment="Auto-approval conditions")

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class EntityAssignment(Base):
    """User assigned to work on an entity"""
    __tablename__ = "entity_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "entity_id", name="uq_entity_assignments_user_entity"),
    )

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    user_id: UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    entity_id: UUID = Column(Uuid, ForeignKey("entities.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by: Optional[UUID] = Column(Uuid, comment="Coordinator who made the assignment")

    assigned_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
