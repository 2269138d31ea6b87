"""
Donor ORM models

Tables:
- donors
- donor_commitments
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, Enum, ForeignKey, Uuid

from drms.core.database import Base, JSONType
from drms.core.enums import CommitmentStatus, DonorType


class Donor(Base):
    __tablename__ = "donors"

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    name: str = Column(String(200), nullable=False, comment="Donor name")
    type: DonorType = Column(Enum(DonorType, native_enum=False, length=20), nullable=False, default=DonorType.ORGANIZATION)
    contact_email: Optional[str] = Column(String(255))
    contact_phone: Optional[str] = Column(String(50))
    organization: Optional[str] = Column(String(200))
    is_active: bool = Column(Boolean, nullable=False, default=True)

    user_id: Optional[UUID] = Column(Uuid, ForeignKey("users.id"), unique=True, comment="Login account of the donor")

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class DonorCommitment(Base):
    """
    Pledge of items to an entity for an incident

    `delivered_quantity` grows as responses consume the commitment.
    """
    __tablename__ = "donor_commitments"

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    donor_id: UUID = Column(Uuid, ForeignKey("donors.id"), nullable=False, index=True)
    entity_id: UUID = Column(Uuid, ForeignKey("entities.id"), nullable=False, index=True)
    incident_id: UUID = Column(Uuid, ForeignKey("incidents.id"), nullable=False, index=True)

    items: list[dict[str, Any]] = Column(JSONType, nullable=False, default=list, comment="[{name, unit, quantity}]")
    total_committed_quantity: int = Column(Integer, nullable=False)
    delivered_quantity: int = Column(Integer, nullable=False, default=0)
    status: CommitmentStatus = Column(
        Enum(CommitmentStatus, native_enum=False, length=20),
        nullable=False,
        default=CommitmentStatus.PLANNED,
    )
    commitment_date: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    notes: Optional[str] = Column(Text)

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
    last_updated: datetime = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
