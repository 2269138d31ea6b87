"""
Rapid response ORM model

Tables:
- rapid_responses
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import Column, String, DateTime, Text, Enum, ForeignKey, Index, Uuid

from drms.core.database import Base, JSONType
from drms.core.enums import Priority, RejectionReason, ResponseStatus, ResponseType, VerificationStatus


class RapidResponse(Base):
    """
    Humanitarian response planned against a verified assessment

    PLANNED until the responder confirms delivery; verification starts at
    delivery.
    """
    __tablename__ = "rapid_responses"
    __table_args__ = (
        Index("ix_rapid_responses_entity_status", "entity_id", "status"),
        Index("ix_rapid_responses_verification_status", "verification_status"),
    )

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    responder_id: UUID = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True, comment="Planning responder")
    responder_name: str = Column(String(200), nullable=False)
    entity_id: UUID = Column(Uuid, ForeignKey("entities.id"), nullable=False)
    assessment_id: UUID = Column(Uuid, ForeignKey("rapid_assessments.id"), nullable=False, index=True, comment="Verified assessment being answered")
    donor_id: Optional[UUID] = Column(Uuid, ForeignKey("donors.id"), comment="Set when drawn from a commitment")
    commitment_id: Optional[UUID] = Column(Uuid, ForeignKey("donor_commitments.id"), index=True)

    type: ResponseType = Column(Enum(ResponseType, native_enum=False, length=20), nullable=False)
    priority: Priority = Column(Enum(Priority, native_enum=False, length=20), nullable=False, default=Priority.MEDIUM)
    status: ResponseStatus = Column(
        Enum(ResponseStatus, native_enum=False, length=20),
        nullable=False,
        default=ResponseStatus.PLANNED,
    )
    description: Optional[str] = Column(Text)
    items: list[dict[str, Any]] = Column(JSONType, nullable=False, default=list, comment="[{name, unit, quantity}]")
    timeline: Optional[dict[str, Any]] = Column(JSONType, comment="Free form milestones")
    planned_date: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    # delivery
    delivered_at: Optional[datetime] = Column(DateTime(timezone=True))
    delivery_location: Optional[str] = Column(String(300))
    delivery_notes: Optional[str] = Column(Text)
    media_attachments: list[str] = Column(JSONType, default=list, comment="Delivery evidence")

    # verification
    verification_status: VerificationStatus = Column(
        Enum(VerificationStatus, native_enum=False, length=20),
        nullable=False,
        default=VerificationStatus.DRAFT,
    )
    submitted_at: Optional[datetime] = Column(DateTime(timezone=True))
    verified_at: Optional[datetime] = Column(DateTime(timezone=True))
    verified_by: Optional[UUID] = Column(Uuid, comment="Coordinator; NULL when auto-approved")
    verification_notes: Optional[str] = Column(Text)
    rejection_reason: Optional[RejectionReason] = Column(Enum(RejectionReason, native_enum=False, length=40))
    rejection_feedback: Optional[str] = Column(Text)

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
