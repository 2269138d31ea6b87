"""
Rapid response schemas
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from drms.core.enums import (
    Priority, RejectionReason, ResponseStatus, ResponseType, VerificationStatus
)

from .collaboration import CollaborationAction


class ResponseItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    unit: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., gt=0)


class RapidResponsePlan(BaseModel):
    """Plan a response against a verified assessment"""
    assessment_id: UUID
    entity_id: UUID
    type: Optional[ResponseType] = Field(None, description="Defaults to the assessment type")
    priority: Optional[Priority] = Field(None, description="Defaults to the assessment priority")
    description: Optional[str] = Field(None, max_length=4000)
    items: list[ResponseItem] = Field(..., min_length=1)
    timeline: Optional[dict[str, Any]] = None
    planned_date: Optional[datetime] = None


class RapidResponseFromCommitment(BaseModel):
    """Plan a response that draws its items from a donor commitment"""
    commitment_id: UUID
    assessment_id: UUID
    items: list[ResponseItem] = Field(..., min_length=1)
    type: ResponseType = ResponseType.LOGISTICS
    priority: Optional[Priority] = None
    description: Optional[str] = Field(None, max_length=4000)
    planned_date: Optional[datetime] = None

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class RapidResponseUpdate(BaseModel):
    type: Optional[ResponseType] = None
    priority: Optional[Priority] = None
    description: Optional[str] = Field(None, max_length=4000)
    items: Optional[list[ResponseItem]] = Field(None, min_length=1)
    timeline: Optional[dict[str, Any]] = None
    planned_date: Optional[datetime] = None

    @field_validator("type", "priority", "items", "planned_date")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("cannot be null")
        return v


class DeliveryConfirmation(BaseModel):
    delivered_at: Optional[datetime] = Field(None, description="Defaults to now")
    delivery_location: Optional[str] = Field(None, max_length=300)
    delivery_notes: Optional[str] = Field(None, max_length=4000)
    media_attachments: list[str] = Field(default_factory=list, description="Delivery evidence")


class RapidResponseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    responder_id: UUID
    responder_name: str
    entity_id: UUID
    assessment_id: UUID
    donor_id: Optional[UUID] = None
    commitment_id: Optional[UUID] = None
    type: ResponseType
    priority: Priority
    status: ResponseStatus
    description: Optional[str] = None
    items: list[ResponseItem] = Field(default_factory=list)
    timeline: Optional[dict[str, Any]] = None
    planned_date: datetime
    delivered_at: Optional[datetime] = None
    delivery_location: Optional[str] = None
    delivery_notes: Optional[str] = None
    media_attachments: list[str] = Field(default_factory=list)
    verification_status: VerificationStatus
    submitted_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[UUID] = None
    verification_notes: Optional[str] = None
    rejection_reason: Optional[RejectionReason] = None
    rejection_feedback: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CollaborationRequest(BaseModel):
    action: CollaborationAction


class CollaboratorInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    user_name: str
    email: Optional[str] = None
    is_editing: bool
    joined_at: datetime
    last_seen: datetime


class CollaborationStatus(BaseModel):
    response_id: UUID
    is_active: bool
    collaborators: list[CollaboratorInfo] = Field(default_factory=list)
    total_collaborators: int = 0
    is_current_user_collaborating: bool = False
    current_editor_id: Optional[UUID] = None
    can_edit: bool
