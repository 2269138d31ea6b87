"""
Donor and commitment schemas
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from drms.core.enums import CommitmentStatus, DonorType, EntityType


class DonorRegisterRequest(BaseModel):
    """Public self-registration: login account plus donor profile"""
    email: str = Field(..., max_length=255)
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=100, description="Contact person")
    donor_name: str = Field(..., min_length=1, max_length=200, description="Donor display name")
    type: DonorType = DonorType.ORGANIZATION
    contact_phone: Optional[str] = Field(None, max_length=50)
    organization: Optional[str] = Field(None, max_length=200)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email address must contain '@'")
        return v.strip().lower()


class DonorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[DonorType] = None
    contact_email: Optional[str] = Field(None, max_length=255)
    contact_phone: Optional[str] = Field(None, max_length=50)
    organization: Optional[str] = Field(None, max_length=200)

    @field_validator("name", "type")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v


class DonorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: DonorType
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    organization: Optional[str] = None
    is_active: bool
    user_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class CommitmentItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    unit: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., gt=0)


class CommitmentCreate(BaseModel):
    entity_id: UUID
    incident_id: UUID
    items: list[CommitmentItem] = Field(..., min_length=1)
    total_committed_quantity: Optional[int] = Field(None, description="Defaults to the sum of item quantities")
    notes: Optional[str] = Field(None, max_length=2000)
    commitment_date: Optional[datetime] = None

    @model_validator(mode="after")
    def fill_total(self) -> "CommitmentCreate":
        if self.total_committed_quantity is None:
            self.total_committed_quantity = sum(item.quantity for item in self.items)
        if self.total_committed_quantity <= 0:
            raise ValueError("total_committed_quantity must be positive")
        return self


class CommitmentStatusUpdate(BaseModel):
    status: CommitmentStatus
    notes: Optional[str] = Field(None, max_length=2000)


class CommitmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    donor_id: UUID
    entity_id: UUID
    incident_id: UUID
    items: list[CommitmentItem] = Field(default_factory=list)
    total_committed_quantity: int
    delivered_quantity: int
    available_quantity: int = 0
    status: CommitmentStatus
    notes: Optional[str] = None
    commitment_date: datetime
    last_updated: Optional[datetime] = None

    @model_validator(mode="after")
    def compute_available(self) -> "CommitmentResponse":
        self.available_quantity = max(self.total_committed_quantity - self.delivered_quantity, 0)
        return self


class CommitmentStatusBreakdown(BaseModel):
    planned: int = 0
    partial: int = 0
    complete: int = 0
    cancelled: int = 0


class DonorStatsResponse(BaseModel):
    donor_id: UUID
    total_commitments: int
    status_breakdown: CommitmentStatusBreakdown
    total_committed_quantity: int = Field(..., description="Excludes cancelled commitments")
    total_delivered_quantity: int
    utilization_rate: float = Field(..., description="Delivered / committed, percent")


class CommitmentAssign(BaseModel):
    """Move a commitment to another entity (coordinator)"""
    entity_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class CommitmentAssignmentRecord(BaseModel):
    """One entity reassignment, read back from the audit trail"""
    from_entity_id: Optional[UUID] = None
    to_entity_id: Optional[UUID] = None
    reason: Optional[str] = None
    assigned_by: Optional[UUID] = None
    assigned_at: datetime


# ============================================================================
# Leaderboard
# ============================================================================

class LeaderboardTimeframe(str, Enum):
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"
    YEAR = "1y"
    ALL = "all"

    def since(self, now: datetime) -> Optional[datetime]:
        days = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}.get(self.value)
        return now - timedelta(days=days) if days else None


class LeaderboardSort(str, Enum):
    OVERALL = "overall"
    DELIVERY_RATE = "delivery_rate"
    VOLUME = "volume"


class LeaderboardEntry(BaseModel):
    rank: int
    donor_id: UUID
    donor_name: str
    organization: Optional[str] = None
    total_commitments: int
    completed_commitments: int
    total_committed_quantity: int = Field(..., description="Excludes cancelled commitments")
    total_delivered_quantity: int
    delivery_rate: float = Field(..., description="Delivered / committed, percent")
    completion_rate: float = Field(..., description="COMPLETE share of commitments not cancelled, percent")
    overall_score: float


class LeaderboardResponse(BaseModel):
    timeframe: LeaderboardTimeframe
    sort_by: LeaderboardSort
    entries: list[LeaderboardEntry] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# Entity insights
# ============================================================================

class SupportedEntity(BaseModel):
    entity_id: UUID
    entity_name: str
    entity_type: EntityType
    location: Optional[str] = None
    active_commitments: int = Field(0, description="PLANNED or PARTIAL")
