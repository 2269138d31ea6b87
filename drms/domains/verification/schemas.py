"""
Verification schemas
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from drms.core.enums import EntityType, RejectionReason

from .auto_approval import AutoApprovalConditions, AutoApprovalConfig, AutoApprovalScope
from .state import ReviewTarget


class VerifyRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000, description="Reviewer notes")


class RejectRequest(BaseModel):
    reason: RejectionReason = Field(..., description="Rejection reason code")
    feedback: str = Field(..., min_length=1, max_length=2000, description="Feedback to the submitter")


class VerificationMetrics(BaseModel):
    target: ReviewTarget
    total: int
    by_status: dict[str, int]
    pending: int = Field(..., description="Awaiting review (SUBMITTED)")
    verified: int
    auto_verified: int
    rejected: int
    rejection_rate: float = Field(..., description="Rejected / reviewed, percent")
    auto_verification_rate: float = Field(..., description="Auto-verified / approved, percent")
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class EntityAutoApproval(BaseModel):
    entity_id: UUID
    entity_name: str
    entity_type: EntityType
    config: AutoApprovalConfig
    pending_count: int = 0
    auto_verified_count: int = 0


class AutoApprovalSummary(BaseModel):
    total_entities: int
    enabled_count: int
    disabled_count: int
    total_pending: int
    total_auto_verified: int


class AutoApprovalOverview(BaseModel):
    entities: list[EntityAutoApproval]
    summary: AutoApprovalSummary


class AutoApprovalBulkUpdate(BaseModel):
    entity_ids: list[UUID] = Field(..., min_length=1)
    enabled: bool
    scope: AutoApprovalScope = AutoApprovalScope.ASSESSMENTS
    conditions: AutoApprovalConditions = Field(default_factory=AutoApprovalConditions)


class EligibilityResponse(BaseModel):
    item_id: UUID
    target: ReviewTarget
    eligible: bool
    reasons: list[str] = Field(default_factory=list)
