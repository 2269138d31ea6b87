"""
Per-entity auto-approval rules

The configuration is stored on Entity (`auto_approve_enabled` plus the
`auto_approval` JSON column). Evaluation is pure.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from drms.core.enums import AssessmentType, Priority, ResponseType

from .state import ReviewTarget


class AutoApprovalScope(str, Enum):
    ASSESSMENTS = "assessments"
    RESPONSES = "responses"
    BOTH = "both"

    def covers(self, target: ReviewTarget) -> bool:
        if self == AutoApprovalScope.BOTH:
            return True
        if target == ReviewTarget.ASSESSMENT:
            return self == AutoApprovalScope.ASSESSMENTS
        return self == AutoApprovalScope.RESPONSES


class AutoApprovalConditions(BaseModel):
    assessment_types: list[AssessmentType] = Field(default_factory=list, description="Empty means all types")
    response_types: list[ResponseType] = Field(default_factory=list, description="Empty means all types")
    max_priority: Priority = Field(Priority.MEDIUM, description="Highest priority that may be auto-approved")
    requires_documentation: bool = Field(False, description="Require at least one media attachment")


class AutoApprovalConfig(BaseModel):
    enabled: bool = False
    scope: AutoApprovalScope = AutoApprovalScope.ASSESSMENTS
    conditions: AutoApprovalConditions = Field(default_factory=AutoApprovalConditions)
    last_modified_by: Optional[UUID] = None
    last_modified_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, entity: Any) -> "AutoApprovalConfig":
        stored = dict(entity.auto_approval or {})
        stored["enabled"] = bool(entity.auto_approve_enabled)
        return cls.model_validate(stored)

    def to_column(self) -> dict[str, Any]:
        """JSON stored in Entity.auto_approval (enabled lives in its own column)"""
        return self.model_dump(mode="json", exclude={"enabled"})


@dataclass
class AutoApprovalDecision:
    eligible: bool
    reasons: list[str] = field(default_factory=list)


def evaluate_auto_approval(
    config: AutoApprovalConfig,
    target: ReviewTarget,
    item_type: str,
    priority: Priority,
    has_documentation: bool,
) -> AutoApprovalDecision:
    """
    Decide whether a submitted item bypasses manual verification

    Every unmet condition is reported in `reasons`.
    """
    reasons: list[str] = []

    if not config.enabled:
        reasons.append("Auto-approval is disabled for this entity")
    if not config.scope.covers(target):
        reasons.append(f"Auto-approval scope '{config.scope.value}' does not include {target.value}s")

    allowed_types = (
        config.conditions.assessment_types
        if target == ReviewTarget.ASSESSMENT
        else config.conditions.response_types
    )
    item_type = getattr(item_type, "value", item_type)
    if allowed_types and item_type not in {t.value for t in allowed_types}:
        reasons.append(f"Type {item_type} is not enabled for auto-approval")

    priority = Priority(priority)
    if priority.level > config.conditions.max_priority.level:
        reasons.append(
            f"Priority {priority.value} exceeds maximum {config.conditions.max_priority.value}"
        )

    if config.conditions.requires_documentation and not has_documentation:
        reasons.append("Supporting documentation is required")

    return AutoApprovalDecision(eligible=not reasons, reasons=reasons)
