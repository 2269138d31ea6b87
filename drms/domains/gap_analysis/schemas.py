"""
Gap analysis response schemas
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from drms.core.enums import AssessmentType, Priority

from .analyzer import GapResult, GapSummary


class GapAnalysisResponse(BaseModel):
    assessment_type: AssessmentType
    has_gap: bool
    gap_fields: list[str] = Field(default_factory=list)
    severity: Priority
    recommendations: list[str] = Field(default_factory=list)
    assessment_id: Optional[UUID] = None

    @classmethod
    def from_result(cls, result: GapResult, assessment_id: Optional[UUID] = None) -> "GapAnalysisResponse":
        return cls(assessment_id=assessment_id, **result.to_dict())


class TypeGapShareResponse(BaseModel):
    assessment_type: AssessmentType
    entities_with_gap: int
    entities_assessed: int
    percentage: float
    level: str


class GapSummaryResponse(BaseModel):
    entity_levels: dict[str, int]
    by_type: list[TypeGapShareResponse] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: GapSummary) -> "GapSummaryResponse":
        return cls(
            entity_levels=dict(summary.entity_levels),
            by_type=[
                TypeGapShareResponse(
                    assessment_type=assessment_type,
                    entities_with_gap=share.entities_with_gap,
                    entities_assessed=share.entities_assessed,
                    percentage=share.percentage,
                    level=share.level,
                )
                for assessment_type, share in sorted(summary.by_type.items(), key=lambda kv: kv[0].value)
            ],
        )
