"""
Dashboard schemas
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from drms.core.enums import AssessmentType, EntityType, Priority
from drms.domains.assessments.schemas import RapidAssessmentResponse
from drms.domains.gap_analysis import GapAnalysisResponse, GapSummaryResponse
from drms.domains.incidents.schemas import IncidentResponse


class ImpactTotals(BaseModel):
    lives_lost: int = 0
    injured: int = 0
    displaced: int = 0
    affected_population: int = Field(0, description="Total population of assessed entities")
    preliminary_reports: int = 0
    population_assessments: int = Field(0, description="Verified population assessments counted")


class IncidentSituation(BaseModel):
    incident: IncidentResponse
    impact: ImpactTotals
    impact_severity: Priority
    assessment_counts: dict[str, int]
    response_counts: dict[str, int]


class SituationOverview(BaseModel):
    incidents: list[IncidentSituation] = Field(default_factory=list)
    totals: ImpactTotals
    overall_severity: Priority
    assessment_counts: dict[str, int]
    response_counts: dict[str, int]
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class GapSummaryOverview(GapSummaryResponse):
    incident_id: Optional[UUID] = None
    entities_assessed: int = 0
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class EntityGapAnalysis(BaseModel):
    entity_id: UUID
    entity_name: str
    entity_type: EntityType
    gap_level: str = Field(..., description="high / medium / low")
    gaps: dict[AssessmentType, GapAnalysisResponse] = Field(default_factory=dict)
    missing_types: list[AssessmentType] = Field(default_factory=list, description="No verified assessment yet")


class EntityLatestAssessments(BaseModel):
    entity_id: UUID
    entity_name: str
    assessments: dict[AssessmentType, RapidAssessmentResponse] = Field(
        default_factory=dict, description="Latest verified assessment per type, with its gap analysis"
    )
    missing_types: list[AssessmentType] = Field(default_factory=list)
