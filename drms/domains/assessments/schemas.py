"""
Rapid assessment schemas

The create / update payload carries the detail under the key matching the
assessment type (`health_data` for HEALTH, `wash_data` for WASH, ...).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from drms.core.enums import AssessmentType, Priority, RejectionReason, VerificationStatus
from drms.domains.gap_analysis.schemas import GapAnalysisResponse


class HealthAssessmentData(BaseModel):
    has_functional_clinic: bool = False
    has_emergency_services: bool = False
    number_health_facilities: int = Field(0, ge=0)
    health_facility_type: Optional[str] = Field(None, max_length=100)
    qualified_health_workers: int = Field(0, ge=0)
    has_trained_staff: bool = False
    has_medicine_supply: bool = False
    has_medical_supplies: bool = False
    has_maternal_child_services: bool = False
    common_health_issues: list[str] = Field(default_factory=list)
    additional_details: Optional[str] = None


class PopulationAssessmentData(BaseModel):
    total_households: int = Field(0, ge=0)
    total_population: int = Field(0, ge=0)
    population_male: int = Field(0, ge=0)
    population_female: int = Field(0, ge=0)
    population_under5: int = Field(0, ge=0)
    pregnant_women: int = Field(0, ge=0)
    lactating_mothers: int = Field(0, ge=0)
    person_with_disability: int = Field(0, ge=0)
    elderly_persons: int = Field(0, ge=0)
    separated_children: int = Field(0, ge=0)
    number_lives_lost: int = Field(0, ge=0)
    number_injured: int = Field(0, ge=0)
    additional_details: Optional[str] = None

    @model_validator(mode="after")
    def check_totals(self) -> "PopulationAssessmentData":
        if self.number_lives_lost + self.number_injured > self.total_population:
            raise ValueError("lives lost plus injured cannot exceed total population")
        if self.population_male + self.population_female > self.total_population:
            raise ValueError("male plus female population cannot exceed total population")
        return self


class FoodAssessmentData(BaseModel):
    is_food_sufficient: bool = False
    has_regular_meal_access: bool = False
    has_infant_nutrition: bool = False
    food_source: list[str] = Field(default_factory=list)
    available_food_duration_days: int = Field(0, ge=0)
    additional_food_required_persons: int = Field(0, ge=0)
    additional_food_required_households: int = Field(0, ge=0)
    additional_details: Optional[str] = None


class WashAssessmentData(BaseModel):
    water_source: list[str] = Field(default_factory=list)
    is_water_sufficient: bool = False
    has_clean_water_access: bool = False
    functional_latrines_available: int = Field(0, ge=0)
    are_latrines_sufficient: bool = False
    has_handwashing_facilities: bool = False
    has_open_defecation_concerns: bool = False
    additional_details: Optional[str] = None


class ShelterAssessmentData(BaseModel):
    are_shelters_sufficient: bool = False
    has_safe_structures: bool = False
    shelter_types: list[str] = Field(default_factory=list)
    required_shelter_type: list[str] = Field(default_factory=list)
    number_shelters_required: int = Field(0, ge=0)
    are_overcrowded: bool = False
    provide_weather_protection: bool = False
    additional_details: Optional[str] = None


class SecurityAssessmentData(BaseModel):
    is_safe_from_violence: bool = False
    gbv_cases_reported: bool = False
    has_security_presence: bool = False
    has_protection_reporting_mechanism: bool = False
    vulnerable_groups_have_access: bool = False
    has_lighting: bool = False
    additional_details: Optional[str] = None


DETAIL_KEYS: dict[AssessmentType, str] = {
    AssessmentType.HEALTH: "health_data",
    AssessmentType.POPULATION: "population_data",
    AssessmentType.FOOD: "food_data",
    AssessmentType.WASH: "wash_data",
    AssessmentType.SHELTER: "shelter_data",
    AssessmentType.SECURITY: "security_data",
}


class _DetailPayload(BaseModel):
    health_data: Optional[HealthAssessmentData] = None
    population_data: Optional[PopulationAssessmentData] = None
    food_data: Optional[FoodAssessmentData] = None
    wash_data: Optional[WashAssessmentData] = None
    shelter_data: Optional[ShelterAssessmentData] = None
    security_data: Optional[SecurityAssessmentData] = None

    def provided_detail_keys(self) -> list[str]:
        return [key for key in DETAIL_KEYS.values() if getattr(self, key) is not None]

    def detail_for(self, assessment_type: AssessmentType) -> Optional[BaseModel]:
        return getattr(self, DETAIL_KEYS[assessment_type])


class RapidAssessmentCreate(_DetailPayload):
    type: AssessmentType
    entity_id: UUID
    incident_id: Optional[UUID] = None
    assessment_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=300)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    priority: Priority = Priority.MEDIUM
    media_attachments: list[str] = Field(default_factory=list)
    submit: bool = Field(False, description="Submit for verification immediately")

    @model_validator(mode="after")
    def check_detail_matches_type(self) -> "RapidAssessmentCreate":
        expected = DETAIL_KEYS[self.type]
        provided = self.provided_detail_keys()
        if provided != [expected]:
            raise ValueError(f"{self.type.value} assessment requires exactly one detail object: {expected}")
        return self


class RapidAssessmentUpdate(_DetailPayload):
    """Partial update; a detail object, when given, replaces the stored one"""
    assessment_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=300)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    priority: Optional[Priority] = None
    media_attachments: Optional[list[str]] = None

    @field_validator("assessment_date", "priority", "media_attachments")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # omitted means unchanged; an explicit null cannot be stored
        if v is None:
            raise ValueError("cannot be null")
        return v

    @model_validator(mode="after")
    def check_single_detail(self) -> "RapidAssessmentUpdate":
        if len(self.provided_detail_keys()) > 1:
            raise ValueError("at most one detail object may be given")
        return self


class RapidAssessmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: AssessmentType
    assessment_date: datetime
    assessor_id: UUID
    assessor_name: str
    entity_id: UUID
    incident_id: Optional[UUID] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    priority: Priority
    media_attachments: list[str] = Field(default_factory=list)
    version_number: int
    verification_status: VerificationStatus
    submitted_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[UUID] = None
    verification_notes: Optional[str] = None
    rejection_reason: Optional[RejectionReason] = None
    rejection_feedback: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    detail: dict[str, Any] = Field(default_factory=dict)
    gap_analysis: Optional[GapAnalysisResponse] = None
