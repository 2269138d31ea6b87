"""
Rapid assessment ORM models

Tables:
- rapid_assessments
- health_assessments
- population_assessments
- food_assessments
- wash_assessments
- shelter_assessments
- security_assessments

Each rapid assessment owns exactly one detail row, in the table matching its
type, keyed by the assessment id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Float, Text, Enum, ForeignKey, Index, Uuid
)

from drms.core.database import Base, JSONType
from drms.core.enums import AssessmentType, Priority, RejectionReason, VerificationStatus


class RapidAssessment(Base):
    """
    Field assessment of one hazard category at one entity
    """
    __tablename__ = "rapid_assessments"
    __table_args__ = (
        Index("ix_rapid_assessments_entity_type", "entity_id", "type"),
        Index("ix_rapid_assessments_verification_status", "verification_status"),
    )

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    type: AssessmentType = Column(Enum(AssessmentType, native_enum=False, length=20), nullable=False, comment="Hazard category")
    assessment_date: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, comment="Date of the field visit")

    assessor_id: UUID = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True, comment="Owning assessor")
    assessor_name: str = Column(String(200), nullable=False, comment="Assessor name at time of capture")
    entity_id: UUID = Column(Uuid, ForeignKey("entities.id"), nullable=False, comment="Assessed entity")
    incident_id: Optional[UUID] = Column(Uuid, ForeignKey("incidents.id"), index=True, comment="Related incident")

    location: Optional[str] = Column(String(300), comment="Free text location")
    latitude: Optional[float] = Column(Float)
    longitude: Optional[float] = Column(Float)

    priority: Priority = Column(Enum(Priority, native_enum=False, length=20), nullable=False, default=Priority.MEDIUM)
    media_attachments: list[str] = Column(JSONType, default=list, comment="Attachment ids / URLs")
    version_number: int = Column(Integer, nullable=False, default=1, comment="Bumped on each edit")

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


def _assessment_fk() -> Column:
    return Column(Uuid, ForeignKey("rapid_assessments.id", ondelete="CASCADE"), primary_key=True)


class HealthAssessment(Base):
    __tablename__ = "health_assessments"

    assessment_id: UUID = _assessment_fk()
    has_functional_clinic: bool = Column(Boolean, nullable=False, default=False)
    has_emergency_services: bool = Column(Boolean, nullable=False, default=False)
    number_health_facilities: int = Column(Integer, nullable=False, default=0)
    health_facility_type: Optional[str] = Column(String(100))
    qualified_health_workers: int = Column(Integer, nullable=False, default=0)
    has_trained_staff: bool = Column(Boolean, nullable=False, default=False)
    has_medicine_supply: bool = Column(Boolean, nullable=False, default=False)
    has_medical_supplies: bool = Column(Boolean, nullable=False, default=False)
    has_maternal_child_services: bool = Column(Boolean, nullable=False, default=False)
    common_health_issues: list[str] = Column(JSONType, default=list)
    additional_details: Optional[str] = Column(Text)


class PopulationAssessment(Base):
    __tablename__ = "population_assessments"

    assessment_id: UUID = _assessment_fk()
    total_households: int = Column(Integer, nullable=False, default=0)
    total_population: int = Column(Integer, nullable=False, default=0)
    population_male: int = Column(Integer, nullable=False, default=0)
    population_female: int = Column(Integer, nullable=False, default=0)
    population_under5: int = Column(Integer, nullable=False, default=0)
    pregnant_women: int = Column(Integer, nullable=False, default=0)
    lactating_mothers: int = Column(Integer, nullable=False, default=0)
    person_with_disability: int = Column(Integer, nullable=False, default=0)
    elderly_persons: int = Column(Integer, nullable=False, default=0)
    separated_children: int = Column(Integer, nullable=False, default=0)
    number_lives_lost: int = Column(Integer, nullable=False, default=0)
    number_injured: int = Column(Integer, nullable=False, default=0)
    additional_details: Optional[str] = Column(Text)


class FoodAssessment(Base):
    __tablename__ = "food_assessments"

    assessment_id: UUID = _assessment_fk()
    is_food_sufficient: bool = Column(Boolean, nullable=False, default=False)
    has_regular_meal_access: bool = Column(Boolean, nullable=False, default=False)
    has_infant_nutrition: bool = Column(Boolean, nullable=False, default=False)
    food_source: list[str] = Column(JSONType, default=list)
    available_food_duration_days: int = Column(Integer, nullable=False, default=0)
    additional_food_required_persons: int = Column(Integer, nullable=False, default=0)
    additional_food_required_households: int = Column(Integer, nullable=False, default=0)
    additional_details: Optional[str] = Column(Text)


class WashAssessment(Base):
    __tablename__ = "wash_assessments"

    assessment_id: UUID = _assessment_fk()
    water_source: list[str] = Column(JSONType, default=list)
    is_water_sufficient: bool = Column(Boolean, nullable=False, default=False)
    has_clean_water_access: bool = Column(Boolean, nullable=False, default=False)
    functional_latrines_available: int = Column(Integer, nullable=False, default=0)
    are_latrines_sufficient: bool = Column(Boolean, nullable=False, default=False)
    has_handwashing_facilities: bool = Column(Boolean, nullable=False, default=False)
    has_open_defecation_concerns: bool = Column(Boolean, nullable=False, default=False)
    additional_details: Optional[str] = Column(Text)


class ShelterAssessment(Base):
    __tablename__ = "shelter_assessments"

    assessment_id: UUID = _assessment_fk()
    are_shelters_sufficient: bool = Column(Boolean, nullable=False, default=False)
    has_safe_structures: bool = Column(Boolean, nullable=False, default=False)
    shelter_types: list[str] = Column(JSONType, default=list)
    required_shelter_type: list[str] = Column(JSONType, default=list)
    number_shelters_required: int = Column(Integer, nullable=False, default=0)
    are_overcrowded: bool = Column(Boolean, nullable=False, default=False)
    provide_weather_protection: bool = Column(Boolean, nullable=False, default=False)
    additional_details: Optional[str] = Column(Text)


class SecurityAssessment(Base):
    __tablename__ = "security_assessments"

    assessment_id: UUID = _assessment_fk()
    is_safe_from_violence: bool = Column(Boolean, nullable=False, default=False)
    gbv_cases_reported: bool = Column(Boolean, nullable=False, default=False)
    has_security_presence: bool = Column(Boolean, nullable=False, default=False)
    has_protection_reporting_mechanism: bool = Column(Boolean, nullable=False, default=False)
    vulnerable_groups_have_access: bool = Column(Boolean, nullable=False, default=False)
    has_lighting: bool = Column(Boolean, nullable=False, default=False)
    additional_details: Optional[str] = Column(Text)


DETAIL_MODELS: dict[AssessmentType, type[Base]] = {
    AssessmentType.HEALTH: HealthAssessment,
    AssessmentType.POPULATION: PopulationAssessment,
    AssessmentType.FOOD: FoodAssessment,
    AssessmentType.WASH: WashAssessment,
    AssessmentType.SHELTER: ShelterAssessment,
    AssessmentType.SECURITY: SecurityAssessment,
}


def detail_values(detail: Any) -> dict[str, Any]:
    """Column values of a detail row, without the key"""
    return {
        column.key: getattr(detail, column.key)
        for column in detail.__table__.columns
        if column.key != "assessment_id"
    }
