"""
Incident schemas
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from drms.core.enums import IncidentStatus, Priority


class IncidentCreate(BaseModel):
    type: str = Field(..., min_length=1, max_length=100, description="Hazard, e.g. FLOOD")
    sub_type: Optional[str] = Field(None, max_length=100)
    severity: Priority = Field(Priority.MEDIUM)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=300)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class IncidentUpdate(BaseModel):
    sub_type: Optional[str] = Field(None, max_length=100)
    severity: Optional[Priority] = None
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=300)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("severity")
    @classmethod
    def reject_null(cls, v: Optional[Priority]) -> Priority:
        if v is None:
            raise ValueError("cannot be null")
        return v


class IncidentStatusUpdate(BaseModel):
    status: IncidentStatus


class IncidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    sub_type: Optional[str] = None
    severity: Priority
    status: IncidentStatus
    description: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_by: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PreliminaryAssessmentCreate(BaseModel):
    """
    Preliminary report

    Either link an existing incident (`incident_id`) or describe a new one
    (`new_incident`); not both.
    """
    reporting_date: Optional[datetime] = None
    reporting_latitude: Optional[float] = Field(None, ge=-90, le=90)
    reporting_longitude: Optional[float] = Field(None, ge=-180, le=180)
    reporting_lga: str = Field(..., min_length=1, max_length=200)
    reporting_ward: str = Field(..., min_length=1, max_length=200)
    number_lives_lost: int = Field(0, ge=0)
    number_injured: int = Field(0, ge=0)
    number_displaced: int = Field(0, ge=0)
    number_houses_affected: int = Field(0, ge=0)
    number_schools_affected: int = Field(0, ge=0)
    number_medical_facilities_affected: int = Field(0, ge=0)
    estimated_agricultural_lands_affected: Optional[str] = Field(None, max_length=200)
    reporting_agent: str = Field(..., min_length=1, max_length=200)
    additional_details: Optional[str] = None
    incident_id: Optional[UUID] = None
    new_incident: Optional[IncidentCreate] = None

    @model_validator(mode="after")
    def check_incident_link(self) -> "PreliminaryAssessmentCreate":
        if self.incident_id and self.new_incident:
            raise ValueError("provide either incident_id or new_incident, not both")
        return self


class PreliminaryAssessmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reporting_date: datetime
    reporting_latitude: Optional[float] = None
    reporting_longitude: Optional[float] = None
    reporting_lga: str
    reporting_ward: str
    number_lives_lost: int
    number_injured: int
    number_displaced: int
    number_houses_affected: int
    number_schools_affected: int
    number_medical_facilities_affected: int
    estimated_agricultural_lands_affected: Optional[str] = None
    reporting_agent: str
    additional_details: Optional[str] = None
    incident_id: Optional[UUID] = None
    created_by: UUID
    impact_severity: Optional[Priority] = None
