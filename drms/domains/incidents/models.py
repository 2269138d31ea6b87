"""
Incident ORM models

Tables:
- incidents
- preliminary_assessments
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import Column, String, Integer, DateTime, Float, Text, Enum, ForeignKey, Uuid

from drms.core.database import Base
from drms.core.enums import IncidentStatus, Priority


class Incident(Base):
    """Disaster event"""
    __tablename__ = "incidents"

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    type: str = Column(String(100), nullable=False, comment="Hazard, e.g. FLOOD, FIRE, CONFLICT")
    sub_type: Optional[str] = Column(String(100), comment="Refinement of type")
    severity: Priority = Column(Enum(Priority, native_enum=False, length=20), nullable=False, default=Priority.MEDIUM)
    status: IncidentStatus = Column(
        Enum(IncidentStatus, native_enum=False, length=20),
        nullable=False,
        default=IncidentStatus.ACTIVE,
    )
    description: Optional[str] = Column(Text)
    location: Optional[str] = Column(String(300))
    latitude: Optional[float] = Column(Float)
    longitude: Optional[float] = Column(Float)

    created_by: Optional[UUID] = Column(Uuid, ForeignKey("users.id"))
    resolved_at: Optional[datetime] = Column(DateTime(timezone=True))

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class PreliminaryAssessment(Base):
    """
    First report from the field, before rapid assessments

    Casualty counts drive the population impact severity of the incident.
    """
    __tablename__ = "preliminary_assessments"

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    reporting_date: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    reporting_latitude: Optional[float] = Column(Float)
    reporting_longitude: Optional[float] = Column(Float)
    reporting_lga: str = Column(String(200), nullable=False, comment="Local government area")
    reporting_ward: str = Column(String(200), nullable=False)

    number_lives_lost: int = Column(Integer, nullable=False, default=0)
    number_injured: int = Column(Integer, nullable=False, default=0)
    number_displaced: int = Column(Integer, nullable=False, default=0)
    number_houses_affected: int = Column(Integer, nullable=False, default=0)
    number_schools_affected: int = Column(Integer, nullable=False, default=0)
    number_medical_facilities_affected: int = Column(Integer, nullable=False, default=0)
    estimated_agricultural_lands_affected: Optional[str] = Column(String(200))

    reporting_agent: str = Column(String(200), nullable=False)
    additional_details: Optional[str] = Column(Text)

    incident_id: Optional[UUID] = Column(Uuid, ForeignKey("incidents.id"), index=True)
    created_by: UUID = Column(Uuid, ForeignKey("users.id"), nullable=False)

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
