"""
Import every ORM model so Base.metadata knows all tables

Used by `create_all()` and the test fixtures.
"""

from drms.domains.auth.models import Role, UserRole
from drms.domains.users.models import User, AuditLog
from drms.domains.entities.models import Entity, EntityAssignment
from drms.domains.incidents.models import Incident, PreliminaryAssessment
from drms.domains.assessments.models import (
    RapidAssessment,
    HealthAssessment,
    PopulationAssessment,
    FoodAssessment,
    WashAssessment,
    ShelterAssessment,
    SecurityAssessment,
)
from drms.domains.donors.models import Donor, DonorCommitment
from drms.domains.responses.models import RapidResponse

__all__ = [
    "Role",
    "UserRole",
    "User",
    "AuditLog",
    "Entity",
    "EntityAssignment",
    "Incident",
    "PreliminaryAssessment",
    "RapidAssessment",
    "HealthAssessment",
    "PopulationAssessment",
    "FoodAssessment",
    "WashAssessment",
    "ShelterAssessment",
    "SecurityAssessment",
    "Donor",
    "DonorCommitment",
    "RapidResponse",
]
