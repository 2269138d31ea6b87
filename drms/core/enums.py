"""
Shared domain enums

Member names equal their values; columns store them as VARCHAR.
"""

from enum import Enum


class RoleName(str, Enum):
    ASSESSOR = "ASSESSOR"
    COORDINATOR = "COORDINATOR"
    RESPONDER = "RESPONDER"
    DONOR = "DONOR"
    ADMIN = "ADMIN"


class Priority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def level(self) -> int:
        """LOW=1 .. CRITICAL=4"""
        return PRIORITY_LEVELS[self]


PRIORITY_LEVELS: dict[Priority, int] = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
    Priority.CRITICAL: 4,
}


class AssessmentType(str, Enum):
    HEALTH = "HEALTH"
    WASH = "WASH"
    SHELTER = "SHELTER"
    FOOD = "FOOD"
    SECURITY = "SECURITY"
    POPULATION = "POPULATION"


class ResponseType(str, Enum):
    HEALTH = "HEALTH"
    WASH = "WASH"
    SHELTER = "SHELTER"
    FOOD = "FOOD"
    SECURITY = "SECURITY"
    POPULATION = "POPULATION"
    LOGISTICS = "LOGISTICS"


class VerificationStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    VERIFIED = "VERIFIED"
    AUTO_VERIFIED = "AUTO_VERIFIED"
    REJECTED = "REJECTED"

    @property
    def is_verified(self) -> bool:
        return self in (VerificationStatus.VERIFIED, VerificationStatus.AUTO_VERIFIED)


class EntityType(str, Enum):
    COMMUNITY = "COMMUNITY"
    WARD = "WARD"
    LGA = "LGA"
    STATE = "STATE"
    FACILITY = "FACILITY"
    CAMP = "CAMP"


class IncidentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CONTAINED = "CONTAINED"
    RESOLVED = "RESOLVED"


class ResponseStatus(str, Enum):
    PLANNED = "PLANNED"
    DELIVERED = "DELIVERED"


class DonorType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    ORGANIZATION = "ORGANIZATION"
    GOVERNMENT = "GOVERNMENT"
    NGO = "NGO"
    CORPORATE = "CORPORATE"


class CommitmentStatus(str, Enum):
    PLANNED = "PLANNED"
    PARTIAL = "PARTIAL"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"


class RejectionReason(str, Enum):
    INCOMPLETE_DATA = "INCOMPLETE_DATA"
    INACCURATE_INFORMATION = "INACCURATE_INFORMATION"
    MISSING_DOCUMENTATION = "MISSING_DOCUMENTATION"
    LOCATION_MISMATCH = "LOCATION_MISMATCH"
    DUPLICATE_ASSESSMENT = "DUPLICATE_ASSESSMENT"
    QUALITY_ISSUES = "QUALITY_ISSUES"
    OTHER = "OTHER"
