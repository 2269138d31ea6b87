"""
Rapid assessment module

One assessment per hazard category per entity visit, each with exactly one
type detail record.
"""

from .models import (
    RapidAssessment,
    HealthAssessment,
    PopulationAssessment,
    FoodAssessment,
    WashAssessment,
    ShelterAssessment,
    SecurityAssessment,
    DETAIL_MODELS,
)
from .service import RapidAssessmentService
from .router import router as assessments_router

__all__ = [
    "RapidAssessment",
    "HealthAssessment",
    "PopulationAssessment",
    "FoodAssessment",
    "WashAssessment",
    "ShelterAssessment",
    "SecurityAssessment",
    "DETAIL_MODELS",
    "RapidAssessmentService",
    "assessments_router",
]
