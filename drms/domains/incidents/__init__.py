"""
Incident module

Disaster events and the preliminary reports that open them.
"""

from .models import Incident, PreliminaryAssessment
from .service import IncidentService, INCIDENT_TRANSITIONS
from .router import router as incidents_router

__all__ = [
    "Incident",
    "PreliminaryAssessment",
    "IncidentService",
    "INCIDENT_TRANSITIONS",
    "incidents_router",
]
