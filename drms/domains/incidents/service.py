"""
Incidents and preliminary assessments
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import IncidentStatus
from drms.core.envelope import PageData
from drms.core.exceptions import ConflictError, NotFoundError
from drms.domains.gap_analysis import population_impact_severity
from drms.domains.users.repository import AuditLogRepository

from .models import Incident, PreliminaryAssessment
from .repository import IncidentRepository, PreliminaryAssessmentRepository
from .schemas import (
    IncidentCreate, IncidentUpdate, IncidentResponse,
    PreliminaryAssessmentCreate, PreliminaryAssessmentResponse,
)

logger = logging.getLogger(__name__)


INCIDENT_TRANSITIONS: dict[IncidentStatus, set[IncidentStatus]] = {
    IncidentStatus.ACTIVE: {IncidentStatus.CONTAINED, IncidentStatus.RESOLVED},
    IncidentStatus.CONTAINED: {IncidentStatus.ACTIVE, IncidentStatus.RESOLVED},
    IncidentStatus.RESOLVED: set(),
}


class IncidentService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = IncidentRepository(session)
        self.preliminary_repo = PreliminaryAssessmentRepository(session)
        self.audit_repo = AuditLogRepository(session)

    async def create(self, data: IncidentCreate, created_by: UUID) -> IncidentResponse:
        incident = await self._create_incident(data, created_by)
        await self.session.commit()
        return IncidentResponse.model_validate(incident)

    async def get(self, incident_id: UUID) -> IncidentResponse:
        return IncidentResponse.model_validate(await self.get_incident(incident_id))

    async def get_incident(self, incident_id: UUID) -> Incident:
        incident = await self.repo.get_by_id(incident_id)
        if not incident:
            raise NotFoundError("incident", incident_id)
        return incident

    async def list_incidents(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[IncidentStatus] = None,
        incident_type: Optional[str] = None,
    ) -> PageData[IncidentResponse]:
        incidents, total = await self.repo.list_incidents(page, page_size, status, incident_type)
        items = [IncidentResponse.model_validate(i) for i in incidents]
        return PageData.build(items, total, page, page_size)

    async def update(self, incident_id: UUID, data: IncidentUpdate, updated_by: UUID) -> IncidentResponse:
        incident = await self.get_incident(incident_id)
        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(incident, field, value)
        incident = await self.repo.update(incident)
        await self.audit_repo.record(
            user_id=updated_by,
            action="UPDATE",
            resource="incident",
            resource_id=incident.id,
            new_values=update_data,
        )
        result = IncidentResponse.model_validate(incident)
        await self.session.commit()
        return result

    async def update_status(
        self,
        incident_id: UUID,
        status: IncidentStatus,
        updated_by: UUID,
    ) -> IncidentResponse:
        """
        Raises:
            ConflictError: IN4091 transition not allowed
        """
        incident = await self.get_incident(incident_id)
        current = IncidentStatus(incident.status)
        if status not in INCIDENT_TRANSITIONS[current]:
            raise ConflictError(
                "IN4091",
                f"Cannot change incident status from {current.value} to {status.value}",
            )

        incident.status = status
        incident.resolved_at = datetime.utcnow() if status == IncidentStatus.RESOLVED else None
        incident = await self.repo.update(incident)
        await self.audit_repo.record(
            user_id=updated_by,
            action="UPDATE_STATUS",
            resource="incident",
            resource_id=incident.id,
            old_values={"status": current.value},
            new_values={"status": status.value},
        )
        await self.session.commit()
        logger.info(f"Incident {incident.id} {current.value} -> {status.value}")
        return IncidentResponse.model_validate(incident)

    async def create_preliminary(
        self,
        data: PreliminaryAssessmentCreate,
        created_by: UUID,
    ) -> PreliminaryAssessmentResponse:
        """
        Record a preliminary report, optionally opening a new incident whose
        severity starts at the report's impact severity.
        """
        severity = population_impact_severity(
            lives_lost=data.number_lives_lost,
            injured=data.number_injured,
            displaced=data.number_displaced,
        )

        incident_id = data.incident_id
        if incident_id:
            await self.get_incident(incident_id)
        elif data.new_incident:
            incident_data = data.new_incident.model_copy(update={"severity": severity})
            incident = await self._create_incident(incident_data, created_by)
            incident_id = incident.id

        values = data.model_dump(exclude={"incident_id", "new_incident", "reporting_date"})
        assessment = await self.preliminary_repo.create(PreliminaryAssessment(
            **values,
            reporting_date=data.reporting_date or datetime.utcnow(),
            incident_id=incident_id,
            created_by=created_by,
        ))
        await self.audit_repo.record(
            user_id=created_by,
            action="CREATE",
            resource="preliminary_assessment",
            resource_id=assessment.id,
            new_values={"incident_id": incident_id, "impact_severity": severity.value},
        )
        await self.session.commit()
        logger.info(f"Preliminary assessment {assessment.id} recorded, impact {severity.value}")
        return self._preliminary_response(assessment)

    async def list_preliminary(
        self,
        page: int = 1,
        page_size: int = 20,
        incident_id: Optional[UUID] = None,
    ) -> PageData[PreliminaryAssessmentResponse]:
        items, total = await self.preliminary_repo.list_assessments(page, page_size, incident_id)
        return PageData.build([self._preliminary_response(a) for a in items], total, page, page_size)

    async def _create_incident(self, data: IncidentCreate, created_by: UUID) -> Incident:
        incident = await self.repo.create(Incident(**data.model_dump(), created_by=created_by))
        await self.audit_repo.record(
            user_id=created_by,
            action="CREATE",
            resource="incident",
            resource_id=incident.id,
            new_values=data.model_dump(),
        )
        logger.info(f"Incident created: {incident.type} ({incident.severity.value})")
        return incident

    @staticmethod
    def _preliminary_response(assessment: PreliminaryAssessment) -> PreliminaryAssessmentResponse:
        response = PreliminaryAssessmentResponse.model_validate(assessment)
        response.impact_severity = population_impact_severity(
            lives_lost=assessment.number_lives_lost,
            injured=assessment.number_injured,
            displaced=assessment.number_displaced,
        )
        return response
