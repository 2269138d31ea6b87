"""
Incident data access
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import IncidentStatus

from .models import Incident, PreliminaryAssessment


class IncidentRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, incident: Incident) -> Incident:
        self.session.add(incident)
        await self.session.flush()
        await self.session.refresh(incident)
        return incident

    async def get_by_id(self, incident_id: UUID) -> Optional[Incident]:
        result = await self.session.execute(
            select(Incident).where(Incident.id == incident_id)
        )
        return result.scalar_one_or_none()

    async def list_incidents(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[IncidentStatus] = None,
        incident_type: Optional[str] = None,
    ) -> tuple[list[Incident], int]:
        query = select(Incident)
        count_query = select(func.count()).select_from(Incident)

        conditions = []
        if status:
            conditions.append(Incident.status == status)
        if incident_type:
            conditions.append(Incident.type == incident_type)

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(Incident.created_at.desc()).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        incidents = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return incidents, total

    async def list_by_ids_or_active(self, incident_id: Optional[UUID] = None) -> list[Incident]:
        query = select(Incident)
        if incident_id:
            query = query.where(Incident.id == incident_id)
        else:
            query = query.where(Incident.status != IncidentStatus.RESOLVED)
        result = await self.session.execute(query.order_by(Incident.created_at.desc()))
        return list(result.scalars().all())

    async def update(self, incident: Incident) -> Incident:
        incident.updated_at = datetime.utcnow()
        await self.session.flush()
        await self.session.refresh(incident)
        return incident


class PreliminaryAssessmentRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, assessment: PreliminaryAssessment) -> PreliminaryAssessment:
        self.session.add(assessment)
        await self.session.flush()
        await self.session.refresh(assessment)
        return assessment

    async def list_assessments(
        self,
        page: int = 1,
        page_size: int = 20,
        incident_id: Optional[UUID] = None,
    ) -> tuple[list[PreliminaryAssessment], int]:
        query = select(PreliminaryAssessment)
        count_query = select(func.count()).select_from(PreliminaryAssessment)
        if incident_id:
            query = query.where(PreliminaryAssessment.incident_id == incident_id)
            count_query = count_query.where(PreliminaryAssessment.incident_id == incident_id)

        offset = (page - 1) * page_size
        query = query.order_by(PreliminaryAssessment.reporting_date.desc()).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        items = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return items, total

    async def impact_totals(self, incident_id: UUID) -> dict[str, int]:
        """Summed casualty counts over an incident's preliminary reports"""
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(PreliminaryAssessment.number_lives_lost), 0),
                func.coalesce(func.sum(PreliminaryAssessment.number_injured), 0),
                func.coalesce(func.sum(PreliminaryAssessment.number_displaced), 0),
                func.count(),
            ).where(PreliminaryAssessment.incident_id == incident_id)
        )
        lives_lost, injured, displaced, reports = result.one()
        return {
            "lives_lost": int(lives_lost),
            "injured": int(injured),
            "displaced": int(displaced),
            "reports": int(reports),
        }
