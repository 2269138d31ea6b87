"""
Rapid response data access
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import priority_rank
from drms.core.enums import Priority, ResponseStatus, ResponseType, VerificationStatus
from drms.domains.assessments.models import RapidAssessment

from .models import RapidResponse


class RapidResponseRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, response: RapidResponse) -> RapidResponse:
        self.session.add(response)
        await self.session.flush()
        await self.session.refresh(response)
        return response

    async def get_by_id(self, response_id: UUID) -> Optional[RapidResponse]:
        result = await self.session.execute(
            select(RapidResponse).where(RapidResponse.id == response_id)
        )
        return result.scalar_one_or_none()

    async def has_planned_for_assessment(self, assessment_id: UUID) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(RapidResponse).where(
                RapidResponse.assessment_id == assessment_id,
                RapidResponse.status == ResponseStatus.PLANNED,
            )
        )
        return (result.scalar() or 0) > 0

    async def list_responses(
        self,
        page: int = 1,
        page_size: int = 20,
        entity_ids: Optional[list[UUID]] = None,
        entity_id: Optional[UUID] = None,
        assessment_id: Optional[UUID] = None,
        status: Optional[ResponseStatus] = None,
        response_type: Optional[ResponseType] = None,
        priority: Optional[Priority] = None,
        verification_status: Optional[VerificationStatus] = None,
        donor_id: Optional[UUID] = None,
    ) -> tuple[list[RapidResponse], int]:
        """Highest priority first, then most recently planned"""
        query = select(RapidResponse)
        count_query = select(func.count()).select_from(RapidResponse)

        conditions = []
        if entity_ids is not None:
            conditions.append(RapidResponse.entity_id.in_(entity_ids))
        if entity_id:
            conditions.append(RapidResponse.entity_id == entity_id)
        if assessment_id:
            conditions.append(RapidResponse.assessment_id == assessment_id)
        if status:
            conditions.append(RapidResponse.status == status)
        if response_type:
            conditions.append(RapidResponse.type == response_type)
        if priority:
            conditions.append(RapidResponse.priority == priority)
        if verification_status:
            conditions.append(RapidResponse.verification_status == verification_status)
        if donor_id:
            conditions.append(RapidResponse.donor_id == donor_id)

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(
            priority_rank(RapidResponse.priority).desc(),
            RapidResponse.planned_date.desc(),
        ).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        responses = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return responses, total

    async def update(self, response: RapidResponse) -> RapidResponse:
        response.updated_at = datetime.utcnow()
        await self.session.flush()
        await self.session.refresh(response)
        return response

    async def count_by_status(self, incident_id: Optional[UUID] = None) -> dict[str, int]:
        """Responses per verification status, optionally for one incident"""
        query = select(RapidResponse.verification_status, func.count()).group_by(
            RapidResponse.verification_status
        )
        if incident_id:
            query = query.join(
                RapidAssessment, RapidAssessment.id == RapidResponse.assessment_id
            ).where(RapidAssessment.incident_id == incident_id)
        result = await self.session.execute(query)
        counts = {status.value: 0 for status in VerificationStatus}
        for status, count in result.all():
            counts[VerificationStatus(status).value] = count
        return counts
