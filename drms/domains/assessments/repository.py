"""
Rapid assessment data access
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func, and_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import AssessmentType, Priority, VerificationStatus

from .models import RapidAssessment, DETAIL_MODELS


class RapidAssessmentRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, assessment: RapidAssessment, detail: dict[str, Any]) -> RapidAssessment:
        """Insert the assessment and its single detail row"""
        self.session.add(assessment)
        await self.session.flush()
        detail_model = DETAIL_MODELS[assessment.type]
        self.session.add(detail_model(assessment_id=assessment.id, **detail))
        await self.session.flush()
        await self.session.refresh(assessment)
        return assessment

    async def get_by_id(self, assessment_id: UUID) -> Optional[RapidAssessment]:
        result = await self.session.execute(
            select(RapidAssessment).where(RapidAssessment.id == assessment_id)
        )
        return result.scalar_one_or_none()

    async def get_detail(self, assessment: RapidAssessment) -> Optional[Any]:
        detail_model = DETAIL_MODELS[AssessmentType(assessment.type)]
        return await self.session.get(detail_model, assessment.id)

    async def get_details(
        self,
        assessment_type: AssessmentType,
        assessment_ids: list[UUID],
    ) -> dict[UUID, Any]:
        if not assessment_ids:
            return {}
        detail_model = DETAIL_MODELS[assessment_type]
        result = await self.session.execute(
            select(detail_model).where(detail_model.assessment_id.in_(assessment_ids))
        )
        return {d.assessment_id: d for d in result.scalars().all()}

    async def update_detail(self, assessment: RapidAssessment, values: dict[str, Any]) -> Any:
        detail = await self.get_detail(assessment)
        for field, value in values.items():
            setattr(detail, field, value)
        await self.session.flush()
        return detail

    async def update(self, assessment: RapidAssessment) -> RapidAssessment:
        assessment.updated_at = datetime.utcnow()
        await self.session.flush()
        await self.session.refresh(assessment)
        return assessment

    async def delete(self, assessment: RapidAssessment) -> None:
        detail_model = DETAIL_MODELS[AssessmentType(assessment.type)]
        await self.session.execute(
            delete(detail_model).where(detail_model.assessment_id == assessment.id)
        )
        await self.session.delete(assessment)
        await self.session.flush()

    async def list_assessments(
        self,
        page: int = 1,
        page_size: int = 20,
        assessor_id: Optional[UUID] = None,
        entity_id: Optional[UUID] = None,
        incident_id: Optional[UUID] = None,
        assessment_type: Optional[AssessmentType] = None,
        verification_status: Optional[VerificationStatus] = None,
        priority: Optional[Priority] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> tuple[list[RapidAssessment], int]:
        query = select(RapidAssessment)
        count_query = select(func.count()).select_from(RapidAssessment)

        conditions = []
        if assessor_id:
            conditions.append(RapidAssessment.assessor_id == assessor_id)
        if entity_id:
            conditions.append(RapidAssessment.entity_id == entity_id)
        if incident_id:
            conditions.append(RapidAssessment.incident_id == incident_id)
        if assessment_type:
            conditions.append(RapidAssessment.type == assessment_type)
        if verification_status:
            conditions.append(RapidAssessment.verification_status == verification_status)
        if priority:
            conditions.append(RapidAssessment.priority == priority)
        if date_from:
            conditions.append(RapidAssessment.assessment_date >= date_from)
        if date_to:
            conditions.append(RapidAssessment.assessment_date <= date_to)

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(RapidAssessment.assessment_date.desc()).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        assessments = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return assessments, total

    async def list_verified(
        self,
        incident_id: Optional[UUID] = None,
        entity_id: Optional[UUID] = None,
    ) -> list[RapidAssessment]:
        """Verified or auto-verified assessments, newest first"""
        query = select(RapidAssessment).where(
            RapidAssessment.verification_status.in_(
                [VerificationStatus.VERIFIED, VerificationStatus.AUTO_VERIFIED]
            )
        )
        if incident_id:
            query = query.where(RapidAssessment.incident_id == incident_id)
        if entity_id:
            query = query.where(RapidAssessment.entity_id == entity_id)
        query = query.order_by(RapidAssessment.assessment_date.desc(), RapidAssessment.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_status(self, incident_id: Optional[UUID] = None) -> dict[str, int]:
        query = select(RapidAssessment.verification_status, func.count()).group_by(
            RapidAssessment.verification_status
        )
        if incident_id:
            query = query.where(RapidAssessment.incident_id == incident_id)
        result = await self.session.execute(query)
        counts = {status.value: 0 for status in VerificationStatus}
        for status, count in result.all():
            counts[VerificationStatus(status).value] = count
        return counts
