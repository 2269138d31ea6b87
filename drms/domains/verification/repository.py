"""
Verification queries shared by assessments and responses

Both RapidAssessment and RapidResponse carry the same verification columns,
so these helpers take the model class.
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import priority_rank
from drms.core.enums import Priority, VerificationStatus


class VerificationRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def queue(
        self,
        model: Any,
        page: int = 1,
        page_size: int = 20,
        entity_id: Optional[UUID] = None,
        item_type: Optional[str] = None,
        priority: Optional[Priority] = None,
    ) -> tuple[list[Any], int]:
        """SUBMITTED items, highest priority first, oldest submission first"""
        conditions = [model.verification_status == VerificationStatus.SUBMITTED]
        if entity_id:
            conditions.append(model.entity_id == entity_id)
        if item_type:
            conditions.append(model.type == item_type)
        if priority:
            conditions.append(model.priority == priority)

        query = (
            select(model)
            .where(and_(*conditions))
            .order_by(priority_rank(model.priority).desc(), model.submitted_at.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        count_query = select(func.count()).select_from(model).where(and_(*conditions))

        result = await self.session.execute(query)
        items = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return items, total

    async def count_by_status(
        self,
        model: Any,
        entity_id: Optional[UUID] = None,
    ) -> dict[VerificationStatus, int]:
        query = select(model.verification_status, func.count()).group_by(model.verification_status)
        if entity_id:
            query = query.where(model.entity_id == entity_id)
        result = await self.session.execute(query)
        counts = {status: 0 for status in VerificationStatus}
        for status, count in result.all():
            counts[VerificationStatus(status)] = count
        return counts

    async def count_per_entity(
        self,
        model: Any,
        status: VerificationStatus,
    ) -> dict[UUID, int]:
        result = await self.session.execute(
            select(model.entity_id, func.count())
            .where(model.verification_status == status)
            .group_by(model.entity_id)
        )
        return {entity_id: count for entity_id, count in result.all()}
