"""
Donor data access
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import CommitmentStatus, DonorType

from .models import Donor, DonorCommitment


class DonorRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, donor: Donor) -> Donor:
        self.session.add(donor)
        await self.session.flush()
        await self.session.refresh(donor)
        return donor

    async def get_by_id(self, donor_id: UUID) -> Optional[Donor]:
        result = await self.session.execute(
            select(Donor).where(Donor.id == donor_id)
        )
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: UUID) -> Optional[Donor]:
        result = await self.session.execute(
            select(Donor).where(Donor.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, donor_ids: list[UUID]) -> list[Donor]:
        if not donor_ids:
            return []
        result = await self.session.execute(
            select(Donor).where(Donor.id.in_(donor_ids))
        )
        return list(result.scalars().all())

    async def list_donors(
        self,
        page: int = 1,
        page_size: int = 20,
        donor_type: Optional[DonorType] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[Donor], int]:
        query = select(Donor)
        count_query = select(func.count()).select_from(Donor)

        conditions = []
        if donor_type:
            conditions.append(Donor.type == donor_type)
        if is_active is not None:
            conditions.append(Donor.is_active == is_active)

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(Donor.name).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        donors = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return donors, total

    async def update(self, donor: Donor) -> Donor:
        donor.updated_at = datetime.utcnow()
        await self.session.flush()
        await self.session.refresh(donor)
        return donor


class CommitmentRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, commitment: DonorCommitment) -> DonorCommitment:
        self.session.add(commitment)
        await self.session.flush()
        await self.session.refresh(commitment)
        return commitment

    async def get_by_id(self, commitment_id: UUID) -> Optional[DonorCommitment]:
        result = await self.session.execute(
            select(DonorCommitment).where(DonorCommitment.id == commitment_id)
        )
        return result.scalar_one_or_none()

    async def list_commitments(
        self,
        page: int = 1,
        page_size: int = 20,
        donor_id: Optional[UUID] = None,
        entity_ids: Optional[list[UUID]] = None,
        incident_id: Optional[UUID] = None,
        statuses: Optional[list[CommitmentStatus]] = None,
    ) -> tuple[list[DonorCommitment], int]:
        query = select(DonorCommitment)
        count_query = select(func.count()).select_from(DonorCommitment)

        conditions = []
        if donor_id:
            conditions.append(DonorCommitment.donor_id == donor_id)
        if entity_ids is not None:
            conditions.append(DonorCommitment.entity_id.in_(entity_ids))
        if incident_id:
            conditions.append(DonorCommitment.incident_id == incident_id)
        if statuses:
            conditions.append(DonorCommitment.status.in_(statuses))

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(DonorCommitment.commitment_date.desc()).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        commitments = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return commitments, total

    async def stats_for_donor(self, donor_id: UUID) -> list[tuple[CommitmentStatus, int, int, int]]:
        """(status, count, committed, delivered) rows"""
        result = await self.session.execute(
            select(
                DonorCommitment.status,
                func.count(),
                func.coalesce(func.sum(DonorCommitment.total_committed_quantity), 0),
                func.coalesce(func.sum(DonorCommitment.delivered_quantity), 0),
            ).where(DonorCommitment.donor_id == donor_id).group_by(DonorCommitment.status)
        )
        return [tuple(row) for row in result.all()]

    async def update(self, commitment: DonorCommitment) -> DonorCommitment:
        commitment.last_updated = datetime.utcnow()
        await self.session.flush()
        await self.session.refresh(commitment)
        return commitment

    async def draw(
        self,
        commitment_id: UUID,
        quantity: int,
        statuses: tuple[CommitmentStatus, ...],
    ) -> bool:
        """
        Add `quantity` to delivered_quantity in a single guarded UPDATE

        Matches only while the commitment is in `statuses` and still has
        `quantity` left; False when another request got there first.
        """
        delivered = DonorCommitment.delivered_quantity + quantity
        result = await self.session.execute(
            update(DonorCommitment)
            .where(
                DonorCommitment.id == commitment_id,
                DonorCommitment.status.in_(statuses),
                DonorCommitment.total_committed_quantity - DonorCommitment.delivered_quantity >= quantity,
            )
            .values(
                delivered_quantity=delivered,
                status=case(
                    (delivered >= DonorCommitment.total_committed_quantity, CommitmentStatus.COMPLETE.value),
                    else_=CommitmentStatus.PARTIAL.value,
                ),
                last_updated=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def supported_entities(self, donor_id: UUID) -> dict[UUID, int]:
        """
        Entities the donor holds a commitment for that is not cancelled

        Returns:
            entity_id -> number of PLANNED or PARTIAL commitments
        """
        active = case(
            (DonorCommitment.status.in_([CommitmentStatus.PLANNED, CommitmentStatus.PARTIAL]), 1),
            else_=0,
        )
        result = await self.session.execute(
            select(DonorCommitment.entity_id, func.sum(active))
            .where(
                DonorCommitment.donor_id == donor_id,
                DonorCommitment.status != CommitmentStatus.CANCELLED,
            )
            .group_by(DonorCommitment.entity_id)
        )
        return {entity_id: int(count or 0) for entity_id, count in result.all()}

    async def leaderboard_rows(
        self,
        since: Optional[datetime] = None,
    ) -> list[tuple[UUID, CommitmentStatus, int, int, int]]:
        """(donor_id, status, count, committed, delivered) rows for active donors"""
        query = (
            select(
                DonorCommitment.donor_id,
                DonorCommitment.status,
                func.count(),
                func.coalesce(func.sum(DonorCommitment.total_committed_quantity), 0),
                func.coalesce(func.sum(DonorCommitment.delivered_quantity), 0),
            )
            .join(Donor, Donor.id == DonorCommitment.donor_id)
            .where(Donor.is_active.is_(True))
            .group_by(DonorCommitment.donor_id, DonorCommitment.status)
        )
        if since:
            query = query.where(DonorCommitment.commitment_date >= since)
        result = await self.session.execute(query)
        return [tuple(row) for row in result.all()]
