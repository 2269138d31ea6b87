"""
Entity data access
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, delete, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import EntityType

from .models import Entity, EntityAssignment


class EntityRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, entity: Entity) -> Entity:
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: UUID) -> Optional[Entity]:
        result = await self.session.execute(
            select(Entity).where(Entity.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, entity_ids: list[UUID]) -> list[Entity]:
        if not entity_ids:
            return []
        result = await self.session.execute(
            select(Entity).where(Entity.id.in_(entity_ids)).order_by(Entity.name)
        )
        return list(result.scalars().all())

    async def exists_name(self, name: str, entity_type: EntityType) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(Entity).where(
                and_(Entity.name == name, Entity.type == entity_type)
            )
        )
        return result.scalar() > 0

    async def list_entities(
        self,
        page: int = 1,
        page_size: int = 20,
        entity_type: Optional[EntityType] = None,
        is_active: Optional[bool] = None,
        auto_approve_enabled: Optional[bool] = None,
        keyword: Optional[str] = None,
    ) -> tuple[list[Entity], int]:
        query = select(Entity)
        count_query = select(func.count()).select_from(Entity)

        conditions = []
        if entity_type:
            conditions.append(Entity.type == entity_type)
        if is_active is not None:
            conditions.append(Entity.is_active == is_active)
        if auto_approve_enabled is not None:
            conditions.append(Entity.auto_approve_enabled == auto_approve_enabled)
        if keyword:
            conditions.append(
                or_(
                    Entity.name.ilike(f"%{keyword}%"),
                    Entity.location.ilike(f"%{keyword}%"),
                )
            )

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(Entity.name).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        entities = list(result.scalars().all())
        total = (await self.session.execute(count_query)).scalar() or 0
        return entities, total

    async def list_all_active(self) -> list[Entity]:
        result = await self.session.execute(
            select(Entity).where(Entity.is_active.is_(True)).order_by(Entity.name)
        )
        return list(result.scalars().all())

    async def update(self, entity: Entity) -> Entity:
        entity.updated_at = datetime.utcnow()
        await self.session.flush()
        await self.session.refresh(entity)
        return entity


class EntityAssignmentRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, assignment: EntityAssignment) -> EntityAssignment:
        self.session.add(assignment)
        await self.session.flush()
        await self.session.refresh(assignment)
        return assignment

    async def is_assigned(self, user_id: UUID, entity_id: UUID) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(EntityAssignment).where(
                and_(
                    EntityAssignment.user_id == user_id,
                    EntityAssignment.entity_id == entity_id,
                )
            )
        )
        return result.scalar() > 0

    async def get_entity_ids_for_user(self, user_id: UUID) -> list[UUID]:
        result = await self.session.execute(
            select(EntityAssignment.entity_id).where(EntityAssignment.user_id == user_id)
        )
        return list(result.scalars().all())

    async def list_for_entity(self, entity_id: UUID) -> list[EntityAssignment]:
        result = await self.session.execute(
            select(EntityAssignment).where(
                EntityAssignment.entity_id == entity_id
            ).order_by(EntityAssignment.assigned_at)
        )
        return list(result.scalars().all())

    async def delete(self, user_id: UUID, entity_id: UUID) -> bool:
        result = await self.session.execute(
            delete(EntityAssignment).where(
                and_(
                    EntityAssignment.user_id == user_id,
                    EntityAssignment.entity_id == entity_id,
                )
            )
        )
        await self.session.flush()
        return result.rowcount > 0
