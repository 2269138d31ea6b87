"""
Entity management and user assignments
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import EntityType
from drms.core.envelope import PageData
from drms.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from drms.domains.users.repository import UserRepository, AuditLogRepository

from .models import Entity, EntityAssignment
from .repository import EntityRepository, EntityAssignmentRepository
from .schemas import (
    EntityCreate, EntityUpdate, EntityResponse, EntityAssignmentResponse
)

logger = logging.getLogger(__name__)


async def ensure_entity_access(
    session: AsyncSession,
    user_id: UUID,
    entity_id: UUID,
) -> Entity:
    """
    Load an active entity the user is assigned to

    Raises:
        NotFoundError: entity missing
        ConflictError: EN4092 entity inactive
        AuthorizationError: EN4031 user not assigned
    """
    entity = await EntityRepository(session).get_by_id(entity_id)
    if not entity:
        raise NotFoundError("entity", entity_id)
    if not entity.is_active:
        raise ConflictError("EN4092", f"Entity {entity.name} is inactive")
    if not await EntityAssignmentRepository(session).is_assigned(user_id, entity_id):
        raise AuthorizationError("EN4031", "You are not assigned to this entity")
    return entity


class EntityService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = EntityRepository(session)
        self.assignment_repo = EntityAssignmentRepository(session)
        self.user_repo = UserRepository(session)
        self.audit_repo = AuditLogRepository(session)

    async def create(self, data: EntityCreate, created_by: UUID) -> EntityResponse:
        """
        Raises:
            ConflictError: EN4091 same name and type exists
        """
        if await self.repo.exists_name(data.name, data.type):
            raise ConflictError("EN4091", f"Entity {data.name} ({data.type.value}) already exists")

        entity = await self.repo.create(Entity(**data.model_dump()))
        await self.audit_repo.record(
            user_id=created_by,
            action="CREATE",
            resource="entity",
            resource_id=entity.id,
            new_values=data.model_dump(),
        )
        await self.session.commit()
        logger.info(f"Entity created: {entity.name} ({entity.type.value})")
        return EntityResponse.model_validate(entity)

    async def get(self, entity_id: UUID) -> EntityResponse:
        return EntityResponse.model_validate(await self._get(entity_id))

    async def list_entities(
        self,
        page: int = 1,
        page_size: int = 20,
        entity_type: Optional[EntityType] = None,
        is_active: Optional[bool] = None,
        keyword: Optional[str] = None,
    ) -> PageData[EntityResponse]:
        entities, total = await self.repo.list_entities(
            page=page,
            page_size=page_size,
            entity_type=entity_type,
            is_active=is_active,
            keyword=keyword,
        )
        items = [EntityResponse.model_validate(e) for e in entities]
        return PageData.build(items, total, page, page_size)

    async def list_assigned(self, user_id: UUID) -> list[EntityResponse]:
        entity_ids = await self.assignment_repo.get_entity_ids_for_user(user_id)
        entities = await self.repo.get_by_ids(entity_ids)
        return [EntityResponse.model_validate(e) for e in entities]

    async def update(self, entity_id: UUID, data: EntityUpdate, updated_by: UUID) -> EntityResponse:
        entity = await self._get(entity_id)

        update_data = data.model_dump(exclude_unset=True)
        old_values = {field: getattr(entity, field) for field in update_data}
        for field, value in update_data.items():
            setattr(entity, field, value)

        try:
            entity = await self.repo.update(entity)
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("EN4091", "Another entity with this name and type exists")

        await self.audit_repo.record(
            user_id=updated_by,
            action="UPDATE",
            resource="entity",
            resource_id=entity.id,
            old_values=old_values,
            new_values=update_data,
        )
        result = EntityResponse.model_validate(entity)
        await self.session.commit()
        return result

    async def assign_user(
        self,
        entity_id: UUID,
        user_id: UUID,
        assigned_by: UUID,
    ) -> EntityAssignmentResponse:
        """
        Raises:
            NotFoundError: entity or user missing
            ConflictError: EN4093 already assigned
        """
        await self._get(entity_id)
        if not await self.user_repo.get_by_id(user_id):
            raise NotFoundError("user", user_id)
        if await self.assignment_repo.is_assigned(user_id, entity_id):
            raise ConflictError("EN4093", "User is already assigned to this entity")

        assignment = await self.assignment_repo.create(EntityAssignment(
            user_id=user_id,
            entity_id=entity_id,
            assigned_by=assigned_by,
        ))
        await self.audit_repo.record(
            user_id=assigned_by,
            action="ASSIGN_USER",
            resource="entity",
            resource_id=entity_id,
            new_values={"user_id": user_id},
        )
        await self.session.commit()
        return EntityAssignmentResponse.model_validate(assignment)

    async def unassign_user(self, entity_id: UUID, user_id: UUID, removed_by: UUID) -> None:
        if not await self.assignment_repo.delete(user_id, entity_id):
            raise NotFoundError("entity_assignment", f"{entity_id}/{user_id}")
        await self.audit_repo.record(
            user_id=removed_by,
            action="UNASSIGN_USER",
            resource="entity",
            resource_id=entity_id,
            old_values={"user_id": user_id},
        )
        await self.session.commit()

    async def list_assignments(self, entity_id: UUID) -> list[EntityAssignmentResponse]:
        await self._get(entity_id)
        assignments = await self.assignment_repo.list_for_entity(entity_id)
        return [EntityAssignmentResponse.model_validate(a) for a in assignments]

    async def _get(self, entity_id: UUID) -> Entity:
        entity = await self.repo.get_by_id(entity_id)
        if not entity:
            raise NotFoundError("entity", entity_id)
        return entity
