"""
Role data access
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Role, UserRole


class RoleRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, role: Role) -> Role:
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def get_by_code(self, code: str) -> Optional[Role]:
        result = await self.session.execute(
            select(Role).where(Role.code == code)
        )
        return result.scalar_one_or_none()

    async def list_roles(self) -> list[Role]:
        result = await self.session.execute(select(Role).order_by(Role.code))
        return list(result.scalars().all())

    async def get_user_roles(self, user_id: UUID) -> list[Role]:
        result = await self.session.execute(
            select(Role).join(
                UserRole, Role.id == UserRole.role_id
            ).where(UserRole.user_id == user_id).order_by(Role.code)
        )
        return list(result.scalars().all())

    async def get_user_role_codes(self, user_id: UUID) -> list[str]:
        return [r.code for r in await self.get_user_roles(user_id)]


class UserRoleRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: UUID, role_id: UUID) -> Optional[UserRole]:
        result = await self.session.execute(
            select(UserRole).where(
                and_(UserRole.user_id == user_id, UserRole.role_id == role_id)
            )
        )
        return result.scalar_one_or_none()

    async def assign_role(
        self,
        user_id: UUID,
        role_id: UUID,
        assigned_by: Optional[UUID] = None,
    ) -> UserRole:
        user_role = UserRole(
            user_id=user_id,
            role_id=role_id,
            assigned_by=assigned_by,
        )
        self.session.add(user_role)
        await self.session.flush()
        await self.session.refresh(user_role)
        return user_role

    async def revoke_role(self, user_id: UUID, role_id: UUID) -> bool:
        result = await self.session.execute(
            delete(UserRole).where(
                and_(
                    UserRole.user_id == user_id,
                    UserRole.role_id == role_id
                )
            )
        )
        await self.session.flush()
        return result.rowcount > 0
