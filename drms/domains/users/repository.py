"""
User data access

CRUD for User and AuditLog.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User, AuditLog


class UserRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, user: User) -> User:
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_login(self, login: str) -> Optional[User]:
        """Look a user up by username or email"""
        result = await self.session.execute(
            select(User).where(
                or_(User.username == login, User.email == login.lower())
            )
        )
        return result.scalar_one_or_none()

    async def exists(self, username: str, email: str) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(User).where(
                or_(User.username == username, User.email == email.lower())
            )
        )
        return result.scalar() > 0

    async def list_users(
        self,
        page: int = 1,
        page_size: int = 20,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        keyword: Optional[str] = None,
    ) -> tuple[list[User], int]:
        """
        Paginated user list

        Returns:
            (users, total)
        """
        query = select(User)
        count_query = select(func.count()).select_from(User)

        conditions = []
        if role:
            # deferred: auth imports this module
            from drms.domains.auth.models import Role, UserRole

            role_users = select(UserRole.user_id).join(
                Role, Role.id == UserRole.role_id
            ).where(Role.code == role)
            conditions.append(User.id.in_(role_users))
        if is_active is not None:
            conditions.append(User.is_active == is_active)
        if keyword:
            conditions.append(
                or_(
                    User.username.ilike(f"%{keyword}%"),
                    User.name.ilike(f"%{keyword}%"),
                    User.email.ilike(f"%{keyword}%"),
                )
            )

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(User.created_at.desc()).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        users = list(result.scalars().all())

        count_result = await self.session.execute(count_query)
        total = count_result.scalar() or 0

        return users, total

    async def update(self, user: User) -> User:
        user.updated_at = datetime.utcnow()
        await self.session.flush()
        await self.session.refresh(user)
        return user


class AuditLogRepository:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record(
        self,
        user_id: Optional[UUID],
        action: str,
        resource: str,
        resource_id: Any,
        old_values: Optional[dict[str, Any]] = None,
        new_values: Optional[dict[str, Any]] = None,
        details: Optional[str] = None,
    ) -> AuditLog:
        """Add an audit entry to the current transaction (caller commits)"""
        log = AuditLog(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_values=jsonable_encoder(old_values) if old_values is not None else None,
            new_values=jsonable_encoder(new_values) if new_values is not None else None,
            details=details,
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def list_logs(
        self,
        page: int = 1,
        page_size: int = 50,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> tuple[list[AuditLog], int]:
        query = select(AuditLog)
        count_query = select(func.count()).select_from(AuditLog)

        conditions = []
        if resource:
            conditions.append(AuditLog.resource == resource)
        if resource_id:
            conditions.append(AuditLog.resource_id == resource_id)
        if action:
            conditions.append(AuditLog.action == action)
        if user_id:
            conditions.append(AuditLog.user_id == user_id)

        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        offset = (page - 1) * page_size
        query = query.order_by(AuditLog.timestamp.desc()).offset(offset).limit(page_size)

        result = await self.session.execute(query)
        logs = list(result.scalars().all())

        total = (await self.session.execute(count_query)).scalar() or 0
        return logs, total
