"""
User management
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import RoleName
from drms.core.envelope import PageData
from drms.core.security import hash_password, verify_password, check_password_strength
from drms.core.exceptions import NotFoundError, ValidationError, ConflictError
from drms.domains.auth.repository import RoleRepository, UserRoleRepository

from .models import User
from .repository import UserRepository, AuditLogRepository
from .schemas import UserCreate, UserUpdate, UserResponse, AuditLogResponse

logger = logging.getLogger(__name__)

PASSWORD_POLICY_MESSAGE = "Password must be at least 8 characters and contain letters and digits"


class UserService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.role_repo = RoleRepository(session)
        self.user_role_repo = UserRoleRepository(session)
        self.audit_repo = AuditLogRepository(session)

    async def create_user(
        self,
        data: UserCreate,
        created_by: Optional[UUID] = None,
    ) -> UserResponse:
        """
        Create a user with initial roles

        Raises:
            ConflictError: US4091 username or email taken
            ValidationError: weak password
        """
        user = await self.register(
            email=data.email,
            username=data.username,
            password=data.password,
            name=data.name,
            phone=data.phone,
            organization=data.organization,
            roles=data.roles,
            created_by=created_by,
        )
        await self.session.commit()
        return await self._build_user_response(user)

    async def register(
        self,
        email: str,
        username: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
        organization: Optional[str] = None,
        roles: Optional[list[RoleName]] = None,
        created_by: Optional[UUID] = None,
    ) -> User:
        """Insert the user and role links without committing"""
        if await self.user_repo.exists(username, email):
            raise ConflictError("US4091", "Username or email already registered")

        if not check_password_strength(password):
            raise ValidationError(PASSWORD_POLICY_MESSAGE, details=[{"field": "password", "message": PASSWORD_POLICY_MESSAGE}])

        user = await self.user_repo.create(User(
            email=email.lower(),
            username=username,
            password_hash=hash_password(password),
            name=name,
            phone=phone,
            organization=organization,
        ))

        for role_code in roles or []:
            role = await self.role_repo.get_by_code(role_code.value)
            if not role:
                raise NotFoundError("role", role_code.value)
            await self.user_role_repo.assign_role(user.id, role.id, assigned_by=created_by)

        await self.audit_repo.record(
            user_id=created_by,
            action="CREATE_USER",
            resource="user",
            resource_id=user.id,
            new_values={"username": user.username, "roles": [r.value for r in roles or []]},
        )
        logger.info(f"Created user {user.username}")
        return user

    async def get_user(self, user_id: UUID) -> UserResponse:
        return await self._build_user_response(await self._get_user(user_id))

    async def list_users(
        self,
        page: int = 1,
        page_size: int = 20,
        role: Optional[RoleName] = None,
        is_active: Optional[bool] = None,
        keyword: Optional[str] = None,
    ) -> PageData[UserResponse]:
        users, total = await self.user_repo.list_users(
            page=page,
            page_size=page_size,
            role=role.value if role else None,
            is_active=is_active,
            keyword=keyword,
        )
        items = [await self._build_user_response(user) for user in users]
        return PageData.build(items, total, page, page_size)

    async def update_user(
        self,
        user_id: UUID,
        data: UserUpdate,
        updated_by: Optional[UUID] = None,
    ) -> UserResponse:
        user = await self._get_user(user_id)

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(user, field, value)

        user = await self.user_repo.update(user)
        await self.audit_repo.record(
            user_id=updated_by,
            action="UPDATE_USER",
            resource="user",
            resource_id=user.id,
            new_values=update_data,
        )
        result = await self._build_user_response(user)
        await self.session.commit()
        return result

    async def set_active(
        self,
        user_id: UUID,
        is_active: bool,
        changed_by: Optional[UUID] = None,
    ) -> UserResponse:
        user = await self._get_user(user_id)
        user.is_active = is_active
        user = await self.user_repo.update(user)
        await self.audit_repo.record(
            user_id=changed_by,
            action="ACTIVATE_USER" if is_active else "DEACTIVATE_USER",
            resource="user",
            resource_id=user.id,
        )
        await self.session.commit()
        logger.info(f"User {user.username} active={is_active}")
        return await self._build_user_response(user)

    async def unlock_user(
        self,
        user_id: UUID,
        unlocked_by: Optional[UUID] = None,
    ) -> UserResponse:
        user = await self._get_user(user_id)
        user.is_locked = False
        user.failed_login_attempts = 0
        user = await self.user_repo.update(user)
        await self.audit_repo.record(
            user_id=unlocked_by,
            action="UNLOCK_USER",
            resource="user",
            resource_id=user.id,
        )
        await self.session.commit()
        return await self._build_user_response(user)

    async def change_password(
        self,
        user_id: UUID,
        old_password: str,
        new_password: str,
    ) -> None:
        """
        Change the caller's password

        Raises:
            ValidationError: old password wrong or new password too weak
        """
        user = await self._get_user(user_id)

        if not verify_password(old_password, user.password_hash):
            raise ValidationError("Old password is incorrect", details=[{"field": "old_password", "message": "incorrect"}])

        if not check_password_strength(new_password):
            raise ValidationError(PASSWORD_POLICY_MESSAGE, details=[{"field": "new_password", "message": PASSWORD_POLICY_MESSAGE}])

        user.password_hash = hash_password(new_password)
        await self.user_repo.update(user)
        await self.audit_repo.record(
            user_id=user_id,
            action="CHANGE_PASSWORD",
            resource="user",
            resource_id=user.id,
        )
        await self.session.commit()

    async def list_audit_logs(
        self,
        page: int = 1,
        page_size: int = 50,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> PageData[AuditLogResponse]:
        logs, total = await self.audit_repo.list_logs(
            page=page,
            page_size=page_size,
            resource=resource,
            resource_id=resource_id,
            action=action,
            user_id=user_id,
        )
        items = [AuditLogResponse.model_validate(log) for log in logs]
        return PageData.build(items, total, page, page_size)

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)
        return user

    async def _build_user_response(self, user: User) -> UserResponse:
        roles = await self.role_repo.get_user_role_codes(user.id)
        response = UserResponse.model_validate(user)
        response.roles = roles
        return response
