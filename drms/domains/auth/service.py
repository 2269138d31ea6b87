"""
Authentication and role management
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.config import settings
from drms.core.enums import RoleName
from drms.core.security import (
    verify_password, create_access_token, create_refresh_token, verify_refresh_token
)
from drms.core.exceptions import AuthenticationError, NotFoundError, ConflictError
from drms.domains.users.models import User
from drms.domains.users.repository import UserRepository, AuditLogRepository

from .models import Role
from .repository import RoleRepository, UserRoleRepository
from .schemas import TokenResponse, UserInfo, RoleInfo

logger = logging.getLogger(__name__)


SYSTEM_ROLES: dict[RoleName, tuple[str, str]] = {
    RoleName.ASSESSOR: ("Assessor", "Collects rapid and preliminary assessments in the field"),
    RoleName.COORDINATOR: ("Coordinator", "Verifies submissions and configures auto-approval"),
    RoleName.RESPONDER: ("Responder", "Plans and delivers responses"),
    RoleName.DONOR: ("Donor", "Pledges commitments to entities and incidents"),
    RoleName.ADMIN: ("Administrator", "Manages users and roles"),
}


async def ensure_system_roles(session: AsyncSession) -> list[Role]:
    """Create any missing built-in role rows (idempotent, caller commits)"""
    repo = RoleRepository(session)
    roles = []
    for code, (name, description) in SYSTEM_ROLES.items():
        role = await repo.get_by_code(code.value)
        if role is None:
            role = await repo.create(Role(code=code.value, name=name, description=description))
            logger.info(f"Created system role {code.value}")
        roles.append(role)
    return roles


class AuthService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.role_repo = RoleRepository(session)
        self.user_role_repo = UserRoleRepository(session)
        self.audit_repo = AuditLogRepository(session)

    async def login(self, login: str, password: str) -> TokenResponse:
        """
        Log a user in

        Raises:
            AuthenticationError: AU4001 bad credentials
            AuthenticationError: AU4002 account disabled or locked
        """
        user = await self.user_repo.get_by_login(login)

        if not user:
            logger.warning(f"Login failed, unknown user {login}")
            raise AuthenticationError("AU4001", "Invalid username or password")

        if not user.is_active:
            logger.warning(f"Login failed, user disabled {login}")
            raise AuthenticationError("AU4002", "Account is disabled")

        if user.is_locked:
            logger.warning(f"Login failed, user locked {login}")
            raise AuthenticationError("AU4002", "Account is locked")

        if not verify_password(password, user.password_hash):
            await self._record_failed_attempt(user)
            raise AuthenticationError("AU4001", "Invalid username or password")

        user.failed_login_attempts = 0
        user.last_login = datetime.utcnow()
        await self.user_repo.update(user)
        await self.session.commit()

        role_codes = await self.role_repo.get_user_role_codes(user.id)
        access_token = create_access_token(
            user_id=user.id,
            username=user.username,
            roles=role_codes,
        )
        refresh_token = create_refresh_token(user_id=user.id)
        logger.info(f"User {user.username} logged in with roles {role_codes}")

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.jwt_access_expire_minutes * 60,
            user=self._user_info(user, role_codes),
        )

    async def _record_failed_attempt(self, user: User) -> None:
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= settings.max_failed_login_attempts:
            user.is_locked = True
            logger.warning(f"User {user.username} locked after {user.failed_login_attempts} failed logins")
        else:
            logger.warning(f"Login failed, wrong password for {user.username}")
        await self.user_repo.update(user)
        await self.session.commit()

    async def refresh_token(self, refresh_token: str) -> dict:
        """
        Issue a new access token

        Raises:
            AuthenticationError: token invalid, or user disabled / locked
        """
        user_id_str = verify_refresh_token(refresh_token)
        if not user_id_str:
            raise AuthenticationError("AU4001", "Token is invalid or expired")

        user = await self.user_repo.get_by_id(UUID(user_id_str))
        if not user or not user.is_active or user.is_locked:
            raise AuthenticationError("AU4001", "Token is invalid or user is disabled")

        role_codes = await self.role_repo.get_user_role_codes(user.id)
        access_token = create_access_token(
            user_id=user.id,
            username=user.username,
            roles=role_codes,
        )

        return {
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": settings.jwt_access_expire_minutes * 60,
        }

    async def get_user_info(self, user_id: UUID) -> UserInfo:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)
        role_codes = await self.role_repo.get_user_role_codes(user.id)
        return self._user_info(user, role_codes)

    async def list_roles(self) -> list[RoleInfo]:
        return [RoleInfo.model_validate(r) for r in await self.role_repo.list_roles()]

    async def assign_role(
        self,
        user_id: UUID,
        role_code: RoleName,
        assigned_by: Optional[UUID] = None,
    ) -> UserInfo:
        """
        Grant a role

        Raises:
            NotFoundError: user or role missing
            ConflictError: AU4091 role already held
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)
        role = await self._get_role(role_code)

        if await self.user_role_repo.get(user_id, role.id):
            raise ConflictError("AU4091", f"User already holds role {role.code}")

        await self.user_role_repo.assign_role(user_id, role.id, assigned_by=assigned_by)
        await self.audit_repo.record(
            user_id=assigned_by,
            action="ASSIGN_ROLE",
            resource="user",
            resource_id=user_id,
            new_values={"role": role.code},
        )
        await self.session.commit()
        logger.info(f"Role {role.code} granted to {user.username}")
        return await self.get_user_info(user_id)

    async def revoke_role(
        self,
        user_id: UUID,
        role_code: RoleName,
        revoked_by: Optional[UUID] = None,
    ) -> UserInfo:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)
        role = await self._get_role(role_code)

        if not await self.user_role_repo.revoke_role(user_id, role.id):
            raise NotFoundError("user_role", f"{user_id}/{role.code}")

        await self.audit_repo.record(
            user_id=revoked_by,
            action="REVOKE_ROLE",
            resource="user",
            resource_id=user_id,
            old_values={"role": role.code},
        )
        await self.session.commit()
        logger.info(f"Role {role.code} revoked from {user.username}")
        return await self.get_user_info(user_id)

    async def _get_role(self, role_code: RoleName) -> Role:
        role = await self.role_repo.get_by_code(role_code.value)
        if not role:
            raise NotFoundError("role", role_code.value)
        return role

    @staticmethod
    def _user_info(user: User, role_codes: list[str]) -> UserInfo:
        return UserInfo(
            id=user.id,
            username=user.username,
            email=user.email,
            name=user.name,
            roles=role_codes,
        )
