"""
FastAPI dependencies

Authentication (bearer token or session cookie) and role checks.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from .security import verify_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ADMIN_ROLE = "ADMIN"


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Resolve the caller from the Authorization header or the session cookie

    The account is reloaded on every request, so deactivation, locking and
    role changes apply to tokens already issued.

    Returns:
        Token payload dict (sub, username, roles) with the current roles

    Raises:
        AuthenticationError 401: token missing, invalid or expired (AU4001),
            account disabled or locked (AU4002)
    """
    # imported here: the domain packages import this module
    from drms.domains.auth.repository import RoleRepository
    from drms.domains.users.repository import UserRepository

    token = _extract_token(request, credentials)
    if not token:
        raise AuthenticationError("AU4001", "Authentication token not provided")

    payload = verify_access_token(token)
    if not payload:
        raise AuthenticationError("AU4001", "Token is invalid or expired")

    user = await UserRepository(db).get_by_id(UUID(payload["sub"]))
    if not user:
        raise AuthenticationError("AU4001", "Token is invalid or expired")
    if not user.is_active:
        logger.warning(f"Token of disabled user {user.id} refused")
        raise AuthenticationError("AU4002", "Account is disabled")
    if user.is_locked:
        raise AuthenticationError("AU4002", "Account is locked")

    roles = await RoleRepository(db).get_user_role_codes(user.id)
    return {**payload, "username": user.username, "roles": roles}


def current_user_id(current_user: dict[str, Any]) -> UUID:
    return UUID(current_user["sub"])


def has_role(current_user: dict[str, Any], *roles: str) -> bool:
    user_roles: list[str] = current_user.get("roles", [])
    if ADMIN_ROLE in user_roles:
        return True
    return any(role in user_roles for role in roles)


def require_roles(*roles: str) -> Callable:
    """
    Role check dependency factory

    Usage:
        @router.post("/", dependencies=[Depends(require_roles("COORDINATOR"))])

    ADMIN passes every role gate.

    Raises:
        AuthorizationError 403: caller holds none of the roles
    """
    async def check_role(
        current_user: dict = Depends(get_current_user),
    ) -> None:
        if not has_role(current_user, *roles):
            raise AuthorizationError("AU4003", f"Requires role: {' or '.join(roles)}")

    return check_role
