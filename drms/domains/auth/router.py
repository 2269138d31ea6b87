"""
Authentication routes

/api/v1/auth/*
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.config import settings
from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import RoleName
from drms.core.envelope import ApiResponse

from .schemas import (
    LoginRequest, TokenResponse, RefreshRequest, RefreshResponse,
    UserInfo, RoleInfo, RoleAssignRequest,
)
from .service import AuthService


router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post(
    "/login",
    response_model=ApiResponse[TokenResponse],
    summary="Log in",
    description="Verify credentials, return JWT tokens and set the session cookie",
)
async def login(
    data: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_service),
) -> ApiResponse[TokenResponse]:
    result = await service.login(data.username, data.password)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=result.access_token,
        max_age=result.expires_in,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return ApiResponse.ok(result)


@router.post(
    "/logout",
    response_model=ApiResponse[dict],
    summary="Log out",
    description="Clear the session cookie (bearer clients drop their token)",
)
async def logout(
    response: Response,
    current_user: dict = Depends(get_current_user),
) -> ApiResponse[dict]:
    response.delete_cookie(settings.session_cookie_name)
    return ApiResponse.ok({"logged_out": True})


@router.post(
    "/refresh",
    response_model=ApiResponse[RefreshResponse],
    summary="Refresh token",
)
async def refresh_token(
    data: RefreshRequest,
    service: AuthService = Depends(get_service),
) -> ApiResponse[RefreshResponse]:
    result = await service.refresh_token(data.refresh_token)
    return ApiResponse.ok(RefreshResponse(**result))


@router.get(
    "/me",
    response_model=ApiResponse[UserInfo],
    summary="Current user",
)
async def me(
    current_user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_service),
) -> ApiResponse[UserInfo]:
    return ApiResponse.ok(await service.get_user_info(current_user_id(current_user)))


@router.get(
    "/roles",
    response_model=ApiResponse[list[RoleInfo]],
    summary="List roles",
    dependencies=[Depends(require_roles(RoleName.ADMIN.value))],
)
async def list_roles(
    service: AuthService = Depends(get_service),
) -> ApiResponse[list[RoleInfo]]:
    return ApiResponse.ok(await service.list_roles())


@router.post(
    "/users/{user_id}/roles",
    response_model=ApiResponse[UserInfo],
    status_code=status.HTTP_201_CREATED,
    summary="Grant a role",
    dependencies=[Depends(require_roles(RoleName.ADMIN.value))],
)
async def assign_role(
    user_id: UUID,
    data: RoleAssignRequest,
    current_user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_service),
) -> ApiResponse[UserInfo]:
    result = await service.assign_role(user_id, data.role, assigned_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.delete(
    "/users/{user_id}/roles/{role}",
    response_model=ApiResponse[UserInfo],
    summary="Revoke a role",
    dependencies=[Depends(require_roles(RoleName.ADMIN.value))],
)
async def revoke_role(
    user_id: UUID,
    role: RoleName,
    current_user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_service),
) -> ApiResponse[UserInfo]:
    result = await service.revoke_role(user_id, role, revoked_by=current_user_id(current_user))
    return ApiResponse.ok(result)
