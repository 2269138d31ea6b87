"""
User management routes

/api/v1/users/*
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import RoleName
from drms.core.envelope import ApiResponse, PageData

from .schemas import UserCreate, UserUpdate, UserResponse, PasswordChange
from .service import UserService


router = APIRouter(prefix="/users", tags=["Users"])

admin_only = [Depends(require_roles(RoleName.ADMIN.value))]


def get_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Current user profile",
)
async def get_me(
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
) -> ApiResponse[UserResponse]:
    return ApiResponse.ok(await service.get_user(current_user_id(current_user)))


@router.put(
    "/me/password",
    response_model=ApiResponse[dict],
    summary="Change password",
)
async def change_password(
    data: PasswordChange,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
) -> ApiResponse[dict]:
    await service.change_password(
        user_id=current_user_id(current_user),
        old_password=data.old_password,
        new_password=data.new_password,
    )
    return ApiResponse.ok({"changed": True})


@router.post(
    "",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    dependencies=admin_only,
)
async def create_user(
    data: UserCreate,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
) -> ApiResponse[UserResponse]:
    result = await service.create_user(data, created_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.get(
    "",
    response_model=ApiResponse[PageData[UserResponse]],
    summary="List users",
    dependencies=admin_only,
)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: Optional[RoleName] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None),
    keyword: Optional[str] = Query(None, description="Match username, name or email"),
    service: UserService = Depends(get_service),
) -> ApiResponse[PageData[UserResponse]]:
    result = await service.list_users(
        page=page,
        page_size=page_size,
        role=role,
        is_active=is_active,
        keyword=keyword,
    )
    return ApiResponse.ok(result)


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Get user",
    dependencies=admin_only,
)
async def get_user(
    user_id: UUID,
    service: UserService = Depends(get_service),
) -> ApiResponse[UserResponse]:
    return ApiResponse.ok(await service.get_user(user_id))


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Update user",
    dependencies=admin_only,
)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
) -> ApiResponse[UserResponse]:
    result = await service.update_user(user_id, data, updated_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.post(
    "/{user_id}/activate",
    response_model=ApiResponse[UserResponse],
    summary="Activate user",
    dependencies=admin_only,
)
async def activate_user(
    user_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
) -> ApiResponse[UserResponse]:
    result = await service.set_active(user_id, True, changed_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.post(
    "/{user_id}/deactivate",
    response_model=ApiResponse[UserResponse],
    summary="Deactivate user",
    dependencies=admin_only,
)
async def deactivate_user(
    user_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
) -> ApiResponse[UserResponse]:
    result = await service.set_active(user_id, False, changed_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.post(
    "/{user_id}/unlock",
    response_model=ApiResponse[UserResponse],
    summary="Unlock user",
    dependencies=admin_only,
)
async def unlock_user(
    user_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
) -> ApiResponse[UserResponse]:
    result = await service.unlock_user(user_id, unlocked_by=current_user_id(current_user))
    return ApiResponse.ok(result)
