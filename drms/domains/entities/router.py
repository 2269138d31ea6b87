"""
Entity routes

/api/v1/entities/*
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import EntityType, RoleName
from drms.core.envelope import ApiResponse, PageData

from .schemas import (
    EntityCreate, EntityUpdate, EntityResponse,
    EntityAssignmentCreate, EntityAssignmentResponse,
)
from .service import EntityService


router = APIRouter(prefix="/entities", tags=["Entities"])

coordinator_only = [Depends(require_roles(RoleName.COORDINATOR.value))]


def get_service(db: AsyncSession = Depends(get_db)) -> EntityService:
    return EntityService(db)


@router.post(
    "",
    response_model=ApiResponse[EntityResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create entity",
    dependencies=coordinator_only,
)
async def create_entity(
    data: EntityCreate,
    current_user: dict = Depends(get_current_user),
    service: EntityService = Depends(get_service),
) -> ApiResponse[EntityResponse]:
    return ApiResponse.ok(await service.create(data, created_by=current_user_id(current_user)))


@router.get(
    "",
    response_model=ApiResponse[PageData[EntityResponse]],
    summary="List entities",
)
async def list_entities(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    type: Optional[EntityType] = Query(None, description="Entity type"),
    is_active: Optional[bool] = Query(None),
    keyword: Optional[str] = Query(None, description="Match name or location"),
    current_user: dict = Depends(get_current_user),
    service: EntityService = Depends(get_service),
) -> ApiResponse[PageData[EntityResponse]]:
    result = await service.list_entities(
        page=page,
        page_size=page_size,
        entity_type=type,
        is_active=is_active,
        keyword=keyword,
    )
    return ApiResponse.ok(result)


@router.get(
    "/assigned",
    response_model=ApiResponse[list[EntityResponse]],
    summary="Entities assigned to the caller",
)
async def list_assigned_entities(
    current_user: dict = Depends(get_current_user),
    service: EntityService = Depends(get_service),
) -> ApiResponse[list[EntityResponse]]:
    return ApiResponse.ok(await service.list_assigned(current_user_id(current_user)))


@router.get(
    "/{entity_id}",
    response_model=ApiResponse[EntityResponse],
    summary="Get entity",
)
async def get_entity(
    entity_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: EntityService = Depends(get_service),
) -> ApiResponse[EntityResponse]:
    return ApiResponse.ok(await service.get(entity_id))


@router.put(
    "/{entity_id}",
    response_model=ApiResponse[EntityResponse],
    summary="Update entity",
    dependencies=coordinator_only,
)
async def update_entity(
    entity_id: UUID,
    data: EntityUpdate,
    current_user: dict = Depends(get_current_user),
    service: EntityService = Depends(get_service),
) -> ApiResponse[EntityResponse]:
    result = await service.update(entity_id, data, updated_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.get(
    "/{entity_id}/assignments",
    response_model=ApiResponse[list[EntityAssignmentResponse]],
    summary="List users assigned to an entity",
    dependencies=coordinator_only,
)
async def list_assignments(
    entity_id: UUID,
    service: EntityService = Depends(get_service),
) -> ApiResponse[list[EntityAssignmentResponse]]:
    return ApiResponse.ok(await service.list_assignments(entity_id))


@router.post(
    "/{entity_id}/assignments",
    response_model=ApiResponse[EntityAssignmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Assign a user to an entity",
    dependencies=coordinator_only,
)
async def assign_user(
    entity_id: UUID,
    data: EntityAssignmentCreate,
    current_user: dict = Depends(get_current_user),
    service: EntityService = Depends(get_service),
) -> ApiResponse[EntityAssignmentResponse]:
    result = await service.assign_user(entity_id, data.user_id, assigned_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.delete(
    "/{entity_id}/assignments/{user_id}",
    response_model=ApiResponse[dict],
    summary="Remove a user assignment",
    dependencies=coordinator_only,
)
async def unassign_user(
    entity_id: UUID,
    user_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: EntityService = Depends(get_service),
) -> ApiResponse[dict]:
    await service.unassign_user(entity_id, user_id, removed_by=current_user_id(current_user))
    return ApiResponse.ok({"removed": True})
