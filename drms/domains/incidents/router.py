"""
Incident routes

/api/v1/incidents/*
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import IncidentStatus, RoleName
from drms.core.envelope import ApiResponse, PageData

from .schemas import (
    IncidentCreate, IncidentUpdate, IncidentStatusUpdate, IncidentResponse,
    PreliminaryAssessmentCreate, PreliminaryAssessmentResponse,
)
from .service import IncidentService


router = APIRouter(prefix="/incidents", tags=["Incidents"])

coordinator_only = [Depends(require_roles(RoleName.COORDINATOR.value))]


def get_service(db: AsyncSession = Depends(get_db)) -> IncidentService:
    return IncidentService(db)


@router.post(
    "",
    response_model=ApiResponse[IncidentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create incident",
    dependencies=coordinator_only,
)
async def create_incident(
    data: IncidentCreate,
    current_user: dict = Depends(get_current_user),
    service: IncidentService = Depends(get_service),
) -> ApiResponse[IncidentResponse]:
    return ApiResponse.ok(await service.create(data, created_by=current_user_id(current_user)))


@router.get(
    "",
    response_model=ApiResponse[PageData[IncidentResponse]],
    summary="List incidents",
)
async def list_incidents(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[IncidentStatus] = Query(None),
    type: Optional[str] = Query(None, description="Hazard type"),
    current_user: dict = Depends(get_current_user),
    service: IncidentService = Depends(get_service),
) -> ApiResponse[PageData[IncidentResponse]]:
    return ApiResponse.ok(await service.list_incidents(page, page_size, status, type))


@router.post(
    "/preliminary-assessments",
    response_model=ApiResponse[PreliminaryAssessmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Record a preliminary assessment",
    description="Optionally opens a new incident from the report",
    dependencies=[Depends(require_roles(RoleName.ASSESSOR.value, RoleName.COORDINATOR.value))],
)
async def create_preliminary_assessment(
    data: PreliminaryAssessmentCreate,
    current_user: dict = Depends(get_current_user),
    service: IncidentService = Depends(get_service),
) -> ApiResponse[PreliminaryAssessmentResponse]:
    result = await service.create_preliminary(data, created_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.get(
    "/preliminary-assessments",
    response_model=ApiResponse[PageData[PreliminaryAssessmentResponse]],
    summary="List preliminary assessments",
)
async def list_preliminary_assessments(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    incident_id: Optional[UUID] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: IncidentService = Depends(get_service),
) -> ApiResponse[PageData[PreliminaryAssessmentResponse]]:
    return ApiResponse.ok(await service.list_preliminary(page, page_size, incident_id))


@router.get(
    "/{incident_id}",
    response_model=ApiResponse[IncidentResponse],
    summary="Get incident",
)
async def get_incident(
    incident_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: IncidentService = Depends(get_service),
) -> ApiResponse[IncidentResponse]:
    return ApiResponse.ok(await service.get(incident_id))


@router.put(
    "/{incident_id}",
    response_model=ApiResponse[IncidentResponse],
    summary="Update incident",
    dependencies=coordinator_only,
)
async def update_incident(
    incident_id: UUID,
    data: IncidentUpdate,
    current_user: dict = Depends(get_current_user),
    service: IncidentService = Depends(get_service),
) -> ApiResponse[IncidentResponse]:
    result = await service.update(incident_id, data, updated_by=current_user_id(current_user))
    return ApiResponse.ok(result)


@router.put(
    "/{incident_id}/status",
    response_model=ApiResponse[IncidentResponse],
    summary="Change incident status",
    description="ACTIVE <-> CONTAINED, either -> RESOLVED",
    dependencies=coordinator_only,
)
async def update_incident_status(
    incident_id: UUID,
    data: IncidentStatusUpdate,
    current_user: dict = Depends(get_current_user),
    service: IncidentService = Depends(get_service),
) -> ApiResponse[IncidentResponse]:
    result = await service.update_status(incident_id, data.status, updated_by=current_user_id(current_user))
    return ApiResponse.ok(result)
