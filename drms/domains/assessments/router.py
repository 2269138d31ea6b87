"""
Rapid assessment routes

/api/v1/assessments/*
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import AssessmentType, Priority, RoleName, VerificationStatus
from drms.core.envelope import ApiResponse, PageData
from drms.domains.gap_analysis import GapAnalysisResponse

from .schemas import RapidAssessmentCreate, RapidAssessmentUpdate, RapidAssessmentResponse
from .service import RapidAssessmentService


router = APIRouter(prefix="/assessments", tags=["Rapid Assessments"])

assessor_only = [Depends(require_roles(RoleName.ASSESSOR.value))]


def get_service(db: AsyncSession = Depends(get_db)) -> RapidAssessmentService:
    return RapidAssessmentService(db)


@router.post(
    "",
    response_model=ApiResponse[RapidAssessmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create rapid assessment",
    description="Creates the assessment and its type detail; `submit=true` submits it for verification",
    dependencies=assessor_only,
)
async def create_assessment(
    data: RapidAssessmentCreate,
    current_user: dict = Depends(get_current_user),
    service: RapidAssessmentService = Depends(get_service),
) -> ApiResponse[RapidAssessmentResponse]:
    return ApiResponse.ok(await service.create(data, current_user))


@router.get(
    "",
    response_model=ApiResponse[PageData[RapidAssessmentResponse]],
    summary="List rapid assessments",
)
async def list_assessments(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    entity_id: Optional[UUID] = Query(None),
    incident_id: Optional[UUID] = Query(None),
    type: Optional[AssessmentType] = Query(None),
    verification_status: Optional[VerificationStatus] = Query(None),
    priority: Optional[Priority] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: RapidAssessmentService = Depends(get_service),
) -> ApiResponse[PageData[RapidAssessmentResponse]]:
    result = await service.list_assessments(
        current_user,
        page=page,
        page_size=page_size,
        entity_id=entity_id,
        incident_id=incident_id,
        assessment_type=type,
        verification_status=verification_status,
        priority=priority,
        date_from=date_from,
        date_to=date_to,
    )
    return ApiResponse.ok(result)


@router.get(
    "/{assessment_id}",
    response_model=ApiResponse[RapidAssessmentResponse],
    summary="Get rapid assessment",
)
async def get_assessment(
    assessment_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: RapidAssessmentService = Depends(get_service),
) -> ApiResponse[RapidAssessmentResponse]:
    return ApiResponse.ok(await service.get(assessment_id, current_user))


@router.put(
    "/{assessment_id}",
    response_model=ApiResponse[RapidAssessmentResponse],
    summary="Update rapid assessment",
    description="Only DRAFT or REJECTED assessments, only by their assessor",
    dependencies=assessor_only,
)
async def update_assessment(
    assessment_id: UUID,
    data: RapidAssessmentUpdate,
    current_user: dict = Depends(get_current_user),
    service: RapidAssessmentService = Depends(get_service),
) -> ApiResponse[RapidAssessmentResponse]:
    result = await service.update(assessment_id, data, current_user_id(current_user))
    return ApiResponse.ok(result)


@router.delete(
    "/{assessment_id}",
    response_model=ApiResponse[dict],
    summary="Delete draft assessment",
    dependencies=assessor_only,
)
async def delete_assessment(
    assessment_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: RapidAssessmentService = Depends(get_service),
) -> ApiResponse[dict]:
    await service.delete(assessment_id, current_user_id(current_user))
    return ApiResponse.ok({"deleted": True})


@router.post(
    "/{assessment_id}/submit",
    response_model=ApiResponse[RapidAssessmentResponse],
    summary="Submit for verification",
    description="DRAFT or REJECTED -> SUBMITTED; auto-approved when the entity rules match",
    dependencies=assessor_only,
)
async def submit_assessment(
    assessment_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: RapidAssessmentService = Depends(get_service),
) -> ApiResponse[RapidAssessmentResponse]:
    result = await service.submit(assessment_id, current_user_id(current_user))
    return ApiResponse.ok(result)


@router.get(
    "/{assessment_id}/gap-analysis",
    response_model=ApiResponse[GapAnalysisResponse],
    summary="Gap analysis of one assessment",
)
async def get_gap_analysis(
    assessment_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: RapidAssessmentService = Depends(get_service),
) -> ApiResponse[GapAnalysisResponse]:
    return ApiResponse.ok(await service.gap_analysis(assessment_id))
