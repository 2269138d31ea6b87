"""
Rapid response routes

/api/v1/responses/*
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import ResponseStatus, ResponseType, RoleName, VerificationStatus
from drms.core.envelope import ApiResponse, PageData

from .schemas import (
    RapidResponsePlan, RapidResponseFromCommitment, RapidResponseUpdate,
    DeliveryConfirmation, RapidResponseResponse,
    CollaborationRequest, CollaborationStatus,
)
from .service import RapidResponseService


router = APIRouter(prefix="/responses", tags=["Responses"])

responder_only = [Depends(require_roles(RoleName.RESPONDER.value))]


def get_service(db: AsyncSession = Depends(get_db)) -> RapidResponseService:
    return RapidResponseService(db)


@router.post(
    "",
    response_model=ApiResponse[RapidResponseResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Plan response",
    description="The assessment must be VERIFIED or AUTO_VERIFIED; one PLANNED response per assessment.",
    dependencies=responder_only,
)
async def plan_response(
    data: RapidResponsePlan,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    return ApiResponse.ok(await service.plan(data, current_user_id(current_user)))


@router.post(
    "/from-commitment",
    response_model=ApiResponse[RapidResponseResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Plan response from a donor commitment",
    dependencies=responder_only,
)
async def plan_from_commitment(
    data: RapidResponseFromCommitment,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    return ApiResponse.ok(await service.plan_from_commitment(data, current_user_id(current_user)))


@router.get(
    "",
    response_model=ApiResponse[PageData[RapidResponseResponse]],
    summary="Responses for assigned entities",
    dependencies=responder_only,
)
async def list_responses(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    entity_id: Optional[UUID] = Query(None),
    assessment_id: Optional[UUID] = Query(None),
    status: Optional[ResponseStatus] = Query(None),
    type: Optional[ResponseType] = Query(None),
    verification_status: Optional[VerificationStatus] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[PageData[RapidResponseResponse]]:
    result = await service.list_for_responder(
        current_user_id(current_user),
        page=page,
        page_size=page_size,
        entity_id=entity_id,
        assessment_id=assessment_id,
        status=status,
        response_type=type,
        verification_status=verification_status,
    )
    return ApiResponse.ok(result)


@router.get(
    "/{response_id}",
    response_model=ApiResponse[RapidResponseResponse],
    summary="Get response",
)
async def get_response(
    response_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    return ApiResponse.ok(await service.get(response_id, current_user))


@router.put(
    "/{response_id}",
    response_model=ApiResponse[RapidResponseResponse],
    summary="Update planned response",
    dependencies=responder_only,
)
async def update_response(
    response_id: UUID,
    data: RapidResponseUpdate,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    return ApiResponse.ok(await service.update(response_id, data, current_user_id(current_user)))


@router.post(
    "/{response_id}/deliver",
    response_model=ApiResponse[RapidResponseResponse],
    summary="Confirm delivery",
    description="PLANNED -> DELIVERED; the response is then submitted for verification.",
    dependencies=responder_only,
)
async def confirm_delivery(
    response_id: UUID,
    data: DeliveryConfirmation,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    return ApiResponse.ok(await service.confirm_delivery(response_id, data, current_user_id(current_user)))


@router.post(
    "/{response_id}/submit",
    response_model=ApiResponse[RapidResponseResponse],
    summary="Resubmit for verification",
    dependencies=responder_only,
)
async def submit_response(
    response_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    return ApiResponse.ok(await service.submit(response_id, current_user_id(current_user)))


@router.get(
    "/{response_id}/collaboration",
    response_model=ApiResponse[CollaborationStatus],
    summary="Collaboration status",
    dependencies=responder_only,
)
async def get_collaboration(
    response_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[CollaborationStatus]:
    return ApiResponse.ok(await service.collaboration_status(response_id, current_user_id(current_user)))


@router.post(
    "/{response_id}/collaboration",
    response_model=ApiResponse[CollaborationStatus],
    summary="Join, leave, start or stop editing",
    dependencies=responder_only,
)
async def collaborate(
    response_id: UUID,
    data: CollaborationRequest,
    current_user: dict = Depends(get_current_user),
    service: RapidResponseService = Depends(get_service),
) -> ApiResponse[CollaborationStatus]:
    result = await service.collaborate(response_id, data.action, current_user_id(current_user))
    return ApiResponse.ok(result)
