"""
Donor routes

/api/v1/donors/*
/api/v1/commitments/*
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import CommitmentStatus, DonorType, RoleName
from drms.core.envelope import ApiResponse, PageData

from .schemas import (
    DonorRegisterRequest, DonorUpdate, DonorResponse, DonorStatsResponse,
    CommitmentCreate, CommitmentStatusUpdate, CommitmentResponse,
    CommitmentAssign, CommitmentAssignmentRecord,
    LeaderboardResponse, LeaderboardSort, LeaderboardTimeframe, SupportedEntity,
)
from .service import DonorService, CommitmentService


router = APIRouter(prefix="/donors", tags=["Donors"])
commitments_router = APIRouter(prefix="/commitments", tags=["Commitments"])

donor_only = [Depends(require_roles(RoleName.DONOR.value))]
coordinator_only = [Depends(require_roles(RoleName.COORDINATOR.value))]


def get_service(db: AsyncSession = Depends(get_db)) -> DonorService:
    return DonorService(db)


def get_commitment_service(db: AsyncSession = Depends(get_db)) -> CommitmentService:
    return CommitmentService(db)


@router.post(
    "/register",
    response_model=ApiResponse[DonorResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register as a donor",
    description="Public endpoint. Creates a login account with the DONOR role and a donor profile.",
)
async def register_donor(
    data: DonorRegisterRequest,
    service: DonorService = Depends(get_service),
) -> ApiResponse[DonorResponse]:
    return ApiResponse.ok(await service.register(data))


@router.get(
    "",
    response_model=ApiResponse[PageData[DonorResponse]],
    summary="List donors",
    dependencies=coordinator_only,
)
async def list_donors(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    type: Optional[DonorType] = Query(None),
    is_active: Optional[bool] = Query(None),
    service: DonorService = Depends(get_service),
) -> ApiResponse[PageData[DonorResponse]]:
    result = await service.list_donors(page=page, page_size=page_size, donor_type=type, is_active=is_active)
    return ApiResponse.ok(result)


@router.get(
    "/me",
    response_model=ApiResponse[DonorResponse],
    summary="Own donor profile",
    dependencies=donor_only,
)
async def get_my_profile(
    current_user: dict = Depends(get_current_user),
    service: DonorService = Depends(get_service),
) -> ApiResponse[DonorResponse]:
    donor = await service.get_profile(current_user_id(current_user))
    return ApiResponse.ok(DonorResponse.model_validate(donor))


@router.put(
    "/me",
    response_model=ApiResponse[DonorResponse],
    summary="Update own donor profile",
    dependencies=donor_only,
)
async def update_my_profile(
    data: DonorUpdate,
    current_user: dict = Depends(get_current_user),
    service: DonorService = Depends(get_service),
) -> ApiResponse[DonorResponse]:
    return ApiResponse.ok(await service.update_profile(current_user_id(current_user), data))


@router.get(
    "/me/stats",
    response_model=ApiResponse[DonorStatsResponse],
    summary="Own commitment statistics",
    dependencies=donor_only,
)
async def get_my_stats(
    current_user: dict = Depends(get_current_user),
    service: DonorService = Depends(get_service),
) -> ApiResponse[DonorStatsResponse]:
    donor = await service.get_profile(current_user_id(current_user))
    return ApiResponse.ok(await service.stats(donor.id))


@router.get(
    "/me/entities",
    response_model=ApiResponse[list[SupportedEntity]],
    summary="Entities the donor supports",
    description="Entities with at least one commitment from the caller that is not cancelled.",
    dependencies=donor_only,
)
async def list_supported_entities(
    current_user: dict = Depends(get_current_user),
    service: DonorService = Depends(get_service),
) -> ApiResponse[list[SupportedEntity]]:
    return ApiResponse.ok(await service.supported_entities(current_user_id(current_user)))


@router.get(
    "/leaderboard",
    response_model=ApiResponse[LeaderboardResponse],
    summary="Donor leaderboard",
    description="Active donors ranked by the commitments they made within the timeframe.",
    dependencies=[Depends(get_current_user)],
)
async def donor_leaderboard(
    timeframe: LeaderboardTimeframe = Query(LeaderboardTimeframe.MONTH),
    sort_by: LeaderboardSort = Query(LeaderboardSort.OVERALL),
    limit: int = Query(50, ge=1, le=100),
    service: DonorService = Depends(get_service),
) -> ApiResponse[LeaderboardResponse]:
    return ApiResponse.ok(await service.leaderboard(timeframe=timeframe, sort_by=sort_by, limit=limit))


@router.get(
    "/{donor_id}",
    response_model=ApiResponse[DonorResponse],
    summary="Get donor",
    dependencies=coordinator_only,
)
async def get_donor(
    donor_id: UUID,
    service: DonorService = Depends(get_service),
) -> ApiResponse[DonorResponse]:
    return ApiResponse.ok(await service.get(donor_id))


@router.get(
    "/{donor_id}/stats",
    response_model=ApiResponse[DonorStatsResponse],
    summary="Donor commitment statistics",
    dependencies=coordinator_only,
)
async def get_donor_stats(
    donor_id: UUID,
    service: DonorService = Depends(get_service),
) -> ApiResponse[DonorStatsResponse]:
    return ApiResponse.ok(await service.stats(donor_id))


# ============================================================================
# Commitments
# ============================================================================

@commitments_router.post(
    "",
    response_model=ApiResponse[CommitmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create commitment",
    dependencies=donor_only,
)
async def create_commitment(
    data: CommitmentCreate,
    current_user: dict = Depends(get_current_user),
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[CommitmentResponse]:
    return ApiResponse.ok(await service.create(data, current_user_id(current_user)))


@commitments_router.get(
    "/mine",
    response_model=ApiResponse[PageData[CommitmentResponse]],
    summary="Own commitments",
    dependencies=donor_only,
)
async def list_my_commitments(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[CommitmentStatus] = Query(None),
    incident_id: Optional[UUID] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[PageData[CommitmentResponse]]:
    result = await service.list_for_donor(
        current_user_id(current_user),
        page=page,
        page_size=page_size,
        status=status,
        incident_id=incident_id,
    )
    return ApiResponse.ok(result)


@commitments_router.get(
    "/available",
    response_model=ApiResponse[PageData[CommitmentResponse]],
    summary="Commitments available to the responder",
    description="PLANNED or PARTIAL commitments for entities the caller is assigned to.",
    dependencies=[Depends(require_roles(RoleName.RESPONDER.value))],
)
async def list_available_commitments(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    entity_id: Optional[UUID] = Query(None),
    incident_id: Optional[UUID] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[PageData[CommitmentResponse]]:
    result = await service.list_available(
        current_user_id(current_user),
        page=page,
        page_size=page_size,
        entity_id=entity_id,
        incident_id=incident_id,
    )
    return ApiResponse.ok(result)


@commitments_router.get(
    "/{commitment_id}",
    response_model=ApiResponse[CommitmentResponse],
    summary="Get commitment",
)
async def get_commitment(
    commitment_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[CommitmentResponse]:
    return ApiResponse.ok(await service.get(commitment_id, current_user))


@commitments_router.patch(
    "/{commitment_id}/status",
    response_model=ApiResponse[CommitmentResponse],
    summary="Change commitment status",
)
async def update_commitment_status(
    commitment_id: UUID,
    data: CommitmentStatusUpdate,
    current_user: dict = Depends(get_current_user),
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[CommitmentResponse]:
    return ApiResponse.ok(await service.update_status(commitment_id, data, current_user))


@commitments_router.delete(
    "/{commitment_id}",
    response_model=ApiResponse[CommitmentResponse],
    summary="Cancel commitment",
    description="Soft delete: the commitment is kept with status CANCELLED.",
)
async def cancel_commitment(
    commitment_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[CommitmentResponse]:
    return ApiResponse.ok(await service.cancel(commitment_id, current_user))


@commitments_router.post(
    "/{commitment_id}/assign",
    response_model=ApiResponse[CommitmentResponse],
    summary="Reassign commitment to another entity",
    description="PLANNED or PARTIAL commitments only. Coordinators must be assigned to the target entity.",
    dependencies=coordinator_only,
)
async def reassign_commitment(
    commitment_id: UUID,
    data: CommitmentAssign,
    current_user: dict = Depends(get_current_user),
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[CommitmentResponse]:
    return ApiResponse.ok(await service.reassign(commitment_id, data, current_user))


@commitments_router.get(
    "/{commitment_id}/assignments",
    response_model=ApiResponse[list[CommitmentAssignmentRecord]],
    summary="Entity reassignment history",
    dependencies=coordinator_only,
)
async def commitment_assignment_history(
    commitment_id: UUID,
    service: CommitmentService = Depends(get_commitment_service),
) -> ApiResponse[list[CommitmentAssignmentRecord]]:
    return ApiResponse.ok(await service.assignment_history(commitment_id))
