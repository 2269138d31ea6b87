"""
Dashboard routes

/api/v1/dashboard/*
/api/v1/donors/entities/* (donor view of supported entities)
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import RoleName
from drms.core.envelope import ApiResponse

from .schemas import SituationOverview, GapSummaryOverview, EntityGapAnalysis, EntityLatestAssessments
from .service import DashboardService


router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
    dependencies=[Depends(require_roles(
        RoleName.COORDINATOR.value,
        RoleName.RESPONDER.value,
        RoleName.DONOR.value,
    ))],
)

donor_insights_router = APIRouter(
    prefix="/donors/entities",
    tags=["Donors"],
    dependencies=[Depends(require_roles(RoleName.DONOR.value))],
)


def get_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


@router.get(
    "/situation",
    response_model=ApiResponse[SituationOverview],
    summary="Situation overview",
    description="One incident when incident_id is given, otherwise every incident that is not resolved.",
)
async def situation_overview(
    incident_id: Optional[UUID] = Query(None),
    service: DashboardService = Depends(get_service),
) -> ApiResponse[SituationOverview]:
    return ApiResponse.ok(await service.situation_overview(incident_id))


@router.get(
    "/gaps",
    response_model=ApiResponse[GapSummaryOverview],
    summary="Gap summary across entities",
)
async def gap_summary(
    incident_id: Optional[UUID] = Query(None),
    service: DashboardService = Depends(get_service),
) -> ApiResponse[GapSummaryOverview]:
    return ApiResponse.ok(await service.gap_summary(incident_id))


@router.get(
    "/entities/{entity_id}/gaps",
    response_model=ApiResponse[EntityGapAnalysis],
    summary="Gap analysis of one entity",
)
async def entity_gap_analysis(
    entity_id: UUID,
    service: DashboardService = Depends(get_service),
) -> ApiResponse[EntityGapAnalysis]:
    return ApiResponse.ok(await service.entity_gap_analysis(entity_id))


@donor_insights_router.get(
    "/{entity_id}/gap-analysis",
    response_model=ApiResponse[EntityGapAnalysis],
    summary="Gap analysis of a supported entity",
)
async def donor_entity_gap_analysis(
    entity_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: DashboardService = Depends(get_service),
) -> ApiResponse[EntityGapAnalysis]:
    return ApiResponse.ok(await service.donor_entity_gap_analysis(current_user_id(current_user), entity_id))


@donor_insights_router.get(
    "/{entity_id}/assessments/latest",
    response_model=ApiResponse[EntityLatestAssessments],
    summary="Latest verified assessments of a supported entity",
)
async def donor_latest_assessments(
    entity_id: UUID,
    current_user: dict = Depends(get_current_user),
    service: DashboardService = Depends(get_service),
) -> ApiResponse[EntityLatestAssessments]:
    return ApiResponse.ok(await service.donor_latest_assessments(current_user_id(current_user), entity_id))
