"""
Verification routes

/api/v1/verification/*
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.database import get_db
from drms.core.dependencies import current_user_id, get_current_user, require_roles
from drms.core.enums import AssessmentType, Priority, ResponseType, RoleName
from drms.core.envelope import ApiResponse, PageData
from drms.domains.assessments.schemas import RapidAssessmentResponse
from drms.domains.responses.schemas import RapidResponseResponse
from drms.domains.users.schemas import AuditLogResponse
from drms.domains.users.service import UserService

from .schemas import (
    VerifyRequest, RejectRequest, VerificationMetrics,
    EntityAutoApproval, AutoApprovalOverview, AutoApprovalBulkUpdate, EligibilityResponse,
)
from .service import VerificationService
from .state import ReviewTarget


router = APIRouter(
    prefix="/verification",
    tags=["Verification"],
    dependencies=[Depends(require_roles(RoleName.COORDINATOR.value))],
)


def get_service(db: AsyncSession = Depends(get_db)) -> VerificationService:
    return VerificationService(db)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


# ============================================================================
# Assessments
# ============================================================================

@router.get(
    "/queue/assessments",
    response_model=ApiResponse[PageData[RapidAssessmentResponse]],
    summary="Submitted assessments awaiting review",
    description="Ordered by priority, then by submission time.",
)
async def assessment_queue(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    entity_id: Optional[UUID] = Query(None),
    type: Optional[AssessmentType] = Query(None),
    priority: Optional[Priority] = Query(None),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[PageData[RapidAssessmentResponse]]:
    result = await service.assessment_queue(
        page=page,
        page_size=page_size,
        entity_id=entity_id,
        assessment_type=type,
        priority=priority,
    )
    return ApiResponse.ok(result)


@router.post(
    "/assessments/{assessment_id}/verify",
    response_model=ApiResponse[RapidAssessmentResponse],
    summary="Verify assessment",
)
async def verify_assessment(
    assessment_id: UUID,
    data: VerifyRequest,
    current_user: dict = Depends(get_current_user),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[RapidAssessmentResponse]:
    result = await service.verify_assessment(assessment_id, current_user_id(current_user), data.notes)
    return ApiResponse.ok(result)


@router.post(
    "/assessments/{assessment_id}/reject",
    response_model=ApiResponse[RapidAssessmentResponse],
    summary="Reject assessment",
)
async def reject_assessment(
    assessment_id: UUID,
    data: RejectRequest,
    current_user: dict = Depends(get_current_user),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[RapidAssessmentResponse]:
    result = await service.reject_assessment(
        assessment_id, current_user_id(current_user), data.reason, data.feedback
    )
    return ApiResponse.ok(result)


@router.get(
    "/assessments/{assessment_id}/eligibility",
    response_model=ApiResponse[EligibilityResponse],
    summary="Auto-approval eligibility of an assessment",
)
async def assessment_eligibility(
    assessment_id: UUID,
    service: VerificationService = Depends(get_service),
) -> ApiResponse[EligibilityResponse]:
    return ApiResponse.ok(await service.check_eligibility(ReviewTarget.ASSESSMENT, assessment_id))


# ============================================================================
# Responses
# ============================================================================

@router.get(
    "/queue/responses",
    response_model=ApiResponse[PageData[RapidResponseResponse]],
    summary="Submitted responses awaiting review",
)
async def response_queue(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    entity_id: Optional[UUID] = Query(None),
    type: Optional[ResponseType] = Query(None),
    priority: Optional[Priority] = Query(None),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[PageData[RapidResponseResponse]]:
    result = await service.response_queue(
        page=page,
        page_size=page_size,
        entity_id=entity_id,
        response_type=type,
        priority=priority,
    )
    return ApiResponse.ok(result)


@router.post(
    "/responses/{response_id}/verify",
    response_model=ApiResponse[RapidResponseResponse],
    summary="Verify response",
)
async def verify_response(
    response_id: UUID,
    data: VerifyRequest,
    current_user: dict = Depends(get_current_user),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    result = await service.verify_response(response_id, current_user_id(current_user), data.notes)
    return ApiResponse.ok(result)


@router.post(
    "/responses/{response_id}/reject",
    response_model=ApiResponse[RapidResponseResponse],
    summary="Reject response",
)
async def reject_response(
    response_id: UUID,
    data: RejectRequest,
    current_user: dict = Depends(get_current_user),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[RapidResponseResponse]:
    result = await service.reject_response(
        response_id, current_user_id(current_user), data.reason, data.feedback
    )
    return ApiResponse.ok(result)


@router.get(
    "/responses/{response_id}/eligibility",
    response_model=ApiResponse[EligibilityResponse],
    summary="Auto-approval eligibility of a response",
)
async def response_eligibility(
    response_id: UUID,
    service: VerificationService = Depends(get_service),
) -> ApiResponse[EligibilityResponse]:
    return ApiResponse.ok(await service.check_eligibility(ReviewTarget.RESPONSE, response_id))


# ============================================================================
# Metrics
# ============================================================================

@router.get(
    "/metrics/assessments",
    response_model=ApiResponse[VerificationMetrics],
    summary="Assessment verification metrics",
)
async def assessment_metrics(
    entity_id: Optional[UUID] = Query(None),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[VerificationMetrics]:
    return ApiResponse.ok(await service.metrics(ReviewTarget.ASSESSMENT, entity_id=entity_id))


@router.get(
    "/metrics/responses",
    response_model=ApiResponse[VerificationMetrics],
    summary="Response verification metrics",
)
async def response_metrics(
    entity_id: Optional[UUID] = Query(None),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[VerificationMetrics]:
    return ApiResponse.ok(await service.metrics(ReviewTarget.RESPONSE, entity_id=entity_id))


# ============================================================================
# Auto-approval
# ============================================================================

@router.get(
    "/auto-approval",
    response_model=ApiResponse[AutoApprovalOverview],
    summary="Auto-approval rules of every active entity",
)
async def list_auto_approval(
    service: VerificationService = Depends(get_service),
) -> ApiResponse[AutoApprovalOverview]:
    return ApiResponse.ok(await service.list_auto_approval())


@router.put(
    "/auto-approval",
    response_model=ApiResponse[list[EntityAutoApproval]],
    summary="Set auto-approval rules for several entities",
)
async def update_auto_approval(
    data: AutoApprovalBulkUpdate,
    current_user: dict = Depends(get_current_user),
    service: VerificationService = Depends(get_service),
) -> ApiResponse[list[EntityAutoApproval]]:
    return ApiResponse.ok(await service.update_auto_approval(data, current_user_id(current_user)))


@router.get(
    "/auto-approval/{entity_id}",
    response_model=ApiResponse[EntityAutoApproval],
    summary="Auto-approval rules of one entity",
)
async def get_auto_approval(
    entity_id: UUID,
    service: VerificationService = Depends(get_service),
) -> ApiResponse[EntityAutoApproval]:
    return ApiResponse.ok(await service.get_auto_approval(entity_id))


# ============================================================================
# Audit trail
# ============================================================================

@router.get(
    "/audit-logs",
    response_model=ApiResponse[PageData[AuditLogResponse]],
    summary="Audit log",
)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    resource: Optional[str] = Query(None, description="assessment, response, entity, commitment ..."),
    resource_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None, description="e.g. VERIFY_ASSESSMENT"),
    user_id: Optional[UUID] = Query(None),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[PageData[AuditLogResponse]]:
    result = await service.list_audit_logs(
        page=page,
        page_size=page_size,
        resource=resource,
        resource_id=resource_id,
        action=action,
        user_id=user_id,
    )
    return ApiResponse.ok(result)
