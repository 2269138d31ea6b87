"""
Coordinator verification

Review queues, verify / reject, metrics and per-entity auto-approval
configuration for both assessments and responses.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import AssessmentType, Priority, RejectionReason, ResponseType, VerificationStatus
from drms.core.envelope import PageData
from drms.core.exceptions import NotFoundError
from drms.domains.assessments.models import RapidAssessment
from drms.domains.assessments.schemas import RapidAssessmentResponse
from drms.domains.assessments.service import RapidAssessmentService
from drms.domains.entities.models import Entity
from drms.domains.entities.repository import EntityRepository
from drms.domains.responses.models import RapidResponse
from drms.domains.responses.repository import RapidResponseRepository
from drms.domains.responses.schemas import RapidResponseResponse
from drms.domains.users.repository import AuditLogRepository

from .auto_approval import AutoApprovalConfig
from .repository import VerificationRepository
from .schemas import (
    VerificationMetrics, EntityAutoApproval, AutoApprovalSummary, AutoApprovalOverview,
    AutoApprovalBulkUpdate, EligibilityResponse,
)
from .state import ReviewTarget
from .workflow import VerificationWorkflow

logger = logging.getLogger(__name__)


MODELS = {
    ReviewTarget.ASSESSMENT: RapidAssessment,
    ReviewTarget.RESPONSE: RapidResponse,
}


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


class VerificationService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = VerificationRepository(session)
        self.workflow = VerificationWorkflow(session)
        self.assessment_service = RapidAssessmentService(session)
        self.response_repo = RapidResponseRepository(session)
        self.entity_repo = EntityRepository(session)
        self.audit_repo = AuditLogRepository(session)

    # ========================================================================
    # Assessments
    # ========================================================================

    async def verify_assessment(
        self,
        assessment_id: UUID,
        user_id: UUID,
        notes: Optional[str] = None,
    ) -> RapidAssessmentResponse:
        """
        Raises:
            ConflictError: VF4091 not SUBMITTED, VF4092 concurrent review
        """
        assessment = await self.assessment_service.get_assessment(assessment_id)
        await self.workflow.verify(assessment, ReviewTarget.ASSESSMENT, user_id, notes)
        await self.session.commit()
        return await self.assessment_service.build_response(assessment)

    async def reject_assessment(
        self,
        assessment_id: UUID,
        user_id: UUID,
        reason: RejectionReason,
        feedback: str,
    ) -> RapidAssessmentResponse:
        assessment = await self.assessment_service.get_assessment(assessment_id)
        await self.workflow.reject(assessment, ReviewTarget.ASSESSMENT, user_id, reason, feedback)
        await self.session.commit()
        return await self.assessment_service.build_response(assessment)

    async def assessment_queue(
        self,
        page: int = 1,
        page_size: int = 20,
        entity_id: Optional[UUID] = None,
        assessment_type: Optional[AssessmentType] = None,
        priority: Optional[Priority] = None,
    ) -> PageData[RapidAssessmentResponse]:
        assessments, total = await self.repo.queue(
            RapidAssessment,
            page=page,
            page_size=page_size,
            entity_id=entity_id,
            item_type=assessment_type,
            priority=priority,
        )
        items = [await self.assessment_service.build_response(a) for a in assessments]
        return PageData.build(items, total, page, page_size)

    # ========================================================================
    # Responses
    # ========================================================================

    async def verify_response(
        self,
        response_id: UUID,
        user_id: UUID,
        notes: Optional[str] = None,
    ) -> RapidResponseResponse:
        response = await self._get_response(response_id)
        await self.workflow.verify(response, ReviewTarget.RESPONSE, user_id, notes)
        await self.session.commit()
        return RapidResponseResponse.model_validate(response)

    async def reject_response(
        self,
        response_id: UUID,
        user_id: UUID,
        reason: RejectionReason,
        feedback: str,
    ) -> RapidResponseResponse:
        response = await self._get_response(response_id)
        await self.workflow.reject(response, ReviewTarget.RESPONSE, user_id, reason, feedback)
        await self.session.commit()
        return RapidResponseResponse.model_validate(response)

    async def response_queue(
        self,
        page: int = 1,
        page_size: int = 20,
        entity_id: Optional[UUID] = None,
        response_type: Optional[ResponseType] = None,
        priority: Optional[Priority] = None,
    ) -> PageData[RapidResponseResponse]:
        responses, total = await self.repo.queue(
            RapidResponse,
            page=page,
            page_size=page_size,
            entity_id=entity_id,
            item_type=response_type,
            priority=priority,
        )
        items = [RapidResponseResponse.model_validate(r) for r in responses]
        return PageData.build(items, total, page, page_size)

    # ========================================================================
    # Metrics / eligibility
    # ========================================================================

    async def metrics(self, target: ReviewTarget, entity_id: Optional[UUID] = None) -> VerificationMetrics:
        counts = await self.repo.count_by_status(MODELS[target], entity_id=entity_id)
        verified = counts[VerificationStatus.VERIFIED]
        auto_verified = counts[VerificationStatus.AUTO_VERIFIED]
        rejected = counts[VerificationStatus.REJECTED]
        return VerificationMetrics(
            target=target,
            total=sum(counts.values()),
            by_status={status.value: count for status, count in counts.items()},
            pending=counts[VerificationStatus.SUBMITTED],
            verified=verified,
            auto_verified=auto_verified,
            rejected=rejected,
            rejection_rate=_percent(rejected, verified + auto_verified + rejected),
            auto_verification_rate=_percent(auto_verified, verified + auto_verified),
        )

    async def check_eligibility(self, target: ReviewTarget, item_id: UUID) -> EligibilityResponse:
        """Would this item be auto-approved under its entity's current rules"""
        if target == ReviewTarget.ASSESSMENT:
            item: Any = await self.assessment_service.get_assessment(item_id)
        else:
            item = await self._get_response(item_id)
        decision = await self.workflow.check_auto_approval(item, target)
        return EligibilityResponse(
            item_id=item.id,
            target=target,
            eligible=decision.eligible,
            reasons=decision.reasons,
        )

    # ========================================================================
    # Auto-approval configuration
    # ========================================================================

    async def list_auto_approval(self) -> AutoApprovalOverview:
        """Every active entity with its rules and pending / auto-verified counts"""
        entities = await self.entity_repo.list_all_active()

        pending: dict[UUID, int] = {}
        auto_verified: dict[UUID, int] = {}
        for model in MODELS.values():
            for entity_id, count in (await self.repo.count_per_entity(model, VerificationStatus.SUBMITTED)).items():
                pending[entity_id] = pending.get(entity_id, 0) + count
            for entity_id, count in (await self.repo.count_per_entity(model, VerificationStatus.AUTO_VERIFIED)).items():
                auto_verified[entity_id] = auto_verified.get(entity_id, 0) + count

        rows = [
            self._entity_auto_approval(e, pending.get(e.id, 0), auto_verified.get(e.id, 0))
            for e in entities
        ]
        enabled_count = sum(1 for row in rows if row.config.enabled)
        return AutoApprovalOverview(
            entities=rows,
            summary=AutoApprovalSummary(
                total_entities=len(rows),
                enabled_count=enabled_count,
                disabled_count=len(rows) - enabled_count,
                total_pending=sum(row.pending_count for row in rows),
                total_auto_verified=sum(row.auto_verified_count for row in rows),
            ),
        )

    async def get_auto_approval(self, entity_id: UUID) -> EntityAutoApproval:
        entity = await self._get_entity(entity_id)
        pending = 0
        auto_verified = 0
        for model in MODELS.values():
            counts = await self.repo.count_by_status(model, entity_id=entity_id)
            pending += counts[VerificationStatus.SUBMITTED]
            auto_verified += counts[VerificationStatus.AUTO_VERIFIED]
        return self._entity_auto_approval(entity, pending, auto_verified)

    async def update_auto_approval(
        self,
        data: AutoApprovalBulkUpdate,
        user_id: UUID,
    ) -> list[EntityAutoApproval]:
        """
        Apply the same rules to every listed entity

        Raises:
            NotFoundError: any entity id unknown (nothing is changed)
        """
        entities = [await self._get_entity(entity_id) for entity_id in data.entity_ids]

        config = AutoApprovalConfig(
            enabled=data.enabled,
            scope=data.scope,
            conditions=data.conditions,
            last_modified_by=user_id,
            last_modified_at=datetime.utcnow(),
        )
        for entity in entities:
            old_config = AutoApprovalConfig.from_entity(entity)
            entity.auto_approve_enabled = config.enabled
            entity.auto_approval = config.to_column()
            await self.entity_repo.update(entity)
            await self.audit_repo.record(
                user_id=user_id,
                action="AUTO_APPROVAL_CONFIG_UPDATED",
                resource="entity",
                resource_id=entity.id,
                old_values=old_config.model_dump(mode="json"),
                new_values=config.model_dump(mode="json"),
            )
        await self.session.commit()
        logger.info(
            f"Auto-approval {'enabled' if config.enabled else 'disabled'} "
            f"for {len(entities)} entities by {user_id}"
        )
        return [self._entity_auto_approval(e) for e in entities]

    @staticmethod
    def _entity_auto_approval(
        entity: Entity,
        pending_count: int = 0,
        auto_verified_count: int = 0,
    ) -> EntityAutoApproval:
        return EntityAutoApproval(
            entity_id=entity.id,
            entity_name=entity.name,
            entity_type=entity.type,
            config=AutoApprovalConfig.from_entity(entity),
            pending_count=pending_count,
            auto_verified_count=auto_verified_count,
        )

    async def _get_entity(self, entity_id: UUID) -> Entity:
        entity = await self.entity_repo.get_by_id(entity_id)
        if not entity:
            raise NotFoundError("entity", entity_id)
        return entity

    async def _get_response(self, response_id: UUID) -> RapidResponse:
        response = await self.response_repo.get_by_id(response_id)
        if not response:
            raise NotFoundError("response", response_id)
        return response
