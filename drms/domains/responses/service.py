"""
Rapid response business logic

Responders plan responses against verified assessments of the entities they
are assigned to, optionally drawing items from a donor commitment, and
confirm delivery. Confirmed deliveries enter the verification workflow.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.dependencies import current_user_id, has_role
from drms.core.enums import (
    Priority, ResponseStatus, ResponseType, RoleName, VerificationStatus
)
from drms.core.envelope import PageData
from drms.core.exceptions import ConflictError, NotFoundError, ValidationError
from drms.domains.assessments.models import RapidAssessment
from drms.domains.assessments.repository import RapidAssessmentRepository
from drms.domains.donors.service import CommitmentService
from drms.domains.entities.repository import EntityAssignmentRepository
from drms.domains.entities.service import ensure_entity_access
from drms.domains.users.repository import UserRepository, AuditLogRepository
from drms.domains.verification.state import ReviewTarget
from drms.domains.verification.workflow import VerificationWorkflow

from .collaboration import (
    CollaborationAction, CollaborationRegistry, get_collaboration_registry
)
from .models import RapidResponse
from .repository import RapidResponseRepository
from .schemas import (
    RapidResponsePlan, RapidResponseFromCommitment, RapidResponseUpdate,
    DeliveryConfirmation, RapidResponseResponse,
    CollaborationStatus, CollaboratorInfo,
)

logger = logging.getLogger(__name__)


class RapidResponseService:

    def __init__(
        self,
        session: AsyncSession,
        registry: Optional[CollaborationRegistry] = None,
    ) -> None:
        self.session = session
        self.repo = RapidResponseRepository(session)
        self.assessment_repo = RapidAssessmentRepository(session)
        self.assignment_repo = EntityAssignmentRepository(session)
        self.user_repo = UserRepository(session)
        self.audit_repo = AuditLogRepository(session)
        self.commitment_service = CommitmentService(session)
        self.workflow = VerificationWorkflow(session)
        self.registry = registry or get_collaboration_registry()

    async def plan(self, data: RapidResponsePlan, user_id: UUID) -> RapidResponseResponse:
        """
        Plan a response for a verified assessment

        Raises:
            AuthorizationError: EN4031 not assigned to the entity
            NotFoundError: assessment missing
            ConflictError: RS4091 assessment not verified,
                RS4092 a planned response already exists
        """
        await ensure_entity_access(self.session, user_id, data.entity_id)
        assessment = await self._get_plannable_assessment(data.assessment_id, data.entity_id)

        response = await self._create(
            user_id=user_id,
            assessment=assessment,
            response_type=data.type or ResponseType(assessment.type),
            priority=data.priority or Priority(assessment.priority),
            description=data.description,
            items=[item.model_dump() for item in data.items],
            timeline=data.timeline,
            planned_date=data.planned_date,
        )
        await self.session.commit()
        return RapidResponseResponse.model_validate(response)

    async def plan_from_commitment(
        self,
        data: RapidResponseFromCommitment,
        user_id: UUID,
    ) -> RapidResponseResponse:
        """
        Plan a response whose items come out of a donor commitment

        The requested quantity is drawn from the commitment in the same
        transaction.

        Raises:
            ConflictError: DN4092 commitment no longer available
            ValidationError: requested quantity above what is left
        """
        commitment = await self.commitment_service.get_commitment(data.commitment_id)
        await ensure_entity_access(self.session, user_id, commitment.entity_id)
        assessment = await self._get_plannable_assessment(data.assessment_id, commitment.entity_id)

        await self.commitment_service.record_usage(commitment, data.total_quantity, user_id)

        response = await self._create(
            user_id=user_id,
            assessment=assessment,
            response_type=data.type,
            priority=data.priority or Priority(assessment.priority),
            description=data.description,
            items=[item.model_dump() for item in data.items],
            planned_date=data.planned_date,
            donor_id=commitment.donor_id,
            commitment_id=commitment.id,
        )
        await self.session.commit()
        return RapidResponseResponse.model_validate(response)

    async def get(self, response_id: UUID, current_user: dict[str, Any]) -> RapidResponseResponse:
        response = await self.get_response(response_id)
        if not has_role(current_user, RoleName.COORDINATOR.value):
            await ensure_entity_access(self.session, current_user_id(current_user), response.entity_id)
        return RapidResponseResponse.model_validate(response)

    async def get_response(self, response_id: UUID) -> RapidResponse:
        response = await self.repo.get_by_id(response_id)
        if not response:
            raise NotFoundError("response", response_id)
        return response

    async def list_for_responder(
        self,
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        entity_id: Optional[UUID] = None,
        assessment_id: Optional[UUID] = None,
        status: Optional[ResponseStatus] = None,
        response_type: Optional[ResponseType] = None,
        verification_status: Optional[VerificationStatus] = None,
    ) -> PageData[RapidResponseResponse]:
        """Responses for the entities the caller is assigned to"""
        entity_ids = await self.assignment_repo.get_entity_ids_for_user(user_id)
        responses, total = await self.repo.list_responses(
            page=page,
            page_size=page_size,
            entity_ids=entity_ids,
            entity_id=entity_id,
            assessment_id=assessment_id,
            status=status,
            response_type=response_type,
            verification_status=verification_status,
        )
        items = [RapidResponseResponse.model_validate(r) for r in responses]
        return PageData.build(items, total, page, page_size)

    async def update(
        self,
        response_id: UUID,
        data: RapidResponseUpdate,
        user_id: UUID,
    ) -> RapidResponseResponse:
        """
        Raises:
            ConflictError: RS4093 response no longer PLANNED,
                RS4094 another user holds the edit lock
        """
        response = await self.get_response(response_id)
        await ensure_entity_access(self.session, user_id, response.entity_id)
        self._ensure_planned(response)
        if not self.registry.can_edit(response.id, user_id):
            logger.warning(f"Response {response.id}: update by {user_id} refused, edit lock held by another user")
            raise ConflictError("RS4094", "Another user is currently editing this response")

        update_data = data.model_dump(exclude_unset=True)
        old_values = {field: getattr(response, field) for field in update_data}
        for field, value in update_data.items():
            setattr(response, field, value)

        response = await self.repo.update(response)
        await self.audit_repo.record(
            user_id=user_id,
            action="UPDATE",
            resource=ReviewTarget.RESPONSE.value,
            resource_id=response.id,
            old_values=old_values,
            new_values=update_data,
        )
        result = RapidResponseResponse.model_validate(response)
        await self.session.commit()
        return result

    async def confirm_delivery(
        self,
        response_id: UUID,
        data: DeliveryConfirmation,
        user_id: UUID,
    ) -> RapidResponseResponse:
        """
        PLANNED -> DELIVERED, then submit for verification

        Raises:
            ConflictError: RS4093 response is not PLANNED
        """
        response = await self.get_response(response_id)
        await ensure_entity_access(self.session, user_id, response.entity_id)
        self._ensure_planned(response)

        response.status = ResponseStatus.DELIVERED
        response.delivered_at = data.delivered_at or datetime.utcnow()
        response.delivery_location = data.delivery_location
        response.delivery_notes = data.delivery_notes
        response.media_attachments = list(response.media_attachments or []) + data.media_attachments
        response = await self.repo.update(response)

        await self.audit_repo.record(
            user_id=user_id,
            action="CONFIRM_DELIVERY",
            resource=ReviewTarget.RESPONSE.value,
            resource_id=response.id,
            old_values={"status": ResponseStatus.PLANNED.value},
            new_values={
                "status": ResponseStatus.DELIVERED.value,
                "delivered_at": response.delivered_at,
                "delivery_location": data.delivery_location,
            },
        )
        await self.workflow.submit(response, ReviewTarget.RESPONSE, user_id)
        await self.session.commit()
        self.registry.close(response.id)
        logger.info(f"Response {response.id} delivered by {user_id}")
        return RapidResponseResponse.model_validate(response)

    async def submit(self, response_id: UUID, user_id: UUID) -> RapidResponseResponse:
        """
        Resubmit a delivered response for verification

        Raises:
            ConflictError: RS4095 response not delivered yet,
                VF4091 not in DRAFT / REJECTED
        """
        response = await self.get_response(response_id)
        await ensure_entity_access(self.session, user_id, response.entity_id)
        if response.status != ResponseStatus.DELIVERED:
            raise ConflictError("RS4095", "Only delivered responses can be submitted for verification")

        await self.workflow.submit(response, ReviewTarget.RESPONSE, user_id)
        await self.session.commit()
        return RapidResponseResponse.model_validate(response)

    async def collaboration_status(
        self,
        response_id: UUID,
        user_id: UUID,
    ) -> CollaborationStatus:
        response = await self.get_response(response_id)
        await ensure_entity_access(self.session, user_id, response.entity_id)
        return self._collaboration_status(response, user_id)

    async def collaborate(
        self,
        response_id: UUID,
        action: CollaborationAction,
        user_id: UUID,
    ) -> CollaborationStatus:
        """
        Raises:
            ConflictError: RS4097 response is not PLANNED,
                RS4096 someone else is editing
        """
        response = await self.get_response(response_id)
        await ensure_entity_access(self.session, user_id, response.entity_id)
        if response.status != ResponseStatus.PLANNED:
            raise ConflictError("RS4097", "Only planned responses can be collaborated on")

        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)
        self.registry.apply(response.id, action, user_id, user.name, user.email)
        return self._collaboration_status(response, user_id)

    def _collaboration_status(self, response: RapidResponse, user_id: UUID) -> CollaborationStatus:
        collaboration = self.registry.get(response.id)
        collaborators = list(collaboration.collaborators.values()) if collaboration else []
        editor = collaboration.editor if collaboration else None
        return CollaborationStatus(
            response_id=response.id,
            is_active=collaboration is not None,
            collaborators=[CollaboratorInfo.model_validate(c) for c in collaborators],
            total_collaborators=len(collaborators),
            is_current_user_collaborating=bool(collaboration and collaboration.has(user_id)),
            current_editor_id=editor.user_id if editor else None,
            can_edit=response.status == ResponseStatus.PLANNED and (editor is None or editor.user_id == user_id),
        )

    async def _get_plannable_assessment(self, assessment_id: UUID, entity_id: UUID) -> RapidAssessment:
        assessment = await self.assessment_repo.get_by_id(assessment_id)
        if not assessment:
            raise NotFoundError("assessment", assessment_id)
        if assessment.entity_id != entity_id:
            raise ValidationError(
                "Assessment does not belong to this entity",
                details=[{"field": "body.assessment_id", "message": "assessment belongs to another entity"}],
            )
        if not VerificationStatus(assessment.verification_status).is_verified:
            raise ConflictError(
                "RS4091",
                "Assessment must be verified before response planning",
                details={"verification_status": VerificationStatus(assessment.verification_status).value},
            )
        if await self.repo.has_planned_for_assessment(assessment.id):
            raise ConflictError("RS4092", "A planned response already exists for this assessment")
        return assessment

    async def _create(
        self,
        user_id: UUID,
        assessment: RapidAssessment,
        response_type: ResponseType,
        priority: Priority,
        description: Optional[str],
        items: list[dict[str, Any]],
        timeline: Optional[dict[str, Any]] = None,
        planned_date: Optional[datetime] = None,
        donor_id: Optional[UUID] = None,
        commitment_id: Optional[UUID] = None,
    ) -> RapidResponse:
        responder = await self.user_repo.get_by_id(user_id)
        if not responder:
            raise NotFoundError("user", user_id)

        response = await self.repo.create(RapidResponse(
            responder_id=user_id,
            responder_name=responder.name,
            entity_id=assessment.entity_id,
            assessment_id=assessment.id,
            donor_id=donor_id,
            commitment_id=commitment_id,
            type=response_type,
            priority=priority,
            status=ResponseStatus.PLANNED,
            description=description,
            items=items,
            timeline=timeline,
            planned_date=planned_date or datetime.utcnow(),
            media_attachments=[],
            verification_status=VerificationStatus.DRAFT,
        ))
        await self.audit_repo.record(
            user_id=user_id,
            action="CREATE",
            resource=ReviewTarget.RESPONSE.value,
            resource_id=response.id,
            new_values={
                "assessment_id": assessment.id,
                "entity_id": assessment.entity_id,
                "type": response_type.value,
                "priority": priority.value,
                "items_count": len(items),
                "commitment_id": commitment_id,
            },
        )
        logger.info(f"Response {response.id} planned for assessment {assessment.id}")
        return response

    @staticmethod
    def _ensure_planned(response: RapidResponse) -> None:
        if response.status != ResponseStatus.PLANNED:
            raise ConflictError(
                "RS4093",
                f"Only planned responses can be changed, current status {ResponseStatus(response.status).value}",
            )
