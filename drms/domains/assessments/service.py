"""
Rapid assessment business logic

Assessors create and edit their own assessments on entities they are
assigned to; submission hands the assessment to the verification workflow.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.dependencies import current_user_id, has_role
from drms.core.enums import AssessmentType, Priority, RoleName, VerificationStatus
from drms.core.envelope import PageData
from drms.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from drms.domains.entities.service import ensure_entity_access
from drms.domains.gap_analysis import analyze_gaps, GapAnalysisResponse
from drms.domains.incidents.repository import IncidentRepository
from drms.domains.users.repository import UserRepository, AuditLogRepository
from drms.domains.verification.state import EDITABLE_STATES, ReviewTarget
from drms.domains.verification.workflow import VerificationWorkflow

from .models import RapidAssessment, detail_values
from .repository import RapidAssessmentRepository
from .schemas import (
    DETAIL_KEYS, RapidAssessmentCreate, RapidAssessmentUpdate, RapidAssessmentResponse
)

logger = logging.getLogger(__name__)

# Roles that may read every assessment rather than only their own
REVIEWER_ROLES = (RoleName.COORDINATOR.value, RoleName.RESPONDER.value, RoleName.DONOR.value)


class RapidAssessmentService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = RapidAssessmentRepository(session)
        self.user_repo = UserRepository(session)
        self.incident_repo = IncidentRepository(session)
        self.audit_repo = AuditLogRepository(session)
        self.workflow = VerificationWorkflow(session)

    async def create(self, data: RapidAssessmentCreate, current_user: dict[str, Any]) -> RapidAssessmentResponse:
        """
        Create an assessment with its detail record, optionally submitting it

        Raises:
            AuthorizationError: EN4031 not assigned to the entity
            NotFoundError: entity / incident missing
        """
        user_id = current_user_id(current_user)
        entity = await ensure_entity_access(self.session, user_id, data.entity_id)
        if data.incident_id and not await self.incident_repo.get_by_id(data.incident_id):
            raise NotFoundError("incident", data.incident_id)

        assessor = await self.user_repo.get_by_id(user_id)
        if not assessor:
            raise NotFoundError("user", user_id)

        detail = data.detail_for(data.type).model_dump()
        assessment = await self.repo.create(
            RapidAssessment(
                type=data.type,
                assessment_date=data.assessment_date or datetime.utcnow(),
                assessor_id=user_id,
                assessor_name=assessor.name,
                entity_id=entity.id,
                incident_id=data.incident_id,
                location=data.location or entity.location,
                latitude=data.latitude if data.latitude is not None else entity.latitude,
                longitude=data.longitude if data.longitude is not None else entity.longitude,
                priority=data.priority,
                media_attachments=data.media_attachments,
            ),
            detail,
        )
        await self.audit_repo.record(
            user_id=user_id,
            action="CREATE",
            resource=ReviewTarget.ASSESSMENT.value,
            resource_id=assessment.id,
            new_values={"type": data.type.value, "entity_id": entity.id, "detail": detail},
        )
        logger.info(f"{data.type.value} assessment {assessment.id} created for entity {entity.name}")

        if data.submit:
            await self.workflow.submit(assessment, ReviewTarget.ASSESSMENT, user_id)

        await self.session.commit()
        return await self.build_response(assessment)

    async def get(self, assessment_id: UUID, current_user: dict[str, Any]) -> RapidAssessmentResponse:
        assessment = await self.get_assessment(assessment_id)
        if not has_role(current_user, *REVIEWER_ROLES) and assessment.assessor_id != current_user_id(current_user):
            raise AuthorizationError("AS4031", "You can only view your own assessments")
        return await self.build_response(assessment)

    async def get_assessment(self, assessment_id: UUID) -> RapidAssessment:
        assessment = await self.repo.get_by_id(assessment_id)
        if not assessment:
            raise NotFoundError("assessment", assessment_id)
        return assessment

    async def list_assessments(
        self,
        current_user: dict[str, Any],
        page: int = 1,
        page_size: int = 20,
        entity_id: Optional[UUID] = None,
        incident_id: Optional[UUID] = None,
        assessment_type: Optional[AssessmentType] = None,
        verification_status: Optional[VerificationStatus] = None,
        priority: Optional[Priority] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> PageData[RapidAssessmentResponse]:
        """Assessors without a reviewer role only see their own"""
        assessor_id = None
        if not has_role(current_user, *REVIEWER_ROLES):
            assessor_id = current_user_id(current_user)

        assessments, total = await self.repo.list_assessments(
            page=page,
            page_size=page_size,
            assessor_id=assessor_id,
            entity_id=entity_id,
            incident_id=incident_id,
            assessment_type=assessment_type,
            verification_status=verification_status,
            priority=priority,
            date_from=date_from,
            date_to=date_to,
        )
        items = [await self.build_response(a, include_gaps=False) for a in assessments]
        return PageData.build(items, total, page, page_size)

    async def update(
        self,
        assessment_id: UUID,
        data: RapidAssessmentUpdate,
        user_id: UUID,
    ) -> RapidAssessmentResponse:
        """
        Edit a DRAFT or REJECTED assessment

        A REJECTED assessment stays REJECTED until it is resubmitted.

        Raises:
            AuthorizationError: AS4031 not the owner
            ConflictError: AS4091 not editable in its current state
            ValidationError: detail object of another type
        """
        assessment = await self._get_owned(assessment_id, user_id)
        self._ensure_editable(assessment)

        assessment_type = AssessmentType(assessment.type)
        other_keys = [k for k in data.provided_detail_keys() if k != DETAIL_KEYS[assessment_type]]
        if other_keys:
            raise ValidationError(
                f"{assessment_type.value} assessment cannot take {other_keys[0]}",
                details=[{"field": f"body.{other_keys[0]}", "message": "does not match assessment type"}],
            )

        base_changes = data.model_dump(exclude_unset=True, exclude=set(DETAIL_KEYS.values()))
        old_values = {field: getattr(assessment, field) for field in base_changes}
        for field, value in base_changes.items():
            setattr(assessment, field, value)

        new_values: dict[str, Any] = dict(base_changes)
        detail = data.detail_for(assessment_type)
        if detail is not None:
            old_values["detail"] = detail_values(await self.repo.get_detail(assessment))
            new_values["detail"] = detail.model_dump()
            await self.repo.update_detail(assessment, new_values["detail"])

        assessment.version_number = (assessment.version_number or 1) + 1
        assessment = await self.repo.update(assessment)
        await self.audit_repo.record(
            user_id=user_id,
            action="UPDATE",
            resource=ReviewTarget.ASSESSMENT.value,
            resource_id=assessment.id,
            old_values=old_values,
            new_values=new_values,
        )
        result = await self.build_response(assessment)
        await self.session.commit()
        return result

    async def delete(self, assessment_id: UUID, user_id: UUID) -> None:
        """
        Raises:
            ConflictError: AS4092 only drafts can be deleted
        """
        assessment = await self._get_owned(assessment_id, user_id)
        if assessment.verification_status != VerificationStatus.DRAFT:
            raise ConflictError("AS4092", "Only draft assessments can be deleted")

        await self.repo.delete(assessment)
        await self.audit_repo.record(
            user_id=user_id,
            action="DELETE",
            resource=ReviewTarget.ASSESSMENT.value,
            resource_id=assessment_id,
        )
        await self.session.commit()
        logger.info(f"Assessment {assessment_id} deleted")

    async def submit(self, assessment_id: UUID, user_id: UUID) -> RapidAssessmentResponse:
        assessment = await self._get_owned(assessment_id, user_id)
        await self.workflow.submit(assessment, ReviewTarget.ASSESSMENT, user_id)
        await self.session.commit()
        return await self.build_response(assessment)

    async def gap_analysis(self, assessment_id: UUID) -> GapAnalysisResponse:
        assessment = await self.get_assessment(assessment_id)
        detail = await self.repo.get_detail(assessment)
        result = analyze_gaps(AssessmentType(assessment.type), detail_values(detail))
        return GapAnalysisResponse.from_result(result, assessment.id)

    async def build_response(
        self,
        assessment: RapidAssessment,
        include_gaps: bool = True,
    ) -> RapidAssessmentResponse:
        response = RapidAssessmentResponse.model_validate(assessment)
        detail = await self.repo.get_detail(assessment)
        if detail is not None:
            response.detail = detail_values(detail)
            if include_gaps:
                result = analyze_gaps(AssessmentType(assessment.type), response.detail)
                response.gap_analysis = GapAnalysisResponse.from_result(result, assessment.id)
        return response

    async def _get_owned(self, assessment_id: UUID, user_id: UUID) -> RapidAssessment:
        assessment = await self.get_assessment(assessment_id)
        if assessment.assessor_id != user_id:
            raise AuthorizationError("AS4031", "Only the assessor who created the assessment can change it")
        return assessment

    @staticmethod
    def _ensure_editable(assessment: RapidAssessment) -> None:
        if assessment.verification_status not in EDITABLE_STATES:
            raise ConflictError(
                "AS4091",
                f"Assessment in status {VerificationStatus(assessment.verification_status).value} cannot be edited",
            )
