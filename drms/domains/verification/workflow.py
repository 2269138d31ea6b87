"""
Verification workflow

Moves assessments and responses through the verification state machine.
Every transition is a guarded UPDATE (`... WHERE verification_status IN
(<allowed sources>)`), so two concurrent reviewers cannot both succeed: the
loser updates zero rows and gets a 409. Audit entries are written in the
same transaction; the calling service commits.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.enums import RejectionReason, VerificationStatus
from drms.core.exceptions import ConflictError, ValidationError
from drms.domains.entities.models import Entity
from drms.domains.users.repository import AuditLogRepository

from .auto_approval import AutoApprovalConfig, AutoApprovalDecision, evaluate_auto_approval
from .state import ReviewTarget, ensure_transition, source_states

logger = logging.getLogger(__name__)


class VerificationWorkflow:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.audit_repo = AuditLogRepository(session)

    async def submit(
        self,
        item: Any,
        target: ReviewTarget,
        user_id: UUID,
    ) -> Any:
        """
        DRAFT / REJECTED -> SUBMITTED, then AUTO_VERIFIED when the entity's
        auto-approval rules match.
        """
        await self._transition(
            item,
            target,
            VerificationStatus.SUBMITTED,
            {
                "submitted_at": datetime.utcnow(),
                "rejection_reason": None,
                "rejection_feedback": None,
            },
        )
        await self.audit_repo.record(
            user_id=user_id,
            action=f"SUBMIT_{target.audit_suffix}",
            resource=target.value,
            resource_id=item.id,
            new_values={"verification_status": VerificationStatus.SUBMITTED.value},
        )
        logger.info(f"{target.value} {item.id} submitted by {user_id}")

        decision = await self.check_auto_approval(item, target)
        if decision.eligible:
            await self._transition(
                item,
                target,
                VerificationStatus.AUTO_VERIFIED,
                {"verified_at": datetime.utcnow(), "verified_by": None},
            )
            await self.audit_repo.record(
                user_id=None,
                action=f"AUTO_APPROVE_{target.audit_suffix}",
                resource=target.value,
                resource_id=item.id,
                old_values={"verification_status": VerificationStatus.SUBMITTED.value},
                new_values={"verification_status": VerificationStatus.AUTO_VERIFIED.value},
            )
            logger.info(f"{target.value} {item.id} auto-approved")
        return item

    async def verify(
        self,
        item: Any,
        target: ReviewTarget,
        user_id: UUID,
        notes: Optional[str] = None,
    ) -> Any:
        await self._transition(
            item,
            target,
            VerificationStatus.VERIFIED,
            {
                "verified_at": datetime.utcnow(),
                "verified_by": user_id,
                "verification_notes": notes,
            },
        )
        await self.audit_repo.record(
            user_id=user_id,
            action=f"VERIFY_{target.audit_suffix}",
            resource=target.value,
            resource_id=item.id,
            old_values={"verification_status": VerificationStatus.SUBMITTED.value},
            new_values={"verification_status": VerificationStatus.VERIFIED.value, "notes": notes},
        )
        logger.info(f"{target.value} {item.id} verified by {user_id}")
        return item

    async def reject(
        self,
        item: Any,
        target: ReviewTarget,
        user_id: UUID,
        reason: RejectionReason,
        feedback: str,
    ) -> Any:
        """
        Raises:
            ValidationError: feedback empty
        """
        if not feedback or not feedback.strip():
            raise ValidationError(
                "Rejection feedback is required",
                details=[{"field": "feedback", "message": "must not be empty"}],
            )

        await self._transition(
            item,
            target,
            VerificationStatus.REJECTED,
            {
                "verified_at": datetime.utcnow(),
                "verified_by": user_id,
                "rejection_reason": reason,
                "rejection_feedback": feedback.strip(),
            },
        )
        await self.audit_repo.record(
            user_id=user_id,
            action=f"REJECT_{target.audit_suffix}",
            resource=target.value,
            resource_id=item.id,
            old_values={"verification_status": VerificationStatus.SUBMITTED.value},
            new_values={
                "verification_status": VerificationStatus.REJECTED.value,
                "rejection_reason": reason.value,
                "rejection_feedback": feedback.strip(),
            },
        )
        logger.info(f"{target.value} {item.id} rejected by {user_id}: {reason.value}")
        return item

    async def check_auto_approval(self, item: Any, target: ReviewTarget) -> AutoApprovalDecision:
        entity = await self.session.get(Entity, item.entity_id)
        if entity is None:
            return AutoApprovalDecision(eligible=False, reasons=["Entity not found"])
        return evaluate_auto_approval(
            AutoApprovalConfig.from_entity(entity),
            target,
            item_type=item.type,
            priority=item.priority,
            has_documentation=bool(item.media_attachments),
        )

    async def _transition(
        self,
        item: Any,
        target_kind: ReviewTarget,
        target: VerificationStatus,
        values: dict[str, Any],
    ) -> None:
        """
        Guarded status change; refreshes `item` afterwards

        Raises:
            ConflictError: VF4091 illegal from the loaded state,
                VF4092 when the row changed underneath us
        """
        ensure_transition(item.verification_status, target, target_kind)

        model = type(item)
        result = await self.session.execute(
            update(model)
            .where(
                model.id == item.id,
                model.verification_status.in_(source_states(target)),
            )
            .values(verification_status=target, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"{target_kind.value} {item.id} changed concurrently, {target.value} refused")
            raise ConflictError(
                "VF4092",
                f"{target_kind.value.capitalize()} was already processed by another request",
            )
        await self.session.refresh(item)
