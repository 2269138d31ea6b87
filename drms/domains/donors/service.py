"""
Donor profiles and commitments

Commitment lifecycle:

    PLANNED -> PARTIAL | COMPLETE | CANCELLED
    PARTIAL -> COMPLETE | CANCELLED

COMPLETE and CANCELLED are terminal. Responses draw quantity from a
commitment through `CommitmentService.record_usage`, which leaves the commit
to the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drms.core.dependencies import ADMIN_ROLE, current_user_id, has_role
from drms.core.enums import CommitmentStatus, DonorType, RoleName
from drms.core.envelope import PageData
from drms.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from drms.domains.entities.repository import EntityRepository, EntityAssignmentRepository
from drms.domains.incidents.repository import IncidentRepository
from drms.domains.users.repository import AuditLogRepository
from drms.domains.users.service import UserService

from .models import Donor, DonorCommitment
from .repository import DonorRepository, CommitmentRepository
from .schemas import (
    DonorRegisterRequest, DonorUpdate, DonorResponse,
    CommitmentCreate, CommitmentStatusUpdate, CommitmentResponse,
    CommitmentStatusBreakdown, DonorStatsResponse, CommitmentAssign, CommitmentAssignmentRecord,
    LeaderboardEntry, LeaderboardResponse, LeaderboardSort, LeaderboardTimeframe, SupportedEntity,
)

logger = logging.getLogger(__name__)


COMMITMENT_TRANSITIONS: Mapping[CommitmentStatus, frozenset[CommitmentStatus]] = {
    CommitmentStatus.PLANNED: frozenset({
        CommitmentStatus.PARTIAL,
        CommitmentStatus.COMPLETE,
        CommitmentStatus.CANCELLED,
    }),
    CommitmentStatus.PARTIAL: frozenset({CommitmentStatus.COMPLETE, CommitmentStatus.CANCELLED}),
    CommitmentStatus.COMPLETE: frozenset(),
    CommitmentStatus.CANCELLED: frozenset(),
}

# Statuses a response may still draw quantity from
AVAILABLE_STATUSES = (CommitmentStatus.PLANNED, CommitmentStatus.PARTIAL)


class DonorService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = DonorRepository(session)
        self.commitment_repo = CommitmentRepository(session)
        self.entity_repo = EntityRepository(session)
        self.user_service = UserService(session)
        self.audit_repo = AuditLogRepository(session)

    async def register(self, data: DonorRegisterRequest) -> DonorResponse:
        """
        Create a login account with the DONOR role and its donor profile

        Raises:
            ConflictError: US4091 username or email taken
            ValidationError: weak password
        """
        user = await self.user_service.register(
            email=data.email,
            username=data.username,
            password=data.password,
            name=data.name,
            phone=data.contact_phone,
            organization=data.organization,
            roles=[RoleName.DONOR],
        )
        donor = await self.repo.create(Donor(
            name=data.donor_name,
            type=data.type,
            contact_email=data.email,
            contact_phone=data.contact_phone,
            organization=data.organization,
            user_id=user.id,
        ))
        await self.audit_repo.record(
            user_id=user.id,
            action="REGISTER_DONOR",
            resource="donor",
            resource_id=donor.id,
            new_values={"name": donor.name, "type": data.type.value},
        )
        await self.session.commit()
        logger.info(f"Donor registered: {donor.name} (user {user.username})")
        return DonorResponse.model_validate(donor)

    async def get(self, donor_id: UUID) -> DonorResponse:
        return DonorResponse.model_validate(await self.get_donor(donor_id))

    async def get_donor(self, donor_id: UUID) -> Donor:
        donor = await self.repo.get_by_id(donor_id)
        if not donor:
            raise NotFoundError("donor", donor_id)
        return donor

    async def get_profile(self, user_id: UUID) -> Donor:
        """
        Raises:
            NotFoundError: the user has no donor profile
        """
        donor = await self.repo.get_by_user_id(user_id)
        if not donor:
            raise NotFoundError("donor", user_id)
        return donor

    async def update_profile(self, user_id: UUID, data: DonorUpdate) -> DonorResponse:
        donor = await self.get_profile(user_id)

        update_data = data.model_dump(exclude_unset=True)
        old_values = {field: getattr(donor, field) for field in update_data}
        for field, value in update_data.items():
            setattr(donor, field, value)

        donor = await self.repo.update(donor)
        await self.audit_repo.record(
            user_id=user_id,
            action="UPDATE",
            resource="donor",
            resource_id=donor.id,
            old_values=old_values,
            new_values=update_data,
        )
        result = DonorResponse.model_validate(donor)
        await self.session.commit()
        return result

    async def list_donors(
        self,
        page: int = 1,
        page_size: int = 20,
        donor_type: Optional[DonorType] = None,
        is_active: Optional[bool] = None,
    ) -> PageData[DonorResponse]:
        donors, total = await self.repo.list_donors(
            page=page,
            page_size=page_size,
            donor_type=donor_type,
            is_active=is_active,
        )
        items = [DonorResponse.model_validate(d) for d in donors]
        return PageData.build(items, total, page, page_size)

    async def stats(self, donor_id: UUID) -> DonorStatsResponse:
        """
        Commitment counts per status and utilization

        Cancelled commitments are counted but excluded from the quantities.
        """
        await self.get_donor(donor_id)
        breakdown = CommitmentStatusBreakdown()
        total_count = 0
        committed = 0
        delivered = 0
        for status, count, committed_sum, delivered_sum in await self.commitment_repo.stats_for_donor(donor_id):
            status = CommitmentStatus(status)
            setattr(breakdown, status.value.lower(), count)
            total_count += count
            if status != CommitmentStatus.CANCELLED:
                committed += int(committed_sum)
                delivered += int(delivered_sum)

        utilization = round(delivered / committed * 100, 2) if committed else 0.0
        return DonorStatsResponse(
            donor_id=donor_id,
            total_commitments=total_count,
            status_breakdown=breakdown,
            total_committed_quantity=committed,
            total_delivered_quantity=delivered,
            utilization_rate=utilization,
        )

    async def leaderboard(
        self,
        timeframe: LeaderboardTimeframe = LeaderboardTimeframe.MONTH,
        sort_by: LeaderboardSort = LeaderboardSort.OVERALL,
        limit: int = 50,
    ) -> LeaderboardResponse:
        """
        Rank active donors by their commitments made within the timeframe

        overall_score weights delivery rate 0.6 and completion rate 0.4.
        Ties fall back to delivered quantity, then donor name.
        """
        totals: dict[UUID, dict[str, int]] = {}
        rows = await self.commitment_repo.leaderboard_rows(since=timeframe.since(datetime.utcnow()))
        for donor_id, status, count, committed_sum, delivered_sum in rows:
            status = CommitmentStatus(status)
            entry = totals.setdefault(donor_id, {"count": 0, "complete": 0, "open": 0, "committed": 0, "delivered": 0})
            entry["count"] += count
            if status == CommitmentStatus.CANCELLED:
                continue
            entry["open"] += count
            entry["committed"] += int(committed_sum)
            entry["delivered"] += int(delivered_sum)
            if status == CommitmentStatus.COMPLETE:
                entry["complete"] += count

        donors = {d.id: d for d in await self.repo.get_by_ids(list(totals))}
        entries: list[LeaderboardEntry] = []
        for donor_id, entry in totals.items():
            delivery_rate = round(entry["delivered"] / entry["committed"] * 100, 2) if entry["committed"] else 0.0
            completion_rate = round(entry["complete"] / entry["open"] * 100, 2) if entry["open"] else 0.0
            entries.append(LeaderboardEntry(
                rank=0,
                donor_id=donor_id,
                donor_name=donors[donor_id].name,
                organization=donors[donor_id].organization,
                total_commitments=entry["count"],
                completed_commitments=entry["complete"],
                total_committed_quantity=entry["committed"],
                total_delivered_quantity=entry["delivered"],
                delivery_rate=delivery_rate,
                completion_rate=completion_rate,
                overall_score=round(delivery_rate * 0.6 + completion_rate * 0.4, 2),
            ))

        primary = {
            LeaderboardSort.OVERALL: lambda e: e.overall_score,
            LeaderboardSort.DELIVERY_RATE: lambda e: e.delivery_rate,
            LeaderboardSort.VOLUME: lambda e: e.total_delivered_quantity,
        }[sort_by]
        entries.sort(key=lambda e: (-primary(e), -e.total_delivered_quantity, e.donor_name))
        for rank, entry in enumerate(entries[:limit], start=1):
            entry.rank = rank
        return LeaderboardResponse(timeframe=timeframe, sort_by=sort_by, entries=entries[:limit])

    async def supported_entities(self, user_id: UUID) -> list[SupportedEntity]:
        """Entities the caller's donor profile holds live or fulfilled commitments for"""
        donor = await self.get_profile(user_id)
        counts = await self.commitment_repo.supported_entities(donor.id)
        entities = await self.entity_repo.get_by_ids(list(counts))
        return [
            SupportedEntity(
                entity_id=entity.id,
                entity_name=entity.name,
                entity_type=entity.type,
                location=entity.location,
                active_commitments=counts[entity.id],
            )
            for entity in sorted(entities, key=lambda e: e.name)
        ]


class CommitmentService:

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = CommitmentRepository(session)
        self.donor_repo = DonorRepository(session)
        self.entity_repo = EntityRepository(session)
        self.assignment_repo = EntityAssignmentRepository(session)
        self.incident_repo = IncidentRepository(session)
        self.audit_repo = AuditLogRepository(session)

    async def create(self, data: CommitmentCreate, user_id: UUID) -> CommitmentResponse:
        """
        Pledge items from the caller's donor profile

        Raises:
            NotFoundError: donor profile, entity or incident missing
            ConflictError: DN4091 donor or entity inactive
        """
        donor = await self._get_active_donor(user_id)

        entity = await self.entity_repo.get_by_id(data.entity_id)
        if not entity:
            raise NotFoundError("entity", data.entity_id)
        if not entity.is_active:
            raise ConflictError("DN4091", "Entity not found or inactive")
        if not await self.incident_repo.get_by_id(data.incident_id):
            raise NotFoundError("incident", data.incident_id)

        commitment = await self.repo.create(DonorCommitment(
            donor_id=donor.id,
            entity_id=entity.id,
            incident_id=data.incident_id,
            items=[item.model_dump() for item in data.items],
            total_committed_quantity=data.total_committed_quantity,
            delivered_quantity=0,
            status=CommitmentStatus.PLANNED,
            commitment_date=data.commitment_date or datetime.utcnow(),
            notes=data.notes,
        ))
        await self.audit_repo.record(
            user_id=user_id,
            action="CREATE",
            resource="commitment",
            resource_id=commitment.id,
            new_values=data.model_dump(),
        )
        await self.session.commit()
        logger.info(
            f"Commitment {commitment.id} created by donor {donor.name}: "
            f"{commitment.total_committed_quantity} units for entity {entity.name}"
        )
        return CommitmentResponse.model_validate(commitment)

    async def get(self, commitment_id: UUID, current_user: dict[str, Any]) -> CommitmentResponse:
        commitment = await self.get_commitment(commitment_id)
        await self._ensure_can_view(commitment, current_user)
        return CommitmentResponse.model_validate(commitment)

    async def get_commitment(self, commitment_id: UUID) -> DonorCommitment:
        commitment = await self.repo.get_by_id(commitment_id)
        if not commitment:
            raise NotFoundError("commitment", commitment_id)
        return commitment

    async def list_for_donor(
        self,
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        status: Optional[CommitmentStatus] = None,
        incident_id: Optional[UUID] = None,
    ) -> PageData[CommitmentResponse]:
        donor = await self.donor_repo.get_by_user_id(user_id)
        if not donor:
            raise NotFoundError("donor", user_id)
        commitments, total = await self.repo.list_commitments(
            page=page,
            page_size=page_size,
            donor_id=donor.id,
            incident_id=incident_id,
            statuses=[status] if status else None,
        )
        items = [CommitmentResponse.model_validate(c) for c in commitments]
        return PageData.build(items, total, page, page_size)

    async def list_available(
        self,
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        entity_id: Optional[UUID] = None,
        incident_id: Optional[UUID] = None,
    ) -> PageData[CommitmentResponse]:
        """PLANNED / PARTIAL commitments for entities the responder is assigned to"""
        entity_ids = await self.assignment_repo.get_entity_ids_for_user(user_id)
        if entity_id:
            entity_ids = [e for e in entity_ids if e == entity_id]

        commitments, total = await self.repo.list_commitments(
            page=page,
            page_size=page_size,
            entity_ids=entity_ids,
            incident_id=incident_id,
            statuses=list(AVAILABLE_STATUSES),
        )
        items = [CommitmentResponse.model_validate(c) for c in commitments]
        return PageData.build(items, total, page, page_size)

    async def update_status(
        self,
        commitment_id: UUID,
        data: CommitmentStatusUpdate,
        current_user: dict[str, Any],
    ) -> CommitmentResponse:
        """
        Raises:
            AuthorizationError: DN4031 not the owning donor or a coordinator
            ConflictError: DN4092 transition not allowed
        """
        commitment = await self.get_commitment(commitment_id)
        await self._ensure_can_manage(commitment, current_user)

        old_status = CommitmentStatus(commitment.status)
        self._ensure_transition(old_status, data.status)

        commitment.status = data.status
        if data.status == CommitmentStatus.COMPLETE:
            commitment.delivered_quantity = commitment.total_committed_quantity
        if data.notes is not None:
            commitment.notes = data.notes

        commitment = await self.repo.update(commitment)
        await self.audit_repo.record(
            user_id=current_user_id(current_user),
            action="UPDATE_STATUS",
            resource="commitment",
            resource_id=commitment.id,
            old_values={"status": old_status.value},
            new_values={"status": data.status.value},
        )
        await self.session.commit()
        logger.info(f"Commitment {commitment.id}: {old_status.value} -> {data.status.value}")
        return CommitmentResponse.model_validate(commitment)

    async def cancel(self, commitment_id: UUID, current_user: dict[str, Any]) -> CommitmentResponse:
        """
        Soft delete; only untouched (PLANNED) commitments can be cancelled

        Raises:
            ConflictError: DN4093 commitment already in use
        """
        commitment = await self.get_commitment(commitment_id)
        await self._ensure_can_manage(commitment, current_user)
        if commitment.status != CommitmentStatus.PLANNED:
            raise ConflictError(
                "DN4093",
                f"Only planned commitments can be cancelled, current status {CommitmentStatus(commitment.status).value}",
            )

        commitment.status = CommitmentStatus.CANCELLED
        commitment = await self.repo.update(commitment)
        await self.audit_repo.record(
            user_id=current_user_id(current_user),
            action="CANCEL",
            resource="commitment",
            resource_id=commitment.id,
            old_values={"status": CommitmentStatus.PLANNED.value},
            new_values={"status": CommitmentStatus.CANCELLED.value},
        )
        await self.session.commit()
        logger.info(f"Commitment {commitment.id} cancelled")
        return CommitmentResponse.model_validate(commitment)

    async def reassign(
        self,
        commitment_id: UUID,
        data: CommitmentAssign,
        current_user: dict[str, Any],
    ) -> CommitmentResponse:
        """
        Move a PLANNED or PARTIAL commitment to another entity

        Coordinators must be assigned to the target entity; ADMIN is not.

        Raises:
            NotFoundError: commitment or entity missing
            ConflictError: DN4091 entity inactive, DN4092 commitment not
                available, DN4094 already assigned to that entity
            AuthorizationError: DN4032 caller not assigned to the target entity
        """
        user_id = current_user_id(current_user)
        commitment = await self.get_commitment(commitment_id)
        if commitment.status not in AVAILABLE_STATUSES:
            raise ConflictError(
                "DN4092",
                "Only planned or partial commitments can be reassigned",
                details={"status": CommitmentStatus(commitment.status).value},
            )
        if commitment.entity_id == data.entity_id:
            raise ConflictError("DN4094", "Commitment is already assigned to this entity")

        entity = await self.entity_repo.get_by_id(data.entity_id)
        if not entity:
            raise NotFoundError("entity", data.entity_id)
        if not entity.is_active:
            raise ConflictError("DN4091", "Entity not found or inactive")
        if ADMIN_ROLE not in current_user.get("roles", []):
            if not await self.assignment_repo.is_assigned(user_id, entity.id):
                raise AuthorizationError("DN4032", "You must be assigned to the target entity to reassign commitments")

        old_entity_id = commitment.entity_id
        commitment.entity_id = entity.id
        commitment = await self.repo.update(commitment)
        await self.audit_repo.record(
            user_id=user_id,
            action="REASSIGN_ENTITY",
            resource="commitment",
            resource_id=commitment.id,
            old_values={"entity_id": old_entity_id},
            new_values={"entity_id": entity.id},
            details=data.reason,
        )
        result = CommitmentResponse.model_validate(commitment)
        await self.session.commit()
        logger.info(f"Commitment {commitment.id} moved from entity {old_entity_id} to {entity.name}")
        return result

    async def assignment_history(self, commitment_id: UUID) -> list[CommitmentAssignmentRecord]:
        """Entity reassignments of a commitment, newest first"""
        await self.get_commitment(commitment_id)
        logs, _ = await self.audit_repo.list_logs(
            page_size=100,
            resource="commitment",
            resource_id=str(commitment_id),
            action="REASSIGN_ENTITY",
        )
        return [
            CommitmentAssignmentRecord(
                from_entity_id=(log.old_values or {}).get("entity_id"),
                to_entity_id=(log.new_values or {}).get("entity_id"),
                reason=log.details,
                assigned_by=log.user_id,
                assigned_at=log.timestamp,
            )
            for log in logs
        ]

    async def record_usage(
        self,
        commitment: DonorCommitment,
        quantity: int,
        user_id: UUID,
    ) -> DonorCommitment:
        """
        Draw `quantity` from a commitment; the caller commits

        Raises:
            ConflictError: DN4092 commitment is not PLANNED or PARTIAL
            ValidationError: quantity not positive or above what is left
        """
        self._check_available(commitment, quantity)

        old_values = {
            "delivered_quantity": commitment.delivered_quantity,
            "status": CommitmentStatus(commitment.status).value,
        }
        drawn = await self.repo.draw(commitment.id, quantity, AVAILABLE_STATUSES)
        await self.session.refresh(commitment)
        if not drawn:
            # another request drew first; report against the current row
            self._check_available(commitment, quantity)
            raise ConflictError(
                "DN4092",
                "Commitment was changed by another request",
                details={"status": CommitmentStatus(commitment.status).value},
            )

        await self.audit_repo.record(
            user_id=user_id,
            action="USE_COMMITMENT",
            resource="commitment",
            resource_id=commitment.id,
            old_values=old_values,
            new_values={
                "delivered_quantity": commitment.delivered_quantity,
                "status": CommitmentStatus(commitment.status).value,
                "quantity": quantity,
            },
        )
        logger.info(
            f"Commitment {commitment.id}: {quantity} used, "
            f"{commitment.delivered_quantity}/{commitment.total_committed_quantity} delivered"
        )
        return commitment

    @staticmethod
    def _check_available(commitment: DonorCommitment, quantity: int) -> None:
        if commitment.status not in AVAILABLE_STATUSES:
            raise ConflictError(
                "DN4092",
                "Commitment is not available for use",
                details={"status": CommitmentStatus(commitment.status).value},
            )
        available = commitment.total_committed_quantity - commitment.delivered_quantity
        if quantity <= 0 or quantity > available:
            logger.warning(f"Commitment {commitment.id}: requested {quantity}, available {available}")
            raise ValidationError(
                f"Requested quantity ({quantity}) exceeds available ({available})",
                details={"requested": quantity, "available": available},
            )

    @staticmethod
    def _ensure_transition(current: CommitmentStatus, target: CommitmentStatus) -> None:
        if target not in COMMITMENT_TRANSITIONS[current]:
            raise ConflictError(
                "DN4092",
                f"Cannot change commitment status from {current.value} to {target.value}",
                details={"current_status": current.value, "target_status": target.value},
            )

    async def _get_active_donor(self, user_id: UUID) -> Donor:
        donor = await self.donor_repo.get_by_user_id(user_id)
        if not donor:
            raise NotFoundError("donor", user_id)
        if not donor.is_active:
            raise ConflictError("DN4091", "Donor not found or inactive")
        return donor

    async def _is_owner(self, commitment: DonorCommitment, user_id: UUID) -> bool:
        donor = await self.donor_repo.get_by_id(commitment.donor_id)
        return donor is not None and donor.user_id == user_id

    async def _ensure_can_manage(self, commitment: DonorCommitment, current_user: dict[str, Any]) -> None:
        if has_role(current_user, RoleName.COORDINATOR.value):
            return
        if not await self._is_owner(commitment, current_user_id(current_user)):
            raise AuthorizationError("DN4031", "Only the pledging donor or a coordinator can change this commitment")

    async def _ensure_can_view(self, commitment: DonorCommitment, current_user: dict[str, Any]) -> None:
        if has_role(current_user, RoleName.COORDINATOR.value, RoleName.RESPONDER.value):
            return
        if not await self._is_owner(commitment, current_user_id(current_user)):
            raise AuthorizationError("DN4031", "You can only view your own commitments")
