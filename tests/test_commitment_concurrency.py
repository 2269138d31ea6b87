"""Two responders drawing from one commitment: the second draw sees the first."""
from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import drms.models  # noqa: F401
from drms.core.database import Base
from drms.core.enums import CommitmentStatus, EntityType, RoleName
from drms.core.exceptions import ValidationError
from drms.domains.auth.service import ensure_system_roles
from drms.domains.donors.models import Donor, DonorCommitment
from drms.domains.donors.service import CommitmentService
from drms.domains.entities.models import Entity
from drms.domains.incidents.models import Incident
from drms.domains.users.repository import AuditLogRepository
from drms.domains.users.service import UserService


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'drms.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


async def _seed(factory) -> dict:
    async with factory() as session:
        await ensure_system_roles(session)
        users = UserService(session)
        first = await users.register("r1@example.org", "resp1", "Passw0rd123", "Responder 1", roles=[RoleName.RESPONDER])
        second = await users.register("r2@example.org", "resp2", "Passw0rd123", "Responder 2", roles=[RoleName.RESPONDER])
        entity = Entity(name="Bakassi Camp", type=EntityType.CAMP)
        incident = Incident(type="FLOOD")
        donor = Donor(name="Relief Trust")
        session.add_all([entity, incident, donor])
        await session.flush()
        commitment = DonorCommitment(
            donor_id=donor.id,
            entity_id=entity.id,
            incident_id=incident.id,
            items=[{"name": "Blankets", "unit": "pieces", "quantity": 10}],
            total_committed_quantity=10,
        )
        session.add(commitment)
        await session.commit()
        return {"commitment_id": commitment.id, "first": first.id, "second": second.id}


async def test_stale_draw_cannot_overdraw(file_session_factory) -> None:
    """Both sessions load 10 available; A takes 8 and commits, B's 8 is refused."""
    seeded = await _seed(file_session_factory)

    async with file_session_factory() as session_a, file_session_factory() as session_b:
        loaded_a = await session_a.get(DonorCommitment, seeded["commitment_id"])
        loaded_b = await session_b.get(DonorCommitment, seeded["commitment_id"])
        assert loaded_b.delivered_quantity == 0

        drawn = await CommitmentService(session_a).record_usage(loaded_a, 8, seeded["first"])
        assert drawn.status == CommitmentStatus.PARTIAL
        await session_a.commit()

        with pytest.raises(ValidationError) as exc_info:
            await CommitmentService(session_b).record_usage(loaded_b, 8, seeded["second"])
        assert exc_info.value.details == {"requested": 8, "available": 2}
        await session_b.rollback()

    async with file_session_factory() as session:
        commitment = await session.get(DonorCommitment, seeded["commitment_id"])
        assert commitment.delivered_quantity == 8
        assert commitment.status == CommitmentStatus.PARTIAL
        logs, total = await AuditLogRepository(session).list_logs(resource="commitment")
        assert [log.action for log in logs] == ["USE_COMMITMENT"]


async def test_draws_add_up_to_complete(file_session_factory) -> None:
    seeded = await _seed(file_session_factory)

    async with file_session_factory() as session_a, file_session_factory() as session_b:
        loaded_a = await session_a.get(DonorCommitment, seeded["commitment_id"])
        loaded_b = await session_b.get(DonorCommitment, seeded["commitment_id"])

        await CommitmentService(session_a).record_usage(loaded_a, 6, seeded["first"])
        await session_a.commit()

        result = await CommitmentService(session_b).record_usage(loaded_b, 4, seeded["second"])
        await session_b.commit()
        assert result.delivered_quantity == 10
        assert result.status == CommitmentStatus.COMPLETE
