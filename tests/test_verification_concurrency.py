"""Two reviewers acting on the same submission: the stale one must lose."""
from __future__ import annotations

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import drms.models  # noqa: F401
from drms.core.database import Base
from drms.core.enums import AssessmentType, EntityType, RejectionReason, RoleName, VerificationStatus
from drms.core.exceptions import ConflictError
from drms.domains.assessments.models import RapidAssessment
from drms.domains.auth.service import ensure_system_roles
from drms.domains.entities.models import Entity
from drms.domains.users.repository import AuditLogRepository
from drms.domains.users.service import UserService
from drms.domains.verification.service import VerificationService


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    # separate connections need a shared file, not :memory:
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
        assessor = await users.register("a@example.org", "assessor", "Passw0rd123", "Assessor", roles=[RoleName.ASSESSOR])
        first = await users.register("c1@example.org", "coord1", "Passw0rd123", "Coordinator 1", roles=[RoleName.COORDINATOR])
        second = await users.register("c2@example.org", "coord2", "Passw0rd123", "Coordinator 2", roles=[RoleName.COORDINATOR])
        entity = Entity(name="Gubio Camp", type=EntityType.CAMP)
        session.add(entity)
        await session.flush()
        assessment = RapidAssessment(
            type=AssessmentType.HEALTH,
            assessment_date=datetime.utcnow(),
            assessor_id=assessor.id,
            assessor_name=assessor.name,
            entity_id=entity.id,
            verification_status=VerificationStatus.SUBMITTED,
            submitted_at=datetime.utcnow(),
            media_attachments=[],
        )
        session.add(assessment)
        await session.commit()
        return {"assessment_id": assessment.id, "first": first.id, "second": second.id}


async def test_stale_reviewer_gets_conflict(file_session_factory) -> None:
    """B loaded the row while it was SUBMITTED; A's verify commits first."""
    seeded = await _seed(file_session_factory)

    async with file_session_factory() as session_a, file_session_factory() as session_b:
        service_a = VerificationService(session_a)
        service_b = VerificationService(session_b)
        loaded_b = await service_b.assessment_service.get_assessment(seeded["assessment_id"])
        assert loaded_b.verification_status == VerificationStatus.SUBMITTED

        result = await service_a.verify_assessment(seeded["assessment_id"], seeded["first"])
        assert result.verification_status == VerificationStatus.VERIFIED

        with pytest.raises(ConflictError) as exc_info:
            await service_b.reject_assessment(
                seeded["assessment_id"],
                seeded["second"],
                RejectionReason.OTHER,
                "Looks duplicated",
            )
        assert exc_info.value.error_code == "VF4092"
        await session_b.rollback()

    async with file_session_factory() as session:
        assessment = await session.get(RapidAssessment, seeded["assessment_id"])
        assert assessment.verification_status == VerificationStatus.VERIFIED
        assert assessment.verified_by == seeded["first"]
        logs, total = await AuditLogRepository(session).list_logs(resource="assessment")
        assert [log.action for log in logs] == ["VERIFY_ASSESSMENT"]
