"""Shared fixtures: in-memory sqlite database, API client and record factories."""
from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import drms.models  # noqa: F401  registers all mappers
from drms.core.database import Base, get_db
from drms.core.enums import EntityType, RoleName
from drms.core.security import create_access_token
from drms.domains.auth.service import ensure_system_roles
from drms.domains.entities.models import Entity, EntityAssignment
from drms.domains.incidents.models import Incident
from drms.domains.responses.collaboration import get_collaboration_registry
from drms.domains.users.service import UserService
from drms.main import api_router_v1, app

API = "/api/v1"
DEFAULT_PASSWORD = "Passw0rd123"


@dataclass
class UserHandle:
    id: UUID
    username: str
    name: str
    password: str
    roles: list[str]
    headers: dict[str, str]


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[Any]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        await ensure_system_roles(session)
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _clear_collaborations():
    get_collaboration_registry().clear()
    yield
    get_collaboration_registry().clear()


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncIterator[AsyncClient]:
    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    # routes live on the mounted sub-application
    api_router_v1.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    api_router_v1.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(session_factory) -> Callable[..., Awaitable[UserHandle]]:
    counter = itertools.count(1)

    async def _make(
        *roles: RoleName,
        name: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
    ) -> UserHandle:
        n = next(counter)
        async with session_factory() as session:
            user = await UserService(session).register(
                email=f"user{n}@example.org",
                username=f"user{n}",
                password=password,
                name=name or f"User {n}",
                roles=list(roles),
            )
            await session.commit()
        role_codes = [r.value for r in roles]
        token = create_access_token(user.id, user.username, role_codes)
        return UserHandle(
            id=user.id,
            username=user.username,
            name=user.name,
            password=password,
            roles=role_codes,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest_asyncio.fixture
async def make_entity(session_factory) -> Callable[..., Awaitable[Entity]]:
    counter = itertools.count(1)

    async def _make(
        *assigned: UserHandle,
        name: Optional[str] = None,
        entity_type: EntityType = EntityType.CAMP,
        is_active: bool = True,
    ) -> Entity:
        async with session_factory() as session:
            entity = Entity(
                name=name or f"Camp {next(counter)}",
                type=entity_type,
                location="Maiduguri",
                is_active=is_active,
            )
            session.add(entity)
            await session.flush()
            for user in assigned:
                session.add(EntityAssignment(user_id=user.id, entity_id=entity.id))
            await session.commit()
            await session.refresh(entity)
        return entity

    return _make


@pytest_asyncio.fixture
async def make_incident(session_factory) -> Callable[..., Awaitable[Incident]]:
    async def _make(incident_type: str = "FLOOD") -> Incident:
        async with session_factory() as session:
            incident = Incident(type=incident_type, description="Flooding along the river")
            session.add(incident)
            await session.commit()
            await session.refresh(incident)
        return incident

    return _make


def health_payload(entity_id: UUID, **overrides: Any) -> dict[str, Any]:
    """HEALTH assessment body with every indicator satisfied"""
    payload: dict[str, Any] = {
        "type": "HEALTH",
        "entity_id": str(entity_id),
        "priority": "MEDIUM",
        "health_data": {
            "has_functional_clinic": True,
            "has_emergency_services": True,
            "has_trained_staff": True,
            "has_medicine_supply": True,
            "has_medical_supplies": True,
            "has_maternal_child_services": True,
            "number_health_facilities": 2,
        },
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def make_assessment(client) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Create an assessment over the API; `verify_as` verifies it afterwards"""

    async def _make(
        assessor: UserHandle,
        entity: Entity,
        submit: bool = True,
        verify_as: Optional[UserHandle] = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        payload = health_payload(entity.id, submit=submit, **overrides)
        resp = await client.post(f"{API}/assessments", json=payload, headers=assessor.headers)
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        if verify_as is not None:
            resp = await client.post(
                f"{API}/verification/assessments/{data['id']}/verify",
                json={"notes": "checked"},
                headers=verify_as.headers,
            )
            assert resp.status_code == 200, resp.text
            data = resp.json()["data"]
        return data

    return _make
