"""
Database engine and session management

The engine is created on first use so that importing models never opens a
connection. Column types shared by the models are declared here.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

from sqlalchemy import JSON, case
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from .config import settings
from .enums import PRIORITY_LEVELS


class Base(DeclarativeBase):
    # models declare `attr: type = Column(...)` rather than Mapped[]
    __allow_unmapped__ = True


# JSON column, stored as JSONB on PostgreSQL
JSONType = JSON().with_variant(JSONB(), "postgresql")


def priority_rank(column):
    """CASE expression mapping a Priority column to its level, for ORDER BY"""
    return case(
        *[(column == priority, level) for priority, level in PRIORITY_LEVELS.items()],
        else_=0,
    )


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_database_url() -> str:
    db_url = settings.database_url
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


def get_engine() -> AsyncEngine:
    """Get or create the engine (sqlite uses NullPool)"""
    global _engine
    if _engine is None:
        db_url = get_database_url()
        if db_url.startswith("sqlite"):
            _engine = create_async_engine(
                db_url,
                echo=settings.database_echo,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
            )
        else:
            _engine = create_async_engine(
                db_url,
                echo=settings.database_echo,
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_pre_ping=True,
            )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


def AsyncSessionLocal() -> AsyncSession:
    return get_session_factory()()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_all() -> None:
    """Create every table registered on Base.metadata"""
    import drms.models  # noqa: F401  registers all mappers

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
