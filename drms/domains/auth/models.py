"""
Role ORM models

Tables:
- roles
- user_roles
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint, Uuid

from drms.core.database import Base


class Role(Base):
    __tablename__ = "roles"

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    code: str = Column(String(50), unique=True, nullable=False, comment="Role code, see RoleName")
    name: str = Column(String(100), nullable=False, comment="Display name")
    description: Optional[str] = Column(Text, comment="Description")

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)


class UserRole(Base):
    """User to role link"""
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    user_id: UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id: UUID = Column(Uuid, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    assigned_by: Optional[UUID] = Column(Uuid, comment="Admin who granted the role")

    assigned_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
