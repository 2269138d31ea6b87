"""
User ORM models

Tables:
- users
- audit_logs
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, Uuid, Index

from drms.core.database import Base, JSONType


class User(Base):
    """
    User ORM model

    A user may hold several roles (see auth.UserRole).
    """
    __tablename__ = "users"

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    # account
    email: str = Column(String(255), unique=True, nullable=False, comment="Login email")
    username: str = Column(String(100), unique=True, nullable=False, comment="Login name")
    password_hash: str = Column(String(255), nullable=False, comment="bcrypt hash")

    # profile
    name: str = Column(String(200), nullable=False, comment="Display name")
    phone: Optional[str] = Column(String(50), comment="Phone number")
    organization: Optional[str] = Column(String(200), comment="Organization")

    # state
    is_active: bool = Column(Boolean, nullable=False, default=True, comment="Account enabled")
    is_locked: bool = Column(Boolean, nullable=False, default=False, comment="Locked after failed logins")
    failed_login_attempts: int = Column(Integer, nullable=False, default=0, comment="Consecutive failures")
    last_login: Optional[datetime] = Column(DateTime(timezone=True), comment="Last successful login")

    created_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: datetime = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditLog(Base):
    """
    Audit trail entry

    Written inside the same transaction as the change it records.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_resource", "resource", "resource_id"),
    )

    id: UUID = Column(Uuid, primary_key=True, default=uuid_lib.uuid4)

    user_id: Optional[UUID] = Column(Uuid, comment="Acting user, NULL for the system")
    action: str = Column(String(100), nullable=False, comment="Action code, e.g. VERIFY_ASSESSMENT")
    resource: str = Column(String(100), nullable=False, comment="Resource kind")
    resource_id: Optional[str] = Column(String(100), comment="Resource id")

    old_values: Optional[dict[str, Any]] = Column(JSONType, comment="Values before the change")
    new_values: Optional[dict[str, Any]] = Column(JSONType, comment="Values after the change")
    details: Optional[str] = Column(Text, comment="Free text")

    ip_address: Optional[str] = Column(String(50), comment="Client IP")
    user_agent: Optional[str] = Column(String(500), comment="Client user agent")

    timestamp: datetime = Column(DateTime(timezone=True), default=datetime.utcnow, index=True)
