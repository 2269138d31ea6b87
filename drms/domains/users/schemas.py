"""
User schemas
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator

from drms.core.enums import RoleName


class UserCreate(BaseModel):
    """Create user request (ADMIN)"""
    email: str = Field(..., max_length=255, description="Login email")
    username: str = Field(..., min_length=3, max_length=100, description="Login name")
    password: str = Field(..., min_length=8, description="Password")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    phone: Optional[str] = Field(None, max_length=50)
    organization: Optional[str] = Field(None, max_length=200)
    roles: list[RoleName] = Field(default_factory=list, description="Initial roles")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email address must contain '@'")
        return v.strip().lower()


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    organization: Optional[str] = Field(None, max_length=200)

    @field_validator("name")
    @classmethod
    def reject_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("cannot be null")
        return v


class PasswordChange(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    username: str
    name: str
    phone: Optional[str] = None
    organization: Optional[str] = None
    is_active: bool
    is_locked: bool
    last_login: Optional[datetime] = None
    roles: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: Optional[UUID] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    details: Optional[str] = None
    timestamp: datetime
