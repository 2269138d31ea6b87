"""
Entity schemas
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator

from drms.core.enums import EntityType


class EntityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Entity name")
    type: EntityType = Field(..., description="Entity type")
    location: Optional[str] = Field(None, max_length=300)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    properties: dict[str, Any] = Field(default_factory=dict)


class EntityUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, max_length=300)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    properties: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None

    @field_validator("name", "is_active")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("cannot be null")
        return v


class EntityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: EntityType
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    properties: Optional[dict[str, Any]] = None
    is_active: bool
    auto_approve_enabled: bool
    auto_approval: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None


class EntityAssignmentCreate(BaseModel):
    user_id: UUID = Field(..., description="User to assign")


class EntityAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    entity_id: UUID
    assigned_by: Optional[UUID] = None
    assigned_at: datetime
