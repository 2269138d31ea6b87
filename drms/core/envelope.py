"""
Response envelope

Every API response has the shape {success, data | error, meta}, where meta
carries timestamp, API version and the request id.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from .config import settings
from .logging_config import get_request_id


T = TypeVar("T")


class ResponseMeta(BaseModel):
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO8601 timestamp",
    )
    version: str = Field(default_factory=lambda: settings.api_version, description="API version")
    requestId: str = Field(default_factory=get_request_id, description="Request id")


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine readable error code")
    message: str = Field(..., description="Human readable message")
    details: Optional[Any] = Field(default=None, description="Field level detail")


class ApiResponse(BaseModel, Generic[T]):
    """
    Uniform response body

    success: whether the request succeeded
    data: payload on success
    error: error body on failure
    meta: timestamp / version / requestId
    """
    success: bool = Field(default=True)
    data: Optional[T] = Field(default=None)
    error: Optional[ErrorBody] = Field(default=None)
    meta: ResponseMeta = Field(default_factory=ResponseMeta)

    @classmethod
    def ok(cls, data: Any = None) -> "ApiResponse[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str, details: Any = None) -> "ApiResponse":
        return cls(success=False, error=ErrorBody(code=code, message=message, details=details))


class PageData(BaseModel, Generic[T]):
    """Paginated list"""
    items: list[T] = Field(default_factory=list)
    total: int = Field(default=0)
    page: int = Field(default=1)
    page_size: int = Field(default=20)
    total_pages: int = Field(default=0)

    @classmethod
    def build(cls, items: list[Any], total: int, page: int, page_size: int) -> "PageData[T]":
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if page_size else 0,
        )


def error_content(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Envelope dict for exception handlers"""
    return ApiResponse.fail(code, message, details).model_dump(mode="json")
