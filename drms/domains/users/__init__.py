"""
User management module

Users, account state and the audit trail.
"""

from .models import User, AuditLog
from .schemas import UserCreate, UserUpdate, UserResponse, AuditLogResponse
from .repository import AuditLogRepository
from .service import UserService
from .router import router as users_router

__all__ = [
    "User",
    "AuditLog",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "AuditLogResponse",
    "AuditLogRepository",
    "UserService",
    "users_router",
]
