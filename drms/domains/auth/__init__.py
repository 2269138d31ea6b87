"""
Authentication module

Login, token refresh, session cookie and role grants.
"""

from .models import Role, UserRole
from .service import AuthService, ensure_system_roles, SYSTEM_ROLES
from .router import router as auth_router

__all__ = [
    "Role",
    "UserRole",
    "AuthService",
    "ensure_system_roles",
    "SYSTEM_ROLES",
    "auth_router",
]
