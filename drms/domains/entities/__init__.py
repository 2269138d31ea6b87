"""
Entity module

Affected locations and the users assigned to them.
"""

from .models import Entity, EntityAssignment
from .service import EntityService, ensure_entity_access
from .router import router as entities_router

__all__ = [
    "Entity",
    "EntityAssignment",
    "EntityService",
    "ensure_entity_access",
    "entities_router",
]
