"""
Response module

Response planning, delivery confirmation and edit collaboration.
"""

from .models import RapidResponse
from .collaboration import CollaborationRegistry, get_collaboration_registry
from .service import RapidResponseService
from .router import router as responses_router

__all__ = [
    "RapidResponse",
    "CollaborationRegistry",
    "get_collaboration_registry",
    "RapidResponseService",
    "responses_router",
]
