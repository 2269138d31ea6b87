"""
Dashboard module

Read-only aggregation over incidents, assessments and responses, and the
donor view of supported entities.
"""

from .service import DashboardService
from .router import router as dashboard_router, donor_insights_router

__all__ = ["DashboardService", "dashboard_router", "donor_insights_router"]
