"""
Verification module

State machine, auto-approval rules and the workflow shared by assessments
and responses. The router lives in `drms.domains.verification.router`; it
depends on both of those domains and is imported by the app directly.
"""

from .state import ReviewTarget, ALLOWED_TRANSITIONS, can_transition, ensure_transition
from .auto_approval import (
    AutoApprovalScope, AutoApprovalConditions, AutoApprovalConfig, evaluate_auto_approval
)
from .workflow import VerificationWorkflow

__all__ = [
    "ReviewTarget",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "ensure_transition",
    "AutoApprovalScope",
    "AutoApprovalConditions",
    "AutoApprovalConfig",
    "evaluate_auto_approval",
    "VerificationWorkflow",
]
