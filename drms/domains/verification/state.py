"""
Verification state machine

    DRAFT -> SUBMITTED
    SUBMITTED -> VERIFIED | AUTO_VERIFIED | REJECTED
    REJECTED -> SUBMITTED

VERIFIED and AUTO_VERIFIED are terminal.
"""
from __future__ import annotations

from enum import Enum
from typing import Mapping

from drms.core.enums import VerificationStatus
from drms.core.exceptions import ConflictError


class ReviewTarget(str, Enum):
    """Kind of record moving through verification"""
    ASSESSMENT = "assessment"
    RESPONSE = "response"

    @property
    def audit_suffix(self) -> str:
        return self.value.upper()


ALLOWED_TRANSITIONS: Mapping[VerificationStatus, frozenset[VerificationStatus]] = {
    VerificationStatus.DRAFT: frozenset({VerificationStatus.SUBMITTED}),
    VerificationStatus.SUBMITTED: frozenset({
        VerificationStatus.VERIFIED,
        VerificationStatus.AUTO_VERIFIED,
        VerificationStatus.REJECTED,
    }),
    VerificationStatus.REJECTED: frozenset({VerificationStatus.SUBMITTED}),
    VerificationStatus.VERIFIED: frozenset(),
    VerificationStatus.AUTO_VERIFIED: frozenset(),
}

# Records in these states may still be edited by their owner
EDITABLE_STATES = frozenset({VerificationStatus.DRAFT, VerificationStatus.REJECTED})

TERMINAL_STATES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)


def can_transition(current: VerificationStatus, target: VerificationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[VerificationStatus(current)]


def source_states(target: VerificationStatus) -> frozenset[VerificationStatus]:
    """States from which `target` can be reached"""
    return frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if target in targets)


def ensure_transition(
    current: VerificationStatus,
    target: VerificationStatus,
    target_kind: ReviewTarget,
) -> None:
    """
    Raises:
        ConflictError: VF4091 when the move is not allowed
    """
    if not can_transition(current, target):
        raise ConflictError(
            "VF4091",
            f"Cannot move {target_kind.value} from {VerificationStatus(current).value} to {target.value}",
            details={"current_status": VerificationStatus(current).value, "target_status": target.value},
        )
