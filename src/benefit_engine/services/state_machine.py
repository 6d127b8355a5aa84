"""Claim state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from benefit_engine.errors import InvalidTransitionError

__all__ = [
    "ApprovalLevel",
    "ClaimStateMachine",
    "ClaimStatus",
    "InvalidTransitionError",
]


class ClaimStatus(str, Enum):
    """Claim status values."""

    DRAFT = "draft"  # reserved, no operation produces it
    PENDING = "pending"
    COMPANY_APPROVED = "company_approved"
    HQ_APPROVED = "hq_approved"
    PAID = "paid"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ApprovalLevel(str, Enum):
    """Approval tiers."""

    COMPANY = "company"
    HQ = "hq"


class ClaimStateMachine:
    """State machine for claim status transitions.

    Allowed transitions:
    - pending → company_approved | rejected | cancelled
    - company_approved → hq_approved | rejected | cancelled
    - hq_approved → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ClaimStatus.DRAFT: [],
        ClaimStatus.PENDING: [
            ClaimStatus.COMPANY_APPROVED,
            ClaimStatus.REJECTED,
            ClaimStatus.CANCELLED,
        ],
        ClaimStatus.COMPANY_APPROVED: [
            ClaimStatus.HQ_APPROVED,
            ClaimStatus.REJECTED,
            ClaimStatus.CANCELLED,
        ],
        ClaimStatus.HQ_APPROVED: [ClaimStatus.PAID],
        ClaimStatus.PAID: [],  # Terminal states
        ClaimStatus.REJECTED: [],
        ClaimStatus.CANCELLED: [],
    }

    # Tier that decides a claim in each status
    DECIDING_LEVEL: dict[str, ApprovalLevel] = {
        ClaimStatus.PENDING: ApprovalLevel.COMPANY,
        ClaimStatus.COMPANY_APPROVED: ApprovalLevel.HQ,
    }

    # Status a claim waits in for each approval tier
    AWAITING_STATUS: dict[ApprovalLevel, ClaimStatus] = {
        ApprovalLevel.COMPANY: ClaimStatus.PENDING,
        ApprovalLevel.HQ: ClaimStatus.COMPANY_APPROVED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(str(from_status), str(to_status))

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(status)

    @classmethod
    def deciding_level(cls, status: str) -> ApprovalLevel | None:
        """Tier currently responsible for a claim, if it is awaiting a decision."""
        return cls.DECIDING_LEVEL.get(status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
