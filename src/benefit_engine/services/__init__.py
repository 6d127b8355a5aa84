"""Business services."""

from benefit_engine.services.claim_service import ClaimService
from benefit_engine.services.fee_service import FeeService
from benefit_engine.services.payment_service import PaymentService
from benefit_engine.services.state_machine import (
    ApprovalLevel,
    ClaimStateMachine,
    ClaimStatus,
)

__all__ = [
    "ApprovalLevel",
    "ClaimService",
    "ClaimStateMachine",
    "ClaimStatus",
    "FeeService",
    "PaymentService",
]
