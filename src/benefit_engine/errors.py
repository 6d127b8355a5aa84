"""Typed errors raised by the benefit engine services.

Every error carries a stable ``code`` the HTTP layer maps onto a status and
a display-safe message.
"""

from __future__ import annotations


class BenefitEngineError(Exception):
    """Base class for all benefit engine errors."""

    code = "BENEFIT_ENGINE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(BenefitEngineError):
    """Raised when a referenced record does not exist."""

    code = "NOT_FOUND"
    entity = "record"

    def __init__(self, identifier: str | int):
        self.identifier = identifier
        super().__init__(f"{self.entity} '{identifier}' not found")


class ClaimNotFoundError(NotFoundError):
    entity = "Claim"


class MemberNotFoundError(NotFoundError):
    entity = "Member"


class FeeNotFoundError(NotFoundError):
    entity = "Monthly fee"


class InvalidTransitionError(BenefitEngineError):
    """Raised when an invalid claim status transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnknownCategoryError(BenefitEngineError):
    """Raised for a benefit category code outside the known set."""

    code = "UNKNOWN_CATEGORY"

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Unknown benefit category '{category}'")


class InvalidParametersError(BenefitEngineError):
    """Raised when operation arguments fail validation."""

    code = "INVALID_PARAMETERS"


class IdGenerationExhaustedError(BenefitEngineError):
    """Raised when no free identifier was found within the attempt budget."""

    code = "ID_GENERATION_EXHAUSTED"

    def __init__(self, prefix: str, attempts: int):
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(
            f"Could not allocate an identifier for '{prefix}' after {attempts} attempts"
        )


class NoEligibleMembersError(BenefitEngineError):
    """Raised when fee aggregation finds no active or on-leave members."""

    code = "NO_ELIGIBLE_MEMBERS"

    def __init__(self, year_month: str):
        self.year_month = year_month
        super().__init__(f"No eligible members to aggregate fees for {year_month}")


class AuthorizationDeniedError(BenefitEngineError):
    """Raised when the caller's role does not permit a write."""

    code = "AUTHORIZATION_DENIED"


class PersistenceError(BenefitEngineError):
    """Raised when the database rejects a write."""

    code = "PERSISTENCE_FAILURE"
