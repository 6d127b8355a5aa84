"""ORM models."""

from benefit_engine.models.activity import AuditEvent, Notification
from benefit_engine.models.base import Base
from benefit_engine.models.claim import Claim, Payment
from benefit_engine.models.fee import FeeSetting, FeeStatus, MonthlyFee
from benefit_engine.models.member import (
    EmploymentStatus,
    FeeCategory,
    Member,
    UserProfile,
    UserRole,
)

__all__ = [
    "AuditEvent",
    "Base",
    "Claim",
    "EmploymentStatus",
    "FeeCategory",
    "FeeSetting",
    "FeeStatus",
    "Member",
    "MonthlyFee",
    "Notification",
    "Payment",
    "UserProfile",
    "UserRole",
]
