"""Member and user directory models."""

from __future__ import annotations

from datetime import date
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from benefit_engine.models.base import Base, UpdatedAtMixin


class EmploymentStatus(str, Enum):
    """Member employment status."""

    ACTIVE = "active"
    ON_LEAVE = "on_leave"
    WITHDRAWN = "withdrawn"


class FeeCategory(str, Enum):
    """Fee tier a member is billed under."""

    GENERAL = "general"
    CHIEF = "chief"
    MANAGER = "manager"


class UserRole(str, Enum):
    """Roles known to the identity boundary."""

    ADMIN = "admin"
    APPROVER = "approver"
    MEMBER = "member"


class Member(Base, UpdatedAtMixin):
    """A mutual-aid program member."""

    __tablename__ = "member"

    member_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    company_code: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    company_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False)
    withdrawal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    employment_status: Mapped[str] = mapped_column(
        String, nullable=False, default=EmploymentStatus.ACTIVE.value
    )
    fee_category: Mapped[str] = mapped_column(
        String, nullable=False, default=FeeCategory.GENERAL.value
    )
    standard_monthly_remuneration: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    # Payout account
    bank_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String, nullable=True)
    branch_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    branch_name: Mapped[str | None] = mapped_column(String, nullable=True)
    account_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    account_holder: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "employment_status IN ('active', 'on_leave', 'withdrawn')",
            name="member_employment_status_check",
        ),
        CheckConstraint(
            "fee_category IN ('general', 'chief', 'manager')",
            name="member_fee_category_check",
        ),
    )

    @property
    def full_name(self) -> str:
        return f"{self.last_name} {self.first_name}"


class UserProfile(Base, UpdatedAtMixin):
    """Application user, used to resolve notification recipients."""

    __tablename__ = "user_profile"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default=UserRole.MEMBER.value)
    company_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    member_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'approver', 'member')",
            name="user_profile_role_check",
        ),
    )
