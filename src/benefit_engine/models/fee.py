"""Monthly fee aggregation models."""

from __future__ import annotations

from datetime import date
from enum import Enum

from sqlalchemy import CheckConstraint, Date, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from benefit_engine.models.base import Base, UpdatedAtMixin


class FeeStatus(str, Enum):
    """Billing status of a monthly fee row."""

    UNINVOICED = "uninvoiced"
    INVOICED = "invoiced"
    PARTIALLY_PAID = "partially_paid"
    FULLY_PAID = "fully_paid"


class MonthlyFee(Base, UpdatedAtMixin):
    """Fees owed by one company for one month."""

    __tablename__ = "monthly_fee"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    year_month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    company_code: Mapped[str] = mapped_column(String(32), nullable=False)
    company_name: Mapped[str] = mapped_column(String, nullable=False)

    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    general_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    chief_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    manager_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    leave_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=FeeStatus.UNINVOICED.value
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("year_month", "company_code", name="monthly_fee_month_company_key"),
        CheckConstraint(
            "status IN ('uninvoiced', 'invoiced', 'partially_paid', 'fully_paid')",
            name="monthly_fee_status_check",
        ),
        CheckConstraint("paid_amount >= 0", name="monthly_fee_paid_amount_check"),
    )

    @property
    def unpaid_amount(self) -> int:
        return max(self.total_fee - self.paid_amount, 0)


class FeeSetting(Base, UpdatedAtMixin):
    """Live per-tier monthly fee rate."""

    __tablename__ = "fee_setting"

    category: Mapped[str] = mapped_column(String(16), primary_key=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="fee_setting_amount_check"),
    )
