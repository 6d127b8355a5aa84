"""Benefit claim and payment models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from benefit_engine.models.base import Base, TimestampMixin, UpdatedAtMixin


class Claim(Base, UpdatedAtMixin):
    """A benefit application and its approval trail.

    ``calculated_amount`` is fixed at submission; ``final_amount`` starts equal
    to it and only diverges when HQ approval overrides the amount.
    """

    __tablename__ = "claim"

    claim_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    submitted_on: Mapped[date] = mapped_column(Date, nullable=False)
    member_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("member.member_id"), nullable=False, index=True
    )
    member_name: Mapped[str] = mapped_column(String, nullable=False)
    company_code: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    company_name: Mapped[str] = mapped_column(String, nullable=False)

    benefit_category: Mapped[str] = mapped_column(String(2), nullable=False)
    benefit_type_name: Mapped[str] = mapped_column(String, nullable=False)
    calculation_params: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    application_content: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )

    calculation_base_date: Mapped[date] = mapped_column(Date, nullable=False)
    membership_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    standard_monthly_remuneration: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    calculation_details: Mapped[str] = mapped_column(Text, nullable=False)
    calculated_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    final_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, index=True)

    # Company tier
    company_approver: Mapped[str | None] = mapped_column(String, nullable=True)
    company_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    company_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    # HQ tier
    hq_approver: Mapped[str | None] = mapped_column(String, nullable=True)
    hq_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    hq_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    scheduled_payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_completed_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending', 'company_approved', 'hq_approved', "
            "'paid', 'rejected', 'cancelled')",
            name="claim_status_check",
        ),
        CheckConstraint("calculated_amount >= 0", name="claim_calculated_amount_check"),
        CheckConstraint("final_amount >= 0", name="claim_final_amount_check"),
    )


class Payment(Base, TimestampMixin):
    """Bank-transfer record created when HQ approves a claim.

    Bank attributes are a snapshot of the member's account at approval time.
    """

    __tablename__ = "payment"

    payment_id: Mapped[str] = mapped_column(String(24), primary_key=True)
    claim_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("claim.claim_id"), nullable=False
    )
    member_id: Mapped[str] = mapped_column(String(32), nullable=False)
    member_name: Mapped[str] = mapped_column(String, nullable=False)
    company_code: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    benefit_type_name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    payout_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    bank_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    branch_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    account_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    account_holder: Mapped[str | None] = mapped_column(String, nullable=True)

    # Null until a funds-transfer batch consumes the record
    exported_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("claim_id", name="payment_claim_id_key"),
        CheckConstraint("amount >= 0", name="payment_amount_check"),
    )
