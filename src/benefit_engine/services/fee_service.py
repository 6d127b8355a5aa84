"""Fee service - monthly membership fee aggregation and collection."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from benefit_engine.calculators.tables import DEFAULT_FEE_RATES
from benefit_engine.database import transaction
from benefit_engine.errors import (
    FeeNotFoundError,
    InvalidParametersError,
    NoEligibleMembersError,
)
from benefit_engine.models import (
    EmploymentStatus,
    FeeCategory,
    FeeSetting,
    FeeStatus,
    Member,
    MonthlyFee,
)
from benefit_engine.models.base import utcnow
from benefit_engine.services.notifications import AuditSink, run_isolated

logger = logging.getLogger(__name__)

YEAR_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_year_month(year_month: str) -> str:
    if not isinstance(year_month, str) or not YEAR_MONTH_PATTERN.match(year_month):
        raise InvalidParametersError(f"year_month must be YYYY-MM, got {year_month!r}")
    return year_month


def summarize_fees(year_month: str, fees: Sequence[MonthlyFee]) -> dict[str, Any]:
    """Totals over a set of fee rows."""
    paid_companies = sum(1 for f in fees if f.status == FeeStatus.FULLY_PAID.value)
    return {
        "year_month": year_month,
        "company_count": len(fees),
        "member_count": sum(f.member_count for f in fees),
        "leave_count": sum(f.leave_count for f in fees),
        "total_fee": sum(f.total_fee for f in fees),
        "paid_amount": sum(f.paid_amount for f in fees),
        "unpaid_amount": sum(f.unpaid_amount for f in fees),
        "paid_company_count": paid_companies,
        "unpaid_company_count": len(fees) - paid_companies,
    }


@dataclass
class CompanyTally:
    """Running member counts for one company."""

    company_code: str
    company_name: str
    general_count: int = 0
    chief_count: int = 0
    manager_count: int = 0
    leave_count: int = 0

    def add(self, employment_status: str, fee_category: str) -> None:
        if employment_status == EmploymentStatus.ON_LEAVE.value:
            self.leave_count += 1
        elif fee_category == FeeCategory.CHIEF.value:
            self.chief_count += 1
        elif fee_category == FeeCategory.MANAGER.value:
            self.manager_count += 1
        else:
            self.general_count += 1

    @property
    def member_count(self) -> int:
        """Billable members; on-leave members are counted in leave_count only."""
        return self.general_count + self.chief_count + self.manager_count

    def total_fee(self, rates: dict[str, int]) -> int:
        """Fees owed; on-leave members are not billed."""
        return (
            self.general_count * rates[FeeCategory.GENERAL.value]
            + self.chief_count * rates[FeeCategory.CHIEF.value]
            + self.manager_count * rates[FeeCategory.MANAGER.value]
        )


class FeeService:
    """Service for monthly fee rows.

    Operations:
    - generate_monthly_fees: rebuild one month's per-company fee rows
    - record_fee_payment: accumulate a received payment
    - mark_fees_invoiced: stamp the invoice date on selected rows
    - list_fees / get_fee_summary: reporting
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        audit: AuditSink | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.audit = audit
        self.clock = clock

    async def get_fee_rates(self) -> dict[str, int]:
        """Per-tier rates, with the fee_setting table overriding the defaults."""
        rates = dict(DEFAULT_FEE_RATES)
        result = await self.session.execute(select(FeeSetting))
        for setting in result.scalars():
            if setting.category in rates:
                rates[setting.category] = setting.amount
        return rates

    async def generate_monthly_fees(self, year_month: str, actor: str | None = None) -> int:
        """Replace the month's fee rows with a fresh aggregation.

        Active members are counted by fee tier, on-leave members separately
        and without charge. Returns the number of companies written.
        """
        validate_year_month(year_month)

        result = await self.session.execute(
            select(
                Member.company_code,
                Member.company_name,
                Member.employment_status,
                Member.fee_category,
            )
            .where(
                Member.employment_status.in_(
                    [EmploymentStatus.ACTIVE.value, EmploymentStatus.ON_LEAVE.value]
                )
            )
            .order_by(Member.company_code, Member.member_id)
        )
        rows = result.all()
        if not rows:
            raise NoEligibleMembersError(year_month)

        tallies: dict[str, CompanyTally] = {}
        for company_code, company_name, employment_status, fee_category in rows:
            tally = tallies.get(company_code)
            if tally is None:
                tally = tallies[company_code] = CompanyTally(company_code, company_name)
            tally.add(employment_status, fee_category)

        rates = await self.get_fee_rates()

        async with transaction(self.session, "generate monthly fees"):
            await self.session.execute(
                delete(MonthlyFee).where(MonthlyFee.year_month == year_month)
            )
            self.session.add_all(
                MonthlyFee(
                    year_month=year_month,
                    company_code=tally.company_code,
                    company_name=tally.company_name,
                    member_count=tally.member_count,
                    general_count=tally.general_count,
                    chief_count=tally.chief_count,
                    manager_count=tally.manager_count,
                    leave_count=tally.leave_count,
                    total_fee=tally.total_fee(rates),
                    paid_amount=0,
                    status=FeeStatus.UNINVOICED.value,
                )
                for tally in tallies.values()
            )

        logger.info(
            "Generated fees for %s: %d companies, %d members",
            year_month,
            len(tallies),
            len(rows),
        )
        await self._audit(
            "GENERATE_FEES",
            year_month,
            {"companies": len(tallies), "rates": rates},
            actor,
        )
        return len(tallies)

    async def record_fee_payment(
        self,
        fee_id: int,
        amount: int,
        payment_date: date | None = None,
        actor: str | None = None,
    ) -> MonthlyFee:
        """Add a received payment to a fee row.

        Payments accumulate, so a row never moves back from fully paid.
        """
        if amount <= 0:
            raise InvalidParametersError("Payment amount must be positive")

        async with transaction(self.session, "record fee payment"):
            fee = await self.session.get(MonthlyFee, fee_id)
            if fee is None:
                raise FeeNotFoundError(fee_id)

            fee.paid_amount += amount
            fee.payment_date = payment_date or self.clock().date()
            fee.status = (
                FeeStatus.FULLY_PAID.value
                if fee.paid_amount >= fee.total_fee
                else FeeStatus.PARTIALLY_PAID.value
            )

        logger.info(
            "Recorded payment of %d on fee %s (%s %s): %s",
            amount,
            fee_id,
            fee.year_month,
            fee.company_code,
            fee.status,
        )
        await self._audit(
            "RECORD_FEE_PAYMENT",
            str(fee_id),
            {"amount": amount, "paid_amount": fee.paid_amount, "status": fee.status},
            actor,
        )
        return fee

    async def mark_fees_invoiced(
        self, fee_ids: Sequence[int], actor: str | None = None
    ) -> int:
        """Stamp today's invoice date on the selected rows.

        Rows still uninvoiced become invoiced; rows already paid keep their
        status. Returns the number of rows stamped.
        """
        ids = list(dict.fromkeys(fee_ids))
        if not ids:
            raise InvalidParametersError("No fees selected")

        today = self.clock().date()
        async with transaction(self.session, "mark fees invoiced"):
            found = await self.session.execute(
                select(MonthlyFee.id).where(MonthlyFee.id.in_(ids))
            )
            missing = set(ids) - set(found.scalars().all())
            if missing:
                raise FeeNotFoundError(min(missing))

            await self.session.execute(
                update(MonthlyFee)
                .where(MonthlyFee.id.in_(ids))
                .values(invoice_date=today)
                .execution_options(synchronize_session="fetch")
            )
            await self.session.execute(
                update(MonthlyFee)
                .where(
                    MonthlyFee.id.in_(ids),
                    MonthlyFee.status == FeeStatus.UNINVOICED.value,
                )
                .values(status=FeeStatus.INVOICED.value)
                .execution_options(synchronize_session="fetch")
            )

        await self._audit("INVOICE_FEES", "monthly_fee", {"fee_ids": ids}, actor)
        return len(ids)

    async def get_fee(self, fee_id: int) -> MonthlyFee | None:
        return await self.session.get(MonthlyFee, fee_id)

    async def list_fees(
        self,
        year_month: str | None = None,
        company_code: str | None = None,
        status: FeeStatus | None = None,
    ) -> list[MonthlyFee]:
        """List fee rows, newest month first then by company."""
        query = select(MonthlyFee)
        if year_month is not None:
            query = query.where(MonthlyFee.year_month == validate_year_month(year_month))
        if company_code is not None:
            query = query.where(MonthlyFee.company_code == company_code)
        if status is not None:
            query = query.where(MonthlyFee.status == FeeStatus(status).value)
        result = await self.session.execute(
            query.order_by(MonthlyFee.year_month.desc(), MonthlyFee.company_code)
        )
        return list(result.scalars().all())

    async def get_fee_summary(
        self, year_month: str, company_code: str | None = None
    ) -> dict[str, Any]:
        """Totals for one month, across all companies unless one is given."""
        fees = await self.list_fees(year_month=year_month, company_code=company_code)
        return summarize_fees(year_month, fees)

    async def _audit(
        self,
        operation_type: str,
        target: str,
        details: dict[str, Any] | None,
        actor: str | None,
    ) -> None:
        if self.audit is None:
            return
        await run_isolated(
            self.audit.record(operation_type, target, details, actor),
            f"audit {operation_type} {target}",
        )
