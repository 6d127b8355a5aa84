"""Tests for monthly fee aggregation."""

from datetime import date

import pytest
from sqlalchemy import update

from benefit_engine.errors import (
    FeeNotFoundError,
    InvalidParametersError,
    NoEligibleMembersError,
)
from benefit_engine.models import FeeSetting, FeeStatus, Member


def by_company(fees):
    return {f.company_code: f for f in fees}


class TestGenerateMonthlyFees:
    async def test_aggregates_per_company(self, fee_service):
        companies = await fee_service.generate_monthly_fees("2024-10")
        assert companies == 2

        fees = by_company(await fee_service.list_fees(year_month="2024-10"))
        acme = fees["C001"]
        assert (acme.general_count, acme.chief_count, acme.manager_count) == (1, 1, 1)
        assert acme.leave_count == 0
        assert acme.member_count == 3
        assert acme.total_fee == 500 + 1_000 + 2_000
        assert acme.status == FeeStatus.UNINVOICED.value
        assert acme.paid_amount == 0

        # On-leave members are tallied apart and not billed; withdrawn members are skipped
        beta = fees["C002"]
        assert beta.manager_count == 1
        assert beta.leave_count == 1
        assert beta.member_count == 1
        assert beta.total_fee == 2_000

    async def test_fee_settings_override_defaults(self, fee_service, session):
        session.add(FeeSetting(category="general", amount=700))
        await session.commit()

        await fee_service.generate_monthly_fees("2024-10")
        fees = by_company(await fee_service.list_fees(year_month="2024-10"))
        assert fees["C001"].total_fee == 700 + 1_000 + 2_000

    async def test_regeneration_replaces_month(self, fee_service):
        await fee_service.generate_monthly_fees("2024-10")
        fee = by_company(await fee_service.list_fees(year_month="2024-10"))["C001"]
        await fee_service.record_fee_payment(fee.id, 3_500)

        await fee_service.generate_monthly_fees("2024-10")
        fees = await fee_service.list_fees(year_month="2024-10")
        assert len(fees) == 2
        assert all(f.paid_amount == 0 for f in fees)
        assert all(f.status == FeeStatus.UNINVOICED.value for f in fees)

    async def test_other_months_untouched(self, fee_service):
        await fee_service.generate_monthly_fees("2024-09")
        september = await fee_service.list_fees(year_month="2024-09")

        await fee_service.generate_monthly_fees("2024-10")
        await fee_service.generate_monthly_fees("2024-10")

        after = await fee_service.list_fees(year_month="2024-09")
        assert [f.id for f in after] == [f.id for f in september]

    async def test_no_eligible_members(self, fee_service, session):
        await fee_service.generate_monthly_fees("2024-09")
        await session.execute(update(Member).values(employment_status="withdrawn"))
        await session.commit()

        with pytest.raises(NoEligibleMembersError):
            await fee_service.generate_monthly_fees("2024-10")

        assert len(await fee_service.list_fees(year_month="2024-09")) == 2
        assert await fee_service.list_fees(year_month="2024-10") == []

    @pytest.mark.parametrize("year_month", ["2024-13", "202410", "2024-1", "24-10"])
    async def test_invalid_year_month(self, fee_service, year_month):
        with pytest.raises(InvalidParametersError):
            await fee_service.generate_monthly_fees(year_month)


class TestFeePayments:
    async def _acme_fee(self, fee_service):
        await fee_service.generate_monthly_fees("2024-10")
        return by_company(await fee_service.list_fees(year_month="2024-10"))["C001"]

    async def test_partial_then_full(self, fee_service):
        fee = await self._acme_fee(fee_service)

        fee = await fee_service.record_fee_payment(fee.id, 1_000, date(2024, 10, 20))
        assert fee.status == FeeStatus.PARTIALLY_PAID.value
        assert fee.paid_amount == 1_000
        assert fee.payment_date == date(2024, 10, 20)

        fee = await fee_service.record_fee_payment(fee.id, 2_500)
        assert fee.status == FeeStatus.FULLY_PAID.value
        assert fee.paid_amount == 3_500
        assert fee.payment_date == date(2024, 10, 1)

    async def test_overpayment_stays_fully_paid(self, fee_service):
        fee = await self._acme_fee(fee_service)
        await fee_service.record_fee_payment(fee.id, 3_500)
        fee = await fee_service.record_fee_payment(fee.id, 100)

        assert fee.status == FeeStatus.FULLY_PAID.value
        assert fee.paid_amount == 3_600
        assert fee.unpaid_amount == 0

    @pytest.mark.parametrize("amount", [0, -500])
    async def test_non_positive_amount(self, fee_service, amount):
        fee = await self._acme_fee(fee_service)
        with pytest.raises(InvalidParametersError):
            await fee_service.record_fee_payment(fee.id, amount)

    async def test_missing_fee(self, fee_service):
        with pytest.raises(FeeNotFoundError):
            await fee_service.record_fee_payment(999, 100)

    async def test_audited(self, fee_service, auditor):
        fee = await self._acme_fee(fee_service)
        await fee_service.record_fee_payment(fee.id, 100, actor="admin-1")

        assert auditor.operations == ["GENERATE_FEES", "RECORD_FEE_PAYMENT"]
        assert auditor.events[-1]["actor"] == "admin-1"


class TestInvoicing:
    async def test_mark_invoiced(self, fee_service):
        await fee_service.generate_monthly_fees("2024-10")
        fees = by_company(await fee_service.list_fees(year_month="2024-10"))
        await fee_service.record_fee_payment(fees["C002"].id, 2_000)

        marked = await fee_service.mark_fees_invoiced([fees["C001"].id, fees["C002"].id])
        assert marked == 2

        fees = by_company(await fee_service.list_fees(year_month="2024-10"))
        assert fees["C001"].status == FeeStatus.INVOICED.value
        assert fees["C001"].invoice_date == date(2024, 10, 1)
        # Paid rows keep their status
        assert fees["C002"].status == FeeStatus.FULLY_PAID.value
        assert fees["C002"].invoice_date == date(2024, 10, 1)

    async def test_rows_already_loaded_see_the_update(self, fee_service):
        await fee_service.generate_monthly_fees("2024-10")
        fees = await fee_service.list_fees(year_month="2024-10")

        await fee_service.mark_fees_invoiced([fees[0].id])

        assert fees[0].status == FeeStatus.INVOICED.value
        assert fees[0].invoice_date == date(2024, 10, 1)
        assert fees[1].status == FeeStatus.UNINVOICED.value
        assert fees[1].invoice_date is None

    async def test_unknown_fee_id(self, fee_service):
        await fee_service.generate_monthly_fees("2024-10")
        fees = await fee_service.list_fees(year_month="2024-10")

        with pytest.raises(FeeNotFoundError):
            await fee_service.mark_fees_invoiced([fees[0].id, 999])

        fees = await fee_service.list_fees(year_month="2024-10")
        assert all(f.invoice_date is None for f in fees)

    async def test_empty_selection(self, fee_service):
        with pytest.raises(InvalidParametersError):
            await fee_service.mark_fees_invoiced([])


class TestReporting:
    async def test_summary(self, fee_service):
        await fee_service.generate_monthly_fees("2024-10")
        fees = by_company(await fee_service.list_fees(year_month="2024-10"))
        await fee_service.record_fee_payment(fees["C002"].id, 2_000)
        await fee_service.record_fee_payment(fees["C001"].id, 500)

        summary = await fee_service.get_fee_summary("2024-10")
        assert summary["company_count"] == 2
        assert summary["member_count"] == 4
        assert summary["leave_count"] == 1
        assert summary["total_fee"] == 5_500
        assert summary["paid_amount"] == 2_500
        assert summary["unpaid_amount"] == 3_000
        assert summary["paid_company_count"] == 1
        assert summary["unpaid_company_count"] == 1

    async def test_summary_for_company(self, fee_service):
        await fee_service.generate_monthly_fees("2024-10")
        summary = await fee_service.get_fee_summary("2024-10", company_code="C002")
        assert summary["company_count"] == 1
        assert summary["total_fee"] == 2_000

    async def test_list_filters(self, fee_service):
        await fee_service.generate_monthly_fees("2024-09")
        await fee_service.generate_monthly_fees("2024-10")

        assert len(await fee_service.list_fees()) == 4
        assert [f.year_month for f in await fee_service.list_fees(company_code="C001")] == [
            "2024-10",
            "2024-09",
        ]
        assert len(await fee_service.list_fees(status=FeeStatus.UNINVOICED)) == 4
        assert await fee_service.list_fees(status=FeeStatus.FULLY_PAID) == []
