"""Tests for payment record queries and export marking."""

from datetime import datetime, timezone

import pytest

from benefit_engine.errors import InvalidParametersError
from benefit_engine.services import PaymentService

EXPORTED_AT = datetime(2024, 10, 1, 9, 30, 15)


async def approved_claim(claim_service, member_id: str, category: str = "08"):
    claim = await claim_service.create_claim(member_id, category)
    await claim_service.approve_by_company(claim.claim_id, "approver")
    return await claim_service.approve_by_hq(claim.claim_id, "admin-1")


@pytest.fixture
async def payments(claim_service, payment_service):
    await approved_claim(claim_service, "M001")
    await approved_claim(claim_service, "M003", "03")
    return await payment_service.list_payments()


class TestListing:
    async def test_one_payment_per_approved_claim(self, payments):
        assert len(payments) == 2
        assert {p.member_id for p in payments} == {"M001", "M003"}
        # Newest first; both approved within the same second
        assert [p.payment_id for p in payments] == [
            "PAY2024100109301502",
            "PAY2024100109301501",
        ]

    async def test_filters(self, payments, payment_service):
        acme = await payment_service.list_payments(company_code="C001")
        assert [p.member_id for p in acme] == ["M001"]

        mine = await payment_service.list_payments(member_id="M003")
        assert [p.amount for p in mine] == [8_000]

        assert await payment_service.list_payments(exported=True) == []
        assert len(await payment_service.list_payments(exported=False)) == 2

    async def test_payment_for_claim(self, payments, payment_service):
        payment = await payment_service.get_payment_for_claim(payments[0].claim_id)
        assert payment.payment_id == payments[0].payment_id


class TestExportMarking:
    async def test_mark_exported(self, payments, payment_service, auditor):
        ids = [p.payment_id for p in payments]
        assert await payment_service.mark_payments_exported(ids, "admin-1") == 2

        exported = await payment_service.list_payments(exported=True)
        assert len(exported) == 2
        assert all(p.exported_at.replace(tzinfo=None) == EXPORTED_AT for p in exported)
        assert await payment_service.list_pending_payments() == []
        assert auditor.operations[-1] == "EXPORT_PAYMENTS"

    async def test_re_marking_keeps_first_timestamp(self, payments, session):
        first = payments[-1].payment_id
        earlier = PaymentService(session, clock=lambda: EXPORTED_AT.replace(tzinfo=timezone.utc))
        await earlier.mark_payments_exported([first])

        later = PaymentService(
            session, clock=lambda: datetime(2024, 11, 1, tzinfo=timezone.utc)
        )
        assert await later.mark_payments_exported([p.payment_id for p in payments]) == 1

        payment = await later.get_payment(first)
        assert payment.exported_at.replace(tzinfo=None) == EXPORTED_AT

    async def test_pending_oldest_first(self, payments, payment_service):
        pending = await payment_service.list_pending_payments()
        assert [p.payment_id for p in pending] == [
            "PAY2024100109301501",
            "PAY2024100109301502",
        ]

    async def test_empty_selection(self, payment_service):
        with pytest.raises(InvalidParametersError):
            await payment_service.mark_payments_exported([])


class TestStats:
    async def test_stats(self, payments, payment_service):
        await payment_service.mark_payments_exported([payments[0].payment_id])

        stats = await payment_service.get_payment_stats()
        assert stats["total_count"] == 2
        assert stats["total_amount"] == 10_000 + 8_000
        assert stats["pending_count"] == 1
        assert stats["exported_count"] == 1
        assert stats["exported_amount"] + stats["pending_amount"] == 18_000

    async def test_stats_for_company(self, payments, payment_service):
        stats = await payment_service.get_payment_stats(company_code="C002")
        assert stats["total_count"] == 1
        assert stats["total_amount"] == 8_000

    async def test_stats_for_member(self, payments, payment_service):
        stats = await payment_service.get_payment_stats(member_id="M001")
        assert stats["total_count"] == 1
        assert stats["total_amount"] == 10_000

        assert (await payment_service.get_payment_stats(member_id="M006"))["total_count"] == 0
