"""Payment service - queries and export marking for payment records."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from benefit_engine.database import transaction
from benefit_engine.errors import InvalidParametersError
from benefit_engine.models import Payment
from benefit_engine.models.base import utcnow
from benefit_engine.services.notifications import AuditSink, run_isolated

logger = logging.getLogger(__name__)


class PaymentService:
    """Read and mark Payment records.

    Payments are created only by HQ approval; afterwards the only mutation is
    setting ``exported_at`` when a funds-transfer batch picks them up.
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

    async def get_payment(self, payment_id: str) -> Payment | None:
        return await self.session.get(Payment, payment_id)

    async def get_payment_for_claim(self, claim_id: str) -> Payment | None:
        result = await self.session.execute(
            select(Payment).where(Payment.claim_id == claim_id)
        )
        return result.scalar_one_or_none()

    async def list_payments(
        self,
        company_code: str | None = None,
        exported: bool | None = None,
        member_id: str | None = None,
    ) -> list[Payment]:
        """List payments, newest first."""
        query = select(Payment)
        if company_code is not None:
            query = query.where(Payment.company_code == company_code)
        if member_id is not None:
            query = query.where(Payment.member_id == member_id)
        if exported is True:
            query = query.where(Payment.exported_at.is_not(None))
        elif exported is False:
            query = query.where(Payment.exported_at.is_(None))
        result = await self.session.execute(query.order_by(Payment.payment_id.desc()))
        return list(result.scalars().all())

    async def list_pending_payments(self) -> list[Payment]:
        """Payments not yet exported, oldest first."""
        result = await self.session.execute(
            select(Payment)
            .where(Payment.exported_at.is_(None))
            .order_by(Payment.payment_id)
        )
        return list(result.scalars().all())

    async def mark_payments_exported(
        self, payment_ids: Sequence[str], actor: str | None = None
    ) -> int:
        """Stamp ``exported_at`` on payments that have not been exported yet.

        Already exported payments keep their original timestamp. Returns the
        number of payments newly marked.
        """
        ids = list(dict.fromkeys(payment_ids))
        if not ids:
            raise InvalidParametersError("No payments selected")

        async with transaction(self.session, "mark payments exported"):
            result = await self.session.execute(
                update(Payment)
                .where(Payment.payment_id.in_(ids), Payment.exported_at.is_(None))
                .values(exported_at=self.clock())
                .execution_options(synchronize_session="fetch")
            )
            marked = result.rowcount

        logger.info("Marked %d of %d payments exported", marked, len(ids))
        if self.audit is not None:
            await run_isolated(
                self.audit.record(
                    "EXPORT_PAYMENTS",
                    "payment",
                    {"payment_ids": ids, "marked": marked},
                    actor,
                ),
                "audit EXPORT_PAYMENTS",
            )
        return marked

    async def get_payment_stats(
        self, company_code: str | None = None, member_id: str | None = None
    ) -> dict[str, Any]:
        """Counts and amounts of all, pending and exported payments."""
        pending = Payment.exported_at.is_(None)
        query = select(
            func.count(),
            func.coalesce(func.sum(Payment.amount), 0),
            func.coalesce(func.sum(case((pending, 1), else_=0)), 0),
            func.coalesce(func.sum(case((pending, Payment.amount), else_=0)), 0),
        ).select_from(Payment)
        if company_code is not None:
            query = query.where(Payment.company_code == company_code)
        if member_id is not None:
            query = query.where(Payment.member_id == member_id)
        result = await self.session.execute(query)
        total_count, total_amount, pending_count, pending_amount = result.one()
        return {
            "total_count": int(total_count),
            "total_amount": int(total_amount),
            "pending_count": int(pending_count),
            "pending_amount": int(pending_amount),
            "exported_count": int(total_count) - int(pending_count),
            "exported_amount": int(total_amount) - int(pending_amount),
        }
