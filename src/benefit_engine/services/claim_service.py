"""Claim service - benefit application lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from benefit_engine.calculators import MemberProfile, calculate, parse_params
from benefit_engine.calculators.types import BenefitParams, params_to_dict
from benefit_engine.config import Settings, get_settings
from benefit_engine.database import transaction
from benefit_engine.errors import (
    ClaimNotFoundError,
    InvalidParametersError,
    InvalidTransitionError,
    MemberNotFoundError,
)
from benefit_engine.models import Claim, Member, Payment, UserRole
from benefit_engine.models.base import utcnow
from benefit_engine.services.id_generator import (
    CLAIM_ID_WIDTH,
    PAYMENT_ID_WIDTH,
    IdentifierGenerator,
    claim_id_prefix,
    payment_id_prefix,
)
from benefit_engine.services.notifications import (
    AuditSink,
    NotificationSink,
    find_recipients,
    run_isolated,
)
from benefit_engine.services.state_machine import (
    ApprovalLevel,
    ClaimStateMachine,
    ClaimStatus,
)

logger = logging.getLogger(__name__)

REJECTION_PREFIX = "[Rejected] "


class ClaimService:
    """Service for managing the claim lifecycle.

    Operations:
    - create_claim: calculate the benefit and file a pending claim
    - approve_by_company: first-tier approval
    - approve_by_hq: second-tier approval, creates the Payment record
    - reject_claim: reject at whichever tier is deciding
    - mark_paid: record that the transfer was completed
    - cancel_claim: administrative withdrawal of an undecided claim

    Every write commits on success and rolls back completely on failure.
    Status changes are conditional on the status that was read, so two
    concurrent decisions on the same claim cannot both succeed. Notifications
    and audit events are sent after commit and never fail the operation.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        notifications: NotificationSink | None = None,
        audit: AuditSink | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.notifications = notifications
        self.audit = audit
        self.settings = settings or get_settings()
        self.clock = clock
        self.ids = IdentifierGenerator(session, max_attempts=self.settings.id_max_attempts)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_claim(self, claim_id: str) -> Claim | None:
        """Load a claim by id."""
        return await self.session.get(Claim, claim_id)

    async def list_claims(
        self,
        status: ClaimStatus | None = None,
        company_code: str | None = None,
        member_id: str | None = None,
        category: str | None = None,
    ) -> list[Claim]:
        """List claims, newest first."""
        query = select(Claim)
        if status is not None:
            query = query.where(Claim.status == ClaimStatus(status).value)
        if company_code is not None:
            query = query.where(Claim.company_code == company_code)
        if member_id is not None:
            query = query.where(Claim.member_id == member_id)
        if category is not None:
            query = query.where(Claim.benefit_category == category)
        result = await self.session.execute(
            query.order_by(Claim.submitted_on.desc(), Claim.claim_id.desc())
        )
        return list(result.scalars().all())

    async def list_pending_approvals(
        self, level: ApprovalLevel, company_code: str | None = None
    ) -> list[Claim]:
        """Claims awaiting a decision from a tier, oldest first."""
        awaiting = ClaimStateMachine.AWAITING_STATUS[ApprovalLevel(level)]
        query = select(Claim).where(Claim.status == awaiting.value)
        if company_code is not None:
            query = query.where(Claim.company_code == company_code)
        result = await self.session.execute(
            query.order_by(Claim.submitted_on, Claim.claim_id)
        )
        return list(result.scalars().all())

    async def get_claim_stats(
        self, company_code: str | None = None, member_id: str | None = None
    ) -> dict[str, int]:
        """Claim counts per status plus a total."""
        query = select(Claim.status, func.count()).group_by(Claim.status)
        if company_code is not None:
            query = query.where(Claim.company_code == company_code)
        if member_id is not None:
            query = query.where(Claim.member_id == member_id)
        result = await self.session.execute(query)

        stats = {s.value: 0 for s in ClaimStatus}
        for status, count in result.all():
            stats[status] = count
        stats["total"] = sum(stats.values())
        return stats

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_claim(
        self,
        member_id: str,
        category: str,
        params: Mapping[str, Any] | BenefitParams | None = None,
        *,
        application_content: dict[str, Any] | None = None,
        actor: str | None = None,
    ) -> Claim:
        """Calculate the benefit and persist a new pending claim."""
        member = await self.session.get(Member, member_id)
        if member is None:
            raise MemberNotFoundError(member_id)

        now = self.clock()
        parsed = parse_params(category, params)
        result = calculate(category, parsed, _profile(member), base_date=now.date())

        def build(claim_id: str) -> Claim:
            return Claim(
                claim_id=claim_id,
                submitted_on=now.date(),
                member_id=member.member_id,
                member_name=member.full_name,
                company_code=member.company_code,
                company_name=member.company_name,
                benefit_category=result.category.value,
                benefit_type_name=result.label,
                calculation_params=params_to_dict(parsed),
                application_content=application_content,
                calculation_base_date=result.base_date,
                membership_years=result.membership_years,
                standard_monthly_remuneration=(
                    result.standard_monthly_remuneration
                    if result.standard_monthly_remuneration is not None
                    else member.standard_monthly_remuneration
                ),
                calculation_details=result.details,
                calculated_amount=result.amount,
                final_amount=result.amount,
                status=ClaimStatus.PENDING.value,
            )

        async with transaction(self.session, "create claim"):
            claim = await self.ids.insert_with_id(
                Claim.claim_id, claim_id_prefix(now), CLAIM_ID_WIDTH, build
            )

        logger.info(
            "Created claim %s for member %s: %s %d",
            claim.claim_id,
            member_id,
            result.label,
            result.amount,
        )

        await self._audit(
            "CREATE_CLAIM",
            claim.claim_id,
            {
                "member_id": member_id,
                "category": result.category.value,
                "amount": result.amount,
            },
            actor,
        )
        await self._notify_role(
            UserRole.APPROVER,
            claim.company_code,
            title="New benefit claim",
            message=(
                f"{claim.member_name} submitted {claim.benefit_type_name} "
                f"claim {claim.claim_id} for {claim.final_amount:,}."
            ),
            kind="approval",
            claim=claim,
        )
        return claim

    async def approve_by_company(
        self, claim_id: str, approver: str, comment: str | None = None
    ) -> Claim:
        """First-tier approval: pending → company_approved."""
        async with transaction(self.session, "approve claim"):
            claim = await self._transition(
                claim_id,
                ClaimStatus.COMPANY_APPROVED,
                company_approver=approver,
                company_approved_at=self.clock(),
                company_comment=comment,
            )

        await self._audit(
            "COMPANY_APPROVE", claim_id, {"comment": comment}, approver
        )
        await self._notify_role(
            UserRole.ADMIN,
            None,
            title="Claim awaiting HQ approval",
            message=(
                f"Claim {claim_id} ({claim.company_name}, {claim.benefit_type_name}) "
                f"was approved by the company."
            ),
            kind="approval",
            claim=claim,
        )
        return claim

    async def approve_by_hq(
        self,
        claim_id: str,
        approver: str,
        comment: str | None = None,
        final_amount: int | None = None,
        payout_date: date | None = None,
    ) -> Claim:
        """Second-tier approval: company_approved → hq_approved.

        Creates the claim's Payment record in the same transaction, with the
        member's bank attributes as they are now. ``final_amount`` overrides
        the calculated amount when given.
        """
        if final_amount is not None and final_amount < 0:
            raise InvalidParametersError("final_amount must not be negative")

        now = self.clock()
        async with transaction(self.session, "approve claim"):
            claim = await self._require_claim(claim_id)
            amount = claim.calculated_amount if final_amount is None else final_amount
            claim = await self._transition(
                claim_id,
                ClaimStatus.HQ_APPROVED,
                claim=claim,
                hq_approver=approver,
                hq_approved_at=now,
                hq_comment=comment,
                final_amount=amount,
                scheduled_payment_date=payout_date,
            )

            member = await self.session.get(Member, claim.member_id)
            if member is None:
                raise MemberNotFoundError(claim.member_id)

            def build(payment_id: str) -> Payment:
                return Payment(
                    payment_id=payment_id,
                    claim_id=claim.claim_id,
                    member_id=claim.member_id,
                    member_name=claim.member_name,
                    company_code=claim.company_code,
                    benefit_type_name=claim.benefit_type_name,
                    amount=amount,
                    payout_date=payout_date,
                    bank_code=member.bank_code,
                    branch_code=member.branch_code,
                    account_type=member.account_type,
                    account_number=member.account_number,
                    account_holder=member.account_holder,
                )

            payment = await self.ids.insert_with_id(
                Payment.payment_id, payment_id_prefix(now), PAYMENT_ID_WIDTH, build
            )

        logger.info(
            "Claim %s approved by HQ; payment %s for %d",
            claim_id,
            payment.payment_id,
            amount,
        )

        await self._audit(
            "HQ_APPROVE",
            claim_id,
            {
                "payment_id": payment.payment_id,
                "calculated_amount": claim.calculated_amount,
                "final_amount": amount,
                "comment": comment,
            },
            approver,
        )
        await self._notify_claimant(
            claim,
            title="Claim approved",
            message=(
                f"Your {claim.benefit_type_name} claim {claim_id} was approved "
                f"for {amount:,}."
            ),
            kind="approval",
        )
        return claim

    async def reject_claim(
        self,
        claim_id: str,
        actor: str,
        reason: str,
        level: ApprovalLevel | None = None,
    ) -> Claim:
        """Reject a claim that is awaiting a decision.

        The reason is written to the comment of ``level``, which defaults to
        the tier currently deciding the claim.
        """
        if not reason or not reason.strip():
            raise InvalidParametersError("A rejection reason is required")

        async with transaction(self.session, "reject claim"):
            claim = await self._require_claim(claim_id)
            tier = ApprovalLevel(level) if level is not None else (
                ClaimStateMachine.deciding_level(claim.status)
            )
            if tier is None:
                raise InvalidTransitionError(claim.status, ClaimStatus.REJECTED.value)
            claim = await self._transition(
                claim_id,
                ClaimStatus.REJECTED,
                claim=claim,
                **{f"{tier.value}_comment": REJECTION_PREFIX + reason},
            )

        await self._audit(
            "REJECT_CLAIM", claim_id, {"level": tier.value, "reason": reason}, actor
        )
        await self._notify_claimant(
            claim,
            title="Claim rejected",
            message=(
                f"Your {claim.benefit_type_name} claim {claim_id} was rejected: {reason}"
            ),
            kind="rejected",
        )
        return claim

    async def mark_paid(
        self,
        claim_id: str,
        actor: str | None = None,
        completed_on: date | None = None,
    ) -> Claim:
        """Record payment completion: hq_approved → paid."""
        completed_on = completed_on or self.clock().date()
        async with transaction(self.session, "mark claim paid"):
            claim = await self._transition(
                claim_id, ClaimStatus.PAID, payment_completed_on=completed_on
            )

        await self._audit(
            "MARK_PAID", claim_id, {"completed_on": completed_on.isoformat()}, actor
        )
        await self._notify_claimant(
            claim,
            title="Benefit paid",
            message=(
                f"{claim.final_amount:,} for claim {claim_id} was paid on "
                f"{completed_on.isoformat()}."
            ),
            kind="paid",
        )
        return claim

    async def cancel_claim(
        self, claim_id: str, actor: str | None = None, reason: str | None = None
    ) -> Claim:
        """Withdraw a claim that has not been decided by HQ yet."""
        async with transaction(self.session, "cancel claim"):
            claim = await self._transition(claim_id, ClaimStatus.CANCELLED)

        await self._audit("CANCEL_CLAIM", claim_id, {"reason": reason}, actor)
        return claim

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _require_claim(self, claim_id: str) -> Claim:
        claim = await self.get_claim(claim_id)
        if claim is None:
            raise ClaimNotFoundError(claim_id)
        return claim

    async def _transition(
        self,
        claim_id: str,
        to_status: ClaimStatus,
        claim: Claim | None = None,
        **values: Any,
    ) -> Claim:
        """Move a claim to ``to_status`` if it still has the status just read."""
        if claim is None:
            claim = await self._require_claim(claim_id)
        from_status = claim.status
        ClaimStateMachine.validate_transition(from_status, to_status)

        result = await self.session.execute(
            update(Claim)
            .where(Claim.claim_id == claim_id, Claim.status == from_status)
            .values(status=to_status.value, updated_at=self.clock(), **values)
        )
        if result.rowcount == 0:
            raise InvalidTransitionError(
                from_status, to_status.value, "claim was modified concurrently"
            )

        await self.session.refresh(claim)
        logger.info("Claim %s: %s -> %s", claim_id, from_status, to_status.value)
        return claim

    async def _audit(
        self,
        operation_type: str,
        claim_id: str,
        details: dict[str, Any] | None,
        actor: str | None,
    ) -> None:
        if self.audit is None:
            return
        await run_isolated(
            self.audit.record(operation_type, claim_id, details, actor),
            f"audit {operation_type} {claim_id}",
        )

    async def _notify_role(
        self,
        role: UserRole,
        company_code: str | None,
        *,
        title: str,
        message: str,
        kind: str,
        claim: Claim,
    ) -> None:
        if self.notifications is None:
            return
        await run_isolated(
            self._send(
                title,
                message,
                kind,
                claim,
                role=role,
                company_code=company_code,
            ),
            f"notify {role.value} about {claim.claim_id}",
        )

    async def _notify_claimant(
        self, claim: Claim, *, title: str, message: str, kind: str
    ) -> None:
        if self.notifications is None:
            return
        await run_isolated(
            self._send(title, message, kind, claim, member_id=claim.member_id),
            f"notify claimant of {claim.claim_id}",
        )

    async def _send(
        self, title: str, message: str, kind: str, claim: Claim, **recipient_filter: Any
    ) -> None:
        sink = self.notifications
        if sink is None:
            return
        recipients = await find_recipients(self.session, **recipient_filter)
        # End the lookup transaction before sinks open their own
        await self.session.commit()
        if not recipients:
            logger.info("No recipients for '%s' on claim %s", title, claim.claim_id)
        # One failed delivery must not stop the others
        for user_id in recipients:
            await run_isolated(
                sink.notify(
                    user_id, title, message, kind, link_path=f"/claims/{claim.claim_id}"
                ),
                f"deliver '{title}' to {user_id}",
            )


def _profile(member: Member) -> MemberProfile:
    return MemberProfile(
        enrollment_date=member.enrollment_date,
        withdrawal_date=member.withdrawal_date,
        standard_monthly_remuneration=member.standard_monthly_remuneration,
    )
