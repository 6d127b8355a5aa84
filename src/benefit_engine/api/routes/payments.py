"""Payment API endpoints."""

from typing import Any

from fastapi import APIRouter

from benefit_engine.api.dependencies import AdminCaller, CurrentCaller, Payments
from benefit_engine.api.schemas import (
    CountResponse,
    ErrorResponse,
    ExportRequest,
    PaymentListResponse,
    PaymentResponse,
)
from benefit_engine.models import UserRole

router = APIRouter(prefix="/payments", tags=["payments"])


def _listing(payments: list) -> PaymentListResponse:
    return PaymentListResponse(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total=len(payments),
    )


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    service: Payments,
    caller: CurrentCaller,
    company_code: str | None = None,
    exported: bool | None = None,
) -> PaymentListResponse:
    """List payments visible to the caller."""
    member_id = None
    if caller.role == UserRole.APPROVER:
        if company_code is not None and company_code != caller.company_code:
            return _listing([])
        company_code = caller.company_code
    elif caller.role == UserRole.MEMBER:
        if caller.member_id is None:
            return _listing([])
        member_id = caller.member_id

    payments = await service.list_payments(
        company_code=company_code, exported=exported, member_id=member_id
    )
    return _listing(payments)


@router.get("/pending", response_model=PaymentListResponse)
async def list_pending_payments(
    service: Payments, caller: CurrentCaller
) -> PaymentListResponse:
    """Payments waiting for the next funds-transfer export."""
    if not caller.is_admin:
        return _listing([])
    return _listing(await service.list_pending_payments())


@router.get("/stats")
async def payment_stats(service: Payments, caller: CurrentCaller) -> dict[str, Any]:
    """Payment counts and amounts within the caller's scope."""
    if caller.is_admin:
        return await service.get_payment_stats()
    if caller.role == UserRole.APPROVER:
        return await service.get_payment_stats(company_code=caller.company_code or "")
    return await service.get_payment_stats(member_id=caller.member_id or "")


@router.post(
    "/export",
    response_model=CountResponse,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def mark_exported(
    service: Payments, caller: AdminCaller, payload: ExportRequest
) -> CountResponse:
    """Mark payments as consumed by a funds-transfer batch."""
    marked = await service.mark_payments_exported(payload.payment_ids, caller.user_id)
    return CountResponse(count=marked)
