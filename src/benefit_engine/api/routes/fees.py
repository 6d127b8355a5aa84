"""Monthly fee API endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Path, Query

from benefit_engine.api.dependencies import AdminCaller, CurrentCaller, Fees
from benefit_engine.api.schemas import (
    CountResponse,
    ErrorResponse,
    FeeGenerateRequest,
    FeeListResponse,
    FeePaymentRequest,
    FeeWriteResponse,
    InvoiceRequest,
    MonthlyFeeResponse,
)
from benefit_engine.models import FeeStatus, UserRole
from benefit_engine.services.fee_service import summarize_fees

router = APIRouter(prefix="/fees", tags=["fees"])

YEAR_MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

YearMonth = Annotated[str, Query(pattern=YEAR_MONTH_PATTERN)]

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=FeeListResponse)
async def list_fees(
    service: Fees,
    caller: CurrentCaller,
    year_month: Annotated[str | None, Query(pattern=YEAR_MONTH_PATTERN)] = None,
    company_code: str | None = None,
    fee_status: Annotated[FeeStatus | None, Query(alias="status")] = None,
) -> FeeListResponse:
    """List monthly fee rows visible to the caller."""
    if not caller.is_admin:
        if caller.role != UserRole.APPROVER or (
            company_code is not None and company_code != caller.company_code
        ):
            return FeeListResponse(items=[], total=0)
        company_code = caller.company_code

    fees = await service.list_fees(
        year_month=year_month, company_code=company_code, status=fee_status
    )
    return FeeListResponse(
        items=[MonthlyFeeResponse.model_validate(f) for f in fees],
        total=len(fees),
    )


@router.get("/summary")
async def fee_summary(
    service: Fees, caller: CurrentCaller, year_month: YearMonth
) -> dict[str, Any]:
    """Totals for one month within the caller's scope."""
    if caller.is_admin:
        return await service.get_fee_summary(year_month)
    if caller.role == UserRole.APPROVER and caller.company_code:
        return await service.get_fee_summary(year_month, caller.company_code)
    return summarize_fees(year_month, [])


@router.post("/generate", response_model=CountResponse, responses=ERRORS)
async def generate_fees(
    service: Fees, caller: AdminCaller, payload: FeeGenerateRequest
) -> CountResponse:
    """Rebuild one month's fee rows from the current member roster."""
    companies = await service.generate_monthly_fees(payload.year_month, caller.user_id)
    return CountResponse(count=companies)


@router.post("/invoice", response_model=CountResponse, responses=ERRORS)
async def mark_invoiced(
    service: Fees, caller: AdminCaller, payload: InvoiceRequest
) -> CountResponse:
    """Stamp today's invoice date on the selected fee rows."""
    count = await service.mark_fees_invoiced(payload.fee_ids, caller.user_id)
    return CountResponse(count=count)


@router.post("/{fee_id}/payments", response_model=FeeWriteResponse, responses=ERRORS)
async def record_payment(
    service: Fees,
    caller: AdminCaller,
    fee_id: Annotated[int, Path(ge=1)],
    payload: FeePaymentRequest,
) -> FeeWriteResponse:
    """Record a payment received against a fee row."""
    fee = await service.record_fee_payment(
        fee_id, payload.amount, payload.payment_date, caller.user_id
    )
    return FeeWriteResponse(fee=MonthlyFeeResponse.model_validate(fee))
