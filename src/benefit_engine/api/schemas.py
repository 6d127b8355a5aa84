"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from benefit_engine.models import FeeStatus
from benefit_engine.services import ApprovalLevel


# ============================================================================
# Envelope schemas
# ============================================================================


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Failure envelope shared by all endpoints."""

    success: bool = False
    error: ErrorDetail


class CountResponse(BaseModel):
    success: bool = True
    count: int


# ============================================================================
# Claim schemas
# ============================================================================


class ClaimCreate(BaseModel):
    """Schema for submitting a claim."""

    member_id: str
    benefit_category: str = Field(pattern=r"^\d{2}$")
    params: dict[str, Any] = Field(default_factory=dict)
    application_content: dict[str, Any] | None = None


class CalculationRequest(BaseModel):
    """Schema for previewing a benefit amount without filing a claim."""

    member_id: str
    benefit_category: str
    params: dict[str, Any] = Field(default_factory=dict)
    base_date: date | None = None


class CompanyApprovalRequest(BaseModel):
    comment: str | None = None


class HQApprovalRequest(BaseModel):
    comment: str | None = None
    final_amount: int | None = Field(default=None, ge=0)
    payout_date: date | None = None


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1)
    level: ApprovalLevel | None = None


class MarkPaidRequest(BaseModel):
    completed_on: date | None = None


class CancelRequest(BaseModel):
    reason: str | None = None


class ClaimResponse(BaseModel):
    """Schema for claim response."""

    model_config = ConfigDict(from_attributes=True)

    claim_id: str
    submitted_on: date
    member_id: str
    member_name: str
    company_code: str
    company_name: str
    benefit_category: str
    benefit_type_name: str
    calculation_params: dict[str, Any]
    application_content: dict[str, Any] | None = None
    calculation_base_date: date
    membership_years: int | None = None
    standard_monthly_remuneration: int | None = None
    calculation_details: str
    calculated_amount: int
    final_amount: int
    status: str
    company_approver: str | None = None
    company_approved_at: datetime | None = None
    company_comment: str | None = None
    hq_approver: str | None = None
    hq_approved_at: datetime | None = None
    hq_comment: str | None = None
    scheduled_payment_date: date | None = None
    payment_completed_on: date | None = None


class ClaimWriteResponse(BaseModel):
    success: bool = True
    claim: ClaimResponse


class ClaimListResponse(BaseModel):
    items: list[ClaimResponse]
    total: int


class CalculationResponse(BaseModel):
    success: bool = True
    result: dict[str, Any]


# ============================================================================
# Payment schemas
# ============================================================================


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    claim_id: str
    member_id: str
    member_name: str
    company_code: str
    benefit_type_name: str
    amount: int
    payout_date: date | None = None
    bank_code: str | None = None
    branch_code: str | None = None
    account_type: str | None = None
    account_number: str | None = None
    account_holder: str | None = None
    exported_at: datetime | None = None
    notes: str | None = None


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    total: int


class ExportRequest(BaseModel):
    payment_ids: list[str] = Field(min_length=1)


# ============================================================================
# Fee schemas
# ============================================================================


class FeeGenerateRequest(BaseModel):
    year_month: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")


class FeePaymentRequest(BaseModel):
    amount: int = Field(gt=0)
    payment_date: date | None = None


class InvoiceRequest(BaseModel):
    fee_ids: list[int] = Field(min_length=1)


class MonthlyFeeResponse(BaseModel):
    """Schema for monthly fee response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    year_month: str
    company_code: str
    company_name: str
    member_count: int
    general_count: int
    chief_count: int
    manager_count: int
    leave_count: int
    total_fee: int
    invoice_date: date | None = None
    payment_date: date | None = None
    paid_amount: int
    status: FeeStatus
    notes: str | None = None


class FeeWriteResponse(BaseModel):
    success: bool = True
    fee: MonthlyFeeResponse


class FeeListResponse(BaseModel):
    items: list[MonthlyFeeResponse]
    total: int
