"""Claim API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from benefit_engine.api.dependencies import (
    AdminCaller,
    ApproverCaller,
    Caller,
    Claims,
    CurrentCaller,
    DbSession,
)
from benefit_engine.api.schemas import (
    CalculationRequest,
    CalculationResponse,
    CancelRequest,
    ClaimCreate,
    ClaimListResponse,
    ClaimResponse,
    ClaimWriteResponse,
    CompanyApprovalRequest,
    ErrorResponse,
    HQApprovalRequest,
    MarkPaidRequest,
    RejectRequest,
)
from benefit_engine.calculators import MemberProfile, calculate
from benefit_engine.errors import (
    AuthorizationDeniedError,
    ClaimNotFoundError,
    MemberNotFoundError,
)
from benefit_engine.models import Claim, Member, UserRole
from benefit_engine.models.base import utcnow
from benefit_engine.services import ApprovalLevel, ClaimService, ClaimStatus

router = APIRouter(tags=["claims"])

ClaimId = Annotated[str, Path(max_length=20)]

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


async def _load_member_for(db: DbSession, caller: Caller, member_id: str) -> Member:
    member = await db.get(Member, member_id)
    if member is None:
        raise MemberNotFoundError(member_id)
    if not caller.can_view(member.company_code, member.member_id):
        raise AuthorizationDeniedError("Claims may only be filed for members you manage")
    return member


async def _visible_claim(service: ClaimService, caller: Caller, claim_id: str) -> Claim:
    claim = await service.get_claim(claim_id)
    # Claims outside the caller's scope look the same as missing ones
    if claim is None or not caller.can_view(claim.company_code, claim.member_id):
        raise ClaimNotFoundError(claim_id)
    return claim


# ============================================================================
# Submission
# ============================================================================


@router.post(
    "/calculations",
    response_model=CalculationResponse,
    responses=ERRORS,
)
async def preview_calculation(
    db: DbSession, caller: CurrentCaller, payload: CalculationRequest
) -> CalculationResponse:
    """Calculate a benefit amount without filing a claim."""
    member = await _load_member_for(db, caller, payload.member_id)
    result = calculate(
        payload.benefit_category,
        payload.params,
        MemberProfile(
            enrollment_date=member.enrollment_date,
            withdrawal_date=member.withdrawal_date,
            standard_monthly_remuneration=member.standard_monthly_remuneration,
        ),
        base_date=payload.base_date or utcnow().date(),
    )
    return CalculationResponse(result=result.to_dict())


@router.post(
    "/claims",
    response_model=ClaimWriteResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_claim(
    db: DbSession, service: Claims, caller: CurrentCaller, payload: ClaimCreate
) -> ClaimWriteResponse:
    """Submit a benefit claim; it enters the pending state."""
    await _load_member_for(db, caller, payload.member_id)
    claim = await service.create_claim(
        payload.member_id,
        payload.benefit_category,
        payload.params,
        application_content=payload.application_content,
        actor=caller.user_id,
    )
    return ClaimWriteResponse(claim=ClaimResponse.model_validate(claim))


# ============================================================================
# Queries
# ============================================================================


@router.get("/claims", response_model=ClaimListResponse)
async def list_claims(
    service: Claims,
    caller: CurrentCaller,
    claim_status: Annotated[ClaimStatus | None, Query(alias="status")] = None,
    company_code: str | None = None,
    member_id: str | None = None,
    category: str | None = None,
) -> ClaimListResponse:
    """List claims visible to the caller."""
    if caller.role == UserRole.APPROVER:
        if company_code is not None and company_code != caller.company_code:
            return ClaimListResponse(items=[], total=0)
        company_code = caller.company_code
    elif caller.role == UserRole.MEMBER:
        if caller.member_id is None or (member_id is not None and member_id != caller.member_id):
            return ClaimListResponse(items=[], total=0)
        member_id = caller.member_id

    claims = await service.list_claims(
        status=claim_status,
        company_code=company_code,
        member_id=member_id,
        category=category,
    )
    return ClaimListResponse(
        items=[ClaimResponse.model_validate(c) for c in claims],
        total=len(claims),
    )


@router.get("/claims/stats")
async def claim_stats(service: Claims, caller: CurrentCaller) -> dict[str, int]:
    """Per-status claim counts within the caller's scope."""
    if caller.is_admin:
        return await service.get_claim_stats()
    if caller.role == UserRole.APPROVER:
        return await service.get_claim_stats(company_code=caller.company_code)
    return await service.get_claim_stats(member_id=caller.member_id or "")


@router.get("/claims/pending", response_model=ClaimListResponse)
async def pending_approvals(
    service: Claims,
    caller: CurrentCaller,
    level: ApprovalLevel,
    company_code: str | None = None,
) -> ClaimListResponse:
    """Claims awaiting the given approval tier."""
    if not caller.is_admin:
        if (
            caller.role != UserRole.APPROVER
            or level != ApprovalLevel.COMPANY
            or (company_code is not None and company_code != caller.company_code)
        ):
            return ClaimListResponse(items=[], total=0)
        company_code = caller.company_code

    claims = await service.list_pending_approvals(level, company_code)
    return ClaimListResponse(
        items=[ClaimResponse.model_validate(c) for c in claims],
        total=len(claims),
    )


@router.get("/claims/{claim_id}", response_model=ClaimResponse, responses=ERRORS)
async def get_claim(
    service: Claims, caller: CurrentCaller, claim_id: ClaimId
) -> ClaimResponse:
    """Get a single claim."""
    claim = await _visible_claim(service, caller, claim_id)
    return ClaimResponse.model_validate(claim)


# ============================================================================
# Lifecycle
# ============================================================================


@router.post(
    "/claims/{claim_id}/company-approval",
    response_model=ClaimWriteResponse,
    responses=ERRORS,
)
async def approve_by_company(
    service: Claims,
    caller: ApproverCaller,
    claim_id: ClaimId,
    payload: CompanyApprovalRequest,
) -> ClaimWriteResponse:
    """First-tier approval by the member's company."""
    claim = await _visible_claim(service, caller, claim_id)
    if not caller.can_access_company(claim.company_code):
        raise AuthorizationDeniedError("Only approvers of the claim's company may approve")
    claim = await service.approve_by_company(claim_id, caller.user_id, payload.comment)
    return ClaimWriteResponse(claim=ClaimResponse.model_validate(claim))


@router.post(
    "/claims/{claim_id}/hq-approval",
    response_model=ClaimWriteResponse,
    responses=ERRORS,
)
async def approve_by_hq(
    service: Claims,
    caller: AdminCaller,
    claim_id: ClaimId,
    payload: HQApprovalRequest,
) -> ClaimWriteResponse:
    """Second-tier approval; creates the payment record."""
    claim = await service.approve_by_hq(
        claim_id,
        caller.user_id,
        comment=payload.comment,
        final_amount=payload.final_amount,
        payout_date=payload.payout_date,
    )
    return ClaimWriteResponse(claim=ClaimResponse.model_validate(claim))


@router.post(
    "/claims/{claim_id}/reject",
    response_model=ClaimWriteResponse,
    responses=ERRORS,
)
async def reject_claim(
    service: Claims,
    caller: ApproverCaller,
    claim_id: ClaimId,
    payload: RejectRequest,
) -> ClaimWriteResponse:
    """Reject a claim awaiting a decision."""
    claim = await _visible_claim(service, caller, claim_id)
    if not caller.is_admin and (
        claim.status != ClaimStatus.PENDING.value or payload.level == ApprovalLevel.HQ
    ):
        raise AuthorizationDeniedError("Company approvers may only reject pending claims")
    claim = await service.reject_claim(
        claim_id, caller.user_id, payload.reason, level=payload.level
    )
    return ClaimWriteResponse(claim=ClaimResponse.model_validate(claim))


@router.post(
    "/claims/{claim_id}/mark-paid",
    response_model=ClaimWriteResponse,
    responses=ERRORS,
)
async def mark_paid(
    service: Claims,
    caller: AdminCaller,
    claim_id: ClaimId,
    payload: MarkPaidRequest,
) -> ClaimWriteResponse:
    """Record that the approved amount was transferred."""
    claim = await service.mark_paid(claim_id, caller.user_id, payload.completed_on)
    return ClaimWriteResponse(claim=ClaimResponse.model_validate(claim))


@router.post(
    "/claims/{claim_id}/cancel",
    response_model=ClaimWriteResponse,
    responses=ERRORS,
)
async def cancel_claim(
    service: Claims,
    caller: AdminCaller,
    claim_id: ClaimId,
    payload: CancelRequest,
) -> ClaimWriteResponse:
    """Administratively cancel a claim not yet approved by HQ."""
    claim = await service.cancel_claim(claim_id, caller.user_id, payload.reason)
    return ClaimWriteResponse(claim=ClaimResponse.model_validate(claim))
