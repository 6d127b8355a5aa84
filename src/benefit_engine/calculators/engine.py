"""Benefit calculation engine.

``calculate`` is pure: it reads no storage and returns the same result for the
same category, parameters, member profile and base date.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import TypeAdapter, ValidationError

from benefit_engine.calculators import tables
from benefit_engine.calculators.membership import membership_years
from benefit_engine.calculators.types import (
    BenefitCategory,
    BenefitParams,
    CalculationResult,
    ChildbirthParams,
    CondolenceParams,
    DamageLevel,
    DisasterParams,
    FarewellParams,
    IllnessParams,
    MarriageParams,
    MemberProfile,
    RetirementParams,
    SchoolEnrollmentParams,
)
from benefit_engine.errors import InvalidParametersError, UnknownCategoryError

_DAMAGE_LABELS = {
    DamageLevel.TOTAL_LOSS: "Total Loss",
    DamageLevel.HALF_BURN: "Half Burned",
    DamageLevel.HALF_DAMAGE: "Half Damaged",
}


def _years(member: MemberProfile, as_of: date) -> int:
    return membership_years(member.enrollment_date, as_of)


def _marriage(
    params: MarriageParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    event_date = params.event_date or base_date
    years = _years(member, event_date)
    kind = "remarriage" if params.is_remarriage else "first marriage"

    if params.is_for_child:
        amount = (
            tables.CHILD_REMARRIAGE_AMOUNT
            if params.is_remarriage
            else tables.CHILD_MARRIAGE_AMOUNT
        )
        label = "Marriage Benefit (Child)"
        details = f"Child's {kind}: {amount:,}"
    else:
        tier = next(
            t for t in tables.MARRIAGE_TIERS if t.max_years is None or years < t.max_years
        )
        amount = tier.remarriage if params.is_remarriage else tier.first_marriage
        label = "Marriage Benefit (Remarriage)" if params.is_remarriage else "Marriage Benefit"
        details = f"Membership {years} years, {kind}: {amount:,}"

    return CalculationResult(
        category=BenefitCategory.MARRIAGE,
        label=label,
        amount=amount,
        base_date=event_date,
        details=details,
        membership_years=years,
    )


def _childbirth(
    params: ChildbirthParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    amount = tables.CHILDBIRTH_AMOUNT_PER_CHILD * params.child_count
    label = (
        "Childbirth Benefit (Stillbirth)" if params.is_stillbirth else "Childbirth Benefit"
    )
    return CalculationResult(
        category=BenefitCategory.CHILDBIRTH,
        label=label,
        amount=amount,
        base_date=base_date,
        details=(
            f"{tables.CHILDBIRTH_AMOUNT_PER_CHILD:,} x {params.child_count} "
            f"child(ren) = {amount:,}"
        ),
        membership_years=_years(member, base_date),
        child_count=params.child_count,
    )


def _school_enrollment(
    params: SchoolEnrollmentParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    school_type = params.school_type or tables.DEFAULT_SCHOOL_TYPE
    amount = tables.SCHOOL_ENROLLMENT_AMOUNT
    return CalculationResult(
        category=BenefitCategory.SCHOOL_ENROLLMENT,
        label="School Enrollment Benefit",
        amount=amount,
        base_date=base_date,
        details=f"Enrollment in {school_type}: {amount:,}",
        membership_years=_years(member, base_date),
        school_type=school_type,
    )


def _illness(
    params: IllnessParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    event_date = params.event_date or base_date
    years = _years(member, event_date)

    salary = params.standard_monthly_remuneration
    if salary is None:
        salary = member.standard_monthly_remuneration or 0

    monthly = tables.monthly_illness_benefit(salary)
    raw = Decimal(monthly) * Decimal(params.absence_days) / Decimal(tables.ILLNESS_DAYS_PER_MONTH)
    amount = int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    capped = amount > tables.ILLNESS_AMOUNT_CAP
    amount = min(amount, tables.ILLNESS_AMOUNT_CAP)
    max_months = tables.tiered_value(tables.ILLNESS_MAX_PERIODS, years)

    details = (
        f"Standard monthly remuneration {salary:,}, monthly benefit {monthly:,}, "
        f"{params.absence_days} days / {tables.ILLNESS_DAYS_PER_MONTH} = {amount:,}"
    )
    if capped:
        details += f" (capped at {tables.ILLNESS_AMOUNT_CAP:,})"
    details += f"; max period {max_months} months (membership {years} years)"

    return CalculationResult(
        category=BenefitCategory.ILLNESS,
        label="Illness/Injury Benefit",
        amount=amount,
        base_date=event_date,
        details=details,
        membership_years=years,
        standard_monthly_remuneration=salary,
        monthly_benefit=monthly,
        max_period_months=max_months,
        absence_days=params.absence_days,
    )


def _disaster(
    params: DisasterParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    own_amount, other_amount = tables.DISASTER_AMOUNTS[params.damage_level]
    base_amount = own_amount if params.is_own_house else other_amount
    amount = base_amount if params.is_head_of_household else base_amount // 2

    residence = "own house" if params.is_own_house else "other residence"
    details = f"{_DAMAGE_LABELS[params.damage_level]}, {residence}: {base_amount:,}"
    if not params.is_head_of_household:
        details += f"; not head of household, halved to {amount:,}"

    return CalculationResult(
        category=BenefitCategory.DISASTER,
        label=f"Disaster Benefit ({_DAMAGE_LABELS[params.damage_level]})",
        amount=amount,
        base_date=base_date,
        details=details,
        membership_years=_years(member, base_date),
        damage_level=params.damage_level,
        is_own_house=params.is_own_house,
        is_head_of_household=params.is_head_of_household,
    )


def _condolence(
    params: CondolenceParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    base_amount = tables.CONDOLENCE_AMOUNTS[params.relationship]
    halved = (
        not params.is_chief_mourner
        and params.relationship in tables.CONDOLENCE_HALVED_IF_NOT_CHIEF
    )
    amount = base_amount // 2 if halved else base_amount
    relation = params.relationship.value.replace("_", " ").lower()

    details = f"Bereavement of {relation}: {base_amount:,}"
    if halved:
        details += f"; not chief mourner, halved to {amount:,}"

    return CalculationResult(
        category=BenefitCategory.CONDOLENCE,
        label=f"Condolence Benefit ({relation})",
        amount=amount,
        base_date=base_date,
        details=details,
        membership_years=_years(member, base_date),
        relationship=params.relationship,
        is_chief_mourner=params.is_chief_mourner,
    )


def _farewell(
    params: FarewellParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    withdrawal_date = params.withdrawal_date or member.withdrawal_date or base_date
    years = _years(member, withdrawal_date)
    amount = tables.tiered_value(tables.FAREWELL_TIERS, years)
    return CalculationResult(
        category=BenefitCategory.FAREWELL,
        label="Farewell Benefit",
        amount=amount,
        base_date=withdrawal_date,
        details=f"Membership {years} years at withdrawal: {amount:,}",
        membership_years=years,
    )


def _retirement(
    params: RetirementParams, member: MemberProfile, base_date: date
) -> CalculationResult:
    amount = tables.RETIREMENT_GIFT_AMOUNT
    return CalculationResult(
        category=BenefitCategory.RETIREMENT,
        label="Retirement Gift",
        amount=amount,
        base_date=base_date,
        details=f"Flat retirement gift: {amount:,}",
        membership_years=_years(member, base_date),
    )


@dataclass(frozen=True)
class _Evaluator:
    params_type: type
    adapter: TypeAdapter
    evaluate: Callable[[Any, MemberProfile, date], CalculationResult]


def _evaluator(params_type: type, evaluate: Callable[..., CalculationResult]) -> _Evaluator:
    return _Evaluator(params_type, TypeAdapter(params_type), evaluate)


EVALUATORS: dict[BenefitCategory, _Evaluator] = {
    BenefitCategory.MARRIAGE: _evaluator(MarriageParams, _marriage),
    BenefitCategory.CHILDBIRTH: _evaluator(ChildbirthParams, _childbirth),
    BenefitCategory.SCHOOL_ENROLLMENT: _evaluator(SchoolEnrollmentParams, _school_enrollment),
    BenefitCategory.ILLNESS: _evaluator(IllnessParams, _illness),
    BenefitCategory.DISASTER: _evaluator(DisasterParams, _disaster),
    BenefitCategory.CONDOLENCE: _evaluator(CondolenceParams, _condolence),
    BenefitCategory.FAREWELL: _evaluator(FarewellParams, _farewell),
    BenefitCategory.RETIREMENT: _evaluator(RetirementParams, _retirement),
}

_missing = set(BenefitCategory) - set(EVALUATORS)
if _missing:
    raise RuntimeError(
        "No evaluator registered for: " + ", ".join(sorted(c.name for c in _missing))
    )


def resolve_category(category: str | BenefitCategory) -> BenefitCategory:
    """Map a category code onto the enum, rejecting unknown codes."""
    try:
        return BenefitCategory(category)
    except ValueError:
        raise UnknownCategoryError(str(category)) from None


def parse_params(
    category: str | BenefitCategory,
    params: Mapping[str, Any] | BenefitParams | None,
) -> BenefitParams:
    """Validate a raw parameter bag into the category's parameter variant."""
    evaluator = EVALUATORS[resolve_category(category)]
    if isinstance(params, evaluator.params_type):
        return params
    if params is not None and not isinstance(params, Mapping):
        raise InvalidParametersError(
            f"Parameters of type {type(params).__name__} do not match category {category}"
        )
    try:
        return evaluator.adapter.validate_python(dict(params or {}))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidParametersError(f"Invalid parameters: {problems}") from exc


def calculate(
    category: str | BenefitCategory,
    params: Mapping[str, Any] | BenefitParams | None,
    member: MemberProfile,
    *,
    base_date: date,
) -> CalculationResult:
    """Calculate the benefit amount for one claim.

    Raises:
        UnknownCategoryError: category is not one of the eight codes.
        InvalidParametersError: params do not fit the category.
    """
    resolved = resolve_category(category)
    parsed = parse_params(resolved, params)
    return EVALUATORS[resolved].evaluate(parsed, member, base_date)
