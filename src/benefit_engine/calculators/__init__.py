"""Benefit amount calculation."""

from benefit_engine.calculators.engine import calculate, parse_params
from benefit_engine.calculators.membership import membership_years
from benefit_engine.calculators.types import (
    BenefitCategory,
    CalculationResult,
    MemberProfile,
)

__all__ = [
    "BenefitCategory",
    "CalculationResult",
    "MemberProfile",
    "calculate",
    "membership_years",
    "parse_params",
]
