"""Benefit amount tables.

All amounts are integer currency units.
"""

from __future__ import annotations

from dataclasses import dataclass

from benefit_engine.calculators.types import DamageLevel, Relationship


@dataclass(frozen=True)
class MarriageTier:
    """Marriage amounts for members whose tenure is below ``max_years``."""

    max_years: int | None  # None = no upper bound
    first_marriage: int
    remarriage: int


MARRIAGE_TIERS: tuple[MarriageTier, ...] = (
    MarriageTier(max_years=3, first_marriage=5_000, remarriage=3_000),
    MarriageTier(max_years=5, first_marriage=10_000, remarriage=5_000),
    MarriageTier(max_years=None, first_marriage=20_000, remarriage=10_000),
)

CHILD_MARRIAGE_AMOUNT = 5_000
CHILD_REMARRIAGE_AMOUNT = 0

CHILDBIRTH_AMOUNT_PER_CHILD = 10_000

SCHOOL_ENROLLMENT_AMOUNT = 8_000
DEFAULT_SCHOOL_TYPE = "elementary school"


@dataclass(frozen=True)
class SalaryBand:
    """Inclusive salary range mapped to a monthly illness benefit."""

    min_salary: int
    max_salary: int
    monthly_benefit: int

    def contains(self, salary: int) -> bool:
        return self.min_salary <= salary <= self.max_salary


ILLNESS_SALARY_BANDS: tuple[SalaryBand, ...] = (
    SalaryBand(88_000, 118_000, 30_000),
    SalaryBand(126_000, 150_000, 45_000),
    SalaryBand(160_000, 190_000, 55_000),
    SalaryBand(200_000, 240_000, 65_000),
    SalaryBand(260_000, 300_000, 75_000),
    SalaryBand(320_000, 360_000, 95_000),
    SalaryBand(380_000, 440_000, 110_000),
    SalaryBand(470_000, 530_000, 130_000),
    SalaryBand(560_000, 620_000, 145_000),
    SalaryBand(650_000, 9_999_999, 165_000),
)

ILLNESS_DEFAULT_ABSENCE_DAYS = 30
ILLNESS_DAYS_PER_MONTH = 30
ILLNESS_AMOUNT_CAP = 1_000_000

# (tenure below N years, max benefit months); the last entry has no bound
ILLNESS_MAX_PERIODS: tuple[tuple[int | None, int], ...] = (
    (5, 6),
    (10, 9),
    (None, 12),
)

# damage level -> (own house, other residence)
DISASTER_AMOUNTS: dict[DamageLevel, tuple[int, int]] = {
    DamageLevel.TOTAL_LOSS: (50_000, 40_000),
    DamageLevel.HALF_BURN: (30_000, 20_000),
    DamageLevel.HALF_DAMAGE: (15_000, 10_000),
}

CONDOLENCE_AMOUNTS: dict[Relationship, int] = {
    Relationship.MEMBER: 50_000,
    Relationship.SPOUSE: 40_000,
    Relationship.PARENT: 20_000,
    Relationship.CHILD: 20_000,
    Relationship.GRANDPARENT_SIBLING: 10_000,
}

# Relationships halved when the member is not the chief mourner
CONDOLENCE_HALVED_IF_NOT_CHIEF = frozenset(
    {Relationship.PARENT, Relationship.CHILD, Relationship.GRANDPARENT_SIBLING}
)

# (tenure below N years, amount); the last entry has no bound
FAREWELL_TIERS: tuple[tuple[int | None, int], ...] = (
    (3, 0),
    (10, 5_000),
    (None, 10_000),
)

RETIREMENT_GIFT_AMOUNT = 10_000

# Hard-coded monthly fee rates, overridden by the fee_setting table
DEFAULT_FEE_RATES: dict[str, int] = {
    "general": 500,
    "chief": 1_000,
    "manager": 2_000,
}


def monthly_illness_benefit(salary: int) -> int:
    """Monthly illness benefit for a salary; gaps between bands yield 0."""
    for band in ILLNESS_SALARY_BANDS:
        if band.contains(salary):
            return band.monthly_benefit
    return 0


def tiered_value(tiers: tuple[tuple[int | None, int], ...], years: int) -> int:
    """Pick the value of the first tier whose bound exceeds ``years``."""
    for bound, value in tiers:
        if bound is None or years < bound:
            return value
    raise ValueError("tier table has no unbounded entry")
