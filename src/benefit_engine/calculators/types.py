"""Type definitions for benefit calculation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import Field


class BenefitCategory(str, Enum):
    """Benefit categories, keyed by their two-digit code."""

    MARRIAGE = "01"
    CHILDBIRTH = "02"
    SCHOOL_ENROLLMENT = "03"
    ILLNESS = "04"
    DISASTER = "05"
    CONDOLENCE = "06"
    FAREWELL = "07"
    RETIREMENT = "08"


class DamageLevel(str, Enum):
    """Severity of disaster damage to a residence."""

    TOTAL_LOSS = "TOTAL_LOSS"
    HALF_BURN = "HALF_BURN"
    HALF_DAMAGE = "HALF_DAMAGE"


class Relationship(str, Enum):
    """Relationship of the deceased to the member."""

    MEMBER = "MEMBER"
    SPOUSE = "SPOUSE"
    PARENT = "PARENT"
    CHILD = "CHILD"
    GRANDPARENT_SIBLING = "GRANDPARENT_SIBLING"


@dataclass(frozen=True)
class MemberProfile:
    """Member attributes the calculation depends on."""

    enrollment_date: date
    withdrawal_date: date | None = None
    standard_monthly_remuneration: int | None = None


# Category parameters. Missing fields take the defaults below; a date left
# as None resolves to the calculation base date.


@dataclass(frozen=True)
class MarriageParams:
    event_date: date | None = None
    is_remarriage: bool = False
    is_for_child: bool = False


@dataclass(frozen=True)
class ChildbirthParams:
    child_count: Annotated[int, Field(ge=1)] = 1
    is_stillbirth: bool = False


@dataclass(frozen=True)
class SchoolEnrollmentParams:
    school_type: str | None = None


@dataclass(frozen=True)
class IllnessParams:
    event_date: date | None = None
    standard_monthly_remuneration: Annotated[int, Field(ge=0)] | None = None
    absence_days: Annotated[int, Field(ge=0)] = 30


@dataclass(frozen=True)
class DisasterParams:
    damage_level: DamageLevel = DamageLevel.HALF_DAMAGE
    is_own_house: bool = True
    is_head_of_household: bool = True


@dataclass(frozen=True)
class CondolenceParams:
    relationship: Relationship = Relationship.MEMBER
    is_chief_mourner: bool = True


@dataclass(frozen=True)
class FarewellParams:
    withdrawal_date: date | None = None


@dataclass(frozen=True)
class RetirementParams:
    pass


BenefitParams = Union[
    MarriageParams,
    ChildbirthParams,
    SchoolEnrollmentParams,
    IllnessParams,
    DisasterParams,
    CondolenceParams,
    FarewellParams,
    RetirementParams,
]


@dataclass(frozen=True)
class CalculationResult:
    """Outcome of one benefit calculation.

    Only the attributes relevant to the category are populated. ``details``
    is a human-readable derivation that is identical for identical inputs.
    """

    category: BenefitCategory
    label: str
    amount: int
    base_date: date
    details: str
    membership_years: int | None = None
    standard_monthly_remuneration: int | None = None
    monthly_benefit: int | None = None
    max_period_months: int | None = None
    absence_days: int | None = None
    damage_level: DamageLevel | None = None
    is_own_house: bool | None = None
    is_head_of_household: bool | None = None
    relationship: Relationship | None = None
    is_chief_mourner: bool | None = None
    child_count: int | None = None
    school_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation without unset attributes."""
        data: dict[str, Any] = {}
        for key, value in asdict(self).items():
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            data[key] = value
        return data


def params_to_dict(params: BenefitParams) -> dict[str, Any]:
    """Serialize a parameter variant for JSON storage."""
    data: dict[str, Any] = {}
    for key, value in asdict(params).items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, date):
            value = value.isoformat()
        data[key] = value
    return data
