"""Tests for benefit amount calculation."""

from datetime import date

import pytest

from benefit_engine.calculators import (
    BenefitCategory,
    MemberProfile,
    calculate,
    membership_years,
    parse_params,
)
from benefit_engine.calculators.engine import EVALUATORS
from benefit_engine.calculators.types import (
    CondolenceParams,
    DamageLevel,
    Relationship,
)
from benefit_engine.errors import InvalidParametersError, UnknownCategoryError

BASE_DATE = date(2024, 10, 1)


def member(enrolled: date, salary: int | None = None) -> MemberProfile:
    return MemberProfile(enrollment_date=enrolled, standard_monthly_remuneration=salary)


def calc(category: str, params: dict | None = None, enrolled=date(2018, 4, 1), salary=None):
    return calculate(category, params or {}, member(enrolled, salary), base_date=BASE_DATE)


class TestMembershipYears:
    """Whole-year tenure."""

    def test_before_anniversary(self):
        assert membership_years(date(2020, 10, 2), date(2024, 10, 1)) == 3

    def test_on_anniversary(self):
        assert membership_years(date(2020, 10, 1), date(2024, 10, 1)) == 4

    def test_event_before_enrollment_is_zero(self):
        assert membership_years(date(2024, 10, 1), date(2023, 1, 1)) == 0

    def test_leap_day_enrollment(self):
        assert membership_years(date(2020, 2, 29), date(2021, 2, 28)) == 0
        assert membership_years(date(2020, 2, 29), date(2021, 3, 1)) == 1


class TestDispatch:
    def test_every_category_has_evaluator(self):
        assert set(EVALUATORS) == set(BenefitCategory)

    @pytest.mark.parametrize("code", ["00", "09", "1", "marriage", ""])
    def test_unknown_category(self, code):
        with pytest.raises(UnknownCategoryError):
            calc(code)

    def test_params_variant_mismatch_rejected(self):
        with pytest.raises(InvalidParametersError):
            parse_params("01", ["not", "a", "mapping"])

    def test_typed_params_accepted(self):
        params = CondolenceParams(relationship=Relationship.SPOUSE)
        assert parse_params("06", params) is params

    def test_deterministic(self):
        params = {"standard_monthly_remuneration": 200_000, "absence_days": 10}
        assert calc("04", params) == calc("04", params)


class TestMarriage:
    def test_under_three_years_first_marriage(self):
        result = calc("01", enrolled=date(2023, 4, 1))
        assert result.amount == 5_000
        assert result.membership_years == 1

    def test_under_three_years_remarriage(self):
        result = calc("01", {"is_remarriage": True}, enrolled=date(2023, 4, 1))
        assert result.amount == 3_000
        assert "Remarriage" in result.label

    def test_three_to_five_years(self):
        assert calc("01", enrolled=date(2021, 10, 1)).amount == 10_000
        assert calc("01", {"is_remarriage": True}, enrolled=date(2021, 10, 1)).amount == 5_000

    def test_five_years_or_more(self):
        assert calc("01", enrolled=date(2019, 10, 1)).amount == 20_000
        assert calc("01", {"is_remarriage": True}, enrolled=date(2019, 10, 1)).amount == 10_000

    def test_child_marriage(self):
        assert calc("01", {"is_for_child": True}).amount == 5_000

    def test_child_remarriage_pays_nothing(self):
        result = calc("01", {"is_for_child": True, "is_remarriage": True})
        assert result.amount == 0

    def test_event_date_drives_tenure(self):
        result = calc("01", {"event_date": "2021-09-30"}, enrolled=date(2018, 10, 1))
        assert result.membership_years == 2
        assert result.amount == 5_000
        assert result.base_date == date(2021, 9, 30)


class TestChildbirth:
    def test_single_child_default(self):
        result = calc("02")
        assert result.amount == 10_000
        assert result.child_count == 1

    def test_twins(self):
        assert calc("02", {"child_count": 2}).amount == 20_000

    def test_numeric_string_is_coerced(self):
        assert calc("02", {"child_count": "3"}).amount == 30_000

    def test_stillbirth_changes_label_only(self):
        result = calc("02", {"is_stillbirth": True})
        assert result.amount == 10_000
        assert "Stillbirth" in result.label

    def test_zero_children_rejected(self):
        with pytest.raises(InvalidParametersError):
            calc("02", {"child_count": 0})


class TestSchoolEnrollment:
    def test_flat_amount(self):
        result = calc("03")
        assert result.amount == 8_000
        assert result.school_type == "elementary school"

    def test_school_type_recorded(self):
        assert calc("03", {"school_type": "junior high"}).school_type == "junior high"


class TestIllness:
    def test_partial_month_rounds_half_up(self):
        result = calc(
            "04", {"standard_monthly_remuneration": 200_000, "absence_days": 10}
        )
        # 65,000 / 30 * 10 = 21,666.67
        assert result.amount == 21_667
        assert result.monthly_benefit == 65_000
        assert result.membership_years == 6
        assert result.max_period_months == 9

    def test_full_month_by_default(self):
        result = calc("04", {"standard_monthly_remuneration": 200_000})
        assert result.amount == 65_000
        assert result.absence_days == 30

    def test_member_salary_fallback(self):
        result = calc("04", {"absence_days": 30}, salary=500_000)
        assert result.standard_monthly_remuneration == 500_000
        assert result.amount == 130_000

    def test_no_salary_anywhere_pays_nothing(self):
        result = calc("04", {"absence_days": 30})
        assert result.amount == 0
        assert result.standard_monthly_remuneration == 0

    def test_salary_in_band_gap_pays_nothing(self):
        assert calc("04", {"standard_monthly_remuneration": 120_000}).amount == 0

    @pytest.mark.parametrize(
        "salary,monthly",
        [(88_000, 30_000), (118_000, 30_000), (650_000, 165_000), (9_999_999, 165_000)],
    )
    def test_band_edges_inclusive(self, salary, monthly):
        assert calc("04", {"standard_monthly_remuneration": salary}).monthly_benefit == monthly

    def test_amount_capped(self):
        result = calc(
            "04", {"standard_monthly_remuneration": 700_000, "absence_days": 200}
        )
        assert result.amount == 1_000_000
        assert "capped" in result.details

    @pytest.mark.parametrize(
        "enrolled,months",
        [(date(2020, 10, 2), 6), (date(2019, 10, 1), 9), (date(2014, 10, 1), 12)],
    )
    def test_max_period_by_tenure(self, enrolled, months):
        result = calc("04", {"standard_monthly_remuneration": 200_000}, enrolled=enrolled)
        assert result.max_period_months == months


class TestDisaster:
    def test_total_loss_own_house(self):
        result = calc("05", {"damage_level": "TOTAL_LOSS"})
        assert result.amount == 50_000
        assert result.damage_level == DamageLevel.TOTAL_LOSS

    def test_not_head_of_household_halves(self):
        result = calc("05", {"damage_level": "TOTAL_LOSS", "is_head_of_household": False})
        assert result.amount == 25_000

    def test_other_residence(self):
        assert calc("05", {"damage_level": "HALF_BURN", "is_own_house": False}).amount == 20_000

    def test_defaults_to_half_damage(self):
        result = calc("05")
        assert result.amount == 15_000
        assert result.is_own_house is True
        assert result.is_head_of_household is True

    def test_unknown_damage_level(self):
        with pytest.raises(InvalidParametersError):
            calc("05", {"damage_level": "FLOODED"})


class TestCondolence:
    def test_member_default(self):
        assert calc("06").amount == 50_000

    def test_spouse_not_halved(self):
        result = calc("06", {"relationship": "SPOUSE", "is_chief_mourner": False})
        assert result.amount == 40_000

    def test_parent_not_chief_mourner_halved(self):
        result = calc("06", {"relationship": "PARENT", "is_chief_mourner": False})
        assert result.amount == 10_000
        assert "halved" in result.details

    def test_grandparent_sibling(self):
        assert calc("06", {"relationship": "GRANDPARENT_SIBLING"}).amount == 10_000
        assert (
            calc(
                "06", {"relationship": "GRANDPARENT_SIBLING", "is_chief_mourner": False}
            ).amount
            == 5_000
        )

    def test_unknown_relationship(self):
        with pytest.raises(InvalidParametersError):
            calc("06", {"relationship": "COUSIN"})


class TestFarewell:
    def test_under_three_years(self):
        assert calc("07", {"withdrawal_date": "2024-09-30"}, enrolled=date(2021, 10, 1)).amount == 0

    def test_exactly_three_years(self):
        result = calc("07", {"withdrawal_date": "2024-10-01"}, enrolled=date(2021, 10, 1))
        assert result.membership_years == 3
        assert result.amount == 5_000

    def test_ten_years_or_more(self):
        assert calc("07", enrolled=date(2014, 10, 1)).amount == 10_000

    def test_falls_back_to_recorded_withdrawal(self):
        withdrawn = MemberProfile(
            enrollment_date=date(2014, 10, 1), withdrawal_date=date(2021, 3, 31)
        )
        result = calculate("07", {}, withdrawn, base_date=BASE_DATE)
        assert result.base_date == date(2021, 3, 31)
        assert result.membership_years == 6
        assert result.amount == 5_000

    def test_explicit_withdrawal_wins(self):
        withdrawn = MemberProfile(
            enrollment_date=date(2014, 10, 1), withdrawal_date=date(2021, 3, 31)
        )
        result = calculate(
            "07", {"withdrawal_date": "2024-10-01"}, withdrawn, base_date=BASE_DATE
        )
        assert result.amount == 10_000


class TestRetirement:
    def test_flat_gift(self):
        result = calc("08")
        assert result.amount == 10_000
        assert result.label == "Retirement Gift"


class TestResultSerialization:
    def test_to_dict_omits_unset_attributes(self):
        data = calc("05", {"damage_level": "TOTAL_LOSS"}).to_dict()
        assert data["category"] == "05"
        assert data["damage_level"] == "TOTAL_LOSS"
        assert data["base_date"] == "2024-10-01"
        assert "monthly_benefit" not in data
