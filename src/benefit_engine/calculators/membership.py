"""Membership duration helpers."""

from __future__ import annotations

from datetime import date


def membership_years(enrollment_date: date, as_of: date) -> int:
    """Whole years elapsed between enrollment and ``as_of``.

    An ``as_of`` date before enrollment counts as zero years.
    """
    years = as_of.year - enrollment_date.year
    if (as_of.month, as_of.day) < (enrollment_date.month, enrollment_date.day):
        years -= 1
    return max(years, 0)
