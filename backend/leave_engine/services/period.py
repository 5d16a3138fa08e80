"""Accrual period and fiscal year resolution.

All functions are pure and take the reference date explicitly.
"""

from __future__ import annotations

from calendar import isleap, monthrange
from datetime import date

from leave_engine.models.enums import AccrualBasis


def anniversary_in_year(join_date: date, year: int) -> date:
    """The join month/day projected onto `year`. Feb 29 becomes Feb 28 in non-leap years."""
    if join_date.month == 2 and join_date.day == 29 and not isleap(year):
        return date(year, 2, 28)
    return date(year, join_date.month, join_date.day)


def fiscal_year_start(fiscal_start_month: int, reference_date: date) -> date:
    """First day of the fiscal year containing reference_date."""
    year = reference_date.year
    if reference_date.month < fiscal_start_month:
        year -= 1
    return date(year, fiscal_start_month, 1)


def anniversary_year_start(join_date: date, reference_date: date) -> date:
    """Most recent join-date anniversary on or before reference_date."""
    this_year = anniversary_in_year(join_date, reference_date.year)
    if reference_date < this_year:
        return anniversary_in_year(join_date, reference_date.year - 1)
    return this_year


def resolve_period_start(
    basis: AccrualBasis,
    fiscal_start_month: int,
    join_date: date,
    reference_date: date,
) -> date:
    """Start of the accrual period that contains reference_date."""
    if basis == AccrualBasis.ANNIVERSARY:
        return anniversary_year_start(join_date, reference_date)
    return fiscal_year_start(fiscal_start_month, reference_date)


def accrual_start(period_start: date, join_date: date) -> date:
    """Accrual never starts before the employee joined."""
    return max(period_start, join_date)


def fiscal_year_for(fiscal_start_month: int, day: date) -> int:
    """Fiscal year number, named after the calendar year in which it starts."""
    if day.month < fiscal_start_month:
        return day.year - 1
    return day.year


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def balance_expiry_date(fiscal_year: int, expiry_months: int, fiscal_start_month: int) -> date:
    """First day of the next fiscal year plus expiry_months."""
    return add_months(date(fiscal_year + 1, fiscal_start_month, 1), expiry_months)
