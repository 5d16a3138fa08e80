# ruff: noqa: TC003
from __future__ import annotations

import uuid
from calendar import isleap
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_engine.models.holiday import PublicHoliday
from leave_engine.schemas.settings import LeaveSettings
from leave_engine.services.settings import load_leave_settings

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sqlalchemy.ext.asyncio import AsyncSession

SATURDAY = 5
SUNDAY = 6

_FULL_DAY = Decimal("1")
_HALF_DAY = Decimal("0.5")
_NO_DAY = Decimal("0")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeekPolicy:
    """Which weekdays are off and which count as half a working day.

    Weekdays use date.weekday() numbering (Monday is 0).
    """

    off_weekdays: frozenset[int] = frozenset({SUNDAY})
    half_weekdays: frozenset[int] = frozenset({SATURDAY})

    @classmethod
    def from_settings(cls, settings: LeaveSettings) -> WeekPolicy:
        off = frozenset({SUNDAY}) if settings.sunday_off else frozenset()
        half = frozenset({SATURDAY}) if settings.saturday_half_day else frozenset()
        return cls(off_weekdays=off, half_weekdays=half)

    def is_off(self, day: date) -> bool:
        return day.weekday() in self.off_weekdays

    def is_half(self, day: date) -> bool:
        return day.weekday() in self.half_weekdays and not self.is_off(day)


@dataclass(frozen=True)
class HolidayCalendar:
    """A company's holidays: exact dates plus (month, day) pairs that repeat yearly."""

    fixed_dates: frozenset[date] = field(default_factory=frozenset)
    recurring: frozenset[tuple[int, int]] = field(default_factory=frozenset)

    @classmethod
    def from_holidays(cls, holidays: Iterable[PublicHoliday]) -> HolidayCalendar:
        fixed: set[date] = set()
        recurring: set[tuple[int, int]] = set()
        for holiday in holidays:
            if holiday.is_recurring:
                recurring.add((holiday.holiday_date.month, holiday.holiday_date.day))
            else:
                fixed.add(holiday.holiday_date)
        return cls(fixed_dates=frozenset(fixed), recurring=frozenset(recurring))

    def is_holiday(self, day: date) -> bool:
        return day in self.fixed_dates or (day.month, day.day) in self.recurring

    def holidays_in_range(self, start: date, end: date) -> set[date]:
        """Concrete holiday dates within [start, end].

        Recurring holidays are expanded once per year; a recurring Feb 29
        only lands in leap years.
        """
        found = {d for d in self.fixed_dates if start <= d <= end}
        for year in range(start.year, end.year + 1):
            for month, day in self.recurring:
                occurrence = holiday_occurrence(date(2000, month, day), is_recurring=True, year=year)
                if occurrence is not None and start <= occurrence <= end:
                    found.add(occurrence)
        return found


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def holiday_occurrence(holiday_date: date, *, is_recurring: bool, year: int) -> date | None:
    """Where a holiday falls in the given year, or None if it does not fall in it.

    >>> holiday_occurrence(date(2024, 2, 29), is_recurring=True, year=2025) is None
    True
    """
    if not is_recurring:
        return holiday_date if holiday_date.year == year else None
    if holiday_date.month == 2 and holiday_date.day == 29 and not isleap(year):
        return None
    return holiday_date.replace(year=year)



def _iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_working_day(day: date, week_policy: WeekPolicy, calendar: HolidayCalendar) -> bool:
    """False for holidays and weekly off-days. Half-days are working days."""
    return not calendar.is_holiday(day) and not week_policy.is_off(day)


def count_working_days(
    start: date,
    end: date,
    week_policy: WeekPolicy,
    calendar: HolidayCalendar,
) -> Decimal:
    """Sum of day weights over [start, end]. Zero when end precedes start."""
    holidays = calendar.holidays_in_range(start, end) if start <= end else set()
    total = _NO_DAY
    for day in _iter_days(start, end):
        if day in holidays or week_policy.is_off(day):
            continue
        total += _HALF_DAY if week_policy.is_half(day) else _FULL_DAY
    return total


def count_calendar_days(start: date, end: date) -> Decimal:
    """Consecutive calendar days in [start, end], holidays and weekends included."""
    if end < start:
        return _NO_DAY
    return Decimal((end - start).days + 1)


def next_working_day(after: date, week_policy: WeekPolicy, calendar: HolidayCalendar) -> date:
    """First date after `after` that is neither a holiday nor an off-day."""
    if week_policy.off_weekdays.issuperset(range(7)):
        msg = "Week policy has no working days"
        raise ValueError(msg)
    candidate = after + timedelta(days=1)
    while not is_working_day(candidate, week_policy, calendar):
        candidate += timedelta(days=1)
    return candidate


# ---------------------------------------------------------------------------
# DB-backed loaders
# ---------------------------------------------------------------------------


async def load_holiday_calendar(session: AsyncSession, company_id: uuid.UUID) -> HolidayCalendar:
    result = await session.execute(select(PublicHoliday).where(col(PublicHoliday.company_id) == company_id))
    return HolidayCalendar.from_holidays(result.scalars().all())


async def load_week_policy(session: AsyncSession, company_id: uuid.UUID) -> WeekPolicy:
    """Week policy from company settings; the default policy when none are stored."""
    settings = await load_leave_settings(session, company_id)
    return WeekPolicy.from_settings(settings or LeaveSettings())


async def count_company_working_days(
    session: AsyncSession,
    company_id: uuid.UUID,
    start: date,
    end: date,
) -> Decimal:
    week_policy = await load_week_policy(session, company_id)
    calendar = await load_holiday_calendar(session, company_id)
    return count_working_days(start, end, week_policy, calendar)
