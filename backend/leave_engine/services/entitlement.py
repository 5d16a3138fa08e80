from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

_DAYS_PER_YEAR = Decimal("365.25")
_ZERO = Decimal("0")


@dataclass(frozen=True)
class TenureEntitlement:
    """Annual entitlement after tenure increments and the cap."""

    entitlement: Decimal
    bonus_days: Decimal
    completed_periods: int


def _effective_cap(max_cap: int | Decimal | None) -> Decimal | None:
    # 0 and None both mean uncapped.
    if not max_cap:
        return None
    return Decimal(max_cap)


def precise_years_of_service(join_date: date, reference_date: date) -> Decimal:
    """Fractional years between the two dates on a 365.25-day year, never negative."""
    days = (reference_date - join_date).days
    return max(_ZERO, Decimal(days) / _DAYS_PER_YEAR)


def completed_years_of_service(join_date: date, reference_date: date) -> int:
    """Whole calendar years served, counting from the anniversary; at least 1."""
    years = reference_date.year - join_date.year
    if (reference_date.month, reference_date.day) < (join_date.month, join_date.day):
        years -= 1
    return max(1, years)


def tenure_entitlement(
    base_days: int | Decimal,
    years_of_service: int | Decimal,
    increment_period_years: int = 2,
    increment_amount: int | Decimal = 1,
    max_cap: int | Decimal | None = None,
) -> TenureEntitlement:
    """Base days plus increment_amount for every full increment period served.

    >>> tenure_entitlement(16, 5, 2, 1)
    TenureEntitlement(entitlement=Decimal('18'), bonus_days=Decimal('2'), completed_periods=2)
    """
    if increment_period_years <= 0:
        msg = "increment_period_years must be positive"
        raise ValueError(msg)
    completed_periods = int(
        (Decimal(years_of_service) / Decimal(increment_period_years)).to_integral_value(rounding=ROUND_FLOOR)
    )
    completed_periods = max(0, completed_periods)
    bonus_days = Decimal(completed_periods) * Decimal(increment_amount)
    entitlement = Decimal(base_days) + bonus_days
    cap = _effective_cap(max_cap)
    if cap is not None:
        entitlement = min(entitlement, cap)
    return TenureEntitlement(entitlement=entitlement, bonus_days=bonus_days, completed_periods=completed_periods)


def flat_entitlement(
    base_days: int,
    incremental_days: int,
    years_of_service: int,
    max_cap: int | None = None,
    increment_period_years: int = 1,
    months_worked: int | None = None,
) -> Decimal:
    """Full-year entitlement for leave types that do not accrue gradually.

    - under one year with months_worked given: base prorated by months, rounded half-up
    - up to one year: the base
    - afterwards: one increment per full period beyond the first year
    """
    if years_of_service < 1 and months_worked is not None:
        prorated = Decimal(base_days) * Decimal(months_worked) / Decimal(12)
        return prorated.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    if years_of_service <= 1:
        return Decimal(base_days)

    period = max(1, increment_period_years)
    increments = (years_of_service - 1) // period
    entitlement = Decimal(base_days + increments * incremental_days)
    cap = _effective_cap(max_cap)
    if cap is not None:
        entitlement = min(entitlement, cap)
    return entitlement
