# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from calendar import isleap
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from leave_engine.exceptions import ConfigurationMissing
from leave_engine.models.enums import AccrualBasis
from leave_engine.models.leave_type import ANNUAL_LEAVE_CODE
from leave_engine.schemas.accrual import AccrualResponse
from leave_engine.services.employee import get_employee_or_404
from leave_engine.services.entitlement import precise_years_of_service, tenure_entitlement
from leave_engine.services.leave_type import get_leave_type_by_code
from leave_engine.services.period import accrual_start, resolve_period_start
from leave_engine.services.settings import require_leave_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.models.leave_type import LeaveType
    from leave_engine.schemas.settings import LeaveSettings

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_RATE_PLACES = Decimal("0.0001")
_ZERO = Decimal("0")

# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccruedBalance:
    """Gradual accrual as of a reference date.

    daily_rate is the display rate (4 places); accrued_days is computed from
    the unrounded rate.
    """

    accrued_days: Decimal
    days_in_period: int
    daily_rate: Decimal
    period_start: date
    annual_entitlement: Decimal
    tenure_bonus_days: Decimal


@dataclass(frozen=True)
class AccrualRule:
    """Entitlement parameters for one leave type after company fallbacks."""

    base_days: int
    increment_period_years: int
    increment_amount: int
    max_cap: int | None
    divisor: int
    fiscal_start_month: int
    basis: AccrualBasis


# ---------------------------------------------------------------------------
# Pure computation helpers (no DB)
# ---------------------------------------------------------------------------


def effective_divisor(divisor: int, year: int) -> int:
    """365 becomes 366 in leap years. Other divisors are used as configured."""
    if divisor == 365 and isleap(year):
        return 366
    return divisor


def accrued_balance(
    join_date: date,
    reference_date: date,
    base_days: int,
    divisor: int = 365,
    fiscal_start_month: int = 1,
    increment_period_years: int = 2,
    increment_amount: int = 1,
    max_cap: int | None = None,
    basis: AccrualBasis = AccrualBasis.ANNIVERSARY,
) -> AccruedBalance:
    """Days accrued from the start of the current period through reference_date, inclusive."""
    period_start = resolve_period_start(basis, fiscal_start_month, join_date, reference_date)
    tenure = tenure_entitlement(
        base_days,
        precise_years_of_service(join_date, reference_date),
        increment_period_years,
        increment_amount,
        max_cap,
    )

    start = accrual_start(period_start, join_date)
    if reference_date < start:
        return AccruedBalance(
            accrued_days=_ZERO,
            days_in_period=0,
            daily_rate=_ZERO,
            period_start=period_start,
            annual_entitlement=tenure.entitlement,
            tenure_bonus_days=tenure.bonus_days,
        )

    days_in_period = (reference_date - start).days + 1
    rate = tenure.entitlement / Decimal(effective_divisor(divisor, reference_date.year))
    accrued = (rate * days_in_period).quantize(_CENT, rounding=ROUND_HALF_UP)

    return AccruedBalance(
        accrued_days=min(accrued, tenure.entitlement),
        days_in_period=days_in_period,
        daily_rate=rate.quantize(_RATE_PLACES, rounding=ROUND_HALF_UP),
        period_start=period_start,
        annual_entitlement=tenure.entitlement,
        tenure_bonus_days=tenure.bonus_days,
    )


def resolve_accrual_rule(settings: LeaveSettings, leave_type: LeaveType) -> AccrualRule:
    """Leave-type values win; company annual-leave settings fill the gaps.

    A zero allowance falls back to the company base, while increments and the
    cap fall back only when unset.
    """
    max_cap = leave_type.max_accrual_limit
    if max_cap is None:
        max_cap = settings.max_annual_leave_cap
    increment_period = leave_type.incremental_period_years
    if increment_period is None:
        increment_period = settings.increment_period_years
    increment_amount = leave_type.incremental_days_per_year
    if increment_amount is None:
        increment_amount = settings.increment_amount

    return AccrualRule(
        base_days=leave_type.default_allowance_days or settings.annual_leave_base_days,
        increment_period_years=increment_period,
        increment_amount=increment_amount,
        max_cap=max_cap,
        divisor=settings.accrual_divisor,
        fiscal_start_month=settings.fiscal_year_start_month,
        basis=settings.accrual_basis,
    )


def accrue_with_rule(rule: AccrualRule, join_date: date, reference_date: date) -> AccruedBalance:
    return accrued_balance(
        join_date,
        reference_date,
        rule.base_days,
        rule.divisor,
        rule.fiscal_start_month,
        rule.increment_period_years,
        rule.increment_amount,
        rule.max_cap,
        rule.basis,
    )


# ---------------------------------------------------------------------------
# DB-backed
# ---------------------------------------------------------------------------


async def compute_accrual(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    as_of: date,
    leave_type_code: str = ANNUAL_LEAVE_CODE,
) -> AccrualResponse:
    """Gradual accrual of a leave type for an employee.

    Raises ConfigurationMissing when the company has no settings or no such
    leave type, NotFound when the employee is unknown.
    """
    settings = await require_leave_settings(session, company_id)
    leave_type = await get_leave_type_by_code(session, company_id, leave_type_code)
    if leave_type is None:
        raise ConfigurationMissing(f"Leave type {leave_type_code} is not configured")
    employee = await get_employee_or_404(company_id, employee_id)

    rule = resolve_accrual_rule(settings, leave_type)
    result = accrue_with_rule(rule, employee.join_date, as_of)
    logger.debug(
        "Accrual for employee %s (%s) as of %s: %s days",
        employee_id,
        leave_type.code,
        as_of,
        result.accrued_days,
    )

    return AccrualResponse(
        employee_id=employee_id,
        leave_type_code=leave_type.code,
        as_of=as_of,
        join_date=employee.join_date,
        accrual_basis=rule.basis,
        years_of_service=precise_years_of_service(employee.join_date, as_of).quantize(_CENT, rounding=ROUND_HALF_UP),
        period_start=result.period_start,
        days_in_period=result.days_in_period,
        annual_entitlement=result.annual_entitlement,
        tenure_bonus_days=result.tenure_bonus_days,
        daily_rate=result.daily_rate,
        accrued_days=result.accrued_days,
    )
