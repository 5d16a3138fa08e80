"""Tests for gradual annual leave accrual: daily rate, leap years, tenure and the accrual endpoint."""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from leave_engine.models.enums import AccrualBasis
from leave_engine.models.leave_type import LeaveType
from leave_engine.schemas.settings import LeaveSettings
from leave_engine.services.accrual import accrued_balance, effective_divisor, resolve_accrual_rule
from leave_engine.services.employee import EmployeeInfo

if TYPE_CHECKING:
    from httpx import AsyncClient

    from leave_engine.services.employee import InMemoryEmployeeService

COMPANY_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()

ADMIN_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(ADMIN_ID),
    "X-Role": "admin",
}
EMPLOYEE_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(EMPLOYEE_ID),
    "X-Role": "employee",
}
SETTINGS_URL = f"/companies/{COMPANY_ID}/leave-settings"
LEAVE_TYPES_URL = f"/companies/{COMPANY_ID}/leave-types"
ACCRUAL_URL = f"/companies/{COMPANY_ID}/employees/{EMPLOYEE_ID}/accrual"


# ---------------------------------------------------------------------------
# Pure accrual math
# ---------------------------------------------------------------------------


def test_divisor_becomes_366_in_leap_years() -> None:
    assert effective_divisor(365, 2024) == 366
    assert effective_divisor(365, 2025) == 365
    assert effective_divisor(360, 2024) == 360


def test_leap_year_daily_rate() -> None:
    result = accrued_balance(date(2024, 1, 1), date(2024, 12, 31), 16, basis=AccrualBasis.CALENDAR_YEAR)
    assert result.daily_rate == Decimal("0.0437")
    assert result.days_in_period == 366
    assert result.accrued_days == Decimal("16.00")


def test_accrual_counts_reference_day_inclusive() -> None:
    result = accrued_balance(date(2025, 1, 1), date(2025, 1, 1), 16, basis=AccrualBasis.CALENDAR_YEAR)
    assert result.days_in_period == 1
    assert result.accrued_days == Decimal("0.04")


def test_half_year_accrual_uses_unrounded_rate() -> None:
    # 16 / 365 * 182 = 7.978...
    result = accrued_balance(date(2025, 1, 1), date(2025, 7, 1), 16, basis=AccrualBasis.CALENDAR_YEAR)
    assert result.daily_rate == Decimal("0.0438")
    assert result.accrued_days == Decimal("7.98")


def test_anniversary_accrual_includes_tenure_bonus() -> None:
    result = accrued_balance(date(2020, 1, 1), date(2025, 7, 1), 16)
    assert result.period_start == date(2025, 1, 1)
    assert result.annual_entitlement == Decimal("18")
    assert result.tenure_bonus_days == Decimal("2")
    # 18 / 365 * 182 = 8.975...
    assert result.accrued_days == Decimal("8.98")


def test_mid_period_joiner_accrues_from_join_date() -> None:
    result = accrued_balance(date(2025, 3, 1), date(2025, 3, 31), 16, basis=AccrualBasis.CALENDAR_YEAR)
    assert result.period_start == date(2025, 1, 1)
    assert result.days_in_period == 31


def test_no_accrual_before_joining() -> None:
    result = accrued_balance(date(2025, 8, 1), date(2025, 7, 1), 16, basis=AccrualBasis.CALENDAR_YEAR)
    assert result.accrued_days == Decimal("0")
    assert result.days_in_period == 0


def test_accrual_never_exceeds_entitlement() -> None:
    result = accrued_balance(
        date(2025, 1, 1), date(2025, 12, 31), 16, divisor=360, basis=AccrualBasis.CALENDAR_YEAR
    )
    assert result.accrued_days == Decimal("16")


def _walk(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def test_accrual_grows_day_by_day_within_a_period() -> None:
    previous = Decimal("0")
    for day in _walk(date(2025, 1, 1), date(2025, 12, 31)):
        result = accrued_balance(date(2020, 1, 1), day, 16)
        assert result.accrued_days >= previous, day
        assert result.accrued_days <= result.annual_entitlement, day
        previous = result.accrued_days
    assert previous == Decimal("18")


def test_accrual_stays_monotonic_across_a_tenure_step() -> None:
    # Four years of service on 2025-06-15 lifts the entitlement from 17 to 18.
    previous = Decimal("0")
    entitlements = set()
    for day in _walk(date(2025, 1, 1), date(2025, 12, 31)):
        result = accrued_balance(date(2021, 6, 15), day, 16, basis=AccrualBasis.CALENDAR_YEAR)
        assert result.accrued_days >= previous, day
        assert result.accrued_days <= result.annual_entitlement, day
        previous = result.accrued_days
        entitlements.add(result.annual_entitlement)
    assert entitlements == {Decimal("17"), Decimal("18")}


def test_leave_type_values_override_company_defaults() -> None:
    settings = LeaveSettings(annual_leave_base_days=16, increment_period_years=2, increment_amount=1)
    leave_type = LeaveType(
        company_id=COMPANY_ID,
        code="ANNUAL",
        name="Annual",
        default_allowance_days=20,
        incremental_days_per_year=0,
        max_accrual_limit=25,
    )
    rule = resolve_accrual_rule(settings, leave_type)
    assert rule.base_days == 20
    assert rule.increment_amount == 0
    assert rule.increment_period_years == 2
    assert rule.max_cap == 25


def test_zero_allowance_falls_back_to_company_base() -> None:
    settings = LeaveSettings(annual_leave_base_days=18, max_annual_leave_cap=22)
    leave_type = LeaveType(company_id=COMPANY_ID, code="ANNUAL", name="Annual")
    rule = resolve_accrual_rule(settings, leave_type)
    assert rule.base_days == 18
    assert rule.max_cap == 22


# ---------------------------------------------------------------------------
# Accrual endpoint
# ---------------------------------------------------------------------------


async def _configure_company(client: AsyncClient) -> None:
    resp = await client.put(SETTINGS_URL, json={}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    resp = await client.post(LEAVE_TYPES_URL, json={"code": "annual", "name": "Annual Leave"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 201


def _seed_employee(service: InMemoryEmployeeService, join: date = date(2020, 1, 1)) -> None:
    service.seed(
        EmployeeInfo(
            id=EMPLOYEE_ID,
            company_id=COMPANY_ID,
            full_name="Amina Odhiambo",
            employment_start_date=join,
            created_on=join,
        )
    )


async def test_accrual_endpoint(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    resp = await async_client.get(ACCRUAL_URL, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["leave_type_code"] == "ANNUAL"
    assert data["as_of"] == "2025-07-01"
    assert data["accrual_basis"] == "ANNIVERSARY"
    assert data["days_in_period"] == 182
    assert Decimal(data["annual_entitlement"]) == Decimal("18")
    assert Decimal(data["accrued_days"]) == Decimal("8.98")


async def test_accrual_endpoint_as_of_override(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    resp = await async_client.get(f"{ACCRUAL_URL}?as_of=2025-01-01", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["days_in_period"] == 1


async def test_accrual_without_settings_returns_404(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    _seed_employee(employee_service)
    resp = await async_client.get(ACCRUAL_URL, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["error"] == "ConfigurationMissing"


async def test_accrual_unknown_leave_type_returns_404(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)
    resp = await async_client.get(f"{ACCRUAL_URL}?leave_type_code=SICK", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["error"] == "ConfigurationMissing"


async def test_accrual_unknown_employee_returns_404(async_client: AsyncClient) -> None:
    await _configure_company(async_client)
    resp = await async_client.get(ACCRUAL_URL, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"
