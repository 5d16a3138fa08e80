"""Tests for leave encashment: valuation, eligibility checks, and the approve/reject lifecycle."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from leave_engine.models.enums import RoundingMode
from leave_engine.services.cash_out import calculate_cash_value
from leave_engine.services.employee import EmployeeInfo

if TYPE_CHECKING:
    from httpx import AsyncClient

    from leave_engine.services.employee import InMemoryEmployeeService

COMPANY_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()
HR_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()

ADMIN_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(ADMIN_ID),
    "X-Role": "admin",
}
HR_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(HR_ID),
    "X-Role": "hr",
}
EMPLOYEE_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(EMPLOYEE_ID),
    "X-Role": "employee",
}
SETTINGS_URL = f"/companies/{COMPANY_ID}/leave-settings"
LEAVE_TYPES_URL = f"/companies/{COMPANY_ID}/leave-types"
CASH_OUTS_URL = f"/companies/{COMPANY_ID}/cash-outs"
APPLICATIONS_URL = f"/companies/{COMPANY_ID}/leave-applications"
BALANCES_URL = f"/companies/{COMPANY_ID}/employees/{EMPLOYEE_ID}/balances"


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------


def test_cash_value_whole_days() -> None:
    value = calculate_cash_value(Decimal("10"), Decimal("9000"), 30, None, RoundingMode.FLOOR)
    assert value.daily_rate == Decimal("300.00")
    assert value.raw_value == Decimal("3000")
    assert value.rounded_value == Decimal("3000.00")


def test_cash_value_fractional_days() -> None:
    value = calculate_cash_value(Decimal("10.33"), Decimal("9000"), 30, None, RoundingMode.ROUND)
    assert value.rounded_value == Decimal("3099.00")


@pytest.mark.parametrize(
    ("rounding", "expected"),
    [
        (RoundingMode.ROUND, Decimal("666.67")),
        (RoundingMode.FLOOR, Decimal("666.66")),
        (RoundingMode.CEIL, Decimal("666.67")),
    ],
)
def test_cash_value_rounding_modes(rounding: RoundingMode, expected: Decimal) -> None:
    value = calculate_cash_value(Decimal("2"), Decimal("10000"), 30, None, rounding)
    assert value.daily_rate == Decimal("333.33")
    assert value.rounded_value == expected


def test_cash_value_ceil_rounds_up_a_fraction_of_a_cent() -> None:
    value = calculate_cash_value(Decimal("1"), Decimal("10000"), 30, None, RoundingMode.CEIL)
    assert value.rounded_value == Decimal("333.34")


def test_cash_value_limited_by_max_days() -> None:
    value = calculate_cash_value(Decimal("12"), Decimal("9000"), 30, 5)
    assert value.eligible_days == Decimal("5")
    assert value.rounded_value == Decimal("1500.00")


def test_zero_max_days_means_unlimited() -> None:
    assert calculate_cash_value(Decimal("12"), Decimal("9000"), 30, 0).eligible_days == Decimal("12")


def test_cash_value_rejects_zero_divisor() -> None:
    with pytest.raises(ValueError, match="salary_divisor"):
        calculate_cash_value(Decimal("1"), Decimal("9000"), 0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _configure_company(client: AsyncClient, **settings: object) -> str:
    """Enable encashment and add annual leave; returns the annual leave type id."""
    payload = {"enable_encashment": True, **settings}
    resp = await client.put(SETTINGS_URL, json=payload, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    resp = await client.post(LEAVE_TYPES_URL, json={"code": "ANNUAL", "name": "Annual Leave"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 201
    return resp.json()["id"]


def _seed_employee(service: InMemoryEmployeeService, salary: str = "9000") -> None:
    # Joined 2020-01-01: 8.98 days accrued by 2025-07-01.
    service.seed(
        EmployeeInfo(
            id=EMPLOYEE_ID,
            company_id=COMPANY_ID,
            full_name="Wanjiru Kamau",
            employment_start_date=date(2020, 1, 1),
            created_on=date(2020, 1, 1),
            monthly_salary=Decimal(salary),
        )
    )


async def _submit(client: AsyncClient, days: str = "5", headers: dict | None = None) -> dict:
    resp = await client.post(
        CASH_OUTS_URL,
        json={"employee_id": str(EMPLOYEE_ID), "days": days},
        headers=headers or EMPLOYEE_HEADERS,
    )
    return {"status_code": resp.status_code, **resp.json()}


# ---------------------------------------------------------------------------
# Quote
# ---------------------------------------------------------------------------


async def test_quote(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    resp = await async_client.get(f"{CASH_OUTS_URL}/quote?employee_id={EMPLOYEE_ID}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["fiscal_year"] == 2025
    assert Decimal(data["accrued_days"]) == Decimal("8.98")
    assert Decimal(data["remaining_days"]) == Decimal("8.98")
    assert Decimal(data["daily_rate"]) == Decimal("300.00")
    assert Decimal(data["cash_value"]) == Decimal("2694.00")
    assert data["is_eligible"] is True


async def test_quote_respects_max_days(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client, max_encashment_days=5)
    _seed_employee(employee_service)

    data = (await async_client.get(f"{CASH_OUTS_URL}/quote?employee_id={EMPLOYEE_ID}", headers=HR_HEADERS)).json()
    assert Decimal(data["eligible_days"]) == Decimal("5")
    assert Decimal(data["cash_value"]) == Decimal("1500.00")


async def test_quote_when_disabled_is_not_eligible(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client, enable_encashment=False)
    _seed_employee(employee_service)

    data = (await async_client.get(f"{CASH_OUTS_URL}/quote?employee_id={EMPLOYEE_ID}", headers=HR_HEADERS)).json()
    assert data["is_eligible"] is False
    assert "not enabled" in data["message"]


# ---------------------------------------------------------------------------
# Submission checks
# ---------------------------------------------------------------------------


async def test_submit_cash_out(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    data = await _submit(async_client, "5")
    assert data["status_code"] == 201
    assert data["status"] == "PENDING"
    assert data["fiscal_year"] == 2025
    assert Decimal(data["days_cashed_out"]) == Decimal("5")
    assert Decimal(data["cash_value"]) == Decimal("1500.00")
    assert Decimal(data["monthly_salary"]) == Decimal("9000")
    assert data["salary_divisor"] == 30


async def test_submit_holds_days_on_the_annual_balance(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    assert (await _submit(async_client, "5"))["status_code"] == 201

    annual = (await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)).json()["items"][0]
    assert Decimal(annual["pending_days"]) == Decimal("5")
    assert Decimal(annual["used_days"]) == Decimal("0")
    assert Decimal(annual["remaining_days"]) == Decimal("3.98")

    quote = (await async_client.get(f"{CASH_OUTS_URL}/quote?employee_id={EMPLOYEE_ID}", headers=HR_HEADERS)).json()
    assert Decimal(quote["pending_days"]) == Decimal("5")
    assert Decimal(quote["remaining_days"]) == Decimal("3.98")


async def test_pending_cash_out_days_cannot_be_taken_as_leave(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    annual_id = await _configure_company(async_client)
    _seed_employee(employee_service)
    assert (await _submit(async_client, "8"))["status_code"] == 201

    # 6.5 working days against the 0.98 left after the held 8.
    resp = await async_client.post(
        APPLICATIONS_URL,
        json={
            "employee_id": str(EMPLOYEE_ID),
            "leave_type_id": annual_id,
            "start_date": "2025-07-07",
            "end_date": "2025-07-14",
        },
        headers=EMPLOYEE_HEADERS,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InsufficientBalance"


async def test_second_pending_request_is_rejected(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    assert (await _submit(async_client, "2"))["status_code"] == 201
    data = await _submit(async_client, "1")
    assert data["status_code"] == 409
    assert data["error"] == "DuplicateRequest"


async def test_submit_when_disabled(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client, enable_encashment=False)
    _seed_employee(employee_service)

    data = await _submit(async_client)
    assert data["status_code"] == 400
    assert data["error"] == "NotEligible"


async def test_submit_above_max_days(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client, max_encashment_days=3)
    _seed_employee(employee_service)

    data = await _submit(async_client, "5")
    assert data["status_code"] == 400
    assert data["error"] == "CapExceeded"


async def test_submit_without_salary(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service, salary="0")

    data = await _submit(async_client)
    assert data["status_code"] == 400
    assert data["error"] == "NotEligible"


async def test_submit_more_than_remaining(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    data = await _submit(async_client, "9")
    assert data["status_code"] == 400
    assert data["error"] == "InsufficientBalance"


async def test_submit_requires_positive_days(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    assert (await _submit(async_client, "0"))["status_code"] == 422


async def test_employee_cannot_submit_for_someone_else(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)
    other_headers = {**EMPLOYEE_HEADERS, "X-User-Id": str(uuid.uuid4())}

    data = await _submit(async_client, headers=other_headers)
    assert data["status_code"] == 403


async def test_hr_can_submit_on_behalf(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)

    assert (await _submit(async_client, headers=HR_HEADERS))["status_code"] == 201


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


async def test_approve_turns_held_days_into_used(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)
    cash_out_id = (await _submit(async_client, "5"))["id"]

    resp = await async_client.post(f"{CASH_OUTS_URL}/{cash_out_id}/approve", headers=HR_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "APPROVED"
    assert data["decided_by"] == str(HR_ID)
    assert data["decided_at"] is not None

    balances = (await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)).json()
    annual = balances["items"][0]
    assert Decimal(annual["used_days"]) == Decimal("5")
    assert Decimal(annual["pending_days"]) == Decimal("0")
    assert Decimal(annual["remaining_days"]) == Decimal("3.98")


async def test_employee_cannot_decide(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)
    cash_out_id = (await _submit(async_client, "5"))["id"]

    resp = await async_client.post(f"{CASH_OUTS_URL}/{cash_out_id}/approve", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_reject_then_resubmit(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)
    cash_out_id = (await _submit(async_client, "5"))["id"]

    resp = await async_client.post(
        f"{CASH_OUTS_URL}/{cash_out_id}/reject",
        json={"reason": "Budget freeze"},
        headers=HR_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "REJECTED"
    assert resp.json()["rejection_reason"] == "Budget freeze"

    annual = (await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)).json()["items"][0]
    assert Decimal(annual["pending_days"]) == Decimal("0")
    assert Decimal(annual["remaining_days"]) == Decimal("8.98")

    again = await async_client.post(f"{CASH_OUTS_URL}/{cash_out_id}/approve", headers=HR_HEADERS)
    assert again.status_code == 409
    assert again.json()["error"] == "InvalidTransition"

    assert (await _submit(async_client, "5"))["status_code"] == 201


async def test_reject_requires_reason(async_client: AsyncClient, employee_service: InMemoryEmployeeService) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)
    cash_out_id = (await _submit(async_client, "5"))["id"]

    resp = await async_client.post(f"{CASH_OUTS_URL}/{cash_out_id}/reject", json={"reason": ""}, headers=HR_HEADERS)
    assert resp.status_code == 422


async def test_approve_unknown_request_returns_404(async_client: AsyncClient) -> None:
    resp = await async_client.post(f"{CASH_OUTS_URL}/{uuid.uuid4()}/approve", headers=HR_HEADERS)
    assert resp.status_code == 404


async def test_list_cash_outs_with_status_filter(
    async_client: AsyncClient, employee_service: InMemoryEmployeeService
) -> None:
    await _configure_company(async_client)
    _seed_employee(employee_service)
    cash_out_id = (await _submit(async_client, "2"))["id"]
    await async_client.post(f"{CASH_OUTS_URL}/{cash_out_id}/approve", headers=HR_HEADERS)
    await _submit(async_client, "1")

    all_requests = (await async_client.get(CASH_OUTS_URL, headers=HR_HEADERS)).json()
    assert all_requests["total"] == 2

    pending = (await async_client.get(f"{CASH_OUTS_URL}?status=PENDING", headers=HR_HEADERS)).json()
    assert pending["total"] == 1
    assert Decimal(pending["items"][0]["days_cashed_out"]) == Decimal("1")

    by_year = (await async_client.get(f"{CASH_OUTS_URL}?fiscal_year=2024", headers=HR_HEADERS)).json()
    assert by_year["total"] == 0
