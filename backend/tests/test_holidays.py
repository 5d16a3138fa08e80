"""Integration tests for the public holiday calendar API, authorization, and audit."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from leave_engine.services.audit import entity_trail

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

COMPANY_ID = uuid.uuid4()
USER_ID = uuid.uuid4()
ADMIN_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(USER_ID),
    "X-Role": "admin",
}
EMPLOYEE_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(USER_ID),
    "X-Role": "employee",
}
BASE_URL = f"/companies/{COMPANY_ID}/holidays"


def _holiday_payload(date: str = "2025-12-12", name: str = "Jamhuri Day", *, recurring: bool = False) -> dict:
    return {"date": date, "name": name, "is_recurring": recurring}


async def test_create_holiday(async_client: AsyncClient) -> None:
    resp = await async_client.post(BASE_URL, json=_holiday_payload(), headers=ADMIN_HEADERS)
    assert resp.status_code == 201
    data = resp.json()
    assert data["date"] == "2025-12-12"
    assert data["name"] == "Jamhuri Day"
    assert data["is_recurring"] is False
    assert data["weekday"] == "Friday"
    assert data["company_id"] == str(COMPANY_ID)


async def test_year_filter_includes_recurring_holidays(async_client: AsyncClient) -> None:
    await async_client.post(BASE_URL, json=_holiday_payload("2024-01-01", "New Year", recurring=True), headers=ADMIN_HEADERS)
    await async_client.post(BASE_URL, json=_holiday_payload("2025-12-12"), headers=ADMIN_HEADERS)
    await async_client.post(BASE_URL, json=_holiday_payload("2026-06-01", "Madaraka Day"), headers=ADMIN_HEADERS)

    data = (await async_client.get(f"{BASE_URL}?year=2025", headers=ADMIN_HEADERS)).json()
    assert data["total"] == 2
    assert [(item["name"], item["date"], item["weekday"]) for item in data["items"]] == [
        ("New Year", "2025-01-01", "Wednesday"),
        ("Jamhuri Day", "2025-12-12", "Friday"),
    ]

    # Unfiltered listings show the stored date.
    data = (await async_client.get(BASE_URL, headers=ADMIN_HEADERS)).json()
    assert data["items"][0]["date"] == "2024-01-01"


async def test_recurring_leap_day_only_listed_in_leap_years(async_client: AsyncClient) -> None:
    leap_day = _holiday_payload("2024-02-29", "Leap Day", recurring=True)
    await async_client.post(BASE_URL, json=leap_day, headers=ADMIN_HEADERS)

    assert (await async_client.get(f"{BASE_URL}?year=2025", headers=ADMIN_HEADERS)).json()["total"] == 0
    data = (await async_client.get(f"{BASE_URL}?year=2028", headers=ADMIN_HEADERS)).json()
    assert [item["date"] for item in data["items"]] == ["2028-02-29"]


async def test_year_listing_pages_by_occurrence(async_client: AsyncClient) -> None:
    await async_client.post(BASE_URL, json=_holiday_payload("2025-03-10", "Spring Break"), headers=ADMIN_HEADERS)
    await async_client.post(
        BASE_URL, json=_holiday_payload("2023-05-01", "Labour Day", recurring=True), headers=ADMIN_HEADERS
    )
    await async_client.post(
        BASE_URL, json=_holiday_payload("2020-01-01", "New Year", recurring=True), headers=ADMIN_HEADERS
    )

    data = (await async_client.get(f"{BASE_URL}?year=2025&offset=1&limit=1", headers=ADMIN_HEADERS)).json()
    assert data["total"] == 3
    assert [(item["name"], item["date"]) for item in data["items"]] == [("Spring Break", "2025-03-10")]


async def test_list_holidays_pagination(async_client: AsyncClient) -> None:
    for i in range(3):
        await async_client.post(BASE_URL, json=_holiday_payload(f"2025-0{i + 1}-15", f"Holiday {i}"), headers=ADMIN_HEADERS)

    data = (await async_client.get(f"{BASE_URL}?offset=0&limit=2", headers=ADMIN_HEADERS)).json()
    assert data["total"] == 3
    assert len(data["items"]) == 2
    assert data["items"][0]["date"] == "2025-01-15"


async def test_delete_holiday_is_audited(async_client: AsyncClient, db_session: AsyncSession) -> None:
    holiday_id = (await async_client.post(BASE_URL, json=_holiday_payload(), headers=ADMIN_HEADERS)).json()["id"]

    resp = await async_client.delete(f"{BASE_URL}/{holiday_id}", headers=ADMIN_HEADERS)
    assert resp.status_code == 204
    assert (await async_client.get(BASE_URL, headers=ADMIN_HEADERS)).json()["total"] == 0

    trail = await entity_trail(db_session, COMPANY_ID, uuid.UUID(holiday_id))
    assert [entry.action for entry in trail] == ["CREATE", "DELETE"]
    assert trail[-1].after_json is None


async def test_delete_unknown_holiday_returns_404(async_client: AsyncClient) -> None:
    resp = await async_client.delete(f"{BASE_URL}/{uuid.uuid4()}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404


async def test_duplicate_date_returns_409(async_client: AsyncClient) -> None:
    payload = _holiday_payload()
    assert (await async_client.post(BASE_URL, json=payload, headers=ADMIN_HEADERS)).status_code == 201
    resp = await async_client.post(BASE_URL, json=payload, headers=ADMIN_HEADERS)
    assert resp.status_code == 409


async def test_non_admin_cannot_create(async_client: AsyncClient) -> None:
    resp = await async_client.post(BASE_URL, json=_holiday_payload(), headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_employee_can_list(async_client: AsyncClient) -> None:
    resp = await async_client.get(BASE_URL, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200


async def test_company_isolation(async_client: AsyncClient) -> None:
    await async_client.post(BASE_URL, json=_holiday_payload(), headers=ADMIN_HEADERS)

    other_company = uuid.uuid4()
    other_headers = {**ADMIN_HEADERS, "X-Company-Id": str(other_company)}
    resp = await async_client.get(f"/companies/{other_company}/holidays", headers=other_headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 0


async def test_blank_name_rejected(async_client: AsyncClient) -> None:
    resp = await async_client.post(BASE_URL, json=_holiday_payload(name="   "), headers=ADMIN_HEADERS)
    assert resp.status_code == 422
