# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from leave_engine.exceptions import NotFound
from leave_engine.models.enums import ApplicableGender

MANAGER_JOB_LEVELS = frozenset({"Manager", "Director", "Executive"})

_GENDER_ALIASES = {
    "M": ApplicableGender.MALE,
    "MALE": ApplicableGender.MALE,
    "F": ApplicableGender.FEMALE,
    "FEMALE": ApplicableGender.FEMALE,
}


def normalize_gender(value: str | None) -> str | None:
    """Map free-form gender values onto Male/Female; anything else passes through stripped."""
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    return _GENDER_ALIASES.get(cleaned.upper(), cleaned)


class EmployeeInfo(BaseModel):
    """Employee snapshot from the HR records service."""

    id: uuid.UUID
    company_id: uuid.UUID
    full_name: str
    email: str | None = None
    gender: str | None = None
    job_level: str | None = None
    manager_id: uuid.UUID | None = None
    employment_start_date: date | None = None
    created_on: date
    monthly_salary: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def join_date(self) -> date:
        """Start of the active employment, or the record's creation date when unknown."""
        return self.employment_start_date or self.created_on

    @property
    def normalized_gender(self) -> str | None:
        return normalize_gender(self.gender)


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the HR records service."""

    async def get_employee(self, company_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee snapshot. Returns None if not found."""
        ...


class InMemoryEmployeeService:
    """In-memory implementation for development and tests."""

    def __init__(self) -> None:
        self._employees: dict[tuple[uuid.UUID, uuid.UUID], EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        self._employees[(employee.company_id, employee.id)] = employee

    async def get_employee(self, company_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        return self._employees.get((company_id, employee_id))


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """Return the process-wide employee service."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service


async def get_employee_or_404(company_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo:
    """Fetch an employee through the configured service or raise NotFound."""
    employee = await get_employee_service().get_employee(company_id, employee_id)
    if employee is None:
        raise NotFound("Employee not found")
    return employee
