# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from leave_engine.models.enums import CashOutStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitCashOutPayload(BaseModel):
    """Request body for converting unused annual leave into pay."""

    employee_id: uuid.UUID
    days: Decimal = Field(gt=0, max_digits=6, decimal_places=2)


class RejectCashOutPayload(BaseModel):
    """Request body for rejecting a cash-out request."""

    reason: str = Field(min_length=1, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CashOutQuoteResponse(BaseModel):
    """Read-only valuation of an employee's cashable annual leave."""

    employee_id: uuid.UUID
    as_of: date
    fiscal_year: int
    accrued_days: Decimal
    used_days: Decimal
    pending_days: Decimal
    remaining_days: Decimal
    eligible_days: Decimal
    monthly_salary: Decimal
    salary_divisor: int
    daily_rate: Decimal
    cash_value: Decimal
    is_eligible: bool
    message: str


class CashOutResponse(BaseModel):
    """Response schema for a cash-out request."""

    id: uuid.UUID
    company_id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    fiscal_year: int
    days_cashed_out: Decimal
    cash_value: Decimal
    monthly_salary: Decimal
    salary_divisor: int
    status: CashOutStatus
    decided_by: uuid.UUID | None
    decided_at: datetime | None
    rejection_reason: str | None
    created_at: datetime


class CashOutListResponse(BaseModel):
    """Paginated list of cash-out requests."""

    items: list[CashOutResponse]
    total: int
