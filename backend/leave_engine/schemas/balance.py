# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from leave_engine.models.enums import AdjustmentType


class BalanceResponse(BaseModel):
    """One leave balance row with its derived remaining days."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    leave_type_code: str
    leave_type_name: str
    fiscal_year: int
    total_entitlement: Decimal
    adjustment_days: Decimal
    carried_in_days: Decimal
    carried_out_days: Decimal
    effective_entitlement: Decimal
    used_days: Decimal
    pending_days: Decimal
    remaining_days: Decimal
    expiry_date: date | None
    is_expired: bool
    updated_at: datetime


class BalanceListResponse(BaseModel):
    """All balances of an employee for a fiscal year.

    available_days sums remaining_days over balances that have not expired.
    """

    employee_id: uuid.UUID
    fiscal_year: int
    items: list[BalanceResponse]
    total: int
    available_days: Decimal


class InitializeBalancesResponse(BaseModel):
    """Result of creating the missing balance rows for an employee."""

    fiscal_year: int
    created_count: int


class AdjustBalancePayload(BaseModel):
    adjustment_days: Decimal = Field(gt=0, max_digits=6, decimal_places=2)
    adjustment_type: AdjustmentType
    reason: str = Field(min_length=1, max_length=1000)


class CarryOverPayload(BaseModel):
    """Roll unused days of one leave type from from_year into the following fiscal year."""

    leave_type_id: uuid.UUID
    from_year: int = Field(ge=2000, le=2100)


class CarryOverResponse(BaseModel):
    leave_type_id: uuid.UUID
    from_year: int
    to_year: int
    carried_count: int
    carried_days: Decimal


class ExpiringBalanceListResponse(BaseModel):
    """Unexpired balances with remaining days whose expiry falls within the window."""

    as_of: date
    within_days: int
    items: list[BalanceResponse]
    total: int
