# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from leave_engine.models.enums import AccrualBasis


class AccrualResponse(BaseModel):
    """Gradual accrual of one leave type for an employee as of a date."""

    employee_id: uuid.UUID
    leave_type_code: str
    as_of: date
    join_date: date
    accrual_basis: AccrualBasis
    years_of_service: Decimal
    period_start: date
    days_in_period: int
    annual_entitlement: Decimal
    tenure_bonus_days: Decimal
    daily_rate: Decimal
    accrued_days: Decimal
