# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import UpdatedAtMixin, UUIDBase
from leave_engine.models.enums import AccrualBasis, RoundingMode


class CompanyLeaveSettings(UUIDBase, UpdatedAtMixin, table=True):
    """Per-company leave policy. One row per company."""

    __tablename__ = "leave_settings"
    __table_args__ = (sa.UniqueConstraint("company_id", name="uq_leave_settings_company"),)

    company_id: uuid.UUID = Field(index=True)

    # Calendar
    fiscal_year_start_month: int = 1
    saturday_half_day: bool = True
    sunday_off: bool = True

    # Accrual
    accrual_basis: str = Field(default=AccrualBasis.ANNIVERSARY, max_length=20)
    accrual_divisor: int = 365
    annual_leave_base_days: int = 16
    increment_period_years: int = 2
    increment_amount: int = 1
    max_annual_leave_cap: int | None = None

    # Approval
    require_ceo_approval_for_managers: bool = True

    # Encashment
    enable_encashment: bool = False
    encashment_salary_divisor: int = 30
    max_encashment_days: int | None = None
    encashment_rounding: str = Field(default=RoundingMode.ROUND, max_length=10)
