# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import TimestampMixin, UUIDBase
from leave_engine.models.enums import ApplicableGender

ANNUAL_LEAVE_CODE = "ANNUAL"
UNPAID_LEAVE_CODE = "UNPAID"


class LeaveType(UUIDBase, TimestampMixin, table=True):
    """A company's leave category (annual, sick, maternity, ...)."""

    __tablename__ = "leave_type"
    __table_args__ = (sa.UniqueConstraint("company_id", "code", name="uq_leave_type_company_code"),)

    company_id: uuid.UUID = Field(index=True)
    code: str = Field(max_length=20)
    name: str = Field(max_length=50)
    default_allowance_days: int = 0
    incremental_days_per_year: int | None = None
    incremental_period_years: int | None = None
    max_accrual_limit: int | None = None
    applicable_gender: str = Field(default=ApplicableGender.ALL, max_length=10)
    is_carry_over_allowed: bool = False
    carry_over_expiry_months: int | None = None
    requires_attachment: bool = False
    is_paid: bool = True
    is_calendar_days: bool = False
