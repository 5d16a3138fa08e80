# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from leave_engine.models.enums import ApplicableGender


class CreateLeaveTypeRequest(BaseModel):
    """Request body for adding a leave type to the company catalog."""

    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=50)
    default_allowance_days: int = Field(default=0, ge=0)
    incremental_days_per_year: int | None = Field(default=None, ge=0)
    incremental_period_years: int | None = Field(default=None, gt=0)
    max_accrual_limit: int | None = Field(default=None, ge=0)
    applicable_gender: ApplicableGender = ApplicableGender.ALL
    is_carry_over_allowed: bool = False
    carry_over_expiry_months: int | None = Field(default=None, gt=0)
    requires_attachment: bool = False
    is_paid: bool = True
    is_calendar_days: bool = False

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class LeaveTypeResponse(BaseModel):
    """Response schema for a leave type."""

    id: uuid.UUID
    company_id: uuid.UUID
    code: str
    name: str
    default_allowance_days: int
    incremental_days_per_year: int | None
    incremental_period_years: int | None
    max_accrual_limit: int | None
    applicable_gender: ApplicableGender
    is_carry_over_allowed: bool
    carry_over_expiry_months: int | None
    requires_attachment: bool
    is_paid: bool
    is_calendar_days: bool
    created_at: datetime


class LeaveTypeListResponse(BaseModel):
    """All leave types of a company."""

    items: list[LeaveTypeResponse]
    total: int
