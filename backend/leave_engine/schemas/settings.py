# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from leave_engine.models.enums import AccrualBasis, RoundingMode

# ---------------------------------------------------------------------------
# Canonical settings value
# ---------------------------------------------------------------------------


class LeaveSettings(BaseModel):
    """Every company-level leave knob, fully populated.

    Services read settings only through this type, so defaults live here
    and nowhere else.
    """

    model_config = ConfigDict(from_attributes=True)

    fiscal_year_start_month: int = Field(default=1, ge=1, le=12)
    saturday_half_day: bool = True
    sunday_off: bool = True

    accrual_basis: AccrualBasis = AccrualBasis.ANNIVERSARY
    accrual_divisor: int = Field(default=365, gt=0)
    annual_leave_base_days: int = Field(default=16, ge=0)
    increment_period_years: int = Field(default=2, gt=0)
    increment_amount: int = Field(default=1, ge=0)
    max_annual_leave_cap: int | None = Field(default=None, ge=0)

    require_ceo_approval_for_managers: bool = True

    enable_encashment: bool = False
    encashment_salary_divisor: int = Field(default=30, gt=0)
    max_encashment_days: int | None = Field(default=None, ge=0)
    encashment_rounding: RoundingMode = RoundingMode.ROUND


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class UpdateLeaveSettingsRequest(BaseModel):
    """Partial update of company leave settings. Unset fields keep their value."""

    fiscal_year_start_month: int | None = Field(default=None, ge=1, le=12)
    saturday_half_day: bool | None = None
    sunday_off: bool | None = None
    accrual_basis: AccrualBasis | None = None
    accrual_divisor: int | None = Field(default=None, gt=0)
    annual_leave_base_days: int | None = Field(default=None, ge=0)
    increment_period_years: int | None = Field(default=None, gt=0)
    increment_amount: int | None = Field(default=None, ge=0)
    max_annual_leave_cap: int | None = Field(default=None, ge=0)
    require_ceo_approval_for_managers: bool | None = None
    enable_encashment: bool | None = None
    encashment_salary_divisor: int | None = Field(default=None, gt=0)
    max_encashment_days: int | None = Field(default=None, ge=0)
    encashment_rounding: RoundingMode | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveSettingsResponse(LeaveSettings):
    """Stored company leave settings."""

    id: uuid.UUID
    company_id: uuid.UUID
    updated_at: datetime
