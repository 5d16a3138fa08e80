# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from leave_engine.models.enums import RecallStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateRecallPayload(BaseModel):
    """Ask an employee on approved leave to come back on recall_date."""

    application_id: uuid.UUID
    reason: str = Field(min_length=1, max_length=1000)
    recall_date: date


class RespondRecallPayload(BaseModel):
    """The employee's answer. actual_return_date defaults to the requested recall date."""

    response: RecallStatus
    employee_response: str | None = Field(default=None, max_length=1000)
    actual_return_date: date | None = None

    @field_validator("response")
    @classmethod
    def _accept_or_decline(cls, value: RecallStatus) -> RecallStatus:
        if value not in (RecallStatus.ACCEPTED, RecallStatus.DECLINED):
            msg = "response must be ACCEPTED or DECLINED"
            raise ValueError(msg)
        return value


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RecallResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    application_id: uuid.UUID
    employee_id: uuid.UUID
    recalled_by: uuid.UUID
    reason: str
    recall_date: date
    status: RecallStatus
    employee_response: str | None
    responded_at: datetime | None
    actual_return_date: date | None
    days_restored: Decimal
    created_at: datetime


class RecallListResponse(BaseModel):
    items: list[RecallResponse]
    total: int
