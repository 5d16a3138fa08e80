# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from leave_engine.models.enums import ApplicationAction, ApplicationStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitApplicationPayload(BaseModel):
    """Request body for applying for leave."""

    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)
    attachment_url: str | None = Field(default=None, max_length=2048)


class TransitionPayload(BaseModel):
    """Request body for approve, reject and cancel actions."""

    action: ApplicationAction
    comments: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ApprovalLogResponse(BaseModel):
    """One recorded action on an application."""

    id: uuid.UUID
    actor_id: uuid.UUID
    approver_role: str
    action: ApplicationAction
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    comments: str | None
    action_at: datetime


class ApplicationResponse(BaseModel):
    """Response schema for a single leave application."""

    id: uuid.UUID
    company_id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    fiscal_year: int
    start_date: date
    end_date: date
    return_date: date
    requested_days: Decimal
    reason: str | None
    attachment_url: str | None
    status: ApplicationStatus
    created_at: datetime
    approval_log: list[ApprovalLogResponse] = Field(default_factory=list)


class ApplicationListResponse(BaseModel):
    """Paginated list of leave applications."""

    items: list[ApplicationResponse]
    total: int
