# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase, now_utc
from leave_engine.models.enums import ApplicationStatus


class LeaveApplication(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """An employee's leave application with multi-level approval state."""

    __tablename__ = "leave_application"
    __table_args__ = (
        sa.Index("ix_application_company_status", "company_id", "current_status"),
        sa.Index("ix_application_dates", "start_date", "end_date"),
    )

    company_id: uuid.UUID = Field(index=True)
    employee_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="RESTRICT"), nullable=False, index=True),
    )
    fiscal_year: int
    start_date: date
    end_date: date
    return_date: date
    requested_days: Decimal = Field(max_digits=6, decimal_places=2)
    reason: str | None = None
    attachment_url: str | None = None
    current_status: str = Field(
        default=ApplicationStatus.PENDING_SUPERVISOR,
        max_length=50,
        sa_column_kwargs={"server_default": "PENDING_SUPERVISOR"},
    )


class LeaveApprovalLog(UUIDBase, table=True):
    """One approve/reject/cancel action taken on an application."""

    __tablename__ = "leave_approval_log"

    application_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_application.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    actor_id: uuid.UUID = Field(index=True)
    approver_role: str = Field(max_length=50)
    action: str = Field(max_length=20)
    from_status: str = Field(max_length=50)
    to_status: str = Field(max_length=50)
    comments: str | None = None
    action_at: datetime = Field(
        default_factory=now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class UnpaidLeaveUsage(UUIDBase, table=True):
    """Number of approved unpaid leave applications per employee and fiscal year."""

    __tablename__ = "unpaid_leave_usage"
    __table_args__ = (
        sa.UniqueConstraint("company_id", "employee_id", "fiscal_year", name="uq_unpaid_usage_employee_year"),
    )

    company_id: uuid.UUID
    employee_id: uuid.UUID = Field(index=True)
    fiscal_year: int
    usage_count: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
