# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import TimestampMixin, UUIDBase
from leave_engine.models.enums import RecallStatus


class LeaveRecall(UUIDBase, TimestampMixin, table=True):
    """A request for an employee on approved leave to return to work early."""

    __tablename__ = "leave_recall"
    __table_args__ = (
        sa.Index("ix_recall_company_status", "company_id", "status"),
        sa.Index(
            "uq_recall_one_pending",
            "application_id",
            unique=True,
            postgresql_where=sa.text("status = 'PENDING'"),
            sqlite_where=sa.text("status = 'PENDING'"),
        ),
    )

    company_id: uuid.UUID = Field(index=True)
    application_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_application.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    employee_id: uuid.UUID = Field(index=True)
    recalled_by: uuid.UUID
    reason: str
    recall_date: date
    status: str = Field(default=RecallStatus.PENDING, max_length=20, sa_column_kwargs={"server_default": "PENDING"})
    employee_response: str | None = None
    responded_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    actual_return_date: date | None = None
    days_restored: Decimal = Field(
        default=Decimal("0"), max_digits=6, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
