# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import TimestampMixin, UUIDBase
from leave_engine.models.enums import CashOutStatus


class LeaveCashOut(UUIDBase, TimestampMixin, table=True):
    """A request to convert unused leave days into a payout."""

    __tablename__ = "leave_cash_out"
    __table_args__ = (
        sa.Index("ix_cash_out_company_status", "company_id", "status"),
        # At most one PENDING request per employee and fiscal year.
        sa.Index(
            "uq_cash_out_one_pending",
            "company_id",
            "employee_id",
            "fiscal_year",
            unique=True,
            postgresql_where=sa.text("status = 'PENDING'"),
            sqlite_where=sa.text("status = 'PENDING'"),
        ),
    )

    company_id: uuid.UUID = Field(index=True)
    employee_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    fiscal_year: int
    days_cashed_out: Decimal = Field(max_digits=6, decimal_places=2)
    cash_value: Decimal = Field(max_digits=12, decimal_places=2)
    monthly_salary: Decimal = Field(max_digits=12, decimal_places=2)
    salary_divisor: int
    status: str = Field(default=CashOutStatus.PENDING, max_length=20, sa_column_kwargs={"server_default": "PENDING"})
    decided_by: uuid.UUID | None = None
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejection_reason: str | None = None
