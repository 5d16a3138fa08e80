# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase

_ZERO = Decimal("0")


class LeaveBalance(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Running leave totals for one (employee, leave type, fiscal year).

    total_entitlement is what policy grants and is only raised by accrual.
    HR adjustments and carry-over live in their own counters so a later
    accrual top-up never overwrites them. remaining_days is derived and
    never persisted.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "leave_type_id", "fiscal_year", name="uq_balance_employee_type_year"),
        sa.Index("ix_balance_company_employee", "company_id", "employee_id"),
    )

    company_id: uuid.UUID
    employee_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    fiscal_year: int = Field(index=True)
    total_entitlement: Decimal = Field(default=_ZERO, max_digits=6, decimal_places=2)
    used_days: Decimal = Field(default=_ZERO, max_digits=6, decimal_places=2, sa_column_kwargs={"server_default": "0"})
    pending_days: Decimal = Field(
        default=_ZERO, max_digits=6, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
    adjustment_days: Decimal = Field(
        default=_ZERO, max_digits=6, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
    carried_in_days: Decimal = Field(
        default=_ZERO, max_digits=6, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
    carried_out_days: Decimal = Field(
        default=_ZERO, max_digits=6, decimal_places=2, sa_column_kwargs={"server_default": "0"}
    )
    expiry_date: date | None = None
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})

    @property
    def effective_entitlement(self) -> Decimal:
        """Policy entitlement plus manual adjustments and carry-over in, minus carry-over out."""
        return (
            Decimal(self.total_entitlement)
            + Decimal(self.adjustment_days)
            + Decimal(self.carried_in_days)
            - Decimal(self.carried_out_days)
        )

    @property
    def remaining_days(self) -> Decimal:
        """Spendable days: effective entitlement minus used minus pending, floored at zero."""
        return max(_ZERO, self.effective_entitlement - Decimal(self.used_days) - Decimal(self.pending_days))
