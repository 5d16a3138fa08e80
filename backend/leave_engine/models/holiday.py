# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import UUIDBase


class PublicHoliday(UUIDBase, table=True):
    """A non-working day on a company calendar.

    Recurring rows match on month and day in every year; `holiday_date`
    keeps the first year the holiday was entered for.
    """

    __tablename__ = "public_holiday"
    __table_args__ = (sa.UniqueConstraint("company_id", "holiday_date", name="uq_holiday_company_date"),)

    company_id: uuid.UUID = Field(index=True)
    holiday_date: datetime.date
    name: str = Field(max_length=255)
    is_recurring: bool = Field(default=False)
