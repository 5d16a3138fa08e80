# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, Field, computed_field


class CreateHolidayRequest(BaseModel):
    """A holiday on the company calendar.

    Recurring holidays repeat every year on the same month and day. A
    recurring 29 February only falls in leap years.
    """

    date: date
    name: str = Field(min_length=1, max_length=255, pattern=r"\S")
    is_recurring: bool = False


class HolidayResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    date: date
    name: str
    is_recurring: bool

    @computed_field  # type: ignore[prop-decorator]
    @property
    def weekday(self) -> str:
        return self.date.strftime("%A")


class HolidayListResponse(BaseModel):
    items: list[HolidayResponse]
    total: int
