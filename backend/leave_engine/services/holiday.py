from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import extract, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.exceptions import DuplicateRequest, NotFound
from leave_engine.models.enums import AuditAction, AuditEntityType
from leave_engine.models.holiday import PublicHoliday
from leave_engine.schemas.holiday import HolidayListResponse, HolidayResponse
from leave_engine.services.audit import model_to_audit_dict, write_audit_log
from leave_engine.services.calendar import holiday_occurrence

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.holiday import CreateHolidayRequest


def _build_holiday_response(holiday: PublicHoliday, on: date | None = None) -> HolidayResponse:
    return HolidayResponse(
        id=holiday.id,
        company_id=holiday.company_id,
        date=on or holiday.holiday_date,
        name=holiday.name,
        is_recurring=holiday.is_recurring,
    )


async def create_holiday(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateHolidayRequest,
) -> HolidayResponse:
    """Create a public holiday. Recurring holidays repeat on the same month/day."""
    holiday = PublicHoliday(
        company_id=auth.company_id,
        holiday_date=payload.date,
        name=payload.name,
        is_recurring=payload.is_recurring,
    )
    session.add(holiday)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateRequest("Holiday already exists for this date") from None

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.HOLIDAY,
        entity_id=holiday.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(holiday),
    )

    await session.commit()
    await session.refresh(holiday)
    return _build_holiday_response(holiday)


async def list_holidays(
    session: AsyncSession,
    company_id: uuid.UUID,
    year: int | None = None,
    offset: int = 0,
    limit: int = 50,
) -> HolidayListResponse:
    """List holidays.

    With a year, recurring holidays stored under other years are listed on
    their date in that year, and the list is ordered by those dates.
    """
    base_filter = [col(PublicHoliday.company_id) == company_id]

    if year is not None:
        base_filter.append(
            or_(
                extract("year", col(PublicHoliday.holiday_date)) == year,
                col(PublicHoliday.is_recurring).is_(True),
            )
        )
        result = await session.execute(select(PublicHoliday).where(*base_filter))
        occurrences = []
        for holiday in result.scalars().all():
            on = holiday_occurrence(holiday.holiday_date, is_recurring=holiday.is_recurring, year=year)
            if on is not None:
                occurrences.append((on, holiday))
        occurrences.sort(key=lambda pair: (pair[0], pair[1].name))
        return HolidayListResponse(
            items=[_build_holiday_response(h, on) for on, h in occurrences[offset : offset + limit]],
            total=len(occurrences),
        )

    count_result = await session.execute(select(func.count()).select_from(PublicHoliday).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(PublicHoliday)
        .where(*base_filter)
        .order_by(col(PublicHoliday.holiday_date))
        .offset(offset)
        .limit(limit)
    )
    holidays = list(result.scalars().all())

    return HolidayListResponse(
        items=[_build_holiday_response(h) for h in holidays],
        total=total,
    )


async def get_holiday(
    session: AsyncSession,
    company_id: uuid.UUID,
    holiday_id: uuid.UUID,
) -> PublicHoliday:
    result = await session.execute(
        select(PublicHoliday).where(
            col(PublicHoliday.id) == holiday_id,
            col(PublicHoliday.company_id) == company_id,
        )
    )
    holiday = result.scalar_one_or_none()
    if holiday is None:
        raise NotFound("Holiday not found")
    return holiday


async def delete_holiday(
    session: AsyncSession,
    auth: AuthContext,
    holiday_id: uuid.UUID,
) -> None:
    holiday = await get_holiday(session, auth.company_id, holiday_id)

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.HOLIDAY,
        entity_id=holiday.id,
        action=AuditAction.DELETE,
        before_json=model_to_audit_dict(holiday),
    )

    await session.delete(holiday)
    await session.commit()
