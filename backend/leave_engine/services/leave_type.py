# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.exceptions import ConfigurationMissing, DuplicateRequest
from leave_engine.models.enums import ApplicableGender, AuditAction, AuditEntityType
from leave_engine.models.leave_type import LeaveType
from leave_engine.schemas.leave_type import LeaveTypeListResponse, LeaveTypeResponse
from leave_engine.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.leave_type import CreateLeaveTypeRequest


def _build_leave_type_response(leave_type: LeaveType) -> LeaveTypeResponse:
    return LeaveTypeResponse(
        id=leave_type.id,
        company_id=leave_type.company_id,
        code=leave_type.code,
        name=leave_type.name,
        default_allowance_days=leave_type.default_allowance_days,
        incremental_days_per_year=leave_type.incremental_days_per_year,
        incremental_period_years=leave_type.incremental_period_years,
        max_accrual_limit=leave_type.max_accrual_limit,
        applicable_gender=ApplicableGender(leave_type.applicable_gender),
        is_carry_over_allowed=leave_type.is_carry_over_allowed,
        carry_over_expiry_months=leave_type.carry_over_expiry_months,
        requires_attachment=leave_type.requires_attachment,
        is_paid=leave_type.is_paid,
        is_calendar_days=leave_type.is_calendar_days,
        created_at=leave_type.created_at,
    )


async def get_leave_type_by_code(session: AsyncSession, company_id: uuid.UUID, code: str) -> LeaveType | None:
    result = await session.execute(
        select(LeaveType).where(
            col(LeaveType.company_id) == company_id,
            col(LeaveType.code) == code.upper(),
        )
    )
    return result.scalar_one_or_none()


async def get_leave_type(session: AsyncSession, company_id: uuid.UUID, leave_type_id: uuid.UUID) -> LeaveType:
    result = await session.execute(
        select(LeaveType).where(
            col(LeaveType.id) == leave_type_id,
            col(LeaveType.company_id) == company_id,
        )
    )
    leave_type = result.scalar_one_or_none()
    if leave_type is None:
        raise ConfigurationMissing("Leave type is not configured for this company")
    return leave_type


async def fetch_leave_types(session: AsyncSession, company_id: uuid.UUID) -> list[LeaveType]:
    result = await session.execute(
        select(LeaveType).where(col(LeaveType.company_id) == company_id).order_by(col(LeaveType.name))
    )
    return list(result.scalars().all())


async def create_leave_type(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateLeaveTypeRequest,
) -> LeaveTypeResponse:
    """Add a leave type to the company catalog. Codes are unique per company."""
    leave_type = LeaveType(company_id=auth.company_id, **payload.model_dump())
    session.add(leave_type)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateRequest(f"Leave type {payload.code} already exists") from None

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_TYPE,
        entity_id=leave_type.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(leave_type),
    )

    await session.commit()
    await session.refresh(leave_type)
    return _build_leave_type_response(leave_type)


async def list_leave_types(session: AsyncSession, company_id: uuid.UUID) -> LeaveTypeListResponse:
    leave_types = await fetch_leave_types(session, company_id)
    return LeaveTypeListResponse(
        items=[_build_leave_type_response(lt) for lt in leave_types],
        total=len(leave_types),
    )
