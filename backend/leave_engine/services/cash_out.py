# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.exceptions import (
    CapExceeded,
    ConfigurationMissing,
    DuplicateRequest,
    Forbidden,
    InsufficientBalance,
    InvalidTransition,
    NotEligible,
    NotFound,
)
from leave_engine.models.base import now_utc
from leave_engine.models.cash_out import LeaveCashOut
from leave_engine.models.enums import AuditAction, AuditEntityType, CashOutStatus, RoundingMode
from leave_engine.models.leave_type import ANNUAL_LEAVE_CODE
from leave_engine.schemas.auth import Role
from leave_engine.schemas.cash_out import CashOutListResponse, CashOutQuoteResponse, CashOutResponse
from leave_engine.services.accrual import accrue_with_rule, resolve_accrual_rule
from leave_engine.services.audit import model_to_audit_dict, write_audit_log
from leave_engine.services.balance import allocate, commit, get_balance, release, reserve
from leave_engine.services.employee import get_employee_or_404
from leave_engine.services.leave_type import get_leave_type_by_code
from leave_engine.services.period import fiscal_year_for
from leave_engine.services.settings import require_leave_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.models.leave_type import LeaveType
    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.cash_out import RejectCashOutPayload, SubmitCashOutPayload
    from leave_engine.schemas.settings import LeaveSettings
    from leave_engine.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_ZERO = Decimal("0")

_ROUNDING = {
    RoundingMode.ROUND: ROUND_HALF_UP,
    RoundingMode.FLOOR: ROUND_FLOOR,
    RoundingMode.CEIL: ROUND_CEILING,
}

_DECIDER_ROLES = (Role.HR, Role.CEO)


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CashValue:
    """Money value of a number of leave days."""

    eligible_days: Decimal
    daily_rate: Decimal
    raw_value: Decimal
    rounded_value: Decimal


def calculate_cash_value(
    remaining_days: Decimal,
    monthly_salary: Decimal,
    salary_divisor: int = 30,
    max_days: int | Decimal | None = None,
    rounding: RoundingMode = RoundingMode.ROUND,
) -> CashValue:
    """(monthly_salary / salary_divisor) x eligible days, rounded to the cent.

    eligible days are the remaining days, limited by max_days when it is set
    and non-zero. daily_rate is reported to the cent; raw_value uses the
    exact rate.

    >>> calculate_cash_value(Decimal("10"), Decimal("9000"), 30, None, RoundingMode.FLOOR).rounded_value
    Decimal('3000.00')
    """
    if salary_divisor <= 0:
        msg = "salary_divisor must be positive"
        raise ValueError(msg)
    eligible = min(remaining_days, Decimal(max_days)) if max_days else remaining_days
    rate = Decimal(monthly_salary) / Decimal(salary_divisor)
    raw = rate * eligible
    return CashValue(
        eligible_days=eligible,
        daily_rate=rate.quantize(_CENT, rounding=ROUND_HALF_UP),
        raw_value=raw,
        rounded_value=raw.quantize(_CENT, rounding=_ROUNDING[RoundingMode(rounding)]),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _AnnualPosition:
    fiscal_year: int
    accrued_days: Decimal
    used_days: Decimal
    pending_days: Decimal
    extra_days: Decimal = _ZERO

    @property
    def remaining_days(self) -> Decimal:
        return max(_ZERO, self.accrued_days + self.extra_days - self.used_days - self.pending_days)


def _build_cash_out_response(request: LeaveCashOut) -> CashOutResponse:
    return CashOutResponse(
        id=request.id,
        company_id=request.company_id,
        employee_id=request.employee_id,
        leave_type_id=request.leave_type_id,
        fiscal_year=request.fiscal_year,
        days_cashed_out=Decimal(request.days_cashed_out),
        cash_value=Decimal(request.cash_value),
        monthly_salary=Decimal(request.monthly_salary),
        salary_divisor=request.salary_divisor,
        status=CashOutStatus(request.status),
        decided_by=request.decided_by,
        decided_at=request.decided_at,
        rejection_reason=request.rejection_reason,
        created_at=request.created_at,
    )


async def _require_annual_leave_type(session: AsyncSession, company_id: uuid.UUID) -> LeaveType:
    leave_type = await get_leave_type_by_code(session, company_id, ANNUAL_LEAVE_CODE)
    if leave_type is None:
        raise ConfigurationMissing("Annual leave type is not configured")
    return leave_type


async def _annual_position(
    session: AsyncSession,
    settings: LeaveSettings,
    employee: EmployeeInfo,
    leave_type: LeaveType,
    as_of: date,
) -> _AnnualPosition:
    """Accrued annual leave as of a date against the booked used and pending days.

    extra_days nets manual adjustments and carried days on the balance row.
    """
    fiscal_year = fiscal_year_for(settings.fiscal_year_start_month, as_of)
    accrued = accrue_with_rule(resolve_accrual_rule(settings, leave_type), employee.join_date, as_of)
    balance = await get_balance(session, employee.id, leave_type.id, fiscal_year)
    return _AnnualPosition(
        fiscal_year=fiscal_year,
        accrued_days=accrued.accrued_days,
        used_days=Decimal(balance.used_days) if balance else _ZERO,
        pending_days=Decimal(balance.pending_days) if balance else _ZERO,
        extra_days=balance.effective_entitlement - Decimal(balance.total_entitlement) if balance else _ZERO,
    )


async def _get_cash_out_or_404(
    session: AsyncSession,
    company_id: uuid.UUID,
    cash_out_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveCashOut:
    query = select(LeaveCashOut).where(
        col(LeaveCashOut.id) == cash_out_id,
        col(LeaveCashOut.company_id) == company_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("Cash-out request not found")
    return request


async def _has_pending_cash_out(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    fiscal_year: int,
) -> bool:
    result = await session.execute(
        select(func.count())
        .select_from(LeaveCashOut)
        .where(
            col(LeaveCashOut.company_id) == company_id,
            col(LeaveCashOut.employee_id) == employee_id,
            col(LeaveCashOut.fiscal_year) == fiscal_year,
            col(LeaveCashOut.status) == CashOutStatus.PENDING.value,
        )
    )
    return result.scalar_one() > 0


def _ensure_decider(auth: AuthContext) -> None:
    if not auth.has_role(*_DECIDER_ROLES):
        raise Forbidden("Only HR, CEO or admin users can decide cash-out requests")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def quote_cash_out(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    as_of: date,
) -> CashOutQuoteResponse:
    """Value the employee's remaining annual leave without writing anything."""
    settings = await require_leave_settings(session, company_id)
    employee = await get_employee_or_404(company_id, employee_id)
    leave_type = await _require_annual_leave_type(session, company_id)
    position = await _annual_position(session, settings, employee, leave_type, as_of)

    value = calculate_cash_value(
        position.remaining_days,
        employee.monthly_salary,
        settings.encashment_salary_divisor,
        settings.max_encashment_days,
        settings.encashment_rounding,
    )

    if not settings.enable_encashment:
        message = "Leave encashment is not enabled for this company"
    elif employee.monthly_salary <= 0:
        message = "No monthly salary on record for this employee"
    elif position.remaining_days <= 0:
        message = "No accrued leave is available for cash-out"
    else:
        message = f"{value.eligible_days} day(s) can be cashed out"

    return CashOutQuoteResponse(
        employee_id=employee_id,
        as_of=as_of,
        fiscal_year=position.fiscal_year,
        accrued_days=position.accrued_days,
        used_days=position.used_days,
        pending_days=position.pending_days,
        remaining_days=position.remaining_days,
        eligible_days=value.eligible_days,
        monthly_salary=employee.monthly_salary,
        salary_divisor=settings.encashment_salary_divisor,
        daily_rate=value.daily_rate,
        cash_value=value.rounded_value,
        is_eligible=settings.enable_encashment and employee.monthly_salary > 0 and position.remaining_days > 0,
        message=message,
    )


async def submit_cash_out_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitCashOutPayload,
    as_of: date,
) -> CashOutResponse:
    """Request payment for unused annual leave.

    Flow:
    1. Encashment enabled for the company
    2. Days within max_encashment_days
    3. Employee has a positive monthly salary
    4. Annual leave is configured and has remaining days
    5. Days within the remaining days
    6. No other pending request this fiscal year
    7. Hold the days on the annual balance so leave requests cannot spend them
    8. Store the request with salary and divisor snapshots
    9. Audit and commit
    """
    if payload.employee_id != auth.user_id and not auth.has_role(*_DECIDER_ROLES):
        raise Forbidden("Employees can only request cash-out for themselves")

    settings = await require_leave_settings(session, auth.company_id)
    employee = await get_employee_or_404(auth.company_id, payload.employee_id)

    # 1-3. Policy and salary.
    if not settings.enable_encashment:
        raise NotEligible("Leave encashment is not enabled for this company")
    if settings.max_encashment_days and payload.days > settings.max_encashment_days:
        raise CapExceeded(f"Cannot cash out more than {settings.max_encashment_days} days")
    if employee.monthly_salary <= 0:
        raise NotEligible("No monthly salary on record for this employee")

    # 4-5. Remaining annual leave.
    leave_type = await _require_annual_leave_type(session, auth.company_id)
    position = await _annual_position(session, settings, employee, leave_type, as_of)
    if position.remaining_days <= 0:
        raise NotEligible("No accrued leave is available for cash-out")
    if payload.days > position.remaining_days:
        raise InsufficientBalance(
            f"Cannot cash out more days than available. Available: {position.remaining_days}"
        )

    # 6. One pending request per fiscal year.
    if await _has_pending_cash_out(session, auth.company_id, employee.id, position.fiscal_year):
        raise DuplicateRequest("A pending cash-out request already exists for this fiscal year")

    # 7. Hold the days.
    balance = await allocate(session, settings, employee, leave_type, position.fiscal_year, as_of)
    reserve(balance, payload.days)

    # 8. Store.
    value = calculate_cash_value(
        payload.days,
        employee.monthly_salary,
        settings.encashment_salary_divisor,
        None,
        settings.encashment_rounding,
    )
    request = LeaveCashOut(
        company_id=auth.company_id,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        fiscal_year=position.fiscal_year,
        days_cashed_out=payload.days,
        cash_value=value.rounded_value,
        monthly_salary=employee.monthly_salary,
        salary_divisor=settings.encashment_salary_divisor,
        status=CashOutStatus.PENDING.value,
    )
    session.add(request)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateRequest("A pending cash-out request already exists for this fiscal year") from None

    # 9. Audit and commit.
    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.CASH_OUT,
        entity_id=request.id,
        action=AuditAction.SUBMIT,
        after_json=model_to_audit_dict(request),
    )

    await session.commit()
    await session.refresh(request)
    logger.info(
        "Cash-out %s submitted: employee %s, %s day(s), value %s",
        request.id,
        employee.id,
        payload.days,
        value.rounded_value,
    )
    return _build_cash_out_response(request)


async def approve_cash_out_request(
    session: AsyncSession,
    auth: AuthContext,
    cash_out_id: uuid.UUID,
    as_of: date,
) -> CashOutResponse:
    """Approve a pending request and turn its held days into used annual leave."""
    _ensure_decider(auth)
    request = await _get_cash_out_or_404(session, auth.company_id, cash_out_id, for_update=True)
    if request.status != CashOutStatus.PENDING.value:
        raise InvalidTransition(f"Cash-out request is already {request.status.lower()}")

    settings = await require_leave_settings(session, auth.company_id)
    employee = await get_employee_or_404(auth.company_id, request.employee_id)
    leave_type = await _require_annual_leave_type(session, auth.company_id)

    before_dict = model_to_audit_dict(request)
    balance = await allocate(session, settings, employee, leave_type, request.fiscal_year, as_of)
    commit(balance, Decimal(request.days_cashed_out))

    request.status = CashOutStatus.APPROVED.value
    request.decided_by = auth.user_id
    request.decided_at = now_utc()
    await session.flush()

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.CASH_OUT,
        entity_id=request.id,
        action=AuditAction.APPROVE,
        before_json=before_dict,
        after_json=model_to_audit_dict(request),
    )

    await session.commit()
    await session.refresh(request)
    logger.info("Cash-out %s approved by %s", request.id, auth.user_id)
    return _build_cash_out_response(request)


async def reject_cash_out_request(
    session: AsyncSession,
    auth: AuthContext,
    cash_out_id: uuid.UUID,
    payload: RejectCashOutPayload,
) -> CashOutResponse:
    """Reject a pending request and give its held days back."""
    _ensure_decider(auth)
    request = await _get_cash_out_or_404(session, auth.company_id, cash_out_id, for_update=True)
    if request.status != CashOutStatus.PENDING.value:
        raise InvalidTransition(f"Cash-out request is already {request.status.lower()}")

    before_dict = model_to_audit_dict(request)
    balance = await get_balance(
        session, request.employee_id, request.leave_type_id, request.fiscal_year, for_update=True
    )
    if balance is not None:
        release(balance, Decimal(request.days_cashed_out))

    request.status = CashOutStatus.REJECTED.value
    request.decided_by = auth.user_id
    request.decided_at = now_utc()
    request.rejection_reason = payload.reason
    await session.flush()

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.CASH_OUT,
        entity_id=request.id,
        action=AuditAction.REJECT,
        before_json=before_dict,
        after_json=model_to_audit_dict(request),
    )

    await session.commit()
    await session.refresh(request)
    logger.info("Cash-out %s rejected by %s", request.id, auth.user_id)
    return _build_cash_out_response(request)


async def list_cash_out_requests(
    session: AsyncSession,
    company_id: uuid.UUID,
    status_filter: CashOutStatus | None = None,
    employee_id: uuid.UUID | None = None,
    fiscal_year: int | None = None,
    offset: int = 0,
    limit: int = 50,
) -> CashOutListResponse:
    """List cash-out requests, newest first."""
    base_filters = [col(LeaveCashOut.company_id) == company_id]

    if status_filter is not None:
        base_filters.append(col(LeaveCashOut.status) == status_filter.value)
    if employee_id is not None:
        base_filters.append(col(LeaveCashOut.employee_id) == employee_id)
    if fiscal_year is not None:
        base_filters.append(col(LeaveCashOut.fiscal_year) == fiscal_year)

    count_result = await session.execute(select(func.count()).select_from(LeaveCashOut).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveCashOut)
        .where(*base_filters)
        .order_by(col(LeaveCashOut.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    return CashOutListResponse(
        items=[_build_cash_out_response(r) for r in requests],
        total=total,
    )
