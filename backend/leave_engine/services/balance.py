# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.exceptions import (
    DuplicateRequest,
    Forbidden,
    InsufficientBalance,
    InvalidDateRange,
    NotEligible,
    NotFound,
)
from leave_engine.models.balance import LeaveBalance
from leave_engine.models.enums import AdjustmentType, ApplicableGender, AuditAction, AuditEntityType
from leave_engine.models.leave_type import ANNUAL_LEAVE_CODE, LeaveType
from leave_engine.schemas.auth import Role
from leave_engine.schemas.balance import (
    BalanceListResponse,
    BalanceResponse,
    CarryOverResponse,
    ExpiringBalanceListResponse,
    InitializeBalancesResponse,
)
from leave_engine.services.accrual import accrue_with_rule, resolve_accrual_rule
from leave_engine.services.audit import model_to_audit_dict, write_audit_log
from leave_engine.services.employee import get_employee_or_404, get_employee_service, normalize_gender
from leave_engine.services.entitlement import completed_years_of_service, flat_entitlement
from leave_engine.services.leave_type import fetch_leave_types, get_leave_type
from leave_engine.services.period import balance_expiry_date, fiscal_year_for
from leave_engine.services.settings import require_leave_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.balance import AdjustBalancePayload, CarryOverPayload
    from leave_engine.schemas.settings import LeaveSettings
    from leave_engine.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

# ---------------------------------------------------------------------------
# Pure ledger rules
# ---------------------------------------------------------------------------


def remaining(balance: LeaveBalance) -> Decimal:
    return balance.remaining_days


def is_gender_eligible(leave_type: LeaveType, gender: str | None) -> bool:
    """All-gender types always match; otherwise the normalized gender must equal the type's."""
    if leave_type.applicable_gender == ApplicableGender.ALL:
        return True
    return normalize_gender(gender) == leave_type.applicable_gender


def is_expired(balance: LeaveBalance, as_of: date) -> bool:
    """A balance stops counting on its expiry date."""
    return balance.expiry_date is not None and as_of >= balance.expiry_date


def reserve(balance: LeaveBalance, days: Decimal) -> None:
    """Hold days for a pending request."""
    available = remaining(balance)
    if days > available:
        msg = f"Insufficient leave balance: requested {days}, remaining {available}"
        raise InsufficientBalance(msg)
    balance.pending_days = Decimal(balance.pending_days) + days
    balance.version += 1


def commit(balance: LeaveBalance, days: Decimal) -> None:
    """Turn held days into used days."""
    balance.pending_days = max(_ZERO, Decimal(balance.pending_days) - days)
    balance.used_days = Decimal(balance.used_days) + days
    balance.version += 1


def release(balance: LeaveBalance, days: Decimal) -> None:
    """Give held days back."""
    balance.pending_days = max(_ZERO, Decimal(balance.pending_days) - days)
    balance.version += 1


def restore(balance: LeaveBalance, days: Decimal) -> None:
    """Hand used days back, e.g. the unused tail of a recalled leave."""
    balance.used_days = max(_ZERO, Decimal(balance.used_days) - days)
    balance.version += 1


def entitlement_for(
    settings: LeaveSettings,
    employee: EmployeeInfo,
    leave_type: LeaveType,
    as_of: date,
) -> Decimal:
    """Entitlement to book on a balance row as of a date.

    Annual leave books what has accrued so far; other types book their full
    yearly amount.
    """
    if leave_type.code == ANNUAL_LEAVE_CODE:
        rule = resolve_accrual_rule(settings, leave_type)
        return accrue_with_rule(rule, employee.join_date, as_of).accrued_days
    return flat_entitlement(
        leave_type.default_allowance_days,
        leave_type.incremental_days_per_year or 0,
        completed_years_of_service(employee.join_date, as_of),
        leave_type.max_accrual_limit,
        leave_type.incremental_period_years or 1,
    )


def _expiry_for(settings: LeaveSettings, leave_type: LeaveType, fiscal_year: int) -> date | None:
    if not leave_type.carry_over_expiry_months:
        return None
    return balance_expiry_date(fiscal_year, leave_type.carry_over_expiry_months, settings.fiscal_year_start_month)


def _fiscal_year_end(settings: LeaveSettings, fiscal_year: int) -> date:
    return date(fiscal_year + 1, settings.fiscal_year_start_month, 1) - timedelta(days=1)


def _top_up(balance: LeaveBalance, entitlement: Decimal) -> None:
    if entitlement > Decimal(balance.total_entitlement):
        balance.total_entitlement = entitlement
        balance.version += 1


def _new_balance(
    settings: LeaveSettings,
    employee: EmployeeInfo,
    leave_type: LeaveType,
    fiscal_year: int,
    as_of: date,
) -> LeaveBalance:
    return LeaveBalance(
        company_id=employee.company_id,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        fiscal_year=fiscal_year,
        total_entitlement=entitlement_for(settings, employee, leave_type, as_of),
        used_days=_ZERO,
        pending_days=_ZERO,
        expiry_date=_expiry_for(settings, leave_type, fiscal_year),
    )


def _ensure_balance_manager(auth: AuthContext) -> None:
    if not auth.has_role(Role.HR):
        raise Forbidden("Only HR or admin users can manage leave balances")


# ---------------------------------------------------------------------------
# Row access
# ---------------------------------------------------------------------------


async def get_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    fiscal_year: int,
    *,
    for_update: bool = False,
) -> LeaveBalance | None:
    """Fetch a balance row, optionally with a FOR UPDATE lock."""
    query = select(LeaveBalance).where(
        col(LeaveBalance.employee_id) == employee_id,
        col(LeaveBalance.leave_type_id) == leave_type_id,
        col(LeaveBalance.fiscal_year) == fiscal_year,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def allocate(
    session: AsyncSession,
    settings: LeaveSettings,
    employee: EmployeeInfo,
    leave_type: LeaveType,
    fiscal_year: int,
    as_of: date,
) -> LeaveBalance:
    """Get-or-create the locked balance row for (employee, leave type, fiscal year).

    An existing annual balance for the current fiscal year is topped up to
    what has accrued by as_of; entitlements never go down.
    """
    balance = await get_balance(session, employee.id, leave_type.id, fiscal_year, for_update=True)

    if balance is None:
        balance = _new_balance(settings, employee, leave_type, fiscal_year, as_of)
        session.add(balance)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            raise DuplicateRequest("Balance was created concurrently, retry the request") from None
        logger.info(
            "Allocated %s %s days to employee %s for fiscal year %s",
            balance.total_entitlement,
            leave_type.code,
            employee.id,
            fiscal_year,
        )
        return balance

    current_year = fiscal_year_for(settings.fiscal_year_start_month, as_of)
    if leave_type.code == ANNUAL_LEAVE_CODE and fiscal_year == current_year:
        _top_up(balance, entitlement_for(settings, employee, leave_type, as_of))
        await session.flush()

    return balance


async def _get_balance_by_id(
    session: AsyncSession,
    company_id: uuid.UUID,
    balance_id: uuid.UUID,
) -> LeaveBalance:
    result = await session.execute(
        select(LeaveBalance)
        .where(col(LeaveBalance.id) == balance_id, col(LeaveBalance.company_id) == company_id)
        .with_for_update()
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFound("Leave balance not found")
    return balance


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _build_balance_response(balance: LeaveBalance, leave_type: LeaveType, as_of: date) -> BalanceResponse:
    return BalanceResponse(
        id=balance.id,
        employee_id=balance.employee_id,
        leave_type_id=balance.leave_type_id,
        leave_type_code=leave_type.code,
        leave_type_name=leave_type.name,
        fiscal_year=balance.fiscal_year,
        total_entitlement=Decimal(balance.total_entitlement),
        adjustment_days=Decimal(balance.adjustment_days),
        carried_in_days=Decimal(balance.carried_in_days),
        carried_out_days=Decimal(balance.carried_out_days),
        effective_entitlement=balance.effective_entitlement,
        used_days=Decimal(balance.used_days),
        pending_days=Decimal(balance.pending_days),
        remaining_days=remaining(balance),
        expiry_date=balance.expiry_date,
        is_expired=is_expired(balance, as_of),
        updated_at=balance.updated_at,
    )


async def initialize_balances_for_employee(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    as_of: date,
    *,
    actor_id: uuid.UUID,
) -> InitializeBalancesResponse:
    """Create the missing balance rows of the current fiscal year.

    Flow:
    1. Load settings and the employee snapshot.
    2. Pick leave types the employee's gender qualifies for (all of them when gender is unknown).
    3. Skip types that already have a row for the fiscal year.
    4. Insert the rest, with entitlement and expiry date.
    5. Audit each row under the acting user and commit.
    """
    settings = await require_leave_settings(session, company_id)
    employee = await get_employee_or_404(company_id, employee_id)
    fiscal_year = fiscal_year_for(settings.fiscal_year_start_month, as_of)

    gender = employee.normalized_gender
    leave_types = [
        lt for lt in await fetch_leave_types(session, company_id) if gender is None or is_gender_eligible(lt, gender)
    ]

    existing_result = await session.execute(
        select(col(LeaveBalance.leave_type_id)).where(
            col(LeaveBalance.employee_id) == employee_id,
            col(LeaveBalance.fiscal_year) == fiscal_year,
        )
    )
    existing = set(existing_result.scalars().all())

    created = [
        _new_balance(settings, employee, lt, fiscal_year, as_of) for lt in leave_types if lt.id not in existing
    ]
    session.add_all(created)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateRequest("Balances were initialized concurrently, retry the request") from None

    for balance in created:
        await write_audit_log(
            session,
            company_id=company_id,
            actor_id=actor_id,
            entity_type=AuditEntityType.BALANCE,
            entity_id=balance.id,
            action=AuditAction.CREATE,
            after_json=model_to_audit_dict(balance),
        )

    await session.commit()
    logger.info(
        "Initialized %d balance(s) for employee %s, fiscal year %s",
        len(created),
        employee_id,
        fiscal_year,
    )
    return InitializeBalancesResponse(fiscal_year=fiscal_year, created_count=len(created))


async def get_employee_balances(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    as_of: date,
    fiscal_year: int | None = None,
) -> BalanceListResponse:
    """Balances of one fiscal year (the current one by default) with the available total."""
    settings = await require_leave_settings(session, company_id)
    if fiscal_year is None:
        fiscal_year = fiscal_year_for(settings.fiscal_year_start_month, as_of)

    result = await session.execute(
        select(LeaveBalance, LeaveType)
        .join(LeaveType, col(LeaveType.id) == col(LeaveBalance.leave_type_id))
        .where(
            col(LeaveBalance.company_id) == company_id,
            col(LeaveBalance.employee_id) == employee_id,
            col(LeaveBalance.fiscal_year) == fiscal_year,
        )
        .order_by(col(LeaveType.name))
    )
    items = [_build_balance_response(balance, leave_type, as_of) for balance, leave_type in result.all()]
    available = sum((item.remaining_days for item in items if not item.is_expired), _ZERO)

    return BalanceListResponse(
        employee_id=employee_id,
        fiscal_year=fiscal_year,
        items=items,
        total=len(items),
        available_days=available,
    )


async def adjust_balance(
    session: AsyncSession,
    auth: AuthContext,
    balance_id: uuid.UUID,
    payload: AdjustBalancePayload,
    as_of: date,
) -> BalanceResponse:
    """Add days to, or take days from, a balance by hand.

    A subtraction may not leave less entitlement than is already used or
    held for pending requests.
    """
    _ensure_balance_manager(auth)
    balance = await _get_balance_by_id(session, auth.company_id, balance_id)
    leave_type = await get_leave_type(session, auth.company_id, balance.leave_type_id)

    delta = payload.adjustment_days
    if payload.adjustment_type == AdjustmentType.SUBTRACT:
        delta = -delta
        committed = Decimal(balance.used_days) + Decimal(balance.pending_days)
        if balance.effective_entitlement + delta < committed:
            raise InsufficientBalance(
                f"Cannot reduce entitlement below used and pending days ({committed})"
            )

    before_dict = model_to_audit_dict(balance)
    balance.adjustment_days = Decimal(balance.adjustment_days) + delta
    balance.version += 1
    await session.flush()

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BALANCE,
        entity_id=balance.id,
        action=AuditAction.ADJUST,
        before_json=before_dict,
        after_json={**model_to_audit_dict(balance), "reason": payload.reason},
    )

    await session.commit()
    await session.refresh(balance)
    logger.info(
        "Balance %s adjusted by %s day(s) by %s: %s",
        balance.id,
        delta,
        auth.user_id,
        payload.reason,
    )
    return _build_balance_response(balance, leave_type, as_of)


async def carry_over_balances(
    session: AsyncSession,
    auth: AuthContext,
    payload: CarryOverPayload,
    as_of: date,
) -> CarryOverResponse:
    """Move the unused days of a finished fiscal year into the current one.

    Flow:
    1. The leave type must allow carry-over
    2. from_year must be the fiscal year just before the one containing as_of
    3. Lock every from_year balance of the type; annual rows are first topped up to year-end accrual
    4. Skip expired rows and rows with nothing left
    5. Book the remaining days as carried out of the old row and into the new one
    6. Audit both rows and commit

    Carried days leave the source row, so running it again carries nothing.
    """
    _ensure_balance_manager(auth)
    settings = await require_leave_settings(session, auth.company_id)
    leave_type = await get_leave_type(session, auth.company_id, payload.leave_type_id)

    # 1-2. Policy and period.
    if not leave_type.is_carry_over_allowed:
        raise NotEligible(f"Carry over is not allowed for {leave_type.name}")
    to_year = fiscal_year_for(settings.fiscal_year_start_month, as_of)
    if payload.from_year != to_year - 1:
        raise InvalidDateRange(f"Only fiscal year {to_year - 1} can be carried into the current fiscal year {to_year}")

    # 3. Source rows.
    result = await session.execute(
        select(LeaveBalance)
        .where(
            col(LeaveBalance.company_id) == auth.company_id,
            col(LeaveBalance.leave_type_id) == leave_type.id,
            col(LeaveBalance.fiscal_year) == payload.from_year,
        )
        .order_by(col(LeaveBalance.employee_id))
        .with_for_update()
    )
    sources = list(result.scalars().all())

    directory = get_employee_service()
    year_end = _fiscal_year_end(settings, payload.from_year)
    carried_count = 0
    carried_days = _ZERO

    for source in sources:
        # 4. Eligibility of the row.
        if is_expired(source, as_of):
            continue
        employee = await directory.get_employee(auth.company_id, source.employee_id)
        if employee is None:
            logger.warning("Carry-over skipped for employee %s: not in the employee directory", source.employee_id)
            continue
        if leave_type.code == ANNUAL_LEAVE_CODE:
            _top_up(source, entitlement_for(settings, employee, leave_type, year_end))
        carry = remaining(source)
        if carry <= 0:
            continue

        # 5. Move the days.
        source_before = model_to_audit_dict(source)
        target = await allocate(session, settings, employee, leave_type, to_year, as_of)
        target_before = model_to_audit_dict(target)
        source.carried_out_days = Decimal(source.carried_out_days) + carry
        source.version += 1
        target.carried_in_days = Decimal(target.carried_in_days) + carry
        target.version += 1
        await session.flush()

        # 6. Audit.
        for row, before in ((source, source_before), (target, target_before)):
            await write_audit_log(
                session,
                company_id=auth.company_id,
                actor_id=auth.user_id,
                entity_type=AuditEntityType.BALANCE,
                entity_id=row.id,
                action=AuditAction.CARRY_OVER,
                before_json=before,
                after_json=model_to_audit_dict(row),
            )

        carried_count += 1
        carried_days += carry

    await session.commit()
    logger.info(
        "Carried over %s %s day(s) for %d employee(s) from %s to %s",
        carried_days,
        leave_type.code,
        carried_count,
        payload.from_year,
        to_year,
    )
    return CarryOverResponse(
        leave_type_id=leave_type.id,
        from_year=payload.from_year,
        to_year=to_year,
        carried_count=carried_count,
        carried_days=carried_days,
    )


async def list_expiring_balances(
    session: AsyncSession,
    company_id: uuid.UUID,
    as_of: date,
    within_days: int = 30,
) -> ExpiringBalanceListResponse:
    """Balances that expire after as_of but within the window and still have days left, soonest first."""
    result = await session.execute(
        select(LeaveBalance, LeaveType)
        .join(LeaveType, col(LeaveType.id) == col(LeaveBalance.leave_type_id))
        .where(
            col(LeaveBalance.company_id) == company_id,
            col(LeaveBalance.expiry_date) > as_of,
            col(LeaveBalance.expiry_date) <= as_of + timedelta(days=within_days),
        )
        .order_by(col(LeaveBalance.expiry_date), col(LeaveBalance.employee_id))
    )
    items = [
        _build_balance_response(balance, leave_type, as_of)
        for balance, leave_type in result.all()
        if remaining(balance) > 0
    ]
    return ExpiringBalanceListResponse(as_of=as_of, within_days=within_days, items=items, total=len(items))
