# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from leave_engine.api.deps import AuthDep, TodayDep, validate_company_scope
from leave_engine.db import SessionDep
from leave_engine.models.leave_type import ANNUAL_LEAVE_CODE
from leave_engine.schemas.accrual import AccrualResponse
from leave_engine.schemas.balance import (
    AdjustBalancePayload,
    BalanceListResponse,
    BalanceResponse,
    CarryOverPayload,
    CarryOverResponse,
    ExpiringBalanceListResponse,
    InitializeBalancesResponse,
)
from leave_engine.services import accrual as accrual_service
from leave_engine.services import balance as balance_service

balances_router = APIRouter(
    prefix="/companies/{company_id}/balances",
    tags=["balances"],
    dependencies=[Depends(validate_company_scope)],
)

employee_balance_router = APIRouter(
    prefix="/companies/{company_id}/employees/{employee_id}",
    tags=["balances"],
    dependencies=[Depends(validate_company_scope)],
)


@employee_balance_router.get("/balances", response_model=BalanceListResponse)
async def get_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
    fiscal_year: int | None = Query(default=None),
    as_of: date | None = Query(default=None),
) -> BalanceListResponse:
    """Balances of an employee, with expired rows left out of the available total."""
    return await balance_service.get_employee_balances(
        session, auth.company_id, employee_id, as_of or today, fiscal_year
    )


@employee_balance_router.post(
    "/balances/initialize",
    response_model=InitializeBalancesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def initialize_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> InitializeBalancesResponse:
    """Create the employee's missing balances for the current fiscal year."""
    return await balance_service.initialize_balances_for_employee(
        session, auth.company_id, employee_id, today, actor_id=auth.user_id
    )


@employee_balance_router.get("/accrual", response_model=AccrualResponse)
async def get_accrual(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
    leave_type_code: str = Query(default=ANNUAL_LEAVE_CODE),
    as_of: date | None = Query(default=None),
) -> AccrualResponse:
    """Gradual accrual of a leave type as of a date (today by default)."""
    return await accrual_service.compute_accrual(session, auth.company_id, employee_id, as_of or today, leave_type_code)


@balances_router.get("/expiring", response_model=ExpiringBalanceListResponse)
async def list_expiring_balances(
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
    within_days: int = Query(default=30, ge=0, le=366),
    as_of: date | None = Query(default=None),
) -> ExpiringBalanceListResponse:
    """Balances with days left that expire within the window."""
    return await balance_service.list_expiring_balances(session, auth.company_id, as_of or today, within_days)


@balances_router.post("/carry-over", response_model=CarryOverResponse)
async def carry_over_balances(
    payload: CarryOverPayload,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> CarryOverResponse:
    """Carry unused days of the previous fiscal year into the current one (HR/admin)."""
    return await balance_service.carry_over_balances(session, auth, payload, today)


@balances_router.post("/{balance_id}/adjustments", response_model=BalanceResponse)
async def adjust_balance(
    balance_id: uuid.UUID,
    payload: AdjustBalancePayload,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> BalanceResponse:
    """Add or subtract days on a balance by hand (HR/admin)."""
    return await balance_service.adjust_balance(session, auth, balance_id, payload, today)
