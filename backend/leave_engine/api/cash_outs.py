# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from leave_engine.api.deps import AuthDep, TodayDep, validate_company_scope
from leave_engine.db import SessionDep
from leave_engine.models.enums import CashOutStatus
from leave_engine.schemas.cash_out import (
    CashOutListResponse,
    CashOutQuoteResponse,
    CashOutResponse,
    RejectCashOutPayload,
    SubmitCashOutPayload,
)
from leave_engine.services import cash_out as cash_out_service

cash_outs_router = APIRouter(
    prefix="/companies/{company_id}/cash-outs",
    tags=["cash-outs"],
    dependencies=[Depends(validate_company_scope)],
)


@cash_outs_router.get("/quote", response_model=CashOutQuoteResponse)
async def quote_cash_out(
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
    employee_id: uuid.UUID = Query(),
) -> CashOutQuoteResponse:
    """Value an employee's remaining annual leave without creating a request."""
    return await cash_out_service.quote_cash_out(session, auth.company_id, employee_id, today)


@cash_outs_router.post("", response_model=CashOutResponse, status_code=status.HTTP_201_CREATED)
async def submit_cash_out(
    payload: SubmitCashOutPayload,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> CashOutResponse:
    """Request payment for unused annual leave."""
    return await cash_out_service.submit_cash_out_request(session, auth, payload, today)


@cash_outs_router.get("", response_model=CashOutListResponse)
async def list_cash_outs(
    session: SessionDep,
    auth: AuthDep,
    status_filter: CashOutStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    fiscal_year: int | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> CashOutListResponse:
    """List cash-out requests with optional filters."""
    return await cash_out_service.list_cash_out_requests(
        session, auth.company_id, status_filter, employee_id, fiscal_year, offset, limit
    )


@cash_outs_router.post("/{cash_out_id}/approve", response_model=CashOutResponse)
async def approve_cash_out(
    cash_out_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> CashOutResponse:
    """Approve a pending cash-out request (HR, CEO or admin)."""
    return await cash_out_service.approve_cash_out_request(session, auth, cash_out_id, today)


@cash_outs_router.post("/{cash_out_id}/reject", response_model=CashOutResponse)
async def reject_cash_out(
    cash_out_id: uuid.UUID,
    payload: RejectCashOutPayload,
    session: SessionDep,
    auth: AuthDep,
) -> CashOutResponse:
    """Reject a pending cash-out request with a reason (HR, CEO or admin)."""
    return await cash_out_service.reject_cash_out_request(session, auth, cash_out_id, payload)
