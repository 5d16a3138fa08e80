# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status

from leave_engine.api.deps import AdminDep, AuthDep, validate_company_scope
from leave_engine.db import SessionDep
from leave_engine.schemas.leave_type import CreateLeaveTypeRequest, LeaveTypeListResponse, LeaveTypeResponse
from leave_engine.services import leave_type as leave_type_service

leave_types_router = APIRouter(
    prefix="/companies/{company_id}/leave-types",
    tags=["leave-types"],
    dependencies=[Depends(validate_company_scope)],
)


@leave_types_router.post("", response_model=LeaveTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_type(
    company_id: uuid.UUID,
    payload: CreateLeaveTypeRequest,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveTypeResponse:
    """Add a leave type (admin only)."""
    return await leave_type_service.create_leave_type(session, auth, payload)


@leave_types_router.get("", response_model=LeaveTypeListResponse)
async def list_leave_types(
    company_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveTypeListResponse:
    """List the company's leave types."""
    return await leave_type_service.list_leave_types(session, company_id)
