# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from leave_engine.api.deps import AdminDep, AuthDep, validate_company_scope
from leave_engine.db import SessionDep
from leave_engine.schemas.settings import LeaveSettingsResponse, UpdateLeaveSettingsRequest
from leave_engine.services import settings as settings_service

settings_router = APIRouter(
    prefix="/companies/{company_id}/leave-settings",
    tags=["leave-settings"],
    dependencies=[Depends(validate_company_scope)],
)


@settings_router.get("", response_model=LeaveSettingsResponse)
async def get_leave_settings(
    company_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveSettingsResponse:
    """Get the company's leave settings."""
    return await settings_service.get_leave_settings(session, company_id)


@settings_router.put("", response_model=LeaveSettingsResponse)
async def upsert_leave_settings(
    company_id: uuid.UUID,
    payload: UpdateLeaveSettingsRequest,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveSettingsResponse:
    """Create or update the company's leave settings (admin only)."""
    return await settings_service.upsert_leave_settings(session, auth, payload)
