# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from leave_engine.api.deps import AuthDep, TodayDep, validate_company_scope
from leave_engine.db import SessionDep
from leave_engine.models.enums import ApplicationStatus
from leave_engine.schemas.application import (
    ApplicationListResponse,
    ApplicationResponse,
    SubmitApplicationPayload,
    TransitionPayload,
)
from leave_engine.services import application as application_service

applications_router = APIRouter(
    prefix="/companies/{company_id}/leave-applications",
    tags=["leave-applications"],
    dependencies=[Depends(validate_company_scope)],
)


@applications_router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def submit_application(
    payload: SubmitApplicationPayload,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> ApplicationResponse:
    """Apply for leave."""
    return await application_service.submit_leave_application(session, auth, payload, today)


@applications_router.get("", response_model=ApplicationListResponse)
async def list_applications(
    session: SessionDep,
    auth: AuthDep,
    status_filter: ApplicationStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    leave_type_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> ApplicationListResponse:
    """List leave applications with optional filters."""
    return await application_service.list_applications(
        session, auth.company_id, status_filter, employee_id, leave_type_id, offset, limit
    )


@applications_router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> ApplicationResponse:
    """Get a leave application with its approval history."""
    return await application_service.get_application(session, auth.company_id, application_id)


@applications_router.post("/{application_id}/transitions", response_model=ApplicationResponse)
async def transition_application(
    application_id: uuid.UUID,
    payload: TransitionPayload,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> ApplicationResponse:
    """Approve, reject or cancel a pending application."""
    return await application_service.transition_application(
        session, auth, application_id, payload.action, today, payload.comments
    )
