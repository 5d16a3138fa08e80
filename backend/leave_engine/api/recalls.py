# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from leave_engine.api.deps import AuthDep, TodayDep, validate_company_scope
from leave_engine.db import SessionDep
from leave_engine.models.enums import RecallStatus
from leave_engine.schemas.recall import CreateRecallPayload, RecallListResponse, RecallResponse, RespondRecallPayload
from leave_engine.services import recall as recall_service

recalls_router = APIRouter(
    prefix="/companies/{company_id}/leave-recalls",
    tags=["leave-recalls"],
    dependencies=[Depends(validate_company_scope)],
)


@recalls_router.post("", response_model=RecallResponse, status_code=status.HTTP_201_CREATED)
async def create_recall(
    payload: CreateRecallPayload,
    session: SessionDep,
    auth: AuthDep,
    today: TodayDep,
) -> RecallResponse:
    """Recall an employee from approved leave."""
    return await recall_service.create_recall(session, auth, payload, today)


@recalls_router.get("", response_model=RecallListResponse)
async def list_recalls(
    session: SessionDep,
    auth: AuthDep,
    status_filter: RecallStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> RecallListResponse:
    return await recall_service.list_recalls(session, auth.company_id, status_filter, employee_id, offset, limit)


@recalls_router.get("/{recall_id}", response_model=RecallResponse)
async def get_recall(
    recall_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RecallResponse:
    return await recall_service.get_recall(session, auth.company_id, recall_id)


@recalls_router.post("/{recall_id}/response", response_model=RecallResponse)
async def respond_to_recall(
    recall_id: uuid.UUID,
    payload: RespondRecallPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RecallResponse:
    """Accept or decline a recall (the recalled employee only)."""
    return await recall_service.respond_to_recall(session, auth, recall_id, payload)


@recalls_router.post("/{recall_id}/cancel", response_model=RecallResponse)
async def cancel_recall(
    recall_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RecallResponse:
    """Withdraw a pending recall."""
    return await recall_service.cancel_recall(session, auth, recall_id)
