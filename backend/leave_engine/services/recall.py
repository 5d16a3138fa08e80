# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.exceptions import DuplicateRequest, Forbidden, InvalidDateRange, InvalidTransition, NotFound
from leave_engine.models.application import LeaveApplication
from leave_engine.models.base import now_utc
from leave_engine.models.enums import ApplicationStatus, AuditAction, AuditEntityType, RecallStatus
from leave_engine.models.recall import LeaveRecall
from leave_engine.schemas.auth import Role
from leave_engine.schemas.recall import RecallListResponse, RecallResponse
from leave_engine.services import balance as ledger
from leave_engine.services.audit import model_to_audit_dict, write_audit_log
from leave_engine.services.calendar import WeekPolicy, count_calendar_days, count_working_days, load_holiday_calendar
from leave_engine.services.leave_type import get_leave_type
from leave_engine.services.settings import require_leave_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.recall import CreateRecallPayload, RespondRecallPayload

logger = logging.getLogger(__name__)

_RECALLER_ROLES = (Role.SUPERVISOR, Role.HR, Role.CEO)


def _build_recall_response(recall: LeaveRecall) -> RecallResponse:
    return RecallResponse(
        id=recall.id,
        company_id=recall.company_id,
        application_id=recall.application_id,
        employee_id=recall.employee_id,
        recalled_by=recall.recalled_by,
        reason=recall.reason,
        recall_date=recall.recall_date,
        status=RecallStatus(recall.status),
        employee_response=recall.employee_response,
        responded_at=recall.responded_at,
        actual_return_date=recall.actual_return_date,
        days_restored=Decimal(recall.days_restored),
        created_at=recall.created_at,
    )


async def _get_application_for_update(
    session: AsyncSession,
    company_id: uuid.UUID,
    application_id: uuid.UUID,
) -> LeaveApplication:
    result = await session.execute(
        select(LeaveApplication)
        .where(col(LeaveApplication.id) == application_id, col(LeaveApplication.company_id) == company_id)
        .with_for_update()
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFound("Leave application not found")
    return application


async def _get_recall_or_404(
    session: AsyncSession,
    company_id: uuid.UUID,
    recall_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveRecall:
    query = select(LeaveRecall).where(col(LeaveRecall.id) == recall_id, col(LeaveRecall.company_id) == company_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    recall = result.scalar_one_or_none()
    if recall is None:
        raise NotFound("Leave recall not found")
    return recall


def _check_return_window(application: LeaveApplication, day: date, label: str) -> None:
    """A return has to cut the leave short: after its first day and no later than its last."""
    if not application.start_date < day <= application.end_date:
        msg = (
            f"{label} must fall after {application.start_date.isoformat()} "
            f"and on or before {application.end_date.isoformat()}"
        )
        raise InvalidDateRange(msg)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_recall(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateRecallPayload,
    today: date,
) -> RecallResponse:
    """Ask an employee to return early from approved leave.

    Flow:
    1. Supervisor, HR, CEO or admin only
    2. The application is approved and not yet over
    3. The recall date is not in the past and cuts the leave short
    4. At most one pending recall per application
    5. Audit and commit
    """
    if not auth.has_role(*_RECALLER_ROLES):
        raise Forbidden("Only supervisors, HR, CEO or admin users can recall employees from leave")

    # 2. Application state.
    application = await _get_application_for_update(session, auth.company_id, payload.application_id)
    if application.current_status != ApplicationStatus.APPROVED:
        raise InvalidTransition(f"Cannot recall from an application that is {application.current_status}")
    if application.end_date < today:
        raise InvalidTransition("Cannot recall from leave that has already ended")

    # 3. Dates.
    if payload.recall_date < today:
        raise InvalidDateRange("Recall date cannot be in the past")
    _check_return_window(application, payload.recall_date, "Recall date")

    # 4. Store.
    recall = LeaveRecall(
        company_id=auth.company_id,
        application_id=application.id,
        employee_id=application.employee_id,
        recalled_by=auth.user_id,
        reason=payload.reason,
        recall_date=payload.recall_date,
        status=RecallStatus.PENDING.value,
    )
    session.add(recall)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateRequest("A pending recall already exists for this application") from None

    # 5. Audit and commit.
    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.RECALL,
        entity_id=recall.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(recall),
    )

    await session.commit()
    await session.refresh(recall)
    logger.info(
        "Recall %s created for application %s, return on %s",
        recall.id,
        application.id,
        recall.recall_date,
    )
    return _build_recall_response(recall)


async def respond_to_recall(
    session: AsyncSession,
    auth: AuthContext,
    recall_id: uuid.UUID,
    payload: RespondRecallPayload,
) -> RecallResponse:
    """Accept or decline a pending recall.

    Accepting shortens the application to end the day before the return
    date and hands the days from the return date to the old end date back
    to the balance.
    """
    recall = await _get_recall_or_404(session, auth.company_id, recall_id, for_update=True)
    if auth.user_id != recall.employee_id:
        raise Forbidden("Only the recalled employee can respond to a recall")
    if recall.status != RecallStatus.PENDING:
        raise InvalidTransition(f"Recall is already {recall.status.lower()}")

    before_dict = model_to_audit_dict(recall)
    recall.status = RecallStatus(payload.response).value
    recall.employee_response = payload.employee_response
    recall.responded_at = now_utc()

    if payload.response == RecallStatus.ACCEPTED:
        application = await _get_application_for_update(session, auth.company_id, recall.application_id)
        if application.current_status != ApplicationStatus.APPROVED:
            raise InvalidTransition(f"Cannot shorten an application that is {application.current_status}")
        return_date = payload.actual_return_date or recall.recall_date
        _check_return_window(application, return_date, "Return date")

        leave_type = await get_leave_type(session, auth.company_id, application.leave_type_id)
        if leave_type.is_calendar_days:
            restored = count_calendar_days(return_date, application.end_date)
        else:
            settings = await require_leave_settings(session, auth.company_id)
            calendar = await load_holiday_calendar(session, auth.company_id)
            restored = count_working_days(
                return_date, application.end_date, WeekPolicy.from_settings(settings), calendar
            )

        balance = await ledger.get_balance(
            session, application.employee_id, application.leave_type_id, application.fiscal_year, for_update=True
        )
        if balance is not None:
            ledger.restore(balance, restored)

        application_before = model_to_audit_dict(application)
        application.end_date = return_date - timedelta(days=1)
        application.return_date = return_date
        application.requested_days = Decimal(application.requested_days) - restored
        recall.actual_return_date = return_date
        recall.days_restored = restored
        await session.flush()

        await write_audit_log(
            session,
            company_id=auth.company_id,
            actor_id=auth.user_id,
            entity_type=AuditEntityType.APPLICATION,
            entity_id=application.id,
            action=AuditAction.UPDATE,
            before_json=application_before,
            after_json=model_to_audit_dict(application),
        )
    else:
        await session.flush()

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.RECALL,
        entity_id=recall.id,
        action=AuditAction.RESPOND,
        before_json=before_dict,
        after_json=model_to_audit_dict(recall),
    )

    await session.commit()
    await session.refresh(recall)
    logger.info(
        "Recall %s %s by employee %s, %s day(s) restored",
        recall.id,
        recall.status.lower(),
        auth.user_id,
        recall.days_restored,
    )
    return _build_recall_response(recall)


async def cancel_recall(
    session: AsyncSession,
    auth: AuthContext,
    recall_id: uuid.UUID,
) -> RecallResponse:
    """Withdraw a pending recall. Only whoever issued it, or an admin, may do so."""
    recall = await _get_recall_or_404(session, auth.company_id, recall_id, for_update=True)
    if auth.user_id != recall.recalled_by and not auth.is_admin:
        raise Forbidden("Only the issuer of a recall can cancel it")
    if recall.status != RecallStatus.PENDING:
        raise InvalidTransition(f"Recall is already {recall.status.lower()}")

    before_dict = model_to_audit_dict(recall)
    recall.status = RecallStatus.CANCELLED.value
    await session.flush()

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.RECALL,
        entity_id=recall.id,
        action=AuditAction.CANCEL,
        before_json=before_dict,
        after_json=model_to_audit_dict(recall),
    )

    await session.commit()
    await session.refresh(recall)
    logger.info("Recall %s cancelled by %s", recall.id, auth.user_id)
    return _build_recall_response(recall)


async def get_recall(session: AsyncSession, company_id: uuid.UUID, recall_id: uuid.UUID) -> RecallResponse:
    return _build_recall_response(await _get_recall_or_404(session, company_id, recall_id))


async def list_recalls(
    session: AsyncSession,
    company_id: uuid.UUID,
    status_filter: RecallStatus | None = None,
    employee_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> RecallListResponse:
    """List recalls, newest first."""
    base_filters = [col(LeaveRecall.company_id) == company_id]

    if status_filter is not None:
        base_filters.append(col(LeaveRecall.status) == status_filter.value)
    if employee_id is not None:
        base_filters.append(col(LeaveRecall.employee_id) == employee_id)

    count_result = await session.execute(select(func.count()).select_from(LeaveRecall).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRecall)
        .where(*base_filters)
        .order_by(col(LeaveRecall.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    recalls = list(result.scalars().all())

    return RecallListResponse(items=[_build_recall_response(r) for r in recalls], total=total)
