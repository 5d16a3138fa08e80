# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_engine.exceptions import (
    CapExceeded,
    DuplicateRequest,
    Forbidden,
    InvalidDateRange,
    InvalidTransition,
    NotEligible,
    NotFound,
)
from leave_engine.models.application import LeaveApplication, LeaveApprovalLog, UnpaidLeaveUsage
from leave_engine.models.enums import (
    PENDING_APPLICATION_STATUSES,
    ApplicationAction,
    ApplicationStatus,
    AuditAction,
    AuditEntityType,
)
from leave_engine.models.leave_type import UNPAID_LEAVE_CODE
from leave_engine.schemas.application import ApplicationListResponse, ApplicationResponse, ApprovalLogResponse
from leave_engine.schemas.auth import Role
from leave_engine.services import balance as ledger
from leave_engine.services.audit import model_to_audit_dict, write_audit_log
from leave_engine.services.calendar import (
    WeekPolicy,
    count_calendar_days,
    count_working_days,
    load_holiday_calendar,
    next_working_day,
)
from leave_engine.services.employee import MANAGER_JOB_LEVELS, get_employee_or_404
from leave_engine.services.leave_type import get_leave_type
from leave_engine.services.period import fiscal_year_for
from leave_engine.services.settings import require_leave_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.application import SubmitApplicationPayload
    from leave_engine.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

UNPAID_MAX_DAYS_PER_REQUEST = Decimal("5")
UNPAID_MAX_USES_PER_YEAR = 2

_ACTIVE_STATUSES = (*PENDING_APPLICATION_STATUSES, ApplicationStatus.APPROVED)

_AUDIT_ACTIONS = {
    ApplicationAction.APPROVE: AuditAction.APPROVE,
    ApplicationAction.REJECT: AuditAction.REJECT,
    ApplicationAction.CANCEL: AuditAction.CANCEL,
}


# ---------------------------------------------------------------------------
# State machine rules (pure)
# ---------------------------------------------------------------------------


def next_approval_status(
    current: ApplicationStatus,
    job_level: str | None,
    require_ceo_for_managers: bool = True,
) -> ApplicationStatus:
    """The status an approval moves an application to.

    Supervisor approval always goes to HR. HR approval is final unless the
    employee is manager-level and CEO approval is required for managers.
    """
    if current == ApplicationStatus.PENDING_SUPERVISOR:
        return ApplicationStatus.PENDING_HR
    if current == ApplicationStatus.PENDING_HR:
        if require_ceo_for_managers and job_level in MANAGER_JOB_LEVELS:
            return ApplicationStatus.PENDING_CEO
        return ApplicationStatus.APPROVED
    if current == ApplicationStatus.PENDING_CEO:
        return ApplicationStatus.APPROVED
    raise InvalidTransition(f"Cannot approve an application that is {current.value}")


def validate_leave_dates(start: date, end: date, return_date: date, today: date) -> None:
    if start < today:
        raise InvalidDateRange("Start date cannot be in the past")
    if end < start:
        raise InvalidDateRange("End date must be on or after the start date")
    if return_date < end:
        raise InvalidDateRange("Return date must be on or after the end date")


def ranges_overlap(start_1: date, end_1: date, start_2: date, end_2: date) -> bool:
    """Inclusive date ranges share at least one day."""
    return start_1 <= end_2 and end_1 >= start_2


def _approver_label(
    status: ApplicationStatus,
    auth: AuthContext,
    employee: EmployeeInfo,
    require_ceo_for_managers: bool,
) -> str:
    """Role label recorded for an approve/reject at the given stage. Raises Forbidden."""
    if status == ApplicationStatus.PENDING_SUPERVISOR:
        if auth.is_admin:
            return "Admin (Supervisor Override)"
        if auth.user_id == employee.manager_id or auth.role == Role.SUPERVISOR:
            return "Supervisor"
        raise Forbidden("Only the employee's supervisor can act at this stage")

    # With the CEO stage switched off, HR finalizes anything left in PENDING_CEO.
    if status == ApplicationStatus.PENDING_HR or not require_ceo_for_managers:
        if auth.is_admin:
            return "Admin (HR)"
        if auth.role == Role.HR:
            return "HR"
        raise Forbidden("Only HR can act at this stage")

    if auth.is_admin:
        return "Admin (CEO)"
    if auth.role == Role.CEO:
        return "CEO"
    raise Forbidden("Only the CEO can act at this stage")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_log_response(entry: LeaveApprovalLog) -> ApprovalLogResponse:
    return ApprovalLogResponse(
        id=entry.id,
        actor_id=entry.actor_id,
        approver_role=entry.approver_role,
        action=ApplicationAction(entry.action),
        from_status=ApplicationStatus(entry.from_status),
        to_status=ApplicationStatus(entry.to_status),
        comments=entry.comments,
        action_at=entry.action_at,
    )


def _build_application_response(
    application: LeaveApplication,
    log: list[LeaveApprovalLog] | None = None,
) -> ApplicationResponse:
    return ApplicationResponse(
        id=application.id,
        company_id=application.company_id,
        employee_id=application.employee_id,
        leave_type_id=application.leave_type_id,
        fiscal_year=application.fiscal_year,
        start_date=application.start_date,
        end_date=application.end_date,
        return_date=application.return_date,
        requested_days=Decimal(application.requested_days),
        reason=application.reason,
        attachment_url=application.attachment_url,
        status=ApplicationStatus(application.current_status),
        created_at=application.created_at,
        approval_log=[_build_log_response(entry) for entry in log or []],
    )


async def _get_application_or_404(
    session: AsyncSession,
    company_id: uuid.UUID,
    application_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveApplication:
    query = select(LeaveApplication).where(
        col(LeaveApplication.id) == application_id,
        col(LeaveApplication.company_id) == company_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFound("Leave application not found")
    return application


async def _fetch_log(session: AsyncSession, application_id: uuid.UUID) -> list[LeaveApprovalLog]:
    result = await session.execute(
        select(LeaveApprovalLog)
        .where(col(LeaveApprovalLog.application_id) == application_id)
        .order_by(col(LeaveApprovalLog.action_at))
    )
    return list(result.scalars().all())


async def _check_overlap(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    start: date,
    end: date,
) -> None:
    """Raise DuplicateRequest if a pending or approved application shares a day with [start, end]."""
    result = await session.execute(
        select(LeaveApplication.id)
        .where(
            col(LeaveApplication.company_id) == company_id,
            col(LeaveApplication.employee_id) == employee_id,
            col(LeaveApplication.current_status).in_([s.value for s in _ACTIVE_STATUSES]),
            col(LeaveApplication.start_date) <= end,
            col(LeaveApplication.end_date) >= start,
        )
        .limit(1)
    )
    if result.scalar_one_or_none() is not None:
        raise DuplicateRequest("An application for overlapping dates already exists")


async def _get_unpaid_usage(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    fiscal_year: int,
) -> UnpaidLeaveUsage | None:
    result = await session.execute(
        select(UnpaidLeaveUsage).where(
            col(UnpaidLeaveUsage.company_id) == company_id,
            col(UnpaidLeaveUsage.employee_id) == employee_id,
            col(UnpaidLeaveUsage.fiscal_year) == fiscal_year,
        )
    )
    return result.scalar_one_or_none()


async def _check_unpaid_rules(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    fiscal_year: int,
    requested_days: Decimal,
) -> None:
    if requested_days > UNPAID_MAX_DAYS_PER_REQUEST:
        raise CapExceeded(f"Unpaid leave cannot exceed {UNPAID_MAX_DAYS_PER_REQUEST} days per request")
    usage = await _get_unpaid_usage(session, company_id, employee_id, fiscal_year)
    if usage is not None and usage.usage_count >= UNPAID_MAX_USES_PER_YEAR:
        raise CapExceeded(f"Unpaid leave can only be granted {UNPAID_MAX_USES_PER_YEAR} times per fiscal year")


async def _record_unpaid_usage(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    fiscal_year: int,
) -> None:
    usage = await _get_unpaid_usage(session, company_id, employee_id, fiscal_year)
    if usage is None:
        session.add(
            UnpaidLeaveUsage(company_id=company_id, employee_id=employee_id, fiscal_year=fiscal_year, usage_count=1)
        )
    else:
        usage.usage_count += 1


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_leave_application(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitApplicationPayload,
    today: date,
) -> ApplicationResponse:
    """Apply for leave, holding the requested days on the balance.

    Flow:
    1. Resolve settings, employee and leave type
    2. Check gender eligibility
    3. Count requested days (working days, or calendar days for calendar-day types)
    4. Derive the return date and validate the dates
    5. Reject overlaps with pending or approved applications
    6. Enforce unpaid leave limits and attachment requirements
    7. Allocate and lock the balance, then reserve the days
    8. Store the application as PENDING_SUPERVISOR
    9. Audit and commit
    """
    if payload.employee_id != auth.user_id and not auth.has_role(Role.HR):
        raise Forbidden("Employees can only apply for leave for themselves")

    # 1. Configuration.
    settings = await require_leave_settings(session, auth.company_id)
    employee = await get_employee_or_404(auth.company_id, payload.employee_id)
    leave_type = await get_leave_type(session, auth.company_id, payload.leave_type_id)

    # 2. Eligibility.
    if not ledger.is_gender_eligible(leave_type, employee.gender):
        raise NotEligible(f"This leave type is only applicable for {leave_type.applicable_gender} employees")

    # 3-4. Days and dates.
    week_policy = WeekPolicy.from_settings(settings)
    calendar = await load_holiday_calendar(session, auth.company_id)
    if payload.end_date < payload.start_date:
        raise InvalidDateRange("End date must be on or after the start date")
    if leave_type.is_calendar_days:
        requested_days = count_calendar_days(payload.start_date, payload.end_date)
    else:
        requested_days = count_working_days(payload.start_date, payload.end_date, week_policy, calendar)
    if requested_days <= 0:
        raise InvalidDateRange("The selected dates contain no working days")
    return_date = next_working_day(payload.end_date, week_policy, calendar)
    validate_leave_dates(payload.start_date, payload.end_date, return_date, today)

    # 5. Overlaps.
    await _check_overlap(session, auth.company_id, employee.id, payload.start_date, payload.end_date)

    # 6. Leave-type rules.
    fiscal_year = fiscal_year_for(settings.fiscal_year_start_month, today)
    if leave_type.code == UNPAID_LEAVE_CODE:
        await _check_unpaid_rules(session, auth.company_id, employee.id, fiscal_year, requested_days)
    if leave_type.requires_attachment and not payload.attachment_url:
        raise NotEligible("This leave type requires a supporting document")

    # 7. Balance.
    balance = await ledger.allocate(session, settings, employee, leave_type, fiscal_year, today)
    ledger.reserve(balance, requested_days)

    # 8. Application.
    application = LeaveApplication(
        company_id=auth.company_id,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        fiscal_year=fiscal_year,
        start_date=payload.start_date,
        end_date=payload.end_date,
        return_date=return_date,
        requested_days=requested_days,
        reason=payload.reason,
        attachment_url=payload.attachment_url,
        current_status=ApplicationStatus.PENDING_SUPERVISOR.value,
    )
    session.add(application)
    await session.flush()

    # 9. Audit and commit.
    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.APPLICATION,
        entity_id=application.id,
        action=AuditAction.SUBMIT,
        after_json=model_to_audit_dict(application),
    )

    await session.commit()
    await session.refresh(application)
    logger.info(
        "Leave application %s submitted: employee %s, %s, %s day(s)",
        application.id,
        employee.id,
        leave_type.code,
        requested_days,
    )
    return _build_application_response(application)


async def transition_application(
    session: AsyncSession,
    auth: AuthContext,
    application_id: uuid.UUID,
    action: ApplicationAction,
    today: date,
    comments: str | None = None,
) -> ApplicationResponse:
    """Approve, reject or cancel a pending application.

    Approval advances one stage; the final approval turns held days into
    used days and counts unpaid usage. Rejection and cancellation give the
    held days back. Every action is logged with the actor's role.
    """
    application = await _get_application_or_404(session, auth.company_id, application_id, for_update=True)
    current = ApplicationStatus(application.current_status)
    if current not in PENDING_APPLICATION_STATUSES:
        raise InvalidTransition(f"Cannot {action.value} an application that is {current.value}")

    settings = await require_leave_settings(session, auth.company_id)
    employee = await get_employee_or_404(auth.company_id, application.employee_id)

    if action == ApplicationAction.CANCEL:
        if auth.user_id != application.employee_id:
            raise Forbidden("Only the requesting employee can cancel an application")
        approver_role = "Employee"
        new_status = ApplicationStatus.CANCELLED
    else:
        approver_role = _approver_label(current, auth, employee, settings.require_ceo_approval_for_managers)
        if action == ApplicationAction.REJECT:
            new_status = ApplicationStatus.REJECTED
        else:
            new_status = next_approval_status(
                current,
                employee.job_level,
                settings.require_ceo_approval_for_managers,
            )

    before_dict = model_to_audit_dict(application)
    days = Decimal(application.requested_days)

    if new_status in (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED):
        leave_type = await get_leave_type(session, auth.company_id, application.leave_type_id)
        balance = await ledger.allocate(session, settings, employee, leave_type, application.fiscal_year, today)
        if new_status == ApplicationStatus.APPROVED:
            ledger.commit(balance, days)
            if leave_type.code == UNPAID_LEAVE_CODE:
                await _record_unpaid_usage(session, auth.company_id, employee.id, application.fiscal_year)
        else:
            ledger.release(balance, days)

    application.current_status = new_status.value
    session.add(
        LeaveApprovalLog(
            application_id=application.id,
            actor_id=auth.user_id,
            approver_role=approver_role,
            action=action.value,
            from_status=current.value,
            to_status=new_status.value,
            comments=comments,
        )
    )
    await session.flush()

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.APPLICATION,
        entity_id=application.id,
        action=_AUDIT_ACTIONS[action],
        before_json=before_dict,
        after_json=model_to_audit_dict(application),
    )

    await session.commit()
    await session.refresh(application)
    logger.info(
        "Leave application %s: %s by %s (%s), %s -> %s",
        application.id,
        action.value,
        auth.user_id,
        approver_role,
        current.value,
        new_status.value,
    )
    return _build_application_response(application, await _fetch_log(session, application.id))


async def get_application(
    session: AsyncSession,
    company_id: uuid.UUID,
    application_id: uuid.UUID,
) -> ApplicationResponse:
    application = await _get_application_or_404(session, company_id, application_id)
    return _build_application_response(application, await _fetch_log(session, application.id))


async def list_applications(
    session: AsyncSession,
    company_id: uuid.UUID,
    status_filter: ApplicationStatus | None = None,
    employee_id: uuid.UUID | None = None,
    leave_type_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> ApplicationListResponse:
    """List applications with optional filters, newest first."""
    base_filters = [col(LeaveApplication.company_id) == company_id]

    if status_filter is not None:
        base_filters.append(col(LeaveApplication.current_status) == status_filter.value)
    if employee_id is not None:
        base_filters.append(col(LeaveApplication.employee_id) == employee_id)
    if leave_type_id is not None:
        base_filters.append(col(LeaveApplication.leave_type_id) == leave_type_id)

    count_result = await session.execute(select(func.count()).select_from(LeaveApplication).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveApplication)
        .where(*base_filters)
        .order_by(col(LeaveApplication.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    applications = list(result.scalars().all())

    return ApplicationListResponse(
        items=[_build_application_response(a) for a in applications],
        total=total,
    )
