# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_engine.exceptions import ConfigurationMissing
from leave_engine.models.enums import AuditAction, AuditEntityType
from leave_engine.models.settings import CompanyLeaveSettings
from leave_engine.schemas.settings import LeaveSettings, LeaveSettingsResponse
from leave_engine.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.settings import UpdateLeaveSettingsRequest

logger = logging.getLogger(__name__)


def _build_settings_response(row: CompanyLeaveSettings) -> LeaveSettingsResponse:
    return LeaveSettingsResponse(
        id=row.id,
        company_id=row.company_id,
        updated_at=row.updated_at,
        **LeaveSettings.model_validate(row).model_dump(),
    )


async def _get_settings_row(session: AsyncSession, company_id: uuid.UUID) -> CompanyLeaveSettings | None:
    result = await session.execute(
        select(CompanyLeaveSettings).where(col(CompanyLeaveSettings.company_id) == company_id)
    )
    return result.scalar_one_or_none()


async def load_leave_settings(session: AsyncSession, company_id: uuid.UUID) -> LeaveSettings | None:
    """Read stored settings into the canonical value type, or None if the company has none."""
    row = await _get_settings_row(session, company_id)
    if row is None:
        return None
    return LeaveSettings.model_validate(row)


async def require_leave_settings(session: AsyncSession, company_id: uuid.UUID) -> LeaveSettings:
    settings = await load_leave_settings(session, company_id)
    if settings is None:
        raise ConfigurationMissing("Leave settings are not configured for this company")
    return settings


async def get_leave_settings(session: AsyncSession, company_id: uuid.UUID) -> LeaveSettingsResponse:
    row = await _get_settings_row(session, company_id)
    if row is None:
        raise ConfigurationMissing("Leave settings are not configured for this company")
    return _build_settings_response(row)


async def upsert_leave_settings(
    session: AsyncSession,
    auth: AuthContext,
    payload: UpdateLeaveSettingsRequest,
) -> LeaveSettingsResponse:
    """Create or partially update the company's leave settings.

    Unset payload fields keep the stored value, or the default on first write.
    The merged result is validated as a whole before anything is written.
    """
    row = await _get_settings_row(session, auth.company_id)
    current = LeaveSettings.model_validate(row) if row is not None else LeaveSettings()
    merged = LeaveSettings.model_validate(current.model_dump() | payload.model_dump(exclude_unset=True))

    if row is None:
        row = CompanyLeaveSettings(company_id=auth.company_id, **merged.model_dump())
        session.add(row)
        await session.flush()
        action = AuditAction.CREATE
        before_json = None
    else:
        before_json = model_to_audit_dict(row)
        for key, value in merged.model_dump().items():
            setattr(row, key, value)
        await session.flush()
        action = AuditAction.UPDATE

    await write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE_SETTINGS,
        entity_id=row.id,
        action=action,
        before_json=before_json,
        after_json=model_to_audit_dict(row),
    )

    await session.commit()
    await session.refresh(row)
    logger.info("Leave settings %s for company %s", action.value.lower(), auth.company_id)
    return _build_settings_response(row)
