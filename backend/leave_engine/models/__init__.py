from sqlmodel import SQLModel

from leave_engine.models.application import LeaveApplication, LeaveApprovalLog, UnpaidLeaveUsage
from leave_engine.models.audit import AuditLog
from leave_engine.models.balance import LeaveBalance
from leave_engine.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from leave_engine.models.cash_out import LeaveCashOut
from leave_engine.models.enums import (
    AccrualBasis,
    AdjustmentType,
    ApplicableGender,
    ApplicationAction,
    ApplicationStatus,
    AuditAction,
    AuditEntityType,
    CashOutStatus,
    RecallStatus,
    RoundingMode,
)
from leave_engine.models.holiday import PublicHoliday
from leave_engine.models.leave_type import LeaveType
from leave_engine.models.recall import LeaveRecall
from leave_engine.models.settings import CompanyLeaveSettings

__all__ = [
    "AccrualBasis",
    "AdjustmentType",
    "ApplicableGender",
    "ApplicationAction",
    "ApplicationStatus",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "CashOutStatus",
    "CompanyLeaveSettings",
    "LeaveApplication",
    "LeaveApprovalLog",
    "LeaveBalance",
    "LeaveCashOut",
    "LeaveRecall",
    "LeaveType",
    "PublicHoliday",
    "RecallStatus",
    "RoundingMode",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "UnpaidLeaveUsage",
    "UpdatedAtMixin",
]
