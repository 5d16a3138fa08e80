from __future__ import annotations

import enum


class AccrualBasis(enum.StrEnum):
    """What anchors the yearly accrual period."""

    ANNIVERSARY = "ANNIVERSARY"
    CALENDAR_YEAR = "CALENDAR_YEAR"


class RoundingMode(enum.StrEnum):
    """Cent rounding applied to encashment values."""

    ROUND = "ROUND"
    FLOOR = "FLOOR"
    CEIL = "CEIL"


class ApplicableGender(enum.StrEnum):
    """Gender filter on a leave type."""

    ALL = "All"
    MALE = "Male"
    FEMALE = "Female"


class ApplicationStatus(enum.StrEnum):
    """State machine for leave applications."""

    PENDING_SUPERVISOR = "PENDING_SUPERVISOR"
    PENDING_HR = "PENDING_HR"
    PENDING_CEO = "PENDING_CEO"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


PENDING_APPLICATION_STATUSES = (
    ApplicationStatus.PENDING_SUPERVISOR,
    ApplicationStatus.PENDING_HR,
    ApplicationStatus.PENDING_CEO,
)


class ApplicationAction(enum.StrEnum):
    """Actions accepted by the leave application state machine."""

    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class CashOutStatus(enum.StrEnum):
    """Lifecycle of a leave encashment request."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AdjustmentType(enum.StrEnum):
    """Direction of a manual balance adjustment."""

    ADD = "add"
    SUBTRACT = "subtract"


class RecallStatus(enum.StrEnum):
    """Lifecycle of a recall from approved leave."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_SETTINGS = "LEAVE_SETTINGS"
    LEAVE_TYPE = "LEAVE_TYPE"
    HOLIDAY = "HOLIDAY"
    BALANCE = "BALANCE"
    APPLICATION = "APPLICATION"
    CASH_OUT = "CASH_OUT"
    RECALL = "RECALL"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    SUBMIT = "SUBMIT"
    ADJUST = "ADJUST"
    CARRY_OVER = "CARRY_OVER"
    RESPOND = "RESPOND"
