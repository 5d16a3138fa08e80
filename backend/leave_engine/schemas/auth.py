# ruff: noqa: TC003
from __future__ import annotations

import enum
import uuid

from pydantic import BaseModel


class Role(enum.StrEnum):
    """Roles carried in the X-Role header."""

    EMPLOYEE = "employee"
    SUPERVISOR = "supervisor"
    HR = "hr"
    CEO = "ceo"
    ADMIN = "admin"


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers."""

    company_id: uuid.UUID
    user_id: uuid.UUID
    role: str = Role.EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def has_role(self, *roles: str) -> bool:
        """True for any of the given roles. Admins pass every check."""
        return self.is_admin or self.role in roles
