"""Authenticated caller context for request processing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CallerRole(StrEnum):
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


#: Roles allowed on the operator surface (diagnostics, health, reports).
OPERATOR_ROLES: tuple[CallerRole, ...] = (CallerRole.ADMIN, CallerRole.INSTRUCTOR)


@dataclass(frozen=True)
class CallerContext:
    """Authenticated caller, injected into every protected request.

    Derived from the X-API-Key header during authentication.
    """

    role: CallerRole
    key_prefix: str
