"""API key matching against the configured role key lists."""

from __future__ import annotations

import secrets

from pydantic import SecretStr

from tutor_gateway.auth.context import CallerRole
from tutor_gateway.config import Settings

KEY_PREFIX_LENGTH = 6


def _role_keys(settings: Settings) -> list[tuple[CallerRole, list[SecretStr]]]:
    # Highest privilege first: a key listed twice gets the stronger role.
    return [
        (CallerRole.ADMIN, settings.admin_api_keys),
        (CallerRole.INSTRUCTOR, settings.instructor_api_keys),
        (CallerRole.STUDENT, settings.student_api_keys),
    ]


def resolve_role(api_key: str, settings: Settings) -> CallerRole | None:
    """Return the role owning api_key, or None for an unknown key.

    Comparison is constant-time per configured key.
    """
    if not api_key:
        return None
    candidate = api_key.encode()
    for role, keys in _role_keys(settings):
        for key in keys:
            if secrets.compare_digest(candidate, key.get_secret_value().encode()):
                return role
    return None


def key_prefix(api_key: str) -> str:
    """Loggable prefix of an API key."""
    return api_key[:KEY_PREFIX_LENGTH]
