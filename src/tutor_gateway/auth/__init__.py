"""Operator API authentication: API key -> caller role.

Note: ``require_role`` lives in ``auth.roles`` and is NOT re-exported here
to avoid a circular import (auth -> roles -> api.deps -> auth).
Import directly: ``from tutor_gateway.auth.roles import require_role``.
"""

from tutor_gateway.auth.context import CallerContext, CallerRole
from tutor_gateway.auth.keys import key_prefix, resolve_role

__all__ = ["CallerContext", "CallerRole", "key_prefix", "resolve_role"]
