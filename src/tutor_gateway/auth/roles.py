"""Role enforcement dependency factory."""

from collections.abc import Callable, Coroutine
from typing import Any

import structlog
from fastapi import Depends, HTTPException

from tutor_gateway.api.deps import get_current_caller
from tutor_gateway.auth.context import CallerContext, CallerRole

logger = structlog.get_logger()

_caller_dep = Depends(get_current_caller)


def require_role(
    *allowed_roles: CallerRole,
) -> Callable[..., Coroutine[Any, Any, CallerContext]]:
    """Dependency factory: require the caller to hold one of allowed_roles.

    Usage as parameter dependency (returns CallerContext)::

        async def endpoint(
            caller: CallerContext = Depends(require_role(CallerRole.ADMIN)),
        ): ...

    Raises:
        HTTPException 403: if the caller's role is not allowed.
    """

    async def _check_role(
        caller: CallerContext = _caller_dep,
    ) -> CallerContext:
        if caller.role not in allowed_roles:
            logger.warning(
                "role_denied",
                role=str(caller.role),
                key_prefix=caller.key_prefix,
            )
            raise HTTPException(
                status_code=403,
                detail=f"Requires role: {' or '.join(allowed_roles)}",
            )
        return caller

    return _check_role
