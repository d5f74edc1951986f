"""FastAPI dependency injection."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from tutor_gateway.auth.context import CallerContext
from tutor_gateway.auth.keys import key_prefix, resolve_role
from tutor_gateway.config import Settings, get_settings
from tutor_gateway.llm.diagnostics import Diagnostics
from tutor_gateway.llm.health import HealthCheckRunner
from tutor_gateway.llm.router import ChatRouter

__all__ = [
    "activate_debug_mode",
    "get_chat_router",
    "get_current_caller",
    "get_diagnostics",
    "get_health_runner",
]

logger = structlog.get_logger()

api_key_header = APIKeyHeader(name="X-API-Key")

_get_settings = Depends(get_settings)


async def get_current_caller(
    api_key: str = Security(api_key_header),
    settings: Settings = _get_settings,
) -> CallerContext:
    """Authenticate request via API key, return caller context.

    Raises:
        HTTPException 401: unknown API key.
    """
    role = resolve_role(api_key, settings)
    if role is None:
        logger.warning("invalid_api_key", key_prefix=key_prefix(api_key))
        raise HTTPException(status_code=401, detail="Invalid API key")
    return CallerContext(role=role, key_prefix=key_prefix(api_key))


async def get_chat_router(request: Request) -> ChatRouter:
    """Retrieve ChatRouter from app state.

    Initialized during lifespan startup.
    """
    return cast(ChatRouter, request.app.state.chat_router)


async def get_health_runner(request: Request) -> HealthCheckRunner:
    """Retrieve HealthCheckRunner from app state.

    Initialized during lifespan startup.
    """
    return cast(HealthCheckRunner, request.app.state.health_runner)


_get_chat_router = Depends(get_chat_router)


async def get_diagnostics(chat_router: ChatRouter = _get_chat_router) -> Diagnostics:
    """Diagnostics context owned by the app's ChatRouter."""
    return chat_router.diagnostics


async def activate_debug_mode(request: Request, debug: str | None = None) -> None:
    """Global dependency: ``?debug=true`` switches diagnostic mode on.

    The activation persists, so later requests need not repeat it.
    """
    if debug is None:
        return
    chat_router = getattr(request.app.state, "chat_router", None)
    if chat_router is None:
        return
    cast(ChatRouter, chat_router).diagnostics.activate_from_param(debug)
