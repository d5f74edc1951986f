"""Fixtures for API tests: app state with a mocked provider."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from tutor_gateway.api.app import app
from tutor_gateway.api.deps import get_current_caller
from tutor_gateway.auth.context import CallerContext, CallerRole
from tutor_gateway.llm.diagnostics import Diagnostics
from tutor_gateway.llm.health import HealthCheckRunner
from tutor_gateway.llm.providers.base import ChatProvider
from tutor_gateway.llm.router import ChatRouter
from tutor_gateway.llm.schemas import InferenceResult, TokenUsage
from tutor_gateway.llm.tools import ProviderId, ToolRegistry


@pytest.fixture()
def openai_provider() -> AsyncMock:
    p = AsyncMock(spec=ChatProvider)
    p.send = AsyncMock(
        return_value=InferenceResult(
            response_text="OK",
            usage=TokenUsage.from_counts(10, 2),
            model_id="gpt-5-mini-2025-08-07",
            provider_id="openai",
            latency_ms=12,
        )
    )
    return p


@pytest.fixture()
def chat_router(
    registry: ToolRegistry,
    diagnostics: Diagnostics,
    openai_provider: AsyncMock,
) -> ChatRouter:
    return ChatRouter(
        {ProviderId.OPENAI: openai_provider},  # type: ignore[dict-item]
        registry,
        diagnostics,
        sleep=AsyncMock(),
        rng=lambda: 0.0,
    )


@pytest.fixture()
def caller_role() -> CallerRole:
    return CallerRole.INSTRUCTOR


@pytest.fixture()
async def client(
    chat_router: ChatRouter,
    caller_role: CallerRole,
) -> AsyncGenerator[AsyncClient]:
    """AsyncClient over the app with state set directly (no lifespan)."""
    app.state.chat_router = chat_router
    app.state.health_runner = HealthCheckRunner(
        chat_router.providers,
        {ProviderId.OPENAI: "gpt-5-mini-2025-08-07"},
    )
    app.dependency_overrides[get_current_caller] = lambda: CallerContext(
        role=caller_role, key_prefix="test"
    )
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
