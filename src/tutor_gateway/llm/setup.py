"""One-stop factory for assembling the full chat stack.

Usage::

    from tutor_gateway.config import get_settings
    from tutor_gateway.llm import create_chat_router

    router = create_chat_router(get_settings())
    result = await router.send_chat_completion("Explain osmosis", "Gemini Flash")
"""

import structlog

from tutor_gateway.config import Settings
from tutor_gateway.llm.diagnostics import Diagnostics, FileDiagnosticsStore
from tutor_gateway.llm.factory import create_providers
from tutor_gateway.llm.health import HealthCheckRunner
from tutor_gateway.llm.router import ChatRouter
from tutor_gateway.llm.tools import load_tool_registry

logger = structlog.get_logger()


def create_chat_router(settings: Settings) -> ChatRouter:
    """Assemble ChatRouter with providers, tool registry and diagnostics.

    Args:
        settings: Application settings with API keys, registry path and
            diagnostics directory.

    Returns:
        Configured ChatRouter ready for use.
    """
    registry = load_tool_registry(
        settings.tool_registry_path, settings.default_tool
    )
    providers = create_providers(settings)
    diagnostics = Diagnostics(FileDiagnosticsStore(settings.diagnostics_dir))

    router = ChatRouter(
        providers=providers,
        registry=registry,
        diagnostics=diagnostics,
    )
    logger.info(
        "chat_router_created",
        providers=[str(p) for p in providers],
        tools=len(registry.tools),
        default_tool=registry.default_tool,
        diagnostic_mode=diagnostics.diagnostic_mode,
    )
    return router


def create_health_runner(router: ChatRouter, settings: Settings) -> HealthCheckRunner:
    """Health runner probing the same provider instances the router uses."""
    return HealthCheckRunner(
        router.providers,
        timeout_ms=settings.health_check_timeout_ms,
    )
