"""FastAPI application with lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from tutor_gateway.api.deps import activate_debug_mode
from tutor_gateway.api.middleware import RequestLoggingMiddleware
from tutor_gateway.api.routes.admin import router as admin_router
from tutor_gateway.api.routes.chat import router as chat_router
from tutor_gateway.config import settings
from tutor_gateway.llm import create_chat_router, create_health_runner
from tutor_gateway.logging_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown.

    Startup:
        - Configure logging.
        - Create ChatRouter (providers, tool registry, diagnostics).
        - Create HealthCheckRunner over the same providers.
    """
    configure_logging(
        environment=str(settings.environment),
        log_level=settings.log_level,
    )
    app.state.chat_router = create_chat_router(settings)
    app.state.health_runner = create_health_runner(app.state.chat_router, settings)

    logger.info("app_started", environment=str(settings.environment))
    yield
    logger.info("app_stopped")


app = FastAPI(
    title="Tutor Gateway",
    description="Routing and resilience layer for educational chat providers",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.is_dev,
    dependencies=[Depends(activate_debug_mode)],
)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health(request: Request) -> JSONResponse:
    """Liveness check; reports which providers are configured."""
    chat_router = getattr(request.app.state, "chat_router", None)
    providers = sorted(str(p) for p in chat_router.providers) if chat_router else []
    return JSONResponse(
        content={
            "status": "ok",
            "providers": providers,
            "diagnostic_mode": bool(
                chat_router and chat_router.diagnostics.diagnostic_mode
            ),
            "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions."""
    logger.error("unhandled_exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(chat_router)
app.include_router(admin_router)
