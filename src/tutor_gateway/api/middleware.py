"""HTTP request/response logging middleware."""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests with method, path, status code, and latency.

    A request id (taken from ``X-Request-ID`` or generated) is bound to
    the structlog context for the duration of the request, so the
    ``ai_*`` and ``chat_*`` events emitted while serving it share the id
    with the ``http_request`` line. Routes that talk to a provider put
    the serving tool in ``request.state.tool_name``.
    """

    SKIP_PATHS: frozenset[str] = frozenset(
        {"/health", "/docs", "/openapi.json", "/redoc"}
    )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and log timing information."""
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:16]
        start = time.perf_counter()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            latency_ms = int((time.perf_counter() - start) * 1000)

            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                latency_ms=latency_ms,
                tool=getattr(request.state, "tool_name", None),
                debug_param="debug" in request.query_params,
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
