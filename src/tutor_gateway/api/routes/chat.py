"""Chat completion and model catalog endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from tutor_gateway.api.deps import get_chat_router
from tutor_gateway.api.schemas import ChatRequest, ModelInfo
from tutor_gateway.auth.context import CallerContext, CallerRole
from tutor_gateway.auth.roles import require_role
from tutor_gateway.errors import ChatCompletionError
from tutor_gateway.llm.router import ChatRouter
from tutor_gateway.llm.schemas import InferenceResult

logger = structlog.get_logger()

router = APIRouter(tags=["chat"])

_any_caller = Depends(
    require_role(CallerRole.ADMIN, CallerRole.INSTRUCTOR, CallerRole.STUDENT)
)
_chat_router = Depends(get_chat_router)


@router.post("/chat", response_model=InferenceResult)
async def chat(
    body: ChatRequest,
    request: Request,
    caller: CallerContext = _any_caller,
    chat_router: ChatRouter = _chat_router,
) -> InferenceResult | StreamingResponse:
    """Send one chat turn to the tool's provider.

    With ``stream=true`` the response is the provider's SSE frame stream
    (``text/event-stream``), terminated by ``data: [DONE]``.

    Raises:
        HTTPException 502: the provider failed after all retries; the
            detail is a sentence safe to show to end users.
    """
    try:
        if body.stream:
            handle = await chat_router.send_chat_completion(
                body.prompt,
                body.tool_name,
                body.conversation_history,
                body.system_prompt,
                stream=True,
            )
            request.state.tool_name = handle.tool.tool_name
            return StreamingResponse(
                handle.chunks,
                media_type="text/event-stream",
                headers={"X-Tool-Name": handle.tool.tool_name},
            )
        result = await chat_router.send_chat_completion(
            body.prompt,
            body.tool_name,
            body.conversation_history,
            body.system_prompt,
        )
    except ChatCompletionError as exc:
        request.state.tool_name = exc.tool_name
        logger.warning(
            "chat_request_failed",
            tool=exc.tool_name,
            role=str(caller.role),
            error_type=type(exc.original).__name__,
        )
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    request.state.tool_name = result.tool_name
    return result


@router.get("/models", response_model=list[ModelInfo])
async def list_models(
    caller: CallerContext = _any_caller,
    chat_router: ChatRouter = _chat_router,
) -> list[ModelInfo]:
    """Configured tools for model pickers."""
    return [ModelInfo(**entry) for entry in chat_router.list_available_models()]
