"""ChatRouter -- the unified entry point for all chat completions.

Pipeline per call:
1. Resolve tool name -> ToolDescriptor (unknown names fall back)
2. System prompt: caller override, else model-specific educational prompt
3. Flatten history + new prompt into messages
4. Retry policy by model family
5. with_retry(dispatch to provider under a hard per-attempt timeout)
6. Success -> diagnostic API-call entry; terminal failure -> ErrorRecord
   + ChatCompletionError carrying a user-facing sentence
7. Streams: a provider failure after the stream opened -> ErrorRecord
   + one error frame, then ``[DONE]``
"""

import asyncio
import random
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from typing import Literal, TypeVar, overload

import structlog

from tutor_gateway.errors import (
    AuthError,
    ChatCompletionError,
    RequestTimeoutError,
    root_cause,
    user_facing_message,
)
from tutor_gateway.llm.diagnostics import (
    ApiCallRequestInfo,
    ApiCallResponseInfo,
    Diagnostics,
    ErrorContext,
)
from tutor_gateway.llm.prompts import build_system_prompt
from tutor_gateway.llm.providers.base import ChatProvider
from tutor_gateway.llm.retry import Sleep, select_policy, with_retry
from tutor_gateway.llm.schemas import ChatTurn, InferenceResult, build_messages
from tutor_gateway.llm.streaming import DONE_FRAME, StreamHandle, error_frame
from tutor_gateway.llm.tools import ProviderId, ToolDescriptor, ToolRegistry

logger = structlog.get_logger()

_T = TypeVar("_T")


class ChatRouter:
    """Routes chat requests to the provider behind a tool name.

    Owns the Diagnostics context; ToolRegistry and retry policies are
    read-only, so concurrent calls share nothing mutable but diagnostics.
    """

    def __init__(
        self,
        providers: Mapping[ProviderId, ChatProvider],
        registry: ToolRegistry,
        diagnostics: Diagnostics | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._providers = dict(providers)
        self._registry = registry
        self._diagnostics = diagnostics or Diagnostics()
        self._sleep = sleep
        self._rng = rng

    @property
    def providers(self) -> dict[ProviderId, ChatProvider]:
        return self._providers

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def diagnostics(self) -> Diagnostics:
        return self._diagnostics

    def list_available_models(self) -> list[dict[str, str]]:
        return self._registry.list_available_models()

    @overload
    async def send_chat_completion(
        self,
        prompt: str,
        tool_name: str = ...,
        conversation_history: Sequence[ChatTurn] = ...,
        system_prompt_override: str | None = ...,
        stream: Literal[False] = ...,
    ) -> InferenceResult: ...

    @overload
    async def send_chat_completion(
        self,
        prompt: str,
        tool_name: str = ...,
        conversation_history: Sequence[ChatTurn] = ...,
        system_prompt_override: str | None = ...,
        *,
        stream: Literal[True],
    ) -> StreamHandle: ...

    async def send_chat_completion(
        self,
        prompt: str,
        tool_name: str = "",
        conversation_history: Sequence[ChatTurn] = (),
        system_prompt_override: str | None = None,
        stream: bool = False,
    ) -> InferenceResult | StreamHandle:
        """Send one chat turn through the resilience pipeline.

        Args:
            prompt: New user prompt.
            tool_name: Display name of the tool; unknown names fall back
                to the registry default.
            conversation_history: Earlier turns, oldest first.
            system_prompt_override: Replaces the educational prompt.
            stream: Return a StreamHandle instead of a decoded result.

        Raises:
            ChatCompletionError: terminal failure; ``str(exc)`` is safe to
                show to users, ``exc.original`` is the underlying error.
        """
        tool = self._registry.resolve(tool_name or self._registry.default_tool)
        system_prompt = system_prompt_override or build_system_prompt(tool.model_id)
        messages = build_messages(system_prompt, conversation_history, prompt)
        policy = select_policy(tool.model_id)
        request_info = ApiCallRequestInfo(
            model_id=tool.model_id,
            provider_id=str(tool.provider),
            tool_name=tool.tool_name,
            prompt_length=len(prompt),
            history_length=len(conversation_history),
            stream=stream,
        )

        start = time.perf_counter()
        try:
            provider = self._get_provider(tool)
            if stream:
                chunks: AsyncIterator[bytes] = await with_retry(
                    lambda: self._dispatch(
                        tool,
                        lambda: provider.open_stream(
                            messages, tool.model_id, tool.timeout_ms
                        ),
                    ),
                    policy,
                    sleep=self._sleep,
                    rng=self._rng,
                    label=tool.tool_name,
                )
            else:
                result = await with_retry(
                    lambda: self._dispatch(
                        tool,
                        lambda: provider.send(messages, tool.model_id, tool.timeout_ms),
                    ),
                    policy,
                    sleep=self._sleep,
                    rng=self._rng,
                    label=tool.tool_name,
                )
        except Exception as exc:
            duration_ms = _elapsed_ms(start)
            await self._record_failure(exc, tool, request_info, duration_ms)
            raise ChatCompletionError(
                user_facing_message(exc, tool.tool_name),
                tool_name=tool.tool_name,
                original=exc,
            ) from exc

        duration_ms = _elapsed_ms(start)
        if stream:
            self._diagnostics.log_api_call(
                request_info,
                ApiCallResponseInfo(success=True),
                duration_ms,
            )
            return StreamHandle(
                tool=tool,
                chunks=self._guard_stream(chunks, tool, request_info, start),
            )

        result.tool_name = tool.tool_name
        result.cost_usd = tool.estimate_cost(result.usage)
        self._diagnostics.log_api_call(
            request_info,
            ApiCallResponseInfo(
                success=True,
                status_code=200,
                has_content=bool(result.response_text),
                content_length=len(result.response_text),
            ),
            duration_ms,
        )
        logger.info(
            "chat_completion_completed",
            tool=tool.tool_name,
            provider=str(tool.provider),
            model=tool.model_id,
            total_tokens=result.usage.total_tokens,
            latency_ms=result.latency_ms,
            duration_ms=duration_ms,
            cost_usd=result.cost_usd,
        )
        return result

    # -- internal -------------------------------------------------------

    def _get_provider(self, tool: ToolDescriptor) -> ChatProvider:
        provider = self._providers.get(tool.provider)
        if provider is None:
            raise AuthError(
                f"{tool.provider} API key not configured",
                code="provider_not_configured",
                provider=str(tool.provider),
            )
        return provider

    @staticmethod
    async def _dispatch(
        tool: ToolDescriptor,
        call: Callable[[], Awaitable[_T]],
    ) -> _T:
        """Run one attempt under the tool's hard deadline.

        The deadline cancels the in-flight request and surfaces as a
        retryable RequestTimeoutError (status 408).
        """
        try:
            async with asyncio.timeout(tool.timeout_ms / 1000):
                return await call()
        except TimeoutError as exc:
            raise RequestTimeoutError(
                f"{tool.model_id} request timed out after {tool.timeout_ms} ms",
                provider=str(tool.provider),
            ) from exc

    async def _guard_stream(
        self,
        chunks: AsyncIterator[bytes],
        tool: ToolDescriptor,
        request_info: ApiCallRequestInfo,
        start: float,
    ) -> AsyncIterator[bytes]:
        """Forward provider frames; record a mid-stream failure as an error frame."""
        try:
            async for chunk in chunks:
                yield chunk
        except Exception as exc:
            await self._record_failure(exc, tool, request_info, _elapsed_ms(start))
            yield error_frame(user_facing_message(exc, tool.tool_name))
            yield DONE_FRAME
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _record_failure(
        self,
        exc: BaseException,
        tool: ToolDescriptor,
        request_info: ApiCallRequestInfo,
        duration_ms: int,
    ) -> None:
        cause = root_cause(exc)
        status = getattr(cause, "status", None)
        await self._diagnostics.log_error_async(
            cause,
            ErrorContext(
                model_id=tool.model_id,
                provider_id=str(tool.provider),
                tool_name=tool.tool_name,
                prompt_length=request_info.prompt_length,
                history_length=request_info.history_length,
                duration_ms=duration_ms,
            ),
        )
        self._diagnostics.log_api_call(
            request_info,
            ApiCallResponseInfo(
                success=False,
                status_code=status if isinstance(status, int) else None,
                error=str(cause),
            ),
            duration_ms,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
