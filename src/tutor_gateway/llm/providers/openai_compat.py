"""OpenAI-compatible providers (OpenAI, Perplexity via a subclass).

OpenAI serves two request/response shapes: Chat Completions for the
older lineup and the Responses API for next-generation (``gpt-5*``)
models. OpenAIProvider branches on the model id and reconciles both into
one InferenceResult; callers never see the difference.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any

import openai

from tutor_gateway.errors import ProviderError, ServiceError
from tutor_gateway.llm.providers.base import (
    ChatProvider,
    split_system,
    translate_error,
)
from tutor_gateway.llm.schemas import InferenceResult, Message, TokenUsage
from tutor_gateway.llm.streaming import (
    DONE_FRAME,
    delta_frame,
    encode_sse,
)
from tutor_gateway.llm.tools import ProviderId

NEXT_GEN_PREFIX = "gpt-5"


def _to_wire(messages: Sequence[Message]) -> list[dict[str, str]]:
    return [{"role": m.role.value, "content": m.content} for m in messages]


class OpenAICompatProvider(ChatProvider):
    """Chat Completions over the OpenAI SDK, optionally at a custom base_url."""

    provider_id = ProviderId.OPENAI

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        temperature: float = 0.7,
    ) -> None:
        self._temperature = temperature
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=0,
        )

    async def send(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> InferenceResult:
        """Generate completion via the Chat Completions endpoint."""
        try:
            with self._measure_latency() as timer:
                response = await self._client.chat.completions.create(
                    model=model_id,
                    # OpenAI SDK expects union of typed message params,
                    # but accepts plain dicts at runtime.
                    messages=_to_wire(messages),  # type: ignore[arg-type]
                    temperature=self._temperature,
                    **self._timeout_kwargs(timeout_ms),
                )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc

        choice = response.choices[0] if response.choices else None
        usage = response.usage
        return self._result(
            choice.message.content if choice else None,
            model_id,
            TokenUsage.from_counts(
                usage.prompt_tokens if usage else None,
                usage.completion_tokens if usage else None,
                usage.total_tokens if usage else None,
            ),
            timer.elapsed_ms,
        )

    async def open_stream(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Start a Chat Completions stream; chunks are forwarded as-is."""
        try:
            stream = await self._client.chat.completions.create(
                model=model_id,
                messages=_to_wire(messages),  # type: ignore[arg-type]
                temperature=self._temperature,
                stream=True,
                **self._timeout_kwargs(timeout_ms),
            )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        return self._forward_chunks(stream)

    async def _forward_chunks(self, stream: Any) -> AsyncIterator[bytes]:
        try:
            async for chunk in stream:
                yield encode_sse(chunk.model_dump_json(exclude_unset=True))
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        yield DONE_FRAME

    @staticmethod
    def _timeout_kwargs(timeout_ms: int | None) -> dict[str, Any]:
        return {"timeout": timeout_ms / 1000} if timeout_ms else {}


class OpenAIProvider(OpenAICompatProvider):
    """OpenAI with a Responses API branch for next-generation models.

    Next-gen models take the system prompt as ``instructions`` and the
    dialogue as ``input``; they only support the default temperature.
    """

    provider_id = ProviderId.OPENAI

    @staticmethod
    def is_next_gen(model_id: str) -> bool:
        return model_id.lower().startswith(NEXT_GEN_PREFIX)

    async def send(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> InferenceResult:
        if not self.is_next_gen(model_id):
            return await super().send(messages, model_id, timeout_ms)

        try:
            with self._measure_latency() as timer:
                response = await self._client.responses.create(
                    model=model_id,
                    **self._responses_payload(messages),
                    **self._timeout_kwargs(timeout_ms),
                )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc

        usage = response.usage
        return self._result(
            response.output_text,
            model_id,
            TokenUsage.from_counts(
                usage.input_tokens if usage else None,
                usage.output_tokens if usage else None,
                usage.total_tokens if usage else None,
            ),
            timer.elapsed_ms,
        )

    async def open_stream(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> AsyncIterator[bytes]:
        if not self.is_next_gen(model_id):
            return await super().open_stream(messages, model_id, timeout_ms)

        try:
            stream = await self._client.responses.create(
                model=model_id,
                stream=True,
                **self._responses_payload(messages),
                **self._timeout_kwargs(timeout_ms),
            )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        return self._forward_response_events(stream)

    async def _forward_response_events(self, stream: Any) -> AsyncIterator[bytes]:
        """Re-frame Responses API events as Chat Completions deltas."""
        try:
            async for event in stream:
                if event.type == "response.output_text.delta":
                    yield delta_frame(event.delta)
                elif event.type == "error":
                    raise ServiceError(event.message, provider=self.provider_id)
                elif event.type == "response.failed":
                    error = event.response.error
                    raise ServiceError(
                        error.message if error else "response failed",
                        provider=self.provider_id,
                    )
        except ProviderError:
            raise
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        yield DONE_FRAME

    @staticmethod
    def _responses_payload(messages: Sequence[Message]) -> dict[str, Any]:
        instructions, dialogue = split_system(messages)
        payload: dict[str, Any] = {"input": _to_wire(dialogue)}
        if instructions:
            payload["instructions"] = instructions
        return payload
