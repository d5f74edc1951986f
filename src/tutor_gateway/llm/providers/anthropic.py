"""Anthropic Claude provider."""

from collections.abc import AsyncIterator, Sequence
from typing import Any

import anthropic

from tutor_gateway.llm.providers.base import (
    ChatProvider,
    split_system,
    translate_error,
)
from tutor_gateway.llm.schemas import InferenceResult, Message, TokenUsage
from tutor_gateway.llm.streaming import DONE_FRAME, delta_frame
from tutor_gateway.llm.tools import ProviderId


class AnthropicProvider(ChatProvider):
    """Anthropic provider using official SDK.

    The system prompt travels in the ``system`` field, not as a message.
    """

    provider_id = ProviderId.ANTHROPIC

    def __init__(self, api_key: str, max_tokens: int = 4096) -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        self._max_tokens = max_tokens

    def _request_kwargs(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None,
    ) -> dict[str, Any]:
        system, dialogue = split_system(messages)
        kwargs: dict[str, Any] = {
            "model": model_id,
            "max_tokens": self._max_tokens,
            "messages": [{"role": m.role.value, "content": m.content} for m in dialogue],
        }
        if system:
            kwargs["system"] = system
        if timeout_ms:
            kwargs["timeout"] = timeout_ms / 1000
        return kwargs

    async def send(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> InferenceResult:
        """Generate completion via Anthropic Messages API."""
        try:
            with self._measure_latency() as timer:
                response = await self._client.messages.create(
                    **self._request_kwargs(messages, model_id, timeout_ms)
                )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc

        text = "".join(
            block.text for block in response.content if block.type == "text"
        )
        return self._result(
            text,
            model_id,
            TokenUsage.from_counts(
                response.usage.input_tokens,
                response.usage.output_tokens,
            ),
            timer.elapsed_ms,
        )

    async def open_stream(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Start a Messages stream, re-framed as OpenAI-style deltas."""
        try:
            stream = await self._client.messages.create(
                stream=True,
                **self._request_kwargs(messages, model_id, timeout_ms),
            )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        return self._forward_events(stream)

    async def _forward_events(self, stream: Any) -> AsyncIterator[bytes]:
        try:
            async for event in stream:
                if event.type == "content_block_delta" and event.delta.type == "text_delta":
                    yield delta_frame(event.delta.text)
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        yield DONE_FRAME
