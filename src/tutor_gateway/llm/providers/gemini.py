"""Google Gemini provider via google-genai SDK."""

from collections.abc import AsyncIterator, Sequence
from typing import Any

from google import genai
from google.genai import types

from tutor_gateway.llm.providers.base import (
    ChatProvider,
    split_system,
    translate_error,
)
from tutor_gateway.llm.schemas import InferenceResult, Message, Role, TokenUsage
from tutor_gateway.llm.streaming import DONE_FRAME, delta_frame
from tutor_gateway.llm.tools import ProviderId


def _to_contents(messages: Sequence[Message]) -> list[types.Content]:
    """Gemini names the assistant role ``model``."""
    return [
        types.Content(
            role="model" if m.role is Role.ASSISTANT else "user",
            parts=[types.Part(text=m.content)],
        )
        for m in messages
    ]


class GeminiProvider(ChatProvider):
    """Gemini provider using google-genai SDK.

    System prompt goes to ``system_instruction``; the dialogue is sent
    as role-tagged contents. Usage comes from ``usage_metadata``.
    """

    provider_id = ProviderId.GOOGLE

    def __init__(self, api_key: str) -> None:
        self._client = genai.Client(api_key=api_key)

    def _request_kwargs(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None,
    ) -> dict[str, Any]:
        system, dialogue = split_system(messages)
        config = types.GenerateContentConfig(
            system_instruction=system,
            http_options=types.HttpOptions(timeout=timeout_ms) if timeout_ms else None,
        )
        return {
            "model": model_id,
            "contents": _to_contents(dialogue),
            "config": config,
        }

    async def send(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> InferenceResult:
        """Generate completion via Gemini."""
        try:
            with self._measure_latency() as timer:
                response = await self._client.aio.models.generate_content(
                    **self._request_kwargs(messages, model_id, timeout_ms)
                )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc

        usage = response.usage_metadata
        return self._result(
            response.text,
            model_id,
            TokenUsage.from_counts(
                usage.prompt_token_count if usage else None,
                usage.candidates_token_count if usage else None,
                usage.total_token_count if usage else None,
            ),
            timer.elapsed_ms,
        )

    async def open_stream(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Start a Gemini stream, re-framed as OpenAI-style deltas."""
        try:
            stream = await self._client.aio.models.generate_content_stream(
                **self._request_kwargs(messages, model_id, timeout_ms)
            )
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        return self._forward_chunks(stream)

    async def _forward_chunks(self, stream: Any) -> AsyncIterator[bytes]:
        try:
            async for chunk in stream:
                if chunk.text:
                    yield delta_frame(chunk.text)
        except Exception as exc:
            raise translate_error(exc, self.provider_id) from exc
        yield DONE_FRAME
