"""Abstract chat provider interface and SDK error translation."""

import abc
import time
from collections.abc import AsyncIterator, Sequence

import anthropic
import httpx
import openai
import structlog

from tutor_gateway.errors import (
    AuthError,
    InvalidRequestError,
    NetworkError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    ServiceError,
)
from tutor_gateway.llm.schemas import InferenceResult, Message, Role, TokenUsage
from tutor_gateway.llm.tools import ProviderId

logger = structlog.get_logger()


class ChatProvider(abc.ABC):
    """Base class for the four provider adapters.

    Each adapter implements two methods:
    - send(): one non-streaming call, normalized to InferenceResult
    - open_stream(): one streaming call, re-framed as SSE byte chunks

    Adapters perform exactly one outbound call per invocation and never
    retry; SDK clients are built with ``max_retries=0``. Retries belong
    to the retry orchestrator in the chat router.
    """

    provider_id: ProviderId

    @abc.abstractmethod
    async def send(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> InferenceResult:
        """Generate a completion for the whole conversation.

        Raises:
            ProviderError: any failure, translated by translate_error().
        """
        ...

    @abc.abstractmethod
    async def open_stream(
        self,
        messages: Sequence[Message],
        model_id: str,
        timeout_ms: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Start a streaming completion.

        Awaiting this performs the request, so connection, auth and rate
        limit failures surface here (and can be retried). The returned
        iterator yields SSE frames in the OpenAI delta shape and ends
        with ``[DONE]``; a failure mid-stream raises a ProviderError
        from the iterator.
        """
        ...

    def _result(
        self,
        text: str | None,
        model_id: str,
        usage: TokenUsage,
        latency_ms: int,
    ) -> InferenceResult:
        """Build a successful result; an empty completion is a service error."""
        if not text or not text.strip():
            raise ServiceError(
                f"{self.provider_id} returned an empty response",
                status=502,
                provider=str(self.provider_id),
            )
        return InferenceResult(
            response_text=text,
            usage=usage,
            model_id=model_id,
            provider_id=str(self.provider_id),
            latency_ms=latency_ms,
        )

    def _measure_latency(self) -> "_LatencyTimer":
        """Context manager for measuring call latency."""
        return _LatencyTimer()


class _LatencyTimer:
    """Simple latency measurement helper."""

    def __init__(self) -> None:
        self.start: float = 0
        self.elapsed_ms: int = 0

    def __enter__(self) -> "_LatencyTimer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        self.elapsed_ms = int((time.perf_counter() - self.start) * 1000)


def split_system(messages: Sequence[Message]) -> tuple[str | None, list[Message]]:
    """Separate system instructions from the dialogue turns.

    Anthropic and Gemini take the system prompt as a request field
    rather than as a message.
    """
    system_parts = [m.content for m in messages if m.role is Role.SYSTEM]
    dialogue = [m for m in messages if m.role is not Role.SYSTEM]
    return ("\n\n".join(system_parts) or None), dialogue


# -- error translation ----------------------------------------------------

_TIMEOUT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    openai.APITimeoutError,
    anthropic.APITimeoutError,
    httpx.TimeoutException,
    TimeoutError,
)

_CONNECTION_EXCEPTIONS: tuple[type[BaseException], ...] = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    httpx.TransportError,
    ConnectionError,
)


def error_for_status(status: int, message: str, provider: str) -> ProviderError:
    """Map an HTTP status to the error taxonomy."""
    if status in (401, 403):
        return AuthError(message, status=status, provider=provider)
    if status == 429:
        return RateLimitError(message, status=status, provider=provider)
    if status in (408, 504, 522, 524):
        return RequestTimeoutError(message, status=status, provider=provider)
    if status >= 500:
        return ServiceError(message, status=status, provider=provider)
    if 400 <= status < 500:
        return InvalidRequestError(message, status=status, provider=provider)
    return ProviderError(message, status=status, provider=provider)


def error_from_message(message: str, provider: str) -> ProviderError:
    """Best-effort classification of an error that carries only text."""
    lowered = message.lower()
    if "rate limit" in lowered or "too many requests" in lowered:
        return RateLimitError(message, provider=provider)
    if any(s in lowered for s in ("unauthorized", "invalid api key", "authentication")):
        return AuthError(message, provider=provider)
    if any(s in lowered for s in ("overloaded", "capacity", "service unavailable")):
        return ServiceError(message, provider=provider)
    return ProviderError(message, provider=provider)


def translate_error(exc: BaseException, provider: str) -> ProviderError:
    """Convert any SDK/transport exception into a ProviderError.

    Uses duck typing (status_code / code attributes) for HTTP errors so it
    works with openai, anthropic and google-genai alike.
    """
    if isinstance(exc, ProviderError):
        return exc

    message = str(exc) or exc.__class__.__name__

    if isinstance(exc, _TIMEOUT_EXCEPTIONS):
        return RequestTimeoutError(message, provider=provider)
    if isinstance(exc, _CONNECTION_EXCEPTIONS):
        return NetworkError(message, provider=provider)

    # anthropic.APIStatusError, openai.APIStatusError
    status = getattr(exc, "status_code", None)
    if not isinstance(status, int):
        # google.genai.errors.APIError (.code attribute)
        status = getattr(exc, "code", None)
    if isinstance(status, int):
        return error_for_status(status, message, provider)

    return error_from_message(message, provider)
