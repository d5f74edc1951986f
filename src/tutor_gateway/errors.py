"""Error taxonomy for provider calls and the unified chat entry point.

Adapters raise ProviderError subclasses; the retry orchestrator decides
from them whether another attempt can help; the chat router wraps the
terminal failure into ChatCompletionError with a user-facing sentence.
"""

from __future__ import annotations


class ProviderError(Exception):
    """Failure of a single provider call.

    Attributes:
        message: Provider-supplied error text.
        status: HTTP-like status code, when one is known.
        code: Transport or provider error code (``ECONNRESET``, ``timeout``...).
        provider: Id of the provider that failed.
    """

    #: Terminal errors are never retried, whatever their status or text says.
    terminal: bool = False
    default_status: int | None = None
    default_code: str | None = None

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        provider: str = "",
    ) -> None:
        self.message = message
        self.status = status if status is not None else self.default_status
        self.code = code if code is not None else self.default_code
        self.provider = provider
        super().__init__(message)


class NetworkError(ProviderError):
    """Connectivity failure: DNS, refused or reset connection."""

    default_code = "network_error"


class RequestTimeoutError(ProviderError):
    """A single attempt exceeded its deadline."""

    default_status = 408
    default_code = "timeout"


class RateLimitError(ProviderError):
    """Provider rejected the call with 429 or rate-limit phrasing."""

    default_status = 429
    default_code = "rate_limited"


class AuthError(ProviderError):
    """Missing, invalid or unauthorized API key."""

    terminal = True


class ServiceError(ProviderError):
    """Provider-side failure: 5xx, overloaded, empty response."""

    default_code = "service_unavailable"


class InvalidRequestError(ProviderError):
    """400-class rejection of the request itself."""

    terminal = True


class RetryExhaustedError(Exception):
    """Every attempt allowed by the retry policy failed."""

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


class ChatCompletionError(Exception):
    """Terminal chat failure carrying a message safe to show to end users.

    ``str(exc)`` is the user-facing sentence; ``original`` keeps the
    underlying exception for debugging and diagnostics.
    """

    def __init__(
        self,
        user_message: str,
        *,
        tool_name: str,
        original: BaseException,
    ) -> None:
        self.user_message = user_message
        self.tool_name = tool_name
        self.original = original
        super().__init__(user_message)


def root_cause(error: BaseException) -> BaseException:
    """Unwrap RetryExhaustedError to the error of the last attempt."""
    if isinstance(error, RetryExhaustedError):
        return error.last_error
    return error


def user_facing_message(error: BaseException, tool_name: str) -> str:
    """Translate a failure into one sentence naming the tool.

    Never includes the raw exception text.
    """
    cause = root_cause(error)
    if isinstance(cause, RateLimitError):
        return (
            f"{tool_name} is receiving too many requests right now; "
            "please wait a moment and try again."
        )
    if isinstance(cause, RequestTimeoutError):
        return (
            f"{tool_name} took too long to respond; "
            "try a simpler prompt or a different model."
        )
    if isinstance(cause, AuthError):
        return (
            f"{tool_name} is unavailable because of a configuration issue; "
            "please contact support."
        )
    if isinstance(cause, NetworkError):
        return (
            f"Could not reach {tool_name}; "
            "please check your internet connection and try again."
        )
    if isinstance(cause, ServiceError):
        return (
            f"{tool_name} is temporarily unavailable; "
            "please try again in a moment."
        )
    if isinstance(cause, InvalidRequestError):
        return (
            f"{tool_name} could not process this request; "
            "please rephrase your prompt and try again."
        )
    return (
        f"{tool_name} failed to respond; "
        "please try again or choose a different model."
    )
