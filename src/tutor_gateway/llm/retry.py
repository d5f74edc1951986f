"""Retry orchestration with exponential backoff and jitter.

The loop is an explicit state machine::

    Attempting -> Succeeded
               -> Retrying(delay) -> Attempting
               -> Failed

next_state_after_failure() is the pure transition; with_retry() only
runs the operation and performs the suspending wait.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tutor_gateway.errors import ProviderError, RetryExhaustedError
from tutor_gateway.llm.families import ModelFamily, detect_family

logger = structlog.get_logger()

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

JITTER_MS = 1000

RETRYABLE_MESSAGE_FRAGMENTS: tuple[str, ...] = (
    "network",
    "timeout",
    "fetch failed",
    "connection",
    "rate limit",
    "too many requests",
    "service unavailable",
    "gateway",
)

DEFAULT_RETRYABLE_ERROR_CODES: frozenset[str] = frozenset(
    {
        "ECONNRESET",
        "ENOTFOUND",
        "ECONNREFUSED",
        "ETIMEDOUT",
        "network_error",
        "timeout",
        "rate_limited",
        "service_unavailable",
    }
)

DEFAULT_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset(
    {408, 429, 500, 502, 503, 504}
)


class RetryPolicy(BaseModel):
    """Retry budget for one model family. Read-only after creation."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=1)  # total attempts
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=10_000, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    retryable_error_codes: frozenset[str] = DEFAULT_RETRYABLE_ERROR_CODES
    retryable_status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS_CODES

    def backoff_ms(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt``, without jitter."""
        delay = self.base_delay_ms * self.backoff_factor ** (attempt - 1)
        return min(delay, self.max_delay_ms)


DEFAULT_POLICY = RetryPolicy()

FAMILY_POLICIES: dict[ModelFamily, RetryPolicy] = {
    ModelFamily.GPT5_NANO: RetryPolicy(base_delay_ms=1200, max_delay_ms=8000),
    ModelFamily.GPT5_MINI: RetryPolicy(base_delay_ms=1500, max_delay_ms=10_000),
    ModelFamily.GPT5: RetryPolicy(base_delay_ms=1500, max_delay_ms=10_000),
    ModelFamily.CLAUDE: RetryPolicy(base_delay_ms=1500, max_delay_ms=10_000),
    # large Gemini Pro contexts recover slowly
    ModelFamily.GEMINI: RetryPolicy(base_delay_ms=2000, max_delay_ms=15_000),
    ModelFamily.SONAR: RetryPolicy(base_delay_ms=2000, max_delay_ms=10_000),
}


def select_policy(model_id: str) -> RetryPolicy:
    """Pick the retry policy of the model's family, or the default one."""
    return FAMILY_POLICIES.get(detect_family(model_id), DEFAULT_POLICY)


def is_retryable(exc: BaseException, policy: RetryPolicy) -> bool:
    """Classify an exception as transient (retry) or permanent (raise now).

    Structured classification wins: terminal ProviderErrors (auth,
    invalid request) are never retried even if their text mentions a
    timeout. Otherwise the error code, the status code and finally the
    message text are checked against the policy.
    """
    if isinstance(exc, ProviderError) and exc.terminal:
        return False

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in policy.retryable_error_codes:
        return True

    status = getattr(exc, "status", None)
    if isinstance(status, int) and status in policy.retryable_status_codes:
        return True

    message = str(exc).lower()
    return any(fragment in message for fragment in RETRYABLE_MESSAGE_FRAGMENTS)


# -- states ---------------------------------------------------------------


@dataclass(frozen=True)
class Attempting:
    attempt: int


@dataclass(frozen=True)
class Retrying:
    next_attempt: int
    delay_ms: float
    error: BaseException


@dataclass(frozen=True)
class Succeeded:
    attempt: int
    value: Any


@dataclass(frozen=True)
class Failed:
    attempt: int
    error: BaseException
    exhausted: bool


RetryState = Attempting | Retrying | Succeeded | Failed


def next_state_after_failure(
    attempt: int,
    error: BaseException,
    policy: RetryPolicy,
    jitter_ms: float = 0.0,
) -> Retrying | Failed:
    """Pure transition out of a failed attempt.

    Args:
        attempt: 1-based number of the attempt that just failed.
        error: What the attempt raised.
        policy: Retry budget in force.
        jitter_ms: Random addition in ``[0, JITTER_MS)`` supplied by caller.
    """
    if not is_retryable(error, policy):
        return Failed(attempt=attempt, error=error, exhausted=False)
    if attempt >= policy.max_retries:
        return Failed(attempt=attempt, error=error, exhausted=True)
    return Retrying(
        next_attempt=attempt + 1,
        delay_ms=policy.backoff_ms(attempt) + jitter_ms,
        error=error,
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    rng: Callable[[], float] = random.random,
    label: str = "",
) -> T:
    """Run operation under policy.

    Raises:
        RetryExhaustedError: all ``max_retries`` attempts failed with
            retryable errors.
        Exception: the first non-retryable error, unchanged.
    """
    state: RetryState = Attempting(attempt=1)
    while True:
        if isinstance(state, Attempting):
            try:
                value = await operation()
            except Exception as exc:
                state = next_state_after_failure(
                    state.attempt, exc, policy, rng() * JITTER_MS
                )
            else:
                state = Succeeded(attempt=state.attempt, value=value)

        elif isinstance(state, Retrying):
            logger.warning(
                "retry_scheduled",
                operation=label,
                next_attempt=state.next_attempt,
                max_retries=policy.max_retries,
                delay_ms=round(state.delay_ms),
                error=str(state.error),
            )
            await sleep(state.delay_ms / 1000)
            state = Attempting(attempt=state.next_attempt)

        elif isinstance(state, Succeeded):
            if state.attempt > 1:
                logger.info("retry_succeeded", operation=label, attempt=state.attempt)
            return state.value  # type: ignore[no-any-return]

        else:
            if state.exhausted:
                logger.warning(
                    "retry_exhausted",
                    operation=label,
                    attempts=state.attempt,
                    error=str(state.error),
                )
                raise RetryExhaustedError(state.error, state.attempt) from state.error
            logger.info(
                "retry_skipped_permanent_error",
                operation=label,
                attempt=state.attempt,
                error=str(state.error),
            )
            raise state.error
