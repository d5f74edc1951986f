"""Tests for the retry orchestrator: classification, backoff, state machine."""

from unittest.mock import AsyncMock

import pytest

from tutor_gateway.errors import (
    AuthError,
    InvalidRequestError,
    NetworkError,
    ProviderError,
    RateLimitError,
    RetryExhaustedError,
    ServiceError,
)
from tutor_gateway.llm.families import ModelFamily
from tutor_gateway.llm.retry import (
    DEFAULT_POLICY,
    FAMILY_POLICIES,
    JITTER_MS,
    Failed,
    Retrying,
    RetryPolicy,
    is_retryable,
    next_state_after_failure,
    select_policy,
    with_retry,
)

# -- test helpers -------------------------------------------------------


class _Recorder:
    """Injected sleep that records requested delays (seconds)."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class _StatusError(Exception):
    """SDK-like error exposing only a status attribute."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


def _no_jitter() -> float:
    return 0.0


class TestRetryPolicy:
    def test_defaults(self) -> None:
        p = RetryPolicy()
        assert (p.max_retries, p.base_delay_ms, p.max_delay_ms) == (3, 1000, 10_000)
        assert p.backoff_factor == 2.0
        assert 429 in p.retryable_status_codes
        assert "ECONNRESET" in p.retryable_error_codes

    def test_backoff_grows_then_caps(self) -> None:
        p = RetryPolicy(base_delay_ms=1000, max_delay_ms=5000, backoff_factor=2)
        delays = [p.backoff_ms(n) for n in range(1, 6)]
        assert delays == [1000, 2000, 4000, 5000, 5000]
        assert delays == sorted(delays)

    def test_zero_attempts_rejected(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=0)


class TestSelectPolicy:
    def test_family_policy(self) -> None:
        assert select_policy("gemini-2.5-pro") is FAMILY_POLICIES[ModelFamily.GEMINI]
        assert select_policy("gpt-5-nano-2025-08-07").max_delay_ms == 8000

    def test_mini_not_shadowed_by_gpt5(self) -> None:
        assert (
            select_policy("gpt-5-mini-2025-08-07")
            is FAMILY_POLICIES[ModelFamily.GPT5_MINI]
        )

    def test_unknown_model_gets_default(self) -> None:
        assert select_policy("gpt-4o-mini") is DEFAULT_POLICY


class TestIsRetryable:
    @pytest.mark.parametrize(
        "exc",
        [
            RateLimitError("429"),
            NetworkError("socket closed"),
            ServiceError("overloaded"),
            ProviderError("reset", code="ECONNRESET"),
            _StatusError("bad gateway", 502),
            _StatusError("request timeout", 408),
            Exception("fetch failed"),
            Exception("Service Unavailable"),
        ],
    )
    def test_transient(self, exc: Exception) -> None:
        assert is_retryable(exc, DEFAULT_POLICY) is True

    @pytest.mark.parametrize(
        "exc",
        [
            AuthError("401 Unauthorized", status=401),
            InvalidRequestError("400 bad request", status=400),
            _StatusError("forbidden", 403),
            Exception("something odd"),
        ],
    )
    def test_permanent(self, exc: Exception) -> None:
        assert is_retryable(exc, DEFAULT_POLICY) is False

    def test_terminal_class_wins_over_message(self) -> None:
        """An auth error mentioning a timeout is still permanent."""
        err = AuthError("token validation timeout", status=401)
        assert is_retryable(err, DEFAULT_POLICY) is False

    def test_policy_codes_respected(self) -> None:
        policy = RetryPolicy(retryable_status_codes=frozenset({418}))
        assert is_retryable(_StatusError("teapot", 418), policy) is True
        assert is_retryable(_StatusError("x", 503), policy) is False


class TestNextStateAfterFailure:
    def test_retrying_with_backoff_plus_jitter(self) -> None:
        state = next_state_after_failure(1, RateLimitError("429"), DEFAULT_POLICY, 250)
        assert isinstance(state, Retrying)
        assert state.next_attempt == 2
        assert state.delay_ms == 1250

    def test_exhausted_at_budget(self) -> None:
        state = next_state_after_failure(3, RateLimitError("429"), DEFAULT_POLICY)
        assert state == Failed(attempt=3, error=state.error, exhausted=True)

    def test_permanent_fails_immediately(self) -> None:
        state = next_state_after_failure(1, AuthError("401"), DEFAULT_POLICY)
        assert isinstance(state, Failed)
        assert state.exhausted is False

    def test_delay_bounded(self) -> None:
        for attempt in range(1, 3):
            state = next_state_after_failure(
                attempt, RateLimitError("429"), DEFAULT_POLICY, JITTER_MS - 1
            )
            assert isinstance(state, Retrying)
            assert state.delay_ms < DEFAULT_POLICY.max_delay_ms + JITTER_MS


class TestWithRetry:
    async def test_success_first_attempt(self) -> None:
        op = AsyncMock(return_value="ok")
        sleep = _Recorder()
        assert await with_retry(op, DEFAULT_POLICY, sleep=sleep) == "ok"
        assert op.await_count == 1
        assert sleep.delays == []

    async def test_rate_limit_then_success(self) -> None:
        """Two 429s then success: exactly two sleeps, growing delays."""
        op = AsyncMock(
            side_effect=[RateLimitError("429"), RateLimitError("429"), "ok"]
        )
        sleep = _Recorder()
        policy = RetryPolicy(max_retries=3, base_delay_ms=1000, backoff_factor=2)
        result = await with_retry(op, policy, sleep=sleep, rng=_no_jitter)
        assert result == "ok"
        assert op.await_count == 3
        assert sleep.delays == [1.0, 2.0]

    async def test_auth_error_not_retried(self) -> None:
        err = AuthError("401 Unauthorized", status=401)
        op = AsyncMock(side_effect=err)
        sleep = _Recorder()
        with pytest.raises(AuthError) as exc_info:
            await with_retry(op, DEFAULT_POLICY, sleep=sleep)
        assert exc_info.value is err
        assert op.await_count == 1
        assert sleep.delays == []

    async def test_exhaustion_wraps_last_error(self) -> None:
        errors = [ServiceError("503 a"), ServiceError("503 b"), ServiceError("503 c")]
        op = AsyncMock(side_effect=errors)
        sleep = _Recorder()
        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(op, DEFAULT_POLICY, sleep=sleep, rng=_no_jitter)
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is errors[2]
        assert exc_info.value.__cause__ is errors[2]
        assert op.await_count == DEFAULT_POLICY.max_retries
        assert len(sleep.delays) == 2

    async def test_single_attempt_policy(self) -> None:
        op = AsyncMock(side_effect=NetworkError("ECONNRESET"))
        sleep = _Recorder()
        with pytest.raises(RetryExhaustedError):
            await with_retry(op, RetryPolicy(max_retries=1), sleep=sleep)
        assert op.await_count == 1
        assert sleep.delays == []

    async def test_jitter_applied(self) -> None:
        op = AsyncMock(side_effect=[NetworkError("x"), "ok"])
        sleep = _Recorder()
        await with_retry(op, DEFAULT_POLICY, sleep=sleep, rng=lambda: 0.5)
        assert sleep.delays == [pytest.approx(1.5)]
