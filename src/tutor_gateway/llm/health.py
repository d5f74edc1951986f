"""Provider health checks: one canned prompt per provider, concurrently."""

import asyncio
import time
from collections.abc import Mapping
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, Field

from tutor_gateway.llm.providers.base import ChatProvider
from tutor_gateway.llm.schemas import Message, Role
from tutor_gateway.llm.tools import ProviderId

logger = structlog.get_logger()

HEALTH_CHECK_PROMPT = 'Say "OK" if you can read this.'
HEALTH_CHECK_SYSTEM_PROMPT = "You are a helpful assistant."

DEFAULT_PROBE_MODELS: dict[ProviderId, str] = {
    ProviderId.OPENAI: "gpt-5-mini-2025-08-07",
    ProviderId.ANTHROPIC: "claude-sonnet-4-20250514",
    ProviderId.GOOGLE: "gemini-2.5-flash",
    ProviderId.PERPLEXITY: "sonar",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class HealthCheckResult(BaseModel):
    provider_id: str
    model_id: str
    success: bool
    duration_ms: int
    response_text: str | None = None
    error_message: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthReport(BaseModel):
    total: int
    successful: int
    failed: int
    average_duration_ms: int
    timestamp: datetime = Field(default_factory=_utcnow)
    results: list[HealthCheckResult]


class HealthCheckRunner:
    """Fans a canned prompt out to every probed provider.

    Each probe catches its own failure, so one broken provider never
    aborts the others. Probes go straight to the adapters: no retries.
    """

    def __init__(
        self,
        providers: Mapping[ProviderId, ChatProvider],
        probe_models: Mapping[ProviderId, str] | None = None,
        *,
        timeout_ms: int = 30_000,
    ) -> None:
        self._providers = providers
        self._probe_models = dict(
            DEFAULT_PROBE_MODELS if probe_models is None else probe_models
        )
        self._timeout_ms = timeout_ms

    async def test_all(self) -> HealthReport:
        """Probe all providers concurrently and aggregate the outcome."""
        results = list(
            await asyncio.gather(
                *(
                    self.test_provider(provider_id, model_id)
                    for provider_id, model_id in self._probe_models.items()
                )
            )
        )
        successful = sum(1 for r in results if r.success)
        report = HealthReport(
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            average_duration_ms=(
                round(sum(r.duration_ms for r in results) / len(results))
                if results
                else 0
            ),
            results=results,
        )
        logger.info(
            "provider_health_check_completed",
            total=report.total,
            successful=report.successful,
            failed=report.failed,
            average_duration_ms=report.average_duration_ms,
        )
        return report

    async def test_provider(
        self,
        provider_id: ProviderId,
        model_id: str,
    ) -> HealthCheckResult:
        """Probe one provider; never raises."""
        messages = [
            Message(role=Role.SYSTEM, content=HEALTH_CHECK_SYSTEM_PROMPT),
            Message(role=Role.USER, content=HEALTH_CHECK_PROMPT),
        ]
        start = time.perf_counter()
        provider = self._providers.get(provider_id)
        try:
            if provider is None:
                raise LookupError(f"{provider_id} API key not configured")
            async with asyncio.timeout(self._timeout_ms / 1000):
                result = await provider.send(messages, model_id, self._timeout_ms)
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
            if isinstance(exc, TimeoutError):
                error = f"timed out after {self._timeout_ms} ms"
            logger.warning(
                "provider_health_check_failed",
                provider=str(provider_id),
                model=model_id,
                error=error,
            )
            return HealthCheckResult(
                provider_id=str(provider_id),
                model_id=model_id,
                success=False,
                duration_ms=_elapsed_ms(start),
                error_message=error,
            )

        return HealthCheckResult(
            provider_id=str(provider_id),
            model_id=model_id,
            success=True,
            duration_ms=_elapsed_ms(start),
            response_text=result.response_text,
        )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
