"""Error classification and diagnostic logging for chat calls.

Diagnostics owns the bounded error log (FIFO ring buffer of the last
100 failures) and the diagnostic-mode flag. Both are persisted through a
DiagnosticsStore so they survive restarts until explicitly cleared.

Store errors are logged and swallowed -- a chat call is never
interrupted by a diagnostics write. On the event loop, use
log_error_async() so the file write runs in a worker thread.
"""

import abc
import asyncio
import json
import traceback
from collections import Counter, deque
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from tutor_gateway.errors import (
    AuthError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
)

logger = structlog.get_logger()

ERROR_LOG_CAPACITY = 100
RECENT_ERRORS_LIMIT = 10
MODEL_FAILURE_THRESHOLD = 3
DEBUG_ACTIVATION_VALUE = "true"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ErrorContext(BaseModel):
    model_id: str = "unknown"
    provider_id: str = "unknown"
    tool_name: str = ""
    prompt_length: int = 0
    history_length: int = 0
    duration_ms: int | None = None
    online: bool = True
    network_type: str | None = None


class ErrorRecord(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    message: str
    stack: str | None = None
    context: ErrorContext = Field(default_factory=ErrorContext)
    kind: str = "Error"


class ErrorPattern(BaseModel):
    type: str
    count: int
    message: str
    model: str | None = None


class ErrorReport(BaseModel):
    total_errors: int
    errors_by_model: dict[str, int]
    errors_by_provider: dict[str, int]
    errors_by_type: dict[str, int]
    recent_errors: list[ErrorRecord]
    common_patterns: list[ErrorPattern]
    generated_at: datetime = Field(default_factory=_utcnow)


class ApiCallRequestInfo(BaseModel):
    model_id: str
    provider_id: str
    tool_name: str = ""
    prompt_length: int = 0
    history_length: int = 0
    stream: bool = False


class ApiCallResponseInfo(BaseModel):
    success: bool
    status_code: int | None = None
    has_content: bool = False
    content_length: int = 0
    error: str | None = None


class ApiCallEntry(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    duration_ms: int
    request: ApiCallRequestInfo
    response: ApiCallResponseInfo


_RECORDS_ADAPTER = TypeAdapter(list[ErrorRecord])


# -- persistence ----------------------------------------------------------


class DiagnosticsStore(abc.ABC):
    """Durable home of the error log and the diagnostic-mode flag."""

    @abc.abstractmethod
    def load_errors(self) -> list[ErrorRecord]: ...

    @abc.abstractmethod
    def save_errors(self, records: Iterable[ErrorRecord]) -> None: ...

    @abc.abstractmethod
    def load_flag(self) -> bool: ...

    @abc.abstractmethod
    def save_flag(self, enabled: bool) -> None: ...


class InMemoryDiagnosticsStore(DiagnosticsStore):
    """Process-local store, used in tests and when no directory is set."""

    def __init__(
        self,
        records: Iterable[ErrorRecord] = (),
        *,
        diagnostic_mode: bool = False,
    ) -> None:
        self.records: list[ErrorRecord] = list(records)
        self.diagnostic_mode = diagnostic_mode

    def load_errors(self) -> list[ErrorRecord]:
        return list(self.records)

    def save_errors(self, records: Iterable[ErrorRecord]) -> None:
        self.records = list(records)

    def load_flag(self) -> bool:
        return self.diagnostic_mode

    def save_flag(self, enabled: bool) -> None:
        self.diagnostic_mode = enabled


class FileDiagnosticsStore(DiagnosticsStore):
    """JSON error log plus a marker file for diagnostic mode.

    Layout::

        <directory>/error_log.json
        <directory>/diagnostic_mode      (exists while the mode is on)
    """

    ERROR_LOG_FILE = "error_log.json"
    FLAG_FILE = "diagnostic_mode"

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def error_log_path(self) -> Path:
        return self._directory / self.ERROR_LOG_FILE

    @property
    def flag_path(self) -> Path:
        return self._directory / self.FLAG_FILE

    def load_errors(self) -> list[ErrorRecord]:
        if not self.error_log_path.exists():
            return []
        return _RECORDS_ADAPTER.validate_json(
            self.error_log_path.read_bytes()
        )

    def save_errors(self, records: Iterable[ErrorRecord]) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        self.error_log_path.write_bytes(_RECORDS_ADAPTER.dump_json(list(records)))

    def load_flag(self) -> bool:
        return self.flag_path.exists()

    def save_flag(self, enabled: bool) -> None:
        if enabled:
            self._directory.mkdir(parents=True, exist_ok=True)
            self.flag_path.touch()
        else:
            self.flag_path.unlink(missing_ok=True)


# -- pattern detection ----------------------------------------------------

_PatternRule = tuple[str, str, Callable[[ErrorRecord], bool]]


def _message_has(record: ErrorRecord, *needles: str) -> bool:
    message = record.message.lower()
    return any(n in message for n in needles)


_PATTERN_RULES: tuple[_PatternRule, ...] = (
    (
        "Network Issues",
        "Detected network connectivity problems",
        lambda r: (
            not r.context.online
            or r.kind == NetworkError.__name__
            or _message_has(r, "network", "fetch")
        ),
    ),
    (
        "Rate Limiting",
        "API rate limits being hit",
        lambda r: r.kind == RateLimitError.__name__
        or _message_has(r, "rate", "429", "limit"),
    ),
    (
        "Authentication",
        "API key or authentication issues",
        lambda r: r.kind == AuthError.__name__
        or _message_has(r, "401", "403", "unauthorized", "authentication"),
    ),
    (
        "Timeouts",
        "Requests taking too long to complete",
        lambda r: r.kind == RequestTimeoutError.__name__
        or _message_has(r, "timeout", "timed out"),
    ),
)


def find_common_patterns(records: Iterable[ErrorRecord]) -> list[ErrorPattern]:
    """Detect recurring failure patterns in a set of error records."""
    records = list(records)
    patterns: list[ErrorPattern] = []

    for pattern_type, message, matches in _PATTERN_RULES:
        count = sum(1 for r in records if matches(r))
        if count:
            patterns.append(
                ErrorPattern(type=pattern_type, count=count, message=message)
            )

    per_model = Counter(r.context.model_id for r in records)
    for model_id, count in per_model.items():
        if count >= MODEL_FAILURE_THRESHOLD:
            patterns.append(
                ErrorPattern(
                    type="Model-Specific",
                    count=count,
                    message=f"{model_id} experiencing repeated failures",
                    model=model_id,
                )
            )
    return patterns


# -- diagnostics context --------------------------------------------------


class Diagnostics:
    """Owned diagnostics context: error ring buffer + diagnostic-mode flag.

    Held by ChatRouter; the operator API and CLI reach it through the
    router. All mutations are plain appends/flag flips, so concurrent
    asyncio tasks never observe a half-applied write.
    """

    def __init__(
        self,
        store: DiagnosticsStore | None = None,
        *,
        capacity: int = ERROR_LOG_CAPACITY,
    ) -> None:
        self._store = store or InMemoryDiagnosticsStore()
        self._records: deque[ErrorRecord] = deque(
            self._load_persisted(), maxlen=capacity
        )
        self._diagnostic_mode = self._load_flag()
        self._persist_lock = asyncio.Lock()

    # -- diagnostic mode ------------------------------------------------

    @property
    def diagnostic_mode(self) -> bool:
        return self._diagnostic_mode

    def enable_diagnostic_mode(self) -> None:
        self._diagnostic_mode = True
        self._persist_flag()
        logger.info("ai_diagnostic_mode_enabled")

    def disable_diagnostic_mode(self) -> None:
        self._diagnostic_mode = False
        self._persist_flag()
        logger.info("ai_diagnostic_mode_disabled")

    def activate_from_param(self, value: str | None) -> bool:
        """Enable diagnostic mode when a ``debug=true`` parameter is seen.

        The activation is persisted, so the parameter only needs to be
        passed once. Returns the resulting mode.
        """
        if (
            value is not None
            and value.strip().lower() == DEBUG_ACTIVATION_VALUE
            and not self._diagnostic_mode
        ):
            self.enable_diagnostic_mode()
        return self._diagnostic_mode

    # -- error log --------------------------------------------------------

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def log_error(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
    ) -> ErrorRecord:
        """Append a failure to the ring buffer and persist it."""
        record = self._append_error(error, context)
        self._persist_records()
        return record

    async def log_error_async(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
    ) -> ErrorRecord:
        """log_error() for async callers; persistence runs off the loop.

        Writes are serialized and each one saves the buffer as it stands
        when the write starts, so the last write always wins.
        """
        record = self._append_error(error, context)
        async with self._persist_lock:
            await asyncio.to_thread(self._persist_records, list(self._records))
        return record

    def _append_error(
        self,
        error: BaseException,
        context: ErrorContext | None,
    ) -> ErrorRecord:
        stack = None
        if error.__traceback__ is not None:
            stack = "".join(traceback.format_exception(error))
        record = ErrorRecord(
            message=str(error) or error.__class__.__name__,
            stack=stack,
            context=context or ErrorContext(),
            kind=error.__class__.__name__,
        )
        self._records.append(record)

        if self._diagnostic_mode:
            logger.error(
                "ai_error_logged",
                model=record.context.model_id,
                error=record.message,
                kind=record.kind,
                context=record.context.model_dump(),
                stack=record.stack,
            )
        else:
            logger.error(
                "ai_error_logged",
                model=record.context.model_id,
                error=record.message,
            )
        return record

    def log_api_call(
        self,
        request: ApiCallRequestInfo,
        response: ApiCallResponseInfo,
        duration_ms: int,
    ) -> ApiCallEntry | None:
        """Emit a structured API-call entry; no-op outside diagnostic mode."""
        if not self._diagnostic_mode:
            return None
        entry = ApiCallEntry(
            duration_ms=duration_ms,
            request=request,
            response=response,
        )
        logger.info(
            "ai_api_call",
            model=request.model_id,
            duration_ms=duration_ms,
            request=request.model_dump(),
            response=response.model_dump(),
        )
        return entry

    def clear_error_log(self) -> None:
        self._records.clear()
        self._persist_records()
        logger.info("ai_error_log_cleared")

    # -- reporting --------------------------------------------------------

    def get_error_report(self) -> ErrorReport:
        records = list(self._records)
        return ErrorReport(
            total_errors=len(records),
            errors_by_model=dict(Counter(r.context.model_id for r in records)),
            errors_by_provider=dict(Counter(r.context.provider_id for r in records)),
            errors_by_type=dict(Counter(r.kind for r in records)),
            recent_errors=records[-RECENT_ERRORS_LIMIT:],
            common_patterns=find_common_patterns(records),
        )

    def export_report_json(self) -> str:
        """Pretty-printed JSON of the current error report."""
        report = self.get_error_report()
        return json.dumps(report.model_dump(mode="json"), indent=2)

    @staticmethod
    def report_filename(now: datetime | None = None) -> str:
        stamp = (now or _utcnow()).strftime("%Y-%m-%dT%H-%M-%SZ")
        return f"ai-error-report-{stamp}.json"

    # -- persistence helpers ---------------------------------------------

    def _load_persisted(self) -> list[ErrorRecord]:
        try:
            return self._store.load_errors()
        except (OSError, ValidationError, ValueError):
            logger.warning("ai_error_log_load_failed", exc_info=True)
            return []

    def _load_flag(self) -> bool:
        try:
            return self._store.load_flag()
        except OSError:
            logger.warning("ai_diagnostic_flag_load_failed", exc_info=True)
            return False

    def _persist_records(self, records: Iterable[ErrorRecord] | None = None) -> None:
        try:
            self._store.save_errors(self._records if records is None else records)
        except OSError:
            logger.warning("ai_error_log_persist_failed", exc_info=True)

    def _persist_flag(self) -> None:
        try:
            self._store.save_flag(self._diagnostic_mode)
        except OSError:
            logger.warning("ai_diagnostic_flag_persist_failed", exc_info=True)
