"""Tests for the operator CLI (scripts/ai_ops.py)."""

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from scripts.ai_ops import build_parser, format_health, main
from tutor_gateway.llm.diagnostics import Diagnostics, FileDiagnosticsStore
from tutor_gateway.llm.health import HealthCheckResult, HealthReport
from tutor_gateway.llm.providers.base import ChatProvider
from tutor_gateway.llm.schemas import InferenceResult
from tutor_gateway.llm.tools import ProviderId


@pytest.fixture()
def diag_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the CLI's diagnostics at a temporary directory."""
    directory = tmp_path / "diag"
    with patch(
        "scripts.ai_ops.get_diagnostics",
        side_effect=lambda: Diagnostics(FileDiagnosticsStore(directory)),
    ):
        yield directory


class TestParser:
    def test_diagnostics_requires_action(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["diagnostics"])

    def test_report_output_path(self) -> None:
        args = build_parser().parse_args(["report", "--output", "out.json"])
        assert args.output == Path("out.json")

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestDiagnosticsCommand:
    def test_on_off_status(
        self, diag_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["diagnostics", "on"])
        assert FileDiagnosticsStore(diag_dir).load_flag() is True
        main(["diagnostics", "status"])
        assert "Diagnostic mode: on" in capsys.readouterr().out
        main(["diagnostics", "off"])
        assert FileDiagnosticsStore(diag_dir).load_flag() is False


class TestReportCommands:
    def test_report_to_stdout(
        self, diag_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        Diagnostics(FileDiagnosticsStore(diag_dir)).log_error(RuntimeError("boom"))
        main(["report"])
        payload = json.loads(capsys.readouterr().out)
        assert payload["total_errors"] == 1

    def test_report_to_directory(self, diag_dir: Path, tmp_path: Path) -> None:
        out_dir = tmp_path / "reports"
        out_dir.mkdir()
        main(["report", "--output", str(out_dir)])
        [written] = list(out_dir.iterdir())
        assert written.name.startswith("ai-error-report-")
        assert json.loads(written.read_text(encoding="utf-8"))["total_errors"] == 0

    def test_clear_log(
        self, diag_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        Diagnostics(FileDiagnosticsStore(diag_dir)).log_error(RuntimeError("boom"))
        main(["clear-log"])
        assert "Cleared 1 error records" in capsys.readouterr().out
        assert Diagnostics(FileDiagnosticsStore(diag_dir)).records == []


class TestHealthCommand:
    def test_failures_exit_nonzero(self, capsys: pytest.CaptureFixture[str]) -> None:
        provider = AsyncMock(spec=ChatProvider)
        provider.send = AsyncMock(
            return_value=InferenceResult(response_text="OK", model_id="m")
        )
        with (
            patch(
                "scripts.ai_ops.create_providers",
                return_value={ProviderId.OPENAI: provider},
            ),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["health", "--json"])
        assert exc_info.value.code == 1
        report = json.loads(capsys.readouterr().out)
        assert (report["total"], report["successful"]) == (4, 1)

    def test_format_health(self) -> None:
        report = HealthReport(
            total=2,
            successful=1,
            failed=1,
            average_duration_ms=150,
            results=[
                HealthCheckResult(
                    provider_id="openai",
                    model_id="gpt-5-mini",
                    success=True,
                    duration_ms=100,
                    response_text="OK",
                ),
                HealthCheckResult(
                    provider_id="google",
                    model_id="gemini-2.5-flash",
                    success=False,
                    duration_ms=200,
                    error_message="timed out after 30000 ms",
                ),
            ],
        )
        table = format_health(report)
        assert "ok: 1" in table
        assert "FAIL" in table
        assert "timed out" in table
