"""Operator CLI for the chat gateway.

Usage::

    uv run python -m scripts.ai_ops <command> [options]

Commands:
    health              Probe every configured provider with a canned prompt
    diagnostics         Turn diagnostic mode on/off or show its status
    report              Export the error report as JSON
    clear-log           Clear the persisted error log
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable
from pathlib import Path

from tutor_gateway.config import settings
from tutor_gateway.llm.diagnostics import Diagnostics, FileDiagnosticsStore
from tutor_gateway.llm.factory import create_providers
from tutor_gateway.llm.health import HealthCheckRunner, HealthReport


def get_diagnostics() -> Diagnostics:
    """Diagnostics over the same directory the API process persists to."""
    return Diagnostics(FileDiagnosticsStore(settings.diagnostics_dir))


def format_health(report: HealthReport) -> str:
    """Format a health report as an ASCII table and return the string."""
    lines = [
        f"Providers: {report.total}  ok: {report.successful}  "
        f"failed: {report.failed}  avg: {report.average_duration_ms} ms",
        "",
        f"  {'Provider':<12} {'Model':<28} {'Status':<7} {'ms':>7}  Detail",
    ]
    for r in report.results:
        status = "ok" if r.success else "FAIL"
        detail = r.response_text if r.success else r.error_message
        lines.append(
            f"  {r.provider_id:<12} {r.model_id:<28} {status:<7} "
            f"{r.duration_ms:>7}  {(detail or '').strip()[:60]}"
        )
    return "\n".join(lines)


def health(args: argparse.Namespace) -> None:
    """Run the provider health check; exit 1 when any provider failed."""
    runner = HealthCheckRunner(
        create_providers(settings),
        timeout_ms=args.timeout_ms,
    )
    report = asyncio.run(runner.test_all())
    if args.json_output:
        print(report.model_dump_json(indent=2))
    else:
        print(format_health(report))
    if report.failed:
        sys.exit(1)


def diagnostics(args: argparse.Namespace) -> None:
    """Toggle or show diagnostic mode."""
    diag = get_diagnostics()
    if args.action == "on":
        diag.enable_diagnostic_mode()
    elif args.action == "off":
        diag.disable_diagnostic_mode()
    state = "on" if diag.diagnostic_mode else "off"
    print(f"Diagnostic mode: {state} ({len(diag.records)} errors logged)")


def report(args: argparse.Namespace) -> None:
    """Print the error report, or write it to --output."""
    diag = get_diagnostics()
    payload = diag.export_report_json()
    if args.output is None:
        print(payload)
        return
    output: Path = args.output
    if output.is_dir():
        output = output / diag.report_filename()
    output.write_text(payload, encoding="utf-8")
    print(f"Error report written: {output}")


def clear_log(_args: argparse.Namespace) -> None:
    """Clear the persisted error log."""
    diag = get_diagnostics()
    count = len(diag.records)
    diag.clear_error_log()
    print(f"Cleared {count} error records")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(description="Chat gateway operator CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    # health
    p = sub.add_parser("health", help="Probe every configured provider")
    p.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON instead of ASCII table",
    )
    p.add_argument(
        "--timeout-ms",
        type=int,
        default=settings.health_check_timeout_ms,
        help="Per-provider deadline",
    )

    # diagnostics
    p = sub.add_parser("diagnostics", help="Diagnostic mode")
    p.add_argument("action", choices=["on", "off", "status"])

    # report
    p = sub.add_parser("report", help="Export the error report")
    p.add_argument(
        "--output",
        type=Path,
        default=None,
        help="File or directory to write the JSON report to",
    )

    # clear-log
    sub.add_parser("clear-log", help="Clear the error log")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to command handler."""
    args = build_parser().parse_args(argv)
    commands: dict[str, Callable[[argparse.Namespace], None]] = {
        "health": health,
        "diagnostics": diagnostics,
        "report": report,
        "clear-log": clear_log,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
