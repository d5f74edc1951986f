"""Operator endpoints: diagnostic mode, provider health, error report."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response

from tutor_gateway.api.deps import get_diagnostics, get_health_runner
from tutor_gateway.api.schemas import (
    DiagnosticsStatusResponse,
    DiagnosticsToggleRequest,
)
from tutor_gateway.auth.context import OPERATOR_ROLES, CallerContext
from tutor_gateway.auth.roles import require_role
from tutor_gateway.llm.diagnostics import Diagnostics
from tutor_gateway.llm.health import HealthCheckRunner, HealthReport

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", tags=["admin"])

_operator = Depends(require_role(*OPERATOR_ROLES))
_diagnostics = Depends(get_diagnostics)
_health_runner = Depends(get_health_runner)


def _status(diagnostics: Diagnostics) -> DiagnosticsStatusResponse:
    return DiagnosticsStatusResponse(
        enabled=diagnostics.diagnostic_mode,
        error_count=len(diagnostics.records),
    )


@router.get("/diagnostics", response_model=DiagnosticsStatusResponse)
async def get_diagnostic_mode(
    caller: CallerContext = _operator,
    diagnostics: Diagnostics = _diagnostics,
) -> DiagnosticsStatusResponse:
    return _status(diagnostics)


@router.put("/diagnostics", response_model=DiagnosticsStatusResponse)
async def set_diagnostic_mode(
    body: DiagnosticsToggleRequest,
    caller: CallerContext = _operator,
    diagnostics: Diagnostics = _diagnostics,
) -> DiagnosticsStatusResponse:
    """Switch diagnostic mode on or off; the flag survives restarts."""
    if body.enabled:
        diagnostics.enable_diagnostic_mode()
    else:
        diagnostics.disable_diagnostic_mode()
    logger.info(
        "diagnostic_mode_toggled",
        enabled=body.enabled,
        role=str(caller.role),
        key_prefix=caller.key_prefix,
    )
    return _status(diagnostics)


@router.post("/health-check", response_model=HealthReport)
async def run_health_check(
    caller: CallerContext = _operator,
    runner: HealthCheckRunner = _health_runner,
) -> HealthReport:
    """Probe every provider with a canned prompt."""
    return await runner.test_all()


@router.get("/error-report")
async def download_error_report(
    caller: CallerContext = _operator,
    diagnostics: Diagnostics = _diagnostics,
) -> Response:
    """Error report as a downloadable JSON attachment."""
    filename = diagnostics.report_filename()
    return Response(
        content=diagnostics.export_report_json(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/error-report", status_code=204)
async def clear_error_report(
    caller: CallerContext = _operator,
    diagnostics: Diagnostics = _diagnostics,
) -> Response:
    """Clear the persisted error log."""
    diagnostics.clear_error_log()
    logger.info("error_log_cleared_via_api", key_prefix=caller.key_prefix)
    return Response(status_code=204)
