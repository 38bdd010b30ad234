"""
Health check endpoints.

Same reports as the health-check CLI; the verdict maps to 200 or 503.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from runner.health import HealthReport, run_check

from ..logging_config import log_timing
from ..state import get_probe, get_settings


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health")

HTTP_OK = 200
HTTP_UNAVAILABLE = 503


def _respond(report: HealthReport) -> JSONResponse:
    status_code = HTTP_OK if report.healthy else HTTP_UNAVAILABLE
    return JSONResponse(content=report.model_dump(), status_code=status_code)


@router.get("/live")
async def liveness() -> JSONResponse:
    """Liveness probe."""
    return _respond(run_check("live"))


@router.get("/ready")
def readiness() -> JSONResponse:
    """Readiness probe. Runs version commands, so it stays off the event loop."""
    with log_timing(logger, "Readiness check"):
        report = run_check("ready", get_settings(), get_probe())
    if not report.healthy:
        failed = [
            name for name, check in report.checks.items()
            if isinstance(check, dict) and check.get("status") == "unhealthy"
        ]
        logger.warning("Readiness failed: %s", ", ".join(failed))
    return _respond(report)


@router.get("/{check_type}")
def health_check(check_type: str) -> JSONResponse:
    """Long verb spellings, and unknown verbs reported the way the CLI reports them."""
    return _respond(run_check(check_type, get_settings(), get_probe()))
