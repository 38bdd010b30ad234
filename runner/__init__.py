"""
In-container tooling: structured logging, health checks, the entrypoint
bootstrap and the tool version check.
"""

from .health import HealthReport, HealthStatus, check_liveness, check_readiness, run_check
from .logger import StructuredFormatter, configure_logging, get_logger, log_json, parse_context
from .system import SystemProbe

__all__ = [
    # Logging
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "log_json",
    "parse_context",
    # Health
    "HealthReport",
    "HealthStatus",
    "check_liveness",
    "check_readiness",
    "run_check",
    "SystemProbe",
]
