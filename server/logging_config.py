"""Logging setup for the health server process."""

import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Generator, Optional

from config.settings import env_flag
from runner.logger import configure_logging, level_name, resolve_threshold

SERVER_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
SERVER_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Probes arrive every few seconds; uvicorn's own access log would drown the rest
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
}


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> int:
    """Configure the root logger for the server and return the threshold.

    Args:
        level: Level name; falls back to LOG_LEVEL, then INFO. WARN and FATAL
            are accepted as spelled by the log-wrapper.
        json_logs: Emit the container's JSON lines instead of plain text.
            Defaults to the USE_JSON_LOGS flag, which is off unless set.
    """
    threshold = resolve_threshold(level or os.environ.get("LOG_LEVEL"))
    if json_logs is None:
        json_logs = env_flag(os.environ, "USE_JSON_LOGS", False)

    if json_logs:
        configure_logging(level_name(threshold))
    else:
        logging.basicConfig(
            level=threshold,
            format=SERVER_FORMAT,
            datefmt=SERVER_DATEFMT,
            stream=sys.stdout,
            force=True,
        )

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    return threshold


@contextmanager
def log_timing(
    logger: logging.Logger, operation: str, level: int = logging.DEBUG
) -> Generator[None, None, None]:
    """Log how long the wrapped block took."""
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.log(level, "%s took %.1fms", operation, (time.perf_counter() - start) * 1000)
