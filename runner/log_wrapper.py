"""
Command-line structured logger.

Usage: log-wrapper <level> <message> [key=value ...]

Prints one JSON line and exits 0, except for FATAL records, invalid levels
and missing arguments, which exit 1.
"""

import sys
from typing import TextIO

from core.exceptions import InvalidLogLevelError

from .logger import configure_logging, get_logger, log_json

USAGE_ERROR = "log-wrapper requires at least 2 arguments: <level> <message>"


def main(argv: list[str] | None = None, stream: TextIO | None = None) -> int:
    """Entry point; returns the process exit code."""
    args = list(sys.argv[1:] if argv is None else argv)

    configure_logging(json_logs=True, stream=stream)
    logger = get_logger("log-wrapper")

    if len(args) < 2:
        log_json(logger, "ERROR", USAGE_ERROR)
        return 1

    level, message, *pairs = args
    try:
        log_json(logger, level, message, *pairs)
    except InvalidLogLevelError as e:
        log_json(logger, "ERROR", str(e))
        return 1
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
