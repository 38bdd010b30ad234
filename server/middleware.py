"""HTTP middleware for request/response logging."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Slow request threshold in milliseconds
SLOW_REQUEST_THRESHOLD_MS = 1000

# Probed every few seconds; only failures are worth a line
PROBE_PATH_PREFIX = "/health"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs requests with timing.

    Log levels:
    - DEBUG: Request start, successful probes
    - INFO: Other successful responses
    - WARNING: 4xx and 503 probe failures, slow requests (>1s)
    - ERROR: Other 5xx errors
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        logger.debug("%s %s", request.method, request.url.path)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._log_response(request, response, duration_ms)
        return response

    def _log_response(
        self, request: Request, response: Response, duration_ms: float
    ) -> None:
        method = request.method
        path = request.url.path
        status = response.status_code
        is_probe = path.startswith(PROBE_PATH_PREFIX)

        if status == 503 and is_probe:
            logger.warning("%s %s -> %d (%.1fms)", method, path, status, duration_ms)
        elif status >= 500:
            logger.error("%s %s -> %d (%.1fms)", method, path, status, duration_ms)
        elif status >= 400:
            logger.warning("%s %s -> %d (%.1fms)", method, path, status, duration_ms)
        elif duration_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning(
                "%s %s -> %d (%.1fms) SLOW", method, path, status, duration_ms
            )
        elif is_probe:
            logger.debug("%s %s -> %d (%.1fms)", method, path, status, duration_ms)
        else:
            logger.info("%s %s -> %d (%.1fms)", method, path, status, duration_ms)
