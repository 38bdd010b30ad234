"""
Health server entry point.
"""

import logging
import os

import uvicorn

from config.defaults import DEFAULT_HEALTH_SERVER_HOST, DEFAULT_HEALTH_SERVER_PORT
from server import app
from server.logging_config import setup_logging

logger = logging.getLogger(__name__)

HOST_ENV = "HEALTH_SERVER_HOST"
PORT_ENV = "HEALTH_SERVER_PORT"


def main() -> None:
    """Start the health server."""
    setup_logging()
    host = os.environ.get(HOST_ENV, DEFAULT_HEALTH_SERVER_HOST)
    port = int(os.environ.get(PORT_ENV, str(DEFAULT_HEALTH_SERVER_PORT)))

    logger.info("Health server listening on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
