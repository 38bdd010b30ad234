"""
FastAPI application setup and configuration.
"""

from fastapi import FastAPI

from server.middleware import RequestLoggingMiddleware


# =============================================================================
# Constants
# =============================================================================

API_TITLE = "Runner Health API"
API_VERSION = "1.0.0"


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(title=API_TITLE, version=API_VERSION)

app.add_middleware(RequestLoggingMiddleware)
