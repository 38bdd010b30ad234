"""
Route registration for the health API.
"""

from fastapi import FastAPI

from . import health


def register_routes(app: FastAPI) -> None:
    """Register all routes with the FastAPI application."""
    app.include_router(health.router)
