"""
HTTP health server for the runner container.

Exposes the liveness and readiness reports over HTTP for orchestrators that
probe an endpoint instead of running a command.
"""

from .app import app
from .routes import register_routes
from .state import get_probe, get_settings, set_probe, set_settings

# Register all routes with the app
register_routes(app)

__all__ = ["app", "set_settings", "get_settings", "set_probe", "get_probe"]
