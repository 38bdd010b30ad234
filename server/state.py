"""
Server-side state management.

Holds the settings and system probe the health routes evaluate against.
Both default to the live environment; tests swap them in.
"""

from config.settings import RunnerSettings
from runner.system import SystemProbe


# =============================================================================
# Settings
# =============================================================================

_settings: RunnerSettings | None = None


def set_settings(settings: RunnerSettings | None) -> None:
    """Pin the settings used for readiness; None re-reads the environment."""
    global _settings
    _settings = settings


def get_settings() -> RunnerSettings:
    """Get the pinned settings, or a fresh read of the environment."""
    return _settings or RunnerSettings.from_env()


# =============================================================================
# Probe
# =============================================================================

_probe: SystemProbe | None = None


def set_probe(probe: SystemProbe | None) -> None:
    """Set the system probe instance."""
    global _probe
    _probe = probe


def get_probe() -> SystemProbe:
    """Get the current probe, creating the default one on first use."""
    global _probe
    if _probe is None:
        _probe = SystemProbe()
    return _probe
