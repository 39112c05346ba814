"""
simforge App - configuration and the command-line entry point.
"""

from simforge.app.config import (
    ServerSettings,
    SimforgeConfig,
    get_config,
    reload_config,
    set_config,
)

__all__ = [
    "ServerSettings",
    "SimforgeConfig",
    "get_config",
    "reload_config",
    "set_config",
]
