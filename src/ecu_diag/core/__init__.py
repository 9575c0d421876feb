"""
ecu_diag Core Package

Contains logging and configuration shared by the transport,
protocol, and session layers.
"""

from ecu_diag.core.app_logging import get_logger, setup_logging
from ecu_diag.core.config import (
    AppConfig,
    IsoTPSettings,
    ServerOptions,
    load_config,
    save_config,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "AppConfig",
    "IsoTPSettings",
    "ServerOptions",
    "load_config",
    "save_config",
]
