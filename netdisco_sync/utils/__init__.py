"""
Utility modules for NetDisco sync.

Provides logging setup, configuration management, path helpers,
and the serial job executor used by the sync coordinator.
"""

from .log import (
    setup_logging, set_log_context, JsonFormatter, default_log_path, install_crash_handler,
)
from .config import ConfigManager, SyncSettings
from .serial_executor import SerialExecutor

__all__ = [
    "setup_logging",
    "set_log_context",
    "JsonFormatter",
    "default_log_path",
    "install_crash_handler",
    "ConfigManager",
    "SyncSettings",
    "SerialExecutor",
]
