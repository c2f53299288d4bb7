"""
NetDisco Sync - cross-device state reconciliation for NetDisco.

Keeps NetDisco's locally persisted collections (speed test and quality
histories, favorites, network profiles) and scalar settings reconciled
with a key-value store shared across the user's devices:

- Per-collection merge policies with identity dedup and capacity caps
- Serial sync coordinator reacting to remote-change notifications
- JSON file local store, in-memory and shared-folder remote stores
- Logging, configuration, and an optional status endpoint

License: GPL-3.0
"""

from version import __version__

__author__ = "nursedude"
__license__ = "GPL-3.0"

from .sync import (
    SyncCoordinator,
    SyncKey,
    ChangeReason,
    JsonFileRecordStore,
    MemoryRemoteStore,
    SharedFolderRemoteStore,
)
from .utils import setup_logging, ConfigManager, SyncSettings

__all__ = [
    "SyncCoordinator",
    "SyncKey",
    "ChangeReason",
    "JsonFileRecordStore",
    "MemoryRemoteStore",
    "SharedFolderRemoteStore",
    "setup_logging",
    "ConfigManager",
    "SyncSettings",
]
