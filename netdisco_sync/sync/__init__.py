"""
Cross-device reconciliation engine.

Provides the synchronized key set, collection entry types and their
wire codec, per-key merge strategies, record stores, and the sync
coordinator that ties them together.
"""

from .keys import SyncKey, ChangeReason, SYNC_KEYS, COLLECTION_KEYS
from .records import (
    SpeedTestEntry,
    QualitySample,
    Favorite,
    NetworkProfile,
    CollectionSpec,
    COLLECTIONS,
    DecodeError,
    decode_collection,
    encode_collection,
    load_entries,
    record_entry,
    collection_counts,
)
from .merge import (
    MergeStrategy,
    ScalarOverwrite,
    AppendDedupCapped,
    MergeLatestByKey,
    STRATEGIES,
    strategy_for,
    merge_value,
)
from .signals import (
    REMOTE_CHANGED,
    SYNC_COMPLETED,
    subscribe_sync_completed,
    unsubscribe_sync_completed,
)
from .stores import (
    LocalRecordStore,
    JsonFileRecordStore,
    RemoteRecordStore,
    MemoryRemoteStore,
    SharedFolderRemoteStore,
)
from .coordinator import SyncCoordinator

__all__ = [
    "SyncKey",
    "ChangeReason",
    "SYNC_KEYS",
    "COLLECTION_KEYS",
    "SpeedTestEntry",
    "QualitySample",
    "Favorite",
    "NetworkProfile",
    "CollectionSpec",
    "COLLECTIONS",
    "DecodeError",
    "decode_collection",
    "encode_collection",
    "load_entries",
    "record_entry",
    "collection_counts",
    "MergeStrategy",
    "ScalarOverwrite",
    "AppendDedupCapped",
    "MergeLatestByKey",
    "STRATEGIES",
    "strategy_for",
    "merge_value",
    "REMOTE_CHANGED",
    "SYNC_COMPLETED",
    "subscribe_sync_completed",
    "unsubscribe_sync_completed",
    "LocalRecordStore",
    "JsonFileRecordStore",
    "RemoteRecordStore",
    "MemoryRemoteStore",
    "SharedFolderRemoteStore",
    "SyncCoordinator",
]
