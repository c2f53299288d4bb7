"""
Local and remote record stores used by the sync coordinator.

LocalRecordStore
    Durable key -> value storage on this device.  Collection values are
    JSON text blobs; scalar settings are plain JSON values.
    ``update(key, fn)`` is the atomic read-modify-write that both the
    coordinator and probe collaborators use.

RemoteRecordStore
    Key -> value store shared by all of the user's devices.  Eventually
    consistent: ``set`` stages a value, ``synchronize`` flushes and
    refreshes, and external changes are announced on the
    ``netdisco_remote_changed`` topic.
"""
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .keys import ChangeReason
from .signals import publish_remote_change

log = logging.getLogger("sync.stores")

DEFAULT_QUOTA_BYTES = 1024 * 1024


def _atomic_write_json(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w") as f:
        json.dump(data, f, indent=2, sort_keys=True)
    os.replace(tmp, path)


# ── Local ────────────────────────────────────────────────────

class LocalRecordStore(ABC):
    """Durable key -> value storage on this device."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the stored value, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store *value*; None removes the key."""

    @abstractmethod
    def update(self, key: str, fn: Callable[[Any], Any]) -> Tuple[Any, Any]:
        """Atomically replace the value with ``fn(current)``.

        Returns:
            (old, new) values.
        """

    @abstractmethod
    def keys(self) -> List[str]:
        """Keys currently stored."""

    def remove(self, key: str) -> None:
        self.set(key, None)


class JsonFileRecordStore(LocalRecordStore):
    """LocalRecordStore persisted as one JSON object on disk.

    All access is serialized by a re-entrant lock, so ``update`` is atomic
    with respect to every other call on the same instance.  A missing or
    corrupt file starts the store empty.
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning("Could not read %s, starting empty: %s", self.path, e)
            return
        if not isinstance(data, dict):
            log.warning("%s does not hold a JSON object, starting empty", self.path)
            return
        self._data = data

    def _save(self) -> None:
        _atomic_write_json(self.path, self._data)

    def get(self, key: str) -> Any:
        with self._lock:
            return self._data.get(str(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._write(str(key), value)

    def update(self, key: str, fn: Callable[[Any], Any]) -> Tuple[Any, Any]:
        key = str(key)
        with self._lock:
            old = self._data.get(key)
            new = fn(old)
            if new != old:
                self._write(key, new)
            return old, new

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def _write(self, key: str, value: Any) -> None:
        if value is None:
            if key not in self._data:
                return
            del self._data[key]
        else:
            self._data[key] = value
        self._save()


# ── Remote ───────────────────────────────────────────────────

class RemoteRecordStore(ABC):
    """Eventually-consistent key -> value store shared across devices."""

    name = "remote"

    @abstractmethod
    def identity_token(self) -> Optional[str]:
        """Opaque account identity, or None when the device is signed out."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Last known value for *key*, or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Stage *value* for upload on the next synchronize()."""

    @abstractmethod
    def synchronize(self) -> bool:
        """Flush staged writes and refresh.  False when the store is unreachable."""

    def announce(self, reason: ChangeReason, changed_keys: Optional[Iterable[str]] = None) -> None:
        """Publish an external-change notification for this store."""
        publish_remote_change(self, reason, changed_keys)


class MemoryRemoteStore(RemoteRecordStore):
    """In-process RemoteRecordStore.

    Useful as a loopback transport and in tests: the identity and the
    outcome of synchronize() can be switched, and apply_external_change()
    plays the part of another device writing to the store.
    """

    def __init__(self, name: str = "memory", identity: Optional[str] = "local-account",
                 synchronize_ok: bool = True):
        self.name = name
        self.identity = identity
        self.synchronize_ok = synchronize_ok
        self.sync_count = 0
        self._values: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def identity_token(self) -> Optional[str]:
        return self.identity

    def sign_out(self) -> None:
        self.identity = None

    def get(self, key: str) -> Any:
        with self._lock:
            return self._values.get(str(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if value is None:
                self._values.pop(str(key), None)
            else:
                self._values[str(key)] = value

    def synchronize(self) -> bool:
        with self._lock:
            self.sync_count += 1
        return self.synchronize_ok

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)

    def apply_external_change(self, values: Dict[str, Any],
                              reason: ChangeReason = ChangeReason.SERVER_CHANGE,
                              announce: bool = True) -> None:
        """Write *values* as another device would, then notify."""
        for key, value in values.items():
            self.set(key, value)
        if announce:
            self.announce(reason, values.keys())


class SharedFolderRemoteStore(RemoteRecordStore):
    """RemoteRecordStore kept as a JSON file inside a folder shared by devices.

    Any file-syncing service (or a network mount) that replicates the
    folder acts as the transport.  The device counts as signed in while the
    folder exists.  ``synchronize()`` writes staged values into the file,
    reloads it, and announces keys that other devices changed since the
    previous refresh.  A flush that would push the file past
    ``quota_bytes`` is dropped and announced as a quota violation.
    """

    FILENAME = "netdisco-kvstore.json"

    def __init__(self, folder, quota_bytes: int = DEFAULT_QUOTA_BYTES,
                 name: Optional[str] = None):
        self.folder = Path(folder).expanduser()
        self.path = self.folder / self.FILENAME
        self.quota_bytes = quota_bytes
        self.name = name or f"folder:{self.folder}"
        self._values: Dict[str, Any] = {}
        self._pending: Dict[str, Any] = {}
        self._loaded = False
        self._lock = threading.Lock()

    def identity_token(self) -> Optional[str]:
        if self.folder.is_dir():
            return str(self.folder.resolve())
        return None

    def get(self, key: str) -> Any:
        key = str(key)
        with self._lock:
            if key in self._pending:
                return self._pending[key]
            return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._pending[str(key)] = value

    def _read_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            log.warning("Shared store %s is corrupt, treating as empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Shared store %s does not hold a JSON object", self.path)
            return {}
        return data

    def synchronize(self) -> bool:
        if not self.folder.is_dir():
            log.warning("Shared folder %s is not available", self.folder)
            return False

        dropped: List[str] = []
        with self._lock:
            try:
                disk = self._read_file()
            except OSError as e:
                log.error("Could not read shared store %s: %s", self.path, e)
                return False

            changed = [k for k in set(disk) | set(self._values)
                       if disk.get(k) != self._values.get(k)]
            first_load = not self._loaded

            merged = dict(disk)
            if self._pending:
                for key, value in self._pending.items():
                    if value is None:
                        merged.pop(key, None)
                    else:
                        merged[key] = value
                size = len(json.dumps(merged, sort_keys=True).encode("utf-8"))
                if size > self.quota_bytes:
                    log.warning("Shared store over quota (%d > %d bytes), dropping %d write(s)",
                                size, self.quota_bytes, len(self._pending))
                    dropped = sorted(self._pending)
                    merged = dict(disk)
                elif merged != disk:
                    try:
                        _atomic_write_json(self.path, merged)
                    except OSError as e:
                        log.error("Could not write shared store %s: %s", self.path, e)
                        return False
                self._pending.clear()

            self._values = merged
            self._loaded = True

        if dropped:
            self.announce(ChangeReason.QUOTA_VIOLATION, dropped)
        if changed:
            reason = ChangeReason.INITIAL_SYNC if first_load else ChangeReason.SERVER_CHANGE
            self.announce(reason, changed)
        return True
