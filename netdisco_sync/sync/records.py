"""
Collection entry types, their wire codec, and capacity policy.

Each collection is stored as one JSON array of objects.  Wire field
names match what the other NetDisco clients write, so a blob produced
on one device decodes unchanged on another.  Optional fields that are
absent are omitted from the wire, never written as null or a default.

Timestamps are plain numbers of seconds.  They are only ever compared
with each other, so the epoch is whatever the producing client uses.
"""
import json
import logging
import math
from dataclasses import MISSING, dataclass, field, fields
from typing import Any, Callable, Dict, Hashable, List, Optional, Type

from .keys import SyncKey

log = logging.getLogger("sync.records")


class DecodeError(ValueError):
    """A stored blob could not be decoded into collection entries."""


def _wire(name: str, kind: type) -> Dict[str, Any]:
    return {"wire": name, "kind": kind}


@dataclass(frozen=True)
class SpeedTestEntry:
    """One completed speed test."""

    timestamp: float = field(metadata=_wire("date", float))
    download_mbps: float = field(metadata=_wire("download", float))
    upload_mbps: float = field(metadata=_wire("upload", float))
    latency_ms: float = field(metadata=_wire("latency", float))
    location: Optional[str] = field(default=None, metadata=_wire("location", str))


@dataclass(frozen=True)
class QualitySample:
    """One latency/jitter/loss sample from the quality monitor."""

    timestamp: float = field(metadata=_wire("date", float))
    latency_ms: float = field(metadata=_wire("latency", float))
    jitter_ms: float = field(metadata=_wire("jitter", float))
    packet_loss_pct: float = field(metadata=_wire("packetLoss", float))


@dataclass(frozen=True)
class Favorite:
    """A saved lookup target (host, IP, domain)."""

    kind: str = field(metadata=_wire("type", str))
    value: str = field(metadata=_wire("value", str))
    label: Optional[str] = field(default=None, metadata=_wire("label", str))


@dataclass(frozen=True)
class NetworkProfile:
    """Rolling averages for one Wi-Fi network, keyed by SSID."""

    ssid: str = field(metadata=_wire("ssid", str))
    last_seen: float = field(metadata=_wire("lastSeen", float))
    sample_count: int = field(metadata=_wire("testCount", int))
    avg_download: Optional[float] = field(default=None, metadata=_wire("avgDownload", float))
    avg_upload: Optional[float] = field(default=None, metadata=_wire("avgUpload", float))
    avg_latency: Optional[float] = field(default=None, metadata=_wire("avgLatency", float))


# ── Wire codec ───────────────────────────────────────────────

def _convert(value: Any, kind: type, name: str) -> Any:
    if kind is str:
        if not isinstance(value, str):
            raise DecodeError(f"{name}: expected string, got {type(value).__name__}")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"{name}: expected number, got {type(value).__name__}")
    if kind is int:
        if isinstance(value, float):
            if not value.is_integer():
                raise DecodeError(f"{name}: expected integer, got {value!r}")
            return int(value)
        return value
    if not math.isfinite(value):
        raise DecodeError(f"{name}: expected a finite number, got {value!r}")
    return float(value)


def entry_to_wire(entry) -> Dict[str, Any]:
    """Serialize one entry to its wire object, omitting absent optionals."""
    obj = {}
    for f in fields(entry):
        value = getattr(entry, f.name)
        if value is None:
            continue
        obj[f.metadata["wire"]] = value
    return obj


def entry_from_wire(entry_type: Type, obj: Any):
    """Build an *entry_type* from a wire object.  Unknown fields are ignored.

    Raises:
        DecodeError: if a required field is missing or has the wrong type.
    """
    if not isinstance(obj, dict):
        raise DecodeError(f"{entry_type.__name__}: expected object, got {type(obj).__name__}")
    kwargs = {}
    for f in fields(entry_type):
        wire_name = f.metadata["wire"]
        value = obj.get(wire_name)
        if value is None:
            if f.default is MISSING:
                raise DecodeError(f"{entry_type.__name__}: missing required field {wire_name!r}")
            continue
        kwargs[f.name] = _convert(value, f.metadata["kind"], wire_name)
    return entry_type(**kwargs)


def decode_collection(blob: Any, entry_type: Type) -> List:
    """Decode a collection blob (JSON text, bytes, or an already-parsed list).

    Raises:
        DecodeError: on malformed JSON, a non-array payload, or a bad entry.
    """
    if isinstance(blob, (bytes, bytearray)):
        try:
            blob = bytes(blob).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"blob is not UTF-8: {e}") from e
    if isinstance(blob, str):
        try:
            items = json.loads(blob)
        except json.JSONDecodeError as e:
            raise DecodeError(f"blob is not JSON: {e}") from e
    else:
        items = blob
    if not isinstance(items, list):
        raise DecodeError(f"expected a JSON array, got {type(items).__name__}")
    return [entry_from_wire(entry_type, item) for item in items]


def encode_collection(entries) -> str:
    """Encode entries as compact JSON array text."""
    return json.dumps([entry_to_wire(e) for e in entries], separators=(",", ":"))


# ── Collection policy ────────────────────────────────────────

@dataclass(frozen=True)
class CollectionSpec:
    """Capacity, identity and ordering rules for one collection key."""

    key: SyncKey
    entry_type: Type
    cap: int
    dedup_key: Callable[[Any], Hashable]
    order_key: Optional[Callable[[Any], Any]] = None  # None keeps append order

    def decode(self, blob: Any) -> List:
        return decode_collection(blob, self.entry_type)

    def decode_or_empty(self, blob: Any, side: str = "local") -> List:
        """Decode *blob*; absent or undecodable data yields an empty list."""
        if blob is None:
            return []
        try:
            return self.decode(blob)
        except DecodeError as e:
            log.warning("Ignoring undecodable %s %s: %s", side, self.key.value, e)
            return []

    def encode(self, entries) -> str:
        return encode_collection(entries)


COLLECTIONS: Dict[SyncKey, CollectionSpec] = {
    SyncKey.SPEED_TEST_HISTORY: CollectionSpec(
        key=SyncKey.SPEED_TEST_HISTORY,
        entry_type=SpeedTestEntry,
        cap=50,
        dedup_key=lambda e: e.timestamp,
        order_key=lambda e: e.timestamp,
    ),
    SyncKey.QUALITY_HISTORY: CollectionSpec(
        key=SyncKey.QUALITY_HISTORY,
        entry_type=QualitySample,
        cap=2880,  # 24h of samples at 30s intervals
        dedup_key=lambda e: e.timestamp,
        order_key=lambda e: e.timestamp,
    ),
    SyncKey.FAVORITES: CollectionSpec(
        key=SyncKey.FAVORITES,
        entry_type=Favorite,
        cap=20,
        dedup_key=lambda e: e.value,
    ),
    SyncKey.NETWORK_PROFILES: CollectionSpec(
        key=SyncKey.NETWORK_PROFILES,
        entry_type=NetworkProfile,
        cap=30,
        dedup_key=lambda e: e.ssid,
        order_key=lambda e: e.last_seen,
    ),
}


def collection_spec(key) -> Optional[CollectionSpec]:
    """Return the CollectionSpec for *key*, or None for scalar keys."""
    parsed = SyncKey.parse(key)
    return COLLECTIONS.get(parsed) if parsed is not None else None


def load_entries(store, key) -> List:
    """Read and decode one collection from a local store (empty if unusable)."""
    spec = collection_spec(key)
    if spec is None:
        raise KeyError(f"{key} is not a collection key")
    return spec.decode_or_empty(store.get(spec.key.value))


def record_entry(store, key, entry) -> bool:
    """Add one entry to a collection in *store*, the way a probe window does.

    Ordered collections get the entry at the front; Favorites append.  An
    existing entry with the same identity is replaced.  The result is
    re-sorted and capped inside the store's atomic update.

    Returns:
        True if the entry is still in the collection after capping.
    """
    spec = collection_spec(key)
    if spec is None:
        raise KeyError(f"{key} is not a collection key")
    if not isinstance(entry, spec.entry_type):
        raise TypeError(f"{spec.key.value} holds {spec.entry_type.__name__}, "
                        f"got {type(entry).__name__}")

    identity = spec.dedup_key(entry)
    kept = []

    def _apply(current):
        entries = [e for e in spec.decode_or_empty(current) if spec.dedup_key(e) != identity]
        if spec.order_key is None:
            entries.append(entry)
        else:
            entries.insert(0, entry)
            entries.sort(key=spec.order_key, reverse=True)
        entries = entries[:spec.cap]
        kept.append(entry in entries)
        return spec.encode(entries)

    store.update(spec.key.value, _apply)
    if not kept[0]:
        log.info("%s is full (%d), entry not kept", spec.key.value, spec.cap)
    return kept[0]


def collection_counts(store) -> Dict[str, int]:
    """Entry count per collection key held in *store*."""
    return {key.value: len(spec.decode_or_empty(store.get(key.value)))
            for key, spec in COLLECTIONS.items()}
