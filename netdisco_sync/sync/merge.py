"""
Per-key merge strategies.

A strategy is a pure function ``merge(local, remote) -> merged`` over the
stored values of one key.  Collection strategies decode both sides,
combine them under the collection's identity and capacity rules, and
re-encode.  Absent or undecodable input on either side is treated as an
empty collection; a strategy never raises for bad data.

The local side is always normalized (deduplicated, sorted and capped),
even when the remote side is empty or missing.

When the merged result equals what the local side already holds, the
local value is returned unchanged so callers can detect "no change" by
plain equality.
"""
import logging
from typing import Any, Dict, Optional

from .keys import SyncKey
from .records import COLLECTIONS, CollectionSpec

log = logging.getLogger("sync.merge")


class MergeStrategy:
    """Base class: subclasses implement merge()."""

    name = "abstract"

    def merge(self, local: Any, remote: Any) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class ScalarOverwrite(MergeStrategy):
    """Remote value wins whenever present; otherwise keep local."""

    name = "scalar-overwrite"

    def merge(self, local: Any, remote: Any) -> Any:
        return local if remote is None else remote


class _CollectionStrategy(MergeStrategy):
    """Shared decode/compare plumbing for collection strategies."""

    def __init__(self, spec: CollectionSpec):
        self.spec = spec

    @property
    def cap(self) -> int:
        return self.spec.cap

    def merge(self, local: Any, remote: Any) -> Any:
        remote_entries = self.spec.decode_or_empty(remote, side="remote")

        local_ok = True
        local_entries = []
        if local is not None:
            try:
                local_entries = self.spec.decode(local)
            except ValueError as e:
                log.warning("Ignoring undecodable local %s: %s", self.spec.key.value, e)
                local_ok = False

        merged = self._combine(local_entries, remote_entries)
        if local is None and not merged:
            return None
        if local_ok and local is not None and merged == local_entries:
            return local
        return self.spec.encode(merged)

    def _combine(self, local_entries, remote_entries):
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.spec.key.value} cap={self.spec.cap}>"


class AppendDedupCapped(_CollectionStrategy):
    """Keep local entries, append remote entries whose identity is new.

    First-seen wins: an identity already present (locally, or from an
    earlier remote entry) is never replaced.  Ordered collections are then
    sorted newest-first; the front ``cap`` entries are kept.
    """

    name = "append-dedup-capped"

    def _combine(self, local_entries, remote_entries):
        seen = set()
        merged = []
        for entry in list(local_entries) + list(remote_entries):
            identity = self.spec.dedup_key(entry)
            if identity in seen:
                continue
            seen.add(identity)
            merged.append(entry)

        if self.spec.order_key is not None:
            merged.sort(key=self.spec.order_key, reverse=True)
        return merged[:self.spec.cap]


class MergeLatestByKey(_CollectionStrategy):
    """Union by identity; on collision the larger order key wins.

    Ties keep the local entry.  The union is sorted newest-first and
    capped.
    """

    name = "merge-latest-by-key"

    def __init__(self, spec: CollectionSpec):
        if spec.order_key is None:
            raise ValueError(f"{spec.key.value}: merge-latest-by-key needs an order key")
        super().__init__(spec)

    def _combine(self, local_entries, remote_entries):
        latest: Dict[Any, Any] = {}
        version = self.spec.order_key
        for entry in list(local_entries) + list(remote_entries):
            identity = self.spec.dedup_key(entry)
            existing = latest.get(identity)
            if existing is None or version(entry) > version(existing):
                latest[identity] = entry

        merged = sorted(latest.values(), key=version, reverse=True)
        return merged[:self.spec.cap]


SCALAR_OVERWRITE = ScalarOverwrite()

STRATEGIES: Dict[SyncKey, MergeStrategy] = {
    SyncKey.SPEED_TEST_HISTORY: AppendDedupCapped(COLLECTIONS[SyncKey.SPEED_TEST_HISTORY]),
    SyncKey.QUALITY_HISTORY: AppendDedupCapped(COLLECTIONS[SyncKey.QUALITY_HISTORY]),
    SyncKey.FAVORITES: AppendDedupCapped(COLLECTIONS[SyncKey.FAVORITES]),
    SyncKey.NETWORK_PROFILES: MergeLatestByKey(COLLECTIONS[SyncKey.NETWORK_PROFILES]),
}


def strategy_for(key) -> MergeStrategy:
    """Return the strategy for *key*; scalar settings overwrite."""
    parsed = SyncKey.parse(key)
    return STRATEGIES.get(parsed, SCALAR_OVERWRITE) if parsed is not None else SCALAR_OVERWRITE


def merge_value(key, local: Any, remote: Any) -> Optional[Any]:
    """Merge one key's stored values with its strategy."""
    return strategy_for(key).merge(local, remote)
