"""
Sync coordinator: drives upload/download between the local store and the
shared remote store.

Every read-merge-write against the local store happens on one serial
worker (SerialExecutor).  Remote-change notifications arrive on whatever
thread the remote store publishes from; the listener only schedules work
on the worker and never touches the stores itself.

Merge passes coalesce: a pass that is queued but not yet started absorbs
any further requests, and a request arriving while a pass runs queues at
most one follow-up.

Usage:
    local = JsonFileRecordStore(path)
    remote = SharedFolderRemoteStore(folder)
    coordinator = SyncCoordinator(local, remote)
    coordinator.start_sync()

    record_entry(local, SyncKey.SPEED_TEST_HISTORY, entry)
    coordinator.upload_key(SyncKey.SPEED_TEST_HISTORY)

    coordinator.stop_sync()
    coordinator.shutdown()
"""
import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Dict, Iterable, List, Optional

from pubsub import pub

from netdisco_sync.utils.serial_executor import SerialExecutor

from .keys import ChangeReason, SYNC_KEYS, SyncKey
from .merge import strategy_for
from .signals import REMOTE_CHANGED, publish_sync_completed
from .stores import LocalRecordStore, RemoteRecordStore

log = logging.getLogger("sync.coordinator")


def _done(result: Any) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future


class SyncCoordinator:
    """Keeps the synchronized keys of a LocalRecordStore reconciled with a
    RemoteRecordStore.

    Args:
        local: This device's record store.
        remote: The store shared across the user's devices.
        executor: Serial worker to run jobs on (one is created if omitted).
        sync_keys: Keys to synchronize (defaults to the full fixed set).
    """

    def __init__(
        self,
        local: LocalRecordStore,
        remote: RemoteRecordStore,
        executor: Optional[SerialExecutor] = None,
        sync_keys: Iterable[SyncKey] = SYNC_KEYS,
    ):
        self.local = local
        self.remote = remote
        self.sync_keys: List[SyncKey] = list(sync_keys)
        self._executor = executor or SerialExecutor(name="sync-coordinator")
        self._executor.start()

        self._lock = threading.Lock()
        self._is_observing = False
        self._is_available = False
        self._pass_queued: Optional[Future] = None
        self._recheck_identity = False

        self._passes = 0
        self._last_pass_at: Optional[float] = None
        self._last_changed: List[str] = []
        self._last_reason: Optional[ChangeReason] = None

    # ── State ────────────────────────────────────────────────

    @property
    def is_observing(self) -> bool:
        with self._lock:
            return self._is_observing

    @property
    def is_available(self) -> bool:
        with self._lock:
            return self._is_available

    def status(self) -> Dict[str, Any]:
        """Snapshot of coordinator state for logs and the status endpoint."""
        with self._lock:
            return {
                "available": self._is_available,
                "observing": self._is_observing,
                "remote": getattr(self.remote, "name", type(self.remote).__name__),
                "passes": self._passes,
                "last_pass_at": self._last_pass_at,
                "last_changed_keys": list(self._last_changed),
                "last_reason": self._last_reason.value if self._last_reason else None,
                "pending_jobs": self._executor.pending,
            }

    # ── Lifecycle ────────────────────────────────────────────

    def _check_availability(self) -> bool:
        try:
            token = self.remote.identity_token()
        except Exception as e:
            log.error("Identity check failed: %s", e)
            return False
        if token is None:
            log.info("Remote store %s: no account identity, sync disabled",
                     getattr(self.remote, "name", "?"))
            return False
        return True

    def start_sync(self) -> bool:
        """Begin observing the remote store and run an initial merge pass.

        Returns:
            True if sync is available.  Unavailability is not an error.
        """
        with self._lock:
            if self._is_observing:
                return self._is_available

        available = self._check_availability()
        with self._lock:
            self._is_available = available
        if not available:
            log.info("Sync disabled (remote store unavailable)")
            return False

        pub.subscribe(self._on_remote_change, REMOTE_CHANGED)
        with self._lock:
            self._is_observing = True

        if not self._synchronize_remote():
            self._transport_failed("Initial synchronize")
            return False

        self.download_and_merge_all()
        log.info("Sync started with %s", getattr(self.remote, "name", "remote store"))
        return True

    def stop_sync(self) -> None:
        """Stop reacting to remote changes.  An in-flight pass still completes."""
        with self._lock:
            if not self._is_observing:
                return
            self._is_observing = False
        if pub.isSubscribed(self._on_remote_change, REMOTE_CHANGED):
            pub.unsubscribe(self._on_remote_change, REMOTE_CHANGED)
        log.info("Sync stopped")

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until every job queued so far has run."""
        return self._executor.flush(timeout)

    def shutdown(self, timeout: float = 5.0) -> bool:
        """stop_sync(), then let queued jobs finish and stop the worker."""
        self.stop_sync()
        return self._executor.stop(timeout)

    def _synchronize_remote(self) -> bool:
        try:
            return bool(self.remote.synchronize())
        except Exception as e:
            log.error("Remote synchronize raised: %s", e)
            return False

    def poll(self) -> Future:
        """Ask the remote store to synchronize (periodic refresh).

        A failed synchronize ends the session like any other transport
        failure; the next start_sync() re-attempts.

        Returns:
            Future resolving to True if the remote store synchronized.
        """
        if not self.is_available:
            return _done(False)
        return self._executor.submit(self._poll, dropped_result=False)

    def _poll(self) -> bool:
        if not self.is_observing:
            return False
        if not self._synchronize_remote():
            self._transport_failed("Periodic synchronize")
            return False
        return True

    def _transport_failed(self, what: str) -> None:
        """Mark sync unavailable until the next start_sync()."""
        log.warning("%s failed, sync unavailable for this session", what)
        self.stop_sync()
        with self._lock:
            self._is_available = False

    # ── Upload ───────────────────────────────────────────────

    def upload_key(self, key) -> Future:
        """Push one key's local value to the remote store (local wins).

        Returns:
            Future resolving to True if a value was pushed.
        """
        parsed = SyncKey.parse(key)
        if not self.is_available or parsed is None or parsed not in self.sync_keys:
            return _done(False)
        return self._executor.submit(self._upload, [parsed], dropped_result=False)

    def upload_all(self) -> Future:
        """Push every synchronized key that has a local value, then flush once."""
        if not self.is_available:
            return _done(False)
        return self._executor.submit(self._upload, list(self.sync_keys), dropped_result=False)

    def _upload(self, keys: List[SyncKey]) -> bool:
        pushed = []
        for key in keys:
            try:
                value = self.local.get(key.value)
                if value is None:
                    continue
                self.remote.set(key.value, value)
                pushed.append(key.value)
            except Exception as e:
                log.error("Upload of %s failed: %s", key.value, e)
        if not pushed:
            return False
        if not self._synchronize_remote():
            self._transport_failed("Synchronize after upload")
            return False
        log.debug("Uploaded %s", ", ".join(pushed))
        return True

    # ── Download / merge ─────────────────────────────────────

    def download_and_merge_all(self) -> Future:
        """Schedule a full merge pass (coalesced with any pass already queued).

        Returns:
            Future resolving to the list of keys whose local value changed.
        """
        if not self.is_available:
            return _done([])
        return self._schedule_pass()

    def _schedule_pass(self, recheck_identity: bool = False) -> Future:
        with self._lock:
            if recheck_identity:
                self._recheck_identity = True
            if self._pass_queued is not None:
                return self._pass_queued
            future = self._executor.submit(self._run_pass, dropped_result=[])
            if not future.done():
                self._pass_queued = future
            return future

    def _refresh_availability(self) -> bool:
        available = self._check_availability()
        with self._lock:
            was_available = self._is_available
            self._is_available = available
        if was_available and not available:
            log.info("Account signed out, sync unavailable")
        return available

    def _run_pass(self) -> List[str]:
        with self._lock:
            self._pass_queued = None
            recheck = self._recheck_identity
            self._recheck_identity = False

        if recheck and not self._refresh_availability():
            return []

        changed = []
        for key in self.sync_keys:
            try:
                if self._merge_key(key):
                    changed.append(key.value)
            except Exception as e:
                log.error("Merge of %s failed: %s", key.value, e)

        with self._lock:
            self._passes += 1
            self._last_pass_at = time.time()
            self._last_changed = list(changed)

        if changed:
            log.info("Merged remote changes into %d key(s): %s", len(changed), ", ".join(changed),
                     extra={"sync_keys": changed})
            try:
                publish_sync_completed()
            except Exception as e:
                log.error("Sync-completed listener failed: %s", e)
        else:
            log.debug("Merge pass found no changes")
        return changed

    def _merge_key(self, key: SyncKey) -> bool:
        remote_value = self.remote.get(key.value)
        if remote_value is None:
            return False
        strategy = strategy_for(key)

        def _apply(current):
            merged = strategy.merge(current, remote_value)
            if not key.is_collection and current is not None and merged != current:
                log.debug("Remote value for %s overrides local setting", key.value)
            return merged

        old, new = self.local.update(key.value, _apply)
        return new != old

    # ── Notifications ────────────────────────────────────────

    def _on_remote_change(self, reason, changed_keys=None, store=None):
        """pypubsub listener; runs on the publisher's thread.

        Merge-triggering reasons schedule a pass that first re-checks the
        account identity, so a sign-out is noticed on the next notification.
        """
        if store is not None and store is not self.remote:
            return
        if not isinstance(reason, ChangeReason):
            try:
                reason = ChangeReason(reason)
            except ValueError:
                log.debug("Ignoring unknown remote change reason %r", reason)
                return

        with self._lock:
            if not self._is_observing:
                return
            self._last_reason = reason

        if reason is ChangeReason.QUOTA_VIOLATION:
            log.warning("Remote store quota exceeded; %d write(s) may be lost",
                        len(changed_keys or []))
            return
        if reason is ChangeReason.ACCOUNT_CHANGE:
            log.info("Remote account changed", extra={"reason": reason.value})
        else:
            log.debug("Remote change (%s) for %s", reason.value,
                      ", ".join(changed_keys) if changed_keys else "unknown keys",
                      extra={"reason": reason.value})
        self._schedule_pass(recheck_identity=True)
