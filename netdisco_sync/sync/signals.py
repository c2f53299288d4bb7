"""
Pub/sub topics for sync events.

Two topics on the default pypubsub publisher:

``netdisco_remote_changed``
    Sent by a remote store when its contents changed outside this
    device.  Message data: ``reason`` (ChangeReason), optional
    ``changed_keys`` (list of key names) and ``store`` (the sender).

``netdisco_sync_completed``
    Sent by the coordinator after a merge pass changed at least one
    local key.  No message data.

Listeners are called synchronously on the sender's thread.
"""
import logging

from pubsub import pub

log = logging.getLogger("sync.signals")

REMOTE_CHANGED = "netdisco_remote_changed"
SYNC_COMPLETED = "netdisco_sync_completed"


def _remote_changed_spec(reason, changed_keys=None, store=None):
    """reason: ChangeReason; changed_keys: key names; store: sending store."""


def _sync_completed_spec():
    """Merged data was written to the local store."""


def _ensure_topics():
    mgr = pub.getDefaultTopicMgr()
    mgr.getOrCreateTopic(REMOTE_CHANGED, _remote_changed_spec)
    mgr.getOrCreateTopic(SYNC_COMPLETED, _sync_completed_spec)


_ensure_topics()


def publish_remote_change(store, reason, changed_keys=None):
    """Announce an external change on *store*."""
    keys = sorted(str(k) for k in changed_keys) if changed_keys else []
    log.debug("Remote change from %s: %s %s", getattr(store, "name", store), reason, keys)
    pub.sendMessage(REMOTE_CHANGED, reason=reason, changed_keys=keys, store=store)


def publish_sync_completed():
    pub.sendMessage(SYNC_COMPLETED)


def subscribe_sync_completed(listener):
    """Register *listener* (no arguments) for completed merge passes.

    pypubsub keeps only a weak reference: the caller must hold on to
    *listener* for as long as it wants to be notified.
    """
    pub.subscribe(listener, SYNC_COMPLETED)


def unsubscribe_sync_completed(listener):
    if pub.isSubscribed(listener, SYNC_COMPLETED):
        pub.unsubscribe(listener, SYNC_COMPLETED)
