"""
Synchronized key set and remote-change reason codes.

Key names are part of the shared store's wire contract: every device
must use the same literal strings.
"""
import enum
from typing import Optional


class SyncKey(str, enum.Enum):
    """One synchronized unit in the local and remote stores."""

    # Collections
    SPEED_TEST_HISTORY = "SpeedTestHistory"
    QUALITY_HISTORY = "QualityHistory"
    FAVORITES = "Favorites"
    NETWORK_PROFILES = "NetworkProfiles"

    # Scalar settings
    CUSTOM_PING_TARGET = "CustomPingTarget"
    GEEK_MODE = "GeekMode"
    APP_APPEARANCE = "AppAppearance"
    MENU_BAR_DISPLAY_MODE = "MenuBarDisplayMode"
    NOTIFY_CONNECTION_CHANGE = "NotifyConnectionChange"
    NOTIFY_QUALITY_DEGRADATION = "NotifyQualityDegradation"
    NOTIFY_LATENCY_THRESHOLD = "NotifyLatencyThreshold"
    NOTIFY_LOSS_THRESHOLD = "NotifyLossThreshold"
    NOTIFY_SPEED_TEST_COMPLETE = "NotifySpeedTestComplete"
    SCHEDULED_QUALITY_TEST_ENABLED = "ScheduledQualityTestEnabled"
    SCHEDULED_QUALITY_TEST_INTERVAL = "ScheduledQualityTestInterval"
    SCHEDULED_DAILY_NOTIFICATION = "ScheduledDailyNotification"

    def __str__(self) -> str:
        return self.value

    @property
    def is_collection(self) -> bool:
        return self in COLLECTION_KEYS

    @classmethod
    def parse(cls, name) -> Optional["SyncKey"]:
        """Return the SyncKey for *name*, or None if it is not synchronized."""
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            return None


COLLECTION_KEYS = frozenset({
    SyncKey.SPEED_TEST_HISTORY,
    SyncKey.QUALITY_HISTORY,
    SyncKey.FAVORITES,
    SyncKey.NETWORK_PROFILES,
})

# Fixed order: collections first, then settings.
SYNC_KEYS = tuple(SyncKey)


class ChangeReason(enum.Enum):
    """Why the remote store reported an external change."""

    SERVER_CHANGE = "ServerChange"
    INITIAL_SYNC = "InitialSync"
    QUOTA_VIOLATION = "QuotaViolation"
    ACCOUNT_CHANGE = "AccountChange"
