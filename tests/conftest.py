import json
import os
import sys

import pytest

# Ensure project root is on sys.path so netdisco_sync.* and launcher import
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from netdisco_sync.sync.signals import subscribe_sync_completed, unsubscribe_sync_completed  # noqa: E402
from netdisco_sync.sync.stores import JsonFileRecordStore, MemoryRemoteStore  # noqa: E402
from netdisco_sync.sync.coordinator import SyncCoordinator  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def local_store(tmp_path):
    """Empty JsonFileRecordStore in a temp directory."""
    return JsonFileRecordStore(tmp_path / "records.json")


@pytest.fixture
def remote_store():
    """Signed-in in-memory remote store."""
    return MemoryRemoteStore()


@pytest.fixture
def coordinator(local_store, remote_store):
    """SyncCoordinator over the temp local store and memory remote; shut down after."""
    coord = SyncCoordinator(local_store, remote_store)
    yield coord
    coord.shutdown(timeout=2.0)


@pytest.fixture
def completed_events():
    """List that gains one item per sync-completed notification."""
    events = []

    def listener():
        events.append(True)

    subscribe_sync_completed(listener)
    yield events
    unsubscribe_sync_completed(listener)


@pytest.fixture
def tmp_config(tmp_path):
    """Create a temporary config.json and return its path."""
    shared = tmp_path / "shared"
    shared.mkdir()
    config = {
        "sync": {
            "enabled": True,
            "local_store": str(tmp_path / "records.json"),
            "shared_folder": str(shared),
            "poll_interval": 5,
        },
        "logging": {"level": "info", "file": str(tmp_path / "logs" / "sync.log")},
        "status": {"host": "127.0.0.1", "port": 8765},
    }
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(config))
    return str(config_file)


@pytest.fixture
def bad_config(tmp_path):
    """Create an invalid JSON config file and return its path."""
    config_file = tmp_path / "config.json"
    config_file.write_text("{invalid json content")
    return str(config_file)
