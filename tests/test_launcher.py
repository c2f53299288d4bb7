"""Tests for launcher.py — argument parsing, store wiring, and subcommands."""
import json
import os
import sys
import threading
from unittest.mock import patch

import pytest

# Ensure project root on path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import launcher  # noqa: E402
from netdisco_sync.sync.records import Favorite, encode_collection, load_entries  # noqa: E402
from netdisco_sync.sync.keys import SyncKey  # noqa: E402
from netdisco_sync.sync.stores import (  # noqa: E402
    JsonFileRecordStore, MemoryRemoteStore, SharedFolderRemoteStore,
)
from netdisco_sync.utils.config import SyncSettings  # noqa: E402


@pytest.fixture(autouse=True)
def quiet_launcher():
    """Keep main() from touching global logging, the excepthook and SIGTERM."""
    with patch.object(launcher, 'setup_logging'), \
         patch.object(launcher, 'install_crash_handler'), \
         patch.object(launcher, 'set_log_context'), \
         patch.object(launcher, 'default_log_path', return_value=os.devnull), \
         patch.object(launcher.signal, 'signal'):
        yield


def _paths(tmp_config):
    cfg = json.loads(open(tmp_config).read())
    return cfg["sync"]["local_store"], cfg["sync"]["shared_folder"]


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            launcher.build_parser().parse_args([])

    def test_global_options(self):
        args = launcher.build_parser().parse_args(["--debug", "--json-logs", "--config", "x.json", "status"])
        assert args.debug and args.json_logs
        assert args.config == "x.json"
        assert args.command == "status"

    def test_run_status_endpoint_flag(self):
        args = launcher.build_parser().parse_args(["run", "--status-endpoint"])
        assert args.status_endpoint is True

    def test_version_matches_package(self, capsys):
        import netdisco_sync
        with pytest.raises(SystemExit):
            launcher.build_parser().parse_args(["--version"])
        assert netdisco_sync.__version__ == launcher.__version__
        assert capsys.readouterr().out.strip() == f"netdisco-sync {netdisco_sync.__version__}"


class TestBuildStores:
    def test_shared_folder(self, tmp_path):
        settings = SyncSettings(local_store=str(tmp_path / "r.json"), shared_folder=str(tmp_path),
                                quota_bytes=1000)
        local, remote = launcher.build_stores(settings)
        assert isinstance(local, JsonFileRecordStore)
        assert isinstance(remote, SharedFolderRemoteStore)
        assert remote.quota_bytes == 1000

    def test_unconfigured_remote_is_signed_out(self, tmp_path):
        local, remote = launcher.build_stores(SyncSettings(local_store=str(tmp_path / "r.json")))
        assert isinstance(remote, MemoryRemoteStore)
        assert remote.identity_token() is None


class TestCommands:
    def test_push_writes_shared_file(self, tmp_config):
        local_path, shared = _paths(tmp_config)
        JsonFileRecordStore(local_path).set("GeekMode", True)
        assert launcher.main(["--config", tmp_config, "push"]) == 0
        data = json.loads(open(os.path.join(shared, SharedFolderRemoteStore.FILENAME)).read())
        assert data == {"GeekMode": True}

    def test_pull_merges_shared_file(self, tmp_config, capsys):
        local_path, shared = _paths(tmp_config)
        with open(os.path.join(shared, SharedFolderRemoteStore.FILENAME), "w") as f:
            json.dump({"Favorites": encode_collection([Favorite("ip", "1.1.1.1")])}, f)
        assert launcher.main(["--config", tmp_config, "pull"]) == 0
        assert "Favorites" in capsys.readouterr().out
        entries = load_entries(JsonFileRecordStore(local_path), SyncKey.FAVORITES)
        assert entries == [Favorite("ip", "1.1.1.1")]

    def test_pull_without_shared_folder_fails(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({
            "sync": {"local_store": str(tmp_path / "records.json")},
        }))
        assert launcher.main(["--config", str(tmp_path / "config.json"), "pull"]) == 1

    def test_disabled_sync_is_a_no_op(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({
            "sync": {"enabled": False, "local_store": str(tmp_path / "records.json")},
        }))
        assert launcher.main(["--config", str(tmp_path / "config.json"), "push"]) == 0
        assert not (tmp_path / "records.json").exists()

    def test_status_prints_json(self, tmp_config, capsys):
        assert launcher.main(["--config", tmp_config, "status"]) == 0
        status = json.loads(capsys.readouterr().out)
        assert status["available"] is True
        assert status["collections"]["Favorites"] == 0
        assert "version" in status

    def test_run_stops_on_event(self, tmp_config):
        stop_event = threading.Event()
        stop_event.set()
        with patch.object(launcher, '_stop_event', stop_event):
            assert launcher.main(["--config", tmp_config, "run"]) == 0

    def test_run_polls_until_interrupted(self, tmp_config):
        calls = []
        stop_event = threading.Event()

        def counting_wait(timeout=None):
            calls.append(timeout)
            if len(calls) >= 3:
                raise KeyboardInterrupt
            return False

        stop_event.wait = counting_wait
        with patch.object(launcher, '_stop_event', stop_event), \
             patch.object(SharedFolderRemoteStore, 'synchronize', return_value=True) as sync:
            assert launcher.main(["--config", tmp_config, "run"]) == 0
        assert calls[0] == 5
        # Initial synchronize plus one per completed wait
        assert sync.call_count == 3

    def test_run_exits_when_synchronize_fails(self, tmp_config):
        stop_event = threading.Event()
        waits = []

        def counting_wait(timeout=None):
            waits.append(timeout)
            return len(waits) > 5

        stop_event.wait = counting_wait
        with patch.object(launcher, '_stop_event', stop_event), \
             patch.object(SharedFolderRemoteStore, 'synchronize', side_effect=[True, True, False]) as sync:
            assert launcher.main(["--config", tmp_config, "run"]) == 1
        # Initial synchronize, one good poll, then the failure ends the loop
        assert sync.call_count == 3
        assert len(waits) == 2

