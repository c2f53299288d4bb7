#!/usr/bin/env python3
"""
NetDisco Sync launcher.

    netdisco-sync run       start sync and keep polling the shared folder
    netdisco-sync push      upload every local key, then exit
    netdisco-sync pull      run one merge pass, then exit
    netdisco-sync status    print engine status as JSON

Settings come from ~/.config/netdisco/config.json (or --config).
"""
import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path

from version import __version__
from netdisco_sync.sync import (
    JsonFileRecordStore,
    MemoryRemoteStore,
    SharedFolderRemoteStore,
    SyncCoordinator,
    collection_counts,
)
from netdisco_sync.utils.config import ConfigManager
from netdisco_sync.utils.log import (
    default_log_path, install_crash_handler, set_log_context, setup_logging,
)

log = logging.getLogger("launcher")

JOB_TIMEOUT = 30.0

_stop_event = threading.Event()


def _signal_handler(signum, frame):
    log.info("Received signal %d, stopping...", signum)
    _stop_event.set()


def load_settings(config_path=None):
    if config_path:
        path = Path(config_path)
        manager = ConfigManager(config_dir=path.parent, config_file=path.name)
    else:
        manager = ConfigManager()
    return manager.get_settings()


def build_stores(settings):
    """Local store plus the configured remote store.

    Without a shared folder the remote is a signed-out in-memory store,
    so the coordinator reports sync as unavailable.
    """
    local = JsonFileRecordStore(settings.local_store)
    if settings.shared_folder:
        remote = SharedFolderRemoteStore(settings.shared_folder, quota_bytes=settings.quota_bytes)
    else:
        log.warning("No shared folder configured (sync.shared_folder)")
        remote = MemoryRemoteStore(name="unconfigured", identity=None)
    return local, remote


def cmd_run(coordinator, local, remote, settings, args):
    if not coordinator.start_sync():
        log.error("Sync unavailable, nothing to run")
        return 1

    if args.status_endpoint:
        from netdisco_sync.monitoring.web_status import serve
        threading.Thread(
            target=serve,
            args=(coordinator, local, settings.status_host, settings.status_port),
            daemon=True, name="status-endpoint",
        ).start()

    log.info("Polling %s every %.0fs (Ctrl+C to stop)", remote.name, settings.poll_interval)
    try:
        while not _stop_event.wait(settings.poll_interval):
            coordinator.poll().result(timeout=JOB_TIMEOUT)
            if not coordinator.is_available:
                log.error("Lost sync with %s, restart to re-attempt", remote.name)
                return 1
    except KeyboardInterrupt:
        log.info("Interrupted")
    return 0


def cmd_push(coordinator, local, remote, settings, args):
    if not coordinator.start_sync():
        log.error("Sync unavailable, nothing pushed")
        return 1
    pushed = coordinator.upload_all().result(timeout=JOB_TIMEOUT)
    print("Pushed local values." if pushed else "No local values to push.")
    return 0


def cmd_pull(coordinator, local, remote, settings, args):
    before = {key: local.get(key.value) for key in coordinator.sync_keys}
    if not coordinator.start_sync():
        log.error("Sync unavailable, nothing pulled")
        return 1
    coordinator.flush(JOB_TIMEOUT)
    changed = [key.value for key, value in before.items() if local.get(key.value) != value]
    print("Merged: " + ", ".join(changed) if changed else "Already up to date.")
    return 0


def cmd_status(coordinator, local, remote, settings, args):
    status = coordinator.status()
    status["available"] = remote.identity_token() is not None
    status["collections"] = collection_counts(local)
    status["version"] = __version__
    print(json.dumps(status, indent=2, sort_keys=True))
    return 0


COMMANDS = {
    "run": cmd_run,
    "push": cmd_push,
    "pull": cmd_pull,
    "status": cmd_status,
}


def build_parser():
    parser = argparse.ArgumentParser(
        prog="netdisco-sync",
        description="Reconcile NetDisco history and settings across devices",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to config.json (default: ~/.config/netdisco/config.json)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Log one JSON object per line")

    sub = parser.add_subparsers(dest="command", required=True)
    run = sub.add_parser("run", help="Start sync and poll the shared folder until stopped")
    run.add_argument("--status-endpoint", action="store_true",
                     help="Also serve GET /api/status (requires the 'web' extra)")
    sub.add_parser("push", help="Upload every local key and exit")
    sub.add_parser("pull", help="Run one merge pass and exit")
    sub.add_parser("status", help="Print engine status as JSON")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)

    level = logging.DEBUG if args.debug else getattr(logging, settings.log_level, logging.INFO)
    setup_logging(
        level=level,
        log_file=settings.log_file or default_log_path(),
        console_level=logging.WARNING if args.command == "status" else None,
        structured=args.json_logs or settings.structured_logs,
    )
    install_crash_handler()

    if not settings.enabled and args.command != "status":
        log.info("Sync is disabled in config (sync.enabled)")
        return 0

    signal.signal(signal.SIGTERM, _signal_handler)

    local, remote = build_stores(settings)
    set_log_context(remote.name)
    coordinator = SyncCoordinator(local, remote)
    try:
        return COMMANDS[args.command](coordinator, local, remote, settings, args)
    finally:
        coordinator.shutdown(timeout=JOB_TIMEOUT)


if __name__ == "__main__":
    sys.exit(main())
