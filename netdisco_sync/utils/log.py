"""
Logging for the sync launcher.

Modules log through their own named loggers ("sync.coordinator",
"sync.stores").  setup_logging() attaches the console and rotating-file
handlers to the root logger; each handler carries a SyncContextFilter
that stamps the active remote store's name on every record, so lines
from several devices' logs can be told apart.

Coordinator records may carry sync fields via ``extra=``
(``sync_keys``, ``reason``); the JSON formatter emits them as-is.
"""
import json
import logging
import logging.handlers
import os
import sys
import threading
import time

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s <%(remote)s>: %(message)s"
SYNC_FIELDS = ("remote", "sync_keys", "reason")

log = logging.getLogger("crash")


class SyncContextFilter(logging.Filter):
    """Stamps ``record.remote`` unless the caller passed one in ``extra``."""

    def __init__(self, remote="-"):
        super().__init__()
        self.remote = remote

    def filter(self, record):
        if not hasattr(record, "remote"):
            record.remote = self.remote
        return True


_context = SyncContextFilter()


def set_log_context(remote):
    """Name the remote store that subsequent records belong to."""
    _context.remote = remote or "-"


class JsonFormatter(logging.Formatter):
    """One JSON object per line::

        {"ts":"2026-01-15T12:00:00Z","level":"INFO","logger":"sync.coordinator",
         "remote":"folder:/srv/shared","sync_keys":["GeekMode"],"msg":"..."}
    """

    converter = time.gmtime

    def format(self, record):
        entry = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
        }
        for field in SYNC_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, "-"):
                entry[field] = value
        entry["msg"] = record.getMessage()
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _ours(handler):
    return getattr(handler, "_netdisco", False)


def setup_logging(level=logging.INFO, log_file=None, console_level=None,
                  structured=False):
    """Attach console and (optionally) rotating file handlers to root.

    A second call is a no-op while our handlers are installed.

    Args:
        level: Root and file handler level.
        log_file: Rotating log file (1 MB x 3), directory created if needed.
        console_level: Console handler level; defaults to *level*.
        structured: Emit JSON lines instead of text.
    """
    root = logging.getLogger()
    if any(_ours(h) for h in root.handlers):
        return

    formatter = JsonFormatter() if structured else logging.Formatter(
        TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers = [(logging.StreamHandler(), console_level or level)]
    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        handlers.append((logging.handlers.RotatingFileHandler(
            log_file, maxBytes=1_000_000, backupCount=3), level))

    root.setLevel(level)
    for handler, handler_level in handlers:
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        handler.addFilter(_context)
        handler._netdisco = True
        root.addHandler(handler)


def default_log_path():
    """``~/.config/netdisco/logs/sync.log`` (real user's home under sudo)."""
    from netdisco_sync.utils import common
    os.makedirs(common.LOG_DIR, exist_ok=True)
    return os.path.join(common.LOG_DIR, "sync.log")


def install_crash_handler():
    """Send uncaught exceptions, on any thread, to the "crash" logger.

    With setup_logging() done first they land in sync.log next to the
    sync history that led up to them.  Ctrl+C keeps the default behaviour.
    """
    def excepthook(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        log.critical("Uncaught %s", exc_type.__name__,
                     exc_info=(exc_type, exc_value, exc_tb))

    def thread_excepthook(args):
        if args.exc_type is SystemExit:
            return
        name = args.thread.name if args.thread else "?"
        log.critical("Uncaught %s in thread %s", args.exc_type.__name__, name,
                     exc_info=(args.exc_type, args.exc_value, args.exc_traceback))

    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook
