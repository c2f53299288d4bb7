"""
Centralized paths, validation helpers, and project constants.
Single source of truth -- all modules import from here.
"""
import logging
import os
import re
import stat

log = logging.getLogger("config")


def get_real_user_home():
    """Return the real user's home directory, even under sudo.

    When running with ``sudo``, ``os.path.expanduser("~")`` returns
    ``/root`` instead of the invoking user's home.  This function checks
    the ``SUDO_USER`` environment variable and resolves the correct path.
    """
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user:
        try:
            import pwd
            return pwd.getpwnam(sudo_user).pw_dir
        except (KeyError, ImportError):
            pass
    return os.path.expanduser("~")


# ── Canonical Paths ──────────────────────────────────────────
_HOME = get_real_user_home()
CONFIG_DIR = os.path.join(_HOME, ".config", "netdisco")
CONFIG_PATH = os.path.join(CONFIG_DIR, "config.json")
LOCAL_STORE_PATH = os.path.join(CONFIG_DIR, "records.json")
LOG_DIR = os.path.join(CONFIG_DIR, "logs")

_HOSTNAME_RE = re.compile(r'^[a-zA-Z0-9._:\-]+$')

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_hostname(host):
    """Validate a hostname/IP string.

    Rejects flag-injection attempts (leading '-'), overly long values,
    and characters outside the safe set.

    Returns:
        (ok: bool, error_message: str)
    """
    if not host or not isinstance(host, str):
        return False, "hostname must be a non-empty string"
    if host.startswith('-'):
        return False, "hostname must not start with '-' (flag injection)"
    if len(host) > 253:
        return False, "hostname exceeds 253 characters"
    if not _HOSTNAME_RE.match(host):
        return False, f"hostname contains invalid characters: {host!r}"
    return True, ""


def validate_port(port):
    """Validate a network port number.

    Returns:
        (ok: bool, error_message: str)
    """
    if not isinstance(port, int) or isinstance(port, bool):
        return False, f"port must be an integer, got {type(port).__name__}"
    if port < 1 or port > 65535:
        return False, f"port must be 1-65535, got {port}"
    return True, ""


def check_config_permissions(path):
    """Warn if a file has overly permissive modes (POSIX only).

    Returns a list of warning strings (empty when permissions are fine).
    """
    warnings = []
    if os.name != 'posix':
        return warnings
    try:
        mode = os.stat(path).st_mode
        if mode & stat.S_IWOTH:
            warnings.append(
                f"{path} is world-writable (mode {oct(mode)}). "
                "Consider: chmod 600 " + path
            )
    except OSError:
        pass
    return warnings


def validate_config(cfg):
    """Validate the ``sync`` and ``status`` sections of a config dict.

    Returns an empty list when the config is valid.
    """
    warnings = []
    if not isinstance(cfg, dict):
        return ["Config is not a JSON object"]

    sync = cfg.get("sync", {})
    if not isinstance(sync, dict):
        warnings.append("sync section must be a JSON object")
    else:
        enabled = sync.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            warnings.append(f"sync.enabled must be true or false, got {enabled!r}")

        interval = sync.get("poll_interval")
        if interval is not None and (
            isinstance(interval, bool)
            or not isinstance(interval, (int, float))
            or interval <= 0
        ):
            warnings.append(f"sync.poll_interval must be a positive number, got {interval!r}")

        for path_key in ("local_store", "shared_folder"):
            val = sync.get(path_key)
            if val is not None and (not isinstance(val, str) or not val):
                warnings.append(f"sync.{path_key} must be a non-empty path string")

    logging_cfg = cfg.get("logging", {})
    if isinstance(logging_cfg, dict):
        level = logging_cfg.get("level")
        if level is not None and str(level).upper() not in _VALID_LOG_LEVELS:
            warnings.append(f"logging.level must be one of {_VALID_LOG_LEVELS}, got {level!r}")

    status = cfg.get("status", {})
    if isinstance(status, dict):
        port = status.get("port")
        if port is not None:
            ok, err = validate_port(port)
            if not ok:
                warnings.append(f"status.port: {err}")
        host = status.get("host")
        if host is not None:
            ok, err = validate_hostname(host)
            if not ok:
                warnings.append(f"status.host: {err}")

    return warnings
