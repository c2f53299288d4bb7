"""
Configuration management for NetDisco sync.

Provides persistent configuration storage, loading, and management
with a JSON-based configuration file.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Dict, Any

from .common import (
    CONFIG_DIR, LOCAL_STORE_PATH, check_config_permissions, validate_config,
    validate_hostname,
)

log = logging.getLogger("config")

DEFAULT_CONFIG_DIR = Path(CONFIG_DIR)


@dataclass
class SyncSettings:
    """Settings for the reconciliation engine and its launcher."""

    # Sync
    enabled: bool = True
    local_store: str = LOCAL_STORE_PATH
    shared_folder: Optional[str] = None
    poll_interval: float = 30.0  # seconds between shared-folder refreshes
    quota_bytes: int = 1024 * 1024

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    structured_logs: bool = False

    # Status surface
    status_host: str = "127.0.0.1"
    status_port: int = 8765


class ConfigManager:
    """
    Manages the configuration file with dot-notation access.

    A missing or unreadable file yields defaults; validation problems
    are logged as warnings and never abort loading.
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        config_file: str = "config.json"
    ):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Configuration directory path
            config_file: Configuration file name
        """
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        self.config_file = self.config_dir / config_file
        self._config: Dict[str, Any] = {}
        self._loaded = False

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from file.

        Returns:
            Configuration dictionary
        """
        self._loaded = True
        if not self.config_file.exists():
            log.debug("No config file at %s, using defaults", self.config_file)
            self._config = {}
            return self._config

        try:
            with open(self.config_file) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            log.warning("Invalid config file, using defaults: %s", e)
            data = {}
        except OSError as e:
            log.error("Error loading config: %s", e)
            data = {}

        if not isinstance(data, dict):
            log.warning("Config root is not a JSON object, using defaults")
            data = {}

        for warning in check_config_permissions(str(self.config_file)):
            log.warning(warning)
        for warning in validate_config(data):
            log.warning(warning)

        self._config = data
        log.debug("Loaded configuration from %s", self.config_file)
        return self._config

    def save(self, config: Optional[Dict[str, Any]] = None) -> bool:
        """
        Save configuration to file.

        Args:
            config: Configuration dictionary (uses internal if not provided)

        Returns:
            True if save successful
        """
        if config is not None:
            self._config = config

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                json.dump(self._config, f, indent=2)
            log.debug("Saved configuration to %s", self.config_file)
            return True
        except OSError as e:
            log.error("Error saving config: %s", e)
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation)
            default: Default value if key not found
        """
        if not self._loaded:
            self.load()

        value = self._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (dot notation creates nested sections).
        """
        if not self._loaded:
            self.load()

        keys = key.split(".")
        target = self._config
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value

    def get_settings(self) -> SyncSettings:
        """
        Build SyncSettings from the ``sync``, ``logging`` and ``status``
        sections, falling back to defaults for anything missing or invalid.
        """
        if not self._loaded:
            self.load()

        defaults = SyncSettings()
        sync = self._section("sync")
        logging_cfg = self._section("logging")
        status = self._section("status")

        settings = SyncSettings(
            enabled=sync.get("enabled", defaults.enabled),
            local_store=sync.get("local_store") or defaults.local_store,
            shared_folder=sync.get("shared_folder") or None,
            poll_interval=sync.get("poll_interval", defaults.poll_interval),
            quota_bytes=sync.get("quota_bytes", defaults.quota_bytes),
            log_level=str(logging_cfg.get("level", defaults.log_level)).upper(),
            log_file=logging_cfg.get("file") or None,
            structured_logs=logging_cfg.get("structured", defaults.structured_logs),
            status_host=status.get("host", defaults.status_host),
            status_port=status.get("port", defaults.status_port),
        )
        return _sanitize(settings, defaults)

    def save_settings(self, settings: SyncSettings) -> bool:
        """Write SyncSettings back into their config sections."""
        if not self._loaded:
            self.load()
        data = asdict(settings)
        self._config["sync"] = {
            "enabled": data["enabled"],
            "local_store": data["local_store"],
            "shared_folder": data["shared_folder"],
            "poll_interval": data["poll_interval"],
            "quota_bytes": data["quota_bytes"],
        }
        self._config["logging"] = {
            "level": data["log_level"],
            "file": data["log_file"],
            "structured": data["structured_logs"],
        }
        self._config["status"] = {
            "host": data["status_host"],
            "port": data["status_port"],
        }
        return self.save()

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._config.get(name, {})
        return section if isinstance(section, dict) else {}


def _sanitize(settings: SyncSettings, defaults: SyncSettings) -> SyncSettings:
    """Replace values that failed validation with their defaults."""
    if not isinstance(settings.enabled, bool):
        settings.enabled = defaults.enabled
    if (isinstance(settings.poll_interval, bool)
            or not isinstance(settings.poll_interval, (int, float))
            or settings.poll_interval <= 0):
        settings.poll_interval = defaults.poll_interval
    if (isinstance(settings.quota_bytes, bool)
            or not isinstance(settings.quota_bytes, int)
            or settings.quota_bytes <= 0):
        settings.quota_bytes = defaults.quota_bytes
    if settings.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        settings.log_level = defaults.log_level
    if not isinstance(settings.structured_logs, bool):
        settings.structured_logs = defaults.structured_logs
    if not validate_hostname(settings.status_host)[0]:
        settings.status_host = defaults.status_host
    if (isinstance(settings.status_port, bool)
            or not isinstance(settings.status_port, int)
            or not 1 <= settings.status_port <= 65535):
        settings.status_port = defaults.status_port
    return settings
