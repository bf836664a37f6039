"""Configuration loader for the folder sync service."""

import os
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml

from folder_sync.logging_setup import get_logger
from folder_sync.models import Folder, FolderPair

logger = get_logger("config")

PAIR_SEPARATOR = "=>"
DEFAULT_INTERVAL = 3600
DEFAULT_LOG_PATH = "log/FolderSync.log"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
BOOLEAN_KEYS = ("preserve_attributes", "prune_empty_directories", "verify_hash_before_overwrite")


class ConfigError(Exception):
    """Raised when config validation fails."""

    pass


def parse_folder_pairs(entries: Iterable[str]) -> List[FolderPair]:
    """Parse "source=>target" entries into folder pairs.

    Entries that do not split into exactly two non-empty segments are
    dropped. Order and duplicates are kept; duplicate sources are handled
    during pair validation.
    """
    pairs = []
    for entry in entries:
        parts = [part for part in str(entry).split(PAIR_SEPARATOR) if part]
        if len(parts) != 2:
            logger.debug(f"Dropping malformed folder pair: {entry!r}")
            continue
        pairs.append(FolderPair(Folder(parts[0]), Folder(parts[1])))
    return pairs


class Config:
    """Configuration object for the folder sync service."""

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self._config = config_dict
        self._validate()

    def _validate(self) -> None:
        """Validate configuration fields."""
        folders = self._config.get("folders")
        if not folders:
            raise ConfigError("At least one folder must be specified for synchronization!")
        if not isinstance(folders, list) or not all(isinstance(f, str) for f in folders):
            raise ConfigError("Config key 'folders' must be a list of 'source=>target' strings")

        interval = self._config.get("interval", DEFAULT_INTERVAL)
        if isinstance(interval, bool) or not isinstance(interval, int):
            raise ConfigError("Config key 'interval' must be an integer")
        if interval < 1:
            raise ConfigError("The synchronization interval must be at least 1 second!")

        for key in BOOLEAN_KEYS:
            if not isinstance(self._config.get(key, True), bool):
                raise ConfigError(f"Config key '{key}' must be true or false")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")

        backup_count = self.log_backup_count
        if isinstance(backup_count, bool) or not isinstance(backup_count, int) or backup_count < 0:
            raise ConfigError("Config key 'logging.backup_count' must be a non-negative integer")

    @property
    def folders(self) -> List[str]:
        """Get raw folder pair entries."""
        return list(self._config["folders"])

    @property
    def folder_pairs(self) -> List[FolderPair]:
        """Get parsed folder pairs (malformed entries dropped)."""
        return parse_folder_pairs(self.folders)

    @property
    def interval(self) -> int:
        """Get sync interval in seconds."""
        return self._config.get("interval", DEFAULT_INTERVAL)

    @property
    def preserve_attributes(self) -> bool:
        """Get whether copies keep source times and mode."""
        return self._config.get("preserve_attributes", True)

    @property
    def prune_empty_directories(self) -> bool:
        """Get whether deletes prune emptied directories."""
        return self._config.get("prune_empty_directories", True)

    @property
    def verify_hash_before_overwrite(self) -> bool:
        """Get whether updates compare MD5 before overwriting."""
        return self._config.get("verify_hash_before_overwrite", True)

    @property
    def ignore_extensions(self) -> list:
        """Get extensions to ignore."""
        items = (self._config.get("ignore") or {}).get("extensions", [])
        return [i for i in (items or []) if i]

    @property
    def ignore_filenames_prefix(self) -> list:
        """Get filename prefixes to ignore."""
        items = (self._config.get("ignore") or {}).get("filenames_prefix", [])
        return [i for i in (items or []) if i]

    @property
    def ignore_filenames_exact(self) -> list:
        """Get exact filenames to ignore."""
        items = (self._config.get("ignore") or {}).get("filenames_exact", [])
        return [i for i in (items or []) if i]

    @property
    def ignore_directories(self) -> list:
        """Get directory names to ignore."""
        items = (self._config.get("ignore") or {}).get("directories", [])
        return [i for i in (items or []) if i]

    @property
    def log_file_path(self) -> str:
        """Get log file path."""
        return (self._config.get("logging") or {}).get("file_path", DEFAULT_LOG_PATH)

    @property
    def log_level(self) -> str:
        """Get log level."""
        return str((self._config.get("logging") or {}).get("level", "INFO"))

    @property
    def log_backup_count(self) -> int:
        """Get number of daily log files to keep."""
        return (self._config.get("logging") or {}).get("backup_count", 7)

    def to_dict(self) -> Dict[str, Any]:
        """Return config as dictionary."""
        return self._config.copy()


def load_config_dict(config_path: str) -> Dict[str, Any]:
    """Read a YAML config file into a plain dictionary.

    Raises:
        ConfigError: If config file doesn't exist or is not a mapping
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    if not isinstance(config_dict, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    return config_dict


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config.yaml file

    Returns:
        Config object

    Raises:
        ConfigError: If config file doesn't exist or is invalid
        yaml.YAMLError: If YAML parsing fails
    """
    return Config(load_config_dict(config_path))


def load_config_from_env(env_var: str = "FOLDER_SYNC_CONFIG") -> Config:
    """Load configuration from the file named by an environment variable.

    Raises:
        ConfigError: If environment variable not set or config invalid
    """
    config_path = os.getenv(env_var)
    if not config_path:
        raise ConfigError(f"Environment variable {env_var} not set")

    return load_config(config_path)
