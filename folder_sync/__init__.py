"""Folder sync service modules."""

from folder_sync.cancellation import CancellationToken, OperationCanceledError
from folder_sync.config_loader import Config, ConfigError, load_config
from folder_sync.logging_setup import get_logger, setup_logging
from folder_sync.sync_service import NoValidFolderPairsError, SyncService

__all__ = [
    "CancellationToken",
    "Config",
    "ConfigError",
    "NoValidFolderPairsError",
    "OperationCanceledError",
    "SyncService",
    "load_config",
    "setup_logging",
    "get_logger",
]
