"""Main entry point for the folder sync service."""

import argparse
import signal
import sys
from typing import Any, Dict, List, Optional

from folder_sync.cancellation import CancellationToken, OperationCanceledError
from folder_sync.config_loader import (
    Config,
    ConfigError,
    load_config_dict,
    load_config_from_env,
)
from folder_sync.logging_setup import get_logger, setup_logging
from folder_sync.progress import ConsoleProgress
from folder_sync.resolver import PathResolutionError, Resolver
from folder_sync.scanner import Scanner
from folder_sync.scheduler import SyncScheduler
from folder_sync.sync_service import NoValidFolderPairsError, SyncService

DEFAULT_LOG_FILE_NAME = "FolderSync.log"

BANNER = """\
==================================================
 Folder Sync - one-way folder synchronization
 Press Ctrl+C to stop.
==================================================
"""

logger = get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="folder-sync",
        description="Folder Sync - periodic one-way folder synchronization",
    )
    parser.add_argument(
        "-f",
        "--folders",
        action="append",
        metavar="SOURCE=>TARGET",
        help="Folder pair to synchronize (repeatable)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=int,
        help="Synchronization interval in seconds (default 3600)",
    )
    parser.add_argument(
        "-l",
        "--level",
        type=str,
        help="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    parser.add_argument(
        "-p",
        "--path",
        type=str,
        help="Log file path (default log/FolderSync.log)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to config.yaml file",
    )
    parser.add_argument(
        "--use-env",
        action="store_true",
        help="Load config from FOLDER_SYNC_CONFIG environment variable",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sync pass and exit",
    )
    return parser


def build_config(args: argparse.Namespace) -> Config:
    """Merge the optional config file with command-line overrides.

    Raises:
        ConfigError: If the resulting configuration is invalid
    """
    config_dict: Dict[str, Any] = {}
    if args.use_env:
        config_dict = load_config_from_env().to_dict()
    elif args.config:
        config_dict = load_config_dict(args.config)

    if args.folders:
        config_dict["folders"] = list(args.folders)
    if args.interval is not None:
        config_dict["interval"] = args.interval

    logging_section = dict(config_dict.get("logging") or {})
    if args.level:
        logging_section["level"] = args.level
    if args.path:
        logging_section["file_path"] = args.path
    config_dict["logging"] = logging_section

    return Config(config_dict)


def install_signal_handlers(token: CancellationToken) -> None:
    """Cancel the token on SIGINT/SIGTERM."""

    def handle(signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        token.cancel()

    signal.signal(signal.SIGINT, handle)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handle)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for a clean stop, 1 for startup failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    print(BANNER)

    try:
        config = build_config(args)
    except ConfigError as e:
        logger.error(f"Config error: {e}")
        return 1

    resolver = Resolver()
    try:
        log_file = resolver.resolve_file(config.log_file_path, DEFAULT_LOG_FILE_NAME)
    except PathResolutionError as e:
        logger.error(f"Invalid log file path '{config.log_file_path}': {e}")
        return 1

    setup_logging(log_file.full_path, config.log_level, backup_count=config.log_backup_count)
    logger.info(f"Logging to {log_file.full_path}")

    scanner = Scanner(
        resolver=resolver,
        progress=ConsoleProgress(),
        logger=get_logger("scanner"),
        ignore_extensions=config.ignore_extensions,
        ignore_filenames_prefix=config.ignore_filenames_prefix,
        ignore_filenames_exact=config.ignore_filenames_exact,
        ignore_directories=config.ignore_directories,
    )

    try:
        service = SyncService(
            config.folder_pairs,
            logger=get_logger("sync_service"),
            resolver=resolver,
            scanner=scanner,
            preserve_attributes=config.preserve_attributes,
            prune_empty_directories=config.prune_empty_directories,
            verify_hash_before_overwrite=config.verify_hash_before_overwrite,
        )
    except NoValidFolderPairsError as e:
        logger.error(str(e))
        return 1

    token = CancellationToken()
    install_signal_handlers(token)

    try:
        if args.once:
            service.sync_folders(token)
            logger.info("Folder sync completed.")
            return 0

        scheduler = SyncScheduler(config.interval, service.sync_folders, get_logger("scheduler"))
        scheduler.run(token)
    except OperationCanceledError:
        logger.info("Sync app stopped by user.")
        return 0
    except KeyboardInterrupt:
        token.cancel()
        logger.info("Sync app stopped by user.")
        return 0
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
