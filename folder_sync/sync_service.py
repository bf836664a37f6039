"""Sync orchestrator: validates folder pairs and runs one sync pass over them."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from folder_sync.cancellation import CancellationToken
from folder_sync.command_processor import CommandProcessor
from folder_sync.commands import (
    DEFAULT_RETRY_POLICY,
    CopyCommand,
    DeleteCommand,
    RetryPolicy,
    SyncCommand,
)
from folder_sync.filesystem_utils import folder_exists, init_target_folder
from folder_sync.logging_setup import get_logger
from folder_sync.models import ErrorKind, Folder, FolderPair, Result
from folder_sync.resolver import PathResolutionError, Resolver
from folder_sync.scanner import Scanner
from folder_sync.sync_logic import diff_files


class NoValidFolderPairsError(Exception):
    """Raised when no folder pair survives startup validation."""


@dataclass
class SyncReport:
    """Outcome counts for one folder pair in one pass."""

    pair: FolderPair
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0

    def __str__(self) -> str:
        return (
            f"{self.pair}: {self.created} created, {self.updated} updated, "
            f"{self.deleted} deleted, {self.skipped} skipped, {self.failed} failed"
        )


class SyncService:
    """Runs one-way synchronization for a list of folder pairs."""

    def __init__(
        self,
        folder_pairs: Iterable[FolderPair],
        logger: Optional[logging.Logger] = None,
        resolver: Optional[Resolver] = None,
        scanner: Optional[Scanner] = None,
        preserve_attributes: bool = True,
        prune_empty_directories: bool = True,
        verify_hash_before_overwrite: bool = True,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        """Initialize the service and validate folder pairs.

        Args:
            folder_pairs: Unresolved folder pairs, in configuration order
            logger: Logger to use
            resolver: Path resolver
            scanner: Metadata scanner
            preserve_attributes: Copy times and mode onto copied files
            prune_empty_directories: Remove directories emptied by deletes
            verify_hash_before_overwrite: Skip updates whose content is identical
            retry_policy: Retry policy for file operations

        Raises:
            NoValidFolderPairsError: If no pair is valid
        """
        self.logger = logger or get_logger("sync_service")
        self.resolver = resolver or Resolver()
        self.scanner = scanner or Scanner(resolver=self.resolver, logger=self.logger)
        self.preserve_attributes = preserve_attributes
        self.prune_empty_directories = prune_empty_directories
        self.verify_hash_before_overwrite = verify_hash_before_overwrite
        self.retry_policy = retry_policy
        self.folder_pairs = self._check_startup_conditions(folder_pairs)

    def _check_startup_conditions(self, folder_pairs: Iterable[FolderPair]) -> List[FolderPair]:
        valid: Dict[Folder, FolderPair] = {}

        for pair in folder_pairs:
            try:
                resolved = FolderPair(
                    self.resolver.resolve_folder(pair.source.full_path),
                    self.resolver.resolve_folder(pair.target.full_path),
                )
            except PathResolutionError as e:
                self.logger.error(
                    f"Folder pair ({pair}) check failed (folder pair will be excluded "
                    f"from sync): {e}"
                )
                continue

            check = self._check_pair(resolved)
            if not check.success:
                self.logger.error(
                    f"Folder pair ({resolved}) check failed (folder pair will be excluded "
                    f"from sync): {check.message}"
                )
                continue

            if resolved.source in valid:
                self.logger.warning(
                    f"Source folder {resolved.source} is already mapped to another target "
                    f"folder. Skipping duplicate mapping to {resolved.target}."
                )
                continue

            valid[resolved.source] = resolved
            self.logger.info(f"Folder pair ({resolved}) is VALID")

        if not valid:
            self.logger.error("No valid folders to sync.")
            raise NoValidFolderPairsError("No valid folder pairs to sync.")

        return list(valid.values())

    def _check_pair(self, pair: FolderPair) -> Result:
        if pair.source.full_path == pair.target.full_path:
            return Result.failure(
                ErrorKind.INVALID_PATH, "Source and target folder paths are identical."
            )

        if not folder_exists(pair.source):
            return Result.failure(
                ErrorKind.INVALID_PATH, f"Source folder '{pair.source}' does not exist."
            )

        return init_target_folder(pair.target)

    def sync_folders(self, token: CancellationToken) -> List[SyncReport]:
        """Run one sync pass over every valid folder pair.

        Pairs are processed one after another; a pair's commands are fully
        drained before the next pair is scanned.

        Raises:
            OperationCanceledError: If cancellation was requested
        """
        self.logger.info(f"Sync pass started for {len(self.folder_pairs)} folder pair(s)")
        reports = []

        with CommandProcessor(token, self.logger, self.retry_policy) as processor:
            for pair in self.folder_pairs:
                token.throw_if_cancelled()
                reports.append(self._sync_pair(pair, processor, token))

        return reports

    def _sync_pair(
        self, pair: FolderPair, processor: CommandProcessor, token: CancellationToken
    ) -> SyncReport:
        self.logger.info(f"Syncing from {pair.source} to {pair.target}")

        source_files = list(self.scanner.scan(pair.source, token))
        target_files = list(self.scanner.scan(pair.target, token))
        plan = diff_files(source_files, target_files, self.logger)
        self.logger.info(f"Folder pair ({pair}): {plan.summary()}")

        creates: List[SyncCommand] = [
            CopyCommand(
                file,
                pair.target,
                overwrite=False,
                preserve_attributes=self.preserve_attributes,
            )
            for file in plan.to_create
        ]
        updates: List[SyncCommand] = [
            CopyCommand(
                file,
                pair.target,
                overwrite=True,
                preserve_attributes=self.preserve_attributes,
                verify_hash=self.verify_hash_before_overwrite,
            )
            for file in plan.to_update
        ]
        deletes: List[SyncCommand] = [
            DeleteCommand(file, pair.target, prune_empty_dirs=self.prune_empty_directories)
            for file in plan.to_delete
        ]

        # Deletes run first: a path may have switched between file and directory
        for command in deletes + creates + updates:
            processor.add_command(command)

        processor.wait_until_drained()
        token.throw_if_cancelled()

        report = self._build_report(pair, creates, updates, deletes)
        self.logger.info(f"Finished {report}")
        return report

    @staticmethod
    def _build_report(
        pair: FolderPair,
        creates: List[SyncCommand],
        updates: List[SyncCommand],
        deletes: List[SyncCommand],
    ) -> SyncReport:
        report = SyncReport(pair)
        for commands, attr in ((creates, "created"), (updates, "updated"), (deletes, "deleted")):
            for command in commands:
                result = command.result
                if not result.success:
                    report.failed += 1
                elif result.skipped:
                    report.skipped += 1
                else:
                    setattr(report, attr, getattr(report, attr) + 1)
        return report
