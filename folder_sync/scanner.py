"""Directory scanner producing discovered File values."""

import logging
import os
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from folder_sync.cancellation import CancellationToken
from folder_sync.logging_setup import get_logger
from folder_sync.models import File, Folder, Metadata
from folder_sync.progress import NullProgress, ProgressSink
from folder_sync.resolver import PathResolutionError, Resolver


class Scanner:
    """Walks a folder tree and yields a File with metadata for every file."""

    def __init__(
        self,
        resolver: Optional[Resolver] = None,
        progress: Optional[ProgressSink] = None,
        logger: Optional[logging.Logger] = None,
        ignore_extensions: Optional[List[str]] = None,
        ignore_filenames_prefix: Optional[List[str]] = None,
        ignore_filenames_exact: Optional[List[str]] = None,
        ignore_directories: Optional[List[str]] = None,
    ):
        """Initialize scanner with ignore rules.

        Args:
            resolver: Resolver used to turn found paths into File values
            progress: Sink receiving per-entry progress
            logger: Logger to use
            ignore_extensions: Extensions to ignore (e.g., ['.tmp', '.bak'])
            ignore_filenames_prefix: Filename prefixes to ignore
            ignore_filenames_exact: Exact filenames to ignore
            ignore_directories: Directory names to ignore (e.g., ['System Volume Information'])
        """
        self.resolver = resolver or Resolver()
        self.progress = progress or NullProgress()
        self.logger = logger or get_logger("scanner")
        self.ignore_extensions = set(f for f in (ignore_extensions or []) if f)
        self.ignore_filenames_prefix = set(f for f in (ignore_filenames_prefix or []) if f)
        self.ignore_filenames_exact = set(f for f in (ignore_filenames_exact or []) if f)
        # Directory names compare case-insensitively
        self.ignore_directories = set(d.lower() for d in (ignore_directories or []) if d)

    def _should_ignore(self, filename: str) -> bool:
        """Check if file should be ignored."""
        if filename in self.ignore_filenames_exact:
            return True

        for prefix in self.ignore_filenames_prefix:
            if filename.startswith(prefix):
                return True

        for ext in self.ignore_extensions:
            if filename.endswith(ext):
                return True

        return False

    def _should_ignore_directory(self, dir_name: str) -> bool:
        return dir_name.lower() in self.ignore_directories

    def _list_entries(self, root: str) -> List[str]:
        entries = []

        def on_error(error: OSError) -> None:
            self.logger.warning(f"Could not read directory {error.filename}: {error}")

        for dir_path, dir_names, file_names in os.walk(root, onerror=on_error):
            dir_names[:] = [d for d in dir_names if not self._should_ignore_directory(d)]
            for file_name in file_names:
                if self._should_ignore(file_name):
                    self.logger.debug(f"Ignoring file: {os.path.join(dir_path, file_name)}")
                    continue
                entries.append(os.path.join(dir_path, file_name))

        return entries

    def scan(self, folder: Folder, token: Optional[CancellationToken] = None) -> Iterator[File]:
        """Scan a folder recursively.

        Every yielded File has its relative path (empty for root-level
        files) and size/mtime metadata set. The content hash is left unset.

        Args:
            folder: Root folder to scan
            token: Optional cancellation token checked between entries

        Yields:
            Discovered File values
        """
        root = self.resolver.normalize(os.path.abspath(folder.full_path))

        if not os.path.isdir(root):
            self.logger.warning(f"Directory does not exist: {root}")
            return

        entries = self._list_entries(root)
        total = len(entries)
        found = 0

        try:
            for index, entry in enumerate(entries, start=1):
                if token is not None:
                    token.throw_if_cancelled()

                discovered = self._discover(entry, root)
                if discovered is not None:
                    found += 1
                    yield discovered

                label = os.path.relpath(entry, root)
                self.progress.report(index / total * 100, f"Scanning {label}")
        finally:
            self.progress.clear()

        self.logger.info(f"Scanned {found} files in {root}")

    def _discover(self, entry: str, root: str) -> Optional[File]:
        try:
            file = self.resolver.resolve_file(entry)
        except PathResolutionError as e:
            self.logger.warning(f"Skipping unresolvable entry {entry}: {e}")
            return None

        dir_path, name = os.path.split(entry)
        if file.name != name or file.folder.full_path != dir_path:
            # Resolution trims whitespace; keep the name found on disk
            self.logger.warning(
                f"Entry {entry!r} resolves to {file.full_path!r}; using the on-disk name"
            )
            file = File(name, Folder(dir_path))

        try:
            stat_info = os.stat(file.full_path)
        except OSError as e:
            self.logger.warning(f"Could not stat file {entry}: {e}")
            return None

        relative_path = os.path.relpath(file.folder.full_path, root)
        if relative_path == os.curdir:
            relative_path = ""

        metadata = Metadata(
            size=stat_info.st_size,
            last_modified=datetime.fromtimestamp(stat_info.st_mtime, tz=timezone.utc),
        )
        return file.discovered(relative_path, metadata)
