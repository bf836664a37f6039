"""Diff engine partitioning scanned files into create, update and delete sets."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from folder_sync.logging_setup import get_logger
from folder_sync.models import File

FileKey = Tuple[str, str]


@dataclass
class SyncPlan:
    """Result of diffing a source tree against a target tree."""

    to_create: List[File] = field(default_factory=list)
    to_update: List[File] = field(default_factory=list)
    to_delete: List[File] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)

    def summary(self) -> str:
        return (
            f"{len(self.to_create)} to create, {len(self.to_update)} to update, "
            f"{len(self.to_delete)} to delete"
        )


def file_key(file: File) -> FileKey:
    """Identity used for matching: (name, relative path)."""
    return file.name, file.relative_path or ""


def metadata_differs(source: File, target: File) -> bool:
    """Check whether size or modification time differ.

    Files without metadata are considered different.
    """
    if source.metadata is None or target.metadata is None:
        return True
    return (
        source.metadata.size != target.metadata.size
        or source.metadata.last_modified != target.metadata.last_modified
    )


def _index(files: Iterable[File], side: str, logger: logging.Logger) -> Dict[FileKey, File]:
    indexed: Dict[FileKey, File] = {}
    for file in files:
        if not file.is_discovered:
            logger.debug(f"Ignoring undiscovered {side} file: {file}")
            continue
        indexed.setdefault(file_key(file), file)
    return indexed


def diff_files(
    source_files: Iterable[File],
    target_files: Iterable[File],
    logger: Optional[logging.Logger] = None,
) -> SyncPlan:
    """Diff source files against target files.

    Matching is exact string equality on (name, relative path); there is
    no rename detection. A matched pair is an update candidate when size
    or modification time differ, whatever the content. An edit that keeps
    both size and mtime is therefore not detected.

    Args:
        source_files: Discovered files of the source tree
        target_files: Discovered files of the target tree
        logger: Logger to use

    Returns:
        SyncPlan with disjoint create/update/delete lists, in input order
    """
    logger = logger or get_logger("sync_logic")
    sources = _index(source_files, "source", logger)
    targets = _index(target_files, "target", logger)

    plan = SyncPlan()

    for key, source in sources.items():
        target = targets.get(key)
        if target is None:
            plan.to_create.append(source)
        elif metadata_differs(source, target):
            plan.to_update.append(source)

    for key, target in targets.items():
        if key not in sources:
            plan.to_delete.append(target)

    logger.debug(f"Diff result: {plan.summary()}")
    return plan
