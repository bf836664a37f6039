"""Value types shared by the resolver, scanner, diff engine and command pipeline."""

import os
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Failure categories reported by resolver and command results."""

    INVALID_PATH = "invalid_path"
    AMBIGUOUS_PATH = "ambiguous_path"
    BARE_DRIVE_ROOT = "bare_drive_root"
    PATH_IS_FILE = "path_is_file"
    SOURCE_MISSING = "source_missing"
    DESTINATION_EXISTS = "destination_exists"
    OUTSIDE_ROOT = "outside_root"
    IO_FAILURE = "io_failure"
    ACCESS_DENIED = "access_denied"
    OPERATION_CANCELED = "operation_canceled"


@dataclass(frozen=True)
class Folder:
    """A folder location.

    Equality is plain string equality of ``full_path``: no normalization
    and no case folding.
    """

    full_path: str

    def __str__(self) -> str:
        return self.full_path


@dataclass(frozen=True)
class Metadata:
    """Discovered metadata of a file."""

    size: int
    last_modified: datetime
    hash: Optional[str] = None


@dataclass(frozen=True)
class File:
    """A file inside a folder.

    ``relative_path`` and ``metadata`` stay unset until the scanner has
    discovered the file. An empty relative path marks a root-level file.
    """

    name: str
    folder: Folder
    relative_path: Optional[str] = None
    metadata: Optional[Metadata] = None

    @property
    def full_path(self) -> str:
        return os.path.join(self.folder.full_path, self.name)

    @property
    def is_discovered(self) -> bool:
        return self.relative_path is not None

    def discovered(self, relative_path: str, metadata: Metadata) -> "File":
        """Return a copy carrying the scan results."""
        return replace(self, relative_path=relative_path, metadata=metadata)

    def __str__(self) -> str:
        return self.full_path


@dataclass(frozen=True)
class FolderPair:
    """A source/target association for one-way synchronization."""

    source: Folder
    target: Folder

    def __str__(self) -> str:
        return f"{self.source.full_path} => {self.target.full_path}"


@dataclass(frozen=True)
class Result:
    """Outcome of an operation: success flag, message and optional cause."""

    success: bool
    message: str = ""
    error: Optional[BaseException] = None
    kind: Optional[ErrorKind] = None
    skipped: bool = False

    @classmethod
    def ok(cls, message: str = "") -> "Result":
        return cls(True, message)

    @classmethod
    def skip(cls, message: str) -> "Result":
        """Success without any change on disk."""
        return cls(True, message, skipped=True)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        error: Optional[BaseException] = None,
    ) -> "Result":
        return cls(False, message, error, kind)


NOT_EXECUTED = Result(False, "Not executed yet.")
