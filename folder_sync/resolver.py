"""Path resolver turning ambiguous user paths into File or Folder values."""

import ntpath
import os
import re
from typing import Optional

from folder_sync.models import ErrorKind, File, Folder

# A lone non-letter prefix followed by a colon, e.g. ":c:" or "1:x"
MALFORMED_DRIVE_PATTERN = re.compile(r"^[^a-zA-Z]*:[^\\/].*")

_NT_INVALID_CHARS = frozenset('"<>|') | frozenset(chr(i) for i in range(32))
_POSIX_INVALID_CHARS = frozenset("\0")


class PathResolutionError(Exception):
    """Raised when a path cannot be resolved to a file or folder."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class Resolver:
    """Resolves user supplied path strings.

    It is hard to tell from a string alone whether it names a file or a
    folder; the resolver combines the string shape (extension, trailing
    separator) with what actually exists on disk.

    The path module decides the host conventions. ``os.path`` is the
    default; pass ``ntpath`` or ``posixpath`` to pin them.
    """

    def __init__(self, path_module=os.path, base_dir: Optional[str] = None):
        """Initialize resolver.

        Args:
            path_module: ``os.path``, ``ntpath`` or ``posixpath``
            base_dir: Directory relative paths are resolved against
                (defaults to the current working directory)
        """
        self.path = path_module
        self.base_dir = base_dir if base_dir is not None else os.getcwd()
        self._is_nt = path_module is ntpath
        self._separators = "\\/" if self._is_nt else "/"

    def resolve_file(self, path: str, default_file_name: Optional[str] = None) -> File:
        """Resolve a path into a File.

        Args:
            path: Unresolved path string
            default_file_name: File name to use when the path names a folder

        Returns:
            File value (not yet discovered)

        Raises:
            PathResolutionError: INVALID_PATH or AMBIGUOUS_PATH
        """
        raw = (path or "").strip()
        full_path = self._full_path(raw)

        is_existing_file = os.path.isfile(full_path)
        is_existing_folder = os.path.isdir(full_path)
        looks_like_file = self.has_extension(raw) and not is_existing_folder

        if is_existing_file or looks_like_file:
            directory, name = self.path.split(full_path)
            if not directory or not name:
                raise PathResolutionError(
                    ErrorKind.INVALID_PATH, "Cannot determine the directory of the file."
                )
            return File(name, Folder(directory))

        if not default_file_name:
            raise PathResolutionError(
                ErrorKind.AMBIGUOUS_PATH,
                "Path does not point to a file and no default file name is provided.",
            )

        return File(default_file_name, Folder(full_path))

    def resolve_folder(self, path: str) -> Folder:
        """Resolve a path into a Folder.

        Raises:
            PathResolutionError: INVALID_PATH, BARE_DRIVE_ROOT or PATH_IS_FILE
        """
        raw = (path or "").strip()
        full_path = self._full_path(raw)

        if self.is_drive_root(full_path):
            raise PathResolutionError(
                ErrorKind.BARE_DRIVE_ROOT,
                "Path cannot be only a drive root (e.g., C:\\ or /).",
            )

        if os.path.isfile(full_path) and not os.path.isdir(full_path):
            raise PathResolutionError(
                ErrorKind.PATH_IS_FILE, "Path points to a file, not a folder."
            )

        return Folder(full_path)

    def has_extension(self, path: str) -> bool:
        """Check whether the last path segment carries an extension.

        A leading dot counts, so ``.onlyextension`` is a file name.
        """
        name = re.split(f"[{re.escape(self._separators)}]", path)[-1]
        index = name.rfind(".")
        return index != -1 and index < len(name) - 1

    def is_drive_root(self, path: str) -> bool:
        """Check whether the path is nothing but a drive (or filesystem) root."""
        if not path:
            return False
        if self._is_nt:
            drive, rest = ntpath.splitdrive(path)
            return bool(drive) and rest.strip("\\/") == ""
        return path.strip("/") == ""

    def _full_path(self, path: str) -> str:
        if not self._is_valid(path):
            raise PathResolutionError(ErrorKind.INVALID_PATH, "Path is not valid.")

        if self._is_nt and re.fullmatch(r"[A-Za-z]:", path):
            # Bare "c:" means the root of that drive
            path = path + "\\"

        if self._is_fully_qualified(path):
            full_path = path
        else:
            full_path = self.path.join(self.base_dir, path)

        return self.normalize(self.path.normpath(full_path))

    def normalize(self, path: str) -> str:
        """Normalize separators.

        Forward slashes become the host separator, repeated separators
        collapse and a trailing separator is dropped unless the path is a
        bare drive root.
        """
        sep = self.path.sep
        normalized = path.replace("/", sep)

        prefix = ""
        if self._is_nt and normalized.startswith(sep * 2):
            # Keep the UNC "\\server" prefix intact
            prefix, normalized = sep * 2, normalized.lstrip(sep)

        normalized = prefix + re.sub(re.escape(sep) + "{2,}", lambda _: sep, normalized)

        if normalized.endswith(sep) and not self.is_drive_root(normalized):
            normalized = normalized.rstrip(sep)

        return normalized

    def _is_valid(self, path: str) -> bool:
        if not path:
            return False

        invalid = _NT_INVALID_CHARS if self._is_nt else _POSIX_INVALID_CHARS
        if any(ch in invalid for ch in path):
            return False

        if MALFORMED_DRIVE_PATTERN.match(path):
            return False

        return True

    def _is_fully_qualified(self, path: str) -> bool:
        if self._is_nt:
            return bool(re.match(r"^[A-Za-z]:[\\/]", path)) or path.startswith(("\\\\", "//"))
        return self.path.isabs(path)
