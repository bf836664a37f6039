"""File primitives used by the copy and delete commands."""

import hashlib
import logging
import os
import shutil
import stat
import uuid
from pathlib import Path
from typing import Optional

from folder_sync.logging_setup import get_logger

logger = get_logger("file_ops")

COPY_BUFFER_SIZE = 1024 * 1024
TEMP_FILE_MARKER = ".copytmp-"


class FileOpsError(Exception):
    """Raised when a file operation fails."""

    pass


def temp_file_name(name: str) -> str:
    """Build a unique temporary name for an in-progress copy of ``name``."""
    return f"{name}{TEMP_FILE_MARKER}{uuid.uuid4().hex}"


def is_temporary_file_name(name: str) -> bool:
    """Check whether a name was produced by temp_file_name()."""
    head, marker, token = name.rpartition(TEMP_FILE_MARKER)
    if not marker or not head or len(token) != 32:
        return False
    return all(ch in "0123456789abcdef" for ch in token)


def calculate_file_hash(file_path: str, algorithm: str = "md5", chunk_size: int = 65536) -> str:
    """Calculate the lowercase hex digest of a file.

    Args:
        file_path: Path to the file
        algorithm: Hash algorithm (md5, sha1, sha256, etc.)
        chunk_size: Size of chunks to read (bytes)

    Returns:
        Hexadecimal hash string

    Raises:
        OSError: If the file cannot be read
        ValueError: If algorithm is unsupported
    """
    try:
        hash_func = hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hash_func.update(chunk)

    return hash_func.hexdigest()


def files_have_same_content(
    first: str, second: str, log: Optional[logging.Logger] = None
) -> bool:
    """Compare two files by MD5.

    Any hashing failure counts as "different".
    """
    log = log or logger
    try:
        first_hash = calculate_file_hash(first)
    except OSError as e:
        log.warning(f"Could not hash {first}: {e}. Treating files as different.")
        return False
    try:
        second_hash = calculate_file_hash(second)
    except OSError as e:
        log.warning(f"Could not hash {second}: {e}. Treating files as different.")
        return False
    return first_hash == second_hash


def ensure_directory(path: str) -> None:
    """Ensure directory exists.

    Raises:
        FileOpsError: If creation fails
    """
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        raise FileOpsError(f"Directory creation failed: {e}") from e


def copy_to_temp(source: str, temp_path: str) -> None:
    """Write the bytes of ``source`` into a new file at ``temp_path``.

    The temp file must not exist yet. Data is flushed and fsynced before
    returning so a following rename commits complete content.
    """
    with open(source, "rb") as in_stream, open(temp_path, "xb") as out_stream:
        shutil.copyfileobj(in_stream, out_stream, COPY_BUFFER_SIZE)
        out_stream.flush()
        os.fsync(out_stream.fileno())


def atomic_commit(temp_path: str, dest_path: str) -> None:
    """Move a fully written temp file onto its final name in one step."""
    os.replace(temp_path, dest_path)


def preserve_metadata(source: str, dest: str, log: Optional[logging.Logger] = None) -> bool:
    """Copy times and mode bits from source to dest.

    Best effort: failures are logged as warnings.

    Returns:
        True if metadata was copied
    """
    log = log or logger
    try:
        shutil.copystat(source, dest)
        return True
    except OSError as e:
        log.warning(f"Failed to preserve metadata for {dest}: {e}")
        return False


def clear_read_only(path: str) -> None:
    """Make a file writable if it is marked read-only."""
    try:
        mode = os.stat(path).st_mode
        if not mode & stat.S_IWRITE:
            os.chmod(path, mode | stat.S_IWRITE)
    except OSError as e:
        logger.debug(f"Could not clear read-only flag on {path}: {e}")


def remove_if_exists(path: str, log: Optional[logging.Logger] = None) -> None:
    """Remove a leftover file, logging instead of raising."""
    log = log or logger
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.debug(f"Failed to delete temp file {path}: {e}")


def is_within_root(path: str, root: str) -> bool:
    """Check by prefix comparison that an absolute path lies below root."""
    root = os.path.normcase(root.rstrip(os.sep) or os.sep)
    candidate = os.path.normcase(path)
    prefix = root if root.endswith(os.sep) else root + os.sep
    return candidate.startswith(prefix)


def prune_empty_directories(
    start_dir: str, root: str, log: Optional[logging.Logger] = None
) -> int:
    """Remove empty directories from start_dir upward, never touching root.

    Stops at the first non-empty directory or at the root boundary.

    Returns:
        Number of directories removed
    """
    log = log or logger
    removed = 0
    current = os.path.abspath(start_dir)
    try:
        while is_within_root(current, root):
            if os.path.isdir(current):
                with os.scandir(current) as entries:
                    if any(entries):
                        break
                os.rmdir(current)
                removed += 1
                log.debug(f"Pruned empty directory: {current}")
            current = os.path.dirname(current)
    except OSError as e:
        log.debug(f"Pruning empty directories failed from {start_dir}: {e}")
    return removed
