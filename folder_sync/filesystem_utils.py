"""Filesystem checks used when validating folder pairs."""

import os
import tempfile
from pathlib import Path

from folder_sync.models import ErrorKind, Folder, Result


def folder_exists(folder: Folder) -> bool:
    """Check if the folder exists as a directory."""
    return os.path.isdir(folder.full_path)


def create_folder(folder: Folder) -> Result:
    """Create the folder (and parents) if it does not exist."""
    try:
        Path(folder.full_path).mkdir(parents=True, exist_ok=True)
        return Result.ok()
    except OSError as e:
        return Result.failure(ErrorKind.IO_FAILURE, f"Failed to create folder: {e}", e)


def check_folder_accessible(folder: Folder) -> Result:
    """Check that a throwaway file can be created inside the folder."""
    try:
        with tempfile.TemporaryFile(dir=folder.full_path):
            pass
        return Result.ok()
    except PermissionError as e:
        return Result.failure(ErrorKind.ACCESS_DENIED, f"Path is not accessible: {e}", e)
    except OSError as e:
        return Result.failure(ErrorKind.IO_FAILURE, f"Path is not accessible: {e}", e)


def init_target_folder(folder: Folder) -> Result:
    """Make sure the target folder exists and is writable."""
    if not folder_exists(folder):
        created = create_folder(folder)
        if not created.success:
            return created

    accessible = check_folder_accessible(folder)
    if not accessible.success:
        return Result.failure(
            accessible.kind,
            f"Target folder is not accessible. {accessible.message}",
            accessible.error,
        )

    return Result.ok()

