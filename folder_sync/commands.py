"""Copy and delete commands executed against the target tree.

Commands are small mutable records: the processor executes each one
exactly once through ``execute()`` and stores the outcome in ``result``.
File I/O inside a command runs under ``retry()``, which retries OSError
failures with exponential backoff and lets everything else (notably
OperationCanceledError) through immediately.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar, Union

from folder_sync import file_ops
from folder_sync.cancellation import CancellationToken, OperationCanceledError
from folder_sync.logging_setup import get_logger
from folder_sync.models import NOT_EXECUTED, ErrorKind, File, Folder, Result

T = TypeVar("T")


class RetryExhaustedError(OSError):
    """Raised when an operation still fails after the last retry."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class SourceMissingError(Exception):
    """The source file disappeared before it could be copied."""


class DestinationExistsError(Exception):
    """The destination appeared while overwriting was disabled."""


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff base (seconds)."""

    max_attempts: int = 5
    base_delay: float = 0.2

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * 2 ** (attempt - 1)


DEFAULT_RETRY_POLICY = RetryPolicy()


def retry(
    action: Callable[[int], T],
    token: CancellationToken,
    logger: logging.Logger,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    description: str = "Operation",
) -> T:
    """Run ``action(attempt)`` until it succeeds or the attempts run out.

    Cancellation is checked before every attempt and during every delay.

    Raises:
        OperationCanceledError: If cancellation was requested
        RetryExhaustedError: If every attempt failed with an OSError
    """
    last_error: Optional[OSError] = None

    for attempt in range(1, policy.max_attempts + 1):
        token.throw_if_cancelled()

        try:
            return action(attempt)
        except OSError as e:
            last_error = e

        if attempt == policy.max_attempts:
            break

        delay = policy.delay_for(attempt)
        logger.warning(
            f"{description} retry {attempt}/{policy.max_attempts} in {delay:.2f}s "
            f"due to: {last_error}"
        )
        token.sleep(delay)

    raise RetryExhaustedError(
        f"{description} failed after {policy.max_attempts} attempts.",
        policy.max_attempts,
        last_error,
    ) from last_error


@dataclass
class CopyCommand:
    """Copy a source file to the same relative location under target_folder."""

    file: File
    target_folder: Folder
    overwrite: bool = False
    preserve_attributes: bool = True
    verify_hash: bool = False
    result: Result = field(default=NOT_EXECUTED, compare=False)

    def describe(self) -> str:
        return f"Copy {self.file.full_path} => {self.target_folder.full_path}"


@dataclass
class DeleteCommand:
    """Delete the file at the same relative location under target_root."""

    file: File
    target_root: Folder
    prune_empty_dirs: bool = True
    result: Result = field(default=NOT_EXECUTED, compare=False)

    def describe(self) -> str:
        return f"Delete {self.file.name} under {self.target_root.full_path}"


SyncCommand = Union[CopyCommand, DeleteCommand]


@dataclass
class ExecutionContext:
    """Everything a command needs besides its own data."""

    token: CancellationToken
    logger: logging.Logger = field(default_factory=lambda: get_logger("commands"))
    retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY


def execute(command: SyncCommand, ctx: ExecutionContext) -> Result:
    """Execute a command and return its Result.

    Failures come back as an unsuccessful Result; only cancellation is raised.
    """
    name = type(command).__name__
    ctx.logger.debug(f"Starting command {name}")

    if isinstance(command, CopyCommand):
        result = _execute_copy(command, ctx)
    elif isinstance(command, DeleteCommand):
        result = _execute_delete(command, ctx)
    else:
        raise TypeError(f"Unknown command type: {name}")

    if result.success:
        ctx.logger.debug(f"Command {name} executed successfully: {result.message}")
    else:
        ctx.logger.error(f"Command {name} executed with error: {result.message}")
    return result


def _failure_from_exhausted(error: RetryExhaustedError, message: str) -> Result:
    if isinstance(error.last_error, PermissionError):
        return Result.failure(ErrorKind.ACCESS_DENIED, message, error)
    return Result.failure(ErrorKind.IO_FAILURE, message, error)


def _execute_copy(command: CopyCommand, ctx: ExecutionContext) -> Result:
    logger = ctx.logger
    source = command.file.full_path
    dest_dir = os.path.join(command.target_folder.full_path, command.file.relative_path or "")
    dest = os.path.join(dest_dir, command.file.name)

    if not os.path.isfile(source):
        logger.error(f"File {source} disappeared from source folder. Skipping copy.")
        return Result.failure(ErrorKind.SOURCE_MISSING, "Source file missing. Copy skipped.")

    if os.path.isdir(dest):
        logger.error(f"Destination {dest} is a directory. Copy failed.")
        return Result.failure(
            ErrorKind.DESTINATION_EXISTS, "Destination path is an existing directory."
        )

    if os.path.exists(dest):
        if not command.overwrite:
            logger.info(f"File {dest} already exists and overwrite=false. Skipping copy.")
            return Result.skip("Destination file exists; copy skipped.")

        if command.verify_hash and file_ops.files_have_same_content(source, dest, logger):
            logger.info(
                f"File {dest} has identical content despite differing metadata "
                f"(false positive). Skipping update."
            )
            return Result.skip("Identical content; update skipped.")

    try:
        file_ops.ensure_directory(dest_dir)
    except file_ops.FileOpsError as e:
        return Result.failure(
            ErrorKind.IO_FAILURE, f"Failed to create target directory: {e}", e
        )

    def attempt_copy(attempt: int) -> None:
        if not os.path.isfile(source):
            raise SourceMissingError(f"Source file missing: {source}")

        temp_path = os.path.join(dest_dir, file_ops.temp_file_name(command.file.name))
        try:
            file_ops.copy_to_temp(source, temp_path)
            ctx.token.throw_if_cancelled()
            if not command.overwrite and os.path.exists(dest):
                raise DestinationExistsError(f"Destination exists and overwrite=false: {dest}")
            file_ops.atomic_commit(temp_path, dest)
        finally:
            file_ops.remove_if_exists(temp_path, logger)

        if command.preserve_attributes:
            file_ops.preserve_metadata(source, dest, logger)

        logger.info(f"Copied {source} => {dest} (attempt {attempt}).")

    try:
        retry(attempt_copy, ctx.token, logger, ctx.retry_policy, description="Copy")
    except OperationCanceledError:
        logger.warning(f"Copy canceled: {source} => {dest}")
        raise
    except SourceMissingError as e:
        logger.error(f"Copy failed, source vanished: {source}")
        return Result.failure(ErrorKind.SOURCE_MISSING, "Source file missing. Copy skipped.", e)
    except DestinationExistsError as e:
        logger.error(str(e))
        return Result.failure(ErrorKind.DESTINATION_EXISTS, str(e), e)
    except RetryExhaustedError as e:
        logger.error(f"Copy failed: {source} => {dest}: {e.last_error}")
        return _failure_from_exhausted(e, f"Copy failed: {e}")

    return Result.ok("Copied.")


def _execute_delete(command: DeleteCommand, ctx: ExecutionContext) -> Result:
    logger = ctx.logger
    root = os.path.abspath(command.target_root.full_path)
    dest_dir = os.path.normpath(os.path.join(root, command.file.relative_path or ""))
    dest = os.path.normpath(os.path.join(dest_dir, command.file.name))

    # Path arithmetic only; no I/O before this check passes
    if not file_ops.is_within_root(dest, root):
        logger.error(f"Refusing to delete outside of root. File={dest}, Root={root}")
        return Result.failure(ErrorKind.OUTSIDE_ROOT, "Delete outside of target root refused.")

    if not os.path.exists(dest):
        logger.info(f"Delete skipped, file not found: {dest}")
        return Result.skip("File already absent.")

    def attempt_delete(attempt: int) -> None:
        file_ops.clear_read_only(dest)
        try:
            os.remove(dest)
        except FileNotFoundError:
            pass

        if os.path.exists(dest):
            logger.error(f"Delete failed, file still exists: {dest} (attempt {attempt})")
            raise OSError("File still exists after delete attempt.")

        logger.info(f"Deleted {dest} (attempt {attempt})")

    try:
        retry(attempt_delete, ctx.token, logger, ctx.retry_policy, description="Delete")
    except OperationCanceledError:
        logger.warning(f"Delete canceled: {dest}")
        raise
    except RetryExhaustedError as e:
        logger.error(f"Delete failed: {dest}: {e.last_error}")
        return _failure_from_exhausted(e, f"Delete failed: {e}")

    if command.prune_empty_dirs:
        file_ops.prune_empty_directories(dest_dir, root, logger)

    return Result.ok("Deleted.")
