"""Single-consumer command queue.

Many producers may enqueue; one background thread executes commands
strictly in enqueue order, one at a time.
"""

import logging
import queue
import threading
from typing import Optional

from folder_sync.cancellation import CancellationToken, OperationCanceledError
from folder_sync.commands import (
    DEFAULT_RETRY_POLICY,
    ExecutionContext,
    RetryPolicy,
    SyncCommand,
    execute,
)
from folder_sync.logging_setup import get_logger
from folder_sync.models import ErrorKind, Result

_STOP = object()


class CommandProcessor:
    """Runs sync commands sequentially on a background thread.

    Usable as a context manager: entering starts the consumer, leaving
    closes the queue and waits until everything already enqueued has been
    executed (or discarded, once cancellation was requested).
    """

    def __init__(
        self,
        token: CancellationToken,
        logger: Optional[logging.Logger] = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        """Initialize command processor.

        Args:
            token: Cancellation token shared with the producer
            logger: Logger to use
            retry_policy: Retry policy passed to every command
        """
        self.token = token
        self.logger = logger or get_logger("command_processor")
        self._context = ExecutionContext(token, self.logger, retry_policy)
        self._queue: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._closed = False
        self._canceled = False

        # Statistics
        self.total_enqueued = 0
        self.total_executed = 0
        self.total_succeeded = 0
        self.total_failed = 0
        self.total_discarded = 0

    def start(self) -> None:
        """Start the consumer thread."""
        if self._thread is not None:
            self.logger.warning("Command processor already started")
            return

        self._thread = threading.Thread(
            target=self._process_commands, name="command-processor", daemon=True
        )
        self._thread.start()

    def add_command(self, command: SyncCommand) -> bool:
        """Add a command to the processing queue.

        Returns:
            True if the command was enqueued
        """
        if self._closed:
            self.logger.error(f"Failed to enqueue command, processor is closed: {command.describe()}")
            return False

        try:
            self._queue.put_nowait(command)
        except queue.Full:
            self.logger.error(f"Failed to enqueue command: {command.describe()}")
            return False

        self.total_enqueued += 1
        return True

    def wait_until_drained(self) -> None:
        """Block until every command enqueued so far has been handled."""
        self._queue.join()

    def close(self, raise_on_cancel: bool = True) -> None:
        """Close the queue and wait for the consumer to finish draining.

        Raises:
            OperationCanceledError: If a command observed cancellation or
                commands were discarded because of it
        """
        if not self._closed:
            self._closed = True
            self._queue.put(_STOP)

        if self._thread is not None:
            self._thread.join()

        if raise_on_cancel and self._canceled:
            raise OperationCanceledError("Command processing was canceled.")

    def get_statistics(self) -> dict:
        return {
            "enqueued": self.total_enqueued,
            "executed": self.total_executed,
            "succeeded": self.total_succeeded,
            "failed": self.total_failed,
            "discarded": self.total_discarded,
            "pending": self._queue.qsize(),
        }

    def __enter__(self) -> "CommandProcessor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Do not mask an exception that is already propagating
        self.close(raise_on_cancel=exc_type is None)

    def _process_commands(self) -> None:
        while True:
            command = self._queue.get()
            try:
                if command is _STOP:
                    return

                if self.token.is_cancelled:
                    self._canceled = True
                    self.total_discarded += 1
                    command.result = Result.failure(
                        ErrorKind.OPERATION_CANCELED, "Discarded before execution."
                    )
                    self.logger.debug(f"Discarded pending command: {command.describe()}")
                    continue

                self._execute(command)
            finally:
                self._queue.task_done()

    def _execute(self, command: SyncCommand) -> None:
        try:
            command.result = execute(command, self._context)
        except OperationCanceledError as e:
            self._canceled = True
            command.result = Result.failure(ErrorKind.OPERATION_CANCELED, str(e), e)
            return
        except Exception as e:
            self.logger.exception(f"Command failed: {command.describe()}")
            command.result = Result.failure(ErrorKind.IO_FAILURE, f"Unexpected error: {e}", e)

        self.total_executed += 1
        if command.result.success:
            self.total_succeeded += 1
        else:
            self.total_failed += 1
