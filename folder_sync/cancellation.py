"""Cooperative cancellation shared by the scheduler, orchestrator and pipeline."""

import threading
from typing import Optional


class OperationCanceledError(Exception):
    """Raised when a cancellation request is observed.

    Not an OSError, so retry() lets it through.
    """


class CancellationToken:
    """Thread-safe cancellation flag backed by a threading.Event."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def throw_if_cancelled(self) -> None:
        """Raise OperationCanceledError if cancellation was requested."""
        if self._event.is_set():
            raise OperationCanceledError("Operation was canceled.")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or the timeout elapses.

        Returns:
            True if cancellation was requested
        """
        return self._event.wait(timeout)

    def sleep(self, seconds: float) -> None:
        """Sleep for the given time, waking early and raising if cancelled."""
        if self._event.wait(seconds):
            raise OperationCanceledError("Operation was canceled.")
