"""Console progress rendering for long scans."""

import sys
import threading
from typing import Optional, Protocol, TextIO

PREFIX_MAX_LENGTH = 60
PROGRESS_BAR_WIDTH = 80


class ProgressSink(Protocol):
    """Receives progress updates from the scanner."""

    def report(self, percentage: float, label: str = "") -> None: ...

    def clear(self) -> None: ...


class NullProgress:
    """Progress sink that discards every update."""

    def report(self, percentage: float, label: str = "") -> None:
        pass

    def clear(self) -> None:
        pass


class ConsoleProgress:
    """Single-line progress bar, rewritten in place with a carriage return.

    Safe to call from several threads.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()
        self._last_length = 0

    def report(self, percentage: float, label: str = "") -> None:
        percentage = max(0.0, min(100.0, percentage))
        with self._lock:
            filled = int(PROGRESS_BAR_WIDTH * (percentage / 100.0))
            empty = PROGRESS_BAR_WIDTH - filled
            text = f"{self._trim_label(label)} [{'#' * filled}{'-' * empty}] {percentage:6.2f}%"

            # Pad over leftovers of a longer previous line
            padding = self._last_length - len(text)
            if padding > 0:
                text += " " * padding

            self._last_length = len(text)
            self.stream.write(f"\r{text}")
            self.stream.flush()

    def clear(self) -> None:
        with self._lock:
            if self._last_length:
                self.stream.write("\r" + " " * self._last_length + "\r")
                self.stream.flush()
            self._last_length = 0

    @staticmethod
    def _trim_label(label: str) -> str:
        if len(label) <= PREFIX_MAX_LENGTH:
            return label.ljust(PREFIX_MAX_LENGTH)
        return label[: PREFIX_MAX_LENGTH - 3] + "..."
