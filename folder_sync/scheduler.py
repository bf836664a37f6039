"""Periodic sync driver built on APScheduler."""

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from folder_sync.cancellation import CancellationToken, OperationCanceledError
from folder_sync.logging_setup import get_logger

SYNC_JOB_ID = "sync_pass"


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class SyncScheduler:
    """Runs a sync pass immediately and then every ``interval_seconds``.

    At most one pass is active at any time. A tick that fires while a pass
    is still running is dropped and logged; ticks are never queued.
    """

    def __init__(
        self,
        interval_seconds: int,
        sync_pass: Callable[[CancellationToken], Any],
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the scheduler.

        Args:
            interval_seconds: Seconds between sync passes (at least 1)
            sync_pass: Callable running one pass, usually SyncService.sync_folders
            logger: Logger to use

        Raises:
            ValueError: If the interval is below one second
        """
        if interval_seconds < 1:
            raise ValueError("The synchronization interval must be at least 1 second!")

        self.interval_seconds = interval_seconds
        self.sync_pass = sync_pass
        self.logger = logger or get_logger("scheduler")

        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self.completed_passes = 0
        self.failed_passes = 0
        self.skipped_ticks = 0

        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    def run(self, token: CancellationToken) -> None:
        """Drive sync passes until the token is cancelled.

        Blocks the calling thread. On cancellation the in-flight pass (if
        any) is waited for before returning.

        Raises:
            OperationCanceledError: Always, once cancellation was requested
        """
        token.throw_if_cancelled()

        self._scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": None,
            },
        )
        self._scheduler.add_listener(self._on_tick_skipped, EVENT_JOB_MAX_INSTANCES)
        self._scheduler.add_job(
            self._run_pass,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            args=[token],
            id=SYNC_JOB_ID,
            name="Folder sync pass",
            next_run_time=datetime.now(timezone.utc),
            replace_existing=True,
        )

        self._scheduler.start()
        self.logger.info(f"Scheduler started with an interval of {self.interval_seconds} seconds")

        try:
            token.wait()
        finally:
            self.logger.info("Stopping scheduler, waiting for the running sync pass...")
            self._scheduler.shutdown(wait=True)
            self._scheduler = None

        raise OperationCanceledError("Scheduler was canceled.")

    def _run_pass(self, token: CancellationToken) -> None:
        with self._lock:
            self._state = SchedulerState.RUNNING

        try:
            self.logger.info("Starting sync process...")
            self.sync_pass(token)
            self.logger.info("Folder sync completed.")
            with self._lock:
                self.completed_passes += 1
        except OperationCanceledError:
            self.logger.warning("Sync pass canceled.")
        except Exception:
            self.logger.exception("An error occurred during folder sync.")
            with self._lock:
                self.failed_passes += 1
        finally:
            with self._lock:
                self._state = SchedulerState.IDLE
            if not token.is_cancelled:
                self._log_next_run()

    def _on_tick_skipped(self, event: JobSubmissionEvent) -> None:
        if event.job_id != SYNC_JOB_ID:
            return

        with self._lock:
            self.skipped_ticks += 1
        self.logger.warning("Sync is already in progress. Skipping this tick.")
        self._log_next_run()

    def _log_next_run(self) -> None:
        next_run = self.next_run_time()
        if next_run is None:
            return
        self.logger.info(
            f"Next sync scheduled in {self.interval_seconds} seconds. "
            f"At: {next_run.astimezone():%Y-%m-%d %H:%M:%S}"
        )

    def next_run_time(self) -> Optional[datetime]:
        """Return the next scheduled tick, or None when not running."""
        scheduler = self._scheduler
        if scheduler is None:
            return None
        job = scheduler.get_job(SYNC_JOB_ID)
        return job.next_run_time if job else None
