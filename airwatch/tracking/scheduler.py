"""
AIRWATCH Periodic Tasks
Stoppable fixed-interval timers for cleanup, conflict ticks and feed polling.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("airwatch.tracking.scheduler")


class PeriodicTask:
    """
    Runs a callable every ``interval`` seconds on a daemon thread.

    Exceptions raised by the callable are logged and the schedule continues.
    ``stop()`` is idempotent; a run already in progress is allowed to finish.

    Example:
        >>> task = PeriodicTask("cleanup", 60, store.cleanup)
        >>> task.start()
        >>> task.stop()
    """

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], object],
        run_immediately: bool = False,
    ) -> None:
        """
        Initialize periodic task.

        Args:
            name: Thread name, used in log messages
            interval: Seconds between runs
            func: Callable to run
            run_immediately: Run once as soon as the thread starts
        """
        if interval <= 0:
            raise ValueError(f"Interval for {name} must be positive, got {interval}")

        self.name = name
        self.interval = interval
        self.func = func
        self.run_immediately = run_immediately
        self.run_count = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the timer thread. Starting a running task is a no-op."""
        with self._lock:
            if self.is_running:
                logger.warning("%s already running", self.name)
                return
            # Each run owns its event so a thread stopped without a join exits
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name=self.name, daemon=True
            )
            self._thread.start()
        logger.info("Started %s (every %ss)", self.name, self.interval)

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Prevent further runs.

        Args:
            wait: Join the thread so an in-flight run completes first
            timeout: Maximum seconds to wait for the join
        """
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            self._thread = None

        if wait and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Stopped %s after %d runs", self.name, self.run_count)

    def run_once(self) -> None:
        """Run the callable now, logging any exception."""
        try:
            self.func()
        except Exception:
            logger.exception("Error in %s, continuing with next run", self.name)
        finally:
            self.run_count += 1

    def _run(self, stop_event: threading.Event) -> None:
        if self.run_immediately and not stop_event.is_set():
            self.run_once()
        while not stop_event.wait(self.interval):
            self.run_once()
