"""
AIRWATCH Background Writer
Fire-and-forget persistence so saves never stall ingestion or conflict ticks.
"""

import logging
import queue
import threading
from typing import Any, Optional, Tuple

logger = logging.getLogger("airwatch.tracking.writer")

DEFAULT_QUEUE_SIZE = 1000

_STOP = object()


class BackgroundWriter:
    """
    Queues ``save_track`` / ``save_conflict`` calls for a single worker thread.

    Wraps any persistence object exposing those two methods (for example
    ``TrackDatabase``). Failed saves are logged and dropped; when the queue is
    full new items are dropped with a warning rather than blocking the caller.
    """

    def __init__(self, backend: Any, max_queue: int = DEFAULT_QUEUE_SIZE) -> None:
        """
        Initialize background writer and start its worker.

        Args:
            backend: Object with ``save_track`` and ``save_conflict`` methods
            max_queue: Maximum number of pending saves
        """
        self.backend = backend
        self.written = 0
        self.failed = 0
        self.dropped = 0
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max_queue)
        self._closed = False
        self._thread = threading.Thread(
            target=self._drain, name="airwatch-writer", daemon=True
        )
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def save_track(self, snapshot: Any) -> None:
        self._enqueue(("save_track", snapshot))

    def save_conflict(self, conflict: Any) -> None:
        self._enqueue(("save_conflict", conflict))

    def flush(self) -> None:
        """Block until every queued save has been attempted."""
        self._queue.join()

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Drain pending saves and stop the worker. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join(timeout)

    def _enqueue(self, item: Tuple[str, Any]) -> None:
        if self._closed:
            logger.warning("Writer closed, dropping %s", item[0])
            self.dropped += 1
            return
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            self.dropped += 1
            logger.warning("Persistence queue full, dropping %s", item[0])

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                method, payload = item
                try:
                    getattr(self.backend, method)(payload)
                    self.written += 1
                except Exception:
                    self.failed += 1
                    logger.exception("Persistence %s failed", method)
            finally:
                self._queue.task_done()
