"""
Tests for the background persistence writer.
"""

import threading
from unittest.mock import Mock

from airwatch.tracking.writer import BackgroundWriter


class TestBackgroundWriter:
    """Tests for BackgroundWriter."""

    def test_saves_are_forwarded(self):
        backend = Mock()
        writer = BackgroundWriter(backend)

        writer.save_track("track")
        writer.save_conflict("conflict")
        writer.flush()

        backend.save_track.assert_called_once_with("track")
        backend.save_conflict.assert_called_once_with("conflict")
        assert writer.written == 2
        writer.close()

    def test_backend_failure_counted(self):
        """Test failed saves are logged and do not stop the worker."""
        backend = Mock()
        backend.save_track.side_effect = [RuntimeError("locked"), None]
        writer = BackgroundWriter(backend)

        writer.save_track("first")
        writer.save_track("second")
        writer.flush()

        assert writer.failed == 1
        assert writer.written == 1
        writer.close()

    def test_full_queue_drops(self):
        """Test saves are dropped rather than blocking when the queue is full."""
        release = threading.Event()
        started = threading.Event()
        backend = Mock()

        def slow_save(_):
            started.set()
            release.wait(5)

        backend.save_track.side_effect = slow_save
        writer = BackgroundWriter(backend, max_queue=1)

        writer.save_track("busy")
        assert started.wait(5)
        writer.save_track("queued")
        writer.save_track("dropped")

        assert writer.dropped == 1
        release.set()
        writer.flush()
        writer.close()

    def test_close_drains_and_is_idempotent(self):
        backend = Mock()
        writer = BackgroundWriter(backend)
        writer.save_track("track")

        writer.close()
        writer.close()

        backend.save_track.assert_called_once_with("track")

    def test_save_after_close_dropped(self):
        backend = Mock()
        writer = BackgroundWriter(backend)
        writer.close()

        writer.save_conflict("late")
        assert writer.dropped == 1
        backend.save_conflict.assert_not_called()
