"""
AIRWATCH Airspace Monitor

Wires the track store, trajectory predictor, conflict detector, event bus
and persistence together and drives them from background timers.

Example:
    >>> from airwatch import Config
    >>> from airwatch.monitor import AirspaceMonitor
    >>> from airwatch.tracking import TrackDatabase
    >>> config = Config('airwatch.yaml')
    >>> monitor = AirspaceMonitor(config, database=TrackDatabase(config.db_path))
    >>> monitor.start()
    >>> monitor.ingest({'hex': '4ca123', 'lat': 55.5, 'lon': -4.6, 'altitude': 3000})
    >>> monitor.stop()
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .analysis.conflict_detector import Conflict, ConflictDetector
from .analysis.constants import DEFAULT_SMOOTHING_DENSITY
from .analysis.path_smoother import PathPoint, PathSmoother
from .analysis.predictor import TrajectoryPredictor
from .config import Config
from .tracking.collector import FeedCollector
from .tracking.events import EventBus
from .tracking.models import PositionUpdate, TrackSnapshot
from .tracking.policies import HomeBaseParkingPolicy
from .tracking.scheduler import PeriodicTask
from .tracking.store import TrackStore
from .tracking.writer import BackgroundWriter
from .utils import utc_now

logger = logging.getLogger("airwatch.monitor")


class AirspaceMonitor:
    """
    Runs the situational awareness core for one home base.

    Ingestion goes through ``update()`` / ``ingest()`` (or the optional
    OpenSky feed); readers use the query methods or subscribe to events.
    """

    def __init__(
        self,
        config: Config,
        database: Optional[Any] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize monitor.

        Args:
            config: AIRWATCH configuration object
            database: Persistence backend with ``save_track`` and
                ``save_conflict`` (e.g. TrackDatabase), or None to run
                memory-only
            clock: Callable returning the current UTC time
        """
        self.config = config
        self.clock = clock or utc_now
        self.event_bus = EventBus()
        self.database = database
        self.writer = BackgroundWriter(database) if database is not None else None

        self.predictor = TrajectoryPredictor(
            horizon_minutes=config.prediction_horizon_minutes,
            freshness_seconds=config.data_freshness_seconds,
            clock=self.clock,
        )
        self.store = TrackStore.from_config(
            config,
            predictor=self.predictor,
            persistence=self.writer,
            event_bus=self.event_bus,
            idle_policy=HomeBaseParkingPolicy.from_config(config),
            clock=self.clock,
        )
        self.detector = ConflictDetector.from_config(
            config,
            self.store,
            persistence=self.writer,
            event_bus=self.event_bus,
            clock=self.clock,
        )
        self.smoother = PathSmoother()
        self.collector = FeedCollector(config, self.store) if config.feed_enabled else None

        self._tasks: List[PeriodicTask] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the cleanup, conflict and (if enabled) feed timers."""
        if self._running:
            logger.warning("Airspace monitor already running")
            return

        if self.writer is not None and self.writer.closed:
            # stop() drained the previous writer; saves need a live one
            self.writer = BackgroundWriter(self.database)
            self.store.persistence = self.writer
            self.detector.persistence = self.writer

        self._tasks = [
            PeriodicTask("track-cleanup", self.config.cleanup_interval, self.store.cleanup),
            PeriodicTask(
                "conflict-detection",
                self.config.conflict_tick_interval,
                self.detector.tick,
                run_immediately=True,
            ),
        ]
        if self.collector is not None:
            self._tasks.append(
                PeriodicTask(
                    "opensky-feed",
                    self.collector.poll_interval,
                    self.collector.run_single_iteration,
                    run_immediately=True,
                )
            )

        for task in self._tasks:
            task.start()
        self._running = True

        logger.info(
            "Airspace monitor started for %s (%s timers)",
            self.config.home_base_name, len(self._tasks),
        )

    def stop(self) -> None:
        """Stop every timer and drain pending saves. Safe to call repeatedly."""
        if not self._running:
            return
        self._running = False

        for task in self._tasks:
            task.stop()
        self._tasks = []

        if self.writer is not None:
            self.writer.close()

        logger.info("Airspace monitor stopped")

    # --- Ingestion ---

    def update(self, update: PositionUpdate) -> TrackSnapshot:
        return self.store.update(update)

    def ingest(self, data: Dict[str, Any]) -> Optional[TrackSnapshot]:
        return self.store.ingest(data)

    # --- Queries ---

    def get_active_aircraft(self) -> List[TrackSnapshot]:
        return self.store.get_active()

    def get_track(self, aircraft_id: str) -> Optional[TrackSnapshot]:
        return self.store.get_track(aircraft_id)

    def get_smoothed_path(
        self, aircraft_id: str, density: int = DEFAULT_SMOOTHING_DENSITY
    ) -> Optional[List[PathPoint]]:
        """
        Interpolated display path for one track.

        Args:
            aircraft_id: Track identity key
            density: Interpolated points per segment

        Returns:
            List of PathPoint, or None if the track is not in memory
        """
        track = self.store.get_track(aircraft_id)
        if track is None:
            return None
        return self.smoother.smooth_path(track.positions, density)

    def get_active_conflicts(self) -> List[Conflict]:
        return self.detector.get_active_conflicts()

    def get_conflict_by_id(self, conflict_id: str) -> Optional[Conflict]:
        return self.detector.get_conflict_by_id(conflict_id)

    def subscribe(self, topic: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Register for ``aircraft:update`` or ``conflict:*`` notifications.

        Returns:
            Callable that removes the subscription
        """
        return self.event_bus.subscribe(topic, callback)
