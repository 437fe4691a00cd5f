"""
AIRWATCH Track Store

Authoritative in-memory state of every aircraft currently being observed.
Ingestion adapters call ``update()``; queries and the conflict detector read
copies via ``get_active()`` / ``get_track()``; a timer calls ``cleanup()``.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..config import Config, Settings
from ..utils import to_millis, utc_now
from .constants import (
    MIN_SAMPLE_DISPLACEMENT_DEG,
    MIN_SAMPLE_INTERVAL_SECONDS,
    PERSISTED_TRACK_POINTS,
)
from .events import AIRCRAFT_UPDATE, EventBus
from .models import (
    AircraftTrack,
    InvalidInputError,
    PositionSample,
    STATUS_NORMAL,
    PositionUpdate,
    TrackSnapshot,
)

logger = logging.getLogger("airwatch.tracking.store")

IdlePolicy = Callable[[TrackSnapshot, float], Optional[str]]


class TrackStore:
    """
    Owns the live aircraft tracks.

    All reads and mutations hold one re-entrant lock; snapshots are copied
    out before the lock is released, and persistence and event delivery
    happen after it is released.

    Example:
        >>> store = TrackStore(predictor=TrajectoryPredictor())
        >>> store.update(PositionUpdate(hex="4ca123", lat=55.5, lon=-4.6, altitude=3000))
        >>> store.get_active()[0].id
        '4ca123'
    """

    def __init__(
        self,
        predictor: Optional[Any] = None,
        persistence: Optional[Any] = None,
        event_bus: Optional[EventBus] = None,
        idle_policy: Optional[IdlePolicy] = None,
        max_track_points: int = Settings.MAX_TRACK_POINTS,
        persist_interval: float = Settings.PERSIST_INTERVAL_SECONDS,
        inactivity_timeout: float = Settings.INACTIVITY_TIMEOUT_SECONDS,
        horizon_minutes: int = Settings.PREDICTION_HORIZON_MINUTES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize track store.

        Args:
            predictor: Object with ``predict(track, horizon_minutes)``, or None
            persistence: Object with ``save_track(snapshot)``, or None
            event_bus: Bus receiving ``aircraft:update`` notifications
            idle_policy: Classifier applied to idle tracks during cleanup
            max_track_points: Samples kept per track
            persist_interval: Seconds between persistence saves per track
            inactivity_timeout: Seconds of silence before eviction
            horizon_minutes: Prediction horizon passed to the predictor
            clock: Callable returning the current UTC time

        Raises:
            ValueError: If the idle policy would only fire after eviction
        """
        policy_idle = getattr(idle_policy, "idle_seconds", None)
        if policy_idle is not None and policy_idle >= inactivity_timeout:
            raise ValueError(
                f"Idle policy threshold ({policy_idle}s) must be shorter than "
                f"the inactivity timeout ({inactivity_timeout}s)"
            )

        self.predictor = predictor
        self.persistence = persistence
        self.event_bus = event_bus or EventBus()
        self.idle_policy = idle_policy
        self.max_track_points = max_track_points
        self.persist_interval = persist_interval
        self.inactivity_timeout = inactivity_timeout
        self.horizon_minutes = horizon_minutes
        self.clock = clock

        self._tracks: Dict[str, AircraftTrack] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "TrackStore":
        """Build a store using the tracking and prediction sections of a Config."""
        return cls(
            max_track_points=config.max_track_points,
            persist_interval=config.persist_interval,
            inactivity_timeout=config.inactivity_timeout,
            horizon_minutes=config.prediction_horizon_minutes,
            **kwargs,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._tracks)

    # --- Ingestion ---

    def update(self, update: PositionUpdate) -> TrackSnapshot:
        """
        Apply one position update.

        Creates or mutates the addressed track, appends a sample if it passes
        the significance filter, refreshes the prediction, persists on the
        per-track interval and publishes ``aircraft:update``. A stored sample
        clears any idle tag such as ``parking``.

        Args:
            update: Normalized position update

        Returns:
            Snapshot of the track after the update (full history)

        Raises:
            InvalidInputError: No identity key or an impossible position;
                no state is changed
        """
        update.validate()
        now = self.clock()
        observed = to_millis(update.timestamp) if update.timestamp else now
        key = update.key

        with self._lock:
            track = self._tracks.get(key)
            if track is None:
                track = AircraftTrack(
                    id=key,
                    hex=update.hex,
                    flight=update.flight,
                    tail=update.tail,
                    aircraft_type=update.aircraft_type,
                    first_seen=observed,
                    last_seen=observed,
                )
                self._tracks[key] = track
                logger.info("New aircraft track: %s", update.flight or update.hex or key)

            track.flight = update.flight or track.flight
            track.tail = update.tail or track.tail
            track.aircraft_type = update.aircraft_type or track.aircraft_type
            if observed > track.last_seen:
                track.last_seen = observed

            if update.has_position:
                sample = update.to_sample(observed)
                if self._is_significant(track.positions, sample):
                    track.positions.append(sample)
                    if track.status != STATUS_NORMAL:
                        logger.info("Track %s moving again, clearing %s", key, track.status)
                        track.status = STATUS_NORMAL
                    if len(track.positions) > self.max_track_points:
                        del track.positions[: -self.max_track_points]
            else:
                logger.debug("Metadata-only update for %s", key)

            if self.predictor is not None and len(track.positions) >= 2:
                self._refresh_prediction(track)

            to_persist = None
            if (
                track.last_persisted is None
                or (now - track.last_persisted).total_seconds() > self.persist_interval
            ):
                to_persist = track.snapshot(PERSISTED_TRACK_POINTS)
                track.last_persisted = now

            snapshot = track.snapshot(history_limit=None)

        if to_persist is not None:
            self._persist(to_persist)
        self.event_bus.publish(AIRCRAFT_UPDATE, snapshot)
        return snapshot

    def ingest(self, data: Dict[str, Any]) -> Optional[TrackSnapshot]:
        """
        Apply a loosely typed feed payload, logging instead of raising.

        Args:
            data: Raw feed dictionary (see ``PositionUpdate.from_dict``)

        Returns:
            Track snapshot, or None if the payload was rejected
        """
        try:
            return self.update(PositionUpdate.from_dict(data))
        except InvalidInputError as e:
            logger.warning("Rejected position update: %s", e)
            return None

    def _is_significant(self, positions: List[PositionSample], sample: PositionSample) -> bool:
        """Check a sample is far enough in time and space from the last stored one."""
        if not positions:
            return True

        last = positions[-1]
        elapsed = (sample.timestamp - last.timestamp).total_seconds()
        if elapsed < MIN_SAMPLE_INTERVAL_SECONDS:
            return False

        if (
            abs(sample.lat - last.lat) < MIN_SAMPLE_DISPLACEMENT_DEG
            and abs(sample.lon - last.lon) < MIN_SAMPLE_DISPLACEMENT_DEG
        ):
            return False

        return True

    def _refresh_prediction(self, track: AircraftTrack) -> None:
        try:
            prediction = self.predictor.predict(track, self.horizon_minutes)
        except Exception:
            logger.exception("Error generating trajectory prediction for %s", track.id)
            return

        if prediction is None:
            return

        track.predicted_path = list(prediction.predicted_path)
        track.prediction_confidence = prediction.confidence
        track.prediction_generated_at = prediction.generated_at

    def _persist(self, snapshot: TrackSnapshot) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save_track(snapshot)
        except Exception as e:
            logger.warning("Error saving aircraft track %s: %s", snapshot.id, e)

    # --- Queries ---

    def get_active(self) -> List[TrackSnapshot]:
        """
        Snapshot every track seen within the inactivity timeout.

        Returns:
            Snapshots (without history) sorted by track id
        """
        now = self.clock()
        with self._lock:
            return [
                track.snapshot()
                for key, track in sorted(self._tracks.items())
                if (now - track.last_seen).total_seconds() < self.inactivity_timeout
            ]

    def get_track(self, aircraft_id: str) -> Optional[TrackSnapshot]:
        """
        Snapshot one track including its full position history.

        Args:
            aircraft_id: Track identity key

        Returns:
            TrackSnapshot or None if the track is not in memory
        """
        with self._lock:
            track = self._tracks.get(aircraft_id)
            return track.snapshot(history_limit=None) if track else None

    # --- Housekeeping ---

    def cleanup(self) -> int:
        """
        Classify idle tracks and evict tracks past the inactivity timeout.

        Evicted tracks are handed to persistence first. A status change from
        the idle policy is persisted and published but does not reset the
        eviction clock.

        Returns:
            Number of tracks evicted
        """
        now = self.clock()
        reclassified: List[TrackSnapshot] = []
        evicted: List[TrackSnapshot] = []

        with self._lock:
            for key, track in list(self._tracks.items()):
                idle = (now - track.last_seen).total_seconds()

                if self.idle_policy is not None:
                    status = self.idle_policy(track.snapshot(), idle)
                    if status and status != track.status:
                        track.status = status
                        reclassified.append(track.snapshot(PERSISTED_TRACK_POINTS))
                        logger.info(
                            "Track %s tagged %s (idle %.0fs)",
                            track.flight or track.hex or key, status, idle,
                        )

                if idle >= self.inactivity_timeout:
                    evicted.append(track.snapshot(PERSISTED_TRACK_POINTS))
                    del self._tracks[key]

        for snapshot in reclassified:
            self._persist(snapshot)
            self.event_bus.publish(AIRCRAFT_UPDATE, snapshot)

        for snapshot in evicted:
            self._persist(snapshot)

        if evicted:
            logger.info("Cleaned up %d stale aircraft tracks", len(evicted))

        return len(evicted)
