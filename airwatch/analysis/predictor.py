"""
Trajectory Prediction
Short-horizon kinematic extrapolation of aircraft tracks.

The model is constant velocity and constant vertical rate along a great
circle: no turns, no speed changes. Each predicted point carries its own
confidence, decayed linearly across the horizon, so consumers can discount
the far end of a path for a manoeuvring aircraft.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from math import sqrt
from typing import Any, Callable, Optional, Sequence, Tuple

from airwatch.analysis.constants import (
    DATA_FRESHNESS_SECONDS,
    DEFAULT_HORIZON_MINUTES,
    FRESHNESS_DECAY_SPAN,
    FRESHNESS_FLOOR,
    HORIZON_CONFIDENCE_DECAY,
    MAX_CONFIDENCE,
    MIN_CONFIDENCE,
    SHORT_HISTORY_PENALTY,
    SPARSE_HISTORY_PENALTY,
    SPEED_VARIATION_PENALTY,
    SPEED_VARIATION_RATIO,
    STALE_CONFIDENCE,
    STALE_DATA_FACTOR,
    STATIONARY_CONFIDENCE,
    STATIONARY_SPEED_KT,
)

from ..tracking.models import PositionSample, PredictedPoint
from ..utils import calculate_bearing, destination_point, distance_nm, utc_now


@dataclass(frozen=True)
class Velocity:
    """Velocity vector used for extrapolation."""

    heading: float  # degrees true
    ground_speed: float  # knots
    vertical_rate: float  # ft/min


@dataclass(frozen=True)
class Prediction:
    """Result of one prediction pass over a track."""

    predicted_path: Tuple[PredictedPoint, ...]
    confidence: float
    generated_at: datetime
    horizon_minutes: int
    velocity: Optional[Velocity] = None
    note: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.predicted_path


class TrajectoryPredictor:
    """
    Predicts future aircraft positions from recent track history.

    Stateless apart from its configuration: ``predict`` is a pure function of
    the track and the current time.

    Example:
        >>> predictor = TrajectoryPredictor()
        >>> prediction = predictor.predict(track, horizon_minutes=10)
        >>> if prediction and not prediction.is_empty:
        ...     print(prediction.predicted_path[-1].lat)
    """

    def __init__(
        self,
        horizon_minutes: int = DEFAULT_HORIZON_MINUTES,
        freshness_seconds: float = DATA_FRESHNESS_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize trajectory predictor.

        Args:
            horizon_minutes: Default prediction horizon in minutes
            freshness_seconds: Age after which position data loses confidence
            clock: Callable returning the current UTC time
        """
        self.horizon_minutes = horizon_minutes
        self.freshness_seconds = freshness_seconds
        self.clock = clock

    def predict(
        self, track: Any, horizon_minutes: Optional[int] = None
    ) -> Optional[Prediction]:
        """
        Predict a track's path over the coming minutes.

        Args:
            track: Object with a time-ordered ``positions`` sequence
                (AircraftTrack or a TrackSnapshot carrying history)
            horizon_minutes: Minutes to extrapolate (default: configured horizon)

        Returns:
            Prediction, possibly with an empty path when the aircraft is
            stationary or history is too short; None when the track has no
            usable position at all
        """
        positions = [
            p
            for p in (getattr(track, "positions", None) or ())
            if p.lat is not None and p.lon is not None
        ]
        if not positions:
            return None

        horizon = int(horizon_minutes if horizon_minutes is not None else self.horizon_minutes)
        now = self.clock()

        if len(positions) < 2 or horizon < 1:
            return Prediction(
                predicted_path=(),
                confidence=STATIONARY_CONFIDENCE,
                generated_at=now,
                horizon_minutes=horizon,
                note="Insufficient history for prediction",
            )

        current = positions[-1]
        age = max(0.0, (now - current.timestamp).total_seconds())

        if age > self.freshness_seconds * STALE_DATA_FACTOR:
            confidence = STALE_CONFIDENCE
        else:
            confidence = self.calculate_confidence(positions, age)

        velocity = self.velocity_vector(positions)

        if velocity.ground_speed < STATIONARY_SPEED_KT:
            return Prediction(
                predicted_path=(),
                confidence=STATIONARY_CONFIDENCE,
                generated_at=now,
                horizon_minutes=horizon,
                velocity=velocity,
                note="Aircraft stationary or insufficient speed for prediction",
            )

        path = []
        for i in range(1, horizon + 1):
            distance = (velocity.ground_speed / 60.0) * i
            lat, lon = destination_point(current.lat, current.lon, distance, velocity.heading)

            altitude = None
            if current.altitude is not None:
                altitude = round(
                    max(0.0, current.altitude + (velocity.vertical_rate / 60.0) * i)
                )

            path.append(
                PredictedPoint(
                    timestamp=current.timestamp + timedelta(minutes=i),
                    lat=lat,
                    lon=lon,
                    altitude=altitude,
                    confidence=confidence * (1 - (i / horizon) * HORIZON_CONFIDENCE_DECAY),
                )
            )

        return Prediction(
            predicted_path=tuple(path),
            confidence=confidence,
            generated_at=now,
            horizon_minutes=horizon,
            velocity=velocity,
        )

    def velocity_vector(self, positions: Sequence[PositionSample]) -> Velocity:
        """
        Derive the velocity vector from track history.

        The latest sample's own heading, ground speed and vertical rate win;
        whichever are missing are derived from the last two samples.

        Args:
            positions: Time-ordered samples, at least one

        Returns:
            Velocity with missing components defaulted to 0
        """
        current = positions[-1]
        heading = current.heading
        ground_speed = current.ground_speed
        vertical_rate = current.vertical_rate

        if len(positions) >= 2 and (
            heading is None or ground_speed is None or vertical_rate is None
        ):
            previous = positions[-2]
            elapsed = (current.timestamp - previous.timestamp).total_seconds()

            if heading is None:
                heading = calculate_bearing(
                    previous.lat, previous.lon, current.lat, current.lon
                )

            if ground_speed is None:
                travelled = distance_nm(previous.lat, previous.lon, current.lat, current.lon)
                ground_speed = travelled / (elapsed / 3600.0) if elapsed > 0 else 0.0

            if (
                vertical_rate is None
                and previous.altitude is not None
                and current.altitude is not None
            ):
                climb = current.altitude - previous.altitude
                vertical_rate = climb / (elapsed / 60.0) if elapsed > 0 else 0.0

        return Velocity(
            heading=heading or 0.0,
            ground_speed=ground_speed or 0.0,
            vertical_rate=vertical_rate or 0.0,
        )

    def calculate_confidence(
        self, positions: Sequence[PositionSample], age_seconds: float
    ) -> float:
        """
        Score prediction confidence from data quality.

        Penalties: stale data decays toward a floor, short histories are
        discounted, and an erratic recent ground speed is discounted.

        Args:
            positions: Time-ordered samples
            age_seconds: Age of the latest sample

        Returns:
            Confidence clamped to [0.05, 1.0]
        """
        confidence = 1.0

        if age_seconds > self.freshness_seconds:
            confidence *= max(
                FRESHNESS_FLOOR,
                1 - age_seconds / (self.freshness_seconds * FRESHNESS_DECAY_SPAN),
            )

        point_count = len(positions)
        if point_count < 3:
            confidence *= SPARSE_HISTORY_PENALTY
        elif point_count < 5:
            confidence *= SHORT_HISTORY_PENALTY

        speeds = [p.ground_speed for p in positions[-3:] if p.ground_speed is not None]
        if len(speeds) >= 2:
            mean = sum(speeds) / len(speeds)
            variance = sum((s - mean) ** 2 for s in speeds) / len(speeds)
            if sqrt(variance) > mean * SPEED_VARIATION_RATIO:
                confidence *= SPEED_VARIATION_PENALTY

        return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))
