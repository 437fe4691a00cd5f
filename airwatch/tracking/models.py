"""
Tracking Data Model

Normalized position updates, stored samples and the per-aircraft track record.
Feed payloads are validated once, here, and everything downstream works on
these types rather than on loosely typed dictionaries.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..utils import to_millis, validate_coordinates

STATUS_NORMAL = "normal"


class InvalidInputError(ValueError):
    """Raised when a position update has no identity or an impossible position."""


@dataclass(frozen=True)
class PositionSample:
    """One observed point in time."""

    timestamp: datetime
    lat: float
    lon: float
    altitude: Optional[float] = None  # feet; None means unknown
    heading: Optional[float] = None  # degrees true
    ground_speed: Optional[float] = None  # knots
    vertical_rate: Optional[float] = None  # ft/min
    squawk: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "lat": self.lat,
            "lon": self.lon,
            "altitude": self.altitude,
            "heading": self.heading,
            "ground_speed": self.ground_speed,
            "vertical_rate": self.vertical_rate,
            "squawk": self.squawk,
        }


@dataclass(frozen=True)
class PredictedPoint:
    """One extrapolated point of a predicted path."""

    timestamp: datetime  # ETA
    lat: float
    lon: float
    altitude: Optional[float]
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eta": self.timestamp.isoformat(),
            "lat": self.lat,
            "lon": self.lon,
            "altitude": self.altitude,
            "confidence": self.confidence,
        }


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _normalize_heading(value: Optional[float]) -> Optional[float]:
    # Out-of-range headings wrap into [0, 360); NaN and infinity are dropped
    if value is None or not math.isfinite(value):
        return None
    return value % 360


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_millis(value)
    if isinstance(value, (int, float)):
        # Epoch seconds, or milliseconds when clearly too large for seconds
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return to_millis(datetime.fromtimestamp(seconds, tz=timezone.utc))
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_millis(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


@dataclass
class PositionUpdate:
    """
    Normalized position report handed to the track store by ingestion adapters.

    Identity is taken from the first non-empty of ``hex``, ``tail``, ``id``.
    Position fields are optional; an update without lat/lon only refreshes
    track metadata.
    """

    hex: Optional[str] = None
    tail: Optional[str] = None
    id: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    altitude: Optional[float] = None
    heading: Optional[float] = None
    ground_speed: Optional[float] = None
    vertical_rate: Optional[float] = None
    squawk: Optional[str] = None
    flight: Optional[str] = None
    aircraft_type: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PositionUpdate":
        """
        Build an update from a loosely typed feed dictionary.

        Accepts either flat ``lat``/``lon``/``altitude`` keys or a nested
        ``position`` mapping. Unparseable numbers become None.

        Args:
            data: Raw feed payload

        Returns:
            PositionUpdate (not yet validated)
        """
        position = data.get("position") or {}
        if not isinstance(position, dict):
            position = {}

        def pick(key: str) -> Any:
            value = position.get(key)
            return data.get(key) if value is None else value

        hex_code = _clean_str(data.get("hex"))
        return cls(
            hex=hex_code.lower() if hex_code else None,
            tail=_clean_str(data.get("tail")),
            id=_clean_str(data.get("id")),
            lat=_to_float(pick("lat")),
            lon=_to_float(pick("lon")),
            altitude=_to_float(pick("altitude")),
            heading=_to_float(data.get("heading")),
            ground_speed=_to_float(data.get("ground_speed")),
            vertical_rate=_to_float(data.get("vertical_rate")),
            squawk=_clean_str(data.get("squawk")),
            flight=_clean_str(data.get("flight")),
            aircraft_type=_clean_str(data.get("aircraft_type")),
            timestamp=_to_datetime(data.get("timestamp")),
        )

    @property
    def key(self) -> Optional[str]:
        """Identity key by precedence hex > tail > id."""
        return self.hex or self.tail or self.id

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lon is not None

    def validate(self) -> None:
        """
        Check the update can be applied.

        Raises:
            InvalidInputError: No identity key, or lat/lon out of range
        """
        if not self.key:
            raise InvalidInputError("Position update carries no hex, tail or id")
        if self.has_position and not validate_coordinates(self.lat, self.lon):
            raise InvalidInputError(
                f"Position out of range for {self.key}: {self.lat}, {self.lon}"
            )

    def to_sample(self, timestamp: datetime) -> PositionSample:
        return PositionSample(
            timestamp=timestamp,
            lat=self.lat,
            lon=self.lon,
            altitude=self.altitude,
            heading=_normalize_heading(self.heading),
            ground_speed=self.ground_speed,
            vertical_rate=self.vertical_rate,
            squawk=self.squawk,
        )


@dataclass(frozen=True)
class TrackSnapshot:
    """Immutable copy of a track handed to queries, events and persistence."""

    id: str
    hex: Optional[str]
    flight: Optional[str]
    tail: Optional[str]
    aircraft_type: Optional[str]
    first_seen: datetime
    last_seen: datetime
    position_count: int
    current_position: Optional[PositionSample]
    positions: Tuple[PositionSample, ...]
    predicted_path: Tuple[PredictedPoint, ...]
    prediction_confidence: float
    prediction_generated_at: Optional[datetime]
    status: str

    @property
    def callsign(self) -> str:
        """Best display name: callsign, then tail, then hex, then id."""
        return self.flight or self.tail or self.hex or self.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aircraft_id": self.id,
            "hex": self.hex,
            "flight": self.flight,
            "tail": self.tail,
            "aircraft_type": self.aircraft_type,
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "position_count": self.position_count,
            "current_position": (
                self.current_position.to_dict() if self.current_position else None
            ),
            "track_points": [p.to_dict() for p in self.positions],
            "predicted_path": [p.to_dict() for p in self.predicted_path],
            "prediction_confidence": self.prediction_confidence,
            "prediction_generated_at": (
                self.prediction_generated_at.isoformat()
                if self.prediction_generated_at
                else None
            ),
            "status": self.status,
        }


@dataclass
class AircraftTrack:
    """
    Evolving record of one aircraft, owned by the track store.

    ``positions`` is kept time-ordered and bounded by the store; callers
    outside the store only ever see ``TrackSnapshot`` copies.
    """

    id: str
    first_seen: datetime
    last_seen: datetime
    hex: Optional[str] = None
    flight: Optional[str] = None
    tail: Optional[str] = None
    aircraft_type: Optional[str] = None
    positions: List[PositionSample] = field(default_factory=list)
    predicted_path: List[PredictedPoint] = field(default_factory=list)
    prediction_confidence: float = 0.0
    prediction_generated_at: Optional[datetime] = None
    status: str = STATUS_NORMAL
    last_persisted: Optional[datetime] = None

    @property
    def current_position(self) -> Optional[PositionSample]:
        return self.positions[-1] if self.positions else None

    def snapshot(self, history_limit: Optional[int] = 0) -> TrackSnapshot:
        """
        Copy the track into an immutable snapshot.

        Args:
            history_limit: Number of most recent samples to include;
                0 for none, None for the full history

        Returns:
            TrackSnapshot
        """
        if history_limit is None:
            history = tuple(self.positions)
        elif history_limit > 0:
            history = tuple(self.positions[-history_limit:])
        else:
            history = ()

        return TrackSnapshot(
            id=self.id,
            hex=self.hex,
            flight=self.flight,
            tail=self.tail,
            aircraft_type=self.aircraft_type,
            first_seen=self.first_seen,
            last_seen=self.last_seen,
            position_count=len(self.positions),
            current_position=self.current_position,
            positions=history,
            predicted_path=tuple(self.predicted_path),
            prediction_confidence=self.prediction_confidence,
            prediction_generated_at=self.prediction_generated_at,
            status=self.status,
        )

