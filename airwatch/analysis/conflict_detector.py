"""
Conflict Detection
Pairwise separation monitoring over the live track snapshot.

Each tick:
1. Pulls the active tracks from the track store
2. Keeps only flying aircraft (altitude and ground speed thresholds)
3. Checks every unordered pair for an immediate violation, a predicted
   violation along both predicted paths, or a close encounter
4. Diffs the resulting candidate set against the active conflicts, keyed by
   aircraft pair, emitting detected / updated / resolved transitions

A conflict is active if and only if the most recent tick re-derived it.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from airwatch.analysis.constants import (
    CLOSE_ENCOUNTER_FACTOR,
    CRITICAL_CPA_SECONDS,
    FLYING_MIN_ALTITUDE_FT,
    FLYING_MIN_GROUND_SPEED_KT,
    HIGH_CPA_SECONDS,
    KIND_IMMEDIATE,
    KIND_PREDICTED,
    KIND_PROXIMITY,
    MIN_HORIZONTAL_SEPARATION_NM,
    MIN_VERTICAL_SEPARATION_FT,
    PREDICTION_STEP_SECONDS,
    SEVERITY_CRITICAL,
    SEVERITY_HIGH,
    SEVERITY_MEDIUM,
    STATUS_ACTIVE,
    STATUS_RESOLVED,
)

from ..config import Config
from ..tracking.events import (
    CONFLICT_DETECTED,
    CONFLICT_RESOLVED,
    CONFLICT_UPDATED,
    EventBus,
)
from ..tracking.models import TrackSnapshot
from ..utils import distance_nm, utc_now

logger = logging.getLogger("airwatch.analysis.conflicts")


def pair_key(aircraft_1_id: str, aircraft_2_id: str) -> str:
    """Deterministic key for an unordered aircraft pair."""
    first, second = sorted([aircraft_1_id, aircraft_2_id])
    return f"{first}|{second}"


def conflict_id(aircraft_1_id: str, aircraft_2_id: str, detected_at: datetime) -> str:
    """Conflict ID from the sorted pair plus detection time in epoch milliseconds."""
    first, second = sorted([aircraft_1_id, aircraft_2_id])
    return f"conflict_{first}_{second}_{int(detected_at.timestamp() * 1000)}"


def severity_for_cpa(time_to_cpa: float) -> str:
    """Bucket a predicted conflict's severity by seconds to closest approach."""
    if time_to_cpa < CRITICAL_CPA_SECONDS:
        return SEVERITY_CRITICAL
    if time_to_cpa < HIGH_CPA_SECONDS:
        return SEVERITY_HIGH
    return SEVERITY_MEDIUM


@dataclass
class Conflict:
    """A detected or predicted separation violation between two aircraft."""

    id: str
    pair_key: str
    aircraft_1_id: str
    aircraft_2_id: str
    aircraft_1_callsign: str
    aircraft_2_callsign: str
    detected_at: datetime
    min_horizontal_distance: float  # nautical miles
    min_vertical_distance: float  # feet
    time_to_cpa: int  # seconds; 0 when the violation is current
    severity: str
    kind: str
    status: str = STATUS_ACTIVE
    resolved_at: Optional[datetime] = None

    def copy(self) -> "Conflict":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "aircraft_1_id": self.aircraft_1_id,
            "aircraft_2_id": self.aircraft_2_id,
            "aircraft_1_callsign": self.aircraft_1_callsign,
            "aircraft_2_callsign": self.aircraft_2_callsign,
            "detected_at": self.detected_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "min_horizontal_distance": self.min_horizontal_distance,
            "min_vertical_distance": self.min_vertical_distance,
            "time_to_cpa": self.time_to_cpa,
            "severity": self.severity,
            "kind": self.kind,
            "status": self.status,
        }


class ConflictDetector:
    """
    Monitors aircraft separation and maintains the set of active conflicts.

    Example:
        >>> detector = ConflictDetector(store)
        >>> detector.tick()
        >>> for conflict in detector.get_active_conflicts():
        ...     print(conflict.aircraft_1_callsign, conflict.severity)
    """

    def __init__(
        self,
        track_store: Any,
        persistence: Optional[Any] = None,
        event_bus: Optional[EventBus] = None,
        min_horizontal_nm: float = MIN_HORIZONTAL_SEPARATION_NM,
        min_vertical_ft: float = MIN_VERTICAL_SEPARATION_FT,
        flying_min_altitude_ft: float = FLYING_MIN_ALTITUDE_FT,
        flying_min_ground_speed_kt: float = FLYING_MIN_GROUND_SPEED_KT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize conflict detector.

        Args:
            track_store: Object with ``get_active()`` returning TrackSnapshots
            persistence: Object with ``save_conflict(conflict)``, or None
            event_bus: Bus receiving conflict transitions
            min_horizontal_nm: Horizontal separation minimum (strict <)
            min_vertical_ft: Vertical separation minimum (strict <)
            flying_min_altitude_ft: Aircraft at or below this are ignored
            flying_min_ground_speed_kt: Aircraft at or below this are ignored
            clock: Callable returning the current UTC time
        """
        self.track_store = track_store
        self.persistence = persistence
        self.event_bus = event_bus or EventBus()
        self.min_horizontal_nm = min_horizontal_nm
        self.min_vertical_ft = min_vertical_ft
        self.flying_min_altitude_ft = flying_min_altitude_ft
        self.flying_min_ground_speed_kt = flying_min_ground_speed_kt
        self.clock = clock
        self.tick_count = 0

        self._active: Dict[str, Conflict] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: Config, track_store: Any, **kwargs: Any) -> "ConflictDetector":
        return cls(
            track_store,
            min_horizontal_nm=config.min_horizontal_separation_nm,
            min_vertical_ft=config.min_vertical_separation_ft,
            flying_min_altitude_ft=config.flying_min_altitude_ft,
            flying_min_ground_speed_kt=config.flying_min_ground_speed_kt,
            **kwargs,
        )

    # --- Tick ---

    def tick(self) -> List[Conflict]:
        """
        Run one detection pass and update the active conflict set.

        Never raises: a failure fetching the snapshot aborts the tick, a
        failure on one pair skips only that pair.

        Returns:
            Conflicts derived this tick (empty if the tick was aborted)
        """
        try:
            aircraft = self.track_store.get_active()
        except Exception:
            logger.exception("Error fetching active aircraft, skipping conflict tick")
            return []

        flying = [ac for ac in aircraft if self.is_flying(ac)]
        logger.debug("Checking conflicts for %d flying aircraft", len(flying))

        now = self.clock()
        candidates: Dict[str, Conflict] = {}
        for i in range(len(flying)):
            for j in range(i + 1, len(flying)):
                try:
                    conflict = self.check_pair(flying[i], flying[j], now)
                except Exception:
                    logger.exception(
                        "Error checking pair %s / %s", flying[i].id, flying[j].id
                    )
                    continue
                if conflict is not None:
                    candidates[conflict.pair_key] = conflict

        self._apply(candidates, now)
        self.tick_count += 1
        with self._lock:
            return [self._active[key].copy() for key in sorted(candidates) if key in self._active]

    def is_flying(self, aircraft: TrackSnapshot) -> bool:
        """Check an aircraft has a position and is above the altitude and speed floors."""
        position = aircraft.current_position
        if position is None or position.lat is None or position.lon is None:
            return False
        if position.altitude is None or position.ground_speed is None:
            return False
        return (
            position.altitude > self.flying_min_altitude_ft
            and position.ground_speed > self.flying_min_ground_speed_kt
        )

    def check_pair(
        self, aircraft_1: TrackSnapshot, aircraft_2: TrackSnapshot, now: datetime
    ) -> Optional[Conflict]:
        """
        Classify one pair of flying aircraft.

        Args:
            aircraft_1: First aircraft snapshot
            aircraft_2: Second aircraft snapshot
            now: Detection time

        Returns:
            Conflict candidate or None if the pair is separated
        """
        pos1 = aircraft_1.current_position
        pos2 = aircraft_2.current_position

        horizontal = distance_nm(pos1.lat, pos1.lon, pos2.lat, pos2.lon)
        vertical = abs(pos1.altitude - pos2.altitude)

        if horizontal < self.min_horizontal_nm and vertical < self.min_vertical_ft:
            return self._create_conflict(
                aircraft_1, aircraft_2, horizontal, vertical, 0,
                SEVERITY_CRITICAL, KIND_IMMEDIATE, now,
            )

        if aircraft_1.predicted_path and aircraft_2.predicted_path:
            predicted = self._check_predicted(aircraft_1, aircraft_2, now)
            if predicted is not None:
                return predicted

        if (
            horizontal < self.min_horizontal_nm * CLOSE_ENCOUNTER_FACTOR
            and vertical < self.min_vertical_ft * CLOSE_ENCOUNTER_FACTOR
        ):
            return self._create_conflict(
                aircraft_1, aircraft_2, horizontal, vertical, 0,
                SEVERITY_MEDIUM, KIND_PROXIMITY, now,
            )

        return None

    def _check_predicted(
        self, aircraft_1: TrackSnapshot, aircraft_2: TrackSnapshot, now: datetime
    ) -> Optional[Conflict]:
        """
        Walk both predicted paths minute by minute.

        The first minute inside both minima ends the walk. Its horizontal and
        vertical separation are the reported distances, so a closer approach
        later on the same paths does not change them or the time to CPA.
        """
        # Both paths share the one-minute cadence, so index i is minute i+1
        steps = min(len(aircraft_1.predicted_path), len(aircraft_2.predicted_path))
        for i in range(steps):
            p1 = aircraft_1.predicted_path[i]
            p2 = aircraft_2.predicted_path[i]
            if p1.altitude is None or p2.altitude is None:
                continue

            horizontal = distance_nm(p1.lat, p1.lon, p2.lat, p2.lon)
            vertical = abs(p1.altitude - p2.altitude)

            if horizontal < self.min_horizontal_nm and vertical < self.min_vertical_ft:
                time_to_cpa = (i + 1) * PREDICTION_STEP_SECONDS
                return self._create_conflict(
                    aircraft_1, aircraft_2, horizontal, vertical, time_to_cpa,
                    severity_for_cpa(time_to_cpa), KIND_PREDICTED, now,
                )

        return None

    def _create_conflict(
        self,
        aircraft_1: TrackSnapshot,
        aircraft_2: TrackSnapshot,
        horizontal: float,
        vertical: float,
        time_to_cpa: int,
        severity: str,
        kind: str,
        now: datetime,
    ) -> Conflict:
        first, second = sorted([aircraft_1, aircraft_2], key=lambda ac: ac.id)
        return Conflict(
            id=conflict_id(first.id, second.id, now),
            pair_key=pair_key(first.id, second.id),
            aircraft_1_id=first.id,
            aircraft_2_id=second.id,
            aircraft_1_callsign=first.callsign,
            aircraft_2_callsign=second.callsign,
            detected_at=now,
            min_horizontal_distance=round(horizontal, 2),
            min_vertical_distance=round(vertical),
            time_to_cpa=int(round(time_to_cpa)),
            severity=severity,
            kind=kind,
        )

    def _apply(self, candidates: Dict[str, Conflict], now: datetime) -> None:
        """Diff this tick's candidates against the active map and emit transitions."""
        detected: List[Conflict] = []
        updated: List[Conflict] = []
        resolved: List[Conflict] = []

        with self._lock:
            for key, existing in list(self._active.items()):
                if key not in candidates:
                    existing.status = STATUS_RESOLVED
                    existing.resolved_at = now
                    del self._active[key]
                    resolved.append(existing.copy())

            for key, candidate in candidates.items():
                existing = self._active.get(key)
                if existing is None:
                    self._active[key] = candidate
                    detected.append(candidate.copy())
                else:
                    existing.min_horizontal_distance = candidate.min_horizontal_distance
                    existing.min_vertical_distance = candidate.min_vertical_distance
                    existing.time_to_cpa = candidate.time_to_cpa
                    existing.severity = candidate.severity
                    existing.kind = candidate.kind
                    existing.aircraft_1_callsign = candidate.aircraft_1_callsign
                    existing.aircraft_2_callsign = candidate.aircraft_2_callsign
                    updated.append(existing.copy())

        for conflict in resolved:
            logger.info(
                "Conflict resolved: %s <-> %s",
                conflict.aircraft_1_callsign, conflict.aircraft_2_callsign,
            )
            self._emit(CONFLICT_RESOLVED, conflict)

        for conflict in detected:
            logger.info(
                "Conflict detected: %s <-> %s (%s, %s, %.2f NM / %d ft, CPA in %ds)",
                conflict.aircraft_1_callsign, conflict.aircraft_2_callsign,
                conflict.severity, conflict.kind, conflict.min_horizontal_distance,
                conflict.min_vertical_distance, conflict.time_to_cpa,
            )
            self._emit(CONFLICT_DETECTED, conflict)

        for conflict in updated:
            self._emit(CONFLICT_UPDATED, conflict)

    def _emit(self, topic: str, conflict: Conflict) -> None:
        if self.persistence is not None:
            try:
                self.persistence.save_conflict(conflict)
            except Exception as e:
                logger.warning("Error saving conflict %s: %s", conflict.id, e)
        self.event_bus.publish(topic, conflict)

    # --- Queries ---

    def get_active_conflicts(self) -> List[Conflict]:
        """Copies of the active conflicts, oldest detection first."""
        with self._lock:
            conflicts = [c.copy() for c in self._active.values()]
        conflicts.sort(key=lambda c: (c.detected_at, c.id))
        return conflicts

    def get_conflict_by_id(self, conflict_id_or_pair: str) -> Optional[Conflict]:
        """
        Look up an active conflict.

        Args:
            conflict_id_or_pair: Conflict ID or pair key

        Returns:
            Copy of the conflict or None if it is not active
        """
        with self._lock:
            conflict = self._active.get(conflict_id_or_pair)
            if conflict is None:
                conflict = next(
                    (c for c in self._active.values() if c.id == conflict_id_or_pair),
                    None,
                )
            return conflict.copy() if conflict else None
