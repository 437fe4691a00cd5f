"""
Idle Track Policies

Pluggable classifiers applied by ``TrackStore.cleanup()`` to tracks that have
gone quiet but are not yet evicted. A policy is any callable
``(snapshot, idle_seconds) -> Optional[str]`` returning a new status or None.
"""

from typing import Optional

from ..config import Config, Settings
from ..utils import haversine_distance
from .models import TrackSnapshot

STATUS_PARKING = "parking"


class HomeBaseParkingPolicy:
    """
    Tags aircraft that went quiet on the ground at the home base as parked.

    A track qualifies when it has been idle longer than ``idle_seconds``, its
    last position is within ``radius_km`` of the home base, and it was on the
    ground or slow (altitude below ``max_altitude_ft`` or ground speed below
    ``max_ground_speed_kt``).
    """

    def __init__(
        self,
        home_lat: float,
        home_lon: float,
        radius_km: float = Settings.HOME_BASE_RADIUS_KM,
        idle_seconds: float = Settings.PARKING_IDLE_SECONDS,
        max_altitude_ft: float = Settings.PARKING_MAX_ALTITUDE_FT,
        max_ground_speed_kt: float = Settings.PARKING_MAX_GROUND_SPEED_KT,
    ) -> None:
        self.home_lat = home_lat
        self.home_lon = home_lon
        self.radius_km = radius_km
        self.idle_seconds = idle_seconds
        self.max_altitude_ft = max_altitude_ft
        self.max_ground_speed_kt = max_ground_speed_kt

    @classmethod
    def from_config(cls, config: Config) -> "HomeBaseParkingPolicy":
        return cls(
            home_lat=config.home_latitude,
            home_lon=config.home_longitude,
            radius_km=config.home_base_radius_km,
            idle_seconds=config.parking_idle_seconds,
        )

    def __call__(self, snapshot: TrackSnapshot, idle_seconds: float) -> Optional[str]:
        if idle_seconds <= self.idle_seconds:
            return None

        position = snapshot.current_position
        if position is None:
            return None

        distance = haversine_distance(position.lat, position.lon, self.home_lat, self.home_lon)
        if distance > self.radius_km:
            return None

        low = position.altitude is not None and position.altitude < self.max_altitude_ft
        slow = (
            position.ground_speed is not None
            and position.ground_speed < self.max_ground_speed_kt
        )
        if low or slow:
            return STATUS_PARKING
        return None
