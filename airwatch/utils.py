"""
AIRWATCH Utility Functions
Great-circle geometry and formatting helpers shared by tracking and analysis.
"""

from datetime import datetime, timezone
from math import asin, atan2, cos, degrees, radians, sin, sqrt
from typing import Optional, Tuple

from .config import Constants


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great circle distance between two points using Haversine formula.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance in kilometers

    Example:
        >>> haversine_distance(55.5094, -4.5944, 55.8719, -4.4331)
        41.2
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return Constants.EARTH_RADIUS_KM * c


def distance_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great circle distance between two points in nautical miles."""
    return haversine_distance(lat1, lon1, lat2, lon2) / Constants.KM_PER_NM


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate bearing (direction) from point 1 to point 2.

    Returns the initial bearing (forward azimuth) from the first
    point to the second point. Note that the bearing may change
    along a great circle path.

    Args:
        lat1, lon1: Start point (degrees)
        lat2, lon2: End point (degrees)

    Returns:
        Bearing in degrees (0-360, where 0/360=North, 90=East, 180=South, 270=West)
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlon = lon2 - lon1

    x = sin(dlon) * cos(lat2)
    y = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)

    bearing = degrees(atan2(x, y))

    return (bearing + 360) % 360


def destination_point(
    lat: float, lon: float, distance: float, bearing: float
) -> Tuple[float, float]:
    """
    Project a point along a great circle.

    Args:
        lat: Start latitude in degrees
        lon: Start longitude in degrees
        distance: Distance to travel in nautical miles
        bearing: Initial bearing in degrees

    Returns:
        Tuple of (latitude, longitude) of the destination, longitude
        normalised to [-180, 180)
    """
    angular = (distance * Constants.KM_PER_NM) / Constants.EARTH_RADIUS_KM
    lat1 = radians(lat)
    lon1 = radians(lon)
    theta = radians(bearing)

    lat2 = asin(sin(lat1) * cos(angular) + cos(lat1) * sin(angular) * cos(theta))
    lon2 = lon1 + atan2(
        sin(theta) * sin(angular) * cos(lat1),
        cos(angular) - sin(lat1) * sin(lat2),
    )

    lon2_deg = (degrees(lon2) + 540) % 360 - 180
    return degrees(lat2), lon2_deg


def get_bounding_box(
    lat: float, lon: float, radius_km: float
) -> Tuple[float, float, float, float]:
    """
    Calculate bounding box coordinates for a given point and radius.

    Args:
        lat: Center latitude in degrees
        lon: Center longitude in degrees
        radius_km: Radius in kilometers

    Returns:
        Tuple of (lat_min, lon_min, lat_max, lon_max)
    """
    lat_delta = radius_km / Constants.KM_PER_DEGREE_LAT

    # Longitude delta widens with latitude
    lon_delta = radius_km / (Constants.KM_PER_DEGREE_LAT * cos(radians(lat)))

    return (
        lat - lat_delta,  # lat_min
        lon - lon_delta,  # lon_min
        lat + lat_delta,  # lat_max
        lon + lon_delta,  # lon_max
    )


def validate_coordinates(lat: float, lon: float) -> bool:
    """
    Validate latitude and longitude coordinates.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees

    Returns:
        True if coordinates are valid

    Example:
        >>> validate_coordinates(55.5094, -4.5944)
        True
        >>> validate_coordinates(100, 200)
        False
    """
    return -90 <= lat <= 90 and -180 <= lon <= 180


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime with millisecond precision."""
    return to_millis(datetime.now(timezone.utc))


def to_millis(value: datetime) -> datetime:
    """Truncate a datetime to millisecond precision, assuming UTC when naive."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_altitude(altitude_ft: Optional[float]) -> str:
    """
    Format altitude in feet.

    Example:
        >>> format_altitude(10000)
        '10000 ft'
    """
    if altitude_ft is None:
        return "N/A"
    return f"{altitude_ft:.0f} ft"


def format_duration(seconds: int) -> str:
    """
    Format duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string

    Example:
        >>> format_duration(3665)
        '1h 1m 5s'
    """
    if seconds is None or seconds < 0:
        return "N/A"

    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)
