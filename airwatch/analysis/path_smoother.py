"""
Flight Path Smoothing
Catmull-Rom spline interpolation of track positions for display.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from airwatch.analysis.constants import DEFAULT_SMOOTHING_DENSITY


@dataclass(frozen=True)
class PathPoint:
    """Interpolated display point."""

    lat: float
    lon: float
    altitude: Optional[float] = None
    timestamp: Optional[datetime] = None


def _as_point(sample) -> PathPoint:
    return PathPoint(
        lat=sample.lat,
        lon=sample.lon,
        altitude=getattr(sample, "altitude", None),
        timestamp=getattr(sample, "timestamp", None),
    )


def _catmull_rom(v0: float, v1: float, v2: float, v3: float, t: float) -> float:
    t2 = t * t
    t3 = t2 * t
    return 0.5 * (
        (2 * v1)
        + (-v0 + v2) * t
        + (2 * v0 - 5 * v1 + 4 * v2 - v3) * t2
        + (-v0 + 3 * v1 - 3 * v2 + v3) * t3
    )


def _interpolate_time(
    start: Optional[datetime], end: Optional[datetime], t: float
) -> Optional[datetime]:
    if start is None or end is None:
        return None
    return start + (end - start) * t


class PathSmoother:
    """
    Smooths a sequence of positions into a denser display path.

    Four or more points use Catmull-Rom splines (the curve passes through
    every input point); two or three points fall back to linear
    interpolation; fewer are returned unchanged.
    """

    def smooth_path(
        self, points: Sequence, density: int = DEFAULT_SMOOTHING_DENSITY
    ) -> List[PathPoint]:
        """
        Interpolate a path.

        Args:
            points: Objects with ``lat``/``lon`` and optional
                ``altitude``/``timestamp`` (e.g. PositionSample)
            density: Interpolated points per segment

        Returns:
            List of PathPoint starting with the first input point
        """
        path = [_as_point(p) for p in points or ()]
        if len(path) < 2 or density < 1:
            return path

        if len(path) < 4:
            return self._linear(path, density)

        smoothed = [path[0]]
        last = len(path) - 1
        for i in range(last):
            p0 = path[max(0, i - 1)]
            p1 = path[i]
            p2 = path[i + 1]
            p3 = path[min(last, i + 2)]

            for step in range(1, density + 1):
                t = step / density
                altitude = None
                if p1.altitude is not None and p2.altitude is not None:
                    a0 = p0.altitude if p0.altitude is not None else p1.altitude
                    a3 = p3.altitude if p3.altitude is not None else p2.altitude
                    altitude = _catmull_rom(a0, p1.altitude, p2.altitude, a3, t)

                smoothed.append(
                    PathPoint(
                        lat=_catmull_rom(p0.lat, p1.lat, p2.lat, p3.lat, t),
                        lon=_catmull_rom(p0.lon, p1.lon, p2.lon, p3.lon, t),
                        altitude=altitude,
                        timestamp=_interpolate_time(p1.timestamp, p2.timestamp, t),
                    )
                )

        return smoothed

    def _linear(self, path: List[PathPoint], density: int) -> List[PathPoint]:
        result = [path[0]]
        for start, end in zip(path, path[1:]):
            for step in range(1, density + 1):
                t = step / density
                altitude = None
                if start.altitude is not None and end.altitude is not None:
                    altitude = start.altitude + (end.altitude - start.altitude) * t
                result.append(
                    PathPoint(
                        lat=start.lat + (end.lat - start.lat) * t,
                        lon=start.lon + (end.lon - start.lon) * t,
                        altitude=altitude,
                        timestamp=_interpolate_time(start.timestamp, end.timestamp, t),
                    )
                )
        return result
