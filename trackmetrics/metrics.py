"""Format-agnostic derivation of workout metrics from decoded track points.

GPX and FIT both end up here so that distance, pace and the sensor aggregates
are computed the same way regardless of what device produced the file. Summary
values a FIT file may already carry (session/lap totals) are not used.
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import InsufficientTrackPointsError, InvalidTimeOrderingError
from .geo import haversine_distance
from .trackpoint import TrackPoint, WorkoutMetrics


def _mean_and_max(values: list[int]) -> tuple[float | None, int | None]:
    if not values:
        return None, None
    return sum(values) / len(values), max(values)


def total_distance(points: Sequence[TrackPoint]) -> float:
    """Sum of the great-circle segment lengths between consecutive points."""
    distance = 0.0
    for previous, current in zip(points, points[1:]):
        distance += haversine_distance(previous.latitude, previous.longitude, current.latitude, current.longitude)
    return distance


def elevation_gain(points: Sequence[TrackPoint]) -> float | None:
    """Total ascent in meters; descents never offset it.

    Only points that carry an elevation take part, so a gap in the altimeter
    data does not break the chain. Returns ``None`` with fewer than two
    readings.
    """
    elevations = [p.elevation for p in points if p.elevation is not None]
    if len(elevations) < 2:
        return None
    gain = 0.0
    for previous, current in zip(elevations, elevations[1:]):
        if current > previous:
            gain += current - previous
    return gain


def derive_metrics(points: Sequence[TrackPoint], file_format: str | None = None) -> WorkoutMetrics:
    """Compute the normalized metrics record for an ordered list of points.

    Points are trusted to be in recording order; they are never sorted.

    Raises:
        InsufficientTrackPointsError: fewer than two points.
        InvalidTimeOrderingError: the last point is timestamped before the first.
    """
    if len(points) < 2:
        raise InsufficientTrackPointsError(len(points), file_format)

    start_time = points[0].timestamp
    end_time = points[-1].timestamp
    if end_time < start_time:
        raise InvalidTimeOrderingError(start_time, end_time, file_format)
    duration = (end_time - start_time).total_seconds()

    distance = total_distance(points)
    # Stationary recordings report pace 0
    avg_pace = duration / (distance / 1000) if distance > 0 else 0.0

    avg_hr, max_hr = _mean_and_max([p.heart_rate for p in points if p.heart_rate is not None])
    avg_cad, max_cad = _mean_and_max([p.cadence for p in points if p.cadence is not None])

    return WorkoutMetrics(
        distance_meters=distance,
        duration_seconds=duration,
        start_time=start_time,
        end_time=end_time,
        avg_pace_sec_per_km=avg_pace,
        elevation_gain_meters=elevation_gain(points),
        avg_heart_rate=avg_hr,
        max_heart_rate=max_hr,
        avg_cadence=avg_cad,
        max_cadence=max_cad,
        gps_track=tuple(points),
    )
