"""In-memory models for decoded track points and the derived workout metrics.

Both decoders build ``TrackPoint`` instances; ``derive_metrics`` turns a list of
them into a ``WorkoutMetrics``. Nothing here is persisted; the storage layer
receives ``WorkoutMetrics.to_dict()`` (or ``dump_track`` for the GPS track).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Optional per-point sensor fields, in serialisation order
OPTIONAL_FIELDS = ("elevation", "heart_rate", "cadence")


def format_timestamp(value: datetime) -> str:
    """Render an aware UTC datetime as ISO 8601 with a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Inverse of ``format_timestamp``; naive input is taken as UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@dataclass(frozen=True)
class TrackPoint:
    """One recorded sample: position and time, plus whatever sensors reported."""

    latitude: float
    longitude: float
    timestamp: datetime
    elevation: float | None = None  # meters
    heart_rate: int | None = None  # bpm
    cadence: int | None = None  # steps or revolutions per minute

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def to_dict(self) -> dict[str, Any]:
        """Sparse representation: optional keys only appear when recorded."""
        data: dict[str, Any] = {
            "lat": self.latitude,
            "lon": self.longitude,
            "timestamp": format_timestamp(self.timestamp),
        }
        for name in OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackPoint:
        return cls(
            latitude=float(data["lat"]),
            longitude=float(data["lon"]),
            timestamp=parse_timestamp(data["timestamp"]),
            elevation=float(data["elevation"]) if "elevation" in data else None,
            heart_rate=int(data["heart_rate"]) if "heart_rate" in data else None,
            cadence=int(data["cadence"]) if "cadence" in data else None,
        )


@dataclass(frozen=True)
class WorkoutMetrics:
    """Normalized summary of one recorded workout. All units are metric."""

    distance_meters: float
    duration_seconds: float
    start_time: datetime
    end_time: datetime
    avg_pace_sec_per_km: float
    elevation_gain_meters: float | None = None
    avg_heart_rate: float | None = None
    max_heart_rate: int | None = None
    avg_cadence: float | None = None
    max_cadence: int | None = None
    gps_track: tuple[TrackPoint, ...] = field(default_factory=tuple)

    def to_dict(self, include_track: bool = True) -> dict[str, Any]:
        """JSON-ready dict; absent aggregates are left out rather than nulled."""
        data: dict[str, Any] = {
            "distance_meters": self.distance_meters,
            "duration_seconds": self.duration_seconds,
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time),
            "avg_pace_sec_per_km": self.avg_pace_sec_per_km,
        }
        for name in ("elevation_gain_meters", "avg_heart_rate", "max_heart_rate", "avg_cadence", "max_cadence"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if include_track:
            data["gps_track"] = [point.to_dict() for point in self.gps_track]
        return data


def dump_track(points) -> str:
    """Serialise a GPS track as a compact JSON array of sparse point objects."""
    return json.dumps([point.to_dict() for point in points], separators=(",", ":"))


def load_track(text: str) -> list[TrackPoint]:
    """Rebuild the points written by ``dump_track``."""
    return [TrackPoint.from_dict(item) for item in json.loads(text)]
