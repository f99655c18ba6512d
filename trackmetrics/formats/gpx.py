"""GPX file format support for trackmetrics.

Reads ``<trkpt>`` samples out of GPX (GPS Exchange Format) documents and hands
them to the shared metrics engine. Heart rate and cadence are written in many
vendor-specific shapes (Garmin's TrackPointExtension, plain ``<hr>`` children,
TCX-flavoured ``HeartRateBpm``), so they are looked up by element name anywhere
under the track point against a table of known variants rather than one fixed
schema. Track points are walked with ElementTree because gpxpy drops unknown
children of ``<trkpt>`` and rejects a non-numeric ``<ele>`` outright; times are
parsed with gpxpy and ``write_gpx`` renders through it.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime

import gpxpy.gpx
import gpxpy.gpxfield

from ..errors import CorruptFileError, InsufficientTrackPointsError
from ..metrics import derive_metrics
from ..trackpoint import TrackPoint, WorkoutMetrics

log = logging.getLogger(__name__)

FORMAT = "gpx"

# Known element names per sensor field, tried in order. Garmin's
# TrackPointExtension uses hr/cad, some apps write heartrate/cadence, and
# TCX-flavoured exporters use HeartRateBpm/RunCadence.
HEART_RATE_FIELDS: tuple[str, ...] = ("hr", "heartrate", "HeartRateBpm")
CADENCE_FIELDS: tuple[str, ...] = ("cad", "cadence", "RunCadence")

_NUMBER = re.compile(r"[-+]?\d+(?:\.\d+)?")


def _local_name(tag) -> str:
    # Comments and processing instructions have a callable tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].casefold()


def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _number(element: ET.Element) -> float | None:
    match = _NUMBER.search("".join(element.itertext()))
    return float(match.group()) if match else None


def _sensor_value(trkpt: ET.Element, names: Iterable[str]) -> int | None:
    """Return the first integer found under any element named in *names*."""
    for name in names:
        wanted = name.casefold()
        for element in trkpt.iter():
            if _local_name(element.tag) != wanted:
                continue
            value = _number(element)
            if value is not None:
                return round(value)
    return None


def _elevation(trkpt: ET.Element) -> float | None:
    ele = _child(trkpt, "ele")
    return _number(ele) if ele is not None else None


def _timestamp(trkpt: ET.Element) -> datetime | None:
    time = _child(trkpt, "time")
    if time is None or not (time.text or "").strip():
        return None
    try:
        value = gpxpy.gpxfield.parse_time(time.text.strip())
    except (gpxpy.gpx.GPXException, ValueError):
        log.debug("Unparseable GPX <time>: %r", time.text)
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _coordinate(trkpt: ET.Element, name: str) -> float:
    try:
        return float(trkpt.attrib[name])
    except KeyError as exc:
        raise CorruptFileError(f"GPX track point without a {name} attribute", FORMAT) from exc
    except ValueError as exc:
        raise CorruptFileError(f"Invalid GPX {name}: {trkpt.attrib[name]!r}", FORMAT) from exc


def read_gpx_points(xml: str | bytes, extra_fields: Mapping[str, Sequence[str]] | None = None) -> list[TrackPoint]:
    """Decode every timestamped track point in *xml*, in document order.

    Args:
        xml: GPX document text (bytes are decoded as UTF-8).
        extra_fields: Additional sensor element names to try, keyed by
            ``"heart_rate"`` / ``"cadence"``; appended after the built-in names.

    Raises:
        CorruptFileError: the document is not well-formed GPX.
        InsufficientTrackPointsError: fewer than two timestamped points.
    """
    if isinstance(xml, bytes):
        try:
            xml = xml.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CorruptFileError(f"GPX file is not valid UTF-8: {exc}", FORMAT) from exc

    extra_fields = extra_fields or {}
    hr_fields = HEART_RATE_FIELDS + tuple(extra_fields.get("heart_rate", ()))
    cad_fields = CADENCE_FIELDS + tuple(extra_fields.get("cadence", ()))

    try:
        root = ET.fromstring(xml.lstrip())
    except ET.ParseError as exc:
        raise CorruptFileError(f"Malformed GPX document: {exc}", FORMAT) from exc
    if _local_name(root.tag) != "gpx":
        raise CorruptFileError(f"Expected a <gpx> root element, got <{_local_name(root.tag)}>", FORMAT)

    points: list[TrackPoint] = []
    skipped = 0
    for trkpt in root.iter():
        if _local_name(trkpt.tag) != "trkpt":
            continue
        latitude = _coordinate(trkpt, "lat")
        longitude = _coordinate(trkpt, "lon")
        timestamp = _timestamp(trkpt)
        if timestamp is None:
            skipped += 1
            continue
        try:
            point = TrackPoint(
                latitude=latitude,
                longitude=longitude,
                timestamp=timestamp,
                elevation=_elevation(trkpt),
                heart_rate=_sensor_value(trkpt, hr_fields),
                cadence=_sensor_value(trkpt, cad_fields),
            )
        except ValueError as exc:
            raise CorruptFileError(f"Invalid GPX track point: {exc}", FORMAT) from exc
        points.append(point)

    if skipped:
        log.debug("Skipped %d GPX track points without a <time>", skipped)
    if len(points) < 2:
        raise InsufficientTrackPointsError(len(points), FORMAT)
    return points


def parse_gpx(xml: str | bytes, extra_fields: Mapping[str, Sequence[str]] | None = None) -> WorkoutMetrics:
    """Parse a GPX document and return its derived workout metrics."""
    return derive_metrics(read_gpx_points(xml, extra_fields), FORMAT)


def write_gpx(points: Iterable[TrackPoint], name: str | None = None) -> str:
    """Render *points* as a minimal GPX 1.1 track (time, position, elevation)."""
    gpx = gpxpy.gpx.GPX()
    gpx.creator = "trackmetrics"
    track = gpxpy.gpx.GPXTrack(name=name)
    gpx.tracks.append(track)
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)
    for point in points:
        segment.points.append(
            gpxpy.gpx.GPXTrackPoint(
                point.latitude,
                point.longitude,
                elevation=point.elevation,
                time=point.timestamp,
            )
        )
    return gpx.to_xml(version="1.1")
