"""FIT file format support for trackmetrics.

FIT (Flexible and Interoperable Data Transfer) is a binary, schema-on-read
format: a definition message declares the field layout for a local message
type, and every following data message with that local type is decoded against
it until the type is redefined. fitparse does the message walking; this module
validates the header, applies the CRC policy and turns ``record`` messages
into track points.

Everything other than ``record`` (file_id, lap, session, device_info, ...) is
ignored; summary values are recomputed from the raw points by the metrics
engine instead. See ``fitdump -n record file.fit`` for a human-readable view of
the same messages.
"""

from __future__ import annotations

import io
import logging
import struct
from datetime import UTC, datetime
from typing import Any, NamedTuple

import fitparse  # type: ignore
from fitparse.records import Crc  # type: ignore
from fitparse.utils import FitParseError  # type: ignore

from ..errors import CorruptFileError, InsufficientTrackPointsError, UnsupportedFormatVersionError
from ..metrics import derive_metrics
from ..trackpoint import TrackPoint, WorkoutMetrics

log = logging.getLogger(__name__)

FORMAT = "fit"

FIT_SIGNATURE = b".FIT"
SUPPORTED_PROTOCOL_MAJOR_VERSIONS = (1, 2)

# Garmin stores lat/lon as signed 32-bit "semicircles"; 2^31 semicircles = 180 degrees
SEMICIRCLE_TO_DEGREES = 180.0 / (2**31)


class FitHeader(NamedTuple):
    header_size: int
    protocol_version: int
    profile_version: int
    data_size: int
    header_crc: int | None

    @property
    def protocol_major(self) -> int:
        return self.protocol_version >> 4

    @property
    def protocol_minor(self) -> int:
        return self.protocol_version & 0x0F


def _check_crc(label: str, expected: int, data: bytes, strict: bool) -> None:
    actual = Crc.calculate(data)
    if actual == expected:
        return
    message = f"FIT {label} CRC mismatch: stored={Crc.format(expected)} computed={Crc.format(actual)}"
    if strict:
        raise CorruptFileError(message, FORMAT)
    log.warning(message)


def read_fit_header(data: bytes, strict_crc: bool = False) -> FitHeader:
    """Parse and validate the FIT file header.

    Raises:
        CorruptFileError: too short, bad header size or missing ``.FIT`` signature.
        UnsupportedFormatVersionError: protocol major version is not 1 or 2.
    """
    if len(data) < 12:
        raise CorruptFileError(f"FIT file too short: {len(data)} bytes", FORMAT)
    header_size = data[0]
    if header_size < 12:
        raise CorruptFileError(f"Invalid FIT header size: {header_size}", FORMAT)
    if len(data) < header_size:
        raise CorruptFileError("FIT file truncated inside header", FORMAT, offset=len(data))
    if data[8:12] != FIT_SIGNATURE:
        raise CorruptFileError("Missing .FIT signature", FORMAT, offset=8)

    protocol_version = data[1]
    profile_version, data_size = struct.unpack_from("<HI", data, 2)
    header_crc = None
    if header_size >= 14:
        (header_crc,) = struct.unpack_from("<H", data, 12)
        # 0x0000 means the encoder did not compute a header CRC
        if header_crc:
            _check_crc("header", header_crc, data[:12], strict_crc)

    header = FitHeader(header_size, protocol_version, profile_version, data_size, header_crc)
    if header.protocol_major not in SUPPORTED_PROTOCOL_MAJOR_VERSIONS:
        raise UnsupportedFormatVersionError(f"{header.protocol_major}.{header.protocol_minor}", FORMAT)
    return header


def _read_records(data: bytes) -> list[dict[str, Any]]:
    """Return the field values of every ``record`` message, in file order."""
    try:
        with fitparse.FitFile(io.BytesIO(data), check_crc=False) as fitfile:
            return [record.get_values() for record in fitfile.get_messages("record")]
    except FitParseError as exc:
        raise CorruptFileError(f"Malformed FIT data: {exc}", FORMAT) from exc


def _record_to_point(values: dict[str, Any]) -> TrackPoint | None:
    timestamp = values.get("timestamp")
    lat = values.get("position_lat")
    lon = values.get("position_long")
    # fitparse leaves timestamps it cannot anchor to the FIT epoch as plain ints
    if not isinstance(timestamp, datetime) or lat is None or lon is None:
        return None

    elevation = values.get("enhanced_altitude")
    if elevation is None:
        elevation = values.get("altitude")
    heart_rate = values.get("heart_rate")
    cadence = values.get("cadence")
    try:
        return TrackPoint(
            latitude=lat * SEMICIRCLE_TO_DEGREES,
            longitude=lon * SEMICIRCLE_TO_DEGREES,
            timestamp=timestamp.replace(tzinfo=UTC),
            elevation=float(elevation) if elevation is not None else None,
            heart_rate=int(heart_rate) if heart_rate is not None else None,
            cadence=int(cadence) if cadence is not None else None,
        )
    except (TypeError, ValueError):
        # Semicircles beyond +/-90 degrees latitude are not a real fix
        return None


def read_fit_points(data: bytes, strict_crc: bool = False) -> list[TrackPoint]:
    """Decode the ``record`` messages of a FIT file into track points.

    Args:
        data: The complete FIT file contents.
        strict_crc: Raise instead of warning when a CRC does not match.

    Raises:
        CorruptFileError: truncated or structurally invalid file.
        UnsupportedFormatVersionError: unknown protocol major version.
        InsufficientTrackPointsError: fewer than two records with time and position.
    """
    data = bytes(data)
    header = read_fit_header(data, strict_crc)
    end = header.header_size + header.data_size
    if len(data) < end + 2:
        raise CorruptFileError(
            f"FIT file truncated: header declares {end + 2} bytes, got {len(data)}", FORMAT, offset=len(data)
        )
    (file_crc,) = struct.unpack_from("<H", data, end)
    _check_crc("file", file_crc, data[:end], strict_crc)
    if len(data) > end + 2:
        log.debug("Ignoring %d bytes after the FIT file CRC", len(data) - end - 2)
        data = data[: end + 2]

    points: list[TrackPoint] = []
    skipped = 0
    for values in _read_records(data):
        point = _record_to_point(values)
        if point is None:
            skipped += 1
            continue
        points.append(point)

    if skipped:
        log.debug("Skipped %d FIT records without a timestamp or position fix", skipped)
    if len(points) < 2:
        raise InsufficientTrackPointsError(len(points), FORMAT)
    return points


def parse_fit(data: bytes, strict_crc: bool = False) -> WorkoutMetrics:
    """Parse a FIT file and return its derived workout metrics."""
    return derive_metrics(read_fit_points(data, strict_crc), FORMAT)
