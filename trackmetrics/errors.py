"""Typed failures raised while turning an activity file into metrics.

Every error carries enough context for the upload handler to pick a message
and status code; the parsing core never retries and never returns a partial
result.
"""

from __future__ import annotations

from datetime import datetime


class WorkoutParseError(ValueError):
    """Base class for all activity-file parsing failures."""

    user_message = "The activity file could not be read."

    def __init__(self, message: str, file_format: str | None = None) -> None:
        super().__init__(message)
        self.file_format = file_format


class InsufficientTrackPointsError(WorkoutParseError):
    """Fewer than two usable track points survived decoding."""

    user_message = "The file has insufficient data."

    def __init__(self, point_count: int, file_format: str | None = None) -> None:
        label = file_format.upper() if file_format else "Activity"
        super().__init__(
            f"{label} file has insufficient track points ({point_count} usable, at least 2 required)",
            file_format,
        )
        self.point_count = point_count


class CorruptFileError(WorkoutParseError):
    """The file is truncated or structurally malformed."""

    user_message = "The file appears to be damaged. Please re-export it and try again."

    def __init__(self, message: str, file_format: str | None = None, offset: int | None = None) -> None:
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message, file_format)
        self.offset = offset


class UnsupportedFormatVersionError(WorkoutParseError):
    """The container is recognised but its protocol revision is not."""

    user_message = "This file version is not supported. Please export it in a newer format."

    def __init__(self, version: str, file_format: str | None = None) -> None:
        label = file_format.upper() if file_format else "File"
        super().__init__(f"Unsupported {label} protocol version: {version}", file_format)
        self.version = version


class UnsupportedFormatError(WorkoutParseError):
    """The declared or detected format has no decoder."""

    user_message = "Only GPX and FIT files are supported."

    def __init__(self, file_format: str | None) -> None:
        if file_format:
            message = f"Unsupported file format: {file_format}"
        else:
            message = "Could not detect the file format"
        super().__init__(message, file_format)


class InvalidTimeOrderingError(WorkoutParseError):
    """The last point was recorded before the first one."""

    user_message = "The file's timestamps are out of order."

    def __init__(self, start_time: datetime, end_time: datetime, file_format: str | None = None) -> None:
        super().__init__(
            f"Track ends before it starts: start={start_time.isoformat()} end={end_time.isoformat()}",
            file_format,
        )
        self.start_time = start_time
        self.end_time = end_time
