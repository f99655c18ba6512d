"""This is the init module for trackmetrics"""

from .errors import (
    CorruptFileError,
    InsufficientTrackPointsError,
    InvalidTimeOrderingError,
    UnsupportedFormatError,
    UnsupportedFormatVersionError,
    WorkoutParseError,
)
from .file_format import parse_file, parse_workout
from .formats import parse_fit, parse_gpx
from .metrics import derive_metrics
from .trackpoint import TrackPoint, WorkoutMetrics

__version__ = "0.1.0"
__all__ = [
    "CorruptFileError",
    "InsufficientTrackPointsError",
    "InvalidTimeOrderingError",
    "TrackPoint",
    "UnsupportedFormatError",
    "UnsupportedFormatVersionError",
    "WorkoutMetrics",
    "WorkoutParseError",
    "derive_metrics",
    "parse_file",
    "parse_fit",
    "parse_gpx",
    "parse_workout",
]
