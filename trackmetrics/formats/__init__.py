"""File format handlers for activity data files (GPX, FIT)."""

from .fit import parse_fit
from .gpx import parse_gpx

__all__ = ["parse_fit", "parse_gpx"]
