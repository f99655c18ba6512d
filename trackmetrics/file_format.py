"""Pick the right decoder for an uploaded activity file.

The format comes from the caller's declared tag when there is one, otherwise
from a short sniff of the content. Gzipped uploads (``.gpx.gz``, ``.fit.gz``)
are decompressed first. Whatever the decoder, the points always go through the
single ``derive_metrics`` engine.
"""

import gzip
import logging
import os
import zlib
from typing import Any

from .appconfig import merge_config
from .errors import CorruptFileError, UnsupportedFormatError
from .formats.fit import FIT_SIGNATURE, parse_fit
from .formats.gpx import parse_gpx
from .trackpoint import WorkoutMetrics

log = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("gpx", "fit")
SUPPORTED_EXTENSIONS = (".gpx", ".gpx.gz", ".fit", ".fit.gz")

_GZIP_MAGIC = b"\x1f\x8b"
_UTF8_BOM = b"\xef\xbb\xbf"


def normalize_format_tag(tag: str) -> tuple[str, bool]:
    """Turn a declared tag such as ``"GPX"``, ``".fit"`` or ``"fit.gz"`` into ``(format, is_gzipped)``."""
    normalized = tag.strip().lower().lstrip(".")
    is_gzipped = normalized.endswith(".gz")
    if is_gzipped:
        normalized = normalized[: -len(".gz")]
    if normalized not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(tag)
    return normalized, is_gzipped


def determine_file_format(file_path: str) -> tuple[str, bool]:
    """Return ``(format, is_gzipped)`` based on the file name's extension."""
    file_lower = os.path.basename(file_path).lower()

    if file_lower.endswith(".fit.gz"):
        return "fit", True
    if file_lower.endswith(".gpx.gz"):
        return "gpx", True
    if file_lower.endswith(".gpx"):
        return "gpx", False
    if file_lower.endswith(".fit"):
        return "fit", False
    raise UnsupportedFormatError(os.path.splitext(file_lower)[1] or file_lower)


def _gunzip(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise CorruptFileError(f"Could not decompress gzip data: {exc}") from exc


def sniff_file_format(data: bytes) -> str | None:
    """Guess the format from the leading bytes, or return ``None``."""
    if data[:2] == _GZIP_MAGIC:
        data = _gunzip(data)
    if len(data) >= 12 and data[8:12] == FIT_SIGNATURE:
        return "fit"
    head = data[:256]
    if head.startswith(_UTF8_BOM):
        head = head[len(_UTF8_BOM) :]
    head = head.lstrip().lower()
    if head.startswith(b"<?xml") or head.startswith(b"<gpx"):
        return "gpx"
    return None


def parse_workout(
    data: bytes | str,
    file_format: str | None = None,
    config: dict[str, Any] | None = None,
) -> WorkoutMetrics:
    """Decode an activity file of either supported format into metrics.

    Args:
        data: Raw file contents. ``str`` is accepted for GPX text.
        file_format: Declared format tag; sniffed from *data* when omitted.
        config: Configuration dict (see ``trackmetrics.appconfig``); defaults
            apply for missing keys.

    Raises:
        UnsupportedFormatError: unknown tag or undetectable content.
        WorkoutParseError: any decoder or derivation failure.
    """
    config = merge_config(config)
    if isinstance(data, str):
        data = data.encode("utf-8")

    if file_format:
        file_format, is_gzipped = normalize_format_tag(file_format)
        if is_gzipped or data[:2] == _GZIP_MAGIC:
            data = _gunzip(data)
    else:
        file_format = sniff_file_format(data)
        if file_format is None:
            raise UnsupportedFormatError(None)
        if data[:2] == _GZIP_MAGIC:
            data = _gunzip(data)

    log.debug("Parsing %d bytes as %s", len(data), file_format)
    if file_format == "gpx":
        return parse_gpx(data.lstrip(), extra_fields=config["extension_fields"])
    return parse_fit(data, strict_crc=config["strict_crc"])


def parse_file(
    file_path: str,
    file_format: str | None = None,
    config: dict[str, Any] | None = None,
) -> WorkoutMetrics:
    """Read *file_path* from disk and parse it with ``parse_workout``.

    The format defaults to the one implied by the file name; a name without a
    known extension falls back to sniffing the content.
    """
    if file_format is None:
        try:
            file_format, _ = determine_file_format(file_path)
        except UnsupportedFormatError:
            log.debug("No known extension on %s, sniffing content", file_path)
    with open(file_path, "rb") as f:
        data = f.read()
    return parse_workout(data, file_format, config)
