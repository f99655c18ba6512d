"""Shared fixtures: in-memory GPX documents and FIT binaries.

No binary samples are checked in; the FIT builder below writes well-formed
files (header, definition and data messages, CRCs) so tests can control every
byte.
"""

import struct
from datetime import datetime

import pytest
from fitparse.records import Crc

FIT_EPOCH_OFFSET = 631065600  # seconds between 1970-01-01 and 1989-12-31
DEGREES_TO_SEMICIRCLES = (2**31) / 180.0

FILE_ID_MESG_NUM = 0
RECORD_MESG_NUM = 20
LAP_MESG_NUM = 19
FIELD_DESCRIPTION_MESG_NUM = 206
DEVELOPER_DATA_ID_MESG_NUM = 207

# (field number, size, base type)
RECORD_DEFINITION = [
    (253, 4, 0x86),  # timestamp uint32
    (0, 4, 0x85),  # position_lat sint32
    (1, 4, 0x85),  # position_long sint32
    (2, 2, 0x84),  # altitude uint16
    (3, 1, 0x02),  # heart_rate uint8
    (4, 1, 0x02),  # cadence uint8
]
RECORD_FORMAT = "IiiHBB"


def fit_timestamp(dt: datetime) -> int:
    return int(dt.timestamp()) - FIT_EPOCH_OFFSET


class FitBuilder:
    """Assemble a FIT file message by message."""

    def __init__(self, protocol_version=0x20, profile_version=2132, header_size=14, architecture=0):
        self.protocol_version = protocol_version
        self.profile_version = profile_version
        self.header_size = header_size
        self.architecture = architecture
        self.endian = ">" if architecture == 1 else "<"
        self.body = bytearray()

    def define(self, local_type, global_number, fields, developer_fields=()):
        header = 0x40 | local_type
        if developer_fields:
            header |= 0x20
        self.body += bytes([header, 0, self.architecture])
        self.body += struct.pack(self.endian + "H", global_number)
        self.body += bytes([len(fields)])
        for number, size, base_type in fields:
            self.body += bytes([number, size, base_type])
        if developer_fields:
            self.body += bytes([len(developer_fields)])
            for number, size, index in developer_fields:
                self.body += bytes([number, size, index])
        return self

    def data(self, local_type, fmt, *values, extra=b""):
        self.body += bytes([local_type & 0x0F])
        self.body += struct.pack(self.endian + fmt, *values)
        self.body += extra
        return self

    def compressed(self, local_type, time_offset, fmt, *values):
        self.body += bytes([0x80 | ((local_type & 0x03) << 5) | (time_offset & 0x1F)])
        self.body += struct.pack(self.endian + fmt, *values)
        return self

    def file_id(self, local_type=0):
        self.define(local_type, FILE_ID_MESG_NUM, [(0, 1, 0x00)])
        return self.data(local_type, "B", 4)  # type=activity

    def record_definition(self, local_type=1):
        return self.define(local_type, RECORD_MESG_NUM, RECORD_DEFINITION)

    def record(self, timestamp, lat=None, lon=None, altitude=None, heart_rate=None, cadence=None, local_type=1):
        self.data(local_type, RECORD_FORMAT, *record_values(timestamp, lat, lon, altitude, heart_rate, cadence))
        return self

    def lap(self, timestamp, local_type=0):
        # total_elapsed_time (ms) and total_distance (cm); ignored by the decoder
        self.define(local_type, LAP_MESG_NUM, [(253, 4, 0x86), (7, 4, 0x86), (9, 4, 0x86)])
        return self.data(local_type, "III", fit_timestamp(timestamp), 60000, 15000)

    def developer_fields(self, dev_data_index, fields, local_type=3):
        """Describe developer fields as ``(field number, base type)`` pairs before they are used."""
        self.define(local_type, DEVELOPER_DATA_ID_MESG_NUM, [(3, 1, 0x02)])
        self.data(local_type, "B", dev_data_index)
        self.define(local_type, FIELD_DESCRIPTION_MESG_NUM, [(0, 1, 0x02), (1, 1, 0x02), (2, 1, 0x02)])
        for number, base_type in fields:
            self.data(local_type, "BBB", dev_data_index, number, base_type)
        return self

    def build(self, header_crc=None, file_crc=None):
        header = struct.pack(
            "<BBHI4s",
            self.header_size,
            self.protocol_version,
            self.profile_version,
            len(self.body),
            b".FIT",
        )
        if self.header_size >= 14:
            crc = Crc.calculate(header) if header_crc is None else header_crc
            header += struct.pack("<H", crc)
            header += b"\x00" * (self.header_size - 14)
        content = header + bytes(self.body)
        crc = Crc.calculate(content) if file_crc is None else file_crc
        return content + struct.pack("<H", crc)


def record_values(timestamp, lat=None, lon=None, altitude=None, heart_rate=None, cadence=None):
    """Raw record field values in ``RECORD_FORMAT`` order, with FIT invalid sentinels."""
    return (
        fit_timestamp(timestamp) if timestamp is not None else 0xFFFFFFFF,
        round(lat * DEGREES_TO_SEMICIRCLES) if lat is not None else 0x7FFFFFFF,
        round(lon * DEGREES_TO_SEMICIRCLES) if lon is not None else 0x7FFFFFFF,
        round((altitude + 500) * 5) if altitude is not None else 0xFFFF,
        heart_rate if heart_rate is not None else 0xFF,
        cadence if cadence is not None else 0xFF,
    )


@pytest.fixture
def fit_builder():
    """Factory for ``FitBuilder`` instances."""
    return FitBuilder


@pytest.fixture
def fit_file(fit_builder):
    """Build a complete activity FIT file from a list of record dicts."""

    def _build(records, **builder_kwargs):
        builder = fit_builder(**builder_kwargs).file_id().record_definition()
        for rec in records:
            builder.record(**rec)
        if records:
            builder.lap(records[-1]["timestamp"])
        return builder.build()

    return _build


def make_gpx(trkpts: str, namespaces: str = "") -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="pytest" xmlns="http://www.topografix.com/GPX/1/1"{namespaces}>
  <trk>
    <name>Morning Run</name>
    <trkseg>
{trkpts}
    </trkseg>
  </trk>
</gpx>
"""


@pytest.fixture
def gpx_document():
    """Wrap ``<trkpt>`` markup in a GPX 1.1 document."""
    return make_gpx


@pytest.fixture
def fit_record_values():
    """``record_values`` helper for tests that write record messages by hand."""
    return record_values
