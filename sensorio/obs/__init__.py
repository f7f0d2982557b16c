"""Sensor observation records.

Main components:
    - Observation: common base (timestamp, sensor label, description)
    - RangeScan2D: 2D laser scan with versioned binary serialization
    - RANGE_SCAN_LAYOUT: the scan's version dispatch table (versions 0-7)
    - ScanProperties: scan geometry summary

Example usage:
    >>> from sensorio.obs import RangeScan2D
    >>> from sensorio.serialization import write_object, read_object
    >>> from sensorio.io import BinaryStream
    >>>
    >>> obs = RangeScan2D(scan=[1.0, 2.5], valid_range=[True, True])
    >>> stream = BinaryStream.memory()
    >>> write_object(stream, obs)
    >>> read_object(BinaryStream.from_bytes(stream.getvalue())) == obs
    True
"""

from .observation import Observation
from .range_scan_2d import (
    DEFAULT_STD_ERROR,
    LEGACY_BEAM_APERTURE,
    RANGE_SCAN_LAYOUT,
    RangeScan2D,
)
from .scan_properties import ScanProperties

__all__ = [
    "Observation",
    "RangeScan2D",
    "RANGE_SCAN_LAYOUT",
    "DEFAULT_STD_ERROR",
    "LEGACY_BEAM_APERTURE",
    "ScanProperties",
]
