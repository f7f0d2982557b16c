"""
Utility functions shared by the observation and serialization modules:
angle wrapping and timestamp conversion.
"""

from .angles import wrap_to_2pi, degrees_to_radians, radians_to_degrees
from .time import (
    INVALID_TIMESTAMP,
    format_timestamp,
    timestamp_from_unix,
    timestamp_to_unix,
)

__all__ = [
    'wrap_to_2pi',
    'degrees_to_radians',
    'radians_to_degrees',
    'INVALID_TIMESTAMP',
    'format_timestamp',
    'timestamp_from_unix',
    'timestamp_to_unix',
]
