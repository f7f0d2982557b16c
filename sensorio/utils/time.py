"""
Timestamp helpers for observation records.

Observations carry timestamps as unsigned 64-bit counts of 100-nanosecond
ticks since 1601-01-01 00:00:00 UTC (the layout stored on disk). Zero means
"not set".
"""

from datetime import datetime, timezone

INVALID_TIMESTAMP = 0

# Seconds between 1601-01-01 and 1970-01-01
_EPOCH_OFFSET_SECONDS = 11644473600
_TICKS_PER_SECOND = 10_000_000


def timestamp_from_unix(seconds: float) -> int:
    """
    Convert UNIX time (seconds since 1970) to a 100-ns tick timestamp.

    Args:
        seconds: UNIX time in seconds.

    Returns:
        Timestamp ticks, suitable for ``Observation.timestamp``.

    Raises:
        ValueError: If the time falls before 1601 (negative ticks).
    """
    ticks = int(round((seconds + _EPOCH_OFFSET_SECONDS) * _TICKS_PER_SECOND))
    if ticks < 0:
        raise ValueError(f"Time {seconds} s predates the timestamp epoch")
    return ticks


def timestamp_to_unix(timestamp: int) -> float:
    """
    Convert a 100-ns tick timestamp back to UNIX time in seconds.

    Raises:
        ValueError: If the timestamp is unset.
    """
    if timestamp == INVALID_TIMESTAMP:
        raise ValueError("Timestamp is not set")
    return timestamp / _TICKS_PER_SECOND - _EPOCH_OFFSET_SECONDS


def format_timestamp(timestamp: int) -> str:
    """Human-readable UTC representation, or ``"INVALID"`` for unset stamps."""
    if timestamp == INVALID_TIMESTAMP:
        return "INVALID"
    moment = datetime.fromtimestamp(timestamp_to_unix(timestamp), tz=timezone.utc)
    return moment.strftime("%Y/%m/%d,%H:%M:%S.%f")
