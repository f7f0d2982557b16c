"""Common base of every sensor observation record."""

from dataclasses import dataclass

from ..serialization.archive import Serializable
from ..utils.time import INVALID_TIMESTAMP, format_timestamp, timestamp_to_unix


@dataclass(eq=False)
class Observation(Serializable):
    """
    Fields shared by all observations.

    Attributes:
        timestamp: Capture time as 100-ns ticks since 1601-01-01 UTC
            (0 means unset, see ``sensorio.utils.time``).
        sensor_label: Free-text name of the sensor that produced the data.
    """

    timestamp: int = INVALID_TIMESTAMP
    sensor_label: str = ""

    def describe(self) -> str:
        """Multi-line human-readable description of the observation."""
        lines = [f"Timestamp (UTC): {format_timestamp(self.timestamp)}"]
        if self.timestamp != INVALID_TIMESTAMP:
            lines.append(f"  (as time_t): {timestamp_to_unix(self.timestamp):.09f}")
        lines.append(f"Sensor label: '{self.sensor_label}'")
        return "\n".join(lines) + "\n"
