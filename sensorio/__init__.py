"""sensorio: sensor-observation records and their versioned binary format.

This package provides the building blocks for storing robot sensor logs:
- io: sequential binary streams and lazy-load path resolution
- serialization: object archive and per-version record layouts
- obs: observation records (2D range scans)
- math: geometry value types stored inside observations
- maps: points maps built from scans (optional, registers itself on import)
- config: process-wide settings and capability callbacks

The library logs through ``logging.getLogger("sensorio")`` and stays silent
unless the application configures logging.
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
