"""Maps built from observations.

Importing this package registers ``build_points_map_from_scan`` as the
process-wide points-map builder, which enables
``RangeScan2D.build_aux_points_map``. ``register()`` / ``unregister()`` do
the same explicitly (e.g. after ``sensorio.config.reset_config()``).
"""

from ..config import register_points_map_builder, unregister_points_map_builder
from .points_map import InsertionOptions, PointsMap, build_points_map_from_scan


def register() -> None:
    """Install the scan-to-points-map builder."""
    register_points_map_builder(build_points_map_from_scan)


def unregister() -> None:
    """Remove the scan-to-points-map builder."""
    unregister_points_map_builder()


register()

__all__ = [
    "PointsMap",
    "InsertionOptions",
    "build_points_map_from_scan",
    "register",
    "unregister",
]
