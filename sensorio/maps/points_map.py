"""Point maps built from range scans.

This module implements a simple points map: a growing set of 3D points in
the robot (or map) frame, filled by projecting the valid rays of 2D range
scans through the sensor pose. It is the map that ``RangeScan2D``
caches through ``build_aux_points_map``.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..math.pose3d import Pose3D
from ..obs.range_scan_2d import RangeScan2D


@dataclass
class InsertionOptions:
    """
    How scans are turned into map points.

    Attributes:
        also_invalid_points: Insert rays flagged invalid too. Default False.
        min_range: Skip rays shorter than this (meters). Default 0.
        voxel_size: If set, downsample the map after insertion (meters).
    """

    also_invalid_points: bool = False
    min_range: float = 0.0
    voxel_size: Optional[float] = None

    def __post_init__(self) -> None:
        if self.min_range < 0:
            raise ValueError(f"min_range must be non-negative, got {self.min_range}")
        if self.voxel_size is not None and self.voxel_size <= 0:
            raise ValueError(f"voxel_size must be positive, got {self.voxel_size}")


class PointsMap:
    """Accumulated 3D points from range scans.

    Attributes:
        points: Map points, shape (N, 3).
        n_scans: Number of scans inserted.
        options: Insertion options.

    Example:
        >>> obs = RangeScan2D(scan=[1.0, 1.0, 1.0], valid_range=[True, False, True])
        >>> pmap = PointsMap()
        >>> pmap.insert_scan(obs)
        >>> len(pmap)
        2

    Notes:
        - Points are stored in the frame of the pose given to ``insert_scan``
          (the robot frame when no pose is given)
        - Not thread-safe, use external locking if needed
    """

    def __init__(self, options: Optional[InsertionOptions] = None) -> None:
        self.options = options if options is not None else InsertionOptions()
        self.points: np.ndarray = np.empty((0, 3), dtype=np.float64)
        self.n_scans: int = 0

    def insert_scan(self, obs: RangeScan2D, robot_pose: Optional[Pose3D] = None) -> None:
        """Project the scan's rays and append them to the map.

        Args:
            obs: Range scan to insert.
            robot_pose: Robot pose in the map frame. Defaults to identity.

        Raises:
            InvariantViolation: If the scan's parallel sequences disagree.
        """
        valid = obs._checked_flags() != 0
        ranges = obs.scan.astype(np.float64)
        keep = ranges >= self.options.min_range
        if not self.options.also_invalid_points:
            keep &= valid

        self.n_scans += 1
        if not np.any(keep):
            return

        angles = obs.ray_angles()[keep]
        ranges = ranges[keep]
        local = np.column_stack(
            [ranges * np.cos(angles), ranges * np.sin(angles), np.zeros_like(ranges)]
        )
        points = obs.sensor_pose.compose_points(local)
        if robot_pose is not None:
            points = robot_pose.compose_points(points)

        if self.points.shape[0] == 0:
            self.points = points
        else:
            self.points = np.vstack([self.points, points])

        if self.options.voxel_size is not None:
            self.downsample(self.options.voxel_size)

    def get_points(self, voxel_size: Optional[float] = None) -> np.ndarray:
        """Get all map points, optionally downsampled.

        Args:
            voxel_size: If provided, points within the same voxel are replaced
                       by their centroid in the returned copy.

        Returns:
            Map points, shape (M, 3).
        """
        if self.points.shape[0] == 0 or voxel_size is None:
            return self.points.copy()
        return self._voxel_downsample(self.points, voxel_size)

    def downsample(self, voxel_size: float) -> None:
        """Downsample map points in-place using a voxel grid filter."""
        if self.points.shape[0] == 0:
            return
        self.points = self._voxel_downsample(self.points, voxel_size)

    def clear(self) -> None:
        """Clear all points and reset scan count."""
        self.points = np.empty((0, 3), dtype=np.float64)
        self.n_scans = 0

    def __len__(self) -> int:
        return self.points.shape[0]

    def __repr__(self) -> str:
        return f"PointsMap(n_points={len(self)}, n_scans={self.n_scans})"

    @staticmethod
    def _voxel_downsample(points: np.ndarray, voxel_size: float) -> np.ndarray:
        """Replace the points of each occupied voxel by their centroid.

        Raises:
            ValueError: If voxel_size is not positive.
        """
        if voxel_size <= 0:
            raise ValueError(f"voxel_size must be positive, got {voxel_size}")
        if points.shape[0] == 0:
            return points.copy()

        voxel_indices = np.floor(points / voxel_size).astype(np.int64)
        _, inverse = np.unique(voxel_indices, axis=0, return_inverse=True)
        inverse = inverse.reshape(-1)
        n_voxels = inverse.max() + 1

        sums = np.zeros((n_voxels, points.shape[1]))
        np.add.at(sums, inverse, points)
        counts = np.bincount(inverse, minlength=n_voxels)
        return sums / counts[:, None]


def build_points_map_from_scan(
    obs: RangeScan2D, options: Optional[InsertionOptions] = None
) -> PointsMap:
    """Build a new points map holding a single scan (robot frame).

    This is the builder ``sensorio.maps`` registers for
    ``RangeScan2D.build_aux_points_map``.
    """
    pmap = PointsMap(options)
    pmap.insert_scan(obs)
    return pmap
