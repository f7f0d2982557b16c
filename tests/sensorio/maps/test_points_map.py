"""Unit tests for PointsMap (3D points accumulated from range scans).

Tests cover:
- Scan insertion: valid/invalid rays, minimum range, sensor and robot poses
- Voxel downsampling (in-place, on insertion and on demand)
- Edge cases: empty scans, all-invalid scans, inconsistent scans
"""

import unittest

import numpy as np

from sensorio.errors import InvariantViolation
from sensorio.maps import InsertionOptions, PointsMap, build_points_map_from_scan
from sensorio.math import Pose3D
from sensorio.obs import RangeScan2D


def three_ray_scan(valid=(True, True, True), ranges=(1.0, 1.0, 1.0), **kwargs):
    """Rays at -90, 0 and +90 degrees."""
    return RangeScan2D(scan=list(ranges), valid_range=list(valid), aperture=np.pi, **kwargs)


class TestPointsMapInsertion(unittest.TestCase):
    """Test scan insertion."""

    def test_initialization(self):
        """Test map initializes empty."""
        pmap = PointsMap()

        self.assertEqual(len(pmap), 0)
        self.assertEqual(pmap.n_scans, 0)
        self.assertEqual(pmap.points.shape, (0, 3))

    def test_insert_valid_rays_only(self):
        """Test that invalid rays are skipped by default."""
        pmap = PointsMap()
        pmap.insert_scan(three_ray_scan(valid=(True, False, True)))

        expected = np.array([[0.0, -1.0, 0.0], [0.0, 1.0, 0.0]])
        np.testing.assert_allclose(pmap.points, expected, atol=1e-12)
        self.assertEqual(pmap.n_scans, 1)

    def test_insert_also_invalid(self):
        """Test also_invalid_points."""
        pmap = PointsMap(InsertionOptions(also_invalid_points=True))
        pmap.insert_scan(three_ray_scan(valid=(True, False, True)))

        self.assertEqual(len(pmap), 3)
        np.testing.assert_allclose(pmap.points[1], [1.0, 0.0, 0.0], atol=1e-12)

    def test_min_range(self):
        """Test that short rays are skipped."""
        pmap = PointsMap(InsertionOptions(min_range=1.0))
        pmap.insert_scan(three_ray_scan(ranges=(0.5, 2.0, 0.2)))

        self.assertEqual(len(pmap), 1)
        np.testing.assert_allclose(pmap.points[0], [2.0, 0.0, 0.0], atol=1e-12)

    def test_sensor_pose_applied(self):
        """Test that points are expressed in the robot frame."""
        pmap = PointsMap()
        obs = three_ray_scan(valid=(False, True, False), sensor_pose=Pose3D(x=0.2, z=0.35))
        pmap.insert_scan(obs)

        np.testing.assert_allclose(pmap.points, [[1.2, 0.0, 0.35]], atol=1e-6)

    def test_robot_pose_applied(self):
        """Test insertion at a robot pose in the map frame."""
        pmap = PointsMap()
        obs = three_ray_scan(valid=(False, True, False))
        pmap.insert_scan(obs, robot_pose=Pose3D(x=5.0, yaw=np.pi / 2))

        np.testing.assert_allclose(pmap.points, [[5.0, 1.0, 0.0]], atol=1e-12)

    def test_multiple_scans_accumulate(self):
        """Test that points and scan count accumulate."""
        pmap = PointsMap()
        pmap.insert_scan(three_ray_scan())
        pmap.insert_scan(three_ray_scan(valid=(True, False, False)))

        self.assertEqual(len(pmap), 4)
        self.assertEqual(pmap.n_scans, 2)

    def test_all_invalid_scan_counts(self):
        """Test that a scan without usable rays still counts as inserted."""
        pmap = PointsMap()
        pmap.insert_scan(three_ray_scan(valid=(False, False, False)))
        pmap.insert_scan(RangeScan2D())

        self.assertEqual(len(pmap), 0)
        self.assertEqual(pmap.n_scans, 2)

    def test_inconsistent_scan_rejected(self):
        """Test that mismatched parallel sequences raise."""
        pmap = PointsMap()
        with self.assertRaises(InvariantViolation):
            pmap.insert_scan(RangeScan2D(scan=[1.0, 2.0], valid_range=[True]))

    def test_clear(self):
        """Test that clear() removes all points and resets scan count."""
        pmap = PointsMap()
        pmap.insert_scan(three_ray_scan())
        pmap.clear()

        self.assertEqual(len(pmap), 0)
        self.assertEqual(pmap.n_scans, 0)
        self.assertEqual(pmap.points.shape, (0, 3))


class TestPointsMapDownsampling(unittest.TestCase):
    """Test voxel grid downsampling."""

    def test_downsample_on_insert(self):
        """Test that repeated identical scans collapse to one point per voxel."""
        pmap = PointsMap(InsertionOptions(voxel_size=0.5))
        single = RangeScan2D(scan=[2.0], valid_range=[True])
        for _ in range(3):
            pmap.insert_scan(single)

        self.assertEqual(len(pmap), 1)
        self.assertEqual(pmap.n_scans, 3)
        np.testing.assert_allclose(pmap.points[0], [2.0, 0.0, 0.0], atol=1e-12)

    def test_get_points_downsampled_copy(self):
        """Test that get_points(voxel_size) leaves the map unchanged."""
        pmap = PointsMap()
        single = RangeScan2D(scan=[2.0], valid_range=[True])
        pmap.insert_scan(single)
        pmap.insert_scan(single)

        reduced = pmap.get_points(voxel_size=1.0)
        self.assertEqual(reduced.shape, (1, 3))
        self.assertEqual(len(pmap), 2)

    def test_downsample_centroid(self):
        """Test that a voxel is replaced by the centroid of its points."""
        pmap = PointsMap()
        pmap.points = np.array([[0.1, 0.1, 0.0], [0.3, 0.3, 0.0], [5.0, 5.0, 0.0]])
        pmap.downsample(1.0)

        self.assertEqual(len(pmap), 2)
        centroids = sorted(map(tuple, np.round(pmap.points, 6)))
        self.assertEqual(centroids, [(0.2, 0.2, 0.0), (5.0, 5.0, 0.0)])

    def test_get_points_returns_copy(self):
        """Test that get_points returns a copy (not view)."""
        pmap = PointsMap()
        pmap.insert_scan(RangeScan2D(scan=[1.0], valid_range=[True]))
        points = pmap.get_points()
        points[0, 0] = 999.0

        self.assertAlmostEqual(pmap.points[0, 0], 1.0)

    def test_invalid_voxel_size(self):
        """Test that non-positive voxel sizes are rejected."""
        pmap = PointsMap()
        pmap.insert_scan(RangeScan2D(scan=[1.0], valid_range=[True]))
        with self.assertRaises(ValueError):
            pmap.get_points(voxel_size=0.0)
        with self.assertRaises(ValueError):
            InsertionOptions(voxel_size=-1.0)
        with self.assertRaises(ValueError):
            InsertionOptions(min_range=-0.1)


class TestBuildPointsMapFromScan(unittest.TestCase):
    """Test the builder used by RangeScan2D.build_aux_points_map."""

    def test_build(self):
        """Test a one-scan map in the robot frame."""
        pmap = build_points_map_from_scan(three_ray_scan(valid=(True, False, True)))

        self.assertIsInstance(pmap, PointsMap)
        self.assertEqual(len(pmap), 2)
        self.assertEqual(pmap.n_scans, 1)

    def test_build_with_options(self):
        """Test that insertion options are honored."""
        options = InsertionOptions(also_invalid_points=True)
        pmap = build_points_map_from_scan(three_ray_scan(valid=(True, False, True)), options)

        self.assertEqual(len(pmap), 3)
        self.assertIs(pmap.options, options)


if __name__ == "__main__":
    unittest.main()
