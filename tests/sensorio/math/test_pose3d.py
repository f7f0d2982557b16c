"""Unit tests for the geometry value types (Pose3D, FloatMatrix, Polygon)."""

import unittest

import numpy as np
import pytest

from sensorio.errors import UnknownFormatVersion
from sensorio.io import BinaryStream
from sensorio.math import FloatMatrix, Polygon, Pose3D
from sensorio.serialization import read_object, write_object


class TestPose3D:
    """Test suite for Pose3D."""

    def test_default_is_identity(self):
        """Test that a default pose is the identity transform."""
        np.testing.assert_allclose(Pose3D().homogeneous_matrix(), np.eye(4))

    def test_rejects_non_finite(self):
        """Test validation in __post_init__."""
        with pytest.raises(ValueError, match="yaw"):
            Pose3D(yaw=np.nan)
        with pytest.raises(ValueError, match="x"):
            Pose3D(x=np.inf)

    def test_array_conversion(self):
        """Test to_array/from_array."""
        pose = Pose3D(1.0, 2.0, 3.0, 0.1, 0.2, 0.3)
        np.testing.assert_array_equal(pose.to_array(), [1.0, 2.0, 3.0, 0.1, 0.2, 0.3])
        assert Pose3D.from_array(pose.to_array()) == pose
        with pytest.raises(ValueError, match="shape"):
            Pose3D.from_array(np.zeros(3))

    def test_rotation_is_orthonormal(self):
        """Test R @ R.T == I and det(R) == 1."""
        R = Pose3D(yaw=0.7, pitch=-0.3, roll=1.2).rotation_matrix()
        np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-12)
        assert np.linalg.det(R) == pytest.approx(1.0)

    def test_compose_yaw(self):
        """Test a 90 degree yaw rotates x onto y."""
        pose = Pose3D(x=1.0, yaw=np.pi / 2)
        np.testing.assert_allclose(pose.compose_points(np.array([1.0, 0.0, 0.0])), [1.0, 1.0, 0.0], atol=1e-12)

    def test_compose_many_points(self):
        """Test (N, 3) input."""
        pose = Pose3D(z=0.5)
        pts = pose.compose_points(np.array([[1.0, 0.0, 0.0], [0.0, 2.0, 0.0]]))
        np.testing.assert_allclose(pts, [[1.0, 0.0, 0.5], [0.0, 2.0, 0.5]])

    def test_compose_bad_shape(self):
        """Test that other shapes are rejected."""
        with pytest.raises(ValueError):
            Pose3D().compose_points(np.zeros((2, 2)))

    def test_equality_wraps_angles(self):
        """Test that angles compare modulo 2π."""
        assert Pose3D(yaw=-np.pi) == Pose3D(yaw=np.pi)
        assert Pose3D(roll=0.0) == Pose3D(roll=2 * np.pi)
        assert Pose3D(x=1.0) != Pose3D(x=1.5)

    def test_is_horizontal(self):
        """Test the planarity check."""
        assert Pose3D(yaw=1.0).is_horizontal()
        assert Pose3D(roll=-np.pi).is_horizontal()
        assert not Pose3D(roll=0.2).is_horizontal()
        assert Pose3D(roll=0.2).is_horizontal(tolerance=0.25)

    def test_archive_roundtrip(self):
        """Test the version-0 archive of six float64 values."""
        pose = Pose3D(0.2, -0.1, 0.35, 0.1, 0.01, -0.02)
        stream = BinaryStream.memory()
        write_object(stream, pose)
        data = stream.getvalue()
        # header (1 + 6 name bytes + version) + 48 payload bytes + end marker
        assert len(data) == 1 + len("Pose3D") + 1 + 48 + 1
        assert read_object(BinaryStream.from_bytes(data)) == pose

    def test_unknown_version(self):
        """Test that only version 0 is accepted."""
        with pytest.raises(UnknownFormatVersion):
            Pose3D().read_from_stream(BinaryStream.from_bytes(bytes(48)), 1)


class TestFloatMatrix:
    """Test suite for FloatMatrix."""

    def test_default_is_empty(self):
        """Test the 0x0 default."""
        assert FloatMatrix().shape == (0, 0)

    def test_rejects_non_2d(self):
        """Test shape validation."""
        with pytest.raises(ValueError, match="2-D"):
            FloatMatrix(np.zeros(3))

    def test_archive_roundtrip(self):
        """Test rows, cols and row-major float32 data."""
        m = FloatMatrix(np.arange(6).reshape(2, 3))
        stream = BinaryStream.memory()
        m.write_to_stream(stream)

        reader = BinaryStream.from_bytes(stream.getvalue())
        assert reader.read_u4() == 2
        assert reader.read_u4() == 3
        np.testing.assert_array_equal(reader.read_array("<f4", 6), [0, 1, 2, 3, 4, 5])

        copy = FloatMatrix()
        copy.read_from_stream(BinaryStream.from_bytes(stream.getvalue()), 0)
        assert copy == m

    def test_empty_roundtrip(self):
        """Test that an empty matrix stores only its shape."""
        stream = BinaryStream.memory()
        FloatMatrix().write_to_stream(stream)
        assert len(stream.getvalue()) == 8


class TestPolygon(unittest.TestCase):
    """Test point-in-polygon queries."""

    def setUp(self):
        self.square = Polygon([[0, 0], [2, 0], [2, 2], [0, 2]])

    def test_scalar_queries(self):
        """Test single points inside and outside."""
        self.assertTrue(self.square.contains(1.0, 1.0))
        self.assertFalse(self.square.contains(3.0, 1.0))
        self.assertFalse(self.square.contains(1.0, -0.5))

    def test_vector_queries(self):
        """Test arrays of points."""
        x = np.array([0.5, 1.5, 2.5, -1.0])
        y = np.array([0.5, 1.5, 0.5, 1.0])
        np.testing.assert_array_equal(self.square.contains(x, y), [True, True, False, False])

    def test_concave(self):
        """Test an L-shaped polygon."""
        ell = Polygon([[0, 0], [2, 0], [2, 1], [1, 1], [1, 2], [0, 2]])
        self.assertTrue(ell.contains(0.5, 1.5))
        self.assertFalse(ell.contains(1.5, 1.5))

    def test_invalid_vertices(self):
        """Test construction errors."""
        with self.assertRaises(ValueError):
            Polygon([[0, 0], [1, 1]])
        with self.assertRaises(ValueError):
            Polygon([0, 1, 2])

    def test_len(self):
        """Test vertex count."""
        self.assertEqual(len(self.square), 4)
