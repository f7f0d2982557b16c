"""6-DOF pose used as the sensor-mounting sub-record of observations.

Key type:
    - Pose3D: position (x, y, z) plus yaw/pitch/roll Euler angles (ZYX)

Only what observations need is provided: projecting sensor-frame points
into the robot frame and checking whether a scan plane is horizontal.
"""

from dataclasses import dataclass

import numpy as np

from ..errors import UnknownFormatVersion
from ..io.stream import BinaryStream
from ..serialization.archive import Serializable, register_class
from ..utils.angles import wrap_to_2pi


@register_class
@dataclass(eq=False)
class Pose3D(Serializable):
    """
    SE(3) pose in yaw-pitch-roll form.

    Attributes:
        x: Position along x (meters).
        y: Position along y (meters).
        z: Position along z (meters).
        yaw: Rotation around z (radians).
        pitch: Rotation around the rotated y axis (radians).
        roll: Rotation around the rotated x axis (radians).

    Notes:
        - Rotation matrix R = Rz(yaw) @ Ry(pitch) @ Rx(roll).
        - Equality treats angles modulo 2π, so yaw=-π/2 equals yaw=3π/2.
        - Archived as version 0: six little-endian float64 values.

    Examples:
        >>> sensor = Pose3D(x=0.2, z=0.35)
        >>> sensor.compose_points(np.array([1.0, 0.0, 0.0]))
        array([1.2 , 0.  , 0.35])
    """

    class_name = "Pose3D"

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

    def __post_init__(self) -> None:
        """Validate pose values after initialization."""
        for name in ("x", "y", "z", "yaw", "pitch", "roll"):
            value = getattr(self, name)
            if not np.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")

    def to_array(self) -> np.ndarray:
        """Pose as [x, y, z, yaw, pitch, roll]."""
        return np.array(
            [self.x, self.y, self.z, self.yaw, self.pitch, self.roll], dtype=np.float64
        )

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Pose3D":
        """
        Create a pose from [x, y, z, yaw, pitch, roll].

        Raises:
            ValueError: If the array does not have shape (6,).
        """
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (6,):
            raise ValueError(f"Array must have shape (6,), got {arr.shape}")
        return cls(*(float(v) for v in arr))

    def rotation_matrix(self) -> np.ndarray:
        """3x3 rotation matrix R = Rz(yaw) @ Ry(pitch) @ Rx(roll)."""
        cy, sy = np.cos(self.yaw), np.sin(self.yaw)
        cp, sp = np.cos(self.pitch), np.sin(self.pitch)
        cr, sr = np.cos(self.roll), np.sin(self.roll)
        return np.array(
            [
                [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
                [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
                [-sp, cp * sr, cp * cr],
            ],
            dtype=np.float64,
        )

    def compose_points(self, local_points: np.ndarray) -> np.ndarray:
        """
        Transform points from this pose's frame to the parent frame.

        Args:
            local_points: Point (3,) or points (N, 3) in the local frame.

        Returns:
            Transformed point(s), same shape as the input.

        Raises:
            ValueError: If the input is not (3,) or (N, 3).
        """
        pts = np.asarray(local_points, dtype=np.float64)
        if pts.shape == (3,):
            return self.rotation_matrix() @ pts + self.translation()
        if pts.ndim != 2 or pts.shape[1] != 3:
            raise ValueError(f"Points must be (3,) or (N, 3), got {pts.shape}")
        return pts @ self.rotation_matrix().T + self.translation()

    def translation(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def homogeneous_matrix(self) -> np.ndarray:
        """4x4 homogeneous transformation [[R, t], [0, 1]]."""
        T = np.eye(4)
        T[:3, :3] = self.rotation_matrix()
        T[:3, 3] = self.translation()
        return T

    def is_horizontal(self, tolerance: float = 0.0) -> bool:
        """
        True if the XY plane of this pose is parallel to the parent's.

        Pitch must be within ``tolerance`` of 0, and roll within
        ``tolerance`` of 0 or ±π (a sensor mounted upside down is still
        horizontal).
        """
        return abs(self.pitch) <= tolerance and (
            abs(self.roll) <= tolerance or abs(abs(self.roll) - np.pi) <= tolerance
        )

    # Serializable -------------------------------------------------------
    def serialization_version(self) -> int:
        return 0

    def write_to_stream(self, stream: BinaryStream) -> None:
        stream.write_array(self.to_array(), "<f8")

    def read_from_stream(self, stream: BinaryStream, version: int) -> None:
        if version != 0:
            raise UnknownFormatVersion(self.class_name, version)
        values = stream.read_array("<f8", 6)
        self.x, self.y, self.z, self.yaw, self.pitch, self.roll = (float(v) for v in values)

    def __eq__(self, other: object) -> bool:
        """Exact comparison, taking angle periodicity into account."""
        if not isinstance(other, Pose3D):
            return NotImplemented
        return (
            self.x == other.x
            and self.y == other.y
            and self.z == other.z
            and wrap_to_2pi(self.yaw) == wrap_to_2pi(other.yaw)
            and wrap_to_2pi(self.pitch) == wrap_to_2pi(other.pitch)
            and wrap_to_2pi(self.roll) == wrap_to_2pi(other.roll)
        )

    def __repr__(self) -> str:
        """Readable string representation."""
        return (
            f"Pose3D(x={self.x:.4f}, y={self.y:.4f}, z={self.z:.4f}, "
            f"yaw={self.yaw:.4f}, pitch={self.pitch:.4f}, roll={self.roll:.4f})"
        )
