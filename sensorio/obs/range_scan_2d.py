"""2D laser range scan observation and its on-disk version history.

A ``RangeScan2D`` holds one sweep of a planar range finder: ``N`` range
readings (``scan``), one validity flag per reading (``valid_range``) and,
optionally, one intensity sample per reading (``intensity``). These three
parallel sequences share the ray index ``0..N-1``.

Format versions (fields after aperture, direction, max range, sensor pose):

    ====  ===========================================================
    0     covariance (discarded), N, scan
    1     + valid_range
    2     + std_error
    3     + timestamp
    4     covariance, N, scan, valid_range, std_error, timestamp,
          beam_aperture
    5     + sensor_label, delta_pitch
    6     covariance removed
    7     + intensity presence flag and samples
    ====  ===========================================================

Version 7 is the only one ever written. Fields a version does not store are
filled with documented defaults on decode (see ``_finalize_legacy`` and
``_finalize_extended``).
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..config import get_config
from ..errors import InvariantViolation, MissingCapabilityError
from ..io.stream import BinaryStream
from ..math.matrix import FloatMatrix
from ..math.polygon import Polygon
from ..math.pose3d import Pose3D
from ..serialization.archive import register_class
from ..serialization.layout import (
    Discard,
    LayoutGroup,
    OptionalSequence,
    ParallelLength,
    Scalar,
    Sequence as SequenceStep,
    SubRecord,
    VersionedLayout,
)
from ..utils.angles import degrees_to_radians, radians_to_degrees, wrap_to_2pi
from ..utils.time import INVALID_TIMESTAMP
from .observation import Observation
from .scan_properties import ScanProperties

DEFAULT_STD_ERROR = 0.01  # meters
LEGACY_BEAM_APERTURE = float(degrees_to_radians(0.25))

# Exclusion area: a polygon, or a polygon with its (z_min, z_max) band
ExclusionArea = Union[Polygon, Tuple[Polygon, Tuple[float, float]]]

# Scalars stored as float32 on disk
_FLOAT32_FIELDS = ("aperture", "max_range", "std_error", "beam_aperture", "delta_pitch")


def _empty_ranges() -> np.ndarray:
    return np.zeros(0, dtype=np.float32)


def _empty_flags() -> np.ndarray:
    return np.zeros(0, dtype=np.uint8)


def _empty_intensity() -> np.ndarray:
    return np.zeros(0, dtype=np.int32)


def _finalize_legacy(values: Dict[str, Any], version: int) -> None:
    if version < 1:
        # No stored flags: a reading is valid if it is short of max range
        values["valid_range"] = (values["scan"] < values["max_range"]).astype(np.uint8)
    if version < 2:
        values["std_error"] = DEFAULT_STD_ERROR
    if version < 3:
        values["timestamp"] = INVALID_TIMESTAMP
    values["beam_aperture"] = LEGACY_BEAM_APERTURE
    values["sensor_label"] = ""
    values["delta_pitch"] = 0.0
    values["intensity"] = _empty_intensity()


def _finalize_extended(values: Dict[str, Any], version: int) -> None:
    if version < 5:
        values["sensor_label"] = ""
        values["delta_pitch"] = 0.0
    if version < 7:
        values["intensity"] = _empty_intensity()


_PARALLEL = dict(members=("scan", "valid_range"), optional=("intensity",))

RANGE_SCAN_LAYOUT = VersionedLayout(
    "RangeScan2D",
    groups=[
        LayoutGroup(
            "legacy",
            range(0, 4),
            [
                Scalar("aperture", "f4"),
                Scalar("right_to_left", "bool"),
                Scalar("max_range", "f4"),
                SubRecord("sensor_pose", Pose3D),
                Discard("sensor_pose_covariance", cls=FloatMatrix),
                ParallelLength("n", **_PARALLEL),
                SequenceStep("scan", "<f4", length="n"),
                SequenceStep("valid_range", "u1", length="n", raw=True, since=1),
                Scalar("std_error", "f4", since=2),
                Scalar("timestamp", "u8", since=3),
            ],
            finalize=_finalize_legacy,
        ),
        LayoutGroup(
            "extended",
            range(4, 8),
            [
                Scalar("aperture", "f4"),
                Scalar("right_to_left", "bool"),
                Scalar("max_range", "f4"),
                SubRecord("sensor_pose", Pose3D),
                Discard("sensor_pose_covariance", cls=FloatMatrix, until=6),
                ParallelLength("n", **_PARALLEL),
                SequenceStep("scan", "<f4", length="n"),
                SequenceStep("valid_range", "u1", length="n", raw=True),
                Scalar("std_error", "f4"),
                Scalar("timestamp", "u8"),
                Scalar("beam_aperture", "f4"),
                Scalar("sensor_label", "str", since=5),
                Scalar("delta_pitch", "f4", since=5),
                OptionalSequence("intensity", "<i4", length="n", since=7),
            ],
            finalize=_finalize_extended,
        ),
    ],
    current_version=7,
)


@register_class
@dataclass(eq=False)
class RangeScan2D(Observation):
    """
    One planar range-finder sweep.

    Attributes:
        scan: Range per ray (meters), float32, shape (N,).
        valid_range: Validity byte per ray, uint8, shape (N,). Any non-zero
            byte means valid; decoded bytes are kept as stored (see
            ``valid_mask`` for the boolean view).
        intensity: Intensity per ray, int32, shape (N,) or empty.
        aperture: Field of view (radians). Default π.
        right_to_left: Ray order; True means rays sweep counter-clockwise
            (right to left seen from above). Default True.
        max_range: Maximum sensing range (meters). Default 80.
        sensor_pose: Sensor pose on the robot.
        std_error: Range noise standard deviation (meters). Default 0.01.
        beam_aperture: Angular width of one beam (radians). Default 0.
        delta_pitch: Pitch increment over the sweep (radians). Default 0.

    Notes:
        - ``scan``, ``valid_range`` and a non-empty ``intensity`` always
          have the same length after decoding; encoding a record that
          breaks this raises ``InvariantViolation``.
        - Filtering methods only clear validity flags; they never resize.
        - Decoding replaces every field and drops the cached points map.

    Examples:
        >>> obs = RangeScan2D(scan=[1.0, 2.0, 3.0], valid_range=[True, True, False])
        >>> stream = BinaryStream.memory()
        >>> obs.write_to_stream(stream)
        >>> copy = RangeScan2D()
        >>> copy.read_from_stream(BinaryStream.from_bytes(stream.getvalue()), 7)
        >>> copy == obs
        True
    """

    class_name = "RangeScan2D"

    scan: np.ndarray = field(default_factory=_empty_ranges)
    valid_range: np.ndarray = field(default_factory=_empty_flags)
    intensity: np.ndarray = field(default_factory=_empty_intensity)
    aperture: float = np.pi
    right_to_left: bool = True
    max_range: float = 80.0
    sensor_pose: Pose3D = field(default_factory=Pose3D)
    std_error: float = DEFAULT_STD_ERROR
    beam_aperture: float = 0.0
    delta_pitch: float = 0.0
    _cached_map: Any = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.scan = np.asarray(self.scan, dtype=np.float32).reshape(-1)
        self.valid_range = np.asarray(self.valid_range, dtype=np.uint8).reshape(-1)
        self.intensity = np.asarray(self.intensity, dtype=np.int32).reshape(-1)
        for name in _FLOAT32_FIELDS:
            setattr(self, name, float(getattr(self, name)))
        self.right_to_left = bool(self.right_to_left)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def serialization_version(self) -> int:
        return RANGE_SCAN_LAYOUT.current_version

    def write_to_stream(self, stream: BinaryStream) -> None:
        """Write the record at the current format version (never mutates)."""
        RANGE_SCAN_LAYOUT.encode(stream, self._field_values())

    def read_from_stream(self, stream: BinaryStream, version: int) -> None:
        """
        Replace this record's contents with a payload stored at ``version``.

        The payload is decoded into a fresh record first; this record is only
        updated once the whole payload has been read, so a failed decode
        leaves it untouched.

        Raises:
            UnknownFormatVersion: ``version`` is not a known layout.
            EndOfStreamError: The payload is truncated.
        """
        decoded = RangeScan2D(**RANGE_SCAN_LAYOUT.decode(stream, version))
        for f in fields(self):
            if f.init:
                setattr(self, f.name, getattr(decoded, f.name))
        self._cached_map = None

    def _field_values(self) -> Dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in fields(self) if f.init}
        values["scan"] = np.asarray(self.scan, dtype=np.float32)
        values["valid_range"] = np.asarray(self.valid_range, dtype=np.uint8)
        values["intensity"] = np.asarray(self.intensity, dtype=np.int32)
        return values

    # ------------------------------------------------------------------
    # Parallel sequences
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.scan)

    def resize(self, n: int) -> None:
        """
        Resize ``scan``, ``valid_range`` and a non-empty ``intensity`` to ``n``.

        New rays read 0 m and are marked invalid.
        """
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        self.scan = _resized(np.asarray(self.scan, dtype=np.float32), n)
        self.valid_range = _resized(np.asarray(self.valid_range, dtype=np.uint8), n)
        if len(self.intensity):
            self.intensity = _resized(np.asarray(self.intensity, dtype=np.int32), n)
        self._cached_map = None

    def valid_mask(self) -> np.ndarray:
        """Validity as a bool array (a copy; write flags through ``valid_range``)."""
        return np.asarray(self.valid_range) != 0

    def _checked_flags(self) -> np.ndarray:
        """Validity bytes as a writable uint8 array, checked against ``scan``."""
        self.scan = np.asarray(self.scan, dtype=np.float32)
        self.valid_range = np.asarray(self.valid_range, dtype=np.uint8)
        if len(self.scan) != len(self.valid_range):
            raise InvariantViolation(
                f"scan and valid_range lengths differ: "
                f"{len(self.scan)} != {len(self.valid_range)}",
                {"scan": len(self.scan), "valid_range": len(self.valid_range)},
            )
        return self.valid_range

    def ray_angles(self) -> np.ndarray:
        """
        Bearing of every ray in the sensor frame (radians).

        Rays are evenly spread over the aperture, from -aperture/2 to
        +aperture/2 when ``right_to_left`` (reversed otherwise). A single
        ray points straight ahead.
        """
        n = len(self.scan)
        if n == 0:
            return np.zeros(0)
        if n == 1:
            return np.zeros(1)
        half = 0.5 * self.aperture
        if self.right_to_left:
            return np.linspace(-half, half, n)
        return np.linspace(half, -half, n)

    # ------------------------------------------------------------------
    # Filtering (only ever clears validity flags)
    # ------------------------------------------------------------------
    def truncate_by_distance_and_angle(
        self,
        min_distance: float,
        max_angle: float,
        min_height: float = 0.0,
        max_height: float = 0.0,
        h: float = 0.0,
    ) -> None:
        """
        Invalidate rays that are too close, too far off-axis or out of a
        height band.

        Args:
            min_distance: Rays shorter than this are invalidated.
            max_angle: Rays whose absolute bearing exceeds this are invalidated.
            min_height: Lower bound of the accepted band (see ``h``).
            max_height: Upper bound of the accepted band.
            h: Sensor height; with a band given, a ray with projected distance
                ``x = r * cos(angle)`` is kept only if
                ``h - max_height <= x <= h - min_height``.

        Raises:
            ValueError: If a band is given with ``max_height <= min_height``.
        """
        valid = self._checked_flags()
        n = len(self.scan)
        if n == 0:
            return
        k = np.arange(n)
        ang = np.abs(k * self.aperture / n - 0.5 * self.aperture)
        ranges = self.scan.astype(np.float64)
        bad = (ranges < min_distance) | (ang > max_angle)

        if min_height != 0 or max_height != 0:
            if not max_height > min_height:
                raise ValueError(
                    f"max_height must be > min_height, got {max_height} <= {min_height}"
                )
            x = ranges * np.cos(ang)
            bad |= (x > h - min_height) | (x < h - max_height)

        valid[bad] = 0

    def filter_by_exclusion_areas(self, areas: Sequence[ExclusionArea]) -> None:
        """
        Invalidate rays whose endpoint falls inside any exclusion area.

        Endpoints are projected through ``sensor_pose`` into the robot frame.

        Args:
            areas: Polygons (any height), or ``(polygon, (z_min, z_max))``
                pairs restricting the exclusion to a height band.
        """
        if not areas:
            return
        valid = self._checked_flags()
        if len(self.scan) == 0:
            return

        angles = self.ray_angles()
        ranges = self.scan.astype(np.float64)
        local = np.column_stack(
            [ranges * np.cos(angles), ranges * np.sin(angles), np.zeros_like(ranges)]
        )
        points = self.sensor_pose.compose_points(local)

        for area in areas:
            if isinstance(area, Polygon):
                polygon, (z_min, z_max) = area, (-np.inf, np.inf)
            else:
                polygon, (z_min, z_max) = area
            inside = polygon.contains(points[:, 0], points[:, 1])
            inside &= (points[:, 2] >= z_min) & (points[:, 2] <= z_max)
            valid[inside] = 0

    def filter_by_exclusion_angles(self, angles: Sequence[Tuple[float, float]]) -> None:
        """
        Invalidate rays within the given bearing intervals.

        Args:
            angles: ``(start, end)`` bearing intervals in radians, swept
                counter-clockwise from ``start`` to ``end`` (so ``(0.5, -0.5)``
                covers everything behind the sensor). Both ends are included.

        Notes:
            Membership is decided per ray from its exact bearing; intervals
            are not rounded to ray indices, so a ray just outside an interval
            stays valid and the result does not depend on ``right_to_left``.
        """
        if not angles:
            return
        valid = self._checked_flags()
        if len(self.scan) == 0:
            return

        bearings = self.ray_angles()
        for start, end in angles:
            inside = wrap_to_2pi(bearings - start) <= wrap_to_2pi(end - start)
            valid[inside] = 0

    # ------------------------------------------------------------------
    # Derived information
    # ------------------------------------------------------------------
    def is_planar_scan(self, tolerance: float = 0.0) -> bool:
        """True if the scan plane is horizontal (see ``Pose3D.is_horizontal``)."""
        return self.sensor_pose.is_horizontal(tolerance)

    def get_scan_properties(self) -> ScanProperties:
        return ScanProperties(
            n_rays=len(self.scan),
            aperture=self.aperture,
            right_to_left=self.right_to_left,
        )

    def build_aux_points_map(self, options: Optional[Any] = None) -> Any:
        """
        Build (once) and return the points map of this scan.

        The map is produced by the builder registered in the process-wide
        configuration (``sensorio.maps`` registers one when imported) and
        cached until the record is decoded again or ``clear_cache`` is called.

        Raises:
            MissingCapabilityError: If no builder is registered.
        """
        if self._cached_map is None:
            builder = get_config().points_map_builder
            if builder is None:
                raise MissingCapabilityError(
                    "Building a points map from a range scan needs a registered "
                    "builder: import sensorio.maps or call "
                    "sensorio.config.register_points_map_builder()"
                )
            self._cached_map = builder(self, options)
        return self._cached_map

    @property
    def cached_points_map(self) -> Optional[Any]:
        """The cached points map, or None if not built yet."""
        return self._cached_map

    def clear_cache(self) -> None:
        self._cached_map = None

    def as_dict(self) -> Dict[str, Any]:
        """Plain-Python export of every field (lists instead of arrays)."""
        return {
            "class": self.class_name,
            "timestamp": self.timestamp,
            "sensor_label": self.sensor_label,
            "scan": np.asarray(self.scan, dtype=np.float32).tolist(),
            "valid_range": self.valid_mask().tolist(),
            "intensity": np.asarray(self.intensity, dtype=np.int32).tolist(),
            "aperture": self.aperture,
            "right_to_left": self.right_to_left,
            "max_range": self.max_range,
            "std_error": self.std_error,
            "beam_aperture": self.beam_aperture,
            "delta_pitch": self.delta_pitch,
            "pose": self.sensor_pose.to_array().tolist(),
        }

    def describe(self) -> str:
        """Multi-line text description: geometry, statistics and raw values."""
        scan = np.asarray(self.scan, dtype=np.float32)
        raw_valid = np.asarray(self.valid_range, dtype=np.uint8)
        valid = raw_valid != 0
        lines: List[str] = [
            super().describe().rstrip("\n"),
            "Homogeneous matrix for the sensor's 3D pose, relative to robot base:",
            np.array2string(self.sensor_pose.homogeneous_matrix(), precision=5),
            repr(self.sensor_pose),
            f"Samples direction: {'Right->Left' if self.right_to_left else 'Left->Right'}",
            f"Points in the scan: {len(scan)}",
            f"Estimated sensor 'sigma': {self.std_error:f}",
            f"Increment in pitch during the scan: {radians_to_degrees(self.delta_pitch):f} deg",
            f"Invalid points in the scan: {int(np.count_nonzero(~valid))}",
            f"Sensor maximum range: {self.max_range:.02f} m",
            f"Sensor field-of-view (\"aperture\"): {radians_to_degrees(self.aperture):.01f} deg",
            "Raw scan values: [" + " ".join(f"{r:.03f}" for r in scan) + "]",
            "Raw valid-scan values: [" + " ".join(str(int(v)) for v in raw_valid) + "]",
        ]
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        """
        Field-for-field equality.

        Float scalars compare at their on-disk float32 precision, the
        sensor pose compares angles modulo 2π and validity compares by
        meaning (any non-zero byte is valid).
        """
        if not isinstance(other, RangeScan2D):
            return NotImplemented
        if (
            self.timestamp != other.timestamp
            or self.sensor_label != other.sensor_label
            or self.right_to_left != other.right_to_left
            or self.sensor_pose != other.sensor_pose
        ):
            return False
        for name in _FLOAT32_FIELDS:
            if np.float32(getattr(self, name)) != np.float32(getattr(other, name)):
                return False
        mine, theirs = self._field_values(), other._field_values()
        return np.array_equal(self.valid_mask(), other.valid_mask()) and all(
            np.array_equal(mine[name], theirs[name]) for name in ("scan", "intensity")
        )

    def __repr__(self) -> str:
        return (
            f"RangeScan2D(n={len(self.scan)}, aperture={self.aperture:.4f}, "
            f"max_range={self.max_range:.2f}, label={self.sensor_label!r})"
        )


def _resized(values: np.ndarray, n: int) -> np.ndarray:
    out = np.zeros(n, dtype=values.dtype)
    keep = min(n, len(values))
    out[:keep] = values[:keep]
    return out
