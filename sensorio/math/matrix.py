"""Single-precision matrix record.

``FloatMatrix`` is the archived form of small float32 matrices. Old range
scan logs (format versions 0-5) store the sensor-pose covariance this way;
the value is no longer used, but the bytes must still be consumed.
"""

from typing import Optional

import numpy as np

from ..errors import UnknownFormatVersion
from ..io.stream import BinaryStream
from ..serialization.archive import Serializable, register_class


@register_class
class FloatMatrix(Serializable):
    """
    Row-major float32 matrix.

    Archive layout (version 0): ``<u4`` rows, ``<u4`` cols, then
    ``rows * cols`` little-endian float32 values.

    Example:
        >>> cov = FloatMatrix(np.eye(6) * 0.01)
        >>> cov.shape
        (6, 6)
    """

    class_name = "FloatMatrix"

    def __init__(self, data: Optional[np.ndarray] = None) -> None:
        if data is None:
            data = np.zeros((0, 0), dtype=np.float32)
        data = np.asarray(data, dtype=np.float32)
        if data.ndim != 2:
            raise ValueError(f"Matrix data must be 2-D, got shape {data.shape}")
        self.data = data

    @property
    def shape(self):
        return self.data.shape

    def serialization_version(self) -> int:
        return 0

    def write_to_stream(self, stream: BinaryStream) -> None:
        rows, cols = self.data.shape
        stream.write_u4(rows)
        stream.write_u4(cols)
        if rows * cols:
            stream.write_array(self.data.ravel(), "<f4")

    def read_from_stream(self, stream: BinaryStream, version: int) -> None:
        if version != 0:
            raise UnknownFormatVersion(self.class_name, version)
        rows = stream.read_u4()
        cols = stream.read_u4()
        self.data = stream.read_array("<f4", rows * cols).reshape(rows, cols)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FloatMatrix):
            return NotImplemented
        return np.array_equal(self.data, other.data)

    def __repr__(self) -> str:
        return f"FloatMatrix(shape={self.data.shape})"
