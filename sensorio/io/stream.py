"""Sequential binary stream used by every serializer.

``BinaryStream`` wraps any binary file-like object (an open file, a
``BytesIO``, a socket file) and exposes the three primitive capabilities the
record codecs rely on:

    - fixed-size scalars (``write_f4`` / ``read_u4`` / ...)
    - contiguous numeric arrays with endianness normalization
      (``write_array`` / ``read_array``)
    - raw byte buffers (``write_bytes`` / ``read_bytes``)

Everything is little-endian on the wire, whatever the host byte order.
The stream never seeks or peeks: it is a one-way sequential channel.
"""

import io
import struct
from pathlib import Path
from typing import BinaryIO, Optional, Union

import numpy as np

from ..errors import EndOfStreamError

# Scalar wire formats (all little-endian)
_SCALAR_FORMATS = {
    "bool": "<?",
    "i1": "<b",
    "u1": "<B",
    "i4": "<i",
    "u4": "<I",
    "u8": "<Q",
    "f4": "<f",
    "f8": "<d",
}


class BinaryStream:
    """
    Little-endian sequential reader/writer over a binary file-like object.

    Attributes:
        fileobj: Underlying binary file object.

    Example:
        >>> stream = BinaryStream.memory()
        >>> stream.write_f4(1.5)
        >>> stream.write_array(np.array([1.0, 2.0]), "<f4")
        >>> reader = BinaryStream.from_bytes(stream.getvalue())
        >>> reader.read_f4()
        1.5
        >>> reader.read_array("<f4", 2)
        array([1., 2.], dtype=float32)
    """

    def __init__(self, fileobj: BinaryIO, owns_file: bool = False) -> None:
        self.fileobj = fileobj
        self._owns_file = owns_file

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def memory(cls) -> "BinaryStream":
        """Create an empty in-memory stream for writing."""
        return cls(io.BytesIO())

    @classmethod
    def from_bytes(cls, data: bytes) -> "BinaryStream":
        """Create an in-memory stream positioned at the start of ``data``."""
        return cls(io.BytesIO(bytes(data)))

    @classmethod
    def open(cls, path: Union[str, Path], mode: str = "rb") -> "BinaryStream":
        """
        Open a file-backed stream. The stream closes the file on ``close()``.

        Args:
            path: File path.
            mode: ``"rb"``, ``"wb"`` or ``"ab"``.

        Raises:
            ValueError: If ``mode`` is not a binary mode.
        """
        if mode not in ("rb", "wb", "ab"):
            raise ValueError(f"Unsupported mode: {mode}. Use 'rb', 'wb' or 'ab'.")
        return cls(open(path, mode), owns_file=True)

    def getvalue(self) -> bytes:
        """Return the full contents of an in-memory stream."""
        if not isinstance(self.fileobj, io.BytesIO):
            raise TypeError("getvalue() is only available on in-memory streams")
        return self.fileobj.getvalue()

    def close(self) -> None:
        if self._owns_file:
            self.fileobj.close()

    def __enter__(self) -> "BinaryStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Raw buffers
    # ------------------------------------------------------------------
    def write_bytes(self, data: bytes) -> None:
        self.fileobj.write(data)

    def read_bytes(self, n: int) -> bytes:
        """
        Read exactly ``n`` bytes.

        Raises:
            EndOfStreamError: If fewer than ``n`` bytes remain.
        """
        if n < 0:
            raise ValueError(f"Byte count must be non-negative, got {n}")
        data = self.fileobj.read(n)
        if len(data) != n:
            raise EndOfStreamError(
                f"Unexpected end of stream: wanted {n} bytes, got {len(data)}"
            )
        return data

    def skip(self, n: int) -> None:
        """Consume and drop ``n`` bytes."""
        self.read_bytes(n)

    # ------------------------------------------------------------------
    # Scalars
    # ------------------------------------------------------------------
    def write_scalar(self, kind: str, value) -> None:
        """Write one scalar of the given kind (``"f4"``, ``"u4"``, ``"bool"``, ...)."""
        self.write_bytes(struct.pack(_SCALAR_FORMATS[kind], value))

    def read_scalar(self, kind: str):
        """Read one scalar of the given kind."""
        fmt = _SCALAR_FORMATS[kind]
        return struct.unpack(fmt, self.read_bytes(struct.calcsize(fmt)))[0]

    def write_bool(self, value: bool) -> None:
        self.write_scalar("bool", bool(value))

    def read_bool(self) -> bool:
        # Any non-zero byte is true
        return self.read_scalar("u1") != 0

    def write_i1(self, value: int) -> None:
        self.write_scalar("i1", value)

    def read_i1(self) -> int:
        return self.read_scalar("i1")

    def write_u1(self, value: int) -> None:
        self.write_scalar("u1", value)

    def read_u1(self) -> int:
        return self.read_scalar("u1")

    def write_u4(self, value: int) -> None:
        self.write_scalar("u4", value)

    def read_u4(self) -> int:
        return self.read_scalar("u4")

    def write_u8(self, value: int) -> None:
        self.write_scalar("u8", value)

    def read_u8(self) -> int:
        return self.read_scalar("u8")

    def write_f4(self, value: float) -> None:
        self.write_scalar("f4", value)

    def read_f4(self) -> float:
        return self.read_scalar("f4")

    def write_f8(self, value: float) -> None:
        self.write_scalar("f8", value)

    def read_f8(self) -> float:
        return self.read_scalar("f8")

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------
    def write_string(self, value: str) -> None:
        """
        Write a string prefixed by its ``<u4`` byte length.

        Text is UTF-8. Bytes that were not valid UTF-8 when read (kept as
        lone surrogates by ``read_string``) are written back unchanged.
        """
        data = value.encode("utf-8", errors="surrogateescape")
        self.write_u4(len(data))
        self.write_bytes(data)

    def read_string(self) -> str:
        """Read a ``<u4``-prefixed string; undecodable bytes round-trip losslessly."""
        n = self.read_u4()
        return self.read_bytes(n).decode("utf-8", errors="surrogateescape")

    # ------------------------------------------------------------------
    # Arrays
    # ------------------------------------------------------------------
    def write_array(self, values, dtype: str) -> None:
        """
        Write a contiguous array converted to the little-endian ``dtype``.

        Args:
            values: Array-like of numbers.
            dtype: Wire dtype, e.g. ``"<f4"`` or ``"<i4"``.
        """
        wire = np.dtype(dtype).newbyteorder("<")
        self.write_bytes(np.ascontiguousarray(values, dtype=wire).tobytes())

    def read_array(self, dtype: str, count: int) -> np.ndarray:
        """
        Read ``count`` elements stored as little-endian ``dtype``.

        Returns:
            Array in native byte order, shape (count,).
        """
        wire = np.dtype(dtype).newbyteorder("<")
        raw = self.read_bytes(wire.itemsize * count)
        return np.frombuffer(raw, dtype=wire).astype(wire.newbyteorder("="))

    def __repr__(self) -> str:
        name: Optional[str] = getattr(self.fileobj, "name", None)
        return f"BinaryStream({name or type(self.fileobj).__name__})"
