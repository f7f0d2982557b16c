"""Unit tests for sensorio.io.stream.

Tests scalar, string, array and raw-buffer I/O plus end-of-stream handling.
"""

import numpy as np
import pytest

from sensorio.errors import EndOfStreamError, SerializationError
from sensorio.io import BinaryStream


class TestScalars:
    """Test suite for fixed-size scalar I/O."""

    def test_little_endian_layout(self):
        """Test that multi-byte scalars are written little-endian."""
        stream = BinaryStream.memory()
        stream.write_u4(1)
        stream.write_u8(2)
        assert stream.getvalue() == b"\x01\x00\x00\x00" + b"\x02" + b"\x00" * 7

    def test_float_values(self):
        """Test float32 and float64 values read back."""
        stream = BinaryStream.memory()
        stream.write_f4(0.5)
        stream.write_f8(np.pi)
        reader = BinaryStream.from_bytes(stream.getvalue())
        assert reader.read_f4() == 0.5
        assert reader.read_f8() == np.pi

    def test_bool_is_one_byte(self):
        """Test that booleans take one byte and any non-zero byte is true."""
        stream = BinaryStream.memory()
        stream.write_bool(True)
        stream.write_bool(False)
        assert stream.getvalue() == b"\x01\x00"

        reader = BinaryStream.from_bytes(b"\x07")
        assert reader.read_bool() is True

    def test_signed_byte(self):
        """Test signed byte values."""
        stream = BinaryStream.memory()
        stream.write_i1(-3)
        assert BinaryStream.from_bytes(stream.getvalue()).read_i1() == -3


class TestStrings:
    """Test suite for length-prefixed strings."""

    def test_utf8_with_length_prefix(self):
        """Test that strings are prefixed by their UTF-8 byte length."""
        stream = BinaryStream.memory()
        stream.write_string("lídar")
        data = stream.getvalue()
        assert data[:4] == (6).to_bytes(4, "little")
        assert BinaryStream.from_bytes(data).read_string() == "lídar"

    def test_empty_string(self):
        """Test the empty string."""
        stream = BinaryStream.memory()
        stream.write_string("")
        assert stream.getvalue() == b"\x00\x00\x00\x00"
        assert BinaryStream.from_bytes(stream.getvalue()).read_string() == ""

    def test_non_utf8_bytes_roundtrip(self):
        """Test that Latin-1 bytes are read without error and written back unchanged."""
        raw = (5).to_bytes(4, "little") + b"L\xe1ser"
        text = BinaryStream.from_bytes(raw).read_string()
        assert text.startswith("L") and text.endswith("ser")

        stream = BinaryStream.memory()
        stream.write_string(text)
        assert stream.getvalue() == raw


class TestArrays:
    """Test suite for endianness-normalized arrays."""

    def test_big_endian_input_is_normalized(self):
        """Test that big-endian input arrays are written little-endian."""
        values = np.array([1.0, -2.5], dtype=">f4")
        stream = BinaryStream.memory()
        stream.write_array(values, "<f4")
        assert stream.getvalue() == np.array([1.0, -2.5], dtype="<f4").tobytes()

    def test_read_array_native_order(self):
        """Test that arrays come back in native byte order."""
        stream = BinaryStream.memory()
        stream.write_array([1, 2, 3], "<i4")
        result = BinaryStream.from_bytes(stream.getvalue()).read_array("<i4", 3)
        np.testing.assert_array_equal(result, [1, 2, 3])
        assert result.dtype.isnative

    def test_read_zero_elements(self):
        """Test reading an empty array."""
        result = BinaryStream.from_bytes(b"").read_array("<f4", 0)
        assert result.shape == (0,)


class TestEndOfStream:
    """Test suite for short reads."""

    def test_short_read_raises(self):
        """Test that reading past the end raises EndOfStreamError."""
        reader = BinaryStream.from_bytes(b"\x01\x02")
        with pytest.raises(EndOfStreamError, match="wanted 4 bytes, got 2"):
            reader.read_u4()

    def test_end_of_stream_is_serialization_and_eof_error(self):
        """Test the exception hierarchy of EndOfStreamError."""
        reader = BinaryStream.from_bytes(b"")
        with pytest.raises(SerializationError):
            reader.read_f4()
        with pytest.raises(EOFError):
            BinaryStream.from_bytes(b"").skip(1)

    def test_negative_count(self):
        """Test that a negative byte count is rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            BinaryStream.from_bytes(b"").read_bytes(-1)


class TestFileStreams:
    """Test suite for file-backed streams."""

    def test_file_roundtrip(self, tmp_path):
        """Test writing and reading a file through the context manager."""
        path = tmp_path / "data.bin"
        with BinaryStream.open(path, "wb") as stream:
            stream.write_string("front_laser")
            stream.write_f4(80.0)

        with BinaryStream.open(path) as stream:
            assert stream.read_string() == "front_laser"
            assert stream.read_f4() == 80.0
        assert stream.fileobj.closed

    def test_text_mode_rejected(self, tmp_path):
        """Test that non-binary modes are rejected."""
        with pytest.raises(ValueError, match="Unsupported mode: r"):
            BinaryStream.open(tmp_path / "x.bin", "r")

    def test_getvalue_requires_memory_stream(self, tmp_path):
        """Test that getvalue is only available in memory."""
        with BinaryStream.open(tmp_path / "x.bin", "wb") as stream:
            with pytest.raises(TypeError):
                stream.getvalue()
