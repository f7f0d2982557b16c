"""Object archive: the container that stores each record's version tag.

Every serializable object is framed as::

    u1      len(class_name) | 0x80
    bytes   class_name (ASCII)
    i1      format version
    ...     payload written by the object at that version
    u1      0x88 end marker

``None`` is framed with the class name ``"nullptr"`` and an empty payload.
The version tag lives here, outside the object's own bytes: the object's
``read_from_stream`` receives it as an argument and never infers it.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Type, TypeVar, Union

from ..errors import CorruptStreamError, UnknownClassError
from ..io.stream import BinaryStream

logger = logging.getLogger(__name__)

END_MARKER = 0x88
NULL_CLASS_NAME = "nullptr"
_NEW_FORMAT_FLAG = 0x80

_registry: Dict[str, Type["Serializable"]] = {}

T = TypeVar("T", bound="Serializable")


class Serializable:
    """
    Mixin for objects that can be stored in an archive.

    Subclasses set ``class_name`` and implement:
        - ``serialization_version()``: version written by ``write_to_stream``
        - ``write_to_stream(stream)``: payload at that version
        - ``read_from_stream(stream, version)``: payload at any known version

    Subclasses must be constructible without arguments, so the archive can
    create an empty instance before decoding into it.
    """

    class_name: str = ""

    def serialization_version(self) -> int:
        raise NotImplementedError

    def write_to_stream(self, stream: BinaryStream) -> None:
        raise NotImplementedError

    def read_from_stream(self, stream: BinaryStream, version: int) -> None:
        raise NotImplementedError


def register_class(cls: Type[T]) -> Type[T]:
    """
    Class decorator adding a ``Serializable`` subclass to the registry.

    Raises:
        ValueError: If the class name is empty, too long to frame, or
            already taken by a different class.
    """
    name = cls.class_name
    if not name:
        raise ValueError(f"{cls.__name__} must define a non-empty class_name")
    if len(name) >= _NEW_FORMAT_FLAG or not name.isascii():
        raise ValueError(f"class_name must be ASCII and < 128 chars, got {name!r}")
    existing = _registry.get(name)
    if existing is not None and existing is not cls:
        raise ValueError(
            f"class_name {name!r} already registered by {existing.__qualname__}"
        )
    _registry[name] = cls
    return cls


def registered_class(name: str) -> Type[Serializable]:
    """Look up a registered class by archive name."""
    try:
        return _registry[name]
    except KeyError:
        raise UnknownClassError(f"Class {name!r} is not registered") from None


def write_object(stream: BinaryStream, obj: Optional[Serializable]) -> None:
    """
    Write ``obj`` framed with its class name and current version.

    Args:
        stream: Destination stream.
        obj: Serializable object, or ``None``.
    """
    if obj is None:
        _write_header(stream, NULL_CLASS_NAME, 0)
        stream.write_u1(END_MARKER)
        return

    version = obj.serialization_version()
    _write_header(stream, obj.class_name, version)
    obj.write_to_stream(stream)
    stream.write_u1(END_MARKER)
    logger.debug("Wrote %s (version %d)", obj.class_name, version)


def read_object(
    stream: BinaryStream, expected: Optional[Type[T]] = None
) -> Optional[T]:
    """
    Read one framed object.

    Args:
        stream: Source stream.
        expected: If given, the decoded object must be an instance of it
            (``None`` is always accepted).

    Returns:
        The decoded object, or ``None`` for a framed null.

    Raises:
        CorruptStreamError: Bad header or missing end marker.
        UnknownClassError: Class name not registered.
        UnknownFormatVersion: The class does not know the stored version.
        TypeError: Object is not an instance of ``expected``.
    """
    name, version = _read_header(stream)
    if name == NULL_CLASS_NAME:
        _check_end_marker(stream, name)
        return None

    cls = registered_class(name)
    obj = cls()
    obj.read_from_stream(stream, version)
    _check_end_marker(stream, name)
    logger.debug("Read %s (version %d)", name, version)

    if expected is not None and not isinstance(obj, expected):
        raise TypeError(
            f"Expected {expected.__name__}, archive contained {type(obj).__name__}"
        )
    return obj


def save_object(path: Union[str, Path], obj: Optional[Serializable]) -> None:
    """Write a single framed object to a file."""
    with BinaryStream.open(path, "wb") as stream:
        write_object(stream, obj)


def load_object(
    path: Union[str, Path], expected: Optional[Type[T]] = None
) -> Optional[T]:
    """Read a single framed object from a file."""
    with BinaryStream.open(path, "rb") as stream:
        return read_object(stream, expected)


def _write_header(stream: BinaryStream, name: str, version: int) -> None:
    if not 0 <= version < 128:
        raise ValueError(f"Version must fit in a signed byte, got {version}")
    encoded = name.encode("ascii")
    stream.write_u1(len(encoded) | _NEW_FORMAT_FLAG)
    stream.write_bytes(encoded)
    stream.write_i1(version)


def _read_header(stream: BinaryStream):
    length_byte = stream.read_u1()
    if not length_byte & _NEW_FORMAT_FLAG:
        raise CorruptStreamError(
            f"Unsupported object header 0x{length_byte:02x} (pre-framing archive?)"
        )
    length = length_byte & ~_NEW_FORMAT_FLAG
    if length == 0:
        raise CorruptStreamError("Object header with empty class name")
    try:
        name = stream.read_bytes(length).decode("ascii")
    except UnicodeDecodeError as err:
        raise CorruptStreamError(f"Non-ASCII class name in object header: {err}") from err
    version = stream.read_i1()
    return name, version


def _check_end_marker(stream: BinaryStream, name: str) -> None:
    marker = stream.read_u1()
    if marker != END_MARKER:
        raise CorruptStreamError(
            f"Bad end marker after {name!r}: expected 0x{END_MARKER:02x}, "
            f"got 0x{marker:02x}"
        )
