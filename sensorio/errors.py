"""Exception types raised by sensorio.

Serialization failures derive from ``SerializationError`` (itself a
``ValueError``), so callers that already guard numeric parsing with
``except ValueError`` keep working.
"""

from typing import Dict, Optional


class SerializationError(ValueError):
    """Base class for every encode/decode failure."""


class UnknownFormatVersion(SerializationError):
    """Raised when a version tag matches none of a record's layouts.

    Attributes:
        record_name: Name of the record family being decoded.
        version: The offending version tag.
    """

    def __init__(self, record_name: str, version: int) -> None:
        self.record_name = record_name
        self.version = version
        super().__init__(
            f"Unknown serialization version {version} for record '{record_name}'"
        )


class InvariantViolation(SerializationError):
    """Raised when a record breaks the parallel-sequence length invariant.

    This signals a programming error upstream of the encoder, not bad data.

    Attributes:
        lengths: Mapping of sequence name -> observed length.
    """

    def __init__(self, message: str, lengths: Optional[Dict[str, int]] = None) -> None:
        self.lengths = dict(lengths or {})
        super().__init__(message)


class EndOfStreamError(SerializationError, EOFError):
    """Raised when a stream ends before the requested number of bytes."""


class CorruptStreamError(SerializationError):
    """Raised when object framing (header or end marker) is malformed."""


class UnknownClassError(SerializationError):
    """Raised when an archive names a class that is not registered."""


class MissingCapabilityError(RuntimeError):
    """Raised when an optional capability callback has not been registered."""
