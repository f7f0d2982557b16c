"""Versioned record layouts: read every historical version, write the newest.

A record family describes its on-disk history as a ``VersionedLayout``: a
small table of ``LayoutGroup`` entries, each covering a contiguous range of
format versions and listing the ordered, typed steps that make up the byte
layout. Each step knows the version range it exists in, so one table drives
both directions:

    - decoding dispatches on the version tag to exactly one group and runs
      the steps that exist in that version, then lets the group synthesize
      defaults for the fields that version did not store;
    - encoding always runs the steps of the newest version.

Layouts are positional (no field tags), so historical fields that are no
longer part of the record must still be consumed. Those are ``Discard``
steps: visible in the table, read and dropped on decode, never written.

Step types:
    - Scalar: one fixed-size value (or a length-prefixed string)
    - SubRecord: one framed serializable object
    - ParallelLength: the shared ``<u4`` count of a group of parallel sequences
    - Sequence: ``N`` elements (endianness-normalized, or raw 1-byte records)
    - OptionalSequence: presence flag, then ``N`` elements when present
    - Discard: a dead historical field (framed object or fixed byte count)

Example:
    >>> layout = VersionedLayout(
    ...     "Example",
    ...     groups=[
    ...         LayoutGroup("all", range(0, 2), [
    ...             Scalar("gain", "f4"),
    ...             Scalar("label", "str", since=1),
    ...         ], finalize=lambda f, v: f.setdefault("label", "")),
    ...     ],
    ...     current_version=1,
    ... )
    >>> stream = BinaryStream.memory()
    >>> layout.encode(stream, {"gain": 2.0, "label": "left"})
    >>> layout.decode(BinaryStream.from_bytes(stream.getvalue()), 1)
    {'gain': 2.0, 'label': 'left'}
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence as SequenceT, Tuple, Type

import numpy as np

from ..errors import CorruptStreamError, InvariantViolation, UnknownFormatVersion
from ..io.stream import BinaryStream
from .archive import Serializable, read_object, write_object

logger = logging.getLogger(__name__)

Fields = Dict[str, Any]

_SCALAR_KINDS = ("bool", "u4", "u8", "f4", "f8", "str")


class Step:
    """
    One positional element of a record layout.

    Args:
        name: Field name (key in the field dictionary).
        since: First version containing the step.
        until: First version no longer containing it (``None``: still live).
    """

    def __init__(self, name: str, since: int = 0, until: Optional[int] = None) -> None:
        if until is not None and until <= since:
            raise ValueError(f"Step {name!r}: until ({until}) must be > since ({since})")
        self.name = name
        self.since = since
        self.until = until

    def applies(self, version: int) -> bool:
        return version >= self.since and (self.until is None or version < self.until)

    def validate(self, fields: Mapping[str, Any]) -> None:
        """Check ``fields`` before any byte is written. Default: nothing."""

    def read(self, stream: BinaryStream, fields: Fields) -> None:
        raise NotImplementedError

    def write(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        until = "" if self.until is None else f", until={self.until}"
        return f"{type(self).__name__}({self.name!r}, since={self.since}{until})"


class Scalar(Step):
    """A single scalar: ``bool``, ``u4``, ``u8``, ``f4``, ``f8`` or ``str``."""

    def __init__(self, name: str, kind: str, since: int = 0, until: Optional[int] = None) -> None:
        if kind not in _SCALAR_KINDS:
            raise ValueError(f"Unsupported scalar kind: {kind}. Use one of {_SCALAR_KINDS}.")
        super().__init__(name, since, until)
        self.kind = kind

    def read(self, stream: BinaryStream, fields: Fields) -> None:
        if self.kind == "str":
            fields[self.name] = stream.read_string()
        elif self.kind == "bool":
            fields[self.name] = stream.read_bool()
        else:
            fields[self.name] = stream.read_scalar(self.kind)

    def write(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        value = fields[self.name]
        if self.kind == "str":
            stream.write_string(value)
        elif self.kind == "bool":
            stream.write_bool(value)
        else:
            stream.write_scalar(self.kind, value)


class SubRecord(Step):
    """A framed serializable object (class name + version + payload)."""

    def __init__(
        self, name: str, cls: Type[Serializable], since: int = 0, until: Optional[int] = None
    ) -> None:
        super().__init__(name, since, until)
        self.cls = cls

    def read(self, stream: BinaryStream, fields: Fields) -> None:
        value = read_object(stream, self.cls)
        if value is None:
            raise CorruptStreamError(f"Sub-record {self.name!r} must not be null")
        fields[self.name] = value

    def write(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        write_object(stream, fields[self.name])


class ParallelLength(Step):
    """
    Shared element count ``N`` (``<u4``) of a group of parallel sequences.

    Args:
        name: Key under which ``N`` is made available to later steps.
        members: Sequences that must all have length ``N``.
        optional: Sequences that are either empty or of length ``N``.
    """

    def __init__(
        self,
        name: str,
        members: SequenceT[str],
        optional: SequenceT[str] = (),
        since: int = 0,
        until: Optional[int] = None,
    ) -> None:
        if not members:
            raise ValueError("ParallelLength needs at least one member sequence")
        super().__init__(name, since, until)
        self.members = tuple(members)
        self.optional = tuple(optional)

    def length_of(self, fields: Mapping[str, Any]) -> int:
        return len(fields[self.members[0]])

    def validate(self, fields: Mapping[str, Any]) -> None:
        lengths = {m: len(fields[m]) for m in self.members}
        for m in self.optional:
            if len(fields[m]) > 0:
                lengths[m] = len(fields[m])
        if len(set(lengths.values())) > 1:
            raise InvariantViolation(
                f"Parallel sequences must have equal lengths, got {lengths}", lengths
            )

    def read(self, stream: BinaryStream, fields: Fields) -> None:
        fields[self.name] = stream.read_u4()

    def write(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        stream.write_u4(self.length_of(fields))


class Sequence(Step):
    """
    ``N`` elements, ``N`` taken from an earlier ``ParallelLength`` step.

    Args:
        dtype: Element dtype on the wire, e.g. ``"<f4"``.
        length: Name of the ``ParallelLength`` step.
        raw: Keep elements as opaque 1-byte records, read and written back
            byte for byte instead of through endianness normalization.
    """

    def __init__(
        self,
        name: str,
        dtype: str,
        length: str,
        raw: bool = False,
        since: int = 0,
        until: Optional[int] = None,
    ) -> None:
        super().__init__(name, since, until)
        self.dtype = np.dtype(dtype)
        if raw and self.dtype.itemsize != 1:
            raise ValueError(f"Raw sequences must use 1-byte elements, got {dtype}")
        self.length = length
        self.raw = raw

    def _read_values(self, stream: BinaryStream, n: int) -> np.ndarray:
        if self.raw:
            return np.frombuffer(stream.read_bytes(n), dtype=self.dtype).copy()
        return stream.read_array(self.dtype.str, n)

    def read(self, stream: BinaryStream, fields: Fields) -> None:
        fields[self.name] = self._read_values(stream, fields[self.length])

    def write(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        values = np.asarray(fields[self.name])
        if self.raw:
            stream.write_bytes(values.astype(self.dtype).tobytes())
        else:
            stream.write_array(values, self.dtype.str)


class OptionalSequence(Sequence):
    """
    Presence flag (``bool``) followed by ``N`` elements when present.

    Decodes to an empty array when the flag is false or ``N`` is zero.
    """

    def read(self, stream: BinaryStream, fields: Fields) -> None:
        present = stream.read_bool()
        n = fields[self.length]
        if present and n:
            fields[self.name] = self._read_values(stream, n)
        else:
            fields[self.name] = np.zeros(0, dtype=self.dtype.newbyteorder("="))

    def write(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        values = np.asarray(fields[self.name])
        present = values.size > 0
        stream.write_bool(present)
        if present:
            super().write(stream, fields)


class Discard(Step):
    """
    A dead historical field: consumed on decode and dropped.

    Give either ``cls`` (a framed object whose size is self-described) or
    ``size`` (a fixed number of bytes). Discarded steps must not exist in
    the current version, so they are never written.
    """

    def __init__(
        self,
        name: str,
        cls: Optional[Type[Serializable]] = None,
        size: Optional[int] = None,
        since: int = 0,
        until: Optional[int] = None,
    ) -> None:
        if (cls is None) == (size is None):
            raise ValueError(f"Discard {name!r}: give exactly one of cls or size")
        super().__init__(name, since, until)
        self.cls = cls
        self.size = size

    def read(self, stream: BinaryStream, fields: Fields) -> None:
        if self.cls is not None:
            read_object(stream, self.cls)
        else:
            stream.skip(self.size)

    def write(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        raise InvariantViolation(f"Discarded field {self.name!r} is never written")


@dataclass(frozen=True)
class LayoutGroup:
    """
    A contiguous range of versions sharing one ordered step list.

    Attributes:
        name: Group name, for diagnostics.
        versions: Versions covered, e.g. ``range(0, 4)``.
        steps: Ordered steps; each applies to a subset of ``versions``.
        finalize: ``finalize(fields, version)`` fills in the defaults of
            fields the given version does not store.
    """

    name: str
    versions: range
    steps: Tuple[Step, ...]
    finalize: Optional[Callable[[Fields, int], None]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))


class VersionedLayout:
    """
    Version dispatch table for one record family.

    Args:
        record_name: Record family name (used in error messages).
        groups: Non-overlapping layout groups.
        current_version: The only version ever written.

    Raises:
        ValueError: If groups overlap or none covers ``current_version``.
    """

    def __init__(
        self, record_name: str, groups: SequenceT[LayoutGroup], current_version: int
    ) -> None:
        seen: Dict[int, str] = {}
        for group in groups:
            for v in group.versions:
                if v in seen:
                    raise ValueError(
                        f"Version {v} of {record_name} is in both "
                        f"{seen[v]!r} and {group.name!r}"
                    )
                seen[v] = group.name
        if current_version not in seen:
            raise ValueError(
                f"Current version {current_version} of {record_name} has no layout"
            )
        self.record_name = record_name
        self.groups = tuple(groups)
        self.current_version = current_version

    @property
    def versions(self) -> List[int]:
        """Every version this layout can decode, ascending."""
        return sorted(v for g in self.groups for v in g.versions)

    def group_for(self, version: int) -> LayoutGroup:
        """
        Select the group decoding ``version``.

        Raises:
            UnknownFormatVersion: No group covers ``version``.
        """
        for group in self.groups:
            if version in group.versions:
                return group
        raise UnknownFormatVersion(self.record_name, version)

    def steps_for(self, version: int) -> List[Step]:
        """The ordered steps present in ``version``."""
        return [s for s in self.group_for(version).steps if s.applies(version)]

    def dead_fields(self) -> List[Discard]:
        """Every historical field that is parsed but discarded."""
        return [s for g in self.groups for s in g.steps if isinstance(s, Discard)]

    def decode(self, stream: BinaryStream, version: int) -> Fields:
        """
        Read one record payload stored at ``version``.

        Returns:
            A new field dictionary with every record field populated
            (parallel counts are consumed, not returned).

        Raises:
            UnknownFormatVersion: Before any byte is read.
        """
        group = self.group_for(version)
        if group is not self.group_for(self.current_version):
            logger.debug(
                "Decoding %s version %d with legacy layout %r",
                self.record_name, version, group.name,
            )

        fields: Fields = {}
        steps = [s for s in group.steps if s.applies(version)]
        for step in steps:
            step.read(stream, fields)
        if group.finalize is not None:
            group.finalize(fields, version)
        for step in steps:
            if isinstance(step, ParallelLength):
                fields.pop(step.name, None)
        return fields

    def encode(self, stream: BinaryStream, fields: Mapping[str, Any]) -> None:
        """
        Write ``fields`` using the current version's layout.

        Raises:
            InvariantViolation: Before any byte is written, if parallel
                sequences disagree in length.
        """
        steps = self.steps_for(self.current_version)
        for step in steps:
            step.validate(fields)
        for step in steps:
            step.write(stream, fields)
