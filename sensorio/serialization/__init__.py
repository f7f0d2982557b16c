"""Binary serialization: object archive and versioned record layouts.

Main components:
    - Serializable, register_class: archive-able objects and their registry
    - write_object, read_object: framed objects (class name + version tag)
    - save_object, load_object: single-object files
    - VersionedLayout, LayoutGroup: per-version dispatch tables
    - Scalar, SubRecord, ParallelLength, Sequence, OptionalSequence, Discard:
      typed layout steps
"""

from .archive import (
    END_MARKER,
    Serializable,
    load_object,
    read_object,
    register_class,
    registered_class,
    save_object,
    write_object,
)
from .layout import (
    Discard,
    LayoutGroup,
    OptionalSequence,
    ParallelLength,
    Scalar,
    Sequence,
    Step,
    SubRecord,
    VersionedLayout,
)

__all__ = [
    # Archive
    "END_MARKER",
    "Serializable",
    "register_class",
    "registered_class",
    "write_object",
    "read_object",
    "save_object",
    "load_object",
    # Layouts
    "VersionedLayout",
    "LayoutGroup",
    "Step",
    "Scalar",
    "SubRecord",
    "ParallelLength",
    "Sequence",
    "OptionalSequence",
    "Discard",
]
