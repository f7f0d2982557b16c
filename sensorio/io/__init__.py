"""Stream and path primitives used by the serializers."""

from .lazy_load_path import (
    get_images_path_base,
    lazy_load_absolute_path,
    set_images_path_base,
)
from .stream import BinaryStream

__all__ = [
    "BinaryStream",
    "lazy_load_absolute_path",
    "get_images_path_base",
    "set_images_path_base",
]
