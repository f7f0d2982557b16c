"""Path resolution for lazily-loaded, externally stored objects.

Large payloads (images, point clouds) can be stored next to a log file and
referenced by a relative path. Those paths are resolved against a
process-wide base directory, ``"."`` by default.
"""

import os
from pathlib import Path
from typing import Union

from ..config import configure, get_config


def lazy_load_absolute_path(relative_or_absolute_path: Union[str, Path]) -> str:
    """
    Build the absolute path of a lazy-load object.

    Absolute paths are returned unchanged; relative paths are joined to the
    current images base path.

    Example:
        >>> set_images_path_base("/data/run1/Images")
        >>> lazy_load_absolute_path("img_0001.png")
        '/data/run1/Images/img_0001.png'
        >>> lazy_load_absolute_path("/tmp/other.png")
        '/tmp/other.png'
    """
    path = os.fspath(relative_or_absolute_path)
    if os.path.isabs(path):
        return path
    return os.path.join(get_config().images_path_base, path)


def get_images_path_base() -> str:
    """Current base directory for relative lazy-load paths."""
    return get_config().images_path_base


def set_images_path_base(path: Union[str, Path]) -> None:
    """Change the base directory for relative lazy-load paths."""
    configure(images_path_base=os.fspath(path))
