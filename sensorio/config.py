"""Process-wide configuration state.

Holds the few settings that must be shared across otherwise independent
modules:

    - ``images_path_base``: base directory for lazily-loaded external
      objects (see ``sensorio.io.lazy_load_path``).
    - ``points_map_builder``: optional capability callback that turns a
      range scan into a points map. It is registered at startup by the
      higher-level ``sensorio.maps`` package, so that ``sensorio.obs`` can
      build maps without importing ``sensorio.maps``. It may be ``None``
      and is checked before every use.
"""

import warnings
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Optional

# builder(scan, options) -> points map
PointsMapBuilder = Callable[[Any, Any], Any]


@dataclass
class SensorIOConfig:
    """
    Settings shared by the whole process.

    Attributes:
        images_path_base: Directory used to resolve relative lazy-load paths.
        points_map_builder: Optional scan-to-points-map callback.
    """

    images_path_base: str = "."
    points_map_builder: Optional[PointsMapBuilder] = None


_config = SensorIOConfig()


def get_config() -> SensorIOConfig:
    """Return the live configuration object."""
    return _config


def configure(**kwargs: Any) -> SensorIOConfig:
    """
    Update configuration values.

    Args:
        **kwargs: Field names of ``SensorIOConfig`` and their new values.

    Returns:
        The updated configuration.

    Raises:
        ValueError: If an unknown setting is given.

    Example:
        >>> configure(images_path_base="/data/logs/images")
        SensorIOConfig(images_path_base='/data/logs/images', points_map_builder=None)
    """
    global _config
    known = {f.name for f in fields(SensorIOConfig)}
    unknown = sorted(set(kwargs) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {unknown}")
    _config = replace(_config, **kwargs)
    return _config


def reset_config() -> SensorIOConfig:
    """Restore every setting to its default (drops registered callbacks)."""
    global _config
    _config = SensorIOConfig()
    return _config


def register_points_map_builder(builder: PointsMapBuilder) -> None:
    """
    Register the scan-to-points-map capability.

    Replacing a different, already-registered builder emits a
    ``RuntimeWarning``.
    """
    if not callable(builder):
        raise TypeError(f"builder must be callable, got {type(builder).__name__}")
    current = _config.points_map_builder
    if current is not None and current is not builder:
        warnings.warn(
            f"Replacing registered points-map builder {current!r} with {builder!r}",
            RuntimeWarning,
            stacklevel=2,
        )
    configure(points_map_builder=builder)


def unregister_points_map_builder() -> None:
    """Remove the scan-to-points-map capability (no-op if none is set)."""
    configure(points_map_builder=None)
