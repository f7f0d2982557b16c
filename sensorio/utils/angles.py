"""
Angle wrapping and unit conversion utilities.

Scan geometry and pose comparison both need angles folded into a single
turn. Sensor poses compare equal when their angles agree modulo 2π, and exclusion
intervals are tested on bearings folded into [0, 2π).
"""

import numpy as np
from typing import Union


def wrap_to_2pi(angle: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Wrap angle(s) to the [0, 2π) range.

    Args:
        angle: Angle in radians (scalar or array, any value).

    Returns:
        Wrapped angle(s) in [0, 2π). Scalars come back as Python floats.

    Example:
        >>> wrap_to_2pi(-np.pi / 2)
        4.71238898038469
        >>> wrap_to_2pi(2 * np.pi)
        0.0
    """
    wrapped = np.mod(angle, 2.0 * np.pi)
    # np.mod can return exactly 2π for tiny negative inputs
    wrapped = np.where(wrapped >= 2.0 * np.pi, 0.0, wrapped)
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


def degrees_to_radians(degrees: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert degrees to radians."""
    return np.deg2rad(degrees)


def radians_to_degrees(radians: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert radians to degrees."""
    return np.rad2deg(radians)
