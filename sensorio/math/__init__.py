"""Geometry value types used by observations.

    - Pose3D: sensor mounting pose (serializable sub-record)
    - FloatMatrix: float32 matrix (legacy covariance sub-record)
    - Polygon: XY polygon for exclusion areas
"""

from .matrix import FloatMatrix
from .polygon import Polygon
from .pose3d import Pose3D

__all__ = ["Pose3D", "FloatMatrix", "Polygon"]
