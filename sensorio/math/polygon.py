"""2D polygons for exclusion-area filtering of range scans."""

from typing import Union

import numpy as np


class Polygon:
    """
    Simple (non self-intersecting) polygon in the XY plane.

    Attributes:
        vertices: Vertex coordinates, shape (M, 2), M >= 3. The polygon is
            implicitly closed.

    Example:
        >>> square = Polygon([[0, 0], [1, 0], [1, 1], [0, 1]])
        >>> square.contains(0.5, 0.5)
        True
        >>> square.contains(np.array([2.0, 0.5]), np.array([0.5, 0.5]))
        array([False,  True])
    """

    def __init__(self, vertices) -> None:
        vertices = np.asarray(vertices, dtype=np.float64)
        if vertices.ndim != 2 or vertices.shape[1] != 2:
            raise ValueError(f"vertices must have shape (M, 2), got {vertices.shape}")
        if vertices.shape[0] < 3:
            raise ValueError(f"A polygon needs at least 3 vertices, got {vertices.shape[0]}")
        self.vertices = vertices

    def contains(
        self, x: Union[float, np.ndarray], y: Union[float, np.ndarray]
    ) -> Union[bool, np.ndarray]:
        """
        Crossing-number point-in-polygon test.

        Args:
            x: Query x coordinate(s).
            y: Query y coordinate(s), same shape as ``x``.

        Returns:
            bool for scalar queries, boolean array otherwise.
        """
        px = np.asarray(x, dtype=np.float64)
        py = np.asarray(y, dtype=np.float64)
        inside = np.zeros(np.broadcast(px, py).shape, dtype=bool)

        xi, yi = self.vertices[:, 0], self.vertices[:, 1]
        xj, yj = np.roll(xi, 1), np.roll(yi, 1)
        for ax, ay, bx, by in zip(xi, yi, xj, yj):
            straddles = (ay > py) != (by > py)
            with np.errstate(divide="ignore", invalid="ignore"):
                x_cross = (bx - ax) * (py - ay) / (by - ay) + ax
            inside ^= straddles & (px < x_cross)

        if inside.ndim == 0:
            return bool(inside)
        return inside

    def __len__(self) -> int:
        return self.vertices.shape[0]

    def __repr__(self) -> str:
        return f"Polygon(n_vertices={len(self)})"
