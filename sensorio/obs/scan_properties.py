"""Geometry summary of a 2D range scan, usable as a sort/lookup key."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ScanProperties:
    """
    Number of rays, aperture and direction of a 2D scan.

    Attributes:
        n_rays: Number of rays in the scan.
        aperture: Field of view (radians).
        right_to_left: Ray ordering.

    Notes:
        Ordering is lexicographic-like but not strict: ``a < b`` holds when
        ``a`` has fewer rays, OR a smaller aperture, OR is right-to-left while
        ``b`` is not. Scan-geometry caches built on this ordering rely on
        this exact definition.
    """

    n_rays: int = 0
    aperture: float = 0.0
    right_to_left: bool = True

    def __lt__(self, other: "ScanProperties") -> bool:
        if not isinstance(other, ScanProperties):
            return NotImplemented
        return (
            self.n_rays < other.n_rays
            or self.aperture < other.aperture
            or (self.right_to_left and not other.right_to_left)
        )
