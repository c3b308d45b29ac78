"""PointPair - Shared base of candidates and links.

A directed pair of coordinates with the two measures every grading rule
works with: 2D ground distance and elevation difference in meters.
"""

from dataclasses import dataclass

from skiresort_router.model.coordinate import Coordinate


@dataclass
class PointPair:
    """Directed pair of coordinates.

    Attributes:
        start: Coordinate where the connection begins
        end: Coordinate where the connection ends
    """

    start: Coordinate
    end: Coordinate

    @property
    def distance(self) -> float:
        """2D Euclidean distance between start and end in meters."""
        return self.start.distance_to(self.end)

    @property
    def height_diff(self) -> float:
        """Signed elevation change end - start in meters (negative = downhill)."""
        return self.end.elevation - self.start.elevation

    @property
    def is_degenerate(self) -> bool:
        """True when start and end share the same 2D position."""
        return self.start.equals_2d(self.end)
