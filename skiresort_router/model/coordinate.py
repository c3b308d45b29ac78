"""Coordinate - The geometry atom of the ski area network.

Projected x/y in meters and z as elevation in decimeters (fixed-point,
as delivered by the source datasets). Every elevation read goes through
the ``elevation`` property which converts to meters.

Used by:
- PointPair (start/end of candidates and links)
- Geometry utilities (projection, intersections, splitting)
- DirectedGraph (node positions)
"""

import math
from dataclasses import dataclass
from typing import Sequence

from skiresort_router.constants import MatchingConfig


@dataclass(frozen=True)
class Coordinate:
    """A 3D coordinate with elevation stored as decimeters.

    Attributes:
        x: Easting in meters (projected CRS)
        y: Northing in meters (projected CRS)
        z: Elevation in decimeters, NaN if undefined

    Example:
        coord = Coordinate(x=1000.0, y=2000.0, z=24000.0)  # 2400 m
    """

    x: float
    y: float
    z: float = math.nan

    @classmethod
    def from_tuple(cls, values: Sequence[float]) -> "Coordinate":
        """Build from a shapely coordinate tuple (x, y) or (x, y, z)."""
        if len(values) > 2:
            return cls(x=float(values[0]), y=float(values[1]), z=float(values[2]))
        return cls(x=float(values[0]), y=float(values[1]))

    @property
    def elevation(self) -> float:
        """Elevation in meters."""
        return self.z / MatchingConfig.ELEVATION_SCALE

    @property
    def has_z(self) -> bool:
        return not math.isnan(self.z)

    @property
    def xy(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def xyz(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def distance_to(self, other: "Coordinate") -> float:
        """2D Euclidean distance in meters."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def equals_2d(self, other: "Coordinate") -> bool:
        return self.x == other.x and self.y == other.y

    def equals_3d(self, other: "Coordinate") -> bool:
        """Equal position and elevation (two undefined elevations count as equal)."""
        if not self.equals_2d(other):
            return False
        if not self.has_z and not other.has_z:
            return True
        return self.z == other.z

    def with_z(self, z: float) -> "Coordinate":
        return Coordinate(x=self.x, y=self.y, z=z)

    def __repr__(self) -> str:
        return f"Coordinate(x={self.x:.2f}, y={self.y:.2f}, z={self.z:.1f})"
