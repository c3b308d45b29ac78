"""Feature - A geometry with named attributes, the unit of exchange.

Features are what the reader returns and the writer accepts: lifts, slopes,
bus lines, bus stops, links and segments are all Features. The geometry is a
shapely geometry (Point, LineString or MultiLineString), attributes are an
ordered mapping that downstream steps address by key.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import shapely
from shapely.geometry import LineString
from shapely.geometry.base import BaseGeometry

from skiresort_router.model.coordinate import Coordinate


@dataclass
class Feature:
    """Geometry plus ordered attributes.

    Attributes:
        geometry: shapely geometry, coordinates carry z in decimeters
        attributes: Ordered name -> value mapping (str, int, float or bool)
    """

    geometry: BaseGeometry
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def line(cls, coordinates: list[Coordinate], attributes: Optional[dict[str, Any]] = None) -> "Feature":
        """Build a LineString feature from coordinates."""
        geometry = LineString([c.xyz for c in coordinates])
        return cls(geometry=geometry, attributes=dict(attributes or {}))

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.attributes[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    @property
    def coordinates(self) -> list[Coordinate]:
        """All vertices in order (multi-part geometries are concatenated)."""
        coords = shapely.get_coordinates(self.geometry, include_z=True)
        return [Coordinate.from_tuple(c) for c in coords]

    @property
    def start(self) -> Coordinate:
        return self.coordinates[0]

    @property
    def end(self) -> Coordinate:
        return self.coordinates[-1]

    @property
    def length(self) -> float:
        """2D length of the geometry in meters."""
        return float(self.geometry.length)

    def __repr__(self) -> str:
        return f"Feature({self.geometry.geom_type}, {len(self.attributes)} attributes)"
