"""Line geometry for link inference and splitting.

Provides the point/line primitives the matching engines are built on:
- Endpoint ordering by elevation
- Point-on-line projection with elevation interpolation
- Intersection vertices between two lines
- Nearest vertex selection
- Linear referencing (position along a line, sub-line extraction)

Coordinates are projected meters. Elevation z is stored in decimeters and
interpolated linearly along line segments. All distances and positions along
lines are 2D, matching shapely's length and project().
"""

import logging
from typing import Optional, Sequence

import numpy as np
import shapely
from shapely.geometry import LineString, MultiLineString, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge, nearest_points

from skiresort_router.constants import MatchingConfig
from skiresort_router.model.coordinate import Coordinate

logger = logging.getLogger(__name__)


class LineGeometry:
    """Static methods for 3D line geometry with decimeter elevations.

    Lines are shapely LineStrings whose coordinates carry z. Positions along
    a line are 2D distances from the first vertex in meters.
    """

    # =========================================================================
    # Conversion
    # =========================================================================

    @staticmethod
    def as_line(geometry: BaseGeometry) -> LineString:
        """Return ``geometry`` as a single LineString.

        Multi-part lines are merged; parts that do not touch are chained in
        order so that the first and last vertex stay the feature's endpoints.
        """
        if isinstance(geometry, LineString):
            return geometry
        if isinstance(geometry, MultiLineString):
            merged = linemerge(geometry)
            if isinstance(merged, LineString):
                return merged
            return LineString(shapely.get_coordinates(geometry, include_z=True))
        raise ValueError(f"Expected a line geometry, got {geometry.geom_type}")

    @staticmethod
    def coordinates(line: BaseGeometry) -> list[Coordinate]:
        return [Coordinate.from_tuple(c) for c in shapely.get_coordinates(line, include_z=True)]

    @staticmethod
    def to_point(coord: Coordinate) -> Point:
        return Point(coord.x, coord.y)

    @staticmethod
    def query_box(geometry: BaseGeometry, buffer: float) -> Polygon:
        """Bounding box of ``geometry`` expanded by ``buffer`` on every side."""
        min_x, min_y, max_x, max_y = geometry.bounds
        return shapely.box(min_x - buffer, min_y - buffer, max_x + buffer, max_y + buffer)

    # =========================================================================
    # Endpoints
    # =========================================================================

    @staticmethod
    def ordered_endpoints(line: BaseGeometry) -> Optional[tuple[Coordinate, Coordinate]]:
        """Return the terminal vertices ordered by elevation.

        Args:
            line: Line geometry with z values

        Returns:
            (lower, upper), or None if both endpoints have the same elevation
            or either lacks one, so the order is ambiguous.
        """
        coords = LineGeometry.coordinates(line)
        first, last = coords[0], coords[-1]
        if not (first.has_z and last.has_z) or first.z == last.z:
            return None
        return (first, last) if first.z < last.z else (last, first)

    @staticmethod
    def nearest_vertex(point: Coordinate, candidates: Sequence[Coordinate]) -> Optional[Coordinate]:
        """Candidate with the smallest 2D distance to ``point``.

        Ties resolve to the first candidate in sequence order.
        """
        if not candidates:
            return None
        xy = np.array([c.xy for c in candidates], dtype=np.float64)
        distances = np.hypot(xy[:, 0] - point.x, xy[:, 1] - point.y)
        return candidates[int(np.argmin(distances))]

    # =========================================================================
    # Linear referencing
    # =========================================================================

    @staticmethod
    def _vertex_positions(coords: np.ndarray) -> np.ndarray:
        """Cumulative 2D distance of every vertex from the first one."""
        steps = np.hypot(np.diff(coords[:, 0]), np.diff(coords[:, 1]))
        return np.concatenate(([0.0], np.cumsum(steps)))

    @staticmethod
    def locate_point(line: LineString, coord: Coordinate) -> float:
        """Position along ``line`` of the point closest to ``coord``."""
        return float(line.project(Point(coord.x, coord.y)))

    @staticmethod
    def point_at(line: LineString, position: float) -> Coordinate:
        """Coordinate at ``position`` along ``line`` with interpolated elevation.

        Positions outside [0, length] are clamped to the line's ends.
        """
        coords = shapely.get_coordinates(line, include_z=True)
        if len(coords) == 1:
            return Coordinate.from_tuple(coords[0])
        positions = LineGeometry._vertex_positions(coords)
        position = min(max(position, 0.0), float(positions[-1]))

        index = int(np.searchsorted(positions, position, side="right")) - 1
        index = min(max(index, 0), len(coords) - 2)
        segment_length = positions[index + 1] - positions[index]
        fraction = (position - positions[index]) / segment_length if segment_length > 0 else 0.0

        # Vertices are returned exactly, not re-interpolated
        if fraction <= 0.0:
            values = coords[index]
        elif fraction >= 1.0:
            values = coords[index + 1]
        else:
            values = coords[index] + (coords[index + 1] - coords[index]) * fraction
        return Coordinate.from_tuple(values)

    @staticmethod
    def extract_line(line: LineString, start: float, end: float) -> list[Coordinate]:
        """Vertices of the part of ``line`` between two positions.

        Args:
            line: Line to extract from
            start: Position of the first vertex along the line
            end: Position of the last vertex along the line (>= start)

        Returns:
            Coordinates from ``start`` to ``end`` including all original
            vertices strictly in between.
        """
        coords = shapely.get_coordinates(line, include_z=True)
        positions = LineGeometry._vertex_positions(coords)
        inner = [
            Coordinate.from_tuple(c) for c, pos in zip(coords, positions) if start < pos < end
        ]
        return [LineGeometry.point_at(line, start), *inner, LineGeometry.point_at(line, end)]

    # =========================================================================
    # Projection and intersection
    # =========================================================================

    @staticmethod
    def project_onto_line(
        point: Coordinate,
        line: LineString,
        max_distance: float,
        min_endpoint_distance: float = 0.0,
    ) -> Optional[Coordinate]:
        """Closest point on ``line`` to ``point`` for a mid-point connection.

        Args:
            point: Endpoint of another feature
            line: Line to connect to
            max_distance: Search radius in meters (exclusive)
            min_endpoint_distance: Reject results within this distance of
                either line end (0 = only exact endpoint hits are rejected)

        Returns:
            Point on the line with elevation interpolated along the line,
            or None if out of range or on/near the line's own endpoints.
        """
        query = Point(point.x, point.y)
        if line.distance(query) >= max_distance:
            return None

        closest = LineGeometry.point_at(line, float(line.project(query)))
        coords = LineGeometry.coordinates(line)
        first, last = coords[0], coords[-1]
        if closest.equals_2d(first) or closest.equals_2d(last):
            return None
        if min_endpoint_distance > 0 and (
            closest.distance_to(first) <= min_endpoint_distance or closest.distance_to(last) <= min_endpoint_distance
        ):
            return None
        return closest

    @staticmethod
    def intersection_vertices(line_a: LineString, line_b: LineString) -> Optional[list[Coordinate]]:
        """Vertices where two lines intersect.

        Multi-vertex intersections (overlaps, several crossings) are reduced
        with Douglas-Peucker so that a long overlap yields few split points.

        Args:
            line_a: First line, used to interpolate undefined elevations
            line_b: Second line

        Returns:
            Intersection vertices with elevation, or None if the lines are disjoint.
        """
        if not line_a.intersects(line_b):
            return None
        intersection = line_a.intersection(line_b)
        if intersection.is_empty:
            return None

        coords = shapely.get_coordinates(intersection, include_z=True)
        if isinstance(intersection, Point) or len(coords) == 1:
            raw = coords[:1]
        else:
            simplified = shapely.simplify(
                LineString(coords),
                tolerance=MatchingConfig.INTERSECTION_SIMPLIFY_TOLERANCE,
                preserve_topology=False,
            )
            raw = shapely.get_coordinates(simplified, include_z=True)

        vertices = []
        for values in raw:
            vertex = Coordinate.from_tuple(values)
            if not vertex.has_z:
                position = LineGeometry.locate_point(line_a, vertex)
                vertex = vertex.with_z(LineGeometry.point_at(line_a, position).z)
            vertices.append(vertex)
        return vertices

    @staticmethod
    def nearest_points_between(line_a: LineString, line_b: LineString) -> tuple[Coordinate, Coordinate]:
        """Closest pair of points (on a, on b) with interpolated elevations."""
        point_a, point_b = nearest_points(line_a, line_b)
        on_a = LineGeometry.point_at(line_a, float(line_a.project(point_a)))
        on_b = LineGeometry.point_at(line_b, float(line_b.project(point_b)))
        return on_a, on_b
