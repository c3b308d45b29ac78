"""Splitting lines at topology vertices and routing cost attributes.

A line is cut at every topology vertex: its own start and end, intersections
with other slopes, link attachment points and bus stops. Each piece yields
- a Segment: the original geometry between two vertices, keeping the source
  attributes plus r_id and length
- a simplified segment: a straight 2-vertex line between the same vertices
  carrying the routing attributes of the merged network

Both share one r_id, so routes found on the simplified network map back to
the detailed geometry.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from shapely.geometry import LineString

from skiresort_router.constants import AttributeNames, CostConfig, FeatureTypes
from skiresort_router.core.geometry import LineGeometry
from skiresort_router.model.coordinate import Coordinate
from skiresort_router.model.feature import Feature
from skiresort_router.model.rid_allocator import RidAllocator

logger = logging.getLogger(__name__)


# =============================================================================
# ROUTING COSTS
# =============================================================================


def slope_costs(difficulty: Any, length: float) -> tuple[float, float, float]:
    """cost_1..3 of a slope piece by declared difficulty (unknown = plain length)."""
    multipliers = CostConfig.SLOPE_MULTIPLIERS.get(difficulty, CostConfig.SLOPE_DEFAULT_MULTIPLIERS)
    return tuple(m * length for m in multipliers)


def network_attributes(
    xml_type: str,
    de_name: str,
    difficulty: Any,
    length: float,
    costs: tuple[float, float, float],
    reverse_cost: float,
    start: Coordinate,
    end: Coordinate,
    r_id: int,
) -> dict[str, Any]:
    """Ordered attribute map of a feature in the merged network.

    Reverse costs equal forward costs; rev_c is -1 for features that may
    only be travelled in their own direction.
    """
    return {
        AttributeNames.TYPE: xml_type,
        "de_name": de_name,
        AttributeNames.DIFFICULTY: difficulty,
        "source": "0",
        "target": "0",
        "duration": 0.0,
        "length": length,
        "r_length": length,
        "r_rev_c": reverse_cost,
        "rev_c": reverse_cost,
        "cost_1": costs[0],
        "cost_2": costs[1],
        "cost_3": costs[2],
        "r_cost_1": costs[0],
        "r_cost_2": costs[1],
        "r_cost_3": costs[2],
        "open": 0,
        "start_z": start.elevation,
        "end_z": end.elevation,
        AttributeNames.R_ID: r_id,
    }


def slope_attributes(de_name: str, difficulty: Any, length: float, start: Coordinate, end: Coordinate, r_id: int) -> dict:
    return network_attributes(
        xml_type=FeatureTypes.SLOPES,
        de_name=de_name,
        difficulty=difficulty,
        length=length,
        costs=slope_costs(difficulty, length),
        reverse_cost=CostConfig.NOT_REVERSIBLE,
        start=start,
        end=end,
        r_id=r_id,
    )


def lift_attributes(de_name: str, length: float, start: Coordinate, end: Coordinate, r_id: int) -> dict:
    cost = CostConfig.LIFT_MULTIPLIER * length
    return network_attributes(
        xml_type=FeatureTypes.LIFTS,
        de_name=de_name,
        difficulty=0,
        length=length,
        costs=(cost, cost, cost),
        reverse_cost=CostConfig.REVERSE_MULTIPLIER * length,
        start=start,
        end=end,
        r_id=r_id,
    )


def bus_attributes(
    de_name: str,
    length: float,
    start: Coordinate,
    end: Coordinate,
    r_id: int,
) -> dict:
    cost = CostConfig.BUS_MULTIPLIER * length
    return network_attributes(
        xml_type=FeatureTypes.BUSES,
        de_name=de_name,
        difficulty=0,
        length=length,
        costs=(cost, cost, cost),
        reverse_cost=CostConfig.REVERSE_MULTIPLIER * length,
        start=start,
        end=end,
        r_id=r_id,
    )


# =============================================================================
# SPLITTING
# =============================================================================


@dataclass
class TopologyVertex:
    """A split point: position along the line and the vertex coordinate."""

    position: float
    coordinate: Coordinate


@dataclass
class SplitResult:
    """Output of splitting a set of lines.

    Attributes:
        segments: Original geometry pieces with source attributes and r_id
        simplified: 2-vertex network features with routing attributes
    """

    segments: list[Feature] = field(default_factory=list)
    simplified: list[Feature] = field(default_factory=list)

    def extend(self, other: "SplitResult") -> None:
        self.segments.extend(other.segments)
        self.simplified.extend(other.simplified)


def topology_vertices(
    line: LineString,
    extra_vertices: Iterable[Coordinate],
    tolerance: float,
    snap_ends: bool = False,
) -> list[TopologyVertex]:
    """Ordered split points of ``line``: its ends plus ``extra_vertices``.

    Args:
        line: Line to split
        extra_vertices: Intersections, attachment points or stops near the line
        tolerance: Minimal distance along the line between two split points
        snap_ends: Let a vertex near a line end replace that end's coordinate
            (bus stops at the terminus become the terminal vertex)

    Returns:
        Split points sorted by position, first and last at the line's ends.
    """
    coords = LineGeometry.coordinates(line)
    length = float(line.length)
    start = TopologyVertex(position=0.0, coordinate=coords[0])
    end = TopologyVertex(position=length, coordinate=coords[-1])

    inner = []
    for vertex in extra_vertices:
        position = LineGeometry.locate_point(line, vertex)
        if position <= tolerance:
            if snap_ends:
                start.coordinate = vertex
            continue
        if position >= length - tolerance:
            if snap_ends:
                end.coordinate = vertex
            continue
        inner.append(TopologyVertex(position=position, coordinate=vertex))
    inner.sort(key=lambda v: v.position)

    kept = [start]
    for vertex in inner:
        if vertex.position - kept[-1].position > tolerance:
            kept.append(vertex)
    kept.append(end)
    return kept


def split_line(
    feature: Feature,
    line: LineString,
    vertices: list[TopologyVertex],
    feature_id: object,
    rid_prefix: int,
    rid_allocator: RidAllocator,
    build_attributes: Callable[[float, Coordinate, Coordinate, int], dict],
) -> SplitResult:
    """Cut ``line`` at ``vertices`` into segments and simplified segments.

    Args:
        feature: Source feature, its attributes are copied to every segment
        line: Source geometry as a single LineString
        vertices: Split points from topology_vertices()
        feature_id: Identifier used to compose r_id values
        rid_prefix: Category digit from RidPrefixes
        rid_allocator: Shared r_id source
        build_attributes: (length, start, end, r_id) -> network attributes

    Returns:
        One segment and one simplified segment per non-degenerate piece.
    """
    result = SplitResult()
    sequence = 1
    for first, second in zip(vertices, vertices[1:]):
        length = second.position - first.position
        if length <= 0 or first.coordinate.equals_2d(second.coordinate):
            logger.debug(f"Feature {feature_id}: skipped zero-length piece at {first.position:.3f}")
            continue

        r_id = rid_allocator.allocate(rid_prefix, feature_id, sequence)
        sequence += 1

        piece = LineGeometry.extract_line(line, first.position, second.position)
        segment = Feature.line(piece, feature.attributes)
        segment[AttributeNames.R_ID] = r_id
        segment["length"] = length
        result.segments.append(segment)

        result.simplified.append(
            Feature.line(
                [first.coordinate, second.coordinate],
                build_attributes(length, first.coordinate, second.coordinate, r_id),
            )
        )
    return result


def vertices_near(line: LineString, points: Iterable[Coordinate], tolerance: float) -> list[Coordinate]:
    """Points closer than ``tolerance`` to ``line``."""
    return [p for p in points if line.distance(LineGeometry.to_point(p)) < tolerance]


def first_endpoint_on_line(line: LineString, link: Feature, tolerance: float) -> Optional[Coordinate]:
    """First endpoint of ``link`` lying on ``line`` (attachment point)."""
    for endpoint in (link.start, link.end):
        if line.distance(LineGeometry.to_point(endpoint)) < tolerance:
            return endpoint
    return None
