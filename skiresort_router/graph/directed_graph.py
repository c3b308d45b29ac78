"""DirectedGraph - Routable network built from the merged features.

Nodes are distinct 2D coordinates, edges carry the feature they were built
from. Edge direction follows the feature type:
- slopes run from their upper to their lower end
- lifts run from their lower to their upper end
- buses and links can be travelled both ways (one edge per direction)
Slopes and lifts with both ends at the same elevation get both directions.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import breadth_first_order
from scipy.spatial import cKDTree

from skiresort_router.constants import AttributeNames, FeatureTypes, GraphConfig
from skiresort_router.model.coordinate import Coordinate
from skiresort_router.model.feature import Feature

logger = logging.getLogger(__name__)

NodeKey = tuple[float, float]


class GraphBuildError(ValueError):
    """A merged feature cannot be turned into graph edges."""


@dataclass
class Edge:
    """Directed edge between two nodes.

    Attributes:
        source: 2D key of the start node
        target: 2D key of the end node
        feature: Feature the edge was built from (length, cost_1..3, r_id)
    """

    source: NodeKey
    target: NodeKey
    feature: Feature

    @property
    def r_id(self) -> int:
        return int(self.feature.get(AttributeNames.R_ID, 0))

    def weight(self, attribute: str) -> float:
        return float(self.feature[attribute])

    def __repr__(self) -> str:
        return f"Edge({self.r_id}: {self.source} -> {self.target})"


class DirectedGraph:
    """Adjacency-list directed graph keyed by 2D node coordinates.

    Example:
        graph = build_graph(merged_features)
        graph.report_duplicate_nodes()
        graph.is_connected(start_rid=100001001)
    """

    def __init__(self) -> None:
        self.nodes: dict[NodeKey, Coordinate] = {}
        self.edges: list[Edge] = []
        self.adjacency: dict[NodeKey, list[Edge]] = defaultdict(list)

    def add_node(self, coordinate: Coordinate) -> NodeKey:
        key = coordinate.xy
        self.nodes.setdefault(key, coordinate)
        return key

    def add_edge(self, start: Coordinate, end: Coordinate, feature: Feature) -> Edge:
        edge = Edge(source=self.add_node(start), target=self.add_node(end), feature=feature)
        self.edges.append(edge)
        self.adjacency[edge.source].append(edge)
        return edge

    def outgoing(self, node: NodeKey) -> list[Edge]:
        return self.adjacency.get(node, [])

    def first_edge(self, r_id: int) -> Optional[Edge]:
        """First edge built from the feature with ``r_id`` (insertion order)."""
        for edge in self.edges:
            if edge.r_id == r_id:
                return edge
        return None

    def edges_for_rid(self, r_id: int) -> list[Edge]:
        return [edge for edge in self.edges if edge.r_id == r_id]

    def __len__(self) -> int:
        return len(self.edges)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def report_duplicate_nodes(
        self, tolerance: float = GraphConfig.DUPLICATE_NODE_TOLERANCE_M
    ) -> list[tuple[NodeKey, NodeKey]]:
        """Node pairs closer than ``tolerance`` that were not merged.

        Such pairs usually mean a link endpoint missed a segment vertex by a
        rounding error, leaving the network disconnected at that point.
        """
        keys = list(self.nodes)
        if len(keys) < 2:
            return []
        tree = cKDTree(np.array(keys, dtype=np.float64))
        pairs = sorted(tree.query_pairs(r=tolerance))
        duplicates = [(keys[i], keys[j]) for i, j in pairs]
        if duplicates:
            logger.warning(f"Graph has {len(duplicates)} near-duplicate node pairs: {duplicates[:10]}")
        return duplicates

    def is_connected(self, start_rid: int) -> bool:
        """True if every node is reached from the start node of ``start_rid``.

        Edges are traversed regardless of direction, so the check tells
        whether the network is in one piece, not whether every node can be
        reached by skiing.
        """
        edge = self.first_edge(start_rid)
        if edge is None:
            logger.warning(f"Connectivity check: no edge with r_id {start_rid}")
            return False

        index = {key: i for i, key in enumerate(self.nodes)}
        rows = [index[e.source] for e in self.edges]
        cols = [index[e.target] for e in self.edges]
        matrix = csr_matrix(
            (np.ones(len(rows), dtype=np.float64), (rows, cols)),
            shape=(len(index), len(index)),
        )
        reached = breadth_first_order(matrix, index[edge.source], directed=False, return_predecessors=False)
        logger.info(f"Connectivity check: {len(reached)} of {len(index)} nodes reached from r_id {start_rid}")
        return len(reached) == len(index)


# =============================================================================
# BUILDING
# =============================================================================


def _edge_endpoints(feature: Feature) -> tuple[Coordinate, Coordinate]:
    coords = feature.coordinates
    r_id = feature.get(AttributeNames.R_ID)
    if len(coords) != 2:
        raise GraphBuildError(
            f"Feature {r_id} ({feature.get(AttributeNames.TYPE)}) has {len(coords)} vertices, expected 2"
        )
    for coord in coords:
        if not (math.isfinite(coord.x) and math.isfinite(coord.y)):
            raise GraphBuildError(f"Feature {r_id} has a non-finite vertex {coord}")
    return coords[0], coords[1]


def _is_flat(start: Coordinate, end: Coordinate) -> bool:
    if not (start.has_z and end.has_z):
        return True
    return start.z == end.z


def build_graph(features: Iterable[Feature]) -> DirectedGraph:
    """Build the directed routing graph.

    Args:
        features: Merged 2-vertex features with XML_TYPE, length, cost_1..3, r_id

    Returns:
        Graph with one edge per travel direction of every feature.

    Raises:
        GraphBuildError: If a feature does not have exactly two finite vertices
    """
    graph = DirectedGraph()
    flat = 0
    for feature in features:
        start, end = _edge_endpoints(feature)
        xml_type = feature.get(AttributeNames.TYPE)

        if xml_type in (FeatureTypes.SLOPES, FeatureTypes.LIFTS) and not _is_flat(start, end):
            lower, upper = (start, end) if start.z < end.z else (end, start)
            if xml_type == FeatureTypes.SLOPES:
                graph.add_edge(upper, lower, feature)
            else:
                graph.add_edge(lower, upper, feature)
            continue

        if xml_type in (FeatureTypes.SLOPES, FeatureTypes.LIFTS):
            flat += 1
            logger.debug(f"Flat {xml_type} feature {feature.get(AttributeNames.R_ID)} - both directions")
        elif xml_type not in (FeatureTypes.BUSES, FeatureTypes.LINKS):
            logger.warning(f"Feature {feature.get(AttributeNames.R_ID)}: unknown type {xml_type!r} - both directions")
        graph.add_edge(start, end, feature)
        graph.add_edge(end, start, feature)

    if flat:
        logger.warning(f"{flat} flat slope/lift features were added in both directions")
    logger.info(f"Built graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges")
    return graph
