"""Shortest routes through the directed network.

Routes are requested between two features (by r_id): the search starts at
the start node of the source feature and ends at the start node of the
destination feature. The weight of an edge depends on the cost mode:

| Mode | Weight  | Preference            |
|------|---------|-----------------------|
| 0    | length  | shortest distance     |
| 1    | cost_1  | easy (blue) slopes    |
| 2    | cost_2  | intermediate (red)    |
| 3    | cost_3  | difficult (black)     |
"""

import heapq
import itertools
import logging
import math
import time

from skiresort_router.constants import CostConfig
from skiresort_router.graph.directed_graph import DirectedGraph, Edge, NodeKey

logger = logging.getLogger(__name__)


def weight_attribute(cost_mode: int) -> str:
    """Feature attribute used as edge weight for ``cost_mode``."""
    if cost_mode not in CostConfig.COST_MODES:
        raise ValueError(f"Invalid cost mode {cost_mode}, expected one of {CostConfig.COST_MODES}")
    return "length" if cost_mode == 0 else f"cost_{cost_mode}"


class PathFinder:
    """Dijkstra search over a DirectedGraph.

    Example:
        finder = PathFinder(graph)
        route = finder.shortest_path(source_rid=100001001, dest_rid=200002001, cost_mode=1)
    """

    def __init__(self, graph: DirectedGraph) -> None:
        self.graph = graph

    def shortest_path(self, source_rid: int, dest_rid: int, cost_mode: int = 0) -> list[int]:
        """Ordered r_ids of the features along the cheapest route.

        Args:
            source_rid: Feature whose start node is the route origin
            dest_rid: Feature whose start node is the route destination
            cost_mode: 0 = length, 1..3 = cost_1..cost_3

        Returns:
            r_ids without repetition in travel order; empty if an r_id is
            unknown, no route exists or both resolve to the same node.

        Raises:
            ValueError: If cost_mode is not 0-3
        """
        attribute = weight_attribute(cost_mode)

        source_edge = self.graph.first_edge(source_rid)
        dest_edge = self.graph.first_edge(dest_rid)
        if source_edge is None or dest_edge is None:
            logger.warning(f"Route {source_rid} -> {dest_rid}: unknown r_id")
            return []
        source, target = source_edge.source, dest_edge.source
        if source == target:
            return []

        started = time.perf_counter()
        predecessors = self._search(source, target, attribute)
        if target not in predecessors:
            logger.info(f"Route {source_rid} -> {dest_rid}: no path (mode {cost_mode})")
            return []

        edges: list[Edge] = []
        node = target
        while node != source:
            edge = predecessors[node]
            edges.append(edge)
            node = edge.source
        edges.reverse()

        route: list[int] = []
        for edge in edges:
            if edge.r_id not in route:
                route.append(edge.r_id)
        logger.debug(
            f"Route {source_rid} -> {dest_rid} (mode {cost_mode}): {len(route)} features "
            f"in {time.perf_counter() - started:.3f}s"
        )
        return route

    def _search(self, source: NodeKey, target: NodeKey, attribute: str) -> dict[NodeKey, Edge]:
        """Predecessor edge of every node settled before ``target``.

        Parallel edges resolve to the cheapest one. When a later relaxation
        reaches an unsettled node at equal cost, it replaces the recorded
        predecessor.
        """
        distances: dict[NodeKey, float] = {source: 0.0}
        predecessors: dict[NodeKey, Edge] = {}
        settled: set[NodeKey] = set()
        counter = itertools.count()
        heap = [(0.0, next(counter), source)]

        while heap:
            distance, _, node = heapq.heappop(heap)
            if node in settled:
                continue
            settled.add(node)
            if node == target:
                break

            cheapest: dict[NodeKey, Edge] = {}
            for edge in self.graph.outgoing(node):
                if edge.target in settled:
                    continue
                best = cheapest.get(edge.target)
                if best is None or edge.weight(attribute) < best.weight(attribute):
                    cheapest[edge.target] = edge

            for neighbour, edge in cheapest.items():
                candidate = distance + edge.weight(attribute)
                if candidate <= distances.get(neighbour, math.inf):
                    distances[neighbour] = candidate
                    predecessors[neighbour] = edge
                    heapq.heappush(heap, (candidate, next(counter), neighbour))

        return predecessors
