"""Routable network and route queries.

- DirectedGraph / build_graph: Adjacency-list graph from the merged features
- PathFinder: Dijkstra shortest routes under four cost preferences
"""

from skiresort_router.graph.directed_graph import DirectedGraph, Edge, GraphBuildError, build_graph
from skiresort_router.graph.path_finder import PathFinder, weight_attribute

__all__ = [
    "DirectedGraph",
    "Edge",
    "GraphBuildError",
    "build_graph",
    "PathFinder",
    "weight_attribute",
]
