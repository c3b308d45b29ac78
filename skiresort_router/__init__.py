"""Ski Resort Router - Routable networks from ski area datasets.

Infers the walking, skiing and bus connections missing between lifts,
slopes and bus stops, grades them, and merges everything into a directed
graph that answers shortest-route queries under four cost preferences.

Modules:
    core: Foundation services (geometry, configuration, GeoJSON IO, result log)
    model: Data structures (Coordinate, Feature, Candidate, Link, RidAllocator)
    grading: Link grades and the per-type grading functions
    matching: Lift, slope and bus link engines, simplification, merge
    graph: DirectedGraph and PathFinder

Example:
    from pathlib import Path

    from skiresort_router.core import load_config
    from skiresort_router.pipeline import run_pipeline

    result = run_pipeline(load_config(Path("preprocessing.properties")))
    route = result.path_finder.shortest_path(100001001, 200002001, cost_mode=1)
"""
