"""Preprocessing pipeline: raw datasets in, routable network out.

Steps:
1. Read lifts and slopes (mandatory) and bus lines/stops (optional)
2. Split multi-part slopes and derive numeric difficulty
3. Infer lift, slope and bus links
4. Simplify slopes and bus lines into 2-vertex segments
5. Merge segments, lifts and qualifying links into one network
6. Build the directed graph and run its diagnostics

Every intermediate result is written to the output folder.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from skiresort_router.constants import AttributeNames, OutputConfig
from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.core.feature_io import read_features, write_features
from skiresort_router.core.geometry import LineGeometry
from skiresort_router.core.result_log import ResultLog
from skiresort_router.graph.directed_graph import DirectedGraph, build_graph
from skiresort_router.graph.path_finder import PathFinder
from skiresort_router.matching.base import candidates_to_features, links_to_features
from skiresort_router.matching.bus_matching import BusLinkMatching
from skiresort_router.matching.lift_matching import LiftLinkMatching
from skiresort_router.matching.merge import (
    lifts_to_merge,
    merge_features,
    prepare_links_to_merge,
    split_multiline_slopes,
)
from skiresort_router.matching.segments import SplitResult
from skiresort_router.matching.slope_matching import SlopeLinkMatching
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Link
from skiresort_router.model.rid_allocator import RidAllocator

logger = logging.getLogger(__name__)


class MissingInputError(FileNotFoundError):
    """A mandatory input dataset (lifts or slopes) is missing or unreadable."""


@dataclass
class PipelineResult:
    """Everything a pipeline run produced.

    Attributes:
        graph: Directed routing graph
        path_finder: Route queries over ``graph``
        merged: Network features in merge order
        slopes: Single-part slopes after the split step
        lift_links: Retained lift-to-lift links
        slope_lift_links: Retained slope-to-lift links
        slope_links: Retained slope-to-slope links
        bus_links: Retained bus links (empty without bus data)
        slope_segments: Slope pieces with original geometry
        bus_segments: Bus line pieces with original geometry
    """

    graph: DirectedGraph
    path_finder: PathFinder
    merged: list[Feature]
    slopes: list[Feature] = field(default_factory=list)
    lift_links: list[Link] = field(default_factory=list)
    slope_lift_links: list[Link] = field(default_factory=list)
    slope_links: list[Link] = field(default_factory=list)
    bus_links: list[Link] = field(default_factory=list)
    slope_segments: list[Feature] = field(default_factory=list)
    bus_segments: list[Feature] = field(default_factory=list)

    @property
    def links(self) -> list[Link]:
        return [*self.lift_links, *self.slope_lift_links, *self.slope_links, *self.bus_links]


def _read_mandatory(path: Path, name: str) -> list[Feature]:
    if not path.exists():
        raise MissingInputError(f"Missing {name} dataset: {path}")
    try:
        features = read_features(path)
    except (OSError, ValueError) as e:
        raise MissingInputError(f"Unreadable {name} dataset {path}: {e}") from e
    logger.info(f"Read {len(features)} {name} from {path}")
    return features


def _read_optional(path: Optional[Path], name: str) -> Optional[list[Feature]]:
    if path is None or not path.exists():
        logger.warning(f"No {name} dataset ({path}) - bus stages skipped")
        return None
    try:
        features = read_features(path)
    except (OSError, ValueError) as e:
        logger.warning(f"Unreadable {name} dataset {path}: {e} - bus stages skipped")
        return None
    logger.info(f"Read {len(features)} {name} from {path}")
    return features


def run_pipeline(config: PreprocessingConfig) -> PipelineResult:
    """Run all preprocessing stages for ``config``.

    Args:
        config: Paths, thresholds and options of the run

    Returns:
        The built graph, its path finder and all intermediate results.

    Raises:
        MissingInputError: If the lift or slope dataset is missing or unreadable
        GraphBuildError: If a merged feature is not a finite 2-vertex line
    """
    started = time.perf_counter()
    result_log = ResultLog(config.results_path)
    result_log.clear()
    rid_allocator = RidAllocator()

    def write(features: list[Feature], name: str) -> None:
        write_features(features, config.output_path(name), srid=config.srid)

    lifts = _read_mandatory(config.lifts_path, "lifts")
    raw_slopes = _read_mandatory(config.slopes_path, "slopes")
    slopes = split_multiline_slopes(raw_slopes)
    write(slopes, OutputConfig.SPLIT_SLOPES)

    bus_lines = _read_optional(config.bus_lines_path, "bus lines")
    stops = _read_optional(config.bus_stops_path, "bus stops")
    has_buses = bus_lines is not None and stops is not None

    # Link inference
    lift_matching = LiftLinkMatching(lifts, config, rid_allocator, result_log)
    lift_links = lift_matching.match()
    slope_matching = SlopeLinkMatching(slopes, lifts, config, rid_allocator, result_log)
    slope_matching.match()
    bus_matching: Optional[BusLinkMatching] = None
    bus_links: list[Link] = []
    if has_buses:
        bus_matching = BusLinkMatching(bus_lines, stops, lifts, slopes, config, rid_allocator, result_log)
        bus_links = bus_matching.match()

    write(links_to_features(lift_links), OutputConfig.LIFT_LINKS)
    write(links_to_features(slope_matching.slope_lift_links), OutputConfig.SLOPE_LIFT_LINKS)
    write(links_to_features(slope_matching.slope_links), OutputConfig.SLOPE_LINKS)
    if has_buses:
        write(links_to_features(bus_links), OutputConfig.BUS_LINKS)

    if config.output_candidates:
        write(candidates_to_features(lift_matching.candidates), OutputConfig.LIFT_CANDIDATES)
        write(candidates_to_features(slope_matching.slope_lift_candidates), OutputConfig.SLOPE_LIFT_CANDIDATES)
        write(candidates_to_features(slope_matching.slope_candidates), OutputConfig.SLOPE_CANDIDATES)
        intersections = [Feature(geometry=LineGeometry.to_point(c)) for c in slope_matching.intersections]
        write(intersections, OutputConfig.SLOPE_INTERSECTIONS)
        if bus_matching is not None:
            write(candidates_to_features(bus_matching.candidates), OutputConfig.BUS_CANDIDATES)

    # Simplification
    slope_split = slope_matching.simplify(bus_links=bus_links)
    write(slope_split.segments, OutputConfig.SEGMENTS_SLOPES)
    write(slope_split.simplified, OutputConfig.SIMPLIFIED_SLOPES)
    bus_split = SplitResult()
    if bus_matching is not None:
        bus_split = bus_matching.simplify()
        write(bus_split.segments, OutputConfig.SEGMENTS_BUSES)
        write(bus_split.simplified, OutputConfig.SIMPLIFIED_BUSES)

    # Merge
    grades = config.qualifying_grades
    bus_network: list[Feature] = []
    if has_buses:
        bus_network = merge_features(bus_split.simplified, prepare_links_to_merge(bus_links, grades))
    merged = merge_features(
        slope_split.simplified,
        lifts_to_merge(lifts, rid_allocator),
        bus_network,
        prepare_links_to_merge(slope_matching.slope_links, grades),
        prepare_links_to_merge(slope_matching.slope_lift_links, grades),
        prepare_links_to_merge(lift_links, grades),
    )
    write(merged, OutputConfig.MERGED)

    # Graph
    graph = build_graph(merged)
    graph.report_duplicate_nodes()
    if merged:
        start_rid = merged[0].get(AttributeNames.R_ID)
        connected = graph.is_connected(start_rid)
        logger.info(f"Graph {'is' if connected else 'is not'} connected")

    logger.info(f"Pipeline finished in {time.perf_counter() - started:.2f}s - outputs in {config.folder_out}")
    return PipelineResult(
        graph=graph,
        path_finder=PathFinder(graph),
        merged=merged,
        slopes=slopes,
        lift_links=lift_links,
        slope_lift_links=slope_matching.slope_lift_links,
        slope_links=slope_matching.slope_links,
        bus_links=bus_links,
        slope_segments=slope_split.segments,
        bus_segments=bus_split.segments,
    )
