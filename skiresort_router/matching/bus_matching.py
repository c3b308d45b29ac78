"""Bus stop link inference and bus line simplification.

Bus stops near a lift station or a slope end are linked to it, so routes can
continue by bus. Bus lines are then rebuilt as chains of stop-to-stop
segments along their original geometry.
"""

import logging
import time
from typing import Optional

from shapely import STRtree

from skiresort_router.constants import AttributeNames, MatchingConfig, RidPrefixes
from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.core.geometry import LineGeometry
from skiresort_router.core.result_log import ResultLog
from skiresort_router.matching.base import FeatureMatching, LineFeature, clean_duplicates
from skiresort_router.matching.segments import (
    SplitResult,
    bus_attributes,
    split_line,
    topology_vertices,
    vertices_near,
)
from skiresort_router.model.candidate import Candidate, CandidateType
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Link
from skiresort_router.model.rid_allocator import RidAllocator

logger = logging.getLogger(__name__)


def clean_duplicate_stops(stops: list[Feature]) -> list[Feature]:
    """Drop stops at the same 2D position as an earlier stop."""
    seen: set[tuple[float, float]] = set()
    unique = []
    for stop in stops:
        position = stop.start.xy
        if position in seen:
            continue
        seen.add(position)
        unique.append(stop)
    if len(unique) < len(stops):
        logger.info(f"Removed {len(stops) - len(unique)} duplicate bus stops")
    return unique


class BusLinkMatching(FeatureMatching):
    """Infers BusLink connections and splits bus lines at their stops.

    Attributes:
        bus_lines: Bus line features (identified by DB_ID)
        stops: Deduplicated bus stop point features (identified by PT_ID)
        lifts: Prepared lift lines
        slopes: Prepared slope lines
        candidates: Candidates of the last match() call
        links: Retained links of the last match() call
    """

    RID_PREFIX = RidPrefixes.BUS

    def __init__(
        self,
        bus_lines: list[Feature],
        stops: list[Feature],
        lifts: list[Feature],
        slopes: list[Feature],
        config: PreprocessingConfig,
        rid_allocator: RidAllocator,
        result_log: Optional[ResultLog] = None,
    ) -> None:
        super().__init__(config=config, rid_allocator=rid_allocator, result_log=result_log)
        self.bus_lines = bus_lines
        self.stops = clean_duplicate_stops(stops)
        self.lifts = [LineFeature.from_feature(lift) for lift in lifts]
        self.slopes = [LineFeature.from_feature(slope) for slope in slopes]
        self.candidates: list[Candidate] = []
        self.links: list[Link] = []

    def find_candidates(self) -> list[Candidate]:
        """Link every stop to nearby lift stations and slope ends.

        Stops without elevation (z == 0) cannot be graded and are skipped.
        A stop next to a valley station or slope top is a place to board;
        a stop next to a mountain station or slope bottom is a place to arrive.
        """
        max_distance = self.config.max_bus_distance
        candidates = []
        skipped = 0

        for stop in self.stops:
            stop_coord = stop.start
            if stop_coord.z == 0 or not stop_coord.has_z:
                skipped += 1
                continue
            stop_id = str(stop.get(AttributeNames.STOP_ID, ""))
            region = f"{stop.get(AttributeNames.REGION, '')} - {stop.get(AttributeNames.STOP_NAME, '')}"

            for lift in self.lifts:
                if stop_coord.distance_to(lift.lower) < max_distance:
                    candidates.append(
                        self.candidate(stop_coord, lift.lower, CandidateType.BUS_LINK, stop_id, lift.feature_id, region)
                    )
                elif stop_coord.distance_to(lift.upper) < max_distance:
                    candidates.append(
                        self.candidate(lift.upper, stop_coord, CandidateType.BUS_LINK, lift.feature_id, stop_id, region)
                    )

            for slope in self.slopes:
                if stop_coord.distance_to(slope.lower) < max_distance:
                    candidates.append(
                        self.candidate(slope.lower, stop_coord, CandidateType.BUS_LINK, slope.feature_id, stop_id, region)
                    )
                elif stop_coord.distance_to(slope.upper) < max_distance:
                    candidates.append(
                        self.candidate(stop_coord, slope.upper, CandidateType.BUS_LINK, stop_id, slope.feature_id, region)
                    )

        if skipped:
            logger.warning(f"Skipped {skipped} bus stops without elevation")
        return clean_duplicates(candidates)

    def match(self) -> list[Link]:
        started = time.perf_counter()
        self.candidates = self.find_candidates()
        logger.info(
            f"Bus matching: {len(self.candidates)} candidates for {len(self.stops)} stops "
            f"in {time.perf_counter() - started:.2f}s"
        )
        self.links = self.create_links(self.candidates, "Bus links")
        return self.links

    def simplify(self) -> SplitResult:
        """Rebuild each bus line as stop-to-stop segments.

        Stops within 50 m of a line become its vertices (ordered along the
        line); the simplified segments run through the stop coordinates.
        """
        stop_coords = [stop.start for stop in self.stops]
        tree = STRtree([LineGeometry.to_point(c) for c in stop_coords])

        result = SplitResult()
        for bus_line in self.bus_lines:
            line = LineGeometry.as_line(bus_line.geometry)
            line_id = bus_line.get(AttributeNames.BUS_LINE_ID, "")
            box = LineGeometry.query_box(line, MatchingConfig.INDEX_SEARCH_BUFFER_M)
            nearby = vertices_near(
                line, [stop_coords[int(i)] for i in sorted(tree.query(box))], MatchingConfig.BUS_STOP_MAX_DIST_M
            )

            vertices = topology_vertices(line, nearby, tolerance=MatchingConfig.BUS_SPLIT_TOL, snap_ends=True)
            de_name = f"{bus_line.get(AttributeNames.REGION, '')} {bus_line.get(AttributeNames.AREA, '')}"
            result.extend(
                split_line(
                    feature=bus_line,
                    line=line,
                    vertices=vertices,
                    feature_id=line_id,
                    rid_prefix=RidPrefixes.BUS,
                    rid_allocator=self.rid_allocator,
                    build_attributes=lambda length, start, end, r_id: bus_attributes(de_name, length, start, end, r_id),
                )
            )

        logger.info(f"Bus simplification: {len(self.bus_lines)} lines -> {len(result.simplified)} segments")
        return result
