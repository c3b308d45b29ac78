"""Slope link inference and slope simplification.

Two kinds of connections are searched:
- Slope to lift: the bottom of a slope to a lift's valley station and a
  lift's mountain station to the top of a slope, or to any point in the
  middle of the slope when no endpoint is close.
- Slope to slope: where one slope flows into another. True geometric
  intersections take precedence over proximity links, and intersection
  vertices not consumed by a link still split the slopes later.

simplify() then cuts every slope at intersections and link attachment points.
"""

import itertools
import logging
import time
from typing import Iterable, Optional

from shapely import STRtree

from skiresort_router.constants import AttributeNames, MatchingConfig, RidPrefixes
from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.core.geometry import LineGeometry
from skiresort_router.core.result_log import ResultLog
from skiresort_router.matching.base import FeatureMatching, LineFeature, clean_duplicates
from skiresort_router.matching.segments import (
    SplitResult,
    first_endpoint_on_line,
    slope_attributes,
    split_line,
    topology_vertices,
)
from skiresort_router.model.candidate import Candidate, CandidateType
from skiresort_router.model.coordinate import Coordinate
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Link
from skiresort_router.model.rid_allocator import RidAllocator

logger = logging.getLogger(__name__)


def _redundant_candidate(first: Candidate, second: Candidate) -> Optional[Candidate]:
    """The longer of two same-owner candidates if it is implausible, else None.

    The longer candidate is noise when it climbs or drops at least 15 m, or
    when it is clearly longer and ends far away from where the other starts.
    """
    length_diff = first.distance - second.distance
    longer = first if length_diff > 0 else second
    if abs(longer.height_diff) >= MatchingConfig.REDUNDANT_HEIGHT_M:
        return longer
    if (
        abs(length_diff) >= MatchingConfig.REDUNDANT_LENGTH_DIFF_M
        and longer.end.distance_to(second.start) >= MatchingConfig.REDUNDANT_FAR_DIST_M
    ):
        return longer
    return None


def clean_redundant(candidates: list[Candidate]) -> list[Candidate]:
    """Remove implausible candidates among those sharing start and end feature.

    Each candidate is compared with the survivors of its (start_id, end_id)
    group; the longer one of a pair is dropped when _redundant_candidate()
    flags it. Input order is kept.
    """
    survivors: dict[tuple[str, str], list[Candidate]] = {}
    removed: set[int] = set()

    for cand in candidates:
        group = survivors.setdefault((cand.start_id, cand.end_id), [])
        keep = True
        for other in list(group):
            redundant = _redundant_candidate(other, cand)
            if redundant is other:
                group.remove(other)
                removed.add(id(other))
            elif redundant is cand:
                keep = False
                break
        if keep:
            group.append(cand)
        else:
            removed.add(id(cand))

    if removed:
        logger.info(f"Removed {len(removed)} redundant slope-lift candidates")
    return [cand for cand in candidates if id(cand) not in removed]


class SlopeLinkMatching(FeatureMatching):
    """Infers SlopeLift and Slope2Slope connections and splits slopes.

    Attributes:
        slopes: Prepared single-part slope lines
        lifts: Prepared lift lines
        slope_lift_candidates: Candidates of the slope-lift search
        slope_candidates: Candidates of the slope-slope search (incl. intersections)
        slope_lift_links: Retained slope-lift links
        slope_links: Retained slope-slope links
    """

    RID_PREFIX = RidPrefixes.SLOPE

    def __init__(
        self,
        slopes: list[Feature],
        lifts: list[Feature],
        config: PreprocessingConfig,
        rid_allocator: RidAllocator,
        result_log: Optional[ResultLog] = None,
    ) -> None:
        super().__init__(config=config, rid_allocator=rid_allocator, result_log=result_log)
        self.slopes = [LineFeature.from_feature(slope) for slope in slopes]
        self.lifts = [LineFeature.from_feature(lift) for lift in lifts]
        self.slope_lift_candidates: list[Candidate] = []
        self.slope_candidates: list[Candidate] = []
        self.slope_lift_links: list[Link] = []
        self.slope_links: list[Link] = []

    # =========================================================================
    # Slope to lift
    # =========================================================================

    def _lift_midpoint(self, lift_endpoint: Coordinate, slope: LineFeature) -> Optional[Coordinate]:
        """Point in the middle of ``slope`` next to a lift station."""
        return LineGeometry.project_onto_line(
            lift_endpoint,
            slope.line,
            max_distance=self.config.lift_midpoint_threshold,
            min_endpoint_distance=MatchingConfig.LIFT_MIDPOINT_MIN_ENDPOINT_DIST_M,
        )

    def find_slope_lift_candidates(self) -> list[Candidate]:
        """Connect valley stations to slope bottoms and mountain stations to slope tops.

        Endpoint connections are preferred; a mid-point connection is only
        searched when the matching endpoints are too far apart.
        """
        max_distance = self.config.max_slope_distance
        candidates = []

        for lift in self.lifts:
            has_lower = False
            has_upper = False
            for slope in self.slopes:
                region = f"{slope.region} - {slope.area}"

                # Slope bottom (or slope middle) -> valley station
                if slope.lower.distance_to(lift.lower) < max_distance:
                    start = slope.lower
                else:
                    start = self._lift_midpoint(lift.lower, slope)
                if start is not None:
                    has_lower = True
                    candidates.append(
                        self.candidate(
                            start=start,
                            end=lift.lower,
                            candidate_type=CandidateType.SLOPE_LIFT,
                            start_id=slope.feature_id,
                            end_id=lift.feature_id,
                            region=region,
                        )
                    )

                # Mountain station -> slope top (or slope middle)
                if slope.upper.distance_to(lift.upper) < max_distance:
                    end = slope.upper
                else:
                    end = self._lift_midpoint(lift.upper, slope)
                if end is not None:
                    has_upper = True
                    candidates.append(
                        self.candidate(
                            start=lift.upper,
                            end=end,
                            candidate_type=CandidateType.SLOPE_LIFT,
                            start_id=lift.feature_id,
                            end_id=slope.feature_id,
                            region=region,
                        )
                    )

            if not has_lower:
                logger.warning(f"Lift {lift.feature_id} ({lift.area}): no slope reaches the valley station")
            if not has_upper:
                logger.warning(f"Lift {lift.feature_id} ({lift.area}): no slope leaves the mountain station")

        return clean_redundant(clean_duplicates(candidates))

    # =========================================================================
    # Slope to slope
    # =========================================================================

    @staticmethod
    def _remove_vertex(vertices: Optional[list[Coordinate]], vertex: Coordinate) -> None:
        if not vertices:
            return
        for index, existing in enumerate(vertices):
            if existing.equals_2d(vertex):
                del vertices[index]
                return

    @staticmethod
    def _remove_common_endpoints(
        slope_a: LineFeature, slope_b: LineFeature, intersections: Optional[list[Coordinate]]
    ) -> None:
        """Shared bottoms or shared tops are no crossing points."""
        if slope_a.lower.equals_2d(slope_b.lower):
            SlopeLinkMatching._remove_vertex(intersections, slope_a.lower)
        if slope_a.upper.equals_2d(slope_b.upper):
            SlopeLinkMatching._remove_vertex(intersections, slope_a.upper)

    def _endpoint_candidate(
        self,
        endpoint: Coordinate,
        other_endpoint: Coordinate,
        intersections: Optional[list[Coordinate]],
        midpoint: Optional[Coordinate],
        endpoint_id: str,
        other_id: str,
        region: str,
        upper: bool,
    ) -> Optional[Candidate]:
        """Connection of ``endpoint`` to the other slope, by precedence.

        Within the endpoint radius: common endpoint, then nearby intersection,
        then mid-point neighbour, then the other slope's endpoint. Beyond it,
        only a mid-point neighbour without a nearby intersection qualifies.

        Args:
            endpoint: Endpoint of the slope being checked
            other_endpoint: Opposite endpoint of the other slope
            intersections: Remaining intersection vertices of the pair (consumed in place)
            midpoint: Projection of ``endpoint`` onto the other slope, if any
            endpoint_id: Identifier of the slope owning ``endpoint``
            other_id: Identifier of the other slope
            region: de_name of the candidate
            upper: True if ``endpoint`` is a slope top (flow from the other slope
                into this one), False for a slope bottom (flow out of this one)

        Returns:
            Candidate or None.
        """
        threshold = self.config.slope_endpoint_threshold
        closest = LineGeometry.nearest_vertex(endpoint, intersections) if intersections else None
        source: Optional[Coordinate] = None

        if endpoint.distance_to(other_endpoint) < threshold:
            if endpoint.equals_3d(other_endpoint):
                source, target, kind = other_endpoint, endpoint, CandidateType.INTERSECTION
                self._remove_vertex(intersections, endpoint)
            elif closest is not None and closest.distance_to(endpoint) < threshold:
                source, target, kind = closest, closest, CandidateType.INTERSECTION
                self._remove_vertex(intersections, closest)
            elif midpoint is not None:
                source, target, kind = midpoint, endpoint, CandidateType.SLOPE_LINK
            else:
                source, target, kind = other_endpoint, endpoint, CandidateType.SLOPE_LINK
        elif midpoint is not None and (closest is None or closest.distance_to(endpoint) >= threshold):
            source, target, kind = midpoint, endpoint, CandidateType.SLOPE_LINK

        if source is None:
            return None
        if upper:
            return self.candidate(source, target, kind, start_id=other_id, end_id=endpoint_id, region=region)
        return self.candidate(target, source, kind, start_id=endpoint_id, end_id=other_id, region=region)

    def _slope_midpoint(self, endpoint: Coordinate, other: LineFeature) -> Optional[Coordinate]:
        return LineGeometry.project_onto_line(endpoint, other.line, max_distance=self.config.slope_midpoint_threshold)

    def _pair_candidates(self, slope_a: LineFeature, slope_b: LineFeature) -> list[Candidate]:
        """All candidates between two slopes."""
        region = f"{slope_a.region} - {slope_a.area}"
        intersections = LineGeometry.intersection_vertices(slope_a.line, slope_b.line)
        self._remove_common_endpoints(slope_a, slope_b, intersections)

        checks = (
            (slope_a, slope_a.upper, slope_b, slope_b.lower, True),
            (slope_a, slope_a.lower, slope_b, slope_b.upper, False),
            (slope_b, slope_b.upper, slope_a, slope_a.lower, True),
            (slope_b, slope_b.lower, slope_a, slope_a.upper, False),
        )
        candidates = []
        for owner, endpoint, other, other_endpoint, upper in checks:
            cand = self._endpoint_candidate(
                endpoint=endpoint,
                other_endpoint=other_endpoint,
                intersections=intersections,
                midpoint=self._slope_midpoint(endpoint, other),
                endpoint_id=owner.feature_id,
                other_id=other.feature_id,
                region=region,
                upper=upper,
            )
            if cand is not None:
                candidates.append(cand)

        # Parallel slopes close to each other: link the nearest points, downhill
        if not candidates and intersections is None:
            if slope_a.line.distance(slope_b.line) <= self.config.slope_midpoint_threshold:
                on_a, on_b = LineGeometry.nearest_points_between(slope_a.line, slope_b.line)
                if on_a.z > on_b.z:
                    candidates.append(
                        self.candidate(on_a, on_b, CandidateType.SLOPE_LINK, slope_a.feature_id, slope_b.feature_id, region)
                    )
                else:
                    candidates.append(
                        self.candidate(on_b, on_a, CandidateType.SLOPE_LINK, slope_b.feature_id, slope_a.feature_id, region)
                    )

        for vertex in intersections or []:
            candidates.append(
                self.candidate(vertex, vertex, CandidateType.INTERSECTION, slope_a.feature_id, slope_b.feature_id, region)
            )
        return candidates

    def find_slope_candidates(self) -> list[Candidate]:
        """Candidates and intersection markers of every unordered slope pair."""
        candidates = []
        for slope_a, slope_b in itertools.combinations(self.slopes, 2):
            candidates.extend(self._pair_candidates(slope_a, slope_b))
        return clean_duplicates(candidates)

    @property
    def intersections(self) -> list[Coordinate]:
        """Topology vertices from intersections and common endpoints."""
        return [c.start for c in self.slope_candidates if c.candidate_type is not CandidateType.SLOPE_LINK]

    # =========================================================================
    # Matching
    # =========================================================================

    def match(self) -> list[Link]:
        started = time.perf_counter()
        self.slope_lift_candidates = self.find_slope_lift_candidates()
        logger.info(
            f"Slope-lift matching: {len(self.slope_lift_candidates)} candidates "
            f"in {time.perf_counter() - started:.2f}s"
        )
        self.slope_lift_links = self.create_links(self.slope_lift_candidates, "Slope-lift links")

        started = time.perf_counter()
        self.slope_candidates = self.find_slope_candidates()
        logger.info(
            f"Slope-slope matching: {len(self.slope_candidates)} candidates "
            f"({len(self.intersections)} intersections) in {time.perf_counter() - started:.2f}s"
        )
        self.slope_links = self.create_links(self.slope_candidates, "Slope links")
        return self.slope_lift_links + self.slope_links

    # =========================================================================
    # Simplification
    # =========================================================================

    def simplify(self, bus_links: Iterable[Link] = ()) -> SplitResult:
        """Split every slope at intersections and link attachment points.

        Args:
            bus_links: Retained bus links, which attach to slope ends as well

        Returns:
            Slope segments and simplified slope features.
        """
        links = [link.to_feature() for link in (*self.slope_links, *self.slope_lift_links, *bus_links)]
        intersections = self.intersections
        intersection_points = [LineGeometry.to_point(v) for v in intersections]
        intersection_count = len(intersection_points)
        tree = STRtree(intersection_points + [link.geometry for link in links])

        result = SplitResult()
        for slope in self.slopes:
            box = LineGeometry.query_box(slope.line, MatchingConfig.INDEX_SEARCH_BUFFER_M)
            extra: list[Coordinate] = []
            for index in sorted(int(i) for i in tree.query(box)):
                if index < intersection_count:
                    if slope.line.distance(intersection_points[index]) < MatchingConfig.INTERSECTION_ON_LINE_TOL:
                        extra.append(intersections[index])
                else:
                    attachment = first_endpoint_on_line(
                        slope.line, links[index - intersection_count], MatchingConfig.LINK_ON_LINE_TOL
                    )
                    if attachment is not None:
                        extra.append(attachment)

            vertices = topology_vertices(slope.line, extra, tolerance=MatchingConfig.SLOPE_SPLIT_TOL)
            de_name = f"{slope.region} {slope.area}"
            difficulty = slope.feature.get(AttributeNames.DIFFICULTY)
            result.extend(
                split_line(
                    feature=slope.feature,
                    line=slope.line,
                    vertices=vertices,
                    feature_id=slope.feature_id,
                    rid_prefix=RidPrefixes.SLOPE,
                    rid_allocator=self.rid_allocator,
                    build_attributes=lambda length, start, end, r_id: slope_attributes(
                        de_name, difficulty, length, start, end, r_id
                    ),
                )
            )

        logger.info(
            f"Slope simplification: {len(self.slopes)} slopes -> {len(result.simplified)} segments"
        )
        return result
