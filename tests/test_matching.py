"""Tests for the link matching engines.

Tests: LiftLinkMatching, SlopeLinkMatching, BusLinkMatching, candidate cleaning
Focus: Candidate direction, precedence of slope connections, excluded bus stops
"""

from typing import TYPE_CHECKING

import pytest
from hypothesis import given, settings, strategies as st

from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.core.result_log import ResultLog
from skiresort_router.matching.base import LineFeature, clean_duplicates
from skiresort_router.matching.bus_matching import BusLinkMatching, clean_duplicate_stops
from skiresort_router.matching.lift_matching import LiftLinkMatching
from skiresort_router.matching.slope_matching import SlopeLinkMatching, clean_redundant
from skiresort_router.model import Candidate, CandidateType, Coordinate, Grade, LinkType, RidAllocator

from conftest import make_bus_line, make_lift, make_slope, make_stop

if TYPE_CHECKING:
    from skiresort_router.model import Feature


def _candidate(start: tuple, end: tuple, start_id: str = "1", end_id: str = "2") -> Candidate:
    return Candidate(
        start=Coordinate(*start),
        end=Coordinate(*end),
        candidate_type=CandidateType.SLOPE_LIFT,
        start_id=start_id,
        end_id=end_id,
        config=PreprocessingConfig(),
    )


class TestLineFeature:
    """LineFeature - endpoint ordering for matching."""

    def test_endpoints_by_elevation(self) -> None:
        slope = LineFeature.from_feature(make_slope("5", (0, 0, 2000), (100, 0, 1000)))
        assert slope.lower.xy == (100.0, 0.0)
        assert slope.upper.xy == (0.0, 0.0)
        assert slope.feature_id == "5"

    def test_flat_feature_keeps_geometry_order(self) -> None:
        flat = LineFeature.from_feature(make_slope("5", (0, 0, 1000), (100, 0, 1000)))
        assert flat.lower.xy == (0.0, 0.0)
        assert flat.upper.xy == (100.0, 0.0)


class TestLiftLinkMatching:
    """Lift-to-lift links from mountain stations to nearby valley stations."""

    def test_single_candidate_from_upper_to_lower(
        self, lift_pair: list["Feature"], config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        """Upper station of lift 1 is 30 m from the lower station of lift 2."""
        matching = LiftLinkMatching(lift_pair, config, rid_allocator)
        candidates = matching.find_candidates()

        assert len(candidates) == 1
        cand = candidates[0]
        assert cand.candidate_type is CandidateType.LIFT_LINK
        assert (cand.start_id, cand.end_id) == ("1", "2")
        assert cand.start.xy == (1000.0, 0.0)
        assert cand.end.xy == (1030.0, 0.0)

    def test_direction_does_not_depend_on_input_order(
        self, lift_pair: list["Feature"], config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        candidates = LiftLinkMatching(list(reversed(lift_pair)), config, rid_allocator).find_candidates()
        assert [(c.start_id, c.end_id) for c in candidates] == [("1", "2")]

    def test_match_grades_and_assigns_rid(
        self, lift_pair: list["Feature"], config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        links = LiftLinkMatching(lift_pair, config, rid_allocator).match()
        assert len(links) == 1
        assert links[0].link_type is LinkType.LIFT_LINK
        assert links[0].grade is Grade.A
        assert links[0].r_id == 200001001
        assert links[0].r_id in rid_allocator

    def test_distant_lifts_are_not_linked(self, config: PreprocessingConfig, rid_allocator: RidAllocator) -> None:
        lifts = [
            make_lift("1", lower=(0, 0, 10000), upper=(1000, 0, 15000)),
            make_lift("2", lower=(1300, 0, 15000), upper=(2000, 0, 20000)),
        ]
        assert LiftLinkMatching(lifts, config, rid_allocator).match() == []

    def test_grade_e_link_is_dropped(self, config: PreprocessingConfig, rid_allocator: RidAllocator) -> None:
        """199 m walk with 6 m climb is a candidate but graded E."""
        lifts = [
            make_lift("1", lower=(0, 0, 10000), upper=(1000, 0, 15000)),
            make_lift("2", lower=(1199, 0, 15060), upper=(2000, 0, 20000)),
        ]
        matching = LiftLinkMatching(lifts, config, rid_allocator)
        assert matching.match() == []
        assert len(matching.candidates) == 1

    def test_results_are_reported(
        self, lift_pair: list["Feature"], config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        result_log = ResultLog(config.results_path)
        result_log.clear()
        LiftLinkMatching(lift_pair, config, rid_allocator, result_log).match()
        report = config.results_path.read_text(encoding="utf-8")
        assert "Lift links candidates: 1" in report
        assert "200001001" in report


class TestCandidateCleaning:
    """clean_duplicates and clean_redundant."""

    def test_duplicates_keep_first(self) -> None:
        first = _candidate((0, 0, 1000), (10, 0, 1000))
        duplicate = _candidate((0, 0, 1000), (10, 0, 990))
        other = _candidate((0, 0, 1000), (10, 0, 1000), end_id="3")
        assert clean_duplicates([first, duplicate, other]) == [first, other]

    @given(
        points=st.lists(
            st.tuples(st.integers(0, 3), st.integers(0, 3), st.integers(0, 3), st.sampled_from(["1", "2"])),
            max_size=30,
        )
    )
    @settings(max_examples=50)
    def test_deduplication_is_idempotent(self, points: list[tuple[int, int, int, str]]) -> None:
        """Property: cleaning twice equals cleaning once, and keys are unique."""
        candidates = [_candidate((x, 0, 1000), (y, z, 1000), end_id=end_id) for x, y, z, end_id in points]
        once = clean_duplicates(candidates)
        twice = clean_duplicates(once)
        assert [c.dedup_key for c in twice] == [c.dedup_key for c in once]
        assert len({c.dedup_key for c in once}) == len(once)

    def test_far_longer_candidate_is_redundant(self) -> None:
        near = _candidate((0, 0, 1000), (10, 0, 1000))
        far = _candidate((0, 0, 1000), (0, 70, 1000))
        assert clean_redundant([near, far]) == [near]
        assert clean_redundant([far, near]) == [near]

    def test_steep_longer_candidate_is_redundant(self) -> None:
        near = _candidate((0, 0, 1000), (10, 0, 1000))
        steep = _candidate((0, 0, 1000), (20, 0, 1200))
        assert clean_redundant([near, steep]) == [near]

    def test_other_owners_are_not_compared(self) -> None:
        near = _candidate((0, 0, 1000), (10, 0, 1000))
        far = _candidate((0, 0, 1000), (0, 70, 1000), start_id="9")
        assert clean_redundant([near, far]) == [near, far]


class TestSlopeLiftMatching:
    """Slope ends to lift stations, mid-slope connections."""

    def test_slope_along_lift_links_both_stations(
        self, config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        lift = make_lift("1", lower=(0, 0, 10000), upper=(500, 0, 15000))
        slope = make_slope("11", (505, 0, 14990), (5, 0, 10010))
        candidates = SlopeLinkMatching([slope], [lift], config, rid_allocator).find_slope_lift_candidates()

        assert [(c.start_id, c.end_id) for c in candidates] == [("11", "1"), ("1", "11")]
        bottom, top = candidates
        assert (bottom.start.xy, bottom.end.xy) == ((5.0, 0.0), (0.0, 0.0))
        assert (top.start.xy, top.end.xy) == ((500.0, 0.0), (505.0, 0.0))

    def test_lift_station_next_to_slope_middle(
        self, config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        lift = make_lift("1", lower=(200, 30, 11000), upper=(200, 1000, 15000))
        slope = make_slope("11", (0, 0, 12000), (400, 0, 10000))
        candidates = SlopeLinkMatching([slope], [lift], config, rid_allocator).find_slope_lift_candidates()

        assert len(candidates) == 1
        assert candidates[0].start.xyz == pytest.approx((200.0, 0.0, 11000.0))
        assert candidates[0].end.xy == (200.0, 30.0)

    def test_links_are_graded(self, config: PreprocessingConfig, rid_allocator: RidAllocator) -> None:
        lift = make_lift("1", lower=(0, 0, 10000), upper=(500, 0, 15000))
        slope = make_slope("11", (505, 0, 14990), (5, 0, 10010))
        matching = SlopeLinkMatching([slope], [lift], config, rid_allocator)
        matching.match()
        assert [link.grade for link in matching.slope_lift_links] == [Grade.A, Grade.A]
        assert {link.link_type for link in matching.slope_lift_links} == {LinkType.SLOPE_LIFT}


class TestSlopeSlopeMatching:
    """Slope-to-slope links and intersections."""

    def test_slope_flowing_into_next_slope(self, config: PreprocessingConfig, rid_allocator: RidAllocator) -> None:
        """Bottom of slope 21 is 5 m from the top of slope 22."""
        upper = make_slope("21", (0, 0, 2000), (100, 0, 1000))
        lower = make_slope("22", (105, 0, 995), (200, 0, 500))
        matching = SlopeLinkMatching([upper, lower], [], config, rid_allocator)
        links = matching.match()

        assert len(matching.slope_candidates) == 1
        assert len(links) == 1
        link = links[0]
        assert link.link_type is LinkType.SLOPE_LINK
        assert (link.gid_start, link.gid_end) == ("21", "22")
        assert (link.start.xy, link.end.xy) == ((100.0, 0.0), (105.0, 0.0))
        assert link.grade is Grade.A
        assert link.r_id == 100021001

    def test_crossing_slopes_yield_intersection_only(
        self, config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        slope_a = make_slope("21", (0, 0, 2000), (100, 0, 1000))
        slope_b = make_slope("22", (50, -50, 2000), (50, 50, 1000))
        matching = SlopeLinkMatching([slope_a, slope_b], [], config, rid_allocator)

        assert matching.match() == []
        assert [c.candidate_type for c in matching.slope_candidates] == [CandidateType.INTERSECTION]
        assert [v.xy for v in matching.intersections] == [pytest.approx((50.0, 0.0))]

    def test_crossing_slopes_are_split_at_intersection(
        self, config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        slope_a = make_slope("21", (0, 0, 2000), (100, 0, 1000))
        slope_b = make_slope("22", (50, -50, 2000), (50, 50, 1000))
        matching = SlopeLinkMatching([slope_a, slope_b], [], config, rid_allocator)
        matching.match()
        result = matching.simplify()

        assert len(result.simplified) == 4
        assert len(result.segments) == 4
        assert [f["r_id"] for f in result.simplified] == [100021001, 100021002, 100022001, 100022002]
        assert sum(f["length"] for f in result.segments[:2]) == pytest.approx(100.0)

    def test_distant_slopes_are_not_linked(self, config: PreprocessingConfig, rid_allocator: RidAllocator) -> None:
        slope_a = make_slope("21", (0, 0, 2000), (100, 0, 1000))
        slope_b = make_slope("22", (0, 500, 2000), (100, 500, 1000))
        matching = SlopeLinkMatching([slope_a, slope_b], [], config, rid_allocator)
        assert matching.match() == []
        assert matching.slope_candidates == []


class TestBusLinkMatching:
    """Bus stops to lift stations and slope ends."""

    def test_stop_without_elevation_is_excluded(
        self, config: PreprocessingConfig, rid_allocator: RidAllocator
    ) -> None:
        lift = make_lift("1", lower=(0, 0, 10000), upper=(1000, 0, 15000))
        stops = [make_stop("Z", 10, 0, 0), make_stop("N", 0, 10), make_stop("B", 0, 40, 10020)]
        candidates = BusLinkMatching([], stops, [lift], [], config, rid_allocator).find_candidates()

        assert [(c.start_id, c.end_id) for c in candidates] == [("B", "1")]
        assert candidates[0].end.xy == (0.0, 0.0)

    def test_stop_near_slope_bottom(self, config: PreprocessingConfig, rid_allocator: RidAllocator) -> None:
        slope = make_slope("11", (0, 500, 15000), (0, 0, 10010))
        stops = [make_stop("B", 0, -30, 10000)]
        links = BusLinkMatching([], stops, [], [slope], config, rid_allocator).match()

        assert len(links) == 1
        assert (links[0].gid_start, links[0].gid_end) == ("11", "B")
        assert links[0].link_type is LinkType.BUS_LINK
        assert links[0].grade is Grade.A

    def test_duplicate_stops_are_removed(self) -> None:
        stops = [make_stop("A", 0, 0, 100), make_stop("B", 0, 0, 100), make_stop("C", 5, 0, 100)]
        assert [s.get("PT_ID") for s in clean_duplicate_stops(stops)] == ["A", "C"]

    def test_bus_line_is_split_at_stops(self, config: PreprocessingConfig, rid_allocator: RidAllocator) -> None:
        bus_line = make_bus_line("7", (0, 0, 1000), (100, 0, 1000))
        stops = [make_stop("S", 50, 2, 1000), make_stop("far", 50, 200, 1000)]
        result = BusLinkMatching([bus_line], stops, [], [], config, rid_allocator).simplify()

        assert len(result.simplified) == 2
        assert [f["r_id"] for f in result.simplified] == [300007001, 300007002]
        assert {f["XML_TYPE"] for f in result.simplified} == {"buses"}
        assert result.simplified[0].end.xy == (50.0, 2.0)
        assert result.simplified[1].start.xy == (50.0, 2.0)
