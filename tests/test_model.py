"""Tests for skiresort_router data model.

Tests: Coordinate, PointPair, Feature, Candidate, Link, RidAllocator
Focus: Elevation units, candidate validity, link attributes and r_id uniqueness
"""

import math

import pytest
from hypothesis import given, settings, strategies as st

from skiresort_router.constants import AttributeNames
from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.model import (
    Candidate,
    CandidateType,
    Coordinate,
    Feature,
    Grade,
    LinkType,
    PointPair,
    RidAllocator,
)


class TestCoordinate:
    """Coordinate - position with decimeter elevation."""

    def test_elevation_is_meters(self) -> None:
        assert Coordinate(0.0, 0.0, 24000.0).elevation == 2400.0

    def test_missing_elevation(self) -> None:
        coord = Coordinate(1.0, 2.0)
        assert not coord.has_z
        assert math.isnan(coord.elevation)

    def test_distance_is_2d(self) -> None:
        assert Coordinate(0.0, 0.0, 0.0).distance_to(Coordinate(3.0, 4.0, 99999.0)) == 5.0

    def test_equals_3d(self) -> None:
        assert Coordinate(1.0, 1.0, 5.0).equals_3d(Coordinate(1.0, 1.0, 5.0))
        assert not Coordinate(1.0, 1.0, 5.0).equals_3d(Coordinate(1.0, 1.0, 6.0))
        assert Coordinate(1.0, 1.0).equals_3d(Coordinate(1.0, 1.0))
        assert Coordinate(1.0, 1.0, 6.0).equals_2d(Coordinate(1.0, 1.0, 5.0))

    def test_from_tuple(self) -> None:
        assert Coordinate.from_tuple((1, 2, 3)).xyz == (1.0, 2.0, 3.0)
        assert not Coordinate.from_tuple((1, 2)).has_z


class TestPointPair:
    """PointPair - distance and signed height difference."""

    def test_downhill_is_negative(self) -> None:
        pair = PointPair(start=Coordinate(0.0, 0.0, 15000.0), end=Coordinate(30.0, 40.0, 14950.0))
        assert pair.distance == 50.0
        assert pair.height_diff == pytest.approx(-5.0)

    def test_degenerate(self) -> None:
        assert PointPair(Coordinate(1.0, 1.0, 0.0), Coordinate(1.0, 1.0, 10.0)).is_degenerate


class TestFeature:
    """Feature - geometry plus attributes."""

    def test_line_from_coordinates(self) -> None:
        feature = Feature.line([Coordinate(0.0, 0.0, 10.0), Coordinate(3.0, 4.0, 20.0)], {"name": "a"})
        assert feature.start.xyz == (0.0, 0.0, 10.0)
        assert feature.end.xyz == (3.0, 4.0, 20.0)
        assert feature.length == 5.0
        assert feature["name"] == "a"
        assert feature.get("missing", 7) == 7


class TestCandidate:
    """Candidate - validity band and promotion to a link."""

    @pytest.fixture
    def default_config(self) -> PreprocessingConfig:
        return PreprocessingConfig()

    def _candidate(self, config, kind, start_z=15000.0, end_z=15000.0, length=10.0) -> Candidate:
        return Candidate(
            start=Coordinate(0.0, 0.0, start_z),
            end=Coordinate(length, 0.0, end_z),
            candidate_type=kind,
            start_id="1",
            end_id="2",
            region="Zillertal - Mayrhofen",
            config=config,
        )

    def test_max_height_diff_by_type(self, default_config: PreprocessingConfig) -> None:
        expected = {
            CandidateType.LIFT_LINK: 35.5,
            CandidateType.SLOPE_LIFT: 30.5,
            CandidateType.SLOPE_LINK: 5.5,
            CandidateType.BUS_LINK: 20.5,
            CandidateType.INTERSECTION: 0.0,
        }
        for kind, limit in expected.items():
            assert self._candidate(default_config, kind).max_height_diff == limit

    def test_slope_link_accepts_any_descent(self, default_config: PreprocessingConfig) -> None:
        assert self._candidate(default_config, CandidateType.SLOPE_LINK, end_z=14000.0).is_valid
        assert not self._candidate(default_config, CandidateType.SLOPE_LINK, end_z=15060.0).is_valid

    def test_other_types_compare_absolute_height(self, default_config: PreprocessingConfig) -> None:
        assert self._candidate(default_config, CandidateType.LIFT_LINK, end_z=14700.0).is_valid
        assert not self._candidate(default_config, CandidateType.LIFT_LINK, end_z=14600.0).is_valid

    def test_intersection_never_becomes_link(self, default_config: PreprocessingConfig) -> None:
        cand = self._candidate(default_config, CandidateType.INTERSECTION, length=0.0)
        assert not cand.is_valid
        assert cand.create_link() is None

    def test_create_link_attributes(self, default_config: PreprocessingConfig) -> None:
        link = self._candidate(default_config, CandidateType.LIFT_LINK, end_z=14950.0, length=30.0).create_link()
        assert link.link_type is LinkType.LIFT_LINK
        assert link.grade is Grade.A
        assert list(link.attributes) == [AttributeNames.R_ID, "de_name", "gid_start", "gid_end", "length", "height", "rate"]
        assert link.r_id == 0
        assert link.attributes["height"] == pytest.approx(-5.0)
        assert link.rate == "A"

    def test_invalid_candidate_creates_nothing(self, default_config: PreprocessingConfig) -> None:
        assert self._candidate(default_config, CandidateType.BUS_LINK, end_z=15300.0).create_link() is None

    def test_dedup_key_ignores_elevation(self, default_config: PreprocessingConfig) -> None:
        first = self._candidate(default_config, CandidateType.LIFT_LINK, end_z=15000.0)
        second = self._candidate(default_config, CandidateType.LIFT_LINK, end_z=14990.0)
        assert first.dedup_key == second.dedup_key

    def test_link_feature_keeps_attribute_order(self, default_config: PreprocessingConfig) -> None:
        link = self._candidate(default_config, CandidateType.LIFT_LINK).create_link()
        link.r_id = 200001001
        feature = link.to_feature()
        assert feature[AttributeNames.R_ID] == 200001001
        assert feature.start.xyz == (0.0, 0.0, 15000.0)


class TestRidAllocator:
    """RidAllocator - composition and uniqueness of r_id values."""

    def test_layout(self) -> None:
        assert RidAllocator().allocate(prefix=1, feature_id="42", sequence=2) == 100042002

    def test_float_ids_are_numeric(self) -> None:
        assert RidAllocator.feature_number("42.0") == 42
        assert RidAllocator.feature_number(42) == 42

    def test_text_ids_are_stable(self) -> None:
        number = RidAllocator.feature_number("Talstation")
        assert number == RidAllocator.feature_number("Talstation")
        assert 0 <= number < 100_000

    def test_taken_value_is_probed_upwards(self) -> None:
        allocator = RidAllocator()
        first = allocator.allocate(2, "7")
        second = allocator.allocate(2, "7")
        assert (first, second) == (200007001, 200007002)
        assert second in allocator
        assert len(allocator) == 2

    @given(
        requests=st.lists(
            st.tuples(st.sampled_from([1, 2, 3]), st.integers(0, 20), st.integers(1, 5)),
            max_size=60,
        )
    )
    @settings(max_examples=50)
    def test_allocated_values_are_unique(self, requests: list[tuple[int, int, int]]) -> None:
        """Property: every allocation returns a value never returned before."""
        allocator = RidAllocator()
        rids = [allocator.allocate(prefix, str(feature), sequence) for prefix, feature, sequence in requests]
        assert len(set(rids)) == len(rids)
