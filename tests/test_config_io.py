"""Tests for configuration loading, GeoJSON exchange and the result report.

Tests: PreprocessingConfig, parse_config_text, load_config, read_features,
       write_features, ResultLog
Focus: Fallback to defaults for malformed values, z values surviving a file
"""

import json
from pathlib import Path

import pytest
from shapely.geometry import LineString

from skiresort_router.core.config import PreprocessingConfig, grades_are_valid, load_config, parse_config_text
from skiresort_router.core.feature_io import read_features, write_features
from skiresort_router.core.result_log import ResultLog
from skiresort_router.model import Coordinate, Feature, Grade, Link, LinkType

from conftest import geojson_line, geojson_point, write_collection


class TestPreprocessingConfig:
    """PreprocessingConfig - defaults and validation."""

    def test_defaults(self) -> None:
        config = PreprocessingConfig()
        assert config.lift_distances == (200, 160, 95, 50)
        assert config.slope_heights == (30, 25, 20, 15, 10, 5)
        assert config.bus_distances == (350, 200, 100)
        assert config.slope_endpoint_dist == 20.0
        assert config.slope_midpoint_dist == (60.0, 10.0)
        assert config.qualifying_grades == "AB"

    def test_wrong_length_falls_back(self) -> None:
        config = PreprocessingConfig(lift_distances=(100, 50), slope_heights=(1, 2, 3), bus_heights=None)
        assert config.lift_distances == (200, 160, 95, 50)
        assert config.slope_heights == (30, 25, 20, 15, 10, 5)
        assert config.bus_heights == (20, 15, 10)

    def test_longer_slope_distances_are_accepted(self) -> None:
        config = PreprocessingConfig(slope_distances=(200, 160, 100, 80, 60, 40))
        assert len(config.slope_distances) == 6

    def test_zero_endpoint_distance_falls_back(self) -> None:
        assert PreprocessingConfig(slope_endpoint_dist=0).slope_endpoint_dist == 20.0

    @pytest.mark.parametrize("grades", ["", "XYZ", "ABCDE"])
    def test_invalid_grades_reset_to_all(self, grades: str) -> None:
        assert not grades_are_valid(grades)
        assert PreprocessingConfig(qualifying_grades=grades).qualifying_grades == "ABCD"

    def test_grades_are_normalized(self) -> None:
        assert PreprocessingConfig(qualifying_grades=" ab ").qualifying_grades == "AB"

    def test_search_radii_include_margin(self) -> None:
        config = PreprocessingConfig()
        assert config.max_lift_distance > 200
        assert config.slope_endpoint_threshold > 20

    def test_relative_output_paths(self, tmp_path: Path) -> None:
        config = PreprocessingConfig(folder_out=tmp_path, log_file="run.log")
        assert config.log_path == tmp_path / "run.log"
        assert config.results_path.parent == tmp_path
        assert config.output_path("merged") == tmp_path / "merged.geojson"


class TestConfigFile:
    """parse_config_text and load_config."""

    def test_keys(self) -> None:
        config = parse_config_text(
            "\n".join(
                [
                    "# thresholds",
                    "folder_in = input",
                    "lifts_dist = 100, 80, 60, 40",
                    "slopes_endpoint = 15",
                    "slopes_midpoint = 50, 8",
                    "link_grades = abc",
                    "srid = 31254",
                    "output_candidates = true",
                ]
            )
        )
        assert config.folder_in == Path("input")
        assert config.lift_distances == (100.0, 80.0, 60.0, 40.0)
        assert config.slope_endpoint_dist == 15.0
        assert config.slope_midpoint_dist == (50.0, 8.0)
        assert config.qualifying_grades == "ABC"
        assert config.srid == 31254
        assert config.output_candidates

    @pytest.mark.parametrize("raw, expected", [("A, B, C", "ABC"), ("a,b", "AB"), ("ABCD", "ABCD")])
    def test_grades_may_be_comma_separated(self, raw: str, expected: str) -> None:
        assert parse_config_text(f"link_grades = {raw}").qualifying_grades == expected

    def test_missing_grades_means_all_grades(self) -> None:
        assert parse_config_text("lifts_dist = 200, 160, 95, 50").qualifying_grades == "ABCD"

    def test_malformed_values_fall_back(self) -> None:
        config = parse_config_text("lifts_dist = far, away\nslopes_endpoint = 0\nlink_grades = AB")
        assert config.lift_distances == (200, 160, 95, 50)
        assert config.slope_endpoint_dist == 20.0

    def test_unknown_keys_are_collected(self) -> None:
        config = parse_config_text("colour = blue\nlink_grades = AB\nno equals sign")
        assert config.unknown_keys == ["colour"]

    def test_load_without_path_uses_defaults(self) -> None:
        assert load_config(None) == PreprocessingConfig()

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.properties")

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.properties"
        path.write_text("link_grades = A\nbus_dist = 300, 150, 50\n", encoding="utf-8")
        config = load_config(path)
        assert config.qualifying_grades == "A"
        assert config.bus_distances == (300.0, 150.0, 50.0)


class TestFeatureIO:
    """read_features and write_features."""

    def test_read_keeps_z_and_properties(self, tmp_path: Path) -> None:
        path = write_collection(
            tmp_path / "lifts.geojson",
            [geojson_line([(0, 0, 10000), (10, 0, 12000)], XML_GID="1", XML_TYPE="lifts")],
        )
        features = read_features(path)
        assert len(features) == 1
        assert features[0].start.xyz == (0.0, 0.0, 10000.0)
        assert list(features[0].attributes) == ["XML_GID", "XML_TYPE"]

    def test_features_without_geometry_are_skipped(self, tmp_path: Path) -> None:
        path = write_collection(
            tmp_path / "stops.geojson",
            [geojson_point((1, 2, 3), PT_ID="a"), {"type": "Feature", "properties": {}, "geometry": None}],
        )
        assert [f["PT_ID"] for f in read_features(path)] == ["a"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_features(tmp_path / "nothing.geojson")

    def test_not_a_feature_collection(self, tmp_path: Path) -> None:
        path = tmp_path / "point.geojson"
        path.write_text(json.dumps({"type": "Point", "coordinates": [0, 0]}), encoding="utf-8")
        with pytest.raises(ValueError):
            read_features(path)

    def test_write_then_read(self, tmp_path: Path) -> None:
        feature = Feature(geometry=LineString([(0, 0, 5), (3, 4, 6)]), attributes={"r_id": 100001001, "length": 5.0})
        path = write_features([feature], tmp_path / "out" / "merged.geojson", srid=31254)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["crs"]["properties"]["name"] == "EPSG:31254"
        (read,) = read_features(path)
        assert read.end.xyz == (3.0, 4.0, 6.0)
        assert read["r_id"] == 100001001

    def test_no_crs_without_srid(self, tmp_path: Path) -> None:
        path = write_features([], tmp_path / "empty.geojson")
        assert "crs" not in json.loads(path.read_text(encoding="utf-8"))


class TestResultLog:
    """ResultLog - fixed-width stage report."""

    def test_stages_are_appended(self, tmp_path: Path) -> None:
        log = ResultLog(tmp_path / "results.txt")
        log.clear()
        link = Link(
            start=Coordinate(0.0, 0.0, 15000.0),
            end=Coordinate(30.0, 0.0, 14950.0),
            link_type=LinkType.LIFT_LINK,
            grade=Grade.A,
            attributes={"r_id": 200001001, "gid_start": "1", "gid_end": "2", "rate": "A"},
        )
        assert log.write_links("Lift links: 1", [link]) == 1
        assert log.write_links("Slope links: 0", []) == 0

        lines = log.path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "Lift links: 1"
        assert lines[2].split(",")[0].strip() == "200001001"
        assert lines[2].split(",")[-1].strip() == "A"
        assert lines[3] == "Slope links: 0"

    def test_clear_starts_a_new_report(self, tmp_path: Path) -> None:
        log = ResultLog(tmp_path / "results.txt")
        log.write_candidates("Stage", [])
        log.clear()
        assert log.path.read_text(encoding="utf-8") == ""
