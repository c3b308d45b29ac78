"""Shared pytest fixtures for skiresort_router tests.

Provides feature builders and a default configuration for all tests.

COORDINATE SYSTEM:
    Tests use small projected coordinates in meters around the origin.
    Elevations are given in decimeters as in the real datasets, so a z value
    of 10000 is an elevation of 1000 m.
"""

import json
from pathlib import Path
from typing import Optional

import pytest
from shapely.geometry import LineString, Point

from skiresort_router.constants import AttributeNames
from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.model.feature import Feature
from skiresort_router.model.rid_allocator import RidAllocator


# =============================================================================
# FEATURE BUILDERS
# =============================================================================


def make_line(gid: str, *coords: tuple[float, float, float], **attributes) -> Feature:
    """Line feature with XML_GID and optional extra attributes."""
    return Feature(geometry=LineString(coords), attributes={AttributeNames.GID: gid, **attributes})


def make_lift(gid: str, lower: tuple[float, float, float], upper: tuple[float, float, float]) -> Feature:
    """Lift from valley to mountain station."""
    return make_line(
        gid,
        lower,
        upper,
        **{AttributeNames.TYPE: "lifts", AttributeNames.REGION: "Zillertal", AttributeNames.AREA: "Mayrhofen"},
    )


def make_slope(gid: str, *coords: tuple[float, float, float], label: str = "Blau") -> Feature:
    """Slope in geometry order with a difficulty label."""
    return make_line(
        gid,
        *coords,
        **{
            AttributeNames.TYPE: "slopes",
            AttributeNames.REGION: "Zillertal",
            AttributeNames.AREA: "Mayrhofen",
            AttributeNames.DIFFICULTY_LABEL: label,
        },
    )


def make_stop(stop_id: str, x: float, y: float, z: Optional[float] = None) -> Feature:
    """Bus stop point, 2D when ``z`` is None."""
    geometry = Point(x, y) if z is None else Point(x, y, z)
    return Feature(
        geometry=geometry,
        attributes={
            AttributeNames.STOP_ID: stop_id,
            AttributeNames.STOP_NAME: f"Stop {stop_id}",
            AttributeNames.REGION: "Zillertal",
        },
    )


def make_bus_line(line_id: str, *coords: tuple[float, float, float]) -> Feature:
    return Feature(
        geometry=LineString(coords),
        attributes={AttributeNames.BUS_LINE_ID: line_id, AttributeNames.REGION: "Zillertal", AttributeNames.AREA: "Bus"},
    )


def write_collection(path: Path, features: list[dict]) -> Path:
    """Write raw GeoJSON feature dicts as a FeatureCollection."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}), encoding="utf-8")
    return path


def geojson_line(coords: list[tuple[float, float, float]], **properties) -> dict:
    return {"type": "Feature", "properties": properties, "geometry": {"type": "LineString", "coordinates": coords}}


def geojson_point(coords: tuple[float, ...], **properties) -> dict:
    return {"type": "Feature", "properties": properties, "geometry": {"type": "Point", "coordinates": list(coords)}}


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def config(tmp_path: Path) -> PreprocessingConfig:
    """Default thresholds, inputs and outputs inside the test's tmp folder."""
    return PreprocessingConfig(folder_in=tmp_path / "data", folder_out=tmp_path / "output")


@pytest.fixture
def rid_allocator() -> RidAllocator:
    return RidAllocator()


@pytest.fixture
def lift_pair() -> list[Feature]:
    """Lift 1 ends 30 m before lift 2 starts, 5 m higher.

    Lift 1: (0, 0) 1000 m -> (1000, 0) 1500 m
    Lift 2: (1030, 0) 1495 m -> (2000, 0) 2000 m
    """
    return [
        make_lift("1", lower=(0.0, 0.0, 10000.0), upper=(1000.0, 0.0, 15000.0)),
        make_lift("2", lower=(1030.0, 0.0, 14950.0), upper=(2000.0, 0.0, 20000.0)),
    ]
