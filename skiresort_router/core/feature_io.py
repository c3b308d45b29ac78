"""GeoJSON exchange of features.

Reads and writes FeatureCollections. Geometries keep their z values
(elevation in decimeters), properties become the feature attributes in file
order.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from shapely.geometry import mapping, shape

from skiresort_router.model.feature import Feature

logger = logging.getLogger(__name__)


def read_features(path: Path) -> list[Feature]:
    """Read all features of a GeoJSON FeatureCollection.

    Args:
        path: GeoJSON file

    Returns:
        Features in file order. Features without geometry are skipped.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a FeatureCollection.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Feature file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if data.get("type") != "FeatureCollection":
        raise ValueError(f"{path.name} is not a GeoJSON FeatureCollection")

    features = []
    for index, item in enumerate(data.get("features", [])):
        if not item.get("geometry"):
            logger.warning(f"{path.name}: feature {index} has no geometry - skipped")
            continue
        features.append(Feature(geometry=shape(item["geometry"]), attributes=dict(item.get("properties") or {})))

    logger.info(f"Read {len(features)} features from {path.name}")
    return features


def write_features(features: Iterable[Feature], path: Path, srid: Optional[int] = None) -> Path:
    """Write features as a GeoJSON FeatureCollection.

    Args:
        features: Features to write
        path: Target file, parent directories are created
        srid: EPSG code written as named CRS (omitted if falsy)

    Returns:
        The written path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    collection: dict = {"type": "FeatureCollection"}
    if srid:
        collection["crs"] = {"type": "name", "properties": {"name": f"EPSG:{srid}"}}
    collection["features"] = [
        {"type": "Feature", "properties": feature.attributes, "geometry": mapping(feature.geometry)}
        for feature in features
    ]

    with open(path, "w", encoding="utf-8") as f:
        json.dump(collection, f, indent=2, default=str)
    logger.info(f"Wrote {len(collection['features'])} features to {path}")
    return path
