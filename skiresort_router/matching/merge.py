"""Preparing features for the merged routing network.

- split_multiline_slopes: one single-part slope per line part, with numeric difficulty
- lifts_to_merge: lifts as straight valley-to-mountain edges
- prepare_links_to_merge: qualifying links with routing costs
- merge_features: concatenation in network order
"""

import logging
import math
from typing import Any, Iterable

from shapely.geometry import LineString, MultiLineString

from skiresort_router.constants import AttributeNames, CostConfig, DifficultyConfig, FeatureTypes, RidPrefixes
from skiresort_router.matching.base import LineFeature
from skiresort_router.matching.segments import lift_attributes, network_attributes, slope_costs
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Link, LinkType
from skiresort_router.model.rid_allocator import RidAllocator

logger = logging.getLogger(__name__)

SLOPE_ATTRIBUTES = (
    AttributeNames.TYPE,
    AttributeNames.REGION,
    AttributeNames.AREA,
    AttributeNames.GID,
)


# =============================================================================
# SLOPES
# =============================================================================


def difficulty_from_label(label: Any) -> int:
    """Numeric difficulty from a label such as "Rot (mittelschwer)"."""
    text = str(label or "")
    for name, difficulty in DifficultyConfig.LABELS.items():
        if name in text:
            return difficulty
    return DifficultyConfig.DEFAULT


def _is_closed(line: LineString) -> bool:
    """Loop-shaped part: first and last vertex coincide (on the meter grid)."""
    first, last = line.coords[0], line.coords[-1]
    if first[0] == last[0] and first[1] == last[1]:
        return True
    return math.floor(first[0]) == math.floor(last[0]) and math.floor(first[1]) == math.floor(last[1])


def split_multiline_slopes(slopes: Iterable[Feature]) -> list[Feature]:
    """Turn every line part of every slope into its own slope feature.

    Closed parts are dropped since no direction can be derived from them,
    and exact geometric duplicates are removed.

    Args:
        slopes: Slope features with LineString or MultiLineString geometry

    Returns:
        Single-part slopes with XML_TYPE, DE_GR_L_0, DE_GR_L_1, XML_GID and difficulty.
    """
    result: list[Feature] = []
    closed = 0
    for slope in slopes:
        geometry = slope.geometry
        if isinstance(geometry, MultiLineString):
            parts = list(geometry.geoms)
        elif isinstance(geometry, LineString):
            parts = [geometry]
        else:
            logger.warning(f"Slope {slope.get(AttributeNames.GID)}: unsupported geometry {geometry.geom_type} - skipped")
            continue

        attributes = {name: slope.get(name) for name in SLOPE_ATTRIBUTES}
        attributes[AttributeNames.DIFFICULTY] = difficulty_from_label(slope.get(AttributeNames.DIFFICULTY_LABEL))
        for part in parts:
            if len(part.coords) < 2 or _is_closed(part):
                closed += 1
                continue
            result.append(Feature(geometry=part, attributes=dict(attributes)))

    unique: list[Feature] = []
    for slope in result:
        if any(slope.geometry.equals_exact(other.geometry, 0.0) for other in unique):
            continue
        unique.append(slope)

    if closed:
        logger.warning(f"Dropped {closed} closed slope parts")
    logger.info(f"Split slopes: {len(unique)} single-part slopes ({len(result) - len(unique)} duplicates removed)")
    return unique


# =============================================================================
# LIFTS AND LINKS
# =============================================================================


def lifts_to_merge(lifts: Iterable[Feature], rid_allocator: RidAllocator) -> list[Feature]:
    """Straight valley-to-mountain edges with lift routing costs."""
    merged = []
    for lift in lifts:
        prepared = LineFeature.from_feature(lift)
        line = LineString([prepared.lower.xyz, prepared.upper.xyz])
        r_id = rid_allocator.allocate(RidPrefixes.LIFT, prepared.feature_id)
        de_name = f"{prepared.region}{prepared.area}"
        attributes = lift_attributes(de_name, float(line.length), prepared.lower, prepared.upper, r_id)
        merged.append(Feature(geometry=line, attributes=attributes))
    return merged


def link_network_attributes(link: Link) -> dict[str, Any]:
    """Routing attributes of a link by its type.

    Slope and slope-lift links are skied like easy slopes, lift links are
    walked like a lift transfer and bus links are part of the bus network.
    """
    length = link.distance
    de_name = link.attributes.get("de_name", "")
    if link.link_type in (LinkType.SLOPE_LINK, LinkType.SLOPE_LIFT):
        return network_attributes(
            xml_type=FeatureTypes.LINKS,
            de_name=de_name,
            difficulty=1,
            length=length,
            costs=slope_costs(1, length),
            reverse_cost=CostConfig.NOT_REVERSIBLE,
            start=link.start,
            end=link.end,
            r_id=link.r_id,
        )
    if link.link_type is LinkType.LIFT_LINK:
        xml_type, multiplier = FeatureTypes.LINKS, CostConfig.LIFT_MULTIPLIER
    else:
        xml_type, multiplier = FeatureTypes.BUSES, CostConfig.BUS_MULTIPLIER
    cost = multiplier * length
    return network_attributes(
        xml_type=xml_type,
        de_name=de_name,
        difficulty=0,
        length=length,
        costs=(cost, cost, cost),
        reverse_cost=CostConfig.REVERSE_MULTIPLIER * length,
        start=link.start,
        end=link.end,
        r_id=link.r_id,
    )


def prepare_links_to_merge(links: Iterable[Link], qualifying_grades: str) -> list[Feature]:
    """Network features of links whose grade qualifies for routing.

    Args:
        links: Retained links (grade A-D)
        qualifying_grades: Grades to include, e.g. "AB"

    Returns:
        2-vertex features with routing attributes, keeping the link r_id.
    """
    features = []
    for link in links:
        if link.rate not in qualifying_grades:
            continue
        features.append(Feature.line([link.start, link.end], link_network_attributes(link)))
    return features


def merge_features(*collections: Iterable[Feature]) -> list[Feature]:
    """Concatenate feature collections in the given order."""
    merged = [feature for collection in collections for feature in collection]
    logger.info(f"Merged network: {len(merged)} features")
    return merged
