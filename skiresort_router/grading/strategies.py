"""Grading strategies - Rule tables mapping (length, height) to a grade.

Each strategy is a pure function of the connection length in meters, its
height difference in meters and the active configuration. Thresholds are read
from the configuration arrays (descending order), never hardcoded, so index 0
is always the largest distance/height.

Grading is total: any combination outside the documented bands yields E.
"""

import math
from typing import TYPE_CHECKING, Callable

from skiresort_router.constants import MatchingConfig
from skiresort_router.grading.grades import Grade, LinkType

if TYPE_CHECKING:
    from skiresort_router.core.config import PreprocessingConfig

GradingStrategy = Callable[[float, float, "PreprocessingConfig"], Grade]


def _grade_by_height(height: float, thresholds: tuple[float, ...], grades: tuple[Grade, ...]) -> Grade:
    """First grade whose height threshold is not exceeded, else E."""
    for threshold, label in zip(thresholds, grades):
        if height <= threshold:
            return label
    return Grade.E


def grade_lift_link(length: float, height: float, config: "PreprocessingConfig") -> Grade:
    """Grade a lift-to-lift link.

    Short links (two innermost bands) tolerate up to lift_heights[0] of climb,
    longer links must stay within lift_heights[2].

    Args:
        length: 2D link length in meters
        height: Signed height difference in meters
        config: Active configuration (lift_distances, lift_heights)

    Returns:
        Grade A-D, or E if outside every band.
    """
    d = config.lift_distances
    h = config.lift_heights

    if length < d[2]:
        return _grade_by_height(height, (h[1], h[0]), (Grade.A, Grade.B))
    if length < d[1]:
        return _grade_by_height(height, (h[3], h[2]), (Grade.B, Grade.C))
    if length <= d[0]:
        return _grade_by_height(height, (h[3], h[2]), (Grade.B, Grade.D))
    return Grade.E


def grade_slope_lift(length: float, height: float, config: "PreprocessingConfig") -> Grade:
    """Grade a slope-to-lift link.

    Args:
        length: 2D link length in meters
        height: Signed height difference in meters
        config: Active configuration (slope_distances, slope_heights)

    Returns:
        Grade A-D, or E if outside every band.
    """
    d = config.slope_distances
    h = config.slope_heights

    if length < d[3]:
        if height <= h[3]:
            return Grade.A
        if height <= h[2]:
            return Grade.B
        return Grade.C
    if length < d[2]:
        return _grade_by_height(height, (h[4], h[3], h[1]), (Grade.A, Grade.B, Grade.D))
    if length < d[1]:
        return _grade_by_height(height, (h[5], h[4], h[1]), (Grade.B, Grade.C, Grade.D))
    if length <= d[0]:
        return _grade_by_height(height, (h[5], h[4]), (Grade.C, Grade.D))
    return Grade.E


def grade_slope_link(length: float, height: float, config: "PreprocessingConfig") -> Grade:
    """Grade a slope-to-slope link.

    Slope links must lead downhill or nearly level: the signed height is
    checked, a drop of 15 m or more is as unusable as a climb.
    """
    delete_at, level_max = MatchingConfig.SLOPE_LINK_HEIGHTS

    if height <= delete_at:
        return Grade.E
    if length < config.slope_midpoint_dist[1]:
        return Grade.A if height <= level_max else Grade.B
    if length <= config.slope_endpoint_dist:
        return Grade.B if height <= level_max else Grade.C
    return Grade.E


def grade_bus_link(length: float, height: float, config: "PreprocessingConfig") -> Grade:
    """Grade a bus stop link on whole meters of length and absolute height."""
    d = config.bus_distances
    heights = config.bus_heights
    length_m = math.floor(length)
    height_m = math.floor(abs(height))
    height_thresholds = (heights[2], heights[1], heights[0])

    if length_m <= d[2]:
        return _grade_by_height(height_m, height_thresholds, (Grade.A, Grade.B, Grade.B))
    if length_m <= d[1]:
        return _grade_by_height(height_m, height_thresholds, (Grade.A, Grade.B, Grade.C))
    if length_m <= d[0]:
        return _grade_by_height(height_m, height_thresholds, (Grade.B, Grade.D, Grade.D))
    return Grade.E


GRADING_STRATEGIES: dict[LinkType, GradingStrategy] = {
    LinkType.LIFT_LINK: grade_lift_link,
    LinkType.SLOPE_LIFT: grade_slope_lift,
    LinkType.SLOPE_LINK: grade_slope_link,
    LinkType.BUS_LINK: grade_bus_link,
}
assert set(GRADING_STRATEGIES) == set(LinkType)


def grade(link_type: LinkType, length: float, height: float, config: "PreprocessingConfig") -> Grade:
    """Dispatch to the rule table of ``link_type``."""
    return GRADING_STRATEGIES[link_type](length, height, config)
