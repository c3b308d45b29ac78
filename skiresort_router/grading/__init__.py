"""Grading rule tables for inferred links.

- Grade: Quality label A-D, E = discard
- LinkType: Tag selecting the rule table
- GRADING_STRATEGIES: LinkType -> pure grading function
"""

from skiresort_router.grading.grades import Grade, LinkType
from skiresort_router.grading.strategies import (
    GRADING_STRATEGIES,
    grade,
    grade_bus_link,
    grade_lift_link,
    grade_slope_lift,
    grade_slope_link,
)

__all__ = [
    "Grade",
    "LinkType",
    "GRADING_STRATEGIES",
    "grade",
    "grade_lift_link",
    "grade_slope_lift",
    "grade_slope_link",
    "grade_bus_link",
]
