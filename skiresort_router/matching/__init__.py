"""Link inference engines and network preparation.

- LiftLinkMatching: Lift top station to lift bottom station
- SlopeLinkMatching: Slopes to lifts and slopes to slopes, slope simplification
- BusLinkMatching: Bus stops to lift stations and slope ends, bus simplification
- merge: Multi-part slope splitting and assembly of the routing network
"""

from skiresort_router.matching.base import FeatureMatching, LineFeature, candidates_to_features, links_to_features
from skiresort_router.matching.bus_matching import BusLinkMatching
from skiresort_router.matching.lift_matching import LiftLinkMatching
from skiresort_router.matching.merge import (
    lifts_to_merge,
    merge_features,
    prepare_links_to_merge,
    split_multiline_slopes,
)
from skiresort_router.matching.segments import SplitResult
from skiresort_router.matching.slope_matching import SlopeLinkMatching

__all__ = [
    "FeatureMatching",
    "LineFeature",
    "LiftLinkMatching",
    "SlopeLinkMatching",
    "BusLinkMatching",
    "SplitResult",
    "split_multiline_slopes",
    "lifts_to_merge",
    "prepare_links_to_merge",
    "merge_features",
    "links_to_features",
    "candidates_to_features",
]
