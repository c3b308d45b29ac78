"""Data model classes for link inference and routing.

- Coordinate: Geometry atom (x, y, z in decimeters)
- Feature: Geometry plus ordered attributes, the unit of exchange
- PointPair: Directed coordinate pair with distance and height difference
- Candidate: Prospective connection found by a matching engine
- Link: Validated, graded connection
- RidAllocator: Mints unique r_id values for links and segments
"""

from skiresort_router.model.candidate import Candidate, CandidateType
from skiresort_router.model.coordinate import Coordinate
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Grade, Link, LinkType
from skiresort_router.model.point_pair import PointPair
from skiresort_router.model.rid_allocator import RidAllocator

__all__ = [
    "Coordinate",
    "Feature",
    "PointPair",
    "Candidate",
    "CandidateType",
    "Link",
    "LinkType",
    "Grade",
    "RidAllocator",
]
