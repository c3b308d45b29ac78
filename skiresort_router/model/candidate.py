"""Candidate - A prospective connection between two features.

Candidates are produced by the matching engines from spatial proximity and
live for one matching pass. A valid candidate is promoted to a graded Link;
Intersection pseudo-candidates only mark topology vertices and never become
links.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from skiresort_router.constants import AttributeNames, MatchingConfig
from skiresort_router.grading.strategies import GRADING_STRATEGIES
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Link, LinkType
from skiresort_router.model.point_pair import PointPair

if TYPE_CHECKING:
    from skiresort_router.core.config import PreprocessingConfig

logger = logging.getLogger(__name__)


class CandidateType(str, Enum):
    """Kind of connection a candidate proposes."""

    LIFT_LINK = "LiftLink"
    SLOPE_LIFT = "SlopeLift"
    SLOPE_LINK = "Slope2Slope"
    BUS_LINK = "BusLink"
    INTERSECTION = "Intersection"

    @property
    def link_type(self) -> Optional[LinkType]:
        """Matching link tag, None for intersection markers."""
        return _LINK_TYPES.get(self)


_LINK_TYPES = {
    CandidateType.LIFT_LINK: LinkType.LIFT_LINK,
    CandidateType.SLOPE_LIFT: LinkType.SLOPE_LIFT,
    CandidateType.SLOPE_LINK: LinkType.SLOPE_LINK,
    CandidateType.BUS_LINK: LinkType.BUS_LINK,
}


@dataclass
class Candidate(PointPair):
    """A not yet validated connection.

    Attributes:
        candidate_type: Kind of connection
        start_id: Identifier of the feature the connection starts at
        end_id: Identifier of the feature the connection ends at
        region: Human-readable name written as de_name
        config: Active configuration, source of the height threshold
        max_height_diff: Allowed height difference (first threshold + margin)
    """

    candidate_type: CandidateType = CandidateType.INTERSECTION
    start_id: str = ""
    end_id: str = ""
    region: str = ""
    config: Optional["PreprocessingConfig"] = field(default=None, repr=False, compare=False)
    max_height_diff: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        self.max_height_diff = self._max_height_diff()

    def _max_height_diff(self) -> float:
        if self.config is None or self.candidate_type is CandidateType.INTERSECTION:
            return 0.0
        first_threshold = {
            CandidateType.LIFT_LINK: self.config.lift_heights[0],
            CandidateType.SLOPE_LIFT: self.config.slope_heights[0],
            CandidateType.SLOPE_LINK: self.config.slope_heights[5],
            CandidateType.BUS_LINK: self.config.bus_heights[0],
        }[self.candidate_type]
        return first_threshold + MatchingConfig.THRESHOLD_MARGIN

    @property
    def is_valid(self) -> bool:
        """Height difference within the allowed band.

        Slope-to-slope links compare the signed difference so any descent
        is acceptable; all other types compare the absolute difference.
        """
        if self.candidate_type is CandidateType.INTERSECTION:
            return False
        if self.candidate_type is CandidateType.SLOPE_LINK:
            return self.height_diff < self.max_height_diff
        return abs(self.height_diff) < self.max_height_diff

    def create_link(self) -> Optional[Link]:
        """Promote to a graded Link.

        Returns:
            The Link with grade and attributes (r_id still 0), or None if the
            candidate is invalid.
        """
        link_type = self.candidate_type.link_type
        if link_type is None or not self.is_valid:
            logger.debug(f"Dropped candidate {self}")
            return None

        length = self.distance
        height = self.height_diff
        grade = GRADING_STRATEGIES[link_type](length, height, self.config)
        attributes: dict[str, Any] = {
            AttributeNames.R_ID: 0,
            "de_name": self.region,
            "gid_start": self.start_id,
            "gid_end": self.end_id,
            "length": length,
            "height": height,
            "rate": grade.value,
        }
        return Link(start=self.start, end=self.end, link_type=link_type, grade=grade, attributes=attributes)

    @property
    def dedup_key(self) -> tuple:
        """Identity used for deduplication: owners and 2D endpoints."""
        return (self.start_id, self.end_id, self.start.xy, self.end.xy)

    def to_feature(self) -> Feature:
        """2-vertex line feature for the candidate outputs."""
        return Feature.line(
            [self.start, self.end],
            {
                "de_name": self.region,
                "gid_start": self.start_id,
                "gid_end": self.end_id,
                "length": self.distance,
                "heightDif": self.height_diff,
            },
        )

    def __repr__(self) -> str:
        return (
            f"Candidate({self.candidate_type.value}, {self.start_id}->{self.end_id}, "
            f"len={self.distance:.1f}m, h={self.height_diff:.1f}m)"
        )
