"""Link - A validated and graded connection between two features.

Links are flat records: the per-type behaviour (grading rules, r_id prefix,
routing costs) is selected by the ``link_type`` tag instead of subclasses.

Attribute order matters for the written datasets:
    r_id, de_name, gid_start, gid_end, length, height, rate
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from skiresort_router.constants import AttributeNames
from skiresort_router.grading.grades import Grade, LinkType
from skiresort_router.model.feature import Feature
from skiresort_router.model.point_pair import PointPair


@dataclass
class Link(PointPair):
    """A graded connection, ready for the merged network.

    Attributes:
        link_type: Which rule table graded this link
        grade: Assigned grade (E = discard)
        attributes: Ordered attribute map, r_id is 0 until assigned
    """

    link_type: LinkType = LinkType.LIFT_LINK
    grade: Grade = Grade.E
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def r_id(self) -> int:
        return self.attributes[AttributeNames.R_ID]

    @r_id.setter
    def r_id(self, value: int) -> None:
        self.attributes[AttributeNames.R_ID] = value

    @property
    def gid_start(self) -> Optional[str]:
        return self.attributes.get("gid_start")

    @property
    def gid_end(self) -> Optional[str]:
        return self.attributes.get("gid_end")

    @property
    def rate(self) -> str:
        return self.grade.value

    def to_feature(self) -> Feature:
        """2-vertex line feature carrying the link attributes."""
        return Feature.line([self.start, self.end], self.attributes)

    def __repr__(self) -> str:
        return (
            f"Link({self.link_type.value}, {self.gid_start}->{self.gid_end}, "
            f"len={self.distance:.1f}m, h={self.height_diff:.1f}m, grade={self.rate})"
        )
