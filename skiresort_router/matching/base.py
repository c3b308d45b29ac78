"""Shared behaviour of the lift, slope and bus matching engines.

Every engine follows the same shape:
1. Search candidates from endpoint distances and mid-point projections
2. Collapse duplicate candidates
3. Promote candidates to graded links, drop grade E
4. Assign r_id values from the shared RidAllocator
5. Report candidates and links to the result log
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from shapely.geometry import LineString

from skiresort_router.constants import AttributeNames
from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.core.geometry import LineGeometry
from skiresort_router.core.result_log import ResultLog
from skiresort_router.model.candidate import Candidate, CandidateType
from skiresort_router.model.coordinate import Coordinate
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Link
from skiresort_router.model.rid_allocator import RidAllocator

logger = logging.getLogger(__name__)


@dataclass
class LineFeature:
    """A line feature prepared for matching.

    Attributes:
        feature: Source feature
        feature_id: Identifier written as gid_start/gid_end
        line: Geometry as a single LineString
        lower: Endpoint with the lower elevation
        upper: Endpoint with the higher elevation
    """

    feature: Feature
    feature_id: str
    line: LineString
    lower: Coordinate
    upper: Coordinate

    @classmethod
    def from_feature(cls, feature: Feature, id_attribute: str = AttributeNames.GID) -> "LineFeature":
        """Prepare ``feature``, ordering its endpoints by elevation.

        Endpoints at equal elevation keep the geometry order (first vertex as
        lower) since no direction can be derived from the terrain.
        """
        line = LineGeometry.as_line(feature.geometry)
        feature_id = str(feature.get(id_attribute, ""))
        ordered = LineGeometry.ordered_endpoints(line)
        if ordered is None:
            coords = LineGeometry.coordinates(line)
            logger.warning(f"Feature {feature_id}: both endpoints at equal elevation - using geometry order")
            ordered = (coords[0], coords[-1])
        return cls(feature=feature, feature_id=feature_id, line=line, lower=ordered[0], upper=ordered[1])

    @property
    def region(self) -> str:
        return str(self.feature.get(AttributeNames.REGION, "") or "")

    @property
    def area(self) -> str:
        return str(self.feature.get(AttributeNames.AREA, "") or "")


def clean_duplicates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Collapse candidates with equal owners and equal 2D endpoints.

    The first occurrence wins and the input order is kept, so the operation
    is idempotent.
    """
    seen: set[tuple] = set()
    unique = []
    for cand in candidates:
        if cand.dedup_key in seen:
            continue
        seen.add(cand.dedup_key)
        unique.append(cand)
    return unique


class FeatureMatching(ABC):
    """Base class of the matching engines.

    Subclasses implement match() and use create_links() to turn their
    candidates into retained, r_id-tagged links.

    Attributes:
        config: Active configuration
        rid_allocator: Shared r_id source of the pipeline run
        result_log: Optional report receiving candidates and links
    """

    RID_PREFIX: int

    def __init__(
        self,
        config: PreprocessingConfig,
        rid_allocator: RidAllocator,
        result_log: Optional[ResultLog] = None,
    ) -> None:
        self.config = config
        self.rid_allocator = rid_allocator
        self.result_log = result_log

    @abstractmethod
    def match(self) -> list[Link]:
        """Run the candidate search and return the retained links."""

    def create_links(self, candidates: list[Candidate], title: str) -> list[Link]:
        """Promote candidates to links, drop invalid ones and grade E.

        Args:
            candidates: Deduplicated candidates of one stage
            title: Stage name used in logs and the result report

        Returns:
            Retained links with assigned r_id, in candidate order.
        """
        links = []
        dropped_invalid = 0
        dropped_grade = 0
        for cand in candidates:
            link = cand.create_link()
            if link is None:
                dropped_invalid += 1
                continue
            if not link.grade.is_retained:
                dropped_grade += 1
                logger.debug(f"Dropped {link}")
                continue
            link.r_id = self.rid_allocator.allocate(self.RID_PREFIX, link.gid_start)
            links.append(link)

        logger.info(
            f"{title}: {len(candidates)} candidates -> {len(links)} links "
            f"({dropped_invalid} invalid, {dropped_grade} graded E)"
        )
        if self.result_log is not None:
            self.result_log.write_candidates(f"{title} candidates: {len(candidates)}", candidates)
            self.result_log.write_links(f"{title}: {len(links)}", links)
        return links

    def candidate(
        self,
        start: Coordinate,
        end: Coordinate,
        candidate_type: CandidateType,
        start_id: str,
        end_id: str,
        region: str,
    ) -> Candidate:
        """Candidate bound to this engine's configuration."""
        return Candidate(
            start=start,
            end=end,
            candidate_type=candidate_type,
            start_id=start_id,
            end_id=end_id,
            region=region,
            config=self.config,
        )


def links_to_features(links: Iterable[Link]) -> list[Feature]:
    return [link.to_feature() for link in links]


def candidates_to_features(candidates: Iterable[Candidate]) -> list[Feature]:
    """Line features of all candidates with a non-zero length."""
    return [cand.to_feature() for cand in candidates if not cand.is_degenerate]
