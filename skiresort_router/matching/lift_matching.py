"""Lift-to-lift link inference.

Two lifts are connected when the top station of one is within walking
distance of the bottom station of the other. Every unordered pair of lifts is
checked once; the connection always runs from an upper station to a lower one.
"""

import itertools
import logging
import time
from typing import Optional

from skiresort_router.constants import RidPrefixes
from skiresort_router.core.config import PreprocessingConfig
from skiresort_router.core.result_log import ResultLog
from skiresort_router.matching.base import FeatureMatching, LineFeature, clean_duplicates
from skiresort_router.model.candidate import Candidate, CandidateType
from skiresort_router.model.feature import Feature
from skiresort_router.model.link import Link
from skiresort_router.model.rid_allocator import RidAllocator

logger = logging.getLogger(__name__)


class LiftLinkMatching(FeatureMatching):
    """Infers LiftLink connections between lift stations.

    Attributes:
        lifts: Prepared lift lines
        candidates: Deduplicated candidates of the last match() call
        links: Retained links of the last match() call
    """

    RID_PREFIX = RidPrefixes.LIFT

    def __init__(
        self,
        lifts: list[Feature],
        config: PreprocessingConfig,
        rid_allocator: RidAllocator,
        result_log: Optional[ResultLog] = None,
    ) -> None:
        super().__init__(config=config, rid_allocator=rid_allocator, result_log=result_log)
        self.lifts = [LineFeature.from_feature(lift) for lift in lifts]
        self.candidates: list[Candidate] = []
        self.links: list[Link] = []

    def find_candidates(self) -> list[Candidate]:
        """Candidates between station pairs closer than the first lift distance.

        For a pair (a, b) the top of b feeding the bottom of a is checked
        first; only if that fails the top of a feeding the bottom of b.
        """
        max_distance = self.config.max_lift_distance
        candidates = []

        for lift_a, lift_b in itertools.combinations(self.lifts, 2):
            region = f"{lift_a.region} - {lift_a.area}"
            if lift_a.lower.distance_to(lift_b.upper) < max_distance:
                candidates.append(
                    self.candidate(
                        start=lift_b.upper,
                        end=lift_a.lower,
                        candidate_type=CandidateType.LIFT_LINK,
                        start_id=lift_b.feature_id,
                        end_id=lift_a.feature_id,
                        region=region,
                    )
                )
            elif lift_a.upper.distance_to(lift_b.lower) < max_distance:
                candidates.append(
                    self.candidate(
                        start=lift_a.upper,
                        end=lift_b.lower,
                        candidate_type=CandidateType.LIFT_LINK,
                        start_id=lift_a.feature_id,
                        end_id=lift_b.feature_id,
                        region=region,
                    )
                )
        return clean_duplicates(candidates)

    def match(self) -> list[Link]:
        started = time.perf_counter()
        self.candidates = self.find_candidates()
        logger.info(
            f"Lift matching: {len(self.candidates)} candidates for {len(self.lifts)} lifts "
            f"in {time.perf_counter() - started:.2f}s"
        )
        self.links = self.create_links(self.candidates, "Lift links")
        return self.links
