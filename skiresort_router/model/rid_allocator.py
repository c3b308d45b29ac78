"""RidAllocator - Mints the unique r_id of every link and segment.

One allocator is created per pipeline run and handed to every stage that
creates network features, so r_id values never collide across stages.

r_id layout: <prefix digit><feature number, 5 digits><sequence, 3 digits>
e.g. slope 42, second segment -> 100042002. A taken value is probed upwards.
"""

import logging
import zlib

from skiresort_router.constants import RidPrefixes

logger = logging.getLogger(__name__)


class RidAllocator:
    """Allocates pairwise distinct r_id values."""

    def __init__(self) -> None:
        self._assigned: set[int] = set()

    @staticmethod
    def feature_number(feature_id: object) -> int:
        """Numeric part of a feature identifier.

        Numeric ids (``"42"``, ``42``, ``42.0``) are used as is, any other id
        is mapped to a stable 5-digit checksum.
        """
        text = str(feature_id).strip()
        if text.endswith(".0"):
            text = text[:-2]
        if text.isdigit():
            return int(text)
        return zlib.crc32(text.encode("utf-8")) % 10**RidPrefixes.FEATURE_DIGITS

    def allocate(self, prefix: int, feature_id: object, sequence: int = 1) -> int:
        """Return a new r_id for the ``sequence``-th piece of ``feature_id``.

        Args:
            prefix: Category digit from RidPrefixes
            feature_id: Identifier of the owning feature
            sequence: 1-based piece number within the feature

        Returns:
            The composed r_id, or the next free value above it.
        """
        number = self.feature_number(feature_id)
        rid = int(
            f"{prefix}{number:0{RidPrefixes.FEATURE_DIGITS}d}{sequence:0{RidPrefixes.SEQUENCE_DIGITS}d}"
        )
        if rid in self._assigned:
            logger.debug(f"r_id {rid} already assigned - probing upwards")
        while rid in self._assigned:
            rid += 1
        self._assigned.add(rid)
        return rid

    def __contains__(self, rid: int) -> bool:
        return rid in self._assigned

    def __len__(self) -> int:
        return len(self._assigned)
