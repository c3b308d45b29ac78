"""ResultLog - Append-only text report of candidates and links per stage.

Each stage appends a header line followed by one fixed-width line per
candidate or link, so runs with different thresholds can be compared with a
plain diff.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from skiresort_router.model.candidate import Candidate
    from skiresort_router.model.link import Link

logger = logging.getLogger(__name__)

CANDIDATE_COLUMNS = "##, GID_START, GID_END, HEIGHT_DIF, DIST"
LINK_COLUMNS = "%5s  , %s, %8s, %6s, %s, %6s" % ("R_ID", "GID_START", "GID_END", "DIST", "HEIGHT_DIF", "RATE")


class ResultLog:
    """Appends stage results to a text file.

    Attributes:
        path: Report file, created on first write
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def clear(self) -> None:
        """Start a new report (called once at pipeline start)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

    def _append(self, lines: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    def write_candidates(self, header: str, candidates: Iterable["Candidate"]) -> int:
        """Append one line per candidate: number, ids, height difference, distance.

        Returns:
            Number of candidate lines written.
        """
        lines = [header, CANDIDATE_COLUMNS]
        for number, cand in enumerate(candidates, start=1):
            lines.append("%-3d, %8s, %8s, %8.2f, %6.2f" % (number, cand.start_id, cand.end_id, cand.height_diff, cand.distance))
        self._append(lines)
        return len(lines) - 2

    def write_links(self, header: str, links: Iterable["Link"]) -> int:
        """Append one line per link: r_id, ids, distance, height difference, grade.

        Returns:
            Number of link lines written.
        """
        lines = [header, LINK_COLUMNS]
        for link in links:
            lines.append(
                "%6s, %9s, %8s, %6.2f, %9.2f, %6s"
                % (link.r_id, link.gid_start, link.gid_end, link.distance, link.height_diff, link.rate)
            )
        self._append(lines)
        return len(lines) - 2
