"""PreprocessingConfig - Runtime thresholds and paths of one pipeline run.

The configuration is a plain value passed to every engine and grading
strategy. Malformed threshold arrays never abort a run: each falls back to
its hardcoded default from ThresholdDefaults.

Configuration files use ``key = value`` lines, ``#`` starts a comment line:

    folder_in = data
    lifts_dist = 200, 160, 95, 50
    link_grades = AB
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from skiresort_router.constants import DATA_DIR, OUTPUT_DIR, MatchingConfig, OutputConfig, ThresholdDefaults

logger = logging.getLogger(__name__)

VALID_GRADES = "ABCD"


def _thresholds(
    name: str,
    values: Optional[Sequence[float]],
    default: tuple[float, ...],
    exact: Optional[int] = None,
    minimum: Optional[int] = None,
) -> tuple[float, ...]:
    """Validate a threshold array length, fall back to ``default`` otherwise."""
    if values is None:
        return default
    values = tuple(values)
    if exact is not None and len(values) != exact:
        logger.debug(f"{name}: expected {exact} values, got {len(values)} - using defaults {default}")
        return default
    if minimum is not None and len(values) < minimum:
        logger.debug(f"{name}: expected at least {minimum} values, got {len(values)} - using defaults {default}")
        return default
    return values


def grades_are_valid(grades: str) -> bool:
    """A grade string must name at least one of A-D and at most four grades."""
    return any(g in grades for g in VALID_GRADES) and len(grades) <= len(VALID_GRADES)


@dataclass
class PreprocessingConfig:
    """Thresholds, options and paths for one preprocessing run.

    Threshold arrays are in meters and ordered from the largest value down.

    Attributes:
        folder_in: Directory holding the input datasets
        folder_out: Directory receiving all outputs
        file_in_slopes: Slope dataset (mandatory)
        file_in_lifts: Lift dataset (mandatory)
        file_in_bus: Bus line dataset (optional)
        file_in_stops: Bus stop dataset (optional)
        log_file: Optional log file, relative paths resolve against folder_out
        results_file: Result report, relative paths resolve against folder_out
        output_candidates: Also write raw candidates and intersections
        srid: Spatial reference of the datasets, written to outputs
        lift_distances: 4 distance bands for lift-to-lift links
        lift_heights: 4 height thresholds for lift-to-lift links
        slope_distances: 5 distance bands for slope-to-lift links
        slope_heights: 6 height thresholds for slope links
        bus_distances: 3 distance bands for bus links
        bus_heights: 3 height thresholds for bus links
        slope_endpoint_dist: Endpoint search radius between slopes
        slope_midpoint_dist: Midpoint search radius (lift to slope, slope to slope)
        qualifying_grades: Link grades routed in the merged network
    """

    folder_in: Path = DATA_DIR
    folder_out: Path = OUTPUT_DIR
    file_in_slopes: str = "slopes.geojson"
    file_in_lifts: str = "lifts.geojson"
    file_in_bus: Optional[str] = "bus_lines.geojson"
    file_in_stops: Optional[str] = "bus_stops.geojson"
    log_file: Optional[Path] = None
    results_file: Path = Path(OutputConfig.RESULTS_FILE)
    output_candidates: bool = False
    srid: int = 0

    lift_distances: tuple[float, ...] = ThresholdDefaults.LIFT_DISTANCES
    lift_heights: tuple[float, ...] = ThresholdDefaults.LIFT_HEIGHTS
    slope_distances: tuple[float, ...] = ThresholdDefaults.SLOPE_DISTANCES
    slope_heights: tuple[float, ...] = ThresholdDefaults.SLOPE_HEIGHTS
    bus_distances: Optional[tuple[float, ...]] = ThresholdDefaults.BUS_DISTANCES
    bus_heights: Optional[tuple[float, ...]] = ThresholdDefaults.BUS_HEIGHTS
    slope_endpoint_dist: float = ThresholdDefaults.SLOPE_ENDPOINT_DIST
    slope_midpoint_dist: tuple[float, ...] = ThresholdDefaults.SLOPE_MIDPOINT_DIST
    qualifying_grades: str = ThresholdDefaults.QUALIFYING_GRADES

    unknown_keys: list[str] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        """Normalize paths and fall back to defaults for malformed thresholds."""
        self.folder_in = Path(self.folder_in)
        self.folder_out = Path(self.folder_out)
        self.results_file = Path(self.results_file)
        if self.log_file is not None:
            self.log_file = Path(self.log_file)

        self.lift_distances = _thresholds("lift_distances", self.lift_distances, ThresholdDefaults.LIFT_DISTANCES, exact=4)
        self.lift_heights = _thresholds("lift_heights", self.lift_heights, ThresholdDefaults.LIFT_HEIGHTS, exact=4)
        self.slope_distances = _thresholds(
            "slope_distances", self.slope_distances, ThresholdDefaults.SLOPE_DISTANCES, minimum=5
        )
        self.slope_heights = _thresholds("slope_heights", self.slope_heights, ThresholdDefaults.SLOPE_HEIGHTS, exact=6)
        self.bus_distances = _thresholds("bus_distances", self.bus_distances, ThresholdDefaults.BUS_DISTANCES, exact=3)
        self.bus_heights = _thresholds("bus_heights", self.bus_heights, ThresholdDefaults.BUS_HEIGHTS, exact=3)
        self.slope_midpoint_dist = _thresholds(
            "slope_midpoint_dist", self.slope_midpoint_dist, ThresholdDefaults.SLOPE_MIDPOINT_DIST, exact=2
        )
        if not self.slope_endpoint_dist or self.slope_endpoint_dist <= 0:
            self.slope_endpoint_dist = ThresholdDefaults.SLOPE_ENDPOINT_DIST

        self.qualifying_grades = (self.qualifying_grades or "").strip().upper()
        if not grades_are_valid(self.qualifying_grades):
            logger.warning(
                f"Invalid link grades '{self.qualifying_grades}' - using {ThresholdDefaults.FALLBACK_GRADES}"
            )
            self.qualifying_grades = ThresholdDefaults.FALLBACK_GRADES

    # -------------------------------------------------------------------------
    # Search radii (first threshold plus margin)
    # -------------------------------------------------------------------------

    @property
    def max_lift_distance(self) -> float:
        return self.lift_distances[0] + MatchingConfig.THRESHOLD_MARGIN

    @property
    def max_slope_distance(self) -> float:
        return self.slope_distances[0] + MatchingConfig.THRESHOLD_MARGIN

    @property
    def max_bus_distance(self) -> float:
        return self.bus_distances[0] + MatchingConfig.THRESHOLD_MARGIN

    @property
    def slope_endpoint_threshold(self) -> float:
        return self.slope_endpoint_dist + MatchingConfig.THRESHOLD_MARGIN

    @property
    def lift_midpoint_threshold(self) -> float:
        return self.slope_midpoint_dist[0] + MatchingConfig.THRESHOLD_MARGIN

    @property
    def slope_midpoint_threshold(self) -> float:
        return self.slope_midpoint_dist[1] + MatchingConfig.THRESHOLD_MARGIN

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    @property
    def slopes_path(self) -> Path:
        return self.folder_in / self.file_in_slopes

    @property
    def lifts_path(self) -> Path:
        return self.folder_in / self.file_in_lifts

    @property
    def bus_lines_path(self) -> Optional[Path]:
        return self.folder_in / self.file_in_bus if self.file_in_bus else None

    @property
    def bus_stops_path(self) -> Optional[Path]:
        return self.folder_in / self.file_in_stops if self.file_in_stops else None

    @property
    def results_path(self) -> Path:
        return self.results_file if self.results_file.is_absolute() else self.folder_out / self.results_file

    @property
    def log_path(self) -> Optional[Path]:
        if self.log_file is None:
            return None
        return self.log_file if self.log_file.is_absolute() else self.folder_out / self.log_file

    def output_path(self, name: str) -> Path:
        """Output file for an OutputConfig name."""
        return self.folder_out / f"{name}{OutputConfig.EXTENSION}"


# =============================================================================
# CONFIGURATION FILE
# =============================================================================

_NUMBER_LISTS = {
    "lifts_dist": "lift_distances",
    "lifts_height_dif": "lift_heights",
    "slopes_dist": "slope_distances",
    "slopes_height_dif": "slope_heights",
    "bus_dist": "bus_distances",
    "bus_height_dif": "bus_heights",
    "slopes_midpoint": "slope_midpoint_dist",
}

_STRINGS = {
    "folder_in": "folder_in",
    "folder_out": "folder_out",
    "file_in_slopes": "file_in_slopes",
    "file_in_lifts": "file_in_lifts",
    "file_in_bus": "file_in_bus",
    "file_in_stops": "file_in_stops",
    "log_file": "log_file",
    "results_file": "results_file",
}


def _parse_numbers(key: str, raw: str) -> Optional[tuple[float, ...]]:
    try:
        return tuple(float(v) for v in raw.split(",") if v.strip())
    except ValueError:
        logger.warning(f"Config key '{key}' is not a number list: '{raw}' - using defaults")
        return None


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_config_text(text: str) -> PreprocessingConfig:
    """Parse ``key = value`` configuration text.

    A file without ``link_grades`` is treated as an empty grade string and
    therefore reset to all grades A-D.
    """
    values: dict = {"qualifying_grades": ""}
    unknown: list[str] = []

    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            logger.warning(f"Config line {line_no} ignored (no '='): {line}")
            continue
        key, raw = (part.strip() for part in line.split("=", 1))
        key = key.lower()

        if key in _NUMBER_LISTS:
            values[_NUMBER_LISTS[key]] = _parse_numbers(key, raw)
        elif key == "link_grades":
            values["qualifying_grades"] = "".join(part.strip().upper() for part in raw.split(","))
        elif key in _STRINGS:
            values[_STRINGS[key]] = raw
        elif key == "slopes_endpoint":
            numbers = _parse_numbers(key, raw)
            values["slope_endpoint_dist"] = numbers[0] if numbers else 0.0
        elif key == "srid":
            values["srid"] = int(raw) if raw.strip().lstrip("-").isdigit() else 0
        elif key == "output_candidates":
            values["output_candidates"] = _parse_bool(raw)
        else:
            unknown.append(key)

    if unknown:
        logger.warning(f"Unknown config keys ignored: {', '.join(unknown)}")
    return PreprocessingConfig(**values, unknown_keys=unknown)


def load_config(path: Optional[Path] = None) -> PreprocessingConfig:
    """Load the configuration file, or the hardcoded defaults if no path is given.

    Args:
        path: Properties file with ``key = value`` lines

    Returns:
        Validated PreprocessingConfig.

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist.
    """
    if path is None:
        logger.info("No configuration file given - using hardcoded defaults")
        return PreprocessingConfig()

    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info(f"Loading configuration from {path}")
    return parse_config_text(path.read_text(encoding="utf-8"))
