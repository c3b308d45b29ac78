"""Configuration constants for Ski Resort Router.

Hardcoded defaults and tuning parameters are centralized here. Runtime
thresholds live in PreprocessingConfig (core/config.py), which falls back to
the defaults below whenever a configured array is missing or malformed.

Classes:
    RidPrefixes: Leading digit of r_id per feature category
    FeatureTypes: XML_TYPE tags used by the graph builder
    AttributeNames: Attribute keys of the input datasets
    ThresholdDefaults: Default distance/height arrays for grading
    MatchingConfig: Fixed geometric tolerances of the matching engines
    DifficultyConfig: Slope difficulty label mapping
    CostConfig: Routing cost multipliers per feature category
    GraphConfig: Graph diagnostics parameters
    OutputConfig: Output file names
"""

from pathlib import Path

# Package root directory (where skiresort_router/ lives)
PACKAGE_DIR = Path(__file__).parent

# Project root directory (parent of skiresort_router/)
PROJECT_ROOT = PACKAGE_DIR.parent

# Input datasets (not shipped with the package)
DATA_DIR = PROJECT_ROOT / "data"

# Output directory for links, segments and the merged network
OUTPUT_DIR = PROJECT_ROOT / "output"


class RidPrefixes:
    """Leading digit of r_id values per feature category."""

    SLOPE = 1  # Slope segments, slope-to-slope and slope-to-lift links
    LIFT = 2  # Lifts and lift-to-lift links
    BUS = 3  # Bus segments and bus links

    FEATURE_DIGITS = 5  # Zero-padded feature number
    SEQUENCE_DIGITS = 3  # Zero-padded segment sequence number


class FeatureTypes:
    """XML_TYPE tags that decide edge orientation in the graph."""

    SLOPES = "slopes"
    LIFTS = "lifts"
    BUSES = "buses"
    LINKS = "links"

    ALL = (SLOPES, LIFTS, BUSES, LINKS)


class AttributeNames:
    """Attribute keys used by the input datasets and the merged network."""

    GID = "XML_GID"  # Identifier of lifts and slopes
    TYPE = "XML_TYPE"
    REGION = "DE_GR_L_0"
    AREA = "DE_GR_L_1"
    DIFFICULTY_LABEL = "DE_GR_L_3"  # e.g. "Rot (mittelschwer)"
    STOP_NAME = "DE_NAME"
    STOP_ID = "PT_ID"
    BUS_LINE_ID = "DB_ID"
    DIFFICULTY = "difficulty"
    R_ID = "r_id"


class ThresholdDefaults:
    """Default grading thresholds (meters), descending order.

    Elevation differences are in meters, distances are 2D ground distances.
    """

    LIFT_DISTANCES = (200, 160, 95, 50)
    LIFT_HEIGHTS = (35, 10, 5, 1)

    SLOPE_DISTANCES = (160, 100, 80, 60, 40)
    SLOPE_HEIGHTS = (30, 25, 20, 15, 10, 5)

    BUS_DISTANCES = (350, 200, 100)
    BUS_HEIGHTS = (20, 15, 10)

    SLOPE_ENDPOINT_DIST = 20.0  # Endpoint-to-endpoint slope connections
    SLOPE_MIDPOINT_DIST = (60.0, 10.0)  # (lift to slope, slope to slope) midpoint search

    QUALIFYING_GRADES = "AB"  # Grades routed when no config file is given
    FALLBACK_GRADES = "ABCD"  # Reset value for an invalid grade string

    assert len(LIFT_DISTANCES) == 4 and len(LIFT_HEIGHTS) == 4
    assert len(SLOPE_DISTANCES) >= 5 and len(SLOPE_HEIGHTS) == 6
    assert len(BUS_DISTANCES) == 3 and len(BUS_HEIGHTS) == 3
    assert len(SLOPE_MIDPOINT_DIST) == 2


class MatchingConfig:
    """Fixed geometric tolerances of the matching engines."""

    # Added to the first configured threshold of every search radius
    THRESHOLD_MARGIN = 0.5

    # Elevation z values are stored as decimeters
    ELEVATION_SCALE = 10.0

    # Lift endpoints projected onto a slope must land this far from the slope ends
    LIFT_MIDPOINT_MIN_ENDPOINT_DIST_M = 100.0

    # Douglas-Peucker tolerance for multi-vertex slope intersections
    INTERSECTION_SIMPLIFY_TOLERANCE = 100.0

    # Slope-to-slope signed height thresholds: delete at or below, better grade at or below.
    # The climb is capped by slope_heights[5] through candidate validity.
    SLOPE_LINK_HEIGHTS = (-15, 1)

    # Slope-to-lift redundancy reduction
    REDUNDANT_HEIGHT_M = 15.0
    REDUNDANT_LENGTH_DIFF_M = 30.0
    REDUNDANT_FAR_DIST_M = 60.0

    # Simplification: spatial index search buffer and on-line tolerances
    INDEX_SEARCH_BUFFER_M = 5.0
    INTERSECTION_ON_LINE_TOL = 0.001
    LINK_ON_LINE_TOL = 0.05
    BUS_STOP_MAX_DIST_M = 50.0

    # Minimal distance between consecutive split points
    SLOPE_SPLIT_TOL = 0.001
    BUS_SPLIT_TOL = 1.0


class DifficultyConfig:
    """Slope difficulty from the DE_GR_L_3 label (Austrian piste colors)."""

    LABELS = {
        "Blau": 1,  # Easy
        "Rot": 2,  # Intermediate
        "Schwarz": 3,  # Difficult
    }
    DEFAULT = 1


class CostConfig:
    """Routing cost multipliers applied to the segment length.

    cost_1..3 model three skier profiles (beginner, intermediate, expert).
    """

    SLOPE_MULTIPLIERS = {
        1: (1, 10, 15),
        2: (5, 1, 5),
        3: (15, 10, 1),
    }
    SLOPE_DEFAULT_MULTIPLIERS = (1, 1, 1)
    assert all(len(m) == 3 for m in SLOPE_MULTIPLIERS.values())

    LIFT_MULTIPLIER = 15
    BUS_MULTIPLIER = 20
    REVERSE_MULTIPLIER = 50  # rev_c of reversible features (lifts, buses)
    NOT_REVERSIBLE = -1  # rev_c of downhill-only features

    COST_MODES = (0, 1, 2, 3)  # 0 = length, n = cost_n


class GraphConfig:
    """Graph diagnostics parameters."""

    DUPLICATE_NODE_TOLERANCE_M = 0.001


class OutputConfig:
    """Output file names (GeoJSON) relative to the output folder."""

    EXTENSION = ".geojson"

    SPLIT_SLOPES = "splitSlopes/splitted_slopes"
    LIFT_LINKS = "links/lift_to_lift"
    SLOPE_LIFT_LINKS = "links/lift_to_slope"
    SLOPE_LINKS = "links/slope_to_slope"
    BUS_LINKS = "links/bus_links"
    SIMPLIFIED_SLOPES = "links/simplified_slopes"
    SIMPLIFIED_BUSES = "links/simplified_buses"
    SEGMENTS_SLOPES = "segments_slopes"
    SEGMENTS_BUSES = "segments_buses"
    MERGED = "merged_pivots"

    LIFT_CANDIDATES = "candidates/lift_candidates"
    SLOPE_LIFT_CANDIDATES = "candidates/slope_lift_candidates"
    SLOPE_CANDIDATES = "candidates/slope_candidates"
    BUS_CANDIDATES = "candidates/bus_candidates"
    SLOPE_INTERSECTIONS = "candidates/slope_intersections"

    RESULTS_FILE = "results.txt"
