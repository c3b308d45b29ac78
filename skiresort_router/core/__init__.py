"""Core services shared by all pipeline stages.

- LineGeometry: Endpoint ordering, projection, intersections, linear referencing
- PreprocessingConfig: Thresholds and paths of one run (load_config)
- read_features / write_features: GeoJSON feature exchange
- ResultLog: Append-only text report of candidates and links
"""

from skiresort_router.core.config import PreprocessingConfig, load_config
from skiresort_router.core.feature_io import read_features, write_features
from skiresort_router.core.geometry import LineGeometry
from skiresort_router.core.result_log import ResultLog

__all__ = [
    "LineGeometry",
    "PreprocessingConfig",
    "load_config",
    "read_features",
    "write_features",
    "ResultLog",
]
