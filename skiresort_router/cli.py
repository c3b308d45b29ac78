"""Command line entry point: skiresort-router [config_path].

Runs the preprocessing pipeline with the given configuration file (or the
built-in defaults) and optionally answers one route query on the result.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from skiresort_router.constants import CostConfig
from skiresort_router.core.config import PreprocessingConfig, load_config
from skiresort_router.graph.directed_graph import GraphBuildError
from skiresort_router.pipeline import MissingInputError, run_pipeline

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: PreprocessingConfig) -> None:
    """Log to the console and, when configured, to the run's log file."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    log_path = config.log_path
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skiresort-router",
        description="Infer links between lifts, slopes and bus stops and build a routable ski area network.",
    )
    parser.add_argument("config_path", nargs="?", type=Path, help="key = value configuration file")
    parser.add_argument(
        "--route",
        nargs=2,
        type=int,
        metavar=("SOURCE_RID", "DEST_RID"),
        help="print the shortest route between two features after building the network",
    )
    parser.add_argument(
        "--cost-mode",
        type=int,
        choices=CostConfig.COST_MODES,
        default=0,
        help="0 = length, 1-3 = preference for easy, intermediate or difficult slopes",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config)
    try:
        result = run_pipeline(config)
    except (MissingInputError, GraphBuildError) as e:
        logger.error(f"Preprocessing aborted: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.route:
        source_rid, dest_rid = args.route
        route = result.path_finder.shortest_path(source_rid, dest_rid, args.cost_mode)
        print(" ".join(str(r_id) for r_id in route) if route else "No route found")


if __name__ == "__main__":
    main()
