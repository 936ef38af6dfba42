"""Command-line entry point for building a city's static transit dataset.

Usage:
    transit-aggregator-build [SOURCE] [--city nyc] [--output-dir DIR] [--dry-run]

SOURCE is a GTFS static feed given as an http(s) URL, a ZIP file or an
unpacked directory; it defaults to the configured MTA feed URL. The build
report is printed to stdout as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from typing import Optional

from transit_aggregator.config import get_settings
from transit_aggregator.logging import get_logger, setup_logging
from transit_aggregator.services.gtfs_static.dataset import DatasetError, default_dataset_dir
from transit_aggregator.services.gtfs_static.fetcher import FetchError, InvalidZipError
from transit_aggregator.services.gtfs_static.parser import MissingColumnError
from transit_aggregator.services.gtfs_static.pipeline import GtfsStaticPipeline
from transit_aggregator.services.gtfs_static.reader import MissingRequiredFileError

logger = get_logger(__name__)

BUILD_ERRORS = (
    DatasetError,
    FileNotFoundError,
    FetchError,
    InvalidZipError,
    MissingColumnError,
    MissingRequiredFileError,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transit-aggregator-build",
        description="Build stations.json and routes.json from a GTFS static feed",
    )
    parser.add_argument(
        "source",
        nargs="?",
        help="GTFS feed URL, ZIP path or directory (default: configured MTA feed URL)",
    )
    parser.add_argument(
        "--city",
        choices=["nyc"],
        default="nyc",
        help="City the dataset is built for",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory receiving the dataset files (default: the packaged dataset)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and build without writing any files",
    )
    strictness = parser.add_mutually_exclusive_group()
    strictness.add_argument(
        "--strict",
        dest="strict",
        action="store_true",
        default=None,
        help="Abort on the first malformed row",
    )
    strictness.add_argument(
        "--lenient",
        dest="strict",
        action="store_false",
        help="Skip malformed rows and report them as warnings",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    settings = get_settings()
    source = args.source or settings.mta_gtfs_static_url
    output_dir = args.output_dir or default_dataset_dir(args.city)

    pipeline = GtfsStaticPipeline(city=args.city, strict=args.strict)
    try:
        report = asyncio.run(pipeline.run(source, output_dir, dry_run=args.dry_run))
    except BUILD_ERRORS as exc:
        logger.error("GTFS static build failed", source=source, error=str(exc))
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
