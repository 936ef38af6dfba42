"""GTFS static pipeline - orchestrates fetch, parse, normalize, build and write."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from transit_aggregator.config import get_settings
from transit_aggregator.logging import get_logger
from transit_aggregator.services.gtfs_static.builder import TransitDatasetBuilder
from transit_aggregator.services.gtfs_static.dataset import write_dataset
from transit_aggregator.services.gtfs_static.fetcher import GtfsStaticFetcher
from transit_aggregator.services.gtfs_static.normalizer import GtfsNormalizer, NormalizationError
from transit_aggregator.services.gtfs_static.parser import GtfsParser
from transit_aggregator.services.gtfs_static.reader import open_reader

if TYPE_CHECKING:
    from collections.abc import Iterator

    from transit_aggregator.models.transit import City
    from transit_aggregator.services.gtfs_static.dataset import TransitDataset

logger = get_logger(__name__)

R = TypeVar("R")


class BuildReport:
    """Collects pipeline metrics, warnings, and errors."""

    def __init__(self, source: str, city: str, build_id: str | None = None) -> None:
        self.build_id = build_id or str(uuid.uuid4())
        self.source = source
        self.city = city
        self.feed_hash = ""
        self.started_at = datetime.now(timezone.utc)
        self.ended_at: datetime | None = None
        self.duration_ms: int | None = None
        self.counts: dict[str, dict[str, int]] = {}
        self.totals: dict[str, int] = {}
        self.output_files: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.dry_run = False

    def init_table(self, table: str) -> None:
        self.counts[table] = {"read": 0, "accepted": 0, "failed": 0}

    def finish(self) -> None:
        self.ended_at = datetime.now(timezone.utc)
        self.duration_ms = int((self.ended_at - self.started_at).total_seconds() * 1000)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "success" if self.ok else "failed",
            "build_id": self.build_id,
            "city": self.city,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
            "source": self.source,
            "feed_hash": self.feed_hash,
            "dry_run": self.dry_run,
            "counts": self.counts,
            "totals": self.totals,
            "output_files": self.output_files,
            "warnings": self.warnings[:100],  # cap for report size
            "errors": self.errors[:100],
        }


class GtfsStaticPipeline:
    """Runs the offline GTFS static transform for one city.

    Supports dry_run mode and strict/lenient handling of bad rows. Sources
    may be an http(s) URL, a local ZIP file or an unpacked feed directory.
    """

    def __init__(
        self,
        city: City = "nyc",
        strict: bool | None = None,
        fetcher: GtfsStaticFetcher | None = None,
    ) -> None:
        settings = get_settings()
        self.city = city
        self.strict = strict if strict is not None else settings.gtfs_import_strict
        self._fetcher = fetcher or GtfsStaticFetcher(
            timeout_sec=settings.gtfs_static_fetch_timeout_sec,
            max_retries=settings.gtfs_static_max_retries,
            backoff_base=settings.gtfs_static_backoff_base,
        )
        self._normalizer = GtfsNormalizer()
        self._builder = TransitDatasetBuilder(city)

    async def run(
        self,
        source: str,
        output_dir: str | Path,
        dry_run: bool = False,
    ) -> BuildReport:
        """Execute the full pipeline.

        Args:
            source: URL, ZIP path or directory path of the GTFS feed.
            output_dir: Directory receiving stations.json and routes.json.
            dry_run: If True, parse and build but skip writing files.

        Returns:
            BuildReport with full metrics.
        """
        report = BuildReport(source=source, city=self.city)
        report.dry_run = dry_run
        logger.info(
            "Starting GTFS static build",
            build_id=report.build_id,
            city=self.city,
            source=source,
            dry_run=dry_run,
        )

        feed = await self._fetcher.resolve(source)
        report.feed_hash = feed.feed_hash

        with open_reader(feed.content) as reader:
            parser = GtfsParser(reader)
            tables = (
                ("stops", parser.parse_stops, self._normalizer.normalize_stop),
                ("routes", parser.parse_routes, self._normalizer.normalize_route),
                ("trips", parser.parse_trips, self._normalizer.normalize_trip),
                ("stop_times", parser.parse_stop_times, self._normalizer.normalize_stop_time),
                ("transfers", parser.parse_transfers, self._normalizer.normalize_transfer),
            )
            records: dict[str, list[Any]] = {}
            for table_name, parse_fn, normalize_fn in tables:
                records[table_name] = self._parse_and_normalize(
                    parse_fn, normalize_fn, table_name, report
                )
                # In strict mode later tables are never read
                if report.errors and self.strict:
                    report.finish()
                    logger.error(
                        "GTFS static build aborted",
                        build_id=report.build_id,
                        table=table_name,
                        errors=report.errors,
                    )
                    return report

        dataset = self._builder.build(
            records["stops"],
            records["routes"],
            records["trips"],
            records["stop_times"],
            records["transfers"],
        )
        self._record_totals(dataset, report)

        if dry_run:
            logger.info("Dry run complete, skipping dataset write", build_id=report.build_id)
        else:
            paths = write_dataset(dataset, output_dir)
            report.output_files = [str(path) for path in paths]

        report.finish()
        logger.info(
            "GTFS static build complete",
            build_id=report.build_id,
            duration_ms=report.duration_ms,
            counts=report.counts,
            totals=report.totals,
            warnings_count=len(report.warnings),
            errors_count=len(report.errors),
        )
        return report

    def _parse_and_normalize(
        self,
        parse_fn: Callable[[], Iterator[dict[str, Any]]],
        normalize_fn: Callable[[dict[str, Any]], R],
        table_name: str,
        report: BuildReport,
    ) -> list[R]:
        """Parse and normalize rows from a GTFS file.

        Collects errors per row; if strict mode, stops at the first error.
        """
        report.init_table(table_name)
        results: list[R] = []

        for row in parse_fn():
            report.counts[table_name]["read"] += 1
            try:
                results.append(normalize_fn(row))
                report.counts[table_name]["accepted"] += 1
            except NormalizationError as exc:
                report.counts[table_name]["failed"] += 1
                msg = f"{table_name} row error: {exc}"
                if self.strict:
                    report.errors.append(msg)
                    return results
                report.warnings.append(msg)

        return results

    @staticmethod
    def _record_totals(dataset: TransitDataset, report: BuildReport) -> None:
        report.totals = {
            "stations": len(dataset.stations),
            "stations_with_transfers": sum(1 for s in dataset.stations if s.transfers),
            "transfers": dataset.transfer_count,
            "routes": len(dataset.routes),
            "lines": len({line for s in dataset.stations for line in s.lines}),
        }
