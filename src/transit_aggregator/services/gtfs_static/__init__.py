"""Offline GTFS static pipeline building the station/route/transfer dataset."""

from transit_aggregator.services.gtfs_static.builder import TransitDatasetBuilder
from transit_aggregator.services.gtfs_static.dataset import (
    DatasetError,
    TransitDataset,
    load_dataset,
    write_dataset,
)
from transit_aggregator.services.gtfs_static.fetcher import GtfsStaticFetcher
from transit_aggregator.services.gtfs_static.normalizer import GtfsNormalizer
from transit_aggregator.services.gtfs_static.parser import GtfsParser
from transit_aggregator.services.gtfs_static.pipeline import BuildReport, GtfsStaticPipeline
from transit_aggregator.services.gtfs_static.reader import GtfsDirectoryReader, GtfsZipReader

__all__ = [
    "BuildReport",
    "DatasetError",
    "GtfsDirectoryReader",
    "GtfsNormalizer",
    "GtfsParser",
    "GtfsStaticFetcher",
    "GtfsStaticPipeline",
    "GtfsZipReader",
    "TransitDataset",
    "TransitDatasetBuilder",
    "load_dataset",
    "write_dataset",
]
