"""GTFS-Realtime fetch, decode and normalization for feed-based providers."""

from transit_aggregator.services.gtfs_rt.decoder import FeedDecodeError, GtfsRtDecoder
from transit_aggregator.services.gtfs_rt.fetcher import FeedFetchError, GtfsRtFetcher
from transit_aggregator.services.gtfs_rt.normalizer import GtfsRtNormalizer

__all__ = [
    "FeedDecodeError",
    "FeedFetchError",
    "GtfsRtDecoder",
    "GtfsRtFetcher",
    "GtfsRtNormalizer",
]
