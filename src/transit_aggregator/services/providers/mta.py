"""NYC Subway (MTA) adapter over GTFS-realtime feeds and the static dataset."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from transit_aggregator.config import Settings, get_settings
from transit_aggregator.logging import get_logger
from transit_aggregator.models.transit import (
    City,
    Station,
    StationTransfer,
    TransitIncident,
    TransitPrediction,
    TransitRoute,
    sort_predictions,
)
from transit_aggregator.services.cache import FreshnessCache, TtlPolicy
from transit_aggregator.services.gtfs_rt.decoder import FeedDecodeError, GtfsRtDecoder
from transit_aggregator.services.gtfs_rt.fetcher import FeedFetchError, GtfsRtFetcher
from transit_aggregator.services.gtfs_rt.normalizer import GtfsRtNormalizer
from transit_aggregator.services.gtfs_static.dataset import (
    TransitDataset,
    default_dataset_dir,
    load_dataset,
)
from transit_aggregator.services.providers.base import (
    TransitAPIError,
    filter_by_line,
    search_by_name_or_id,
)

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2  # type: ignore[import-untyped]

logger = get_logger(__name__)

# Feed key -> path segment under the MTA feed base URL
MTA_FEEDS: dict[str, str] = {
    "ACE": "nyct%2Fgtfs-ace",
    "BDFM": "nyct%2Fgtfs-bdfm",
    "G": "nyct%2Fgtfs-g",
    "JZ": "nyct%2Fgtfs-jz",
    "NQRW": "nyct%2Fgtfs-nqrw",
    "L": "nyct%2Fgtfs-l",
    "1234567": "nyct%2Fgtfs",
    "SIR": "nyct%2Fgtfs-si",
}

LINE_TO_FEED: dict[str, str] = {
    "A": "ACE", "C": "ACE", "E": "ACE", "H": "ACE", "FS": "ACE",
    "B": "BDFM", "D": "BDFM", "F": "BDFM", "FX": "BDFM", "M": "BDFM",
    "G": "G",
    "J": "JZ", "Z": "JZ",
    "N": "NQRW", "Q": "NQRW", "R": "NQRW", "W": "NQRW",
    "L": "L",
    "1": "1234567", "2": "1234567", "3": "1234567", "4": "1234567",
    "5": "1234567", "6": "1234567", "6X": "1234567", "7": "1234567",
    "7X": "1234567", "GS": "1234567",
    "SI": "SIR", "SIR": "SIR",
}  # fmt: skip

# Shuttles all publish the short name "S" but run in different feeds
SHUTTLE_LINE = "S"
SHUTTLE_FEEDS = ("ACE", "1234567")

ABBREVIATIONS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"\b{word}\b"), short)
    for word, short in (
        ("square", "sq"),
        ("street", "st"),
        ("avenue", "av"),
        ("boulevard", "blvd"),
        ("road", "rd"),
        ("place", "pl"),
        ("parkway", "pkwy"),
    )
)


def abbreviate(text: str) -> str:
    """Rewrite long-form street words to the short forms station names use."""
    for pattern, short in ABBREVIATIONS:
        text = pattern.sub(short, text)
    return text


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MtaClient:
    """TransitClient for the NYC Subway.

    Stations, lines, routes and transfers come from the prebuilt static
    dataset and never touch the network. Predictions fan out over the
    realtime feeds serving the station; one failing feed only drops that
    feed's trains.
    """

    city: City = "nyc"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        dataset: Optional[TransitDataset] = None,
        cache: Optional[FreshnessCache] = None,
        fetcher: Optional[GtfsRtFetcher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings or get_settings()
        self._dataset = dataset
        self._ttl = TtlPolicy.from_settings(self.settings)
        self._cache = cache or FreshnessCache()
        self._fetcher = fetcher or GtfsRtFetcher(timeout_sec=self.settings.feed_timeout_sec)
        self._clock = clock
        self._stations_by_id: Optional[dict[str, Station]] = None

    @property
    def dataset(self) -> TransitDataset:
        """Static dataset, loaded from disk on first access."""
        if self._dataset is None:
            directory = self.settings.mta_dataset_dir or default_dataset_dir(self.city)
            self._dataset = load_dataset(directory, self.city)
        return self._dataset

    @property
    def stations_by_id(self) -> dict[str, Station]:
        if self._stations_by_id is None:
            self._stations_by_id = {station.id: station for station in self.dataset.stations}
        return self._stations_by_id

    # -- static contract ----------------------------------------------------

    async def get_stations(self) -> list[Station]:
        return list(self.dataset.stations)

    async def search_station(self, query: str) -> list[Station]:
        return search_by_name_or_id(self.dataset.stations, query, rewrite=abbreviate)

    async def get_stations_by_line(self, line_code: str) -> list[Station]:
        return filter_by_line(self.dataset.stations, line_code)

    async def get_route_info(self, route_id: str) -> Optional[TransitRoute]:
        wanted = route_id.strip().upper()
        for route in self.dataset.routes:
            if route.route_id.upper() == wanted:
                return route
        return None

    async def get_station_transfers(self, station_id: str) -> list[StationTransfer]:
        station = self.stations_by_id.get(station_id)
        if station is None:
            return []
        return list(station.transfers or [])

    # -- realtime -------------------------------------------------------------

    def feeds_for_station(self, station_id: str) -> list[str]:
        """Feed keys to query for a station, in MTA_FEEDS order.

        Falls back to every feed when narrowing is off, the station is not in
        the dataset, or none of its lines map to a known feed.
        """
        all_feeds = list(MTA_FEEDS)
        if not self.settings.mta_narrow_feed_fanout:
            return all_feeds

        station = self.stations_by_id.get(station_id)
        if station is None:
            return all_feeds

        selected: set[str] = set()
        for line in station.lines:
            code = line.upper()
            if code == SHUTTLE_LINE:
                selected.update(SHUTTLE_FEEDS)
            elif code in LINE_TO_FEED:
                selected.add(LINE_TO_FEED[code])
        if not selected:
            return all_feeds
        return [feed for feed in all_feeds if feed in selected]

    async def _load_feed(self, feed: str) -> gtfs_realtime_pb2.FeedMessage:
        async def load() -> gtfs_realtime_pb2.FeedMessage:
            data = await self._fetcher.fetch(self.settings.mta_feed_url(MTA_FEEDS[feed]), feed)
            return GtfsRtDecoder.decode(data, feed)

        return await asyncio.wait_for(
            self._cache.fetch(f"mta:feed:{feed}", self._ttl.predictions, load),
            timeout=self.settings.feed_timeout_sec,
        )

    async def get_station_predictions(self, station_id: str) -> list[TransitPrediction]:
        """Merge predictions for ``station_id`` across its realtime feeds.

        Raises:
            TransitAPIError: Only when every selected feed failed.
        """
        feeds = self.feeds_for_station(station_id)
        results = await asyncio.gather(
            *(self._load_feed(feed) for feed in feeds),
            return_exceptions=True,
        )

        now = self._clock()
        stop_names = {station.id: station.name for station in self.dataset.stations}
        predictions: list[TransitPrediction] = []
        failed: list[str] = []

        for feed, result in zip(feeds, results):
            if isinstance(result, (FeedFetchError, FeedDecodeError, asyncio.TimeoutError)):
                logger.warning(
                    "MTA feed skipped",
                    city=self.city,
                    feed=feed,
                    status_code=getattr(result, "status_code", None),
                    error=str(result) or type(result).__name__,
                )
                failed.append(feed)
                continue
            if isinstance(result, BaseException):
                raise result

            predictions.extend(
                GtfsRtNormalizer.extract_predictions(
                    result, station_id, now, stop_names=stop_names, city=self.city
                )
            )

        if feeds and len(failed) == len(feeds):
            raise TransitAPIError(
                f"All MTA feeds failed for station {station_id}: {', '.join(failed)}",
                city=self.city,
            )

        logger.debug(
            "MTA predictions merged",
            city=self.city,
            station_id=station_id,
            feeds=len(feeds),
            failed=len(failed),
            count=len(predictions),
        )
        return sort_predictions(predictions)

    async def get_incidents(self) -> list[TransitIncident]:
        async def load() -> list[TransitIncident]:
            payload = await self._fetcher.fetch_json(self.settings.mta_alerts_url, "alerts")
            return GtfsRtNormalizer.normalize_alerts(payload, self._clock(), city=self.city)

        try:
            return await self._cache.fetch("mta:alerts", self._ttl.incidents, load)
        except FeedFetchError as exc:
            logger.warning("MTA alerts unavailable", city=self.city, error=str(exc))
            return []
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("MTA alerts malformed", city=self.city, error=str(exc))
            return []
