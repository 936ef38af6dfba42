"""Builds the station/route/transfer dataset from normalized GTFS records.

The build is deterministic: stations are sorted by id, lines and child
platforms are sorted, and transfers are ordered by walk time then target id,
so unchanged input always yields byte-identical output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from transit_aggregator.logging import get_logger
from transit_aggregator.models.transit import Station, StationTransfer, TransitRoute
from transit_aggregator.services.gtfs_static.dataset import TransitDataset

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transit_aggregator.models.transit import City
    from transit_aggregator.services.gtfs_static.normalizer import (
        RouteRecord,
        StopRecord,
        StopTimeRecord,
        TransferRecord,
        TripRecord,
    )

logger = get_logger(__name__)

UNKNOWN_STATION_NAME = "Unknown Station"


class TransitDatasetBuilder:
    """Turns GTFS stops/routes/trips/stop_times/transfers into a TransitDataset."""

    def __init__(self, city: City = "nyc") -> None:
        self.city = city

    def build(
        self,
        stops: Iterable[StopRecord],
        routes: Iterable[RouteRecord],
        trips: Iterable[TripRecord],
        stop_times: Iterable[StopTimeRecord],
        transfers: Iterable[TransferRecord] = (),
    ) -> TransitDataset:
        stops = list(stops)
        routes = list(routes)
        stops_by_id = {stop.stop_id: stop for stop in stops}
        stop_names = {stop.stop_id: stop.name for stop in stops}

        parent_stations = [stop for stop in stops if stop.is_parent_station]
        line_names = {route.route_id: route.short_name for route in routes}
        trip_routes = {trip.trip_id: trip.route_id for trip in trips}

        station_lines = self._build_station_lines(
            stops_by_id, trip_routes, line_names, stop_times
        )
        child_platforms = self._build_child_platforms(stops)
        transfer_graph = self._build_transfer_graph(stops_by_id, stop_names, list(transfers))

        stations: list[Station] = []
        dropped = 0
        for stop in sorted(parent_stations, key=lambda s: s.stop_id):
            lines = station_lines.get(stop.stop_id)
            if not lines:
                dropped += 1
                continue

            edges = sorted(
                transfer_graph.get(stop.stop_id, []),
                key=lambda t: (t.transfer_time, t.to_station_id),
            )
            stations.append(
                Station(
                    id=stop.stop_id,
                    name=stop.name,
                    city=self.city,
                    latitude=stop.lat,
                    longitude=stop.lon,
                    lines=sorted(lines),
                    child_platforms=child_platforms.get(stop.stop_id),
                    transfers=edges or None,
                )
            )

        dataset_routes = [
            TransitRoute(
                route_id=route.route_id,
                short_name=route.short_name,
                long_name=route.long_name,
                description=route.description,
                city=self.city,
            )
            for route in routes
        ]

        logger.info(
            "Built transit dataset",
            city=self.city,
            parent_stations=len(parent_stations),
            stations=len(stations),
            dropped_without_lines=dropped,
            stations_with_transfers=sum(1 for s in stations if s.transfers),
            routes=len(dataset_routes),
        )
        return TransitDataset(city=self.city, stations=stations, routes=dataset_routes)

    @staticmethod
    def _parent_of(stop_id: str, stops_by_id: dict[str, StopRecord]) -> str:
        """Resolve a stop to its parent station id, or itself if it has none."""
        stop = stops_by_id.get(stop_id)
        if stop is None or not stop.parent_station:
            return stop_id
        return stop.parent_station

    def _build_station_lines(
        self,
        stops_by_id: dict[str, StopRecord],
        trip_routes: dict[str, str],
        line_names: dict[str, str],
        stop_times: Iterable[StopTimeRecord],
    ) -> dict[str, set[str]]:
        """Map each parent station to the short names of the lines calling there."""
        station_lines: dict[str, set[str]] = defaultdict(set)
        for stop_time in stop_times:
            if stop_time.stop_id not in stops_by_id:
                continue
            route_id = trip_routes.get(stop_time.trip_id)
            if route_id is None:
                continue
            line = line_names.get(route_id)
            if not line:
                continue
            station_lines[self._parent_of(stop_time.stop_id, stops_by_id)].add(line)
        return station_lines

    @staticmethod
    def _build_child_platforms(stops: list[StopRecord]) -> dict[str, list[str]]:
        children: dict[str, list[str]] = defaultdict(list)
        for stop in stops:
            if stop.parent_station:
                children[stop.parent_station].append(stop.stop_id)
        return {parent: sorted(ids) for parent, ids in children.items()}

    def _build_transfer_graph(
        self,
        stops_by_id: dict[str, StopRecord],
        stop_names: dict[str, str],
        transfers: list[TransferRecord],
    ) -> dict[str, list[StationTransfer]]:
        """Build directed transfer edges between distinct parent stations.

        Same-station entries (directional platform switches) are dropped. Each
        surviving entry adds a forward edge, plus a reverse edge of the same
        walk time unless the raw table already declares the reverse pair.
        """
        declared = {(t.from_stop_id, t.to_stop_id) for t in transfers}
        graph: dict[str, list[StationTransfer]] = defaultdict(list)
        seen: set[tuple[str, str, int]] = set()

        def add_edge(from_parent: str, to_parent: str, to_stop_id: str, seconds: int) -> None:
            key = (from_parent, to_parent, seconds)
            if key in seen:
                return
            seen.add(key)
            graph[from_parent].append(
                StationTransfer(
                    to_station_id=to_parent,
                    to_station_name=stop_names.get(to_stop_id, UNKNOWN_STATION_NAME),
                    transfer_time=seconds,
                    transfer_type="nearby",
                )
            )

        skipped_same_station = 0
        for transfer in transfers:
            from_parent = self._parent_of(transfer.from_stop_id, stops_by_id)
            to_parent = self._parent_of(transfer.to_stop_id, stops_by_id)
            seconds = transfer.min_transfer_time

            if from_parent == to_parent:
                # zero-time entries are platform artifacts, the rest are
                # already covered by child platform grouping
                skipped_same_station += 1
                continue

            add_edge(from_parent, to_parent, transfer.to_stop_id, seconds)

            if (transfer.to_stop_id, transfer.from_stop_id) not in declared:
                add_edge(to_parent, from_parent, transfer.from_stop_id, seconds)

        logger.info(
            "Built transfer graph",
            raw_transfers=len(transfers),
            skipped_same_station=skipped_same_station,
            stations_with_transfers=len(graph),
        )
        return graph
