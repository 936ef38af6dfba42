"""Test fixtures for GTFS-RT protobuf feeds and the JSON alerts feed."""

from __future__ import annotations

import time
from typing import Any

from google.transit import gtfs_realtime_pb2

# 2025-01-15T12:00:00Z
NOW_TS = 1736942400


def build_trip_update_feed(
    trips: list[dict[str, Any]] | None = None,
    feed_timestamp: int | None = None,
) -> bytes:
    """Build a serialized FeedMessage with one TripUpdate entity per trip.

    Args:
        trips: Dicts with keys trip_id, route_id and stop_updates, where each
            stop update has stop_id and optional arrival_time/departure_time
            (unix seconds).
        feed_timestamp: Unix timestamp for the feed header.

    Returns:
        Serialized protobuf bytes.
    """
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = feed_timestamp or int(time.time())

    if trips is None:
        trips = [
            {
                "trip_id": "T1",
                "route_id": "1",
                "stop_updates": [
                    {"stop_id": "127S", "arrival_time": NOW_TS + 300},
                    {"stop_id": "142S", "arrival_time": NOW_TS + 1500},
                ],
            },
        ]

    for trip in trips:
        entity = feed.entity.add()
        entity.id = f"tu_{trip['trip_id']}"
        tu = entity.trip_update
        tu.trip.trip_id = trip["trip_id"]
        tu.trip.route_id = trip["route_id"]

        for su in trip.get("stop_updates", []):
            stu = tu.stop_time_update.add()
            stu.stop_id = su["stop_id"]
            if "arrival_time" in su:
                stu.arrival.time = su["arrival_time"]
            if "departure_time" in su:
                stu.departure.time = su["departure_time"]

    return feed.SerializeToString()


def build_vehicle_only_feed(feed_timestamp: int | None = None) -> bytes:
    """Build a FeedMessage whose only entity is a vehicle position."""
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = feed_timestamp or int(time.time())

    entity = feed.entity.add()
    entity.id = "vp_001"
    entity.vehicle.vehicle.id = "veh_001"
    entity.vehicle.trip.route_id = "1"
    return feed.SerializeToString()


def build_empty_feed(feed_timestamp: int | None = None) -> bytes:
    """Build an empty FeedMessage with no entities."""
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = feed_timestamp or int(time.time())
    return feed.SerializeToString()


def build_alert_entity(
    alert_id: str = "lmm:alert:1",
    route_ids: list[str] | None = None,
    translations: list[dict[str, str]] | None = None,
    alert_type: str | None = "Delays",
    updated_at: int | str | None = NOW_TS - 600,
) -> dict[str, Any]:
    """Build one entity of the JSON-encoded alerts feed."""
    alert: dict[str, Any] = {
        "informed_entity": [
            {"agency_id": "MTASBWY", "route_id": route_id} for route_id in (route_ids or ["A"])
        ],
        "header_text": {
            "translation": translations
            if translations is not None
            else [
                {"language": "en", "text": "A trains are running with delays"},
                {"language": "en-html", "text": "<p>A trains are running with delays</p>"},
            ]
        },
    }

    mercury: dict[str, Any] = {}
    if alert_type is not None:
        mercury["alert_type"] = alert_type
    if updated_at is not None:
        mercury["updated_at"] = updated_at
    if mercury:
        alert["transit_realtime.mercury_alert"] = mercury

    return {"id": alert_id, "alert": alert}


def build_alerts_payload(entities: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Build the JSON alerts feed body."""
    return {
        "header": {"gtfs_realtime_version": "1.0", "timestamp": NOW_TS},
        "entity": entities if entities is not None else [build_alert_entity()],
    }
