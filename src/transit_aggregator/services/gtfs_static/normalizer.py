"""GTFS data normalizer - cleans and converts raw CSV rows into typed records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from transit_aggregator.logging import get_logger

logger = get_logger(__name__)

# stops.txt location_type value marking a parent station
LOCATION_TYPE_STATION = 1


class NormalizationError(Exception):
    """Raised when a row cannot be normalized."""


@dataclass(frozen=True)
class StopRecord:
    stop_id: str
    name: str
    lat: float
    lon: float
    location_type: int = 0
    parent_station: Optional[str] = None

    @property
    def is_parent_station(self) -> bool:
        return self.location_type == LOCATION_TYPE_STATION


@dataclass(frozen=True)
class RouteRecord:
    route_id: str
    short_name: str
    long_name: str
    description: str = ""


@dataclass(frozen=True)
class TripRecord:
    trip_id: str
    route_id: str


@dataclass(frozen=True)
class StopTimeRecord:
    trip_id: str
    stop_id: str


@dataclass(frozen=True)
class TransferRecord:
    from_stop_id: str
    to_stop_id: str
    transfer_type: int = 0
    min_transfer_time: int = 0


class GtfsNormalizer:
    """Normalizes raw GTFS CSV rows into typed records."""

    @staticmethod
    def normalize_stop(row: dict[str, Any]) -> StopRecord:
        """Normalize a stops.txt row.

        Raises:
            NormalizationError: If required fields are missing/invalid.
        """
        stop_id = _clean_str(row.get("stop_id", ""))
        name = _clean_str(row.get("stop_name", ""))
        lat_str = _clean_str(row.get("stop_lat", ""))
        lon_str = _clean_str(row.get("stop_lon", ""))

        if not stop_id:
            raise NormalizationError("Missing stop_id")
        if not name:
            raise NormalizationError(f"Missing stop_name for stop_id={stop_id}")

        try:
            lat = float(lat_str)
            lon = float(lon_str)
        except (ValueError, TypeError) as exc:
            raise NormalizationError(
                f"Invalid lat/lon for stop_id={stop_id}: lat={lat_str!r}, lon={lon_str!r}"
            ) from exc

        # location_type is optional in GTFS, empty means 0 (stop/platform)
        location_type_str = _clean_str(row.get("location_type", ""))
        location_type = 0
        if location_type_str:
            try:
                location_type = int(location_type_str)
            except ValueError:
                logger.warning(
                    "Non-integer location_type, defaulting to 0",
                    stop_id=stop_id,
                    location_type=location_type_str,
                )

        parent_station = _clean_str(row.get("parent_station", "")) or None

        return StopRecord(
            stop_id=stop_id,
            name=name,
            lat=lat,
            lon=lon,
            location_type=location_type,
            parent_station=parent_station,
        )

    @staticmethod
    def normalize_route(row: dict[str, Any]) -> RouteRecord:
        """Normalize a routes.txt row.

        Short name falls back to the route id and long name to the short name,
        so every route has a rider-facing label.

        Raises:
            NormalizationError: If route_id is missing.
        """
        route_id = _clean_str(row.get("route_id", ""))
        short_name = _clean_str(row.get("route_short_name", ""))
        long_name = _clean_str(row.get("route_long_name", ""))

        if not route_id:
            raise NormalizationError("Missing route_id")

        short_name = short_name or route_id
        long_name = long_name or short_name

        # Descriptions are free text, kept verbatim
        description = row.get("route_desc") or ""

        return RouteRecord(
            route_id=route_id,
            short_name=short_name,
            long_name=long_name,
            description=description,
        )

    @staticmethod
    def normalize_trip(row: dict[str, Any]) -> TripRecord:
        """Normalize a trips.txt row.

        Raises:
            NormalizationError: If required fields are missing.
        """
        trip_id = _clean_str(row.get("trip_id", ""))
        route_id = _clean_str(row.get("route_id", ""))

        if not trip_id:
            raise NormalizationError("Missing trip_id")
        if not route_id:
            raise NormalizationError(f"Missing route_id for trip_id={trip_id}")

        return TripRecord(trip_id=trip_id, route_id=route_id)

    @staticmethod
    def normalize_stop_time(row: dict[str, Any]) -> StopTimeRecord:
        """Normalize a stop_times.txt row down to its (trip, stop) pair.

        Raises:
            NormalizationError: If required fields are missing.
        """
        trip_id = _clean_str(row.get("trip_id", ""))
        stop_id = _clean_str(row.get("stop_id", ""))

        if not trip_id:
            raise NormalizationError("Missing trip_id in stop_times")
        if not stop_id:
            raise NormalizationError(f"Missing stop_id in stop_times for trip_id={trip_id}")

        return StopTimeRecord(trip_id=trip_id, stop_id=stop_id)

    @staticmethod
    def normalize_transfer(row: dict[str, Any]) -> TransferRecord:
        """Normalize a transfers.txt row.

        A missing or non-numeric min_transfer_time is treated as 0 seconds.

        Raises:
            NormalizationError: If either endpoint is missing.
        """
        from_stop_id = _clean_str(row.get("from_stop_id", ""))
        to_stop_id = _clean_str(row.get("to_stop_id", ""))

        if not from_stop_id or not to_stop_id:
            raise NormalizationError(
                f"Missing endpoint in transfer: from={from_stop_id!r}, to={to_stop_id!r}"
            )

        return TransferRecord(
            from_stop_id=from_stop_id,
            to_stop_id=to_stop_id,
            transfer_type=_parse_int(row.get("transfer_type", "")),
            min_transfer_time=_parse_int(row.get("min_transfer_time", "")),
        )


def _parse_int(value: Any) -> int:
    text = _clean_str(value)
    try:
        return max(int(text), 0)
    except ValueError:
        return 0


def _clean_str(value: Any) -> str:
    """Trim whitespace from a value, return empty string for None."""
    if value is None:
        return ""
    return str(value).strip()
