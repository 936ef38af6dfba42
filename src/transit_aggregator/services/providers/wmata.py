"""DC Metro (WMATA) REST adapter."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, TypeVar
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from transit_aggregator.config import Settings, get_settings
from transit_aggregator.logging import get_logger
from transit_aggregator.models.transit import (
    ARRIVING,
    BOARDING,
    City,
    MinutesAway,
    Station,
    StationAddress,
    StationTransfer,
    TransitIncident,
    TransitPrediction,
    TransitRoute,
    dedupe,
    sort_predictions,
)
from transit_aggregator.models.wmata import (
    BusPosition,
    BusPrediction,
    BusRoute,
    BusStop,
    TrainPosition,
)
from transit_aggregator.services.cache import FreshnessCache, TtlPolicy
from transit_aggregator.services.providers.base import (
    TransitAPIError,
    filter_by_line,
    search_by_name_or_id,
)

logger = get_logger(__name__)

STATIONS_ENDPOINT = "/Rail.svc/json/jStations"
PREDICTIONS_ENDPOINT = "/StationPrediction.svc/json/GetPrediction/{station_id}"
INCIDENTS_ENDPOINT = "/Incidents.svc/json/Incidents"
ELEVATOR_INCIDENTS_ENDPOINT = "/Incidents.svc/json/ElevatorIncidents"
BUS_PREDICTIONS_ENDPOINT = "/NextBusService.svc/json/jPredictions"
TRAIN_POSITIONS_ENDPOINT = "/TrainPositions/TrainPositions"
BUS_ROUTES_ENDPOINT = "/Bus.svc/json/jRoutes"
BUS_STOPS_ENDPOINT = "/Bus.svc/json/jStops"
BUS_POSITIONS_ENDPOINT = "/Bus.svc/json/jBusPositions"

LINE_CODE_FIELDS = ("LineCode1", "LineCode2", "LineCode3", "LineCode4")

DEFAULT_SEVERITY = "Unknown"

# Raised by normalization when a 200 body does not have the documented shape
MALFORMED_ERRORS = (AttributeError, KeyError, TypeError, ValueError, ValidationError)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_minutes(raw: Any) -> MinutesAway:
    """Numeric minute strings become ints; ``ARR``, ``BRD``, ``---`` stay as-is."""
    if isinstance(raw, int):
        return raw
    text = "" if raw is None else str(raw).strip()
    if text.isdigit():
        return int(text)
    return text


def arrival_for(minutes: MinutesAway, now: datetime) -> Optional[datetime]:
    """Absolute arrival time for a minutes value; None for unknown sentinels."""
    if isinstance(minutes, int):
        return now + timedelta(minutes=minutes)
    if minutes in (ARRIVING, BOARDING):
        return now
    return None


class WmataClient:
    """TransitClient for the DC Metro REST API.

    Every upstream GET goes through the freshness cache keyed by endpoint and
    query string, so repeated searches and line lookups reuse one station
    list download.
    """

    city: City = "dc"

    def __init__(
        self,
        api_key: str,
        settings: Optional[Settings] = None,
        cache: Optional[FreshnessCache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings or get_settings()
        self._api_key = api_key
        self._base_url = self.settings.wmata_base_url.rstrip("/")
        self._timeout = self.settings.http_timeout_sec
        self._ttl = TtlPolicy.from_settings(self.settings)
        self._cache = cache or FreshnessCache()
        self._http_client = http_client
        self._clock = clock

    # -- transport ----------------------------------------------------------

    async def _request(
        self,
        endpoint: str,
        ttl_seconds: float,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Cached GET returning the decoded JSON body.

        Raises:
            TransitAPIError: On non-2xx status, transport failure or invalid JSON.
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        key = f"wmata:{endpoint}"
        if query:
            key = f"{key}?{urlencode(sorted(query.items()))}"

        async def load() -> Any:
            return await self._get_json(endpoint, query)

        return await self._cache.fetch(key, ttl_seconds, load)

    async def _get_json(self, endpoint: str, params: dict[str, Any]) -> Any:
        url = f"{self._base_url}{endpoint}"
        headers = {"api_key": self._api_key, "Accept": "application/json"}
        logger.debug("WMATA request", city=self.city, endpoint=endpoint)

        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    url, params=params, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                    response = await client.get(url, params=params, headers=headers)
        except httpx.RequestError as exc:
            logger.warning(
                "WMATA request failed", city=self.city, endpoint=endpoint, error=str(exc)
            )
            raise TransitAPIError(
                "Network error while connecting to WMATA API", city=self.city, cause=exc
            ) from exc

        if not response.is_success:
            logger.warning(
                "WMATA request rejected",
                city=self.city,
                endpoint=endpoint,
                status_code=response.status_code,
            )
            raise TransitAPIError(
                f"API request failed: {response.text or 'Unknown error'}",
                status_code=response.status_code,
                city=self.city,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise TransitAPIError(
                "Invalid JSON from WMATA API",
                status_code=response.status_code,
                city=self.city,
                cause=exc,
            ) from exc

        logger.debug(
            "WMATA response",
            city=self.city,
            endpoint=endpoint,
            status_code=response.status_code,
            size_bytes=len(response.content),
        )
        return data

    def _parse(self, endpoint: str, build: Callable[[], T]) -> T:
        try:
            return build()
        except MALFORMED_ERRORS as exc:
            logger.warning(
                "Unexpected WMATA response", city=self.city, endpoint=endpoint, error=str(exc)
            )
            raise TransitAPIError(
                "Unexpected WMATA response", city=self.city, cause=exc
            ) from exc

    # -- normalization ------------------------------------------------------

    def _normalize_stations(self, records: list[dict[str, Any]]) -> list[Station]:
        names = {record["Code"]: record.get("Name", "") for record in records}
        stations: list[Station] = []

        for record in records:
            code = record["Code"]
            address = record.get("Address") or {}
            together = _optional_str(record.get("StationTogether1"))

            transfers = None
            if together and together != code and together in names:
                transfers = [
                    StationTransfer(
                        to_station_id=together,
                        to_station_name=names[together],
                        transfer_time=0,
                        transfer_type="platform",
                    )
                ]

            stations.append(
                Station(
                    id=code,
                    name=record.get("Name", ""),
                    city=self.city,
                    latitude=record.get("Lat", 0.0),
                    longitude=record.get("Lon", 0.0),
                    lines=dedupe(
                        record.get(field) or "" for field in LINE_CODE_FIELDS
                    ),
                    address=StationAddress(
                        street=address.get("Street"),
                        city=address.get("City"),
                        state=address.get("State"),
                        zip=address.get("Zip"),
                    ),
                    transfers=transfers,
                )
            )
        return stations

    def _normalize_prediction(self, record: dict[str, Any], now: datetime) -> TransitPrediction:
        minutes = parse_minutes(record.get("Min"))
        return TransitPrediction(
            city=self.city,
            line=str(record.get("Line") or ""),
            destination=str(record.get("DestinationName") or record.get("Destination") or ""),
            destination_code=_optional_str(record.get("DestinationCode")),
            arrival_time=arrival_for(minutes, now),
            minutes_away=minutes,
            cars=_optional_str(record.get("Car")),
            track=_optional_str(record.get("Group")),
        )

    def _normalize_incident(self, record: dict[str, Any]) -> TransitIncident:
        return TransitIncident(
            city=self.city,
            incident_id=str(record.get("IncidentID", "")),
            description=str(record.get("Description") or ""),
            lines_affected=dedupe(str(record.get("LinesAffected") or "").split(";")),
            severity=record.get("DelaySeverity") or DEFAULT_SEVERITY,
            incident_type=str(record.get("IncidentType") or ""),
            timestamp=str(record.get("DateUpdated") or ""),
            passenger_delay=record.get("PassengerDelay"),
            start_location=_optional_str(record.get("StartLocationFullName")),
            end_location=_optional_str(record.get("EndLocationFullName")),
        )

    def _normalize_elevator_incident(self, record: dict[str, Any]) -> TransitIncident:
        station_name = record.get("StationName") or ""
        description = f"{station_name}: {record.get('LocationDescription') or ''}"
        symptom = record.get("SymptomDescription")
        if symptom:
            description = f"{description} ({symptom})"

        return TransitIncident(
            city=self.city,
            incident_id=str(record.get("UnitName", "")),
            description=description,
            severity=DEFAULT_SEVERITY,
            incident_type=str(record.get("UnitType") or "ELEVATOR"),
            timestamp=str(record.get("DateUpdated") or ""),
            start_location=_optional_str(station_name),
        )

    # -- contract -----------------------------------------------------------

    async def get_stations(self) -> list[Station]:
        data = await self._request(STATIONS_ENDPOINT, self._ttl.static)
        return self._parse(
            STATIONS_ENDPOINT, lambda: self._normalize_stations(data.get("Stations") or [])
        )

    async def get_station_predictions(self, station_id: str) -> list[TransitPrediction]:
        endpoint = PREDICTIONS_ENDPOINT.format(station_id=station_id)
        data = await self._request(endpoint, self._ttl.predictions)
        now = self._clock()
        return self._parse(
            endpoint,
            lambda: sort_predictions(
                self._normalize_prediction(record, now) for record in data.get("Trains") or []
            ),
        )

    async def get_incidents(self) -> list[TransitIncident]:
        data = await self._request(INCIDENTS_ENDPOINT, self._ttl.incidents)
        return self._parse(
            INCIDENTS_ENDPOINT,
            lambda: [self._normalize_incident(r) for r in data.get("Incidents") or []],
        )

    async def search_station(self, query: str) -> list[Station]:
        return search_by_name_or_id(await self.get_stations(), query)

    async def get_stations_by_line(self, line_code: str) -> list[Station]:
        return filter_by_line(await self.get_stations(), line_code)

    async def get_route_info(self, route_id: str) -> Optional[TransitRoute]:
        # Rail lines are not modeled as routes by this API
        return None

    # -- DC-specific extensions ----------------------------------------------

    async def get_elevator_incidents(self) -> list[TransitIncident]:
        data = await self._request(ELEVATOR_INCIDENTS_ENDPOINT, self._ttl.incidents)
        return self._parse(
            ELEVATOR_INCIDENTS_ENDPOINT,
            lambda: [
                self._normalize_elevator_incident(r)
                for r in data.get("ElevatorIncidents") or []
            ],
        )

    async def get_bus_predictions(self, stop_id: str) -> list[BusPrediction]:
        data = await self._request(
            BUS_PREDICTIONS_ENDPOINT, self._ttl.predictions, {"StopID": stop_id}
        )
        return self._parse(
            BUS_PREDICTIONS_ENDPOINT,
            lambda: [BusPrediction.model_validate(r) for r in data.get("Predictions") or []],
        )

    async def get_train_positions(self) -> list[TrainPosition]:
        data = await self._request(
            TRAIN_POSITIONS_ENDPOINT, self._ttl.positions, {"contentType": "json"}
        )
        return self._parse(
            TRAIN_POSITIONS_ENDPOINT,
            lambda: [TrainPosition.model_validate(r) for r in data.get("TrainPositions") or []],
        )

    async def get_bus_routes(self) -> list[BusRoute]:
        data = await self._request(BUS_ROUTES_ENDPOINT, self._ttl.static)
        return self._parse(
            BUS_ROUTES_ENDPOINT,
            lambda: [BusRoute.model_validate(r) for r in data.get("Routes") or []],
        )

    async def get_bus_stops(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius: Optional[int] = None,
    ) -> list[BusStop]:
        """Bus stops, optionally limited to ``radius`` meters around a point."""
        params: dict[str, Any] = {}
        if latitude is not None and longitude is not None:
            params = {"Lat": latitude, "Lon": longitude, "Radius": radius}
        data = await self._request(BUS_STOPS_ENDPOINT, self._ttl.bus_stops, params)
        return self._parse(
            BUS_STOPS_ENDPOINT,
            lambda: [BusStop.model_validate(r) for r in data.get("Stops") or []],
        )

    async def get_bus_positions(self, route_id: Optional[str] = None) -> list[BusPosition]:
        data = await self._request(
            BUS_POSITIONS_ENDPOINT, self._ttl.positions, {"RouteID": route_id}
        )
        return self._parse(
            BUS_POSITIONS_ENDPOINT,
            lambda: [BusPosition.model_validate(r) for r in data.get("BusPositions") or []],
        )
