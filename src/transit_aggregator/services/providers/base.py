"""Provider contract shared by every city adapter, plus its error types."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from transit_aggregator.models.transit import (
        City,
        Station,
        TransitIncident,
        TransitPrediction,
        TransitRoute,
    )


class TransitAPIError(Exception):
    """Normalized failure raised by any provider adapter.

    Attributes:
        status_code: Upstream HTTP status when one was received.
        city: City whose provider failed.
        cause: Underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        city: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.city = city
        self.cause = cause

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ConfigurationError(TransitAPIError):
    """Raised before any I/O when a client cannot be constructed."""


class UnsupportedCityError(ConfigurationError):
    def __init__(self, city: str, supported: Iterable[str]) -> None:
        supported_list = ", ".join(supported)
        super().__init__(
            f"Unsupported city: {city}. Supported cities: {supported_list}",
            city=city,
        )


class MissingCredentialError(ConfigurationError):
    def __init__(self, city: str, env_var: str) -> None:
        super().__init__(
            f"{env_var} environment variable is required for {city}",
            city=city,
        )
        self.env_var = env_var


@runtime_checkable
class TransitClient(Protocol):
    """Capability set every city adapter offers.

    "No data" is an empty list or None; only upstream or configuration
    failures raise, and then always as TransitAPIError.
    """

    city: City

    async def get_stations(self) -> list[Station]: ...

    async def get_station_predictions(self, station_id: str) -> list[TransitPrediction]: ...

    async def get_incidents(self) -> list[TransitIncident]: ...

    async def search_station(self, query: str) -> list[Station]: ...

    async def get_stations_by_line(self, line_code: str) -> list[Station]: ...

    async def get_route_info(self, route_id: str) -> Optional[TransitRoute]: ...


def filter_by_line(stations: Iterable[Station], line_code: str) -> list[Station]:
    """Stations whose lines contain ``line_code``, compared case-insensitively."""
    return [station for station in stations if station.serves_line(line_code)]


def search_by_name_or_id(
    stations: Iterable[Station],
    query: str,
    rewrite: Optional[Callable[[str], str]] = None,
) -> list[Station]:
    """Substring match on station names or exact match on ids, ignoring case.

    With ``rewrite`` set, the rewritten query is also matched against the
    rewritten station name, so "times square" finds "Times Sq-42 St".
    """
    needle = query.strip().lower()
    if not needle:
        return []

    alt_needle = rewrite(needle) if rewrite else needle
    matches: list[Station] = []
    for station in stations:
        name = station.name.lower()
        if (
            needle in name
            or station.id.lower() == needle
            or (rewrite is not None and alt_needle in rewrite(name))
        ):
            matches.append(station)
    return matches
