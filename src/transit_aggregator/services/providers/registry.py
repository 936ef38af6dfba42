"""City registry: resolves a city code to its memoized provider adapter."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Optional

from transit_aggregator.config import Settings, get_settings
from transit_aggregator.logging import get_logger
from transit_aggregator.services.providers.base import (
    MissingCredentialError,
    TransitClient,
    UnsupportedCityError,
)
from transit_aggregator.services.providers.mta import MtaClient
from transit_aggregator.services.providers.wmata import WmataClient

if TYPE_CHECKING:
    from transit_aggregator.models.transit import City

logger = get_logger(__name__)


@dataclass(frozen=True)
class CityInfo:
    name: str
    short_name: str
    system: str
    requires_api_key: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


CITY_INFO: dict[str, CityInfo] = {
    "dc": CityInfo(
        name="Washington DC Metro",
        short_name="DC Metro",
        system="WMATA",
        requires_api_key=True,
    ),
    "nyc": CityInfo(
        name="New York City Subway",
        short_name="NYC Subway",
        system="MTA",
        requires_api_key=False,
    ),
}


class TransitRegistry:
    """Builds one adapter per city and keeps it, so its cache outlives a request.

    Configuration problems surface as ConfigurationError subclasses before any
    adapter is built or any network call is made.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._clients: dict[str, TransitClient] = {}

    @staticmethod
    def supported_cities() -> list[str]:
        return list(CITY_INFO)

    @staticmethod
    def is_supported_city(city: str) -> bool:
        return city in CITY_INFO

    @staticmethod
    def city_info(city: str) -> CityInfo:
        if city not in CITY_INFO:
            raise UnsupportedCityError(city, CITY_INFO)
        return CITY_INFO[city]

    def get_client(self, city: str) -> TransitClient:
        """Return the adapter for ``city``.

        Raises:
            UnsupportedCityError: If the city is not in the registry.
            MissingCredentialError: If the city's API key is not configured.
        """
        client = self._clients.get(city)
        if client is not None:
            return client

        client = self._build_client(city)
        self._clients[city] = client
        logger.info("Transit client created", city=city, client=type(client).__name__)
        return client

    def _build_client(self, city: str) -> TransitClient:
        if not self.is_supported_city(city):
            raise UnsupportedCityError(city, CITY_INFO)

        missing = self.settings.missing_required_env(city)
        if missing:
            raise MissingCredentialError(city, missing[0])

        if city == "dc":
            return WmataClient(self.settings.wmata_api_key, settings=self.settings)
        return MtaClient(settings=self.settings)


@lru_cache
def get_registry() -> TransitRegistry:
    """Process-wide registry built from the cached settings."""
    return TransitRegistry(get_settings())


def get_transit_client(city: City | str) -> TransitClient:
    return get_registry().get_client(city)
