"""City provider adapters behind one capability contract."""

from transit_aggregator.services.providers.base import (
    ConfigurationError,
    MissingCredentialError,
    TransitAPIError,
    TransitClient,
    UnsupportedCityError,
)
from transit_aggregator.services.providers.mta import MtaClient
from transit_aggregator.services.providers.registry import (
    CITY_INFO,
    TransitRegistry,
    get_registry,
    get_transit_client,
)
from transit_aggregator.services.providers.wmata import WmataClient

__all__ = [
    "CITY_INFO",
    "ConfigurationError",
    "MissingCredentialError",
    "MtaClient",
    "TransitAPIError",
    "TransitClient",
    "TransitRegistry",
    "UnsupportedCityError",
    "WmataClient",
    "get_registry",
    "get_transit_client",
]
