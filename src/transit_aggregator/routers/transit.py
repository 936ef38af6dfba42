"""City-parameterized transit endpoints.

Endpoints
---------
GET /cities                                          – supported cities
GET /cities/{city}/stations                          – all stations
GET /cities/{city}/stations/search?q=                – stations by name or id
GET /cities/{city}/lines/{line}/stations             – stations on a line
GET /cities/{city}/stations/{station_id}/predictions – live arrivals
GET /cities/{city}/incidents                         – service incidents
GET /cities/{city}/routes/{route_id}                 – route details
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from transit_aggregator.logging import get_logger
from transit_aggregator.models.transit import (
    Station,
    TransitIncident,
    TransitPrediction,
    TransitRoute,
)
from transit_aggregator.services.providers.base import TransitClient
from transit_aggregator.services.providers.registry import TransitRegistry, get_registry

logger = get_logger(__name__)

router = APIRouter(prefix="/cities", tags=["transit"])

RegistryDep = Annotated[TransitRegistry, Depends(get_registry)]


def _client(registry: TransitRegistry, city: str) -> TransitClient:
    return registry.get_client(city.lower())


@router.get("", summary="List supported cities")
async def list_cities(registry: RegistryDep) -> list[dict[str, Any]]:
    return [
        {"city": city, **registry.city_info(city).to_dict()}
        for city in registry.supported_cities()
    ]


@router.get("/{city}/stations", response_model=list[Station], response_model_exclude_none=True)
async def get_stations(city: str, registry: RegistryDep) -> list[Station]:
    return await _client(registry, city).get_stations()


@router.get(
    "/{city}/stations/search",
    response_model=list[Station],
    response_model_exclude_none=True,
    summary="Search stations by name or id",
)
async def search_stations(
    city: str,
    registry: RegistryDep,
    q: Annotated[str, Query(min_length=1, description="Station name fragment or id")],
) -> list[Station]:
    return await _client(registry, city).search_station(q)


@router.get(
    "/{city}/lines/{line}/stations",
    response_model=list[Station],
    response_model_exclude_none=True,
)
async def get_stations_by_line(city: str, line: str, registry: RegistryDep) -> list[Station]:
    return await _client(registry, city).get_stations_by_line(line)


@router.get(
    "/{city}/stations/{station_id}/predictions",
    response_model=list[TransitPrediction],
    summary="Live arrivals, most urgent first",
)
async def get_predictions(
    city: str, station_id: str, registry: RegistryDep
) -> list[TransitPrediction]:
    return await _client(registry, city).get_station_predictions(station_id)


@router.get("/{city}/incidents", response_model=list[TransitIncident])
async def get_incidents(city: str, registry: RegistryDep) -> list[TransitIncident]:
    return await _client(registry, city).get_incidents()


@router.get("/{city}/routes/{route_id}", response_model=TransitRoute)
async def get_route(city: str, route_id: str, registry: RegistryDep) -> TransitRoute:
    route = await _client(registry, city).get_route_info(route_id)
    if route is None:
        raise HTTPException(status_code=404, detail=f"Route {route_id} not found")
    return route
