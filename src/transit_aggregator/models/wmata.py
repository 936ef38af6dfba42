"""DC Metro (WMATA) specific models returned by the REST provider extensions.

These are parsed straight from the upstream PascalCase JSON records via field
aliases and are never part of the shared city contract.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _WmataRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class BusPrediction(_WmataRecord):
    route_id: str = Field(alias="RouteID")
    direction_text: str = Field(default="", alias="DirectionText")
    direction_num: Optional[str] = Field(default=None, alias="DirectionNum")
    minutes: int = Field(alias="Minutes")
    vehicle_id: Optional[str] = Field(default=None, alias="VehicleID")
    trip_id: Optional[str] = Field(default=None, alias="TripID")


class TrainPosition(_WmataRecord):
    train_id: str = Field(alias="TrainId")
    train_number: Optional[str] = Field(default=None, alias="TrainNumber")
    car_count: int = Field(default=0, alias="CarCount")
    direction_num: Optional[int] = Field(default=None, alias="DirectionNum")
    circuit_id: int = Field(alias="CircuitId")
    destination_station_code: Optional[str] = Field(default=None, alias="DestinationStationCode")
    line_code: Optional[str] = Field(default=None, alias="LineCode")
    seconds_at_location: int = Field(default=0, alias="SecondsAtLocation")
    service_type: str = Field(default="Unknown", alias="ServiceType")


class BusRoute(_WmataRecord):
    route_id: str = Field(alias="RouteID")
    name: str = Field(alias="Name")
    line_description: str = Field(default="", alias="LineDescription")


class BusStop(_WmataRecord):
    stop_id: Optional[str] = Field(default=None, alias="StopID")
    name: str = Field(alias="Name")
    latitude: float = Field(alias="Lat")
    longitude: float = Field(alias="Lon")
    routes: list[str] = Field(default_factory=list, alias="Routes")


class BusPosition(_WmataRecord):
    vehicle_id: str = Field(alias="VehicleID")
    route_id: str = Field(alias="RouteID")
    latitude: float = Field(alias="Lat")
    longitude: float = Field(alias="Lon")
    deviation: Optional[float] = Field(default=None, alias="Deviation")
    timestamp: Optional[str] = Field(default=None, alias="DateTime")
    trip_id: Optional[str] = Field(default=None, alias="TripID")
    direction_text: Optional[str] = Field(default=None, alias="DirectionText")
    trip_headsign: Optional[str] = Field(default=None, alias="TripHeadsign")
