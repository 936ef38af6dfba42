"""Provider-neutral transit models shared by every city adapter."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

City = Literal["dc", "nyc"]

TransferType = Literal["platform", "nearby"]

# Upstream sentinels for trains at or about to reach the platform
BOARDING = "BRD"
ARRIVING = "ARR"

MinutesAway = Union[int, str]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class StationAddress(_Frozen):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class StationTransfer(_Frozen):
    """Directed walking connection from one station to another."""

    to_station_id: str
    to_station_name: str
    transfer_time: int = Field(ge=0)
    transfer_type: TransferType = "nearby"


class Station(_Frozen):
    """A station as served by any provider."""

    id: str
    name: str
    city: City
    latitude: float
    longitude: float
    lines: list[str]
    address: Optional[StationAddress] = None
    parent_station: Optional[str] = None
    child_platforms: Optional[list[str]] = None
    transfers: Optional[list[StationTransfer]] = None

    def serves_line(self, line_code: str) -> bool:
        """Case-insensitive exact match against the station's lines."""
        wanted = line_code.strip().upper()
        return any(line.upper() == wanted for line in self.lines)


class TransitPrediction(_Frozen):
    city: City
    line: str
    destination: str
    destination_code: Optional[str] = None
    arrival_time: Optional[datetime] = None
    minutes_away: MinutesAway
    cars: Optional[str] = None
    track: Optional[str] = None
    direction: Optional[str] = None


class TransitIncident(_Frozen):
    city: City
    incident_id: str
    description: str
    lines_affected: list[str] = Field(default_factory=list)
    severity: str
    incident_type: str
    timestamp: str
    passenger_delay: Optional[float] = None
    start_location: Optional[str] = None
    end_location: Optional[str] = None


class TransitRoute(_Frozen):
    route_id: str
    short_name: str
    long_name: str
    description: str = ""
    city: City


class Direction(str, Enum):
    """Travel direction encoded by a platform stop id suffix."""

    FORWARD = "forward"
    BACKWARD = "backward"
    UNKNOWN = "unknown"

    @property
    def label(self) -> Optional[str]:
        if self is Direction.FORWARD:
            return "NORTH"
        if self is Direction.BACKWARD:
            return "SOUTH"
        return None


_DIRECTION_SUFFIXES = {"N": Direction.FORWARD, "S": Direction.BACKWARD}


def parse_stop_direction(stop_id: str) -> tuple[str, Direction]:
    """Split a platform stop id into its base station id and direction.

    Examples:
        "127N" -> ("127", Direction.FORWARD)
        "127S" -> ("127", Direction.BACKWARD)
        "127"  -> ("127", Direction.UNKNOWN)
    """
    stop_id = stop_id.strip()
    if len(stop_id) > 1:
        direction = _DIRECTION_SUFFIXES.get(stop_id[-1])
        if direction is not None:
            return stop_id[:-1], direction
    return stop_id, Direction.UNKNOWN


def dedupe(values: Iterable[str]) -> list[str]:
    """Drop empty and repeated values, keeping first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        value = value.strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


def _urgency_key(prediction: TransitPrediction) -> tuple[int, int]:
    minutes = prediction.minutes_away
    if isinstance(minutes, int):
        return (2, minutes)
    if minutes == BOARDING:
        return (0, 0)
    if minutes == ARRIVING:
        return (1, 0)
    # "---", "" and other unknown sentinels go last
    return (3, 0)


def sort_predictions(predictions: Iterable[TransitPrediction]) -> list[TransitPrediction]:
    """Order predictions by urgency: boarding, arriving, then minutes ascending.

    The sort is stable, so equal ranks keep their input order.
    """
    return sorted(predictions, key=_urgency_key)


def minutes_until(arrival: datetime, now: datetime) -> MinutesAway:
    """Whole minutes until ``arrival``; anything at or past zero is ``"ARR"``."""
    minutes = int((arrival - now).total_seconds() // 60)
    return ARRIVING if minutes <= 0 else minutes
