"""Normalized transit models."""

from transit_aggregator.models.transit import (
    ARRIVING,
    BOARDING,
    City,
    Direction,
    Station,
    StationAddress,
    StationTransfer,
    TransitIncident,
    TransitPrediction,
    TransitRoute,
    parse_stop_direction,
    sort_predictions,
)

__all__ = [
    "ARRIVING",
    "BOARDING",
    "City",
    "Direction",
    "Station",
    "StationAddress",
    "StationTransfer",
    "TransitIncident",
    "TransitPrediction",
    "TransitRoute",
    "parse_stop_direction",
    "sort_predictions",
]
