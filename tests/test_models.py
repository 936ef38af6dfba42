"""Tests for the shared transit models and helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from transit_aggregator.models.transit import (
    ARRIVING,
    BOARDING,
    Direction,
    Station,
    StationTransfer,
    TransitPrediction,
    dedupe,
    minutes_until,
    parse_stop_direction,
    sort_predictions,
)
from transit_aggregator.models.wmata import BusPosition, TrainPosition


def prediction(minutes: int | str, line: str = "1") -> TransitPrediction:
    return TransitPrediction(city="nyc", line=line, destination="X", minutes_away=minutes)


class TestSortPredictions:
    """Urgency ordering of arrivals."""

    def test_arr_before_numbers(self) -> None:
        ordered = sort_predictions([prediction(m) for m in [ARRIVING, 5, 2, ARRIVING]])
        assert [p.minutes_away for p in ordered] == [ARRIVING, ARRIVING, 2, 5]

    def test_brd_first_and_unknown_last(self) -> None:
        ordered = sort_predictions([prediction(m) for m in ["---", 3, ARRIVING, BOARDING, ""]])
        assert [p.minutes_away for p in ordered] == [BOARDING, ARRIVING, 3, "---", ""]

    def test_stable_for_equal_ranks(self) -> None:
        ordered = sort_predictions(
            [
                prediction(4, "A"),
                prediction(ARRIVING, "B"),
                prediction(4, "C"),
                prediction(ARRIVING, "D"),
            ]
        )
        assert [p.line for p in ordered] == ["B", "D", "A", "C"]

    def test_empty(self) -> None:
        assert sort_predictions([]) == []


class TestMinutesUntil:
    NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        ("delta_sec", "expected"),
        [(300, 5), (359, 5), (60, 1), (59, ARRIVING), (0, ARRIVING), (-600, ARRIVING)],
    )
    def test_floor_and_arr(self, delta_sec: int, expected: int | str) -> None:
        assert minutes_until(self.NOW + timedelta(seconds=delta_sec), self.NOW) == expected


class TestParseStopDirection:
    @pytest.mark.parametrize(
        ("stop_id", "expected"),
        [
            ("127N", ("127", Direction.FORWARD)),
            ("127S", ("127", Direction.BACKWARD)),
            ("127", ("127", Direction.UNKNOWN)),
            ("N", ("N", Direction.UNKNOWN)),
            ("R16N", ("R16", Direction.FORWARD)),
        ],
    )
    def test_parse(self, stop_id: str, expected: tuple[str, Direction]) -> None:
        assert parse_stop_direction(stop_id) == expected

    def test_labels(self) -> None:
        assert Direction.FORWARD.label == "NORTH"
        assert Direction.BACKWARD.label == "SOUTH"
        assert Direction.UNKNOWN.label is None


class TestStation:
    def station(self, lines: list[str]) -> Station:
        return Station(
            id="127", name="Times Sq-42 St", city="nyc", latitude=0.0, longitude=0.0, lines=lines
        )

    def test_serves_line_case_insensitive(self) -> None:
        station = self.station(["A", "GS", "7X"])
        assert station.serves_line("a")
        assert station.serves_line(" gs ")
        assert station.serves_line("7x")
        assert not station.serves_line("G")

    def test_is_frozen(self) -> None:
        station = self.station(["1"])
        with pytest.raises(ValidationError):
            station.name = "Other"  # type: ignore[misc]

    def test_negative_transfer_time_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StationTransfer(to_station_id="725", to_station_name="X", transfer_time=-1)


class TestDedupe:
    def test_keeps_first_seen_order(self) -> None:
        assert dedupe(["RD", " OR", "", "RD", "SV "]) == ["RD", "OR", "SV"]


class TestWmataRecords:
    def test_train_position_from_upstream_json(self) -> None:
        position = TrainPosition.model_validate(
            {
                "TrainId": "100",
                "TrainNumber": "301",
                "CarCount": 6,
                "DirectionNum": 1,
                "CircuitId": 1234,
                "DestinationStationCode": "A01",
                "LineCode": "RD",
                "SecondsAtLocation": 0,
                "ServiceType": "Normal",
            }
        )
        assert position.line_code == "RD"
        assert position.car_count == 6

    def test_bus_position_ignores_unknown_fields(self) -> None:
        position = BusPosition.model_validate(
            {
                "VehicleID": "7201",
                "RouteID": "70",
                "Lat": 38.9,
                "Lon": -77.0,
                "DateTime": "2025-01-15T12:00:00",
                "BlockNumber": "70-01",
            }
        )
        assert position.timestamp == "2025-01-15T12:00:00"
