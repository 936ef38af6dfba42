"""Reference dataset artifact: stations.json + routes.json per city."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from transit_aggregator.logging import get_logger
from transit_aggregator.models.transit import City, Station, TransitRoute

logger = get_logger(__name__)

STATIONS_FILE = "stations.json"
ROUTES_FILE = "routes.json"

DATA_DIR = Path(__file__).resolve().parents[2] / "data"

_stations_adapter = TypeAdapter(list[Station])
_routes_adapter = TypeAdapter(list[TransitRoute])


class DatasetError(Exception):
    """Raised when a dataset artifact is missing or malformed."""


@dataclass(frozen=True)
class TransitDataset:
    city: City
    stations: list[Station] = field(default_factory=list)
    routes: list[TransitRoute] = field(default_factory=list)

    @property
    def transfer_count(self) -> int:
        return sum(len(station.transfers or []) for station in self.stations)


def default_dataset_dir(city: City) -> Path:
    """Directory of the dataset packaged with transit_aggregator."""
    return DATA_DIR / city


def write_dataset(dataset: TransitDataset, directory: str | Path) -> tuple[Path, Path]:
    """Write the dataset as two ordered JSON arrays.

    Optional fields left unset are omitted, so the output only depends on
    the dataset contents.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    stations_path = directory / STATIONS_FILE
    routes_path = directory / ROUTES_FILE
    stations_path.write_bytes(
        _stations_adapter.dump_json(dataset.stations, indent=2, exclude_none=True) + b"\n"
    )
    routes_path.write_bytes(
        _routes_adapter.dump_json(dataset.routes, indent=2, exclude_none=True) + b"\n"
    )

    logger.info(
        "Dataset written",
        city=dataset.city,
        directory=str(directory),
        stations=len(dataset.stations),
        routes=len(dataset.routes),
    )
    return stations_path, routes_path


def load_dataset(directory: str | Path, city: City) -> TransitDataset:
    """Load a whole dataset from ``directory``.

    Raises:
        DatasetError: If a file is missing, is not valid JSON for the models,
            or belongs to a different city.
    """
    directory = Path(directory)
    try:
        stations = _stations_adapter.validate_json((directory / STATIONS_FILE).read_bytes())
        routes = _routes_adapter.validate_json((directory / ROUTES_FILE).read_bytes())
    except FileNotFoundError as exc:
        msg = f"Dataset file not found: {exc.filename}"
        raise DatasetError(msg) from exc
    except ValidationError as exc:
        msg = f"Malformed dataset in {directory}: {exc.error_count()} validation errors"
        raise DatasetError(msg) from exc

    foreign = {s.city for s in stations if s.city != city} | {
        r.city for r in routes if r.city != city
    }
    if foreign:
        msg = f"Dataset in {directory} contains data for {sorted(foreign)}, expected {city!r}"
        raise DatasetError(msg)

    logger.info(
        "Dataset loaded",
        city=city,
        directory=str(directory),
        stations=len(stations),
        routes=len(routes),
    )
    return TransitDataset(city=city, stations=stations, routes=routes)
