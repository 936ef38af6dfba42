"""GTFS readers for ZIP archives and unpacked feed directories."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Protocol, Union

from transit_aggregator.logging import get_logger

logger = get_logger(__name__)

# Files required for building the station dataset
REQUIRED_FILES = {"stops.txt", "routes.txt", "trips.txt", "stop_times.txt"}

# Optional files we can process if present
OPTIONAL_FILES = {"transfers.txt"}


class MissingRequiredFileError(Exception):
    """Raised when a required GTFS file is missing from the feed."""


class GtfsReader(Protocol):
    def open_file(self, filename: str) -> io.TextIOBase: ...

    def has_file(self, filename: str) -> bool: ...

    def list_files(self) -> list[str]: ...

    def close(self) -> None: ...


def _validate(names: set[str], source: str) -> None:
    missing = REQUIRED_FILES - names
    if missing:
        msg = f"Missing required GTFS files: {sorted(missing)}"
        raise MissingRequiredFileError(msg)

    logger.info(
        "GTFS feed validated",
        source=source,
        required_files=sorted(REQUIRED_FILES),
        optional_present=sorted(OPTIONAL_FILES & names),
        total_files=len(names),
    )


class GtfsZipReader:
    """Opens and validates a GTFS ZIP archive."""

    def __init__(self, data: bytes) -> None:
        """Initialize reader with ZIP bytes.

        Raises:
            zipfile.BadZipFile: If data is not a valid ZIP.
            MissingRequiredFileError: If required files are missing.
        """
        self._zip = zipfile.ZipFile(io.BytesIO(data))
        _validate(set(self._zip.namelist()), "zip")

    def open_file(self, filename: str) -> io.TextIOWrapper:
        """Open a file from the ZIP archive for text reading.

        Returns:
            TextIOWrapper suitable for csv.DictReader.
        """
        binary_stream = self._zip.open(filename)
        return io.TextIOWrapper(binary_stream, encoding="utf-8-sig", newline="")

    def has_file(self, filename: str) -> bool:
        return filename in self._zip.namelist()

    def list_files(self) -> list[str]:
        """List all filenames in the archive."""
        return self._zip.namelist()

    def close(self) -> None:
        """Close the ZIP archive."""
        self._zip.close()

    def __enter__(self) -> GtfsZipReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class GtfsDirectoryReader:
    """Reads an unpacked GTFS feed (a directory of .txt files)."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        if not self._path.is_dir():
            msg = f"GTFS directory not found: {self._path}"
            raise FileNotFoundError(msg)
        _validate(set(self.list_files()), str(self._path))

    def open_file(self, filename: str) -> io.TextIOWrapper:
        return open(self._path / filename, encoding="utf-8-sig", newline="")  # noqa: SIM115

    def has_file(self, filename: str) -> bool:
        return (self._path / filename).is_file()

    def list_files(self) -> list[str]:
        return sorted(p.name for p in self._path.iterdir() if p.is_file())

    def close(self) -> None:
        pass

    def __enter__(self) -> GtfsDirectoryReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def open_reader(source: Union[bytes, str, Path]) -> GtfsZipReader | GtfsDirectoryReader:
    """Pick a reader for ZIP bytes or a feed directory."""
    if isinstance(source, bytes):
        return GtfsZipReader(source)
    return GtfsDirectoryReader(source)
