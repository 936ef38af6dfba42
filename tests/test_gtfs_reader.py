"""Tests for GTFS readers - ZIP/directory access and required file validation."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from transit_aggregator.services.gtfs_static.reader import (
    GtfsDirectoryReader,
    GtfsZipReader,
    MissingRequiredFileError,
    open_reader,
)

from .fixtures.gtfs_fixture import build_gtfs_zip, write_gtfs_dir


class TestGtfsZipReader:
    """Tests for ZIP reader validation and file extraction."""

    def test_valid_zip_opens_successfully(self) -> None:
        zip_bytes = build_gtfs_zip()
        reader = GtfsZipReader(zip_bytes)
        assert "stops.txt" in reader.list_files()
        assert "routes.txt" in reader.list_files()
        assert "trips.txt" in reader.list_files()
        assert "stop_times.txt" in reader.list_files()
        reader.close()

    def test_missing_required_file_raises(self) -> None:
        zip_bytes = build_gtfs_zip(exclude_files={"stops.txt"})
        with pytest.raises(MissingRequiredFileError, match=r"stops\.txt"):
            GtfsZipReader(zip_bytes)

    def test_missing_optional_transfers_is_fine(self) -> None:
        zip_bytes = build_gtfs_zip(transfers=None)
        with GtfsZipReader(zip_bytes) as reader:
            assert not reader.has_file("transfers.txt")

    def test_invalid_zip_bytes_raises(self) -> None:
        with pytest.raises(zipfile.BadZipFile):
            GtfsZipReader(b"not a zip file")

    def test_open_file_returns_text(self) -> None:
        zip_bytes = build_gtfs_zip()
        with GtfsZipReader(zip_bytes) as reader:
            text_io = reader.open_file("stops.txt")
            header = text_io.readline()
        assert "stop_id" in header

    def test_bom_is_stripped(self) -> None:
        zip_bytes = build_gtfs_zip(
            stops="\ufeffstop_id,stop_name,stop_lat,stop_lon\n1,A,0,0\n"
        )
        with GtfsZipReader(zip_bytes) as reader:
            header = reader.open_file("stops.txt").readline()
        assert header.startswith("stop_id")


class TestGtfsDirectoryReader:
    """Tests for unpacked feed directories."""

    def test_reads_directory(self, tmp_path: Path) -> None:
        feed_dir = write_gtfs_dir(tmp_path / "feed")
        with GtfsDirectoryReader(feed_dir) as reader:
            assert reader.has_file("transfers.txt")
            assert reader.list_files() == sorted(reader.list_files())
            assert "stop_id" in reader.open_file("stops.txt").readline()

    def test_missing_required_file_raises(self, tmp_path: Path) -> None:
        feed_dir = write_gtfs_dir(tmp_path / "feed", exclude_files={"trips.txt"})
        with pytest.raises(MissingRequiredFileError, match=r"trips\.txt"):
            GtfsDirectoryReader(feed_dir)

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            GtfsDirectoryReader(tmp_path / "nope")


class TestOpenReader:
    def test_bytes_open_zip_reader(self) -> None:
        with open_reader(build_gtfs_zip()) as reader:
            assert isinstance(reader, GtfsZipReader)

    def test_path_opens_directory_reader(self, tmp_path: Path) -> None:
        feed_dir = write_gtfs_dir(tmp_path / "feed")
        with open_reader(feed_dir) as reader:
            assert isinstance(reader, GtfsDirectoryReader)
