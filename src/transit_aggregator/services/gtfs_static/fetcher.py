"""Resolves a GTFS static source (URL, ZIP file or directory) to readable feed data."""

from __future__ import annotations

import asyncio
import hashlib
import io
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Union

import httpx

from transit_aggregator.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 120
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 2.0

ZIP_MAGIC = b"PK\x03\x04"

SourceKind = Literal["remote", "zip", "directory"]


class FetchError(Exception):
    """Raised when the remote feed cannot be downloaded after all retries."""


class InvalidZipError(Exception):
    """Raised when feed content is not a valid ZIP archive."""


@dataclass(frozen=True)
class FetchedFeed:
    """Feed content ready for ``open_reader``, with a content hash.

    ``content`` is ZIP bytes for remote and ZIP sources, and the directory
    path for unpacked feeds.
    """

    kind: SourceKind
    content: Union[bytes, Path]
    feed_hash: str


class GtfsStaticFetcher:
    """Loads the static GTFS feed the dataset is built from.

    Remote downloads are retried with exponential backoff since the build
    runs offline; local sources are read once.
    """

    def __init__(
        self,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
    ) -> None:
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    async def resolve(self, source: str | Path) -> FetchedFeed:
        """Load ``source``: an http(s) URL, a ZIP file or a feed directory.

        Raises:
            FetchError: If a remote download keeps failing.
            FileNotFoundError: If a local path does not exist.
            InvalidZipError: If a ZIP source is not a valid archive.
        """
        if isinstance(source, str) and source.startswith(("http://", "https://")):
            data, feed_hash = await self.fetch_remote(source)
            return FetchedFeed("remote", data, feed_hash)

        path = Path(source)
        if path.is_dir():
            return FetchedFeed("directory", path, self.hash_directory(path))

        data, feed_hash = self.fetch_local(path)
        return FetchedFeed("zip", data, feed_hash)

    async def fetch_remote(self, url: str) -> tuple[bytes, str]:
        """Download the feed ZIP, retrying transport and HTTP errors.

        Returns:
            Tuple of (zip_bytes, sha256_hex_digest).

        Raises:
            FetchError: If all retries are exhausted.
            InvalidZipError: If the response is not a valid ZIP.
        """
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            logger.info("Downloading GTFS static feed", url=url, attempt=attempt)
            try:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_sec),
                    follow_redirects=True,
                ) as client:
                    response = await client.get(url)
                    response.raise_for_status()
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                last_error = exc
                if attempt == self.max_retries:
                    break
                delay = self.backoff_base**attempt
                logger.warning(
                    "GTFS static download failed, retrying",
                    attempt=attempt,
                    delay_sec=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)
                continue

            return self._checked(response.content, source=url)

        msg = f"Failed to fetch GTFS feed after {self.max_retries} attempts"
        raise FetchError(msg) from last_error

    def fetch_local(self, path: str | Path) -> tuple[bytes, str]:
        """Read a GTFS ZIP from the local filesystem.

        Raises:
            FileNotFoundError: If path does not exist.
            InvalidZipError: If the file is not a valid ZIP.
        """
        path = Path(path)
        if not path.exists():
            msg = f"Local GTFS file not found: {path}"
            raise FileNotFoundError(msg)
        return self._checked(path.read_bytes(), source=str(path))

    @staticmethod
    def hash_directory(path: str | Path) -> str:
        """Hash an unpacked feed directory (file names and contents, sorted)."""
        digest = hashlib.sha256()
        for file_path in sorted(Path(path).glob("*.txt")):
            digest.update(file_path.name.encode())
            digest.update(file_path.read_bytes())
        return digest.hexdigest()

    def _checked(self, data: bytes, source: str) -> tuple[bytes, str]:
        self._validate_zip(data)
        feed_hash = hashlib.sha256(data).hexdigest()
        logger.info(
            "GTFS static feed loaded", source=source, size_bytes=len(data), feed_hash=feed_hash
        )
        return data, feed_hash

    @staticmethod
    def _validate_zip(data: bytes) -> None:
        if data[:4] != ZIP_MAGIC or not zipfile.is_zipfile(io.BytesIO(data)):
            msg = "Feed content is not a valid ZIP file"
            raise InvalidZipError(msg)
