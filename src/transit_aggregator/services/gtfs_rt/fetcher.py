"""GTFS-RT feed fetcher: one attempt per call, bounded by a timeout."""

from __future__ import annotations

import json
from typing import Any

import httpx

from transit_aggregator.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0


class FeedFetchError(Exception):
    """Raised when a GTFS-RT feed cannot be downloaded."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GtfsRtFetcher:
    """Fetches GTFS-RT protobuf feeds and JSON alert feeds.

    Retries are left to the caller; each fetch is a single GET. A shared
    ``httpx.AsyncClient`` may be injected, otherwise one is opened per call.
    """

    def __init__(
        self,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout_sec = timeout_sec
        self._client = client

    async def fetch(self, url: str, feed: str) -> bytes:
        """Download a protobuf feed.

        Raises:
            FeedFetchError: On transport failure, non-2xx status or empty body.
        """
        data = await self._get(url, feed)
        if not data:
            msg = f"Empty response body from {feed} feed"
            raise FeedFetchError(msg)
        return data

    async def fetch_json(self, url: str, feed: str) -> Any:
        """Download and parse a JSON feed.

        Raises:
            FeedFetchError: On transport failure, non-2xx status or invalid JSON.
        """
        data = await self._get(url, feed)
        try:
            return json.loads(data)
        except ValueError as exc:
            msg = f"Invalid JSON from {feed} feed"
            raise FeedFetchError(msg) from exc

    async def _get(self, url: str, feed: str) -> bytes:
        logger.debug("Fetching GTFS-RT feed", feed=feed)
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout_sec)
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_sec),
                    follow_redirects=True,
                ) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            msg = f"{feed} feed returned HTTP {status}"
            raise FeedFetchError(msg, status_code=status) from exc
        except httpx.RequestError as exc:
            msg = f"Failed to fetch {feed} feed: {exc}"
            raise FeedFetchError(msg) from exc

        data = response.content
        logger.debug("GTFS-RT feed downloaded", feed=feed, size_bytes=len(data))
        return data
