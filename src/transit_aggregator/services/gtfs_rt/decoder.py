"""GTFS-RT protobuf decode layer."""

from __future__ import annotations

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from transit_aggregator.logging import get_logger

logger = get_logger(__name__)


class FeedDecodeError(Exception):
    """Raised when protobuf decoding fails."""


class GtfsRtDecoder:
    """Decodes raw protobuf bytes into GTFS-RT FeedMessage objects."""

    @staticmethod
    def decode(data: bytes, feed: str) -> gtfs_realtime_pb2.FeedMessage:
        """Decode protobuf bytes into a FeedMessage.

        Args:
            data: Raw protobuf bytes.
            feed: Feed name for logging.

        Raises:
            FeedDecodeError: If protobuf parsing fails.
        """
        try:
            message = gtfs_realtime_pb2.FeedMessage()
            message.ParseFromString(data)
        except DecodeError as exc:
            msg = f"Failed to decode {feed} protobuf"
            raise FeedDecodeError(msg) from exc

        logger.debug(
            "GTFS-RT feed decoded",
            feed=feed,
            entity_count=len(message.entity),
            feed_timestamp=GtfsRtDecoder.get_feed_timestamp(message),
        )
        return message

    @staticmethod
    def get_feed_timestamp(message: gtfs_realtime_pb2.FeedMessage) -> int:
        """Extract the header timestamp from a FeedMessage.

        Returns:
            Unix timestamp (seconds), or 0 if not set.
        """
        return message.header.timestamp if message.header.timestamp else 0
