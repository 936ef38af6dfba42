"""GTFS-RT normalizer: trip updates to predictions, JSON alerts to incidents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from transit_aggregator.logging import get_logger
from transit_aggregator.models.transit import (
    TransitIncident,
    TransitPrediction,
    dedupe,
    minutes_until,
    parse_stop_direction,
)

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2  # type: ignore[import-untyped]

    from transit_aggregator.models.transit import City

logger = get_logger(__name__)

# MTA publishes its alert metadata under this extension key in the JSON feed
MERCURY_ALERT_KEY = "transit_realtime.mercury_alert"

DEFAULT_ALERT_TEXT = "Service alert"
DEFAULT_ALERT_TYPE = "Alert"
UNKNOWN_DESTINATION = "Unknown"


def _ts_to_dt(unix_ts: int) -> datetime:
    """Convert unix timestamp to timezone-aware datetime."""
    return datetime.fromtimestamp(unix_ts, tz=timezone.utc)


def _event_time(stop_time_update: Any) -> int:
    """Arrival time of a stop-time update, falling back to its departure time."""
    if stop_time_update.HasField("arrival") and stop_time_update.arrival.time:
        return int(stop_time_update.arrival.time)
    if stop_time_update.HasField("departure") and stop_time_update.departure.time:
        return int(stop_time_update.departure.time)
    return 0


def _alert_time(updated_at: Any, now: datetime) -> datetime:
    """Mercury update time in unix seconds; anything unparseable means ``now``."""
    if isinstance(updated_at, str) and updated_at.strip().isdigit():
        updated_at = int(updated_at)
    if not isinstance(updated_at, int) or isinstance(updated_at, bool) or updated_at <= 0:
        return now
    try:
        return _ts_to_dt(updated_at)
    except (OverflowError, OSError, ValueError):
        return now


def _english_text(translated: Any) -> str:
    """Pick the plain English translation, else the first one, else empty."""
    if not isinstance(translated, dict):
        return ""
    translations = [t for t in translated.get("translation") or [] if isinstance(t, dict)]
    for translation in translations:
        if translation.get("language") == "en" and translation.get("text"):
            return str(translation["text"])
    if translations and translations[0].get("text"):
        return str(translations[0]["text"])
    return ""


class GtfsRtNormalizer:
    """Normalizes decoded GTFS-RT data into the shared transit models."""

    @staticmethod
    def extract_predictions(
        message: gtfs_realtime_pb2.FeedMessage,
        station_id: str,
        now: datetime,
        stop_names: Optional[dict[str, str]] = None,
        city: City = "nyc",
    ) -> list[TransitPrediction]:
        """Collect predictions for one station from a trip-updates feed.

        A stop-time update matches when its stop id, with any direction
        suffix stripped, equals ``station_id`` (or matches it verbatim).
        The destination is the name of the trip's last listed stop, or its
        raw stop id when the name is unknown.

        Returns:
            Unsorted predictions; minutes_away is never negative.
        """
        stop_names = stop_names or {}
        predictions: list[TransitPrediction] = []

        for entity in message.entity:
            if not entity.HasField("trip_update"):
                continue

            trip_update = entity.trip_update
            updates = list(trip_update.stop_time_update)
            if not updates:
                continue

            terminal_stop_id = updates[-1].stop_id
            terminal_base_id, _ = parse_stop_direction(terminal_stop_id)
            destination = (
                stop_names.get(terminal_base_id) or terminal_stop_id or UNKNOWN_DESTINATION
            )

            for stop_time_update in updates:
                stop_id = stop_time_update.stop_id
                if not stop_id:
                    continue

                base_id, direction = parse_stop_direction(stop_id)
                if station_id not in (base_id, stop_id):
                    continue

                event_ts = _event_time(stop_time_update)
                if not event_ts:
                    continue

                arrival = _ts_to_dt(event_ts)
                predictions.append(
                    TransitPrediction(
                        city=city,
                        line=trip_update.trip.route_id,
                        destination=destination,
                        destination_code=terminal_base_id or None,
                        arrival_time=arrival,
                        minutes_away=minutes_until(arrival, now),
                        direction=direction.label,
                    )
                )

        return predictions

    @staticmethod
    def normalize_alerts(
        payload: dict[str, Any],
        now: datetime,
        city: City = "nyc",
    ) -> list[TransitIncident]:
        """Normalize a JSON-encoded GTFS-RT alerts feed into incidents.

        Lines come from the informed entities' route ids (de-duplicated), the
        description from the English header text, and the alert type and
        update time from the MTA Mercury extension when present.
        """
        incidents: list[TransitIncident] = []
        if not isinstance(payload, dict):
            return incidents

        for entity in payload.get("entity") or []:
            if not isinstance(entity, dict):
                continue
            alert = entity.get("alert")
            if not isinstance(alert, dict):
                continue

            lines = dedupe(
                str(informed["route_id"])
                for informed in alert.get("informed_entity") or []
                if isinstance(informed, dict) and informed.get("route_id")
            )
            mercury = alert.get(MERCURY_ALERT_KEY)
            if not isinstance(mercury, dict):
                mercury = {}
            alert_type = mercury.get("alert_type") or DEFAULT_ALERT_TYPE
            timestamp = _alert_time(mercury.get("updated_at"), now)

            incidents.append(
                TransitIncident(
                    city=city,
                    incident_id=str(entity.get("id", "")),
                    description=_english_text(alert.get("header_text")) or DEFAULT_ALERT_TEXT,
                    lines_affected=lines,
                    severity=alert_type,
                    incident_type=alert_type,
                    timestamp=timestamp.isoformat(),
                )
            )

        logger.debug("Normalized alerts", city=city, count=len(incidents))
        return incidents
