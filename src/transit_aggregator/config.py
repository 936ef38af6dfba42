"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Transit Aggregator"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # WMATA (DC Metro) REST API
    wmata_api_key: str = Field(default="")
    wmata_base_url: str = Field(
        default="https://api.wmata.com",
        validation_alias=AliasChoices("WMATA_BASE_URL"),
    )

    # MTA (NYC Subway) GTFS-realtime feeds
    mta_feed_base_url: str = Field(
        default="https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds",
        validation_alias=AliasChoices("MTA_FEED_BASE_URL"),
    )
    mta_alerts_url: str = Field(
        default=(
            "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/"
            "camsys%2Fsubway-alerts.json"
        ),
        validation_alias=AliasChoices("MTA_ALERTS_URL"),
    )
    mta_gtfs_static_url: str = Field(
        default="http://web.mta.info/developers/data/nyct/subway/google_transit.zip",
        validation_alias=AliasChoices("MTA_GTFS_STATIC_URL", "GTFS_STATIC_URL"),
    )
    # None means the dataset packaged with transit_aggregator/data
    mta_dataset_dir: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MTA_DATASET_DIR"),
    )
    mta_narrow_feed_fanout: bool = True

    # Cache TTLs per resource class
    cache_ttl_static_sec: int = Field(default=3600, ge=0)
    cache_ttl_bus_stops_sec: int = Field(default=1800, ge=0)
    cache_ttl_incidents_sec: int = Field(default=300, ge=0)
    cache_ttl_predictions_sec: int = Field(default=30, ge=0)
    cache_ttl_positions_sec: int = Field(default=10, ge=0)

    # Upstream HTTP
    http_timeout_sec: float = Field(default=10.0, gt=0)
    feed_timeout_sec: float = Field(default=10.0, gt=0)

    # Static GTFS pipeline
    gtfs_static_fetch_timeout_sec: int = 120
    gtfs_static_max_retries: int = Field(default=3, ge=1)
    gtfs_static_backoff_base: float = 2.0
    gtfs_import_strict: bool = Field(
        default=False,
        validation_alias=AliasChoices("GTFS_IMPORT_STRICT"),
    )

    def missing_required_env(self, city: Optional[str] = None) -> list[str]:
        """Return required environment variables that are missing or empty.

        With ``city`` set, only the credentials that city needs are checked.
        """
        missing: list[str] = []

        if city in (None, "dc") and not self.wmata_api_key:
            missing.append("WMATA_API_KEY")

        return missing

    def mta_feed_url(self, path: str) -> str:
        """Build a full MTA feed URL from its path segment (e.g. ``nyct%2Fgtfs-ace``)."""
        return f"{self.mta_feed_base_url.rstrip('/')}/{path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
