"""Factory helpers for choosing the weather data source at startup."""

from __future__ import annotations

from app import config
from app.data_sources.base import CallableWeatherDataSource, WeatherDataSource
from app.data_sources.geonames_client import fetch_offset
from app.data_sources.open_meteo_client import fetch_hourly_temperature
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "live"


def build_data_source(settings: config.Settings | None = None) -> WeatherDataSource:
    """Instantiate the configured weather data source."""
    settings = settings or config.settings
    source = (settings.data_source or DEFAULT_SOURCE_NAME).lower()

    if source == "live":
        logger.info("Using GeoNames + Open-Meteo data source")
        return CallableWeatherDataSource(
            offset=fetch_offset,
            hourly_temperature=fetch_hourly_temperature,
        )

    raise ValueError(f"Unknown weather data source '{source}'")
