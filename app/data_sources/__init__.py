"""Upstream data sources for offsets and hourly forecasts."""

from .base import CallableWeatherDataSource, WeatherDataSource
from .factory import build_data_source
from .geonames_client import fetch_offset
from .open_meteo_client import fetch_hourly_temperature

__all__ = [
    "build_data_source",
    "WeatherDataSource",
    "CallableWeatherDataSource",
    "fetch_offset",
    "fetch_hourly_temperature",
]
