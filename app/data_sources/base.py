"""Interfaces and helpers for upstream weather data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Protocol

from app.app_types import TemperatureSample


class WeatherDataSource(Protocol):
    """Interface for anything that can provide UTC offsets and hourly temperatures."""

    def fetch_offset(self, latitude: float, longitude: float) -> int:
        """Return the current UTC offset in whole hours."""
        ...

    def fetch_hourly_temperature(self, latitude: float, longitude: float) -> List[TemperatureSample]:
        """Return the hourly temperature forecast, oldest sample first."""
        ...


@dataclass
class CallableWeatherDataSource(WeatherDataSource):
    """Wrap two callables so they can be swapped for different backends."""

    offset: Callable[..., int]
    hourly_temperature: Callable[..., List[TemperatureSample]]

    def fetch_offset(self, *args, **kwargs) -> int:
        """Delegate to the configured offset callable."""
        return self.offset(*args, **kwargs)

    def fetch_hourly_temperature(self, *args, **kwargs) -> List[TemperatureSample]:
        """Delegate to the configured forecast callable."""
        return self.hourly_temperature(*args, **kwargs)
