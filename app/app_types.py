"""Shared dataclasses and lightweight types used across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

# Go-style zero time; a cache stamped with it is always stale.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TemperatureSample:
    """One hourly forecast value; `time` is timezone-aware UTC."""
    time: datetime
    temperature: float


@dataclass
class City:
    """A tracked location: fixed identity plus the latest offset and forecast window."""
    title: str
    latitude: float
    longitude: float
    offset: int = 0
    times: List[datetime] = field(default_factory=list)
    temperatures: List[float] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.title} ({self.latitude:.4f}, {self.longitude:.4f})"

    def set_samples(self, samples: List[TemperatureSample]) -> None:
        """Replace the forecast window; callers hold the city's lock."""
        self.times = [s.time for s in samples]
        self.temperatures = [s.temperature for s in samples]

    def copy(self) -> "City":
        return City(
            title=self.title,
            latitude=self.latitude,
            longitude=self.longitude,
            offset=self.offset,
            times=list(self.times),
            temperatures=list(self.temperatures),
        )


@dataclass
class CacheSnapshot:
    """Point-in-time copy of the cache handed to persistence."""
    cities: List[City]
    last_weather_update: datetime = ZERO_TIME
    last_offset_update: datetime = ZERO_TIME
