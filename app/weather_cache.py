"""In-memory weather cache with one lock per city.

Network calls happen outside the locks; a lock is held only while a city's
fields are read for display or overwritten with freshly fetched values, so a
slow upstream call for one city never blocks readers of any city.
"""
from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from app.app_types import ZERO_TIME, CacheSnapshot, City
from app.data_sources.base import WeatherDataSource
from app.errors import UpstreamError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="weather_cache")

DEFAULT_WEATHER_MAX_AGE = timedelta(hours=1)
DEFAULT_OFFSET_MAX_AGE = timedelta(hours=24)
DISPLAY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_next_sample(city: City, now: datetime) -> str:
    """Render the first sample strictly after `now`, or "" if there is none."""
    for sample_time, temperature in zip(city.times, city.temperatures):
        if now < sample_time:
            local_time = sample_time + timedelta(hours=city.offset)
            return (
                f"{city.title}: {temperature:.1f} "
                f"({local_time.strftime(DISPLAY_TIME_FORMAT)} GMT{city.offset:+d})"
            )
    return ""


class WeatherCache:
    """Fixed list of cities plus the two pass-level refresh timestamps."""

    def __init__(
        self,
        cities: Sequence[City],
        data_source: WeatherDataSource,
        *,
        last_weather_update: datetime = ZERO_TIME,
        last_offset_update: datetime = ZERO_TIME,
        weather_max_age: timedelta = DEFAULT_WEATHER_MAX_AGE,
        offset_max_age: timedelta = DEFAULT_OFFSET_MAX_AGE,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not cities:
            raise ValueError("a weather cache needs at least one city")
        self._cities: List[City] = list(cities)
        self._locks = [threading.Lock() for _ in self._cities]
        self._data_source = data_source
        self._last_weather_update = _as_utc(last_weather_update)
        self._last_offset_update = _as_utc(last_offset_update)
        self._weather_max_age = weather_max_age
        self._offset_max_age = offset_max_age
        self._clock = clock or utcnow
        # Serializes passes of the same kind; different kinds may overlap.
        self._weather_pass_lock = threading.Lock()
        self._offset_pass_lock = threading.Lock()

    @classmethod
    def from_snapshot(cls, snapshot: CacheSnapshot, data_source: WeatherDataSource, **kwargs) -> "WeatherCache":
        return cls(
            snapshot.cities,
            data_source,
            last_weather_update=snapshot.last_weather_update,
            last_offset_update=snapshot.last_offset_update,
            **kwargs,
        )

    def __len__(self) -> int:
        return len(self._cities)

    @property
    def last_weather_update(self) -> datetime:
        return self._last_weather_update

    @property
    def last_offset_update(self) -> datetime:
        return self._last_offset_update

    def now(self) -> datetime:
        return self._clock()

    def _check_index(self, city_index: int) -> None:
        if not 0 <= city_index < len(self._cities):
            raise IndexError(f"city index {city_index} out of range")

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get_cities(self, now: Optional[datetime] = None) -> List[str]:
        """Return one display line per city, "" for cities with nothing upcoming."""
        now = _as_utc(now) if now is not None else self._clock()
        result: List[str] = []
        for city, lock in zip(self._cities, self._locks):
            with lock:
                result.append(format_next_sample(city, now))
        return result

    def snapshot(self) -> CacheSnapshot:
        """Copy every city under its own lock; no global lock is taken."""
        cities = []
        for city, lock in zip(self._cities, self._locks):
            with lock:
                cities.append(city.copy())
        return CacheSnapshot(
            cities=cities,
            last_weather_update=self._last_weather_update,
            last_offset_update=self._last_offset_update,
        )

    # ------------------------------------------------------------------
    # Per-city updates
    # ------------------------------------------------------------------

    def update_offset(self, city_index: int) -> None:
        """Fetch and store the UTC offset of one city."""
        self._check_index(city_index)
        city = self._cities[city_index]
        try:
            offset = self._data_source.fetch_offset(city.latitude, city.longitude)
        except UpstreamError as exc:
            exc.city = str(city)
            raise

        with self._locks[city_index]:
            city.offset = offset
        logger.info(f"for the city {city} new offset is {offset}")

    def update_weather(self, city_index: int) -> None:
        """Fetch and store the hourly forecast of one city."""
        self._check_index(city_index)
        city = self._cities[city_index]
        try:
            samples = self._data_source.fetch_hourly_temperature(city.latitude, city.longitude)
        except UpstreamError as exc:
            exc.city = str(city)
            raise

        with self._locks[city_index]:
            city.set_samples(samples)
        logger.info(f"for the city {city} temperature is updated ({len(samples)} samples)")

    # ------------------------------------------------------------------
    # Refresh passes
    # ------------------------------------------------------------------

    def update_offset_if_needed(self, now: datetime) -> bool:
        """Refresh every city's offset if the last full pass is older than the max age."""
        with self._offset_pass_lock:
            if _as_utc(now) - self._last_offset_update <= self._offset_max_age:
                return False
            logger.info("Offset data is outdated, updating...")
            for i in range(len(self._cities)):
                try:
                    self.update_offset(i)
                except UpstreamError as exc:
                    logger.error(f"error updating offset for city {self._cities[i]}: {exc}")
                    raise
            self._last_offset_update = max(self._last_offset_update, self._clock())
            logger.info(f"Offsets updated for {len(self._cities)} cities")
            return True

    def update_weather_if_needed(self, now: datetime) -> bool:
        """Refresh every city's forecast if the last full pass is older than the max age."""
        with self._weather_pass_lock:
            if _as_utc(now) - self._last_weather_update <= self._weather_max_age:
                return False
            logger.info("Weather data is outdated, updating...")
            for i in range(len(self._cities)):
                try:
                    self.update_weather(i)
                except UpstreamError as exc:
                    logger.error(f"error updating weather for city {self._cities[i]}: {exc}")
                    raise
            self._last_weather_update = max(self._last_weather_update, self._clock())
            logger.info(f"Weather updated for {len(self._cities)} cities")
            return True
