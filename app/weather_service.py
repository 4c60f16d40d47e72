"""Owns the weather cache and its scheduler for the lifetime of the process."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from app import config
from app.data_sources import WeatherDataSource, build_data_source
from app.persistence import load_cache, load_seed_cities, save_cache
from app.scheduler import Scheduler, SchedulerState
from app.weather_cache import WeatherCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="weather_service")


class WeatherService:
    """Load the snapshot, run the scheduler in the background, answer reads."""

    def __init__(
        self,
        settings: Optional[config.Settings] = None,
        *,
        data_source: Optional[WeatherDataSource] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or config.settings
        self._data_source = data_source
        self._clock = clock
        self.cache: Optional[WeatherCache] = None
        self.scheduler: Optional[Scheduler] = None
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    def load(self) -> WeatherCache:
        """Build the cache from the snapshot file; raises ConfigError when unusable."""
        s = self.settings
        seeds = None
        if s.seed_cities_path and not s.snapshot_path.exists():
            seeds = load_seed_cities(s.seed_cities_path)
        self.cache = load_cache(
            s.snapshot_path,
            self._data_source or build_data_source(s),
            seed_cities=seeds,
            weather_max_age=timedelta(seconds=s.weather_max_age_seconds),
            offset_max_age=timedelta(seconds=s.offset_max_age_seconds),
            clock=self._clock,
        )
        self.scheduler = Scheduler(
            self.cache,
            self.save,
            weather_interval=s.weather_refresh_seconds,
            offset_interval=s.offset_refresh_seconds,
            save_interval=s.save_interval_seconds,
        )
        return self.cache

    def save(self) -> None:
        save_cache(self.cache, self.settings.snapshot_path)

    async def start(self) -> None:
        """Load synchronously (fatal on ConfigError), then run the scheduler in the background."""
        if self.cache is None:
            self.load()
        # Bound to the running loop, so a fresh one per start.
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="weather-service")
        # Let the scheduler enter its running state before the first request.
        await asyncio.sleep(0)

    async def _run(self) -> None:
        try:
            await self.scheduler.run(self._stop)
        except Exception as exc:
            # Reads keep working off whatever is cached.
            logger.error(f"Weather service failed, serving cached data only: {exc}")
            return
        logger.info("Weather service gracefully stopped")

    async def stop(self) -> None:
        """Signal every job to stop and wait for them without a timeout."""
        logger.info("Shutting down weather service...")
        if self._stop is not None:
            self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    def load_weather(self) -> List[str]:
        """Display lines for the weather page: intro lines then one line per city."""
        lines = list(self.settings.intro_lines)
        if self.cache is not None:
            lines.extend(self.cache.get_cities())
        return lines

    def status(self) -> dict:
        state = self.scheduler.state if self.scheduler else SchedulerState.IDLE
        error = self.scheduler.last_error if self.scheduler else None
        return {
            "state": state.value,
            "last_error": str(error) if error is not None else None,
            "city_count": len(self.cache) if self.cache is not None else 0,
            "last_weather_update": self.cache.last_weather_update if self.cache is not None else None,
            "last_offset_update": self.cache.last_offset_update if self.cache is not None else None,
        }
