"""Background jobs that keep the weather cache fresh and persisted.

Three asyncio tasks share one cache: the weather job (offsets then forecasts,
hourly), the offset job (daily) and the save job (hourly, unconditional).
Refresh passes do blocking HTTP and run in worker threads so the event loop
keeps serving reads.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional

from app.errors import PersistenceError
from app.weather_cache import WeatherCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="scheduler")

WEATHER_REFRESH_SECONDS = 3600
OFFSET_REFRESH_SECONDS = 24 * 3600
SAVE_INTERVAL_SECONDS = 3600


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


class Scheduler:
    """Runs the startup catch-up and the periodic refresh/save jobs."""

    def __init__(
        self,
        cache: WeatherCache,
        save: Callable[[], None],
        *,
        weather_interval: float = WEATHER_REFRESH_SECONDS,
        offset_interval: float = OFFSET_REFRESH_SECONDS,
        save_interval: float = SAVE_INTERVAL_SECONDS,
    ) -> None:
        self.cache = cache
        self._save_fn = save
        self.weather_interval = weather_interval
        self.offset_interval = offset_interval
        self.save_interval = save_interval
        self.state = SchedulerState.IDLE
        self.last_error: Optional[BaseException] = None

    async def save(self) -> bool:
        """Persist the cache; write failures are logged and left to the next save."""
        try:
            await asyncio.to_thread(self._save_fn)
        except PersistenceError as exc:
            logger.error(f"error saving cache: {exc}")
            return False
        return True

    async def refresh_offsets(self) -> bool:
        return await asyncio.to_thread(self.cache.update_offset_if_needed, self.cache.now())

    async def refresh_weather(self) -> bool:
        return await asyncio.to_thread(self.cache.update_weather_if_needed, self.cache.now())

    async def catch_up(self) -> bool:
        """Refresh stale offsets, then stale forecasts, and save if anything changed."""
        updated_offset = await self.refresh_offsets()
        updated_weather = await self.refresh_weather()
        if updated_offset or updated_weather:
            logger.info("Saving cache due to data updates")
            await self.save()
            return True
        return False

    @staticmethod
    async def _tick(stop: asyncio.Event, interval: float) -> bool:
        """Sleep one interval; False as soon as `stop` is set."""
        if stop.is_set():
            return False
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return True
        return False

    async def _weather_job(self, stop: asyncio.Event) -> None:
        while await self._tick(stop, self.weather_interval):
            logger.info("Updating weather data")
            # Offsets first: the weather pass may rely on a fresh offset.
            updated_offset = await self.refresh_offsets()
            updated_weather = await self.refresh_weather()
            if updated_offset or updated_weather:
                await self.save()
        logger.info("Stopping weather update job")

    async def _offset_job(self, stop: asyncio.Event) -> None:
        while await self._tick(stop, self.offset_interval):
            logger.info("Updating offsets")
            if await self.refresh_offsets():
                await self.save()
        logger.info("Stopping offset update job")

    async def _save_job(self, stop: asyncio.Event) -> None:
        while await self._tick(stop, self.save_interval):
            logger.info("Saving cache to file")
            await self.save()
        logger.info("Stopping cache save job")

    @staticmethod
    async def _relay(source: asyncio.Event, target: asyncio.Event) -> None:
        await source.wait()
        target.set()

    async def run(self, stop: asyncio.Event) -> None:
        """Catch up, then run all jobs until `stop` is set or one of them fails.

        Returns None on an orderly stop. The first job error stops the other
        jobs, waits for them and is re-raised.
        """
        self.state = SchedulerState.RUNNING
        self.last_error = None
        halt = asyncio.Event()
        relay = asyncio.create_task(self._relay(stop, halt))
        jobs: list[asyncio.Task] = []
        try:
            await self.catch_up()
            jobs = [
                asyncio.create_task(self._weather_job(halt), name="weather-update-job"),
                asyncio.create_task(self._offset_job(halt), name="offset-update-job"),
                asyncio.create_task(self._save_job(halt), name="cache-save-job"),
            ]
            done, _pending = await asyncio.wait(jobs, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    raise task.exception()
        except BaseException as exc:
            if not isinstance(exc, asyncio.CancelledError):
                self.state = SchedulerState.FAILED
                self.last_error = exc
                logger.error(f"Scheduler stopped due to an error: {exc}")
            raise
        finally:
            halt.set()
            if jobs:
                await asyncio.gather(*jobs, return_exceptions=True)
            relay.cancel()
            await asyncio.gather(relay, return_exceptions=True)
            if self.state is SchedulerState.RUNNING:
                self.state = SchedulerState.STOPPED
