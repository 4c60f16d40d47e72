"""Pydantic schemas for the on-disk snapshot and the seed city list."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.app_types import ZERO_TIME, CacheSnapshot, City


def _as_utc(value: datetime) -> datetime:
    """Read naive timestamps as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SeedCity(BaseModel):
    """A city definition used to bootstrap an empty cache."""
    title: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class SnapshotCity(BaseModel):
    """One entry of `available_cities` in weatherdata.json."""
    model_config = ConfigDict(populate_by_name=True)

    latitude: float
    longitude: float
    title: str
    offset: int = Field(default=0, alias="dstOffset")
    time: List[datetime] = Field(default_factory=list)
    temperature: List[float] = Field(default_factory=list, alias="temperature_2m")

    @field_validator("time", mode="after")
    @classmethod
    def times_to_utc(cls, v: List[datetime]) -> List[datetime]:
        return [_as_utc(t) for t in v]

    @model_validator(mode="after")
    def check_samples(self) -> "SnapshotCity":
        """Samples must be parallel and strictly increasing in time."""
        if len(self.time) != len(self.temperature):
            raise ValueError(
                f"city {self.title}: {len(self.time)} timestamps but {len(self.temperature)} temperatures"
            )
        for earlier, later in zip(self.time, self.time[1:]):
            if later <= earlier:
                raise ValueError(f"city {self.title}: timestamps are not strictly increasing at {later.isoformat()}")
        return self

    @classmethod
    def from_city(cls, city: City) -> "SnapshotCity":
        return cls(
            latitude=city.latitude,
            longitude=city.longitude,
            title=city.title,
            offset=city.offset,
            time=list(city.times),
            temperature=list(city.temperatures),
        )

    def to_city(self) -> City:
        return City(
            title=self.title,
            latitude=self.latitude,
            longitude=self.longitude,
            offset=self.offset,
            times=list(self.time),
            temperatures=list(self.temperature),
        )


class WeatherSnapshot(BaseModel):
    """The whole weatherdata.json document."""
    available_cities: List[SnapshotCity] = Field(default_factory=list)
    last_weather_update: datetime = ZERO_TIME
    last_offset_update: datetime = ZERO_TIME

    @field_validator("last_weather_update", "last_offset_update", mode="after")
    @classmethod
    def stamp_to_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @classmethod
    def from_cache_snapshot(cls, snapshot: CacheSnapshot) -> "WeatherSnapshot":
        return cls(
            available_cities=[SnapshotCity.from_city(c) for c in snapshot.cities],
            last_weather_update=snapshot.last_weather_update,
            last_offset_update=snapshot.last_offset_update,
        )

    def to_cache_snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            cities=[c.to_city() for c in self.available_cities],
            last_weather_update=self.last_weather_update,
            last_offset_update=self.last_offset_update,
        )
