"""Load and save the weather cache snapshot (weatherdata.json)."""
from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from app.app_types import CacheSnapshot
from app.data_sources.base import WeatherDataSource
from app.errors import ConfigError, PersistenceError
from app.models import SeedCity, SnapshotCity, WeatherSnapshot
from app.weather_cache import WeatherCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="persistence")

_SEED_LIST = TypeAdapter(List[SeedCity])

NEW_SNAPSHOT_MODE = 0o644


def load_seed_cities(path: Path) -> List[SeedCity]:
    """Read the bootstrap city list: a JSON array of {title, latitude, longitude}."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Error reading seed cities from {path}: {exc}") from exc
    try:
        seeds = _SEED_LIST.validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"Error parsing seed cities from {path}: {exc}") from exc
    if not seeds:
        raise ConfigError(f"no cities found in {path}")
    return seeds


def bootstrap_snapshot(seed_cities: Sequence[SeedCity]) -> CacheSnapshot:
    """Build a never-refreshed snapshot so the startup catch-up fetches everything."""
    snapshot = WeatherSnapshot(
        available_cities=[
            SnapshotCity(title=seed.title, latitude=seed.latitude, longitude=seed.longitude)
            for seed in seed_cities
        ]
    )
    return snapshot.to_cache_snapshot()


def load_snapshot(path: Path, seed_cities: Optional[Sequence[SeedCity]] = None) -> CacheSnapshot:
    """Read and validate the snapshot file.

    A missing file is only acceptable when seed cities are supplied; every
    other problem (unreadable, malformed, zero cities) is a ConfigError.
    """
    path = Path(path)
    if not path.exists() and seed_cities:
        logger.warning(f"{path} not found; bootstrapping {len(seed_cities)} cities from the seed list")
        return bootstrap_snapshot(seed_cities)

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Error reading {path}: {exc}") from exc

    try:
        snapshot = WeatherSnapshot.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"Error unmarshalling {path}: {exc}") from exc

    if not snapshot.available_cities:
        raise ConfigError(f"no cities found in {path}")

    for city in snapshot.available_cities:
        logger.info(f"Loaded city: {city.title} ({city.latitude:.4f}, {city.longitude:.4f})")
    logger.info(f"Last weather update: {snapshot.last_weather_update.isoformat()}")
    logger.info(f"Last offset update: {snapshot.last_offset_update.isoformat()}")

    return snapshot.to_cache_snapshot()


def load_cache(
    path: Path,
    data_source: WeatherDataSource,
    *,
    seed_cities: Optional[Sequence[SeedCity]] = None,
    **cache_kwargs,
) -> WeatherCache:
    """Construct the process-wide cache from the snapshot file."""
    return WeatherCache.from_snapshot(load_snapshot(path, seed_cities), data_source, **cache_kwargs)


def dump_snapshot(snapshot: CacheSnapshot) -> str:
    """Serialize a snapshot as pretty-printed JSON with 2-space indentation."""
    return WeatherSnapshot.from_cache_snapshot(snapshot).model_dump_json(indent=2, by_alias=True) + "\n"


def save_snapshot(snapshot: CacheSnapshot, path: Path) -> None:
    """Rewrite the snapshot file wholesale via a temp file and an atomic rename."""
    path = Path(path)
    payload = dump_snapshot(snapshot)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = NEW_SNAPSHOT_MODE
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(payload)
        # NamedTemporaryFile is created 0600; keep the snapshot's own permissions.
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(f"failed to write {path}: {exc}") from exc
    logger.info(f"Saved {len(snapshot.cities)} cities to {path}")


def save_cache(cache: WeatherCache, path: Path) -> None:
    save_snapshot(cache.snapshot(), path)
