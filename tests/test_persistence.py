import json
import os
import stat
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from app.app_types import ZERO_TIME, CacheSnapshot, City
from app.errors import ConfigError, PersistenceError
from app.models import SeedCity
from app.persistence import (
    dump_snapshot,
    load_cache,
    load_seed_cities,
    load_snapshot,
    save_cache,
    save_snapshot,
)
from app.weather_cache import WeatherCache

UTC = timezone.utc


class NullSource:
    def fetch_offset(self, latitude, longitude):
        raise AssertionError("no network in persistence tests")

    def fetch_hourly_temperature(self, latitude, longitude):
        raise AssertionError("no network in persistence tests")


def _snapshot():
    return CacheSnapshot(
        cities=[
            City(
                title="Paris",
                latitude=48.85,
                longitude=2.35,
                offset=2,
                times=[datetime(2024, 1, 1, 10, tzinfo=UTC), datetime(2024, 1, 1, 11, tzinfo=UTC)],
                temperatures=[5.0, 6.0],
            ),
            City(title="Reykjavik", latitude=64.1466, longitude=-21.9426, offset=0),
        ],
        last_weather_update=datetime(2024, 1, 1, 9, 15, 30, 123456, tzinfo=UTC),
        last_offset_update=datetime(2023, 12, 31, 23, 0, tzinfo=UTC),
    )


class TestPersistence(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.path = self.dir / "weatherdata" / "weatherdata.json"

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, doc):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(doc if isinstance(doc, str) else json.dumps(doc), encoding="utf-8")

    def test_round_trip(self):
        original = _snapshot()
        save_snapshot(original, self.path)
        loaded = load_snapshot(self.path)
        self.assertEqual(loaded, original)

    def test_file_layout(self):
        save_snapshot(_snapshot(), self.path)
        text = self.path.read_text(encoding="utf-8")
        self.assertTrue(text.startswith('{\n  "available_cities": [\n    {\n'))
        doc = json.loads(text)
        self.assertEqual(set(doc), {"available_cities", "last_weather_update", "last_offset_update"})
        paris = doc["available_cities"][0]
        self.assertEqual(
            list(paris), ["latitude", "longitude", "title", "dstOffset", "time", "temperature_2m"]
        )
        self.assertEqual(paris["time"][0], "2024-01-01T10:00:00Z")
        self.assertEqual(paris["dstOffset"], 2)

    def test_save_leaves_no_temp_files(self):
        save_snapshot(_snapshot(), self.path)
        save_snapshot(_snapshot(), self.path)
        self.assertEqual([p.name for p in self.path.parent.iterdir()], ["weatherdata.json"])

    def test_missing_file_is_config_error(self):
        with self.assertRaises(ConfigError):
            load_snapshot(self.path)

    def test_corrupt_file_is_config_error(self):
        self._write("{ not json")
        with self.assertRaises(ConfigError):
            load_snapshot(self.path)

    def test_zero_cities_is_config_error(self):
        self._write({"available_cities": [], "last_weather_update": "2024-01-01T00:00:00Z"})
        with self.assertRaises(ConfigError):
            load_snapshot(self.path)

    def test_mismatched_samples_is_config_error(self):
        self._write({
            "available_cities": [
                {"latitude": 1, "longitude": 2, "title": "X", "dstOffset": 0,
                 "time": ["2024-01-01T10:00:00Z"], "temperature_2m": [1.0, 2.0]}
            ],
        })
        with self.assertRaises(ConfigError):
            load_snapshot(self.path)

    def test_minimal_city_entries_and_zero_times(self):
        self._write({
            "available_cities": [{"latitude": 1.5, "longitude": 2.5, "title": "Bare"}],
            "last_weather_update": "0001-01-01T00:00:00Z",
            "last_offset_update": "2024-05-01T12:00:00+03:00",
        })
        snap = load_snapshot(self.path)
        self.assertEqual(snap.cities[0], City("Bare", 1.5, 2.5))
        self.assertEqual(snap.last_weather_update, ZERO_TIME)
        self.assertEqual(snap.last_offset_update, datetime(2024, 5, 1, 9, tzinfo=UTC))
        self.assertEqual(snap.last_offset_update.utcoffset().total_seconds(), 0)

    def test_naive_timestamps_read_as_utc(self):
        self._write({
            "available_cities": [
                {"latitude": 1, "longitude": 2, "title": "X", "time": ["2024-01-01T10:00:00"],
                 "temperature_2m": [3.0]}
            ],
        })
        snap = load_snapshot(self.path)
        self.assertEqual(snap.cities[0].times, [datetime(2024, 1, 1, 10, tzinfo=UTC)])

    def test_bootstrap_from_seed_cities(self):
        seeds = [SeedCity(title="Oslo", latitude=59.91, longitude=10.75)]
        snap = load_snapshot(self.path, seed_cities=seeds)
        self.assertEqual(snap.cities, [City("Oslo", 59.91, 10.75)])
        self.assertEqual(snap.last_weather_update, ZERO_TIME)
        self.assertEqual(snap.last_offset_update, ZERO_TIME)

    def test_existing_snapshot_wins_over_seeds(self):
        save_snapshot(_snapshot(), self.path)
        snap = load_snapshot(self.path, seed_cities=[SeedCity(title="Oslo", latitude=59.91, longitude=10.75)])
        self.assertEqual([c.title for c in snap.cities], ["Paris", "Reykjavik"])

    def test_load_seed_cities(self):
        seed_path = self.dir / "cities.json"
        seed_path.write_text(json.dumps([{"title": "Oslo", "latitude": 59.91, "longitude": 10.75}]), encoding="utf-8")
        self.assertEqual(load_seed_cities(seed_path)[0].title, "Oslo")

        seed_path.write_text("[]", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_seed_cities(seed_path)

        seed_path.write_text(json.dumps([{"title": "Nowhere", "latitude": 123, "longitude": 0}]), encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_seed_cities(seed_path)

    def test_invalid_utf8_is_config_error(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(b'{"available_cities": [{"title": "\xff", "latitude": 1, "longitude": 2}]}')
        with self.assertRaises(ConfigError):
            load_snapshot(self.path)

    def test_invalid_utf8_seed_file_is_config_error(self):
        seed_path = self.dir / "cities.json"
        seed_path.write_bytes(b'[{"title": "\xfe", "latitude": 1, "longitude": 2}]')
        with self.assertRaises(ConfigError):
            load_seed_cities(seed_path)

    def test_save_keeps_existing_file_mode(self):
        save_snapshot(_snapshot(), self.path)
        os.chmod(self.path, 0o640)
        save_snapshot(_snapshot(), self.path)
        self.assertEqual(stat.S_IMODE(self.path.stat().st_mode), 0o640)

    def test_new_snapshot_is_world_readable(self):
        save_snapshot(_snapshot(), self.path)
        self.assertEqual(stat.S_IMODE(self.path.stat().st_mode), 0o644)

    def test_write_failure_is_persistence_error(self):
        blocker = self.dir / "not-a-dir"
        blocker.write_text("x", encoding="utf-8")
        with self.assertRaises(PersistenceError):
            save_snapshot(_snapshot(), blocker / "weatherdata.json")

    def test_load_and_save_cache(self):
        save_snapshot(_snapshot(), self.path)
        cache = load_cache(self.path, NullSource())
        self.assertIsInstance(cache, WeatherCache)
        self.assertEqual(len(cache), 2)
        self.assertEqual(cache.last_weather_update, _snapshot().last_weather_update)

        other = self.dir / "copy.json"
        save_cache(cache, other)
        self.assertEqual(other.read_text(encoding="utf-8"), dump_snapshot(_snapshot()))


if __name__ == "__main__":
    unittest.main()
