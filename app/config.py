"""Application configuration pulled from environment variables via pydantic."""
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_SNAPSHOT_PATH = BASE_DIR / "weatherdata" / "weatherdata.json"


class Settings(BaseSettings):
    """Environment-driven configuration for the weather cache service."""
    model_config = SettingsConfigDict(env_prefix="WEATHER_", extra="ignore")

    data_source: str = "live"  # options: live
    snapshot_path: Path = DEFAULT_SNAPSHOT_PATH
    seed_cities_path: Path | None = None

    geonames_base_url: str = "http://api.geonames.org/timezoneJSON"
    geonames_username: str = "amazing.website"
    open_meteo_base_url: str = "https://api.open-meteo.com/v1/forecast"
    user_agent: str = "amazing-website-weather/1.0"
    http_timeout_seconds: float = 10.0

    weather_refresh_seconds: int = 3600
    offset_refresh_seconds: int = 24 * 3600
    save_interval_seconds: int = 3600
    weather_max_age_seconds: int = 3600
    offset_max_age_seconds: int = 24 * 3600

    intro_lines: list[str] = Field(default_factory=list)
    log_level: str = "INFO"

    @field_validator("geonames_base_url", "open_meteo_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator(
        "http_timeout_seconds",
        "weather_refresh_seconds",
        "offset_refresh_seconds",
        "save_interval_seconds",
        "weather_max_age_seconds",
        "offset_max_age_seconds",
        mode="after",
    )
    @classmethod
    def must_be_positive(cls, v):
        """Timers and timeouts of zero or less would spin or never fire."""
        if v <= 0:
            raise ValueError("must be positive")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
