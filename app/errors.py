"""Error taxonomy for the weather cache.

`ConfigError` is fatal at startup. `UpstreamError` and its `ParseError`
subclass abort the refresh pass they occur in. `PersistenceError` is logged
and retried by the next scheduled save.
"""

from __future__ import annotations

from typing import Optional

from utils.logging_utils import mask_url


class WeatherError(Exception):
    """Base exception for all weather cache errors."""


class ConfigError(WeatherError):
    """Raised when the snapshot file is missing, corrupt or holds no cities."""


class UpstreamError(WeatherError):
    """Raised when an upstream API call fails (transport or non-200 status)."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        city: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.city = city
        self.status_code = status_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status code {self.status_code}")
        if self.city:
            parts.append(f"city: {self.city}")
        if self.url:
            parts.append(f"url: {mask_url(self.url)}")
        return ", ".join(parts)


class ParseError(UpstreamError):
    """Raised when an upstream payload or timestamp has an unexpected shape."""


class PersistenceError(WeatherError):
    """Raised when the snapshot file cannot be written."""
