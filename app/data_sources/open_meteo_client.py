"""Helpers for fetching hourly temperature forecasts from the Open-Meteo API."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional
from urllib.parse import urlencode

import requests

from app.app_types import TemperatureSample
from app.config import settings
from app.data_sources.http_session import session
from app.errors import ParseError, UpstreamError
from utils.logging_utils import get_tagged_logger, mask_url
logger = get_tagged_logger(__name__, tag='open_meteo_client')

# Open-Meteo returns GMT wall-clock times without a zone suffix.
TIME_LAYOUTS = {
    "iso8601": "%Y-%m-%dT%H:%M",
}


def _parse_times(raw: List[str], time_format: Optional[str], *, url: str) -> List[dt.datetime]:
    """Parse Open-Meteo hourly timestamps with the layout named by `hourly_units.time`."""
    layout = TIME_LAYOUTS.get(time_format or "")
    if layout is None:
        raise ParseError(f"unsupported time format: {time_format!r}", url=url)

    out: List[dt.datetime] = []
    for value in raw:
        try:
            parsed = dt.datetime.strptime(value, layout)
        except (TypeError, ValueError) as exc:
            raise ParseError(f"error parsing time value {value!r}", url=url) from exc
        out.append(parsed.replace(tzinfo=dt.timezone.utc))
    return out


def fetch_hourly_temperature(
    latitude: float,
    longitude: float,
    *,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> List[TemperatureSample]:
    """Fetch the hourly 2m temperature forecast for the given coordinates."""
    params = {
        "latitude": f"{latitude:.4f}",
        "longitude": f"{longitude:.4f}",
        "hourly": "temperature_2m",
    }
    full_url = f"{base_url or settings.open_meteo_base_url}?{urlencode(params)}"
    logger.info(f"asking weather: {mask_url(full_url)}")

    try:
        resp = session.get(full_url, timeout=timeout or settings.http_timeout_seconds)
    except requests.RequestException as exc:
        raise UpstreamError("failed to get response from the Open-Meteo API", url=full_url) from exc

    if resp.status_code != 200:
        raise UpstreamError("failed to get weather data", url=full_url, status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as exc:
        raise ParseError("error decoding Open-Meteo response", url=full_url) from exc

    try:
        hourly = data["hourly"]
        times = hourly["time"]
        temps = hourly["temperature_2m"]
        time_format = data.get("hourly_units", {}).get("time")
    except (KeyError, TypeError, AttributeError) as exc:
        raise ParseError("Open-Meteo response is missing the hourly series", url=full_url) from exc

    if not isinstance(times, list) or not isinstance(temps, list):
        raise ParseError("Open-Meteo hourly series are not lists", url=full_url)
    if len(times) != len(temps):
        raise ParseError(
            f"Open-Meteo returned {len(times)} timestamps but {len(temps)} temperatures", url=full_url
        )

    parsed_times = _parse_times(times, time_format, url=full_url)
    for earlier, later in zip(parsed_times, parsed_times[1:]):
        if later <= earlier:
            raise ParseError(f"timestamps are not strictly increasing at {later.isoformat()}", url=full_url)

    out: List[TemperatureSample] = []
    for t, temp in zip(parsed_times, temps):
        if temp is None:
            continue
        if isinstance(temp, bool) or not isinstance(temp, (int, float)):
            raise ParseError(f"temperature value {temp!r} is not a number", url=full_url)
        out.append(TemperatureSample(time=t, temperature=float(temp)))
    return out
