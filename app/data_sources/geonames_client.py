"""Helpers for fetching UTC offsets from the GeoNames timezone API."""
from __future__ import annotations

import math
from typing import Optional
from urllib.parse import urlencode

import requests

from app.config import settings
from app.data_sources.http_session import session
from app.errors import ParseError, UpstreamError
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag='geonames_client')


def fetch_offset(
    latitude: float,
    longitude: float,
    *,
    base_url: Optional[str] = None,
    username: Optional[str] = None,
    timeout: Optional[float] = None,
) -> int:
    """Return the DST-aware UTC offset (whole hours) at the given coordinates."""
    params = {
        "lat": f"{latitude:.4f}",
        "lng": f"{longitude:.4f}",
        "username": username or settings.geonames_username,
    }
    full_url = f"{base_url or settings.geonames_base_url}?{urlencode(params)}"
    logger.info(f"asking timezone: {mask_url(full_url)}")

    try:
        resp = session.get(full_url, timeout=timeout or settings.http_timeout_seconds)
    except requests.RequestException as exc:
        raise UpstreamError("failed to get response from the GeoNames API", url=full_url) from exc

    if resp.status_code != 200:
        raise UpstreamError("failed to get timezone data", url=full_url, status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as exc:
        raise ParseError("error decoding GeoNames response", url=full_url) from exc

    if not isinstance(data, dict):
        raise ParseError("GeoNames response is not a JSON object", url=full_url)

    # GeoNames reports quota and auth problems with HTTP 200 and a status object.
    if "status" in data:
        status = data.get("status") or {}
        message = status.get("message") if isinstance(status, dict) else status
        raise ParseError(f"GeoNames refused the request: {message}", url=full_url)

    value = data.get("dstOffset")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"dstOffset {value!r} is missing or not a number", url=full_url)
    if not math.isfinite(value) or value != int(value):
        raise ParseError(f"dstOffset {value!r} is not a whole number of hours", url=full_url)

    logger.debug(f"GeoNames offset fetched: {value}")
    return int(value)
