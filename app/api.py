"""HTTP API exposing the cached weather lines."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from .weather_service import WeatherService
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="app/api")

router = APIRouter()


class WeatherResponse(BaseModel):
    """Display lines for the weather page, one per city after the intro lines."""
    lines: list[str]


class StatusResponse(BaseModel):
    """Background refresh state of the weather cache."""
    state: str
    last_error: Optional[str] = None
    city_count: int
    last_weather_update: Optional[datetime] = None
    last_offset_update: Optional[datetime] = None


def get_weather_service(request: Request) -> WeatherService:
    """Return the service owned by the application lifespan."""
    service = getattr(request.app.state, "weather_service", None)
    if service is None:
        logger.warning("Weather service requested before startup completed")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Weather service not ready")
    return service


@router.get("/weather", response_model=WeatherResponse)
def weather(service: WeatherService = Depends(get_weather_service)) -> WeatherResponse:
    """Return cached weather lines; never triggers an upstream call."""
    return WeatherResponse(lines=service.load_weather())


@router.get("/weather/status", response_model=StatusResponse)
def weather_status(service: WeatherService = Depends(get_weather_service)) -> StatusResponse:
    """Report scheduler state and the last full refresh timestamps."""
    return StatusResponse(**service.status())
