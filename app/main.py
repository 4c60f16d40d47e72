"""FastAPI application setup and weather service lifecycle."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import router as api_router
from .weather_service import WeatherService
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="app/main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the weather service before serving and stop it on shutdown.

    A ConfigError from loading the snapshot propagates and aborts startup.
    """
    service = getattr(app.state, "weather_service", None) or WeatherService()
    await service.start()
    app.state.weather_service = service
    try:
        yield
    finally:
        await service.stop()
        logger.info("Server stopped")


app = FastAPI(title="Amazing Website Weather", lifespan=lifespan)


@app.get("/healthz")
def healthz():
    """Liveness probe."""
    return {"status": "ok"}


# API routes
app.include_router(api_router, prefix="/v1")
