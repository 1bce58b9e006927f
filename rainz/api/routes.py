"""Forecast routes: source aggregation, ensemble bands and LLM refinement."""
import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, Request

from rainz import __version__
from rainz.aggregator import SourceAggregator
from rainz.api.models import EnsembleRequest, LocationRequest
from rainz.config import Settings, get_settings
from rainz.errors import EmptySourceSetError
from rainz.fetcher import fetch_all_sources, fetch_ensemble_forecast
from rainz.models import AggregatedResult, WeatherSource
from rainz.refinement import ForecastRefiner

logger = logging.getLogger(__name__)

router = APIRouter()


def get_http_client(request: Request) -> Optional[httpx.AsyncClient]:
    """Shared client created in the app lifespan (None outside of it)."""
    return getattr(request.app.state, "http_client", None)


async def _fetch_sources(body: LocationRequest, settings: Settings,
                         client: Optional[httpx.AsyncClient]) -> List[WeatherSource]:
    sources = await fetch_all_sources(body.lat, body.lon, body.location_name, settings, client=client)
    if not sources:
        logger.error(f"No weather sources for ({body.lat}, {body.lon})")
        raise EmptySourceSetError("fetch_all_sources")
    return sources


async def _aggregate(body: LocationRequest, settings: Settings,
                     client: Optional[httpx.AsyncClient]) -> AggregatedResult:
    return SourceAggregator().aggregate(await _fetch_sources(body, settings, client))


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@router.post("/aggregate-weather")
async def aggregate_weather(
    body: LocationRequest,
    settings: Settings = Depends(get_settings),
    client: Optional[httpx.AsyncClient] = Depends(get_http_client),
):
    """All sources that answered, in provider registration order."""
    sources = await _fetch_sources(body, settings, client)
    return {"sources": [s.to_dict() for s in sources]}


@router.post("/weather")
async def weather(
    body: LocationRequest,
    settings: Settings = Depends(get_settings),
    client: Optional[httpx.AsyncClient] = Depends(get_http_client),
):
    """Sources plus most accurate, aggregated and model agreement."""
    result = await _aggregate(body, settings, client)
    return result.to_dict()


@router.post("/fetch-ensemble-forecast")
async def ensemble_forecast(
    body: EnsembleRequest,
    settings: Settings = Depends(get_settings),
    client: Optional[httpx.AsyncClient] = Depends(get_http_client),
):
    """Hourly median/p10/p90 bands with a confidence label."""
    forecast = await fetch_ensemble_forecast(body.lat, body.lon, settings, client=client)
    return forecast.to_dict()


@router.post("/llm-weather-forecast")
async def llm_weather_forecast(
    body: LocationRequest,
    settings: Settings = Depends(get_settings),
    client: Optional[httpx.AsyncClient] = Depends(get_http_client),
):
    """LLM-unified forecast, or the raw aggregated source when no LLM answers."""
    result = await _aggregate(body, settings, client)
    refiner = ForecastRefiner(settings, client=client)
    return await refiner.refine(result, body.location_name)
