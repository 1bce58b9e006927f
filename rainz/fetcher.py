"""
Source fetching for Rainz.

Runs every registered provider concurrently, each under its own timeout,
and hands the aggregator only the sources that answered. Registration order
is preserved in the result (Open-Meteo models, then WeatherAPI, then Met.no).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from rainz.config import Settings
from rainz.ensemble import EnsembleStatistics
from rainz.errors import ProviderError
from rainz.models import EnsembleForecast, WeatherSource
from rainz.providers import (
    OPEN_METEO_MODELS,
    MetNoProvider,
    OpenMeteoModelProvider,
    WeatherApiProvider,
    fetch_ensemble_payload,
)
from rainz.resilience import RetryConfig, guarded_fetch

logger = logging.getLogger(__name__)


class SourceProvider(Protocol):
    name: str

    async def fetch(self, client: httpx.AsyncClient, lat: float, lon: float,
                    location_name: Optional[str]) -> WeatherSource:
        ...


def build_providers(settings: Settings) -> List[SourceProvider]:
    """Providers in registration order; WeatherAPI only with a key."""
    providers: List[SourceProvider] = [OpenMeteoModelProvider(m) for m in OPEN_METEO_MODELS]

    if settings.weatherapi_key:
        providers.append(WeatherApiProvider(settings.weatherapi_key))
    else:
        logger.warning("[build_providers] WEATHERAPI key missing; skipping WeatherAPI provider")

    providers.append(MetNoProvider())
    return providers


def retry_config(settings: Settings) -> RetryConfig:
    return RetryConfig(
        timeout_seconds=settings.provider_timeout_seconds,
        max_retries=settings.provider_max_retries,
    )


async def fetch_all_sources(
    lat: float,
    lon: float,
    location_name: Optional[str],
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    providers: Optional[List[SourceProvider]] = None,
) -> List[WeatherSource]:
    """
    Fetch every provider concurrently.

    Returns:
        Sources that answered, in registration order (may be empty)
    """
    providers = providers if providers is not None else build_providers(settings)
    config = retry_config(settings)

    logger.info(f"[fetch_all_sources] Polling {len(providers)} providers for ({lat}, {lon})")

    async def _run(http: httpx.AsyncClient) -> List[Optional[WeatherSource]]:
        return await asyncio.gather(*[
            guarded_fetch(p.name, lambda p=p: p.fetch(http, lat, lon, location_name), config)
            for p in providers
        ])

    if client is not None:
        results = await _run(client)
    else:
        async with httpx.AsyncClient() as http:
            results = await _run(http)

    sources = [r for r in results if r is not None]
    logger.info(f"[fetch_all_sources] {len(sources)}/{len(providers)} providers answered")
    return sources


async def fetch_ensemble_forecast(
    lat: float,
    lon: float,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> EnsembleForecast:
    """
    Fetch the ensemble payload and reduce it to percentile bands.

    Raises:
        ProviderError: upstream failure
        NoForecastDataError: nothing usable in the payload
    """
    engine = EnsembleStatistics(allow_synthetic=settings.ensemble_allow_synthetic)

    async def _fetch(http: httpx.AsyncClient) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(
                fetch_ensemble_payload(http, lat, lon, days=settings.ensemble_forecast_days),
                timeout=settings.provider_timeout_seconds * 2,
            )
        except asyncio.TimeoutError as e:
            raise ProviderError("Open-Meteo Ensemble", "timed out") from e

    if client is not None:
        hourly = await _fetch(client)
    else:
        async with httpx.AsyncClient() as http:
            hourly = await _fetch(http)

    return engine.build_ensemble_forecast(hourly, hourly["time"])
