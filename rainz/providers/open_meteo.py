"""
Open-Meteo Weather Provider for Rainz

Open-Meteo serves the output of several national weather models behind one
free API. Each model is registered as its own source so the aggregator can
compare them:

- ECMWF (European Centre)        accuracy 0.95
- UKMO (UK Met Office)           accuracy 0.93
- DWD ICON (German Weather Svc)  accuracy 0.92
- METEOFRANCE                    accuracy 0.91
- GFS (US NOAA)                  accuracy 0.90
- JMA (Japan Met Agency)         accuracy 0.89
- GEM (Canadian model)           accuracy 0.88

Accuracy weights are hand-assigned per integration, not learned.

The ensemble endpoint used for uncertainty bands lives here as well. It asks
for the single ECMWF IFS ensemble (control + 50 perturbed runs), so member
keys arrive as temperature_2m_memberNN with no per-model suffix.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from rainz.errors import NoForecastDataError, ProviderError
from rainz.models import CurrentWeather, DailyForecast, HourlyForecast, WeatherSource
from rainz.numeric import (
    first_or,
    hour_label,
    meters_to_miles,
    nearest_index,
    parse_timestamp,
    round_half_up,
    weekday_label,
)

logger = logging.getLogger(__name__)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
ENSEMBLE_URL = "https://ensemble-api.open-meteo.com/v1/ensemble"

ENSEMBLE_MODEL = "ecmwf_ifs04"

HOURLY_FIELDS = ",".join([
    "temperature_2m", "precipitation_probability", "weathercode", "relative_humidity_2m",
    "apparent_temperature", "visibility", "pressure_msl", "uv_index",
    "wind_speed_10m", "wind_direction_10m",
])
DAILY_FIELDS = ",".join([
    "weathercode", "temperature_2m_max", "temperature_2m_min",
    "precipitation_probability_max", "sunrise", "sunset",
])

HOURLY_ENTRIES = 24
DAILY_ENTRIES = 10
DEFAULT_VISIBILITY_M = 10000.0
DEFAULT_PRESSURE_MB = 1013


# WMO Weather Code to human-readable conditions
# Reference: https://open-meteo.com/en/docs
WEATHER_CODES = {
    0: "Clear",
    1: "Partly Cloudy",
    2: "Partly Cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Foggy",
    51: "Light Drizzle",
    53: "Drizzle",
    55: "Heavy Drizzle",
    61: "Light Rain",
    63: "Rain",
    65: "Heavy Rain",
    71: "Light Snow",
    73: "Snow",
    75: "Heavy Snow",
    80: "Light Showers",
    81: "Showers",
    82: "Heavy Showers",
    95: "Thunderstorm",
    96: "Thunderstorm",
    99: "Heavy Thunderstorm",
}


def weather_code_to_condition(code: Any) -> str:
    """Convert WMO weather code to human-readable condition."""
    return WEATHER_CODES.get(code, "Unknown")


@dataclass(frozen=True)
class OpenMeteoModel:
    name: str
    model: str
    accuracy: float


OPEN_METEO_MODELS: List[OpenMeteoModel] = [
    OpenMeteoModel("ECMWF", "ecmwf_ifs04", 0.95),
    OpenMeteoModel("GFS", "gfs_seamless", 0.90),
    OpenMeteoModel("DWD ICON", "icon_seamless", 0.92),
    OpenMeteoModel("UKMO", "ukmo_seamless", 0.93),
    OpenMeteoModel("METEOFRANCE", "meteofrance_seamless", 0.91),
    OpenMeteoModel("JMA", "jma_seamless", 0.89),
    OpenMeteoModel("GEM", "gem_seamless", 0.88),
]


class OpenMeteoModelProvider:
    """
    Provider for one Open-Meteo model.

    Requests Fahrenheit and mph so no unit conversion is needed except
    visibility (metres -> miles).
    """

    def __init__(self, model: OpenMeteoModel):
        self.model = model
        self.name = model.name

    async def fetch(self, client: httpx.AsyncClient, lat: float, lon: float,
                    location_name: Optional[str]) -> WeatherSource:
        params = {
            "latitude": lat,
            "longitude": lon,
            "current_weather": "true",
            "hourly": HOURLY_FIELDS,
            "daily": DAILY_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "timezone": "auto",
            "forecast_days": DAILY_ENTRIES,
            "models": self.model.model,
        }

        logger.debug(f"[OpenMeteoModelProvider] {self.name}: requesting {self.model.model}")
        resp = await client.get(FORECAST_URL, params=params)
        resp.raise_for_status()
        return self.parse(resp.json(), lat, lon, location_name)

    def parse(self, data: Dict[str, Any], lat: float, lon: float,
              location_name: Optional[str]) -> WeatherSource:
        current = data["current_weather"]
        hourly = data.get("hourly") or {}
        daily = data.get("daily") or {}

        times = hourly.get("time") or []
        now_idx = nearest_index(times, parse_timestamp(current["time"])) if current.get("time") else 0

        temperature = current.get("temperature")
        if temperature is None:
            raise ValueError(f"{self.name}: current temperature missing")
        code = current.get("weathercode", 0)

        current_weather = CurrentWeather(
            temperature=round_half_up(temperature),
            condition=weather_code_to_condition(code),
            description=weather_code_to_condition(code),
            humidity=round_half_up(first_or(hourly.get("relative_humidity_2m"), 0, now_idx)),
            wind_speed=round_half_up(current.get("windspeed") or 0),
            wind_direction=round_half_up(current.get("winddirection") or 0),
            visibility=round_half_up(meters_to_miles(
                first_or(hourly.get("visibility"), DEFAULT_VISIBILITY_M, now_idx))),
            feels_like=round_half_up(first_or(hourly.get("apparent_temperature"), temperature, now_idx)),
            uv_index=round_half_up(first_or(hourly.get("uv_index"), 0, now_idx)),
            pressure=round_half_up(first_or(hourly.get("pressure_msl"), DEFAULT_PRESSURE_MB, now_idx)),
            sunrise=first_or(daily.get("sunrise"), None),
            sunset=first_or(daily.get("sunset"), None),
        )

        hourly_forecast = tuple(
            HourlyForecast(
                time=hour_label(t),
                temperature=round_half_up(first_or(hourly.get("temperature_2m"), 0, i)),
                condition=weather_code_to_condition(first_or(hourly.get("weathercode"), 0, i)),
                precipitation=round_half_up(first_or(hourly.get("precipitation_probability"), 0, i)),
                icon="",
            )
            for i, t in enumerate(times[now_idx:now_idx + HOURLY_ENTRIES], start=now_idx)
        )

        daily_forecast = tuple(
            DailyForecast(
                day=weekday_label(d),
                condition=weather_code_to_condition(first_or(daily.get("weathercode"), 0, i)),
                description=weather_code_to_condition(first_or(daily.get("weathercode"), 0, i)),
                high_temp=round_half_up(first_or(daily.get("temperature_2m_max"), 0, i)),
                low_temp=round_half_up(first_or(daily.get("temperature_2m_min"), 0, i)),
                precipitation=round_half_up(first_or(daily.get("precipitation_probability_max"), 0, i)),
                icon="",
            )
            for i, d in enumerate((daily.get("time") or [])[:DAILY_ENTRIES])
        )

        logger.info(f"[OpenMeteoModelProvider] {self.name}: {current_weather.temperature}F, "
                    f"{len(hourly_forecast)} hourly, {len(daily_forecast)} daily")

        return WeatherSource(
            source=self.name,
            location=location_name or "Selected Location",
            latitude=lat,
            longitude=lon,
            accuracy=self.model.accuracy,
            current_weather=current_weather,
            hourly_forecast=hourly_forecast,
            daily_forecast=daily_forecast,
        )


async def fetch_ensemble_payload(client: httpx.AsyncClient, lat: float, lon: float,
                                 days: int = 3) -> Dict[str, Any]:
    """
    Fetch raw per-member hourly runs from the Open-Meteo ensemble API.

    Returns:
        The "hourly" block (time + temperature_2m/precipitation member arrays)

    Raises:
        ProviderError: HTTP or transport failure
        NoForecastDataError: payload without an hourly time axis
    """
    params = {
        "latitude": lat,
        "longitude": lon,
        "hourly": "temperature_2m,precipitation",
        "temperature_unit": "fahrenheit",
        "precipitation_unit": "inch",
        "models": ENSEMBLE_MODEL,
        "forecast_days": days,
    }

    logger.info(f"[fetch_ensemble_payload] Requesting {days}-day ensemble for ({lat}, {lon})")

    try:
        resp = await client.get(ENSEMBLE_URL, params=params)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        raise ProviderError("Open-Meteo Ensemble", f"HTTP {e.response.status_code}") from e
    except httpx.RequestError as e:
        raise ProviderError("Open-Meteo Ensemble", f"request failed: {e}") from e
    except ValueError as e:
        raise ProviderError("Open-Meteo Ensemble", "invalid JSON") from e

    hourly = data.get("hourly")
    if not hourly or not hourly.get("time"):
        logger.error("[fetch_ensemble_payload] Invalid ensemble data structure")
        raise NoForecastDataError("time")

    member_keys = sum(1 for k in hourly if "_member" in k)
    logger.info(f"[fetch_ensemble_payload] {len(hourly['time'])} hours, {member_keys} member arrays")
    return hourly
