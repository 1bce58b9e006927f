"""
Met.no (Norwegian Meteorological Institute) Provider for Rainz

Fetches the Locationforecast 2.0 "complete" product from api.met.no, which
runs one of the world's most sophisticated ECMWF implementations. Free, no
key, but a descriptive User-Agent is mandatory.

Met.no reports metric units; everything is converted here:
- air_temperature C -> F
- wind_speed m/s -> mph
- pressure already hPa (= mb)

No daily summary is published, so dailyForecast stays empty.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from rainz.models import CurrentWeather, HourlyForecast, WeatherSource
from rainz.numeric import c_to_f, hour_label, ms_to_mph, round_half_up

logger = logging.getLogger(__name__)


def symbol_to_condition(code: Optional[str]) -> str:
    """Reduce a Met.no symbol code ("lightrainshowers_day") to a condition."""
    if not code:
        return "Unknown"
    if "clearsky" in code:
        return "Clear"
    if "fair" in code:
        return "Partly Cloudy"
    if "cloudy" in code:
        return "Cloudy"
    if "rain" in code:
        return "Rain"
    if "snow" in code:
        return "Snow"
    if "thunder" in code:
        return "Thunderstorm"
    if "fog" in code:
        return "Foggy"
    return "Partly Cloudy"


class MetNoProvider:
    """Provider for Met.no (YR.no backend) forecasts."""

    BASE_URL = "https://api.met.no/weatherapi/locationforecast/2.0/complete"
    ACCURACY = 0.94

    # Required User-Agent per Met.no API terms
    HEADERS = {
        "User-Agent": "Rainz Weather App (contact@rainz.app)"
    }

    DEFAULT_VISIBILITY_MI = 10
    DEFAULT_PRESSURE_MB = 1013

    def __init__(self):
        self.name = "Met.no"

    async def fetch(self, client: httpx.AsyncClient, lat: float, lon: float,
                    location_name: Optional[str]) -> WeatherSource:
        # Met.no rejects more than 4 decimals
        params = {"lat": round(lat, 4), "lon": round(lon, 4)}
        resp = await client.get(self.BASE_URL, params=params, headers=self.HEADERS)
        resp.raise_for_status()
        return self.parse(resp.json(), lat, lon, location_name)

    def parse(self, data: Dict[str, Any], lat: float, lon: float,
              location_name: Optional[str]) -> WeatherSource:
        timeseries = (data.get("properties") or {}).get("timeseries") or []
        if not timeseries:
            raise ValueError("Met.no: no timeseries data in response")

        now = timeseries[0].get("data") or {}
        details = (now.get("instant") or {}).get("details") or {}
        air_temp_c = details.get("air_temperature")
        if air_temp_c is None:
            raise ValueError("Met.no: current air temperature missing")

        symbol = ((now.get("next_1_hours") or {}).get("summary") or {}).get("symbol_code")
        temperature = round_half_up(c_to_f(air_temp_c))

        current_weather = CurrentWeather(
            temperature=temperature,
            condition=symbol_to_condition(symbol),
            description=symbol_to_condition(symbol),
            humidity=round_half_up(details.get("relative_humidity") or 0),
            wind_speed=round_half_up(ms_to_mph(details.get("wind_speed") or 0)),
            wind_direction=round_half_up(details.get("wind_from_direction") or 0),
            visibility=self.DEFAULT_VISIBILITY_MI,
            feels_like=temperature,
            uv_index=round_half_up(details.get("ultraviolet_index_clear_sky") or 0),
            pressure=round_half_up(details.get("air_pressure_at_sea_level") or self.DEFAULT_PRESSURE_MB),
        )

        hourly_forecast = []
        for item in timeseries[:24]:
            item_data = item.get("data") or {}
            item_temp = ((item_data.get("instant") or {}).get("details") or {}).get("air_temperature")
            next_hour = item_data.get("next_1_hours") or {}
            hourly_forecast.append(HourlyForecast(
                time=hour_label(item["time"]),
                temperature=round_half_up(c_to_f(item_temp if item_temp is not None else 0)),
                condition=symbol_to_condition((next_hour.get("summary") or {}).get("symbol_code")),
                precipitation=round_half_up(
                    (next_hour.get("details") or {}).get("probability_of_precipitation") or 0),
                icon="",
            ))

        logger.info(f"[MetNoProvider] {temperature}F, {len(hourly_forecast)} hourly records")

        return WeatherSource(
            source=self.name,
            location=location_name or "Selected Location",
            latitude=lat,
            longitude=lon,
            accuracy=self.ACCURACY,
            current_weather=current_weather,
            hourly_forecast=tuple(hourly_forecast),
            daily_forecast=(),
        )
