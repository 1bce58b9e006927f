"""
WeatherAPI.com Provider for Rainz

Commercial provider, only registered when an API key is configured.
It is the one source that reports the nearest physical station, sunrise and
sunset times (12-hour clock) and the US-EPA air quality index.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from rainz.models import CurrentWeather, DailyForecast, HourlyForecast, StationInfo, WeatherSource
from rainz.numeric import (
    hour_label,
    minutes_to_duration,
    parse_12h_to_minutes,
    round_half_up,
    weekday_label,
)

logger = logging.getLogger(__name__)

# US-EPA index (1-6) to category
EPA_CATEGORIES = {
    1: "Good",
    2: "Moderate",
    3: "Unhealthy for Sensitive Groups",
    4: "Unhealthy",
    5: "Very Unhealthy",
    6: "Hazardous",
}


def _num(value: Any, default: float = 0) -> float:
    return default if value is None else value


class WeatherApiProvider:
    """Provider for the WeatherAPI.com forecast endpoint (10 days, AQI on)."""

    BASE_URL = "https://api.weatherapi.com/v1/forecast.json"
    ACCURACY = 0.88

    def __init__(self, api_key: str):
        self.api_key = api_key
        self.name = "WeatherAPI"

    async def fetch(self, client: httpx.AsyncClient, lat: float, lon: float,
                    location_name: Optional[str]) -> WeatherSource:
        params = {
            "key": self.api_key,
            "q": f"{lat},{lon}",
            "days": 10,
            "aqi": "yes",
            "alerts": "no",
        }
        resp = await client.get(self.BASE_URL, params=params)
        resp.raise_for_status()
        return self.parse(resp.json(), lat, lon, location_name)

    def parse(self, data: Dict[str, Any], lat: float, lon: float,
              location_name: Optional[str]) -> WeatherSource:
        location = data.get("location") or {}
        current = data["current"]
        forecast_days = (data.get("forecast") or {}).get("forecastday") or []
        today = forecast_days[0] if forecast_days else {}

        astro = today.get("astro") or {}
        sunrise: Optional[str] = astro.get("sunrise")
        sunset: Optional[str] = astro.get("sunset")
        daylight = None
        if sunrise and sunset:
            daylight = minutes_to_duration(parse_12h_to_minutes(sunrise), parse_12h_to_minutes(sunset))

        epa_index = (current.get("air_quality") or {}).get("us-epa-index")
        aqi = epa_index if isinstance(epa_index, int) else None

        current_weather = CurrentWeather(
            temperature=round_half_up(_num(current.get("temp_f"))),
            condition=(current.get("condition") or {}).get("text", "Unknown"),
            description=(current.get("condition") or {}).get("text", "Unknown"),
            humidity=round_half_up(_num(current.get("humidity"))),
            wind_speed=round_half_up(_num(current.get("wind_mph"))),
            wind_direction=round_half_up(_num(current.get("wind_degree"))),
            visibility=round_half_up(_num(current.get("vis_miles"))),
            feels_like=round_half_up(_num(current.get("feelslike_f"))),
            uv_index=round_half_up(_num(current.get("uv"))),
            pressure=round_half_up(_num(current.get("pressure_mb"))),
            sunrise=sunrise,
            sunset=sunset,
            daylight=daylight,
            aqi=aqi,
            aqi_category=EPA_CATEGORIES.get(aqi) if aqi is not None else None,
        )

        hourly_forecast = tuple(
            HourlyForecast(
                time=hour_label(h["time"]),
                temperature=round_half_up(_num(h.get("temp_f"))),
                condition=(h.get("condition") or {}).get("text", "Unknown"),
                precipitation=round_half_up(_num(h.get("chance_of_rain"))),
                icon="",
            )
            for h in (today.get("hour") or [])[:24]
        )

        daily_forecast = tuple(
            DailyForecast(
                day=weekday_label(d["date"]),
                condition=((d.get("day") or {}).get("condition") or {}).get("text", "Unknown"),
                description=((d.get("day") or {}).get("condition") or {}).get("text", "Unknown"),
                high_temp=round_half_up(_num((d.get("day") or {}).get("maxtemp_f"))),
                low_temp=round_half_up(_num((d.get("day") or {}).get("mintemp_f"))),
                precipitation=round_half_up(_num((d.get("day") or {}).get("daily_chance_of_rain"))),
                icon="",
            )
            for d in forecast_days[:10]
        )

        logger.info(f"[WeatherApiProvider] Station {location.get('name', '?')}: "
                    f"{current_weather.temperature}F, AQI {aqi}")

        return WeatherSource(
            source=self.name,
            location=location_name or location.get("name") or "Selected Location",
            latitude=lat,
            longitude=lon,
            accuracy=self.ACCURACY,
            current_weather=current_weather,
            hourly_forecast=hourly_forecast,
            daily_forecast=daily_forecast,
            station_info=StationInfo(
                name=location.get("name") or "Unknown Station",
                region=location.get("region") or "",
                country=location.get("country") or "",
                localtime=location.get("localtime") or "",
            ),
        )
