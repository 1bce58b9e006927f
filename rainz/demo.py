"""
Demo data for Rainz.

Used by the CLI when no provider answers, so the output pipeline can still
be exercised offline. Values are fixed curves, not weather.
"""

import math
from datetime import datetime, timedelta
from typing import List, Optional

from rainz.models import CurrentWeather, DailyForecast, HourlyForecast, WeatherSource
from rainz.numeric import round_half_up

DEMO_SOURCE_NAMES = ("OpenWeatherMap", "AccuWeather", "WeatherAPI")
DEMO_ACCURACY = 0.9
DEMO_MESSAGE = "Using demo data. No weather provider is available."


def _demo_hourly(now: datetime) -> List[HourlyForecast]:
    hours = []
    for i in range(24):
        t = now + timedelta(hours=i)
        hours.append(HourlyForecast(
            time=t.strftime("%I:%M %p"),
            temperature=70 + round_half_up(math.sin(i / 3) * 5),
            condition="Partly Cloudy",
            precipitation=max(0, round_half_up(math.cos(i / 2) * 20)),
            icon="",
        ))
    return hours


def _demo_daily(now: datetime) -> List[DailyForecast]:
    days = []
    for i in range(10):
        high = 78 + (i % 3) * 2
        days.append(DailyForecast(
            day=(now + timedelta(days=i)).strftime("%a"),
            condition="Partly Cloudy",
            description="Mix of sun and clouds",
            high_temp=high,
            low_temp=high - 10,
            precipitation=(i % 3) * 10,
            icon="",
        ))
    return days


def build_demo_sources(lat: float, lon: float, now: Optional[datetime] = None) -> List[WeatherSource]:
    """Three identical demo sources at equal accuracy (the first one wins ties)."""
    now = now or datetime.now()
    current = CurrentWeather(
        temperature=75,
        condition="Partly Cloudy",
        description="Partly cloudy",
        humidity=55,
        wind_speed=8,
        wind_direction=210,
        visibility=10,
        feels_like=76,
        uv_index=5,
        pressure=1015,
    )
    hourly = tuple(_demo_hourly(now))
    daily = tuple(_demo_daily(now))

    return [
        WeatherSource(
            source=name,
            location="Selected Location",
            latitude=lat,
            longitude=lon,
            accuracy=DEMO_ACCURACY,
            current_weather=current,
            hourly_forecast=hourly,
            daily_forecast=daily,
        )
        for name in DEMO_SOURCE_NAMES
    ]
