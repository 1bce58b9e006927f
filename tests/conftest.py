"""Shared fixtures for the Rainz test suite."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from rainz.config import Settings
from rainz.models import CurrentWeather, DailyForecast, HourlyForecast, WeatherSource


def build_source(name="Model", temperature=70, accuracy=0.9, humidity=50, condition="Clear"):
    current = CurrentWeather(
        temperature=temperature,
        condition=condition,
        description=condition,
        humidity=humidity,
        wind_speed=5,
        wind_direction=180,
        visibility=10,
        feels_like=temperature,
        uv_index=3,
        pressure=1013,
    )
    return WeatherSource(
        source=name,
        location="Test City",
        latitude=40.0,
        longitude=-74.0,
        accuracy=accuracy,
        current_weather=current,
        hourly_forecast=(HourlyForecast(time="01 PM", temperature=temperature,
                                        condition=condition, precipitation=10),),
        daily_forecast=(DailyForecast(day="Mon", condition=condition, description=condition,
                                      high_temp=temperature + 5, low_temp=temperature - 5,
                                      precipitation=20),),
    )


@pytest.fixture
def make_source():
    """Factory for WeatherSource records with a chosen temperature/accuracy."""
    return build_source


@pytest.fixture
def settings(tmp_path):
    """Settings with no API keys and logs under tmp_path."""
    return Settings(log_file=str(tmp_path / "logs" / "rainz.log"))
