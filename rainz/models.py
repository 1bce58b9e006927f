"""
Value objects for the Rainz forecast core.

Every object here is built fresh for one request, never mutated after it is
returned and never persisted. Field names follow Python conventions; the
to_dict() methods produce the camelCase wire format the web client reads.

Units: temperature Fahrenheit, wind mph, pressure mb, visibility miles,
precipitation probability 0-100 percent.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from rainz.numeric import Fahrenheit, Miles, Millibar, Mph, Percent

ConfidenceLevel = Literal["high", "medium", "low"]


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class StationInfo:
    name: str
    region: str = ""
    country: str = ""
    localtime: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "region": self.region,
            "country": self.country,
            "localtime": self.localtime,
        }


@dataclass(frozen=True)
class CurrentWeather:
    temperature: Fahrenheit
    condition: str
    description: str
    humidity: Percent
    wind_speed: Mph
    wind_direction: float
    visibility: Miles
    feels_like: Fahrenheit
    uv_index: float
    pressure: Millibar
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    daylight: Optional[str] = None
    aqi: Optional[int] = None
    aqi_category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "temperature": self.temperature,
            "condition": self.condition,
            "description": self.description,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "windDirection": self.wind_direction,
            "visibility": self.visibility,
            "feelsLike": self.feels_like,
            "uvIndex": self.uv_index,
            "pressure": self.pressure,
            "sunrise": self.sunrise,
            "sunset": self.sunset,
            "daylight": self.daylight,
            "aqi": self.aqi,
            "aqiCategory": self.aqi_category,
        })


@dataclass(frozen=True)
class HourlyForecast:
    time: str
    temperature: Fahrenheit
    condition: str
    precipitation: Percent
    icon: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "time": self.time,
            "temperature": self.temperature,
            "condition": self.condition,
            "precipitation": self.precipitation,
            "icon": self.icon,
        })


@dataclass(frozen=True)
class DailyForecast:
    day: str
    condition: str
    description: str
    high_temp: Fahrenheit
    low_temp: Fahrenheit
    precipitation: Percent
    icon: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "day": self.day,
            "condition": self.condition,
            "description": self.description,
            "highTemp": self.high_temp,
            "lowTemp": self.low_temp,
            "precipitation": self.precipitation,
            "icon": self.icon,
        })


@dataclass(frozen=True)
class WeatherSource:
    """One provider's complete forecast for a location."""
    source: str
    location: str
    latitude: float
    longitude: float
    accuracy: float  # static declared weight in [0, 1]
    current_weather: CurrentWeather
    hourly_forecast: Tuple[HourlyForecast, ...] = ()
    daily_forecast: Tuple[DailyForecast, ...] = ()
    station_info: Optional[StationInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "source": self.source,
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "currentWeather": self.current_weather.to_dict(),
            "hourlyForecast": [h.to_dict() for h in self.hourly_forecast],
            "dailyForecast": [d.to_dict() for d in self.daily_forecast],
        }
        if self.station_info is not None:
            data["stationInfo"] = self.station_info.to_dict()
        return data


@dataclass(frozen=True)
class AggregatedResult:
    """Ranked and blended view over the sources that answered."""
    sources: Tuple[WeatherSource, ...]
    most_accurate: WeatherSource
    aggregated: WeatherSource
    model_agreement: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sources": [s.to_dict() for s in self.sources],
            "mostAccurate": self.most_accurate.to_dict(),
            "aggregated": self.aggregated.to_dict(),
            "modelAgreement": self.model_agreement,
        }


@dataclass(frozen=True)
class PercentileBand:
    median: List[float] = field(default_factory=list)
    p10: List[float] = field(default_factory=list)
    p90: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.median)

    def to_dict(self) -> Dict[str, Any]:
        return {"median": list(self.median), "p10": list(self.p10), "p90": list(self.p90)}


@dataclass(frozen=True)
class EnsembleForecast:
    """
    Hourly uncertainty bands for one location.

    synthetic is True when the provider exposed no per-member runs and the
    bands come from the fabricated +/-2F, x0.7/x1.3 scenarios rather than
    genuine model disagreement.
    """
    time: List[str]
    temperature: PercentileBand
    precipitation: PercentileBand
    confidence: ConfidenceLevel
    synthetic: bool = False
    member_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hourly": {
                "temperature": self.temperature.to_dict(),
                "precipitation": self.precipitation.to_dict(),
                "time": list(self.time),
            },
            "confidence": self.confidence,
            "synthetic": self.synthetic,
            "memberCount": self.member_count,
        }
