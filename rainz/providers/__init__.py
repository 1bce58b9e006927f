"""
Providers package for Rainz.

Each provider turns one upstream weather API into a normalized
WeatherSource (Fahrenheit, mph, mb):

1. Open-Meteo - one source per model (ECMWF 0.95, UKMO 0.93, ICON 0.92,
   METEOFRANCE 0.91, GFS 0.90, JMA 0.89, GEM 0.88) plus the ensemble API
2. WeatherAPI.com - commercial, station info + AQI (0.88, key required)
3. Met.no - Norwegian Met Institute (0.94)
"""

from rainz.providers.open_meteo import (
    OPEN_METEO_MODELS,
    OpenMeteoModel,
    OpenMeteoModelProvider,
    fetch_ensemble_payload,
    weather_code_to_condition,
)

from rainz.providers.weatherapi import (
    WeatherApiProvider,
)

from rainz.providers.met_no import (
    MetNoProvider,
    symbol_to_condition,
)

__all__ = [
    # Open-Meteo (multi-model + ensemble)
    "OPEN_METEO_MODELS",
    "OpenMeteoModel",
    "OpenMeteoModelProvider",
    "fetch_ensemble_payload",
    "weather_code_to_condition",
    # WeatherAPI.com (key required)
    "WeatherApiProvider",
    # Met.no
    "MetNoProvider",
    "symbol_to_condition",
]
