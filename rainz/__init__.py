"""
Rainz Forecast Core

Turns several independently fetched weather forecasts into one ranked and
blended view, and turns raw ensemble model runs into uncertainty bands.

Architecture:
    models.py      - Request-scoped value objects (WeatherSource, EnsembleForecast)
    aggregator.py  - SourceAggregator: most-accurate pick, mean blend, model agreement
    ensemble.py    - EnsembleStatistics: member discovery, percentile bands, confidence
    providers/     - Concurrent HTTP fetchers:
                     * open_meteo.py - ECMWF/GFS/ICON/UKMO/METEOFRANCE/JMA/GEM models
                                       plus the ensemble API
                     * weatherapi.py - WeatherAPI.com (station info, AQI)
                     * met_no.py     - Norwegian Met Institute
    fetcher.py     - Concurrent provider fan-out under per-provider timeouts
    refinement.py  - Optional LLM unification with raw-data fallback
    demo.py        - Offline demo sources for the CLI
    api/           - FastAPI boundary (aggregate-weather, weather,
                     fetch-ensemble-forecast, llm-weather-forecast)

Entry Points:
    main.py forecast --lat 40.7 --lon -74.0
    main.py serve
"""

__version__ = "1.0.0"
__author__ = "Rainz"
