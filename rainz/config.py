"""
Runtime configuration for Rainz.

Values come from the environment (a .env file is loaded by the entry points
via python-dotenv). The Settings object is passed explicitly to providers,
the refiner and request handlers; nothing reads os.environ after startup.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

# Accepted names for the WeatherAPI.com key, first match wins
WEATHERAPI_KEY_NAMES = ("WEATHERAPI_KEY", "WEATHER_API_KEY", "WEATHER_API")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass(frozen=True)
class Settings:
    """Application settings - immutable after startup."""
    weatherapi_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    hugging_face_token: Optional[str] = None

    # Provider fetch contract: short timeout, no retry by default
    provider_timeout_seconds: float = 8.0
    provider_max_retries: int = 0

    ensemble_forecast_days: int = 3
    ensemble_allow_synthetic: bool = True

    llm_timeout_seconds: float = 30.0

    log_level: str = "INFO"
    log_file: str = "logs/rainz.log"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        weatherapi_key = next((os.getenv(n) for n in WEATHERAPI_KEY_NAMES if os.getenv(n)), None)
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            weatherapi_key=weatherapi_key,
            groq_api_key=os.getenv("GROQ_API_KEY") or None,
            hugging_face_token=os.getenv("HUGGING_FACE_ACCESS_TOKEN") or None,
            provider_timeout_seconds=_env_float("PROVIDER_TIMEOUT_SECONDS", 8.0),
            provider_max_retries=_env_int("PROVIDER_MAX_RETRIES", 0),
            ensemble_forecast_days=_env_int("ENSEMBLE_FORECAST_DAYS", 3),
            ensemble_allow_synthetic=_env_bool("ENSEMBLE_ALLOW_SYNTHETIC", True),
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 30.0),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/rainz.log"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


@lru_cache()
def get_settings() -> Settings:
    """Cached Settings for the FastAPI dependency."""
    return Settings.from_env()
