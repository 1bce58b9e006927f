"""Pydantic request models for the Rainz API.

Coordinates are strict: only JSON numbers are accepted, so strings like
"45" and booleans are rejected with the 400 envelope instead of coerced.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EnsembleRequest(BaseModel):
    """Request body for /fetch-ensemble-forecast."""
    lat: float = Field(..., ge=-90, le=90, strict=True, allow_inf_nan=False)
    lon: float = Field(..., ge=-180, le=180, strict=True, allow_inf_nan=False)


class LocationRequest(EnsembleRequest):
    """Request body for /aggregate-weather, /weather and /llm-weather-forecast."""
    model_config = ConfigDict(populate_by_name=True)

    location_name: Optional[str] = Field(None, alias="locationName", max_length=200)
