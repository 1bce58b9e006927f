"""
LLM Forecast Refinement for Rainz

Optionally passes the aggregated sources through an LLM that acts as a
meteorologist and returns one unified forecast with per-field confidence.

Backend chain: Groq (llama-3.3-70b-versatile) -> Hugging Face (Mixtral).

This layer is an enhancement only. When no backend is configured, a backend
errors out or the reply is not valid JSON, refine() returns the raw
aggregated source in the same shape (rawApiData=True). It never fails the
request.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from rainz.config import Settings
from rainz.errors import RefinementUnavailableError
from rainz.models import AggregatedResult, WeatherSource

logger = logging.getLogger(__name__)

GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.3-70b-versatile"
HUGGING_FACE_URL = "https://api-inference.huggingface.co/models/mistralai/Mixtral-8x7B-Instruct-v0.1"

PROMPT_HOURLY_ENTRIES = 12
PROMPT_DAILY_ENTRIES = 7

SYSTEM_PROMPT = """You are an expert meteorologist AI that analyzes weather data from multiple forecasting models and provides unified, accurate weather predictions.

Your task is to:
1. Analyze data from multiple weather models (ECMWF, GFS, DWD ICON, Met.no, WeatherAPI, etc.)
2. Identify model consensus and disagreements
3. Apply meteorological expertise to weight predictions appropriately
4. Provide a unified forecast with confidence levels
5. Generate actionable insights

CRITICAL: You must respond with ONLY valid JSON, no markdown, no explanations. The JSON must match this exact structure:
{
  "current": {
    "temperature": <number in Fahrenheit>,
    "feelsLike": <number in Fahrenheit>,
    "condition": "<Clear|Partly Cloudy|Cloudy|Overcast|Light Rain|Rain|Heavy Rain|Thunderstorm|Snow|Light Snow|Heavy Snow|Fog|Drizzle>",
    "description": "<brief natural language description>",
    "humidity": <number 0-100>,
    "windSpeed": <number in mph>,
    "pressure": <number in mb>,
    "confidence": <number 0-100>
  },
  "hourly": [<array of 24 hours with time, temperature, condition, precipitation, confidence>],
  "daily": [<array of 7 days with day, condition, description, highTemp, lowTemp, precipitation, confidence>],
  "summary": "<1-2 sentence natural weather summary for today>",
  "modelAgreement": <number 0-100>,
  "insights": ["<insight 1>", "<insight 2>", "<insight 3>"]
}"""

DEFAULT_SUMMARY = "Weather forecast aggregated from multiple sources."


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = content.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1:] if first_newline != -1 else text[3:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def raw_forecast(source: WeatherSource, model_agreement: float) -> Dict[str, Any]:
    """The refined-forecast shape filled straight from one source."""
    cw = source.current_weather
    return {
        "current": {
            "temperature": cw.temperature,
            "feelsLike": cw.feels_like,
            "condition": cw.condition,
            "description": cw.description or cw.condition,
            "humidity": cw.humidity,
            "windSpeed": cw.wind_speed,
            "pressure": cw.pressure,
            "confidence": 100,
        },
        "hourly": [
            {
                "time": h.time,
                "temperature": h.temperature,
                "condition": h.condition,
                "precipitation": h.precipitation or 0,
                "confidence": 100,
            }
            for h in source.hourly_forecast[:24]
        ],
        "daily": [
            {
                "day": d.day,
                "condition": d.condition,
                "description": d.condition,
                "highTemp": d.high_temp,
                "lowTemp": d.low_temp,
                "precipitation": d.precipitation or 0,
                "confidence": 100,
            }
            for d in source.daily_forecast[:7]
        ],
        "summary": f"Current: {cw.condition}, {cw.temperature}°F",
        "modelAgreement": model_agreement,
        "insights": [],
        "rawApiData": True,
        "source": source.source,
    }


class ForecastRefiner:
    """LLM unification over an AggregatedResult with graceful degradation."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client

    def build_prompts(self, result: AggregatedResult, location: Optional[str]) -> Tuple[str, str]:
        summary: List[Dict[str, Any]] = []
        for s in result.sources:
            data = s.to_dict()
            summary.append({
                "model": s.source,
                "current": data["currentWeather"],
                "next24h": data["hourlyForecast"][:PROMPT_HOURLY_ENTRIES],
                "next10days": data["dailyForecast"][:PROMPT_DAILY_ENTRIES],
            })

        user_prompt = (
            f"Analyze this weather data from {len(result.sources)} forecasting models for "
            f"{location or 'the selected location'} and provide a unified forecast:\n\n"
            f"{json.dumps(summary, indent=2)}\n\n"
            "Provide your unified weather analysis as JSON."
        )
        return SYSTEM_PROMPT, user_prompt

    async def call_groq(self, http: httpx.AsyncClient, system_prompt: str,
                        user_prompt: str) -> Optional[str]:
        if not self.settings.groq_api_key:
            logger.info("[ForecastRefiner] GROQ_API_KEY not configured")
            return None

        try:
            resp = await http.post(
                GROQ_URL,
                headers={"Authorization": f"Bearer {self.settings.groq_api_key}"},
                json={
                    "model": GROQ_MODEL,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    "temperature": 0.3,
                    "max_tokens": 4000,
                },
                timeout=self.settings.llm_timeout_seconds,
            )
            resp.raise_for_status()
            result = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[ForecastRefiner] Groq API error: {e.response.status_code}")
            return None
        except (httpx.RequestError, ValueError) as e:
            logger.error(f"[ForecastRefiner] Groq API call failed: {e}")
            return None

        choices = result.get("choices") if isinstance(result, dict) else None
        choice = choices[0] if isinstance(choices, list) and choices else None
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content:
            logger.error(f"[ForecastRefiner] Unexpected Groq response shape: {str(result)[:200]}")
            return None
        return content

    async def call_hugging_face(self, http: httpx.AsyncClient, system_prompt: str,
                                user_prompt: str) -> Optional[str]:
        if not self.settings.hugging_face_token:
            logger.info("[ForecastRefiner] HUGGING_FACE_ACCESS_TOKEN not configured")
            return None

        try:
            resp = await http.post(
                HUGGING_FACE_URL,
                headers={"Authorization": f"Bearer {self.settings.hugging_face_token}"},
                json={
                    "inputs": f"<s>[INST] {system_prompt}\n\n{user_prompt} [/INST]",
                    "parameters": {
                        "max_new_tokens": 4000,
                        "temperature": 0.3,
                        "return_full_text": False,
                    },
                },
                timeout=self.settings.llm_timeout_seconds,
            )
            resp.raise_for_status()
            result = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[ForecastRefiner] Hugging Face API error: {e.response.status_code}")
            return None
        except (httpx.RequestError, ValueError) as e:
            logger.error(f"[ForecastRefiner] Hugging Face API call failed: {e}")
            return None

        if isinstance(result, list):
            result = result[0] if result else None
        text = result.get("generated_text") if isinstance(result, dict) else None
        if not isinstance(text, str) or not text:
            logger.error(f"[ForecastRefiner] Unexpected Hugging Face response shape: {str(result)[:200]}")
            return None
        return text

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Ask Groq, then Hugging Face.

        Raises:
            RefinementUnavailableError: no backend produced any text
        """
        async def _chain(http: httpx.AsyncClient) -> Optional[str]:
            content = await self.call_groq(http, system_prompt, user_prompt)
            if not content:
                logger.info("[ForecastRefiner] Groq unavailable, trying Hugging Face backup...")
                content = await self.call_hugging_face(http, system_prompt, user_prompt)
            return content

        if self.client is not None:
            content = await _chain(self.client)
        else:
            async with httpx.AsyncClient() as http:
                content = await _chain(http)

        if not content:
            raise RefinementUnavailableError("All LLM backends failed")
        return content

    def parse_forecast(self, content: str, result: AggregatedResult) -> Dict[str, Any]:
        """
        Parse the model reply and fill required fields it left out.

        Raises:
            ValueError: reply is not a JSON object
        """
        forecast = json.loads(strip_code_fences(content))
        if not isinstance(forecast, dict):
            raise ValueError("LLM reply is not a JSON object")

        if not forecast.get("current"):
            cw = result.most_accurate.current_weather
            forecast["current"] = {
                "temperature": cw.temperature,
                "feelsLike": cw.feels_like,
                "condition": cw.condition,
                "description": "Data from API",
                "humidity": cw.humidity,
                "windSpeed": cw.wind_speed,
                "pressure": cw.pressure,
                "confidence": 80,
            }
        if not forecast.get("summary"):
            forecast["summary"] = DEFAULT_SUMMARY
        forecast.setdefault("modelAgreement", result.model_agreement)
        forecast.setdefault("insights", [])
        return forecast

    async def refine(self, result: AggregatedResult, location: Optional[str] = None) -> Dict[str, Any]:
        """Unified forecast from the LLM, or the raw aggregated source on any failure."""
        system_prompt, user_prompt = self.build_prompts(result, location)
        logger.info(f"[ForecastRefiner] Refining {len(result.sources)} sources...")

        try:
            content = await self.complete(system_prompt, user_prompt)
            forecast = self.parse_forecast(content, result)
        except RefinementUnavailableError:
            logger.warning("[ForecastRefiner] All LLM providers failed, returning raw API data")
            return raw_forecast(result.aggregated, result.model_agreement)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            logger.error(f"[ForecastRefiner] Failed to parse LLM response: {e}")
            return raw_forecast(result.aggregated, result.model_agreement)

        logger.info(f"[ForecastRefiner] LLM forecast with {forecast['modelAgreement']}% model agreement")
        return forecast
