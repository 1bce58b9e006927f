"""
Tests for the LLM forecast refiner

These tests verify that:
1. Without any configured backend the raw aggregated source comes back
2. Groq replies wrapped in markdown fences are parsed
3. Hugging Face is only asked when Groq fails
4. Unparseable replies degrade to the raw forecast

Run with: python -m pytest tests/test_refinement.py -v
"""

import json
import logging

import httpx
import pytest

from rainz.aggregator import aggregate_sources
from rainz.config import Settings
from rainz.refinement import (
    DEFAULT_SUMMARY,
    GROQ_MODEL,
    ForecastRefiner,
    raw_forecast,
    strip_code_fences,
)

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


@pytest.fixture
def result(make_source):
    return aggregate_sources([
        make_source("GFS", 70, 0.90),
        make_source("ECMWF", 75, 0.95),
    ])


def groq_reply(content):
    return {"choices": [{"message": {"content": content}}]}


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestRawForecast:

    def test_shape(self, result):
        raw = raw_forecast(result.aggregated, result.model_agreement)

        assert raw["rawApiData"] is True
        assert raw["source"] == "Aggregated"
        assert raw["current"]["temperature"] == 73
        assert raw["current"]["confidence"] == 100
        assert raw["modelAgreement"] == pytest.approx(75.0)
        assert all(h["confidence"] == 100 for h in raw["hourly"])
        assert all(d["confidence"] == 100 for d in raw["daily"])


class TestForecastRefiner:

    @pytest.mark.asyncio
    async def test_no_keys_returns_raw(self, result, settings):
        refiner = ForecastRefiner(settings)
        forecast = await refiner.refine(result, "Test City")

        assert forecast["rawApiData"] is True
        assert forecast["current"]["temperature"] == 73

    @pytest.mark.asyncio
    async def test_groq_fenced_reply(self, result):
        seen = {}
        content = "```json\n" + json.dumps({
            "current": {"temperature": 74, "condition": "Clear", "confidence": 90},
            "summary": "Sunny and mild.",
            "modelAgreement": 80,
            "insights": ["Light winds"],
        }) + "\n```"

        def handler(request):
            seen["host"] = request.url.host
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=groq_reply(content))

        settings = Settings(groq_api_key="gsk-test")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            forecast = await ForecastRefiner(settings, client=client).refine(result, "Test City")

        logger.info(f"[TEST] Refined forecast: {forecast}")
        assert seen["host"] == "api.groq.com"
        assert seen["body"]["model"] == GROQ_MODEL
        assert seen["body"]["temperature"] == 0.3
        assert forecast["current"]["temperature"] == 74
        assert forecast["summary"] == "Sunny and mild."
        assert "rawApiData" not in forecast

    @pytest.mark.asyncio
    async def test_missing_fields_filled(self, result):
        def handler(request):
            return httpx.Response(200, json=groq_reply('{"hourly": [], "daily": []}'))

        settings = Settings(groq_api_key="gsk-test")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            forecast = await ForecastRefiner(settings, client=client).refine(result)

        # current comes from the most accurate source, not the blend
        assert forecast["current"]["temperature"] == 75
        assert forecast["summary"] == DEFAULT_SUMMARY
        assert forecast["modelAgreement"] == pytest.approx(75.0)

    @pytest.mark.asyncio
    async def test_hugging_face_backup(self, result):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            if request.url.host == "api.groq.com":
                return httpx.Response(503, text="overloaded")
            return httpx.Response(200, json=[{"generated_text": '{"summary": "From backup."}'}])

        settings = Settings(groq_api_key="gsk-test", hugging_face_token="hf-test")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            forecast = await ForecastRefiner(settings, client=client).refine(result)

        assert hosts == ["api.groq.com", "api-inference.huggingface.co"]
        assert forecast["summary"] == "From backup."

    @pytest.mark.asyncio
    async def test_bad_json_returns_raw(self, result):
        def handler(request):
            return httpx.Response(200, json=groq_reply("The weather looks lovely today!"))

        settings = Settings(groq_api_key="gsk-test")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            forecast = await ForecastRefiner(settings, client=client).refine(result)

        assert forecast["rawApiData"] is True
        assert forecast["source"] == "Aggregated"

    @pytest.mark.asyncio
    async def test_groq_unexpected_shape_returns_raw(self, result):
        def handler(request):
            return httpx.Response(200, json={"choices": ["oops"]})

        settings = Settings(groq_api_key="gsk-test")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            forecast = await ForecastRefiner(settings, client=client).refine(result)

        assert forecast["rawApiData"] is True
        assert forecast["current"]["temperature"] == 73

    @pytest.mark.asyncio
    async def test_hugging_face_unexpected_shape_returns_raw(self, result):
        def handler(request):
            if request.url.host == "api.groq.com":
                return httpx.Response(500)
            return httpx.Response(200, json=["plain text"])

        settings = Settings(groq_api_key="gsk-test", hugging_face_token="hf-test")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            forecast = await ForecastRefiner(settings, client=client).refine(result)

        assert forecast["rawApiData"] is True

    @pytest.mark.asyncio
    async def test_reply_not_an_object_returns_raw(self, result):
        def handler(request):
            return httpx.Response(200, json=groq_reply("[1, 2, 3]"))

        settings = Settings(groq_api_key="gsk-test")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            forecast = await ForecastRefiner(settings, client=client).refine(result)

        assert forecast["rawApiData"] is True

    def test_prompt_lists_every_source(self, result, settings):
        _, user_prompt = ForecastRefiner(settings).build_prompts(result, "Test City")
        assert "2 forecasting models for Test City" in user_prompt
        assert '"model": "GFS"' in user_prompt
        assert '"model": "ECMWF"' in user_prompt
