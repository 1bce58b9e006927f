"""
Tests for the command-line runner

Run with: python -m pytest tests/test_cli.py -v
"""

import json

import pytest

import main as cli
from rainz.errors import ProviderError


@pytest.fixture
def offline(monkeypatch, tmp_path):
    """No provider answers and the ensemble API is down."""
    async def no_sources(lat, lon, location_name, settings, client=None):
        return []

    async def ensemble_down(lat, lon, settings, client=None):
        raise ProviderError("Open-Meteo Ensemble", "HTTP 502")

    monkeypatch.setattr(cli, "fetch_all_sources", no_sources)
    monkeypatch.setattr(cli, "fetch_ensemble_forecast", ensemble_down)
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "rainz.log"))


class TestForecastCommand:

    def test_demo_fallback(self, offline, tmp_path, capsys):
        out_path = tmp_path / "outputs" / "forecast.json"
        code = cli.main(["forecast", "--lat", "40.7", "--lon", "-74.0", "--json", str(out_path)])

        assert code == 0
        payload = json.loads(out_path.read_text(encoding="utf-8"))
        assert payload["demo"] is True
        assert payload["mostAccurate"]["source"] == "OpenWeatherMap"
        assert payload["aggregated"]["currentWeather"]["temperature"] == 75
        assert payload["modelAgreement"] == 100.0
        assert "ensemble" not in payload

        printed = capsys.readouterr().out
        assert "UNAVAILABLE" in printed

    def test_out_of_range(self, offline):
        assert cli.main(["forecast", "--lat", "95", "--lon", "0"]) == 2

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.parse_args([])
