"""
Tests for the EnsembleStatistics engine

These tests verify that:
1. Members are discovered under every key scheme, first template winning
2. Percentiles are nearest-rank and always ordered p10 <= median <= p90
3. Confidence thresholds are strict at 5F and 10F
4. The synthetic fallback produces base, base-2 and base+2 scenarios
5. Output arrays never exceed 72 hours

Run with: python -m pytest tests/test_ensemble.py -v
"""

import logging

import pytest

from rainz.ensemble import (
    MEMBER_KEY_TEMPLATES,
    EnsembleStatistics,
    KeyTemplate,
    build_ensemble_forecast,
)
from rainz.errors import NoForecastDataError

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


def hours(n):
    return [f"2026-10-18T{h % 24:02d}:00" for h in range(n)]


def member_payload(member_temps, precip=None, n_hours=None):
    """Flat hourly payload with Open-Meteo style zero-padded member keys."""
    n_hours = n_hours or len(member_temps[0])
    payload = {"time": hours(n_hours)}
    for i, series in enumerate(member_temps, start=1):
        payload[f"temperature_2m_member{i:02d}"] = series
    for i, series in enumerate(precip or [], start=1):
        payload[f"precipitation_member{i:02d}"] = series
    return payload


class TestKeyTemplates:

    def test_template_keys(self):
        keys = [t.key("temperature_2m", 1) for t in MEMBER_KEY_TEMPLATES]
        assert keys == [
            "temperature_2m_member01",
            "temperature_2m_member_1",
            "temperature_2m_member1",
        ]

    def test_lookup_skips_empty_and_null_arrays(self):
        template = KeyTemplate("zero_padded", "{variable}_member{index:02d}")
        assert template.lookup({"t_member01": []}, "t", 1) is None
        assert template.lookup({"t_member01": [None, None]}, "t", 1) is None
        assert template.lookup({"t_member01": "70"}, "t", 1) is None
        assert template.lookup({"t_member01": [70, None]}, "t", 1) == [70, None]

    def test_first_template_wins(self):
        engine = EnsembleStatistics()
        payload = {
            "temperature_2m_member01": [70.0],
            "temperature_2m_member_1": [99.0],
        }
        members = engine.find_member_series(payload, "temperature_2m")
        assert members == [[70.0]]

    @pytest.mark.parametrize("pattern", ["t_member_{i}", "t_member{i}", "t_member{i:02d}"])
    def test_each_scheme_discovered(self, pattern):
        engine = EnsembleStatistics()
        payload = {pattern.format(i=i).replace("t_", "temperature_2m_"): [60.0 + i] for i in range(3)}
        members = engine.find_member_series(payload, "temperature_2m")
        logger.info(f"[TEST] {pattern}: {members}")
        assert members == [[60.0], [61.0], [62.0]]

    def test_custom_template_order(self):
        engine = EnsembleStatistics(templates=(KeyTemplate("custom", "{variable}#{index}"),))
        members = engine.find_member_series({"temperature_2m#0": [1.0]}, "temperature_2m")
        assert members == [[1.0]]


class TestDiscoverMembers:

    def test_real_members(self):
        engine = EnsembleStatistics()
        payload = member_payload([[70.0, 71.0], [72.0, 73.0]], precip=[[0.0, 0.1], [0.2, 0.3]])
        members = engine.discover_members(payload)

        assert members.tier == "ensemble"
        assert members.member_count == 2
        assert not members.synthetic
        assert len(members.precipitation) == 2

    def test_missing_precipitation_zero_filled(self):
        engine = EnsembleStatistics()
        members = engine.discover_members(member_payload([[70.0, 71.0, 72.0]]))
        assert members.precipitation == [[0.0, 0.0, 0.0]]

    def test_synthetic_scenarios(self):
        """No member keys: base, base-2/x0.7 and base+2/x1.3."""
        engine = EnsembleStatistics()
        payload = {"time": hours(2), "temperature_2m": [60.0, 61.0], "precipitation": [0.1, 0.2]}
        members = engine.discover_members(payload)

        logger.info(f"[TEST] Synthetic temperature members: {members.temperature}")
        assert members.synthetic
        assert members.temperature == [[60.0, 61.0], [58.0, 59.0], [62.0, 63.0]]
        assert members.precipitation[1] == pytest.approx([0.07, 0.14])
        assert members.precipitation[2] == pytest.approx([0.13, 0.26])

    def test_deterministic_when_synthetic_disabled(self):
        engine = EnsembleStatistics(allow_synthetic=False)
        payload = {"time": hours(2), "temperature_2m": [60.0, 61.0]}
        members = engine.discover_members(payload)

        assert members.tier == "deterministic"
        assert members.temperature == [[60.0, 61.0]]
        assert members.precipitation == [[0.0, 0.0]]

    def test_no_data_raises(self):
        engine = EnsembleStatistics()
        with pytest.raises(NoForecastDataError) as exc_info:
            engine.discover_members({"time": hours(3)})
        assert exc_info.value.public_message == "Failed to fetch ensemble forecast"


class TestCalculateStats:

    def test_nearest_rank(self):
        engine = EnsembleStatistics()
        members = [[float(v)] for v in [9, 3, 7, 0, 5, 1, 8, 2, 6, 4]]
        stats = engine.calculate_stats(members)

        # sorted 0..9, n=10: median s[5], p10 s[1], p90 s[9]
        assert stats[0].median == 5.0
        assert stats[0].p10 == 1.0
        assert stats[0].p90 == 9.0
        assert stats[0].spread == 8.0

    def test_ordering_holds(self):
        engine = EnsembleStatistics()
        members = [
            [70.0, 50.0, 33.3],
            [65.0, 80.0, 33.3],
            [71.5, 60.0, 10.0],
            [68.0, 55.0, 90.0],
        ]
        for s in engine.calculate_stats(members):
            assert s.p10 <= s.median <= s.p90

    def test_unequal_lengths_truncated(self):
        engine = EnsembleStatistics()
        stats = engine.calculate_stats([[1.0, 2.0, 3.0, 4.0, 5.0], [1.0, 2.0, 3.0]])
        assert len(stats) == 3

    def test_nulls_skipped(self):
        engine = EnsembleStatistics()
        stats = engine.calculate_stats([[70.0, 71.0], [None, 73.0], [72.0, 75.0]])

        # hour 0 has two values [70, 72]
        assert stats[0].median == 72.0
        assert stats[0].p10 == 70.0
        assert stats[0].p90 == 72.0

    def test_horizon_cut_at_empty_hour(self):
        engine = EnsembleStatistics()
        stats = engine.calculate_stats([[70.0, None, 71.0], [72.0, None, 73.0]])
        assert len(stats) == 1

    def test_no_members_rejected(self):
        with pytest.raises(ValueError):
            EnsembleStatistics().calculate_stats([])


class TestConfidence:

    @pytest.mark.parametrize("spread,expected", [
        (0.0, "high"),
        (4.99, "high"),
        (5.0, "medium"),
        (9.99, "medium"),
        (10.0, "low"),
        (25.0, "low"),
    ])
    def test_thresholds(self, spread, expected):
        assert EnsembleStatistics().confidence_from_spread(spread) == expected

    def test_empty_stats_rejected(self):
        with pytest.raises(ValueError):
            EnsembleStatistics().classify_confidence([])


class TestBuildEnsembleForecast:

    def test_synthetic_forecast(self):
        payload = {"time": hours(2), "temperature_2m": [60.0, 61.4], "precipitation": [0.1, 0.2]}
        forecast = build_ensemble_forecast(payload)

        logger.info(f"[TEST] Synthetic forecast: {forecast.to_dict()}")
        assert forecast.synthetic
        assert forecast.member_count == 3
        assert forecast.temperature.median == [60, 61]
        assert forecast.temperature.p10 == [58, 59]
        assert forecast.temperature.p90 == [62, 63]
        assert forecast.precipitation.median == [0.1, 0.2]
        assert forecast.precipitation.p10[0] == 0.07
        assert forecast.precipitation.p90[0] == 0.13
        # spread 4F everywhere
        assert forecast.confidence == "high"

    def test_truncated_to_72_hours(self):
        members = [[70.0 + m + h * 0.1 for h in range(100)] for m in range(5)]
        forecast = build_ensemble_forecast(member_payload(members))

        data = forecast.to_dict()["hourly"]
        for band in ("temperature", "precipitation"):
            for key in ("median", "p10", "p90"):
                assert len(data[band][key]) == 72
        assert len(data["time"]) == 72

    def test_time_axis_shorter_than_members(self):
        engine = EnsembleStatistics()
        payload = member_payload([[70.0] * 10, [71.0] * 10])
        forecast = engine.build_ensemble_forecast(payload, hours(4))
        assert len(forecast.time) == 4
        assert len(forecast.temperature.median) == 4

    def test_wide_spread_low_confidence(self):
        members = [[50.0 + m * 3] for m in range(10)]
        forecast = build_ensemble_forecast(member_payload(members))

        # sorted 50..77 step 3: p10 53, p90 77 -> spread 24
        assert forecast.confidence == "low"
        assert not forecast.synthetic
        assert forecast.member_count == 10

    def test_integer_temperatures(self):
        forecast = build_ensemble_forecast(member_payload([[70.5], [70.5], [70.5]]))
        assert forecast.temperature.median == [71]
        assert isinstance(forecast.temperature.median[0], int)

    def test_empty_time_rejected(self):
        with pytest.raises(NoForecastDataError):
            EnsembleStatistics().build_ensemble_forecast({"temperature_2m": [70.0]}, [])

    def test_leading_null_temperature_rejected(self):
        payload = {"time": hours(4), "temperature_2m": [None, 70.0, 71.0, 72.0]}
        with pytest.raises(NoForecastDataError) as exc_info:
            build_ensemble_forecast(payload)
        assert exc_info.value.variable == "temperature_2m"

    def test_leading_null_in_every_member_rejected(self):
        payload = member_payload([[None, 70.0], [None, 71.0], [None, 72.0]])
        with pytest.raises(NoForecastDataError):
            build_ensemble_forecast(payload)

    def test_leading_null_precipitation_rejected(self):
        payload = {"time": hours(2), "temperature_2m": [70.0, 71.0], "precipitation": [None, 0.1]}
        with pytest.raises(NoForecastDataError) as exc_info:
            build_ensemble_forecast(payload)
        assert exc_info.value.variable == "precipitation"

    def test_serialized_shape(self):
        forecast = build_ensemble_forecast(member_payload([[70.0], [72.0]]))
        data = forecast.to_dict()
        assert set(data) == {"hourly", "confidence", "synthetic", "memberCount"}
        assert set(data["hourly"]) == {"temperature", "precipitation", "time"}
