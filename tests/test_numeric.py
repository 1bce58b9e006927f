"""
Tests for the numeric and time helpers

Run with: python -m pytest tests/test_numeric.py -v
"""

from datetime import datetime

import pytest

from rainz.numeric import (
    c_to_f,
    first_or,
    hour_label,
    meters_to_miles,
    minutes_to_duration,
    ms_to_mph,
    nearest_index,
    parse_12h_to_minutes,
    parse_timestamp,
    round_half_up,
    round_to,
    weekday_label,
)


class TestRounding:

    @pytest.mark.parametrize("value,expected", [
        (72.5, 73),
        (71.5, 72),
        (72.4, 72),
        (-2.5, -2),
        (-2.6, -3),
        (0.0, 0),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_round_to_two_places(self):
        assert round_to(0.125, 2) == 0.13
        assert round_to(0.07, 2) == 0.07
        assert round_to(1.0, 2) == 1.0


class TestConversions:

    def test_c_to_f(self):
        assert c_to_f(0) == 32
        assert c_to_f(100) == 212
        assert c_to_f(-40) == -40

    def test_ms_to_mph(self):
        assert ms_to_mph(10) == pytest.approx(22.37)

    def test_meters_to_miles(self):
        assert round_half_up(meters_to_miles(10000)) == 6


class TestFirstOr:

    def test_present(self):
        assert first_or([1, 2, 3], 0, 1) == 2

    def test_missing_or_null(self):
        assert first_or(None, 5) == 5
        assert first_or([], 5) == 5
        assert first_or([1], 5, 3) == 5
        assert first_or([None], 5) == 5


class TestClock:

    def test_parse_12h(self):
        assert parse_12h_to_minutes("07:15 AM") == 7 * 60 + 15
        assert parse_12h_to_minutes("12:00 AM") == 0
        assert parse_12h_to_minutes("12:30 PM") == 12 * 60 + 30
        assert parse_12h_to_minutes("06:45 PM") == 18 * 60 + 45

    def test_parse_12h_garbage(self):
        assert parse_12h_to_minutes("sunrise") is None

    def test_daylight_duration(self):
        assert minutes_to_duration(7 * 60 + 15, 18 * 60 + 45) == "11h 30m"
        assert minutes_to_duration(None, 100) is None

    def test_duration_wraps_midnight(self):
        assert minutes_to_duration(23 * 60, 60) == "2h 0m"


class TestTimestamps:

    def test_parse_zulu(self):
        moment = parse_timestamp("2026-10-18T13:00Z")
        assert moment.utcoffset().total_seconds() == 0

    def test_labels(self):
        assert hour_label("2026-10-18T15:00") == "03 PM"
        assert weekday_label("2026-10-18") == "Sun"

    def test_nearest_index(self):
        times = ["2026-10-18T00:00", "2026-10-18T01:00", "2026-10-18T02:00"]
        assert nearest_index(times, datetime(2026, 10, 18, 1, 20)) == 1
        assert nearest_index([], datetime(2026, 10, 18)) == 0
