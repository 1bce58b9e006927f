"""
Numeric and formatting helpers shared by the aggregator, the ensemble
statistics and the providers.

All temperatures inside the core are Fahrenheit. The conversions below are
the only place metric values from upstream APIs are turned into core units.
"""

import math
from datetime import datetime
from typing import NewType, Optional, Sequence

# Unit tags for the value objects in models.py
Fahrenheit = NewType("Fahrenheit", float)
Inches = NewType("Inches", float)
Millibar = NewType("Millibar", float)
Mph = NewType("Mph", float)
Miles = NewType("Miles", float)
Percent = NewType("Percent", float)

METERS_PER_MILE = 1609.34
MPH_PER_MS = 2.237


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves going up.

    Python's round() uses banker's rounding (round(72.5) == 72); the forecast
    numbers published to clients always round .5 upwards, including for
    negatives (-2.5 -> -2).
    """
    return int(math.floor(value + 0.5))


def round_to(value: float, places: int) -> float:
    """Round to a fixed number of decimals with halves going up."""
    factor = 10 ** places
    return round_half_up(value * factor) / factor


def c_to_f(celsius: float) -> Fahrenheit:
    return Fahrenheit(celsius * 9 / 5 + 32)


def ms_to_mph(ms: float) -> Mph:
    return Mph(ms * MPH_PER_MS)


def meters_to_miles(meters: float) -> Miles:
    return Miles(meters / METERS_PER_MILE)


def first_or(values: Optional[Sequence], default, index: int = 0):
    """values[index] when present and not null, else default."""
    if not values or index >= len(values):
        return default
    value = values[index]
    return default if value is None else value


def parse_12h_to_minutes(text: str) -> Optional[int]:
    """
    Parse a 12-hour clock string like "07:15 AM" into minutes since midnight.

    Returns None when the string cannot be parsed.
    """
    try:
        clock, meridiem = text.strip().split(" ")
        hour_str, minute_str = clock.split(":")
        hour = int(hour_str)
        minute = int(minute_str)
    except (AttributeError, ValueError):
        return None

    meridiem = meridiem.upper()
    if meridiem == "PM" and hour != 12:
        hour += 12
    if meridiem == "AM" and hour == 12:
        hour = 0
    return hour * 60 + minute


def minutes_to_duration(start_min: Optional[int], end_min: Optional[int]) -> Optional[str]:
    """Format the span between two clock minutes as "Xh Ym", wrapping midnight."""
    if start_min is None or end_min is None:
        return None
    diff = end_min - start_min
    if diff < 0:
        diff += 24 * 60
    return f"{diff // 60}h {diff % 60}m"


def parse_timestamp(text: str) -> datetime:
    """Parse provider timestamps ("2025-01-01T13:00", "...Z", "2025-01-01 13:00")."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def hour_label(text: str) -> str:
    """"2025-01-01T15:00" -> "03 PM"."""
    return parse_timestamp(text).strftime("%I %p")


def weekday_label(text: str) -> str:
    """"2025-01-01" -> "Wed"."""
    return parse_timestamp(text).strftime("%a")


def nearest_index(times: Sequence[str], target: datetime) -> int:
    """Index of the timestamp closest to target (0 for an empty or unparseable list)."""
    best, best_delta = 0, None
    for i, text in enumerate(times):
        try:
            moment = parse_timestamp(text)
        except ValueError:
            continue
        if (moment.tzinfo is None) != (target.tzinfo is None):
            moment = moment.replace(tzinfo=target.tzinfo)
        delta = abs((moment - target).total_seconds())
        if best_delta is None or delta < best_delta:
            best, best_delta = i, delta
    return best
