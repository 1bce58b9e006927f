"""
Ensemble Statistics Engine for Rainz

Turns raw multi-member ensemble runs into hourly percentile bands and one
confidence label for the whole horizon.

Key Features:
1. Member discovery across the key-naming schemes ensemble APIs use
2. Fallback chain: real members -> base forecast -> synthetic scenarios
3. Nearest-rank median/p10/p90 per hour (no interpolation)
4. Confidence classification from the average temperature spread

CONFIDENCE THRESHOLDS (average p90-p10 temperature spread, Fahrenheit):
- high:   spread < 5F
- medium: spread < 10F
- low:    otherwise

SYNTHETIC ENSEMBLE:
When the provider exposes no per-member runs, three scenarios are built from
the base forecast (unchanged, 2F cooler/0.7x drier, 2F warmer/1.3x wetter).
That spread is manufactured, so the result is flagged synthetic=True. It
still feeds the same confidence thresholds.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from rainz.errors import NoForecastDataError
from rainz.models import ConfidenceLevel, EnsembleForecast, PercentileBand
from rainz.numeric import Inches, round_half_up, round_to

logger = logging.getLogger(__name__)

Series = List[Optional[float]]


@dataclass(frozen=True)
class KeyTemplate:
    """One naming convention for per-member arrays in a flat hourly payload."""
    name: str
    pattern: str

    def key(self, variable: str, index: int) -> str:
        return self.pattern.format(variable=variable, index=index)

    def lookup(self, raw_hourly: Mapping[str, Any], variable: str, index: int) -> Optional[Series]:
        value = raw_hourly.get(self.key(variable, index))
        if not isinstance(value, (list, tuple)) or not value:
            return None
        if all(v is None for v in value):
            return None
        return list(value)


# Tried in order for every member index; the first match wins
MEMBER_KEY_TEMPLATES: Tuple[KeyTemplate, ...] = (
    KeyTemplate("zero_padded", "{variable}_member{index:02d}"),
    KeyTemplate("underscore", "{variable}_member_{index}"),
    KeyTemplate("bare", "{variable}_member{index}"),
)


@dataclass(frozen=True)
class HourStats:
    median: float
    p10: float
    p90: float
    spread: float


@dataclass
class MemberSet:
    """
    Discovered members per variable.

    tier is "ensemble" for genuine per-member runs, "deterministic" when the
    base forecast is the sole member and "synthetic" for fabricated scenarios.
    """
    temperature: List[Series] = field(default_factory=list)
    precipitation: List[Series] = field(default_factory=list)
    tier: str = "ensemble"

    @property
    def synthetic(self) -> bool:
        return self.tier == "synthetic"

    @property
    def member_count(self) -> int:
        return len(self.temperature)


class EnsembleStatistics:
    """
    Pure percentile-band computation over ensemble members.

    Each call is independent; nothing is shared between requests.
    """

    TEMPERATURE_KEY = "temperature_2m"
    PRECIPITATION_KEY = "precipitation"

    MAX_MEMBERS = 51  # member indices 0..50
    MAX_HOURS = 72    # 3 days

    # Confidence thresholds (Fahrenheit, strict <)
    HIGH_CONFIDENCE_SPREAD = 5.0
    MEDIUM_CONFIDENCE_SPREAD = 10.0

    # Synthetic scenarios: (temperature offset F, precipitation factor)
    SYNTHETIC_SCENARIOS: Tuple[Tuple[float, float], ...] = (
        (0.0, 1.0),   # base
        (-2.0, 0.7),  # cooler, drier
        (2.0, 1.3),   # warmer, wetter
    )

    def __init__(self, templates: Sequence[KeyTemplate] = MEMBER_KEY_TEMPLATES,
                 allow_synthetic: bool = True):
        self.templates = tuple(templates)
        self.allow_synthetic = allow_synthetic

    # ------------------------------------------------------------------
    # Member discovery
    # ------------------------------------------------------------------

    def find_member_series(self, raw_hourly: Mapping[str, Any], variable: str) -> List[Series]:
        """Collect per-member arrays for one variable, first matching template per index."""
        members: List[Series] = []
        for index in range(self.MAX_MEMBERS):
            for template in self.templates:
                series = template.lookup(raw_hourly, variable, index)
                if series is not None:
                    members.append(series)
                    break
        return members

    def discover_members(self, raw_hourly: Mapping[str, Any]) -> MemberSet:
        """
        Locate ensemble members in a flat hourly payload.

        Fallbacks:
            1. No per-member keys but a base array -> base is the sole member
            2. allow_synthetic -> sole base expanded into 3 synthetic scenarios

        A missing precipitation series is zero-filled to the temperature
        horizon; temperature is required.

        Raises:
            NoForecastDataError: neither members nor a base temperature forecast
        """
        temp_members = self.find_member_series(raw_hourly, self.TEMPERATURE_KEY)
        precip_members = self.find_member_series(raw_hourly, self.PRECIPITATION_KEY)

        if temp_members:
            if not precip_members:
                precip_members = [self._base_precipitation(raw_hourly, len(temp_members[0]))]
            logger.info(f"[EnsembleStatistics] Discovered {len(temp_members)} temperature and "
                        f"{len(precip_members)} precipitation members")
            return MemberSet(temp_members, precip_members, tier="ensemble")

        base_temp = self._base_series(raw_hourly, self.TEMPERATURE_KEY)
        if base_temp is None:
            logger.error("[EnsembleStatistics] No members and no base forecast in payload")
            raise NoForecastDataError(self.TEMPERATURE_KEY)

        base_precip = (precip_members[0] if precip_members
                       else self._base_precipitation(raw_hourly, len(base_temp)))

        if not self.allow_synthetic:
            logger.warning("[EnsembleStatistics] No per-member data, using base forecast as sole member")
            return MemberSet([base_temp], [base_precip], tier="deterministic")

        logger.warning("[EnsembleStatistics] No per-member data, fabricating "
                       f"{len(self.SYNTHETIC_SCENARIOS)} SYNTHETIC members from base forecast")
        return self._synthetic_members(base_temp, base_precip)

    def _base_series(self, raw_hourly: Mapping[str, Any], variable: str) -> Optional[Series]:
        value = raw_hourly.get(variable)
        if not isinstance(value, (list, tuple)) or not value:
            return None
        if all(v is None for v in value):
            return None
        return list(value)

    def _base_precipitation(self, raw_hourly: Mapping[str, Any], length: int) -> Series:
        base = self._base_series(raw_hourly, self.PRECIPITATION_KEY)
        if base is None:
            logger.warning("[EnsembleStatistics] No precipitation data, assuming dry")
            return [0.0] * length
        return base

    def _synthetic_members(self, base_temp: Series, base_precip: Series) -> MemberSet:
        temps: List[Series] = []
        precips: List[Series] = []
        for offset, factor in self.SYNTHETIC_SCENARIOS:
            temps.append([None if t is None else t + offset for t in base_temp])
            precips.append([None if p is None else p * factor for p in base_precip])
        return MemberSet(temps, precips, tier="synthetic")

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def calculate_stats(self, members: Sequence[Series]) -> List[HourStats]:
        """
        Nearest-rank median/p10/p90 and spread for every hour.

        Members of different lengths are truncated to the shortest one.
        Null values are skipped within an hour; the horizon ends at the first
        hour where no member has a value.
        """
        if not members:
            raise ValueError("calculate_stats requires at least one member")

        horizon = min(len(m) for m in members)
        if any(len(m) != horizon for m in members):
            logger.warning(f"[EnsembleStatistics] Member lengths differ "
                           f"({sorted({len(m) for m in members})}), truncating to {horizon} hours")

        matrix = np.array([list(m[:horizon]) for m in members], dtype=float)
        counts = np.sum(~np.isnan(matrix), axis=0)

        empty_hours = np.flatnonzero(counts == 0)
        if empty_hours.size:
            horizon = int(empty_hours[0])
            logger.debug(f"[EnsembleStatistics] No values from hour {horizon}, horizon cut")
            matrix = matrix[:, :horizon]
            counts = counts[:horizon]

        # NaN sorts last, so the first counts[h] rows of each column are valid
        ordered = np.sort(matrix, axis=0)
        cols = np.arange(horizon)
        median = ordered[counts // 2, cols]
        p10 = ordered[np.floor(counts * 0.1).astype(int), cols]
        p90 = ordered[np.floor(counts * 0.9).astype(int), cols]

        return [
            HourStats(median=float(m), p10=float(lo), p90=float(hi), spread=float(hi - lo))
            for m, lo, hi in zip(median, p10, p90)
        ]

    def classify_confidence(self, temp_stats: Sequence[HourStats]) -> ConfidenceLevel:
        """
        Classify the horizon from the mean temperature spread.

        Raises:
            ValueError: temp_stats is empty
        """
        if not temp_stats:
            raise ValueError("classify_confidence requires at least one hour of stats")
        avg_spread = sum(s.spread for s in temp_stats) / len(temp_stats)
        return self.confidence_from_spread(avg_spread)

    def confidence_from_spread(self, avg_spread: float) -> ConfidenceLevel:
        if avg_spread < self.HIGH_CONFIDENCE_SPREAD:
            return "high"
        if avg_spread < self.MEDIUM_CONFIDENCE_SPREAD:
            return "medium"
        return "low"

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def build_ensemble_forecast(self, raw_hourly: Mapping[str, Any],
                                time: Sequence[str]) -> EnsembleForecast:
        """
        Discovery -> stats -> confidence -> rounding -> truncation.

        Temperatures are rounded to whole degrees, precipitation to 2
        decimals. Every output array, time included, holds at most 72 hours.

        Raises:
            NoForecastDataError: no time axis, no forecast data at all, or a
                variable with no value in its first hour (empty horizon)
        """
        if not time:
            raise NoForecastDataError("time")

        members = self.discover_members(raw_hourly)
        temp_stats = self.calculate_stats(members.temperature)
        if not temp_stats:
            logger.error("[EnsembleStatistics] Temperature horizon is empty (no value in hour 0)")
            raise NoForecastDataError(self.TEMPERATURE_KEY)
        precip_stats = self.calculate_stats(members.precipitation)
        if not precip_stats:
            logger.error("[EnsembleStatistics] Precipitation horizon is empty (no value in hour 0)")
            raise NoForecastDataError(self.PRECIPITATION_KEY)
        confidence = self.classify_confidence(temp_stats)

        horizon = min(self.MAX_HOURS, len(time), len(temp_stats), len(precip_stats))
        temp_stats = temp_stats[:horizon]
        precip_stats = precip_stats[:horizon]

        temperature = PercentileBand(
            median=[round_half_up(s.median) for s in temp_stats],
            p10=[round_half_up(s.p10) for s in temp_stats],
            p90=[round_half_up(s.p90) for s in temp_stats],
        )
        precipitation = PercentileBand(
            median=[Inches(round_to(s.median, 2)) for s in precip_stats],
            p10=[Inches(round_to(s.p10, 2)) for s in precip_stats],
            p90=[Inches(round_to(s.p90, 2)) for s in precip_stats],
        )

        level = logging.WARNING if members.synthetic else logging.INFO
        logger.log(level, f"[EnsembleStatistics] {horizon}h forecast from {members.member_count} "
                          f"{members.tier} members: {confidence} confidence")

        return EnsembleForecast(
            time=list(time[:horizon]),
            temperature=temperature,
            precipitation=precipitation,
            confidence=confidence,
            synthetic=members.synthetic,
            member_count=members.member_count,
        )


def build_ensemble_forecast(raw_hourly: Dict[str, Any], allow_synthetic: bool = True) -> EnsembleForecast:
    """
    Convenience wrapper for a provider payload's "hourly" block.

    Example:
        forecast = build_ensemble_forecast(data["hourly"])
        print(forecast.confidence)
    """
    engine = EnsembleStatistics(allow_synthetic=allow_synthetic)
    return engine.build_ensemble_forecast(raw_hourly, raw_hourly.get("time") or [])
