"""
Source Aggregator for Rainz

Combines the weather sources that answered for a location into one ranked
and blended view.

Key Features:
1. Most-accurate pick (highest declared accuracy weight, first wins ties)
2. Aggregated source (unweighted mean current temperature, everything else
   from the most accurate source)
3. Model agreement percentage for display

MODEL AGREEMENT (Fahrenheit):
    agreement = max(0, 100 - maxDeviation * 10)
    Each 1F of maximum deviation from the mean costs 10 points.

Only temperature is blended. Humidity, wind, pressure and condition pass
through from the most accurate source.
"""

import logging
from dataclasses import replace
from typing import List, Sequence

import numpy as np

from rainz.errors import EmptySourceSetError
from rainz.models import AggregatedResult, WeatherSource
from rainz.numeric import Fahrenheit, round_half_up

logger = logging.getLogger(__name__)


class SourceAggregator:
    """
    Pure, synchronous aggregation over request-scoped WeatherSource records.

    Failed providers are expected to be missing from the input already; the
    aggregator works the same with one source as with many.
    """

    AGGREGATED_LABEL = "Aggregated"

    # Agreement points lost per 1F of maximum deviation from the mean
    AGREEMENT_PENALTY_PER_DEGREE = 10.0

    def pick_most_accurate(self, sources: Sequence[WeatherSource]) -> WeatherSource:
        """
        Return the source with the highest declared accuracy.

        Only a strictly greater accuracy replaces the current best, so the
        earliest source wins every tie.

        Raises:
            EmptySourceSetError: if sources is empty
        """
        if not sources:
            raise EmptySourceSetError("pick_most_accurate")

        best = sources[0]
        for candidate in sources[1:]:
            if candidate.accuracy > best.accuracy:
                best = candidate

        logger.debug(f"[SourceAggregator] Most accurate: {best.source} ({best.accuracy:.2f})")
        return best

    def build_aggregated(self, sources: Sequence[WeatherSource]) -> WeatherSource:
        """
        Build the synthetic aggregated source.

        currentWeather.temperature is the unweighted mean of all current
        temperatures rounded half-up to a whole degree F. All other fields
        are copied from the most accurate source.

        Raises:
            EmptySourceSetError: if sources is empty
        """
        if not sources:
            raise EmptySourceSetError("build_aggregated")

        base = self.pick_most_accurate(sources)
        temps = np.array([s.current_weather.temperature for s in sources], dtype=float)
        mean_temp = Fahrenheit(round_half_up(float(temps.mean())))

        logger.debug(f"[SourceAggregator] Mean temperature {mean_temp}F "
                     f"from {len(sources)} sources (base: {base.source})")

        return replace(
            base,
            source=self.AGGREGATED_LABEL,
            current_weather=replace(base.current_weather, temperature=mean_temp),
        )

    def compute_model_agreement(self, sources: Sequence[WeatherSource]) -> float:
        """
        Agreement percentage in [0, 100] from the spread of current temperatures.

        A single source always yields 100.

        Raises:
            EmptySourceSetError: if sources is empty
        """
        if not sources:
            raise EmptySourceSetError("compute_model_agreement")

        temps = np.array([s.current_weather.temperature for s in sources], dtype=float)
        max_deviation = float(np.max(np.abs(temps - temps.mean())))
        agreement = max(0.0, 100.0 - max_deviation * self.AGREEMENT_PENALTY_PER_DEGREE)

        if agreement <= 60:
            logger.warning(f"[SourceAggregator] Low model agreement: {agreement:.0f}% "
                           f"(max deviation {max_deviation:.1f}F across {len(sources)} sources)")
        else:
            logger.debug(f"[SourceAggregator] Model agreement {agreement:.0f}%")

        return agreement

    def aggregate(self, sources: Sequence[WeatherSource]) -> AggregatedResult:
        """
        Run all three operations over the same source list.

        Raises:
            EmptySourceSetError: if sources is empty
        """
        if not sources:
            logger.warning("[SourceAggregator] No sources to aggregate")
            raise EmptySourceSetError("aggregate")

        ordered = tuple(sources)
        result = AggregatedResult(
            sources=ordered,
            most_accurate=self.pick_most_accurate(ordered),
            aggregated=self.build_aggregated(ordered),
            model_agreement=self.compute_model_agreement(ordered),
        )

        logger.info(f"[SourceAggregator] {len(ordered)} sources -> "
                    f"{result.aggregated.current_weather.temperature}F, "
                    f"agreement {result.model_agreement:.0f}%, "
                    f"most accurate {result.most_accurate.source}")
        return result


def aggregate_sources(sources: List[WeatherSource]) -> AggregatedResult:
    """
    Convenience wrapper around SourceAggregator.aggregate().

    Example:
        result = aggregate_sources(sources)
        print(f"{result.aggregated.current_weather.temperature}F")
    """
    return SourceAggregator().aggregate(sources)
