# grain_planner/planner/stability.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from ..climate.observations import WeatherObservation, validate_weather_data
from ..schemas.outputs import RiskLevel, StabilityFactors, WeatherStabilityScore

__all__ = [
    "OPTIMAL_RANGES",
    "STABILITY_WEIGHTS",
    "calculate_weather_stability_score",
    "count_extreme_events",
    "empty_stability_score",
    "validate_weather_data",
]

# rice planting ranges
OPTIMAL_RANGES: Dict[str, Dict[str, float]] = {
    "temperature": {"min": 20.0, "max": 35.0, "optimal": 25.0},  # °C
    "precipitation": {"min": 0.0, "max": 50.0, "optimal": 10.0},  # mm/day
    "wind_speed": {"min": 0.0, "max": 25.0, "optimal": 8.0},  # km/h
    "humidity": {"min": 60.0, "max": 90.0, "optimal": 75.0},  # %
}

STABILITY_WEIGHTS: Dict[str, float] = {
    "temperature": 0.35,
    "precipitation": 0.25,
    "wind_speed": 0.20,
    "humidity": 0.20,
}

INSUFFICIENT_DATA = "Insufficient weather data for analysis"


@dataclass(frozen=True)
class SeriesStats:
    total: float
    mean: float
    variance: float  # population
    non_zero: int
    min: float
    max: float


def _stats(values: Sequence[float]) -> SeriesStats:
    arr = np.asarray(values, dtype=float)
    return SeriesStats(
        total=float(arr.sum()),
        mean=float(arr.mean()),
        variance=float(arr.var()),
        non_zero=int((arr > 0).sum()),
        min=float(arr.min()),
        max=float(arr.max()),
    )


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


# =============================================================================
# SUB-SCORES
# =============================================================================
def temperature_stability(s: SeriesStats) -> float:
    r = OPTIMAL_RANGES["temperature"]
    base = max(0.0, 1.0 - abs(s.mean - r["optimal"]) / 15.0)
    variance_penalty = min(1.0, s.variance / 25.0)
    # degrees below 20 / above 35
    extreme_penalty = (max(0.0, r["min"] - s.min) + max(0.0, s.max - r["max"])) / 10.0
    return _clamp01(base - variance_penalty * 0.3 - extreme_penalty * 0.2)


def precipitation_score(s: SeriesStats, n_days: int) -> float:
    r = OPTIMAL_RANGES["precipitation"]
    avg = s.total / n_days
    base = max(0.0, 1.0 - abs(avg - r["optimal"]) / 20.0)
    consistency = s.non_zero / n_days * 0.3
    heavy_rain = max(0.0, (avg - 30.0) / 20.0) * 0.4
    return _clamp01(base + consistency - heavy_rain)


def wind_stability(s: SeriesStats) -> float:
    r = OPTIMAL_RANGES["wind_speed"]
    base = max(0.0, 1.0 - abs(s.mean - r["optimal"]) / 15.0)
    return _clamp01(base - min(1.0, s.variance / 50.0) * 0.2)


def humidity_stability(s: SeriesStats) -> float:
    r = OPTIMAL_RANGES["humidity"]
    base = max(0.0, 1.0 - abs(s.mean - r["optimal"]) / 20.0)
    return _clamp01(base - min(1.0, s.variance / 100.0) * 0.2)


def count_extreme_events(series: Sequence[WeatherObservation]) -> int:
    """One count per observation per condition; a single day may add several."""
    count = 0
    for d in series:
        if d.temperature < 15 or d.temperature > 40:
            count += 1
        if d.precipitation > 50:
            count += 1
        if d.wind_speed > 30:
            count += 1
        if d.humidity < 40 or d.humidity > 95:
            count += 1
    return count


def risk_level(overall: float, extreme_events: int) -> RiskLevel:
    if overall >= 0.8 and extreme_events <= 1:
        return "low"
    if overall >= 0.6 and extreme_events <= 3:
        return "medium"
    return "high"


def _recommendations(
    temp: SeriesStats,
    precip: SeriesStats,
    wind: SeriesStats,
    temp_score: float,
    precip_score: float,
    extreme_events: int,
) -> List[str]:
    recs: List[str] = []

    if temp.mean < 20:
        recs.append("Consider delaying planting until temperatures warm up")
    elif temp.mean > 35:
        recs.append("Monitor for heat stress and ensure adequate irrigation")

    if temp.variance > 20:
        recs.append("High temperature variability - consider shorter planting window")

    if precip.total < 20:
        recs.append("Low rainfall expected - ensure irrigation systems are ready")
    elif precip.total > 200:
        recs.append("Heavy rainfall expected - monitor for flooding and drainage")

    if wind.mean > 20:
        recs.append("High winds expected - consider wind protection measures")

    if extreme_events > 2:
        recs.append("Multiple extreme weather events expected - consider alternative timing")

    if temp_score > 0.8 and precip_score > 0.7:
        recs.append("Excellent planting conditions expected")

    return recs


def empty_stability_score() -> WeatherStabilityScore:
    return WeatherStabilityScore(
        overall_score=0.0,
        temperature_stability=0.0,
        precipitation_score=0.0,
        wind_stability=0.0,
        humidity_stability=0.0,
        factors=StabilityFactors(
            temperature_variance=0.0,
            precipitation_total=0.0,
            precipitation_days=0,
            wind_variance=0.0,
            humidity_variance=0.0,
            extreme_events=0,
        ),
        recommendations=[INSUFFICIENT_DATA],
        risk_level="high",
    )


def calculate_weather_stability_score(series: Sequence[WeatherObservation]) -> WeatherStabilityScore:
    """
    Composite 0-1 stability of a daily series (nominally 7 days).

    overall = 0.35*temperature + 0.25*precipitation + 0.20*wind + 0.20*humidity,
    each sub-score clamped to [0, 1]. Scores are rounded to 2 decimals; the
    risk level is taken from the unrounded overall score.

    An empty series returns the "insufficient data" sentinel.
    """
    if len(series) == 0:
        return empty_stability_score()

    n = len(series)
    temp = _stats([d.temperature for d in series])
    precip = _stats([d.precipitation for d in series])
    wind = _stats([d.wind_speed for d in series])
    rh = _stats([d.humidity for d in series])

    t_score = temperature_stability(temp)
    p_score = precipitation_score(precip, n)
    w_score = wind_stability(wind)
    h_score = humidity_stability(rh)

    overall = (
        t_score * STABILITY_WEIGHTS["temperature"]
        + p_score * STABILITY_WEIGHTS["precipitation"]
        + w_score * STABILITY_WEIGHTS["wind_speed"]
        + h_score * STABILITY_WEIGHTS["humidity"]
    )

    events = count_extreme_events(series)

    return WeatherStabilityScore(
        overall_score=round(overall, 2),
        temperature_stability=round(t_score, 2),
        precipitation_score=round(p_score, 2),
        wind_stability=round(w_score, 2),
        humidity_stability=round(h_score, 2),
        factors=StabilityFactors(
            temperature_variance=temp.variance,
            precipitation_total=precip.total,
            precipitation_days=precip.non_zero,
            wind_variance=wind.variance,
            humidity_variance=rh.variance,
            extreme_events=events,
        ),
        recommendations=_recommendations(temp, precip, wind, t_score, p_score, events),
        risk_level=risk_level(overall, events),
    )
