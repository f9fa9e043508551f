# grain_planner/planner/windows.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from .. import config as cfg
from ..climate.observations import WeatherObservation
from ..schemas.inputs import Location
from ..schemas.outputs import DataQuality, PlantingWindow, PlantingWindowAnalysis, WeatherStabilityScore
from .stability import calculate_weather_stability_score

logger = logging.getLogger(__name__)


def window_confidence(window: Sequence[WeatherObservation], score: WeatherStabilityScore) -> float:
    confidence = score.overall_score * 100.0
    if len(window) == cfg.WINDOW_DAYS:
        confidence += 10.0
    confidence -= score.factors.extreme_events * 5.0
    if score.temperature_stability > 0.8:
        confidence += 5.0
    return max(0.0, min(100.0, confidence))


def assess_data_quality(series: Sequence[WeatherObservation]) -> DataQuality:
    n = len(series)
    if n < cfg.WINDOW_DAYS:
        return "poor"
    if n >= 90:
        return "excellent"
    if n >= 60:
        return "good"
    return "fair"


def select_optimal_window(windows: Sequence[PlantingWindow]) -> Optional[PlantingWindow]:
    """First window (in score order) with confidence >= 70, else the top window."""
    for w in windows:
        if w.confidence >= cfg.WINDOW_MIN_CONFIDENCE:
            return w
    return windows[0] if windows else None


def build_windows(series: Sequence[WeatherObservation], days: int = cfg.WINDOW_DAYS) -> List[PlantingWindow]:
    """
    Every `days`-long slice of the series (step 1), scored and ranked by
    overall score, highest first. Equal scores keep chronological order.
    """
    if len(series) < days:
        return []

    windows: List[PlantingWindow] = []
    for i in range(len(series) - days + 1):
        chunk = list(series[i:i + days])
        score = calculate_weather_stability_score(chunk)
        windows.append(
            PlantingWindow(
                start_date=chunk[0].date,
                end_date=chunk[-1].date,
                score=score,
                weather_data=chunk,
                confidence=window_confidence(chunk, score),
            )
        )

    windows.sort(key=lambda w: w.score.overall_score, reverse=True)
    return windows


def find_planting_windows(
    series: Sequence[WeatherObservation],
    location: Location,
    year: int,
    quarter: int,
    analysis_date: Optional[str] = None,
) -> PlantingWindowAnalysis:
    windows = build_windows(series)
    optimal = select_optimal_window(windows)

    logger.info(
        "[Analysis] %s windows over %s days (%s Q%s); optimal %s",
        len(windows),
        len(series),
        year,
        quarter,
        optimal.period if optimal else None,
    )

    return PlantingWindowAnalysis(
        location=location,
        year=year,
        quarter=quarter,
        windows=windows,
        optimal_window=optimal,
        analysis_date=analysis_date or datetime.now().isoformat(timespec="seconds"),
        data_quality=assess_data_quality(series),
    )
