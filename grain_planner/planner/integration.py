# grain_planner/planner/integration.py
from __future__ import annotations

import calendar
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .. import config as cfg
from ..climate.cache import ResponseCache
from ..climate.observations import WeatherObservation, validate_weather_data
from ..climate.openmeteo import OpenMeteoClient, WeatherProvider
from ..climate.quarters import quarter_name
from ..climate.retry import FallbackYearPolicy
from ..errors import AnalysisFailed, InvalidWeatherData
from ..schemas.inputs import Location, PlantingAnalysisRequest
from ..schemas.outputs import (
    AlternativeQuarter,
    DataQuality,
    DataQualityReport,
    FallbackOptions,
    IntegratedPlantingAnalysis,
    PlantingWindow,
    PlantingWindowAnalysis,
    QuarterSelectionResult,
    Recommendation,
    RiskLevel,
)
from ..yield_model.quarter_data import QuarterlyClimateDataset
from ..yield_model.quarter_selection import analyze_quarter_selection, ranked_quarters
from .windows import find_planting_windows

logger = logging.getLogger(__name__)

T = TypeVar("T")

RISK_MITIGATION = "Consider risk mitigation: prepare backup planting dates and monitor forecasts daily"
EXCELLENT_CONDITIONS = "Excellent planting conditions predicted"


# =============================================================================
# HELPERS
# =============================================================================
def project_series_to_year(series: Sequence[WeatherObservation], target_year: int) -> List[WeatherObservation]:
    """
    Move each observation to the same month/day of `target_year`.
    Feb 29 is dropped when the target year has no leap day; when the target year
    has one and the source skips from Feb 28 to Mar 1, Feb 28 is repeated as
    Feb 29 so the projected days stay consecutive.
    """
    leap_target = calendar.isleap(target_year)
    out: List[WeatherObservation] = []
    for obs in series:
        d = date.fromisoformat(obs.date[:10])
        if d.month == 2 and d.day == 29 and not leap_target:
            continue
        if leap_target and (d.month, d.day) == (3, 1) and out and out[-1].date == f"{target_year}-02-28":
            out.append(replace(out[-1], date=f"{target_year}-02-29"))
        out.append(replace(obs, date=date(target_year, d.month, d.day).isoformat()))
    return out


def blend_confidence(quarter_confidence: float, window_confidence: float) -> float:
    overall = (
        quarter_confidence * cfg.QUARTER_CONFIDENCE_WEIGHT
        + window_confidence * cfg.WINDOW_CONFIDENCE_WEIGHT
    )
    return round(overall, 2)


def risk_from_confidence(overall_confidence: float) -> RiskLevel:
    if overall_confidence >= 85:
        return "low"
    if overall_confidence < 70:
        return "high"
    return "medium"


def overall_data_quality(quarter_data: DataQuality, weather_data: DataQuality) -> DataQuality:
    if weather_data == "excellent" and quarter_data == "excellent":
        return "excellent"
    if weather_data == "good" or quarter_data == "excellent":
        return "good"
    if weather_data == "fair":
        return "fair"
    return "poor"


def build_recommendation(
    selection: QuarterSelectionResult,
    chosen_quarter: int,
    optimal_window: Optional[PlantingWindow],
    overall_confidence: float,
    location: Location,
    year: int,
) -> Recommendation:
    best = selection.optimal
    if chosen_quarter == best.quarter:
        quarter_reason = (
            f"MLR analysis shows Q{best.quarter} has the highest predicted yield "
            f"({best.predicted_yield / 1000:.1f} t/ha)"
        )
    else:
        chosen = selection.estimate(chosen_quarter)
        quarter_reason = (
            f"Q{chosen_quarter} selected by override ({chosen.predicted_yield / 1000:.1f} t/ha); "
            f"MLR optimum is Q{best.quarter} ({best.predicted_yield / 1000:.1f} t/ha)"
        )

    if optimal_window is not None:
        planting_period = optimal_window.period
        window_reason = (
            f"Optimal 7-day window with {optimal_window.score.overall_score:.2f} stability score "
            f"and {optimal_window.confidence:.0f}% confidence"
        )
        if optimal_window.score.recommendations:
            window_reason += f". {optimal_window.score.recommendations[0]}"
    else:
        planting_period = f"{quarter_name(chosen_quarter)} {year}"
        window_reason = "No specific 7-day window analysis available"

    risk = risk_from_confidence(overall_confidence)

    action_items = [
        f"Plant during {planting_period}",
        "Monitor weather conditions closely",
        "Prepare irrigation systems",
        "Ensure soil preparation is complete",
        f"Consider local {location.name} weather patterns",
    ]
    if optimal_window is not None:
        action_items.extend(optimal_window.score.recommendations)

    if risk == "high":
        action_items.insert(0, RISK_MITIGATION)
    if overall_confidence >= 90:
        action_items.insert(0, EXCELLENT_CONDITIONS)

    return Recommendation(
        planting_period=planting_period,
        quarter_reason=quarter_reason,
        window_reason=window_reason,
        risk_level=risk,
        action_items=action_items,
    )


def build_fallback_options(
    selection: QuarterSelectionResult,
    chosen_quarter: int,
    window_analysis: Optional[PlantingWindowAnalysis],
) -> FallbackOptions:
    alt_quarters = [
        AlternativeQuarter(
            quarter=q,
            predicted_yield=yld,
            confidence=selection.estimate(q).confidence,
        )
        for q, yld in ranked_quarters(selection)
        if q != chosen_quarter
    ][: cfg.MAX_ALTERNATIVE_QUARTERS]

    alt_windows: List[PlantingWindow] = []
    if window_analysis is not None:
        alt_windows = [
            w for w in window_analysis.windows if w is not window_analysis.optimal_window
        ][: cfg.MAX_ALTERNATIVE_WINDOWS]

    return FallbackOptions(alternative_quarters=alt_quarters, alternative_windows=alt_windows)


# =============================================================================
# SERVICE
# =============================================================================
class PlantingWindowAnalysisService:
    """
    Quarter selection (MLR) + 7-day window search over the chosen quarter.

    Pipeline:
    1) validate request (all violations at once)
    2) quarter selection, optional override
    3) daily weather for the quarter (historical archive with fallback year, or forecast)
    4) window search
    5) optimal window
    6) confidence blending (0.7 quarter / 0.3 window)
    7) recommendation + action items
    8) fallback options (on request)

    Failures after step 1 surface as AnalysisFailed with the cause attached.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        dataset: Optional[QuarterlyClimateDataset] = None,
        policy: Optional[FallbackYearPolicy] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.provider = provider
        self.dataset = dataset if dataset is not None else QuarterlyClimateDataset.default()
        self.policy = policy or FallbackYearPolicy()
        self._today = today or date.today

    def reference_year(self, year: int) -> int:
        """Most recent complete year of archive data usable for `year`."""
        return min(int(year) - 1, self._today().year - 1)

    @staticmethod
    def _step(name: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except Exception as e:
            logger.error("[Analysis] %s failed: %s", name, e)
            raise AnalysisFailed(e, step=name) from e

    def _fetch_series(
        self, location: Location, year: int, quarter: int, use_historical: bool
    ) -> Tuple[List[WeatherObservation], Optional[int]]:
        if use_historical:
            ref = self.reference_year(year)
            raw, used = self.policy.run(
                lambda y: self.provider.fetch_quarterly_weather(location, y, quarter),
                ref,
            )
            if not validate_weather_data(raw):
                raise InvalidWeatherData(f"Invalid weather data received for {location.name} Q{quarter} {used}")
            return project_series_to_year(raw, year), used

        raw = self.provider.fetch_forecast(location, cfg.MAX_FORECAST_DAYS)
        if not validate_weather_data(raw):
            raise InvalidWeatherData(f"Invalid forecast data received for {location.name}")
        return list(raw), None

    def analyze(self, request: PlantingAnalysisRequest) -> IntegratedPlantingAnalysis:
        # 1) Request
        request.validate()
        year = int(request.year)
        location = request.location
        now = datetime.now().isoformat(timespec="seconds")

        # 2) Quarter selection
        logger.info("[Analysis] starting quarter selection for %s (%s)", year, location.name)
        selection = self._step(
            "quarter selection",
            lambda: analyze_quarter_selection(year, self.dataset, analysis_date=now),
        )
        quarter = request.override_quarter or selection.optimal_quarter
        if request.override_quarter:
            logger.info("[Analysis] quarter override: Q%s (MLR optimum Q%s)", quarter, selection.optimal_quarter)

        # 3) Weather
        source = "historical" if request.use_historical_data else "forecast"
        logger.info("[Analysis] fetching %s weather for Q%s %s", source, quarter, year)
        series, ref_year = self._step(
            "weather fetch",
            lambda: self._fetch_series(location, year, quarter, request.use_historical_data),
        )

        # 4-5) Windows
        window_analysis = self._step(
            "window search",
            lambda: find_planting_windows(series, location, year, quarter, analysis_date=now),
        )
        optimal_window = window_analysis.optimal_window

        # 6) Confidence
        quarter_conf = selection.overall_confidence
        window_conf = optimal_window.confidence if optimal_window is not None else 0.0
        overall = blend_confidence(quarter_conf, window_conf)

        # 7) Recommendation
        recommendation = self._step(
            "recommendation",
            lambda: build_recommendation(selection, quarter, optimal_window, overall, location, year),
        )

        # 8) Alternatives
        fallback = None
        if request.include_alternatives:
            fallback = self._step(
                "fallback options",
                lambda: build_fallback_options(selection, quarter, window_analysis),
            )

        quality = DataQualityReport(
            quarter_data="excellent",
            weather_data=window_analysis.data_quality,
            overall=overall_data_quality("excellent", window_analysis.data_quality),
        )

        logger.info(
            "[Analysis] done: Q%s, window %s, overall confidence %.2f (%s risk)",
            quarter,
            optimal_window.period if optimal_window else None,
            overall,
            recommendation.risk_level,
        )

        return IntegratedPlantingAnalysis(
            quarter_selection=selection,
            optimal_quarter=quarter,
            quarter_confidence=quarter_conf,
            window_analysis=window_analysis,
            optimal_window=optimal_window,
            window_confidence=window_conf,
            overall_confidence=overall,
            recommendation=recommendation,
            location=location,
            year=year,
            analysis_date=now,
            data_quality=quality,
            weather_source=source,
            reference_year=ref_year,
            fallback_options=fallback,
        )


def analyze_planting_window(
    request: PlantingAnalysisRequest,
    provider: Optional[WeatherProvider] = None,
    dataset: Optional[QuarterlyClimateDataset] = None,
) -> IntegratedPlantingAnalysis:
    """One-shot analysis; builds an Open-Meteo client with its own cache when no provider is given."""
    if provider is None:
        provider = OpenMeteoClient(cache=ResponseCache())
    return PlantingWindowAnalysisService(provider, dataset=dataset).analyze(request)
