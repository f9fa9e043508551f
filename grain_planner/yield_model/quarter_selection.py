# grain_planner/yield_model/quarter_selection.py
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .. import config as cfg
from ..climate.quarters import QUARTERS, check_quarter, quarter_months, quarter_name
from ..errors import DataUnavailable, InvalidRequest
from ..schemas.outputs import QuarterSelectionResult, QuarterYieldEstimate, QuarterlyWeather
from .formulas import get_quarterly_formula
from .quarter_data import QuarterlyClimateDataset, check_year

logger = logging.getLogger(__name__)


def _clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, x))


def yield_spread_pct(yields: Sequence[float]) -> float:
    """(max - min) / |max| * 100 over the quarterly yields."""
    hi, lo = max(yields), min(yields)
    if hi == 0:
        return 0.0 if lo == 0 else 100.0
    return (hi - lo) / abs(hi) * 100.0


def spread_adjustment(spread_pct: float) -> float:
    # clear winner raises confidence, near-ties lower it
    if spread_pct > 20:
        return 5.0
    if spread_pct > 10:
        return 2.0
    if spread_pct < 5:
        return -5.0
    return 0.0


def quarter_confidence(quarter: int, spread_pct: float) -> float:
    base = cfg.QUARTER_BASE_CONFIDENCE + cfg.QUARTER_CONFIDENCE_ADJUSTMENTS.get(quarter, 0.0)
    return _clamp(base + spread_adjustment(spread_pct))


def _predict_from_weather(w: QuarterlyWeather) -> float:
    return get_quarterly_formula(w.quarter).apply(
        w.temperature, w.dew_point, w.precipitation, w.wind_speed, w.humidity
    )


def _argmax_quarter(estimates: Sequence[QuarterYieldEstimate]) -> QuarterYieldEstimate:
    best = estimates[0]
    for e in estimates[1:]:
        if e.predicted_yield > best.predicted_yield:
            best = e
    return best


def _advantage_pct(best: float, second: float) -> float:
    diff = best - second
    if best == 0:
        return 100.0 if diff > 0 else 0.0
    return diff / abs(best) * 100.0


def quarter_recommendations(estimates: Sequence[QuarterYieldEstimate], optimal: QuarterYieldEstimate) -> List[str]:
    recs = [f"Plant during Q{optimal.quarter} for optimal yield of {optimal.predicted_yield:.0f} kg/ha"]

    if optimal.confidence >= 90:
        recs.append("High confidence in this recommendation based on weather data quality")
    elif optimal.confidence >= 80:
        recs.append("Good confidence in this recommendation")
    else:
        recs.append("Moderate confidence - consider monitoring weather conditions closely")

    others = [e for e in estimates if e.quarter != optimal.quarter]
    if others:
        second = _argmax_quarter(others)
        adv = _advantage_pct(optimal.predicted_yield, second.predicted_yield)
        if adv > 20:
            recs.append("Significant yield advantage over other quarters")
        elif adv > 10:
            recs.append("Moderate yield advantage over other quarters")
        else:
            recs.append("Close yield predictions across quarters - consider backup options")

    return recs


def analyze_quarter_selection(
    year: int,
    dataset: Optional[QuarterlyClimateDataset] = None,
    analysis_date: Optional[str] = None,
) -> QuarterSelectionResult:
    """
    MLR yield for all four quarters of `year`; the optimum is the highest yield
    (ties keep the earlier quarter).
    """
    y = check_year(year)
    ds = dataset if dataset is not None else QuarterlyClimateDataset.default()

    weather = ds.year(y)
    yields = [_predict_from_weather(w) for w in weather]
    spread = yield_spread_pct(yields)

    estimates = [
        QuarterYieldEstimate(
            quarter=w.quarter,
            predicted_yield=float(yld),
            confidence=quarter_confidence(w.quarter, spread),
            weather_data=w,
            quarter_name=quarter_name(w.quarter),
            quarter_months=quarter_months(w.quarter),
        )
        for w, yld in zip(weather, yields)
    ]

    optimal = _argmax_quarter(estimates)
    overall = _clamp(sum(e.confidence for e in estimates) / len(estimates))

    logger.info(
        "[Analysis] quarter selection %s: optimal Q%s (%.0f kg/ha), spread %.1f%%",
        y,
        optimal.quarter,
        optimal.predicted_yield,
        spread,
    )

    return QuarterSelectionResult(
        year=y,
        analysis_date=analysis_date or datetime.now().isoformat(timespec="seconds"),
        quarters=estimates,
        optimal_quarter=optimal.quarter,
        overall_confidence=overall,
        recommendations=quarter_recommendations(estimates, optimal),
    )


def analyze_year_range(
    start_year: int,
    end_year: int,
    dataset: Optional[QuarterlyClimateDataset] = None,
) -> List[QuarterSelectionResult]:
    """Quarter selection per year; years with no data are skipped with a warning."""
    if isinstance(start_year, int) and isinstance(end_year, int) and start_year > end_year:
        raise InvalidRequest([f"Invalid year range: {start_year}-{end_year}. Start year must be <= end year."])
    check_year(start_year)
    check_year(end_year)

    ds = dataset if dataset is not None else QuarterlyClimateDataset.default()
    out: List[QuarterSelectionResult] = []
    for year in range(start_year, end_year + 1):
        try:
            out.append(analyze_quarter_selection(year, ds))
        except DataUnavailable as e:
            logger.warning("[Analysis] skipping %s: %s", year, e)
    return out


def quarter_details(quarter: int) -> Dict[str, Any]:
    q = check_quarter(quarter)
    formula = get_quarterly_formula(q)
    coefs = asdict(formula)
    coefs.pop("quarter")
    coefs.pop("description")
    return {
        "quarter": q,
        "name": quarter_name(q),
        "months": list(quarter_months(q)),
        "formula": formula.expression,
        "coefficients": coefs,
    }


def format_quarter_selection_result(result: QuarterSelectionResult) -> Dict[str, Any]:
    """Rounded display form of a QuarterSelectionResult."""
    opt = result.optimal
    return {
        "year": result.year,
        "optimalQuarter": {
            "number": opt.quarter,
            "name": opt.quarter_name,
            "months": list(opt.quarter_months),
            "predictedYield": round(opt.predicted_yield),
            "confidence": round(result.overall_confidence),
        },
        "allQuarters": [
            {
                "quarter": e.quarter,
                "name": e.quarter_name,
                "predictedYield": round(e.predicted_yield),
                "confidence": round(e.confidence),
                "weatherData": {
                    "temperature": round(e.weather_data.temperature, 1),
                    "dewPoint": round(e.weather_data.dew_point, 1),
                    "precipitation": round(e.weather_data.precipitation),
                    "windSpeed": round(e.weather_data.wind_speed, 1),
                    "humidity": round(e.weather_data.humidity),
                },
            }
            for e in result.quarters
        ],
        "analyzedAt": result.analysis_date,
    }


def prediction_accuracy_info() -> Dict[str, Any]:
    return {
        "overallAccuracy": cfg.MLR_STATED_ACCURACY,
        "accuracySource": "Mathematical analysis and geoclimatic variable correlation",
        "confidenceFactors": [
            "Weather data quality and completeness",
            "Seasonal weather pattern consistency",
            "Historical data reliability",
            "Formula coefficient precision",
        ],
        "limitations": [
            "Based on historical weather patterns",
            "Does not account for extreme weather events",
            "Regional variations may affect accuracy",
            "Requires location-specific validation for 7-day windows",
        ],
    }


def ranked_quarters(result: QuarterSelectionResult) -> List[Tuple[int, float]]:
    """(quarter, yield) by yield, highest first; ties keep quarter order."""
    return [
        (e.quarter, e.predicted_yield)
        for e in sorted(result.quarters, key=lambda e: -e.predicted_yield)
    ]
