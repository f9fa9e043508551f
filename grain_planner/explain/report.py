# grain_planner/explain/report.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

import pandas as pd

from ..climate.observations import observations_to_frame
from ..planner.daily_forecast import DailyForecastAnalysis
from ..schemas.outputs import IntegratedPlantingAnalysis, PlantingWindow, QuarterSelectionResult
from ..yield_model.validation import ModelAccuracy, ValidationResult


# =============================================================================
# Helpers
# =============================================================================

def _now_str() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")


def _fmt(v: Any, digits: int = 1) -> str:
    try:
        x = float(v)
        if x != x:
            return "N/A"
        return f"{x:.{digits}f}"
    except (TypeError, ValueError):
        return "N/A"


def _quarter_table(selection: QuarterSelectionResult, chosen: int) -> str:
    header = "Quarter               | Yield (kg/ha) | Conf. |  T   |  D   |   P    |  W   |  H"
    sep = "-" * len(header)
    rows: List[str] = []
    for e in selection.quarters:
        w = e.weather_data
        mark = "*" if e.quarter == chosen else " "
        rows.append(
            f"{mark}{e.quarter_name:<21}| "
            f"{_fmt(e.predicted_yield, 0):>13} | "
            f"{_fmt(e.confidence, 0):>5} | "
            f"{_fmt(w.temperature):>4} | "
            f"{_fmt(w.dew_point):>4} | "
            f"{_fmt(w.precipitation):>6} | "
            f"{_fmt(w.wind_speed):>4} | "
            f"{_fmt(w.humidity, 0):>3}"
        )
    return "\n".join([header, sep] + rows)


def _window_table(window: Optional[PlantingWindow]) -> str:
    if window is None:
        return "no data"

    d = observations_to_frame(window.weather_data)
    d = d.sort_values("ds").reset_index(drop=True)

    weekday = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    d["Date"] = d["ds"].dt.strftime("%Y-%m-%d") + " (" + d["ds"].dt.dayofweek.map(lambda x: weekday[int(x)]) + ")"

    header = "Date             | Temp | Dew  | Rain | Wind | RH"
    sep = "-" * len(header)
    rows: List[str] = []
    for _, r in d.iterrows():
        rows.append(
            f"{r['Date']:>16} | "
            f"{_fmt(r['temperature']):>4} | "
            f"{_fmt(r['dew_point']):>4} | "
            f"{_fmt(r['precipitation']):>4} | "
            f"{_fmt(r['wind_speed']):>4} | "
            f"{_fmt(r['humidity'], 0):>3}"
        )
    return "\n".join([header, sep] + rows)


def _score_line(window: PlantingWindow) -> str:
    s = window.score
    return (
        f"score={_fmt(s.overall_score, 2)} | temp={_fmt(s.temperature_stability, 2)} | "
        f"rain={_fmt(s.precipitation_score, 2)} | wind={_fmt(s.wind_stability, 2)} | "
        f"rh={_fmt(s.humidity_stability, 2)} | extremes={s.factors.extreme_events} | "
        f"conf={_fmt(window.confidence, 0)}% | risk={s.risk_level}"
    )


# =============================================================================
# Report
# =============================================================================

def generate_report(
    project_name: str,
    project_version: str,
    analysis: IntegratedPlantingAnalysis,
) -> str:
    loc = analysis.location
    rec = analysis.recommendation

    lines: List[str] = []
    lines.append(f"{project_name} (v{project_version}) | {_now_str()}")
    lines.append(
        f"Location: {loc.name} ({loc.latitude:.4f}, {loc.longitude:.4f}) | Year: {analysis.year} | "
        f"Weather: {analysis.weather_source}"
        + (f" (reference {analysis.reference_year})" if analysis.reference_year else "")
    )
    lines.append("")
    lines.append("QUARTER SELECTION (MLR)")
    lines.append(_quarter_table(analysis.quarter_selection, analysis.optimal_quarter))
    lines.append("")
    lines.append(f"OPTIMAL 7-DAY WINDOW ({analysis.data_quality.weather_data} weather data)")
    if analysis.optimal_window is None:
        lines.append("no window available")
    else:
        lines.append(analysis.optimal_window.period)
        lines.append(_score_line(analysis.optimal_window))
        lines.append(_window_table(analysis.optimal_window))
    lines.append("")
    lines.append("RECOMMENDATION")
    lines.append(f"Planting period: {rec.planting_period}")
    lines.append(f"Quarter: {rec.quarter_reason}")
    lines.append(f"Window: {rec.window_reason}")
    lines.append(
        f"Confidence: quarter={_fmt(analysis.quarter_confidence, 1)} | "
        f"window={_fmt(analysis.window_confidence, 1)} | overall={_fmt(analysis.overall_confidence, 2)} | "
        f"risk={rec.risk_level}"
    )
    lines.append("")
    lines.append("ACTION ITEMS")
    for i, item in enumerate(rec.action_items, start=1):
        lines.append(f"{i}. {item}")

    fb = analysis.fallback_options
    if fb is not None:
        lines.append("")
        lines.append("ALTERNATIVES")
        if not fb.alternative_quarters and not fb.alternative_windows:
            lines.append("none")
        for q in fb.alternative_quarters:
            lines.append(f"Q{q.quarter} | yield={_fmt(q.predicted_yield, 0)} kg/ha | conf={_fmt(q.confidence, 0)}")
        for w in fb.alternative_windows:
            lines.append(f"{w.period} | score={_fmt(w.score.overall_score, 2)} | conf={_fmt(w.confidence, 0)}%")

    return "\n".join(lines)


def quarter_selection_frame(selection: QuarterSelectionResult) -> pd.DataFrame:
    """One row per quarter, for CSV export or notebooks."""
    return pd.DataFrame(
        [
            {
                "quarter": e.quarter,
                "name": e.quarter_name,
                "predicted_yield": e.predicted_yield,
                "confidence": e.confidence,
                "optimal": e.quarter == selection.optimal_quarter,
            }
            for e in selection.quarters
        ]
    )


def generate_forecast_report(
    project_name: str,
    project_version: str,
    analysis: DailyForecastAnalysis,
) -> str:
    loc = analysis.location
    s = analysis.summary
    t = s.weather_trends

    lines: List[str] = []
    lines.append(f"{project_name} (v{project_version}) | {_now_str()}")
    lines.append(f"Location: {loc.name} ({loc.latitude:.4f}, {loc.longitude:.4f}) | Forecast: {analysis.forecast_period}")
    lines.append("")
    lines.append("DAILY PLANTING SUITABILITY")
    header = "Date       | Score | Plant | Risk   | Recommendation"
    lines.append(header)
    lines.append("-" * len(header))
    for d in analysis.daily_analysis:
        lines.append(
            f"{d.date[:10]} | {d.suitability_score:>5} | {'yes' if d.can_plant else 'no':>5} | "
            f"{d.risk_level:<6} | {d.recommendation}"
        )
    lines.append("")
    lines.append("SUMMARY")
    lines.append(f"Plantable days: {s.plantable_days}/{s.total_days}")
    lines.append(
        "Best days: " + (", ".join(f"{d.date[:10]} ({d.suitability_score})" for d in s.best_planting_days) or "none")
    )
    lines.append(f"Trends: temperature={t.temperature_trend} | rain={t.precipitation_trend} | wind={t.wind_trend}")
    lines.append(s.overall_recommendation)
    lines.append(f"Next update: {s.next_update_date}")
    return "\n".join(lines)


def generate_validation_report(results: List[ValidationResult], accuracy: ModelAccuracy) -> str:
    header = "Period   | Predicted (kg/ha) | Actual (kg/ha) | Error % | Accuracy %"
    lines: List[str] = ["MLR MODEL VALIDATION", header, "-" * len(header)]
    for r in results:
        lines.append(
            f"{r.period:<8} | {_fmt(r.predicted_yield, 0):>17} | {_fmt(r.actual_yield, 0):>14} | "
            f"{_fmt(r.error, 2):>7} | {_fmt(r.accuracy, 2):>10}"
        )
    lo, hi = accuracy.confidence_interval
    lines.append("")
    lines.append(
        f"Overall accuracy: {_fmt(accuracy.overall_accuracy, 2)}% "
        f"(95% CI {_fmt(lo, 2)}-{_fmt(hi, 2)}) | MAE={_fmt(accuracy.mae, 1)} | RMSE={_fmt(accuracy.rmse, 1)}"
        + (f" | R2={_fmt(accuracy.r2, 4)}" if accuracy.r2 is not None else "")
    )
    return "\n".join(lines)
