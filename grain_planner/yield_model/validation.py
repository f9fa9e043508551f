# grain_planner/yield_model/validation.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from .formulas import get_quarterly_formula
from .quarter_data import QuarterlyClimateDataset

logger = logging.getLogger(__name__)

WEATHER_COLUMNS = ["temperature", "dew_point", "precipitation", "wind_speed", "humidity"]

# reference 2025 quarters with the yields the formulas are expected to reproduce
KNOWN_DATA_POINTS = pd.DataFrame(
    [
        {"year": 2025, "quarter": 1, "temperature": 26.76, "dew_point": 21.58, "precipitation": 236.7, "wind_speed": 3.23, "humidity": 78.9, "actual_yield": 8846610.9},
        {"year": 2025, "quarter": 2, "temperature": 28.68, "dew_point": 22.61, "precipitation": 337.3, "wind_speed": 3.61, "humidity": 82.8, "actual_yield": -1368089.3},
        {"year": 2025, "quarter": 3, "temperature": 30.48, "dew_point": 23.44, "precipitation": 526.2, "wind_speed": 2.77, "humidity": 86.5, "actual_yield": 733231.0},
        {"year": 2025, "quarter": 4, "temperature": 27.71, "dew_point": 20.57, "precipitation": 420.7, "wind_speed": 3.40, "humidity": 80.0, "actual_yield": -12360249.0},
    ]
)


@dataclass(frozen=True)
class ValidationResult:
    period: str
    quarter: int
    predicted_yield: float
    actual_yield: float
    error: float  # % of |actual|
    accuracy: float  # 0-100


@dataclass(frozen=True)
class ModelAccuracy:
    overall_accuracy: float
    quarter_accuracies: Dict[int, float]
    period_accuracies: List[ValidationResult]
    confidence_interval: Tuple[float, float]
    mae: float
    rmse: float
    r2: Optional[float] = None
    n: int = field(default=0)


def _row_result(year: int, quarter: int, predicted: float, actual: float) -> ValidationResult:
    if actual == 0:
        error = 0.0 if predicted == 0 else 100.0
    else:
        error = abs(predicted - actual) / abs(actual) * 100.0
    return ValidationResult(
        period=f"Q{quarter} {year}",
        quarter=int(quarter),
        predicted_yield=float(predicted),
        actual_yield=float(actual),
        error=float(error),
        accuracy=float(max(0.0, 100.0 - error)),
    )


def predict_frame(df: pd.DataFrame) -> pd.Series:
    """Row-wise MLR prediction for a frame with `quarter` + the five weather columns."""
    return df.apply(
        lambda r: get_quarterly_formula(int(r["quarter"])).apply(*(float(r[c]) for c in WEATHER_COLUMNS)),
        axis=1,
    ).astype(float)


def score_results(results: List[ValidationResult]) -> ModelAccuracy:
    if not results:
        raise ValueError("No validation rows to score.")

    acc = np.array([r.accuracy for r in results], dtype=float)
    err = np.array([r.error for r in results], dtype=float)
    y_true = np.array([r.actual_yield for r in results], dtype=float)
    y_pred = np.array([r.predicted_yield for r in results], dtype=float)

    overall = float(acc.mean())
    std_err = float(err.std())  # population

    quarter_acc: Dict[int, float] = {}
    for q in (1, 2, 3, 4):
        q_acc = [r.accuracy for r in results if r.quarter == q]
        if q_acc:
            quarter_acc[q] = float(np.mean(q_acc))

    mae = float(mean_absolute_error(y_true, y_pred))
    rmse = float(np.sqrt(mean_squared_error(y_true, y_pred)))
    r2 = float(r2_score(y_true, y_pred)) if len(results) >= 2 else None

    return ModelAccuracy(
        overall_accuracy=overall,
        quarter_accuracies=quarter_acc,
        period_accuracies=list(results),
        confidence_interval=(max(0.0, overall - 1.96 * std_err), min(100.0, overall + 1.96 * std_err)),
        mae=mae,
        rmse=rmse,
        r2=r2,
        n=len(results),
    )


def validate_predictions(df: pd.DataFrame) -> ModelAccuracy:
    """
    Expects columns:
      year, quarter, temperature, dew_point, precipitation, wind_speed, humidity, actual_yield
    Rows with a missing actual_yield are dropped.
    """
    needed = ["year", "quarter", *WEATHER_COLUMNS, "actual_yield"]
    missing = [c for c in needed if c not in df.columns]
    if missing:
        raise ValueError(f"Validation frame is missing columns: {missing}")

    d = df.dropna(subset=["actual_yield"]).reset_index(drop=True)
    if d.empty:
        raise ValueError("No validation rows to score.")

    preds = predict_frame(d)
    results = [
        _row_result(int(row["year"]), int(row["quarter"]), float(pred), float(row["actual_yield"]))
        for (_, row), pred in zip(d.iterrows(), preds)
    ]
    out = score_results(results)
    logger.info(
        "[Validation] %s periods: accuracy %.2f%% | MAE=%.1f | RMSE=%.1f",
        out.n,
        out.overall_accuracy,
        out.mae,
        out.rmse,
    )
    return out


def validate_dataset_accuracy(dataset: QuarterlyClimateDataset, observed: pd.DataFrame) -> ModelAccuracy:
    """Join observed yields (year, quarter, actual_yield) onto the dataset's weather and score."""
    if not {"year", "quarter", "actual_yield"}.issubset(observed.columns):
        raise ValueError("Observed yields need columns: year, quarter, actual_yield")
    merged = dataset.to_frame().merge(
        observed[["year", "quarter", "actual_yield"]],
        on=["year", "quarter"],
        how="inner",
    )
    return validate_predictions(merged)


def check_known_data_points() -> List[ValidationResult]:
    preds = predict_frame(KNOWN_DATA_POINTS)
    return [
        _row_result(int(row["year"]), int(row["quarter"]), float(pred), float(row["actual_yield"]))
        for (_, row), pred in zip(KNOWN_DATA_POINTS.iterrows(), preds)
    ]
