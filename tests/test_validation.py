"""
Tests for MLR accuracy checks against observed yields
"""

import pandas as pd
import pytest

from grain_planner.yield_model.validation import (
    KNOWN_DATA_POINTS,
    check_known_data_points,
    predict_frame,
    validate_dataset_accuracy,
    validate_predictions,
)


class TestKnownDataPoints:
    """2025 reference quarters"""

    def test_formulas_reproduce_known_yields(self):
        results = check_known_data_points()
        assert [r.quarter for r in results] == [1, 2, 3, 4]
        for r in results:
            assert r.accuracy > 99.0
            assert r.period == f"Q{r.quarter} 2025"

    def test_sign_of_known_predictions(self):
        preds = predict_frame(KNOWN_DATA_POINTS)
        assert preds.iloc[0] > 0
        assert preds.iloc[1] < 0
        assert preds.iloc[2] > 0
        assert preds.iloc[3] < 0

    def test_metrics(self):
        acc = validate_predictions(KNOWN_DATA_POINTS)
        assert acc.n == 4
        assert acc.overall_accuracy > 99.0
        assert set(acc.quarter_accuracies) == {1, 2, 3, 4}
        assert acc.r2 == pytest.approx(1.0, abs=1e-6)
        assert acc.mae >= 0.0
        assert acc.rmse >= acc.mae
        lo, hi = acc.confidence_interval
        assert lo <= acc.overall_accuracy <= hi <= 100.0


class TestValidatePredictions:
    """Scoring arbitrary observed yields"""

    def test_single_row_has_no_r2(self):
        acc = validate_predictions(KNOWN_DATA_POINTS.iloc[[0]])
        assert acc.n == 1
        assert acc.r2 is None

    def test_rows_without_actual_are_dropped(self):
        df = KNOWN_DATA_POINTS.copy()
        df.loc[1, "actual_yield"] = None
        assert validate_predictions(df).n == 3

    def test_missing_columns(self):
        with pytest.raises(ValueError, match="missing columns"):
            validate_predictions(KNOWN_DATA_POINTS.drop(columns=["actual_yield"]))

    def test_error_is_relative_to_actual(self):
        df = KNOWN_DATA_POINTS.iloc[[0]].copy()
        predicted = float(predict_frame(df).iloc[0])
        df["actual_yield"] = predicted / 2.0
        result = validate_predictions(df).period_accuracies[0]
        assert result.error == pytest.approx(100.0)
        assert result.accuracy == 0.0

    def test_dataset_join(self, known_dataset):
        observed = pd.DataFrame(
            {
                "year": [2026, 2026, 2030],
                "quarter": [1, 3, 1],
                "actual_yield": [8846610.9, 733231.0, 1.0],
            }
        )
        acc = validate_dataset_accuracy(known_dataset, observed)
        # 2030 has no weather rows
        assert acc.n == 2
        assert acc.overall_accuracy > 99.0
