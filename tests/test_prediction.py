"""Tests for the log regression and the bounded 1RM forecast."""
import math

import numpy as np
import pytest


def _points(values):
    return [{"week": i + 1, "value": v} for i, v in enumerate(values)]


def _weekly_sessions(row, weights):
    from liftlog.sessions import build_sessions
    rows = [
        row(start_time=f"2024-01-{1 + 7 * i:02d}T10:00:00", weight_lbs=float(w), reps=5)
        for i, w in enumerate(weights)
    ]
    return build_sessions(rows)


# ═══════════════════════════════════════════════════════════════════════
# REGRESSION
# ═══════════════════════════════════════════════════════════════════════

class TestLogRegression:

    def test_constant_values(self):
        from liftlog.prediction import log_regression
        model = log_regression(_points([100, 100, 100, 100]))
        assert model["a"] == pytest.approx(0)
        assert model["b"] == pytest.approx(100)
        assert model["r_squared"] == 0
        assert model["standard_error"] == 0
        assert model["data_points"] == 4

    def test_exact_log_curve(self):
        from liftlog.prediction import log_regression
        points = [{"week": w, "value": 10 * math.log(w) + 150} for w in (1, 2, 4, 8, 16)]
        model = log_regression(points)
        assert model["a"] == pytest.approx(10)
        assert model["b"] == pytest.approx(150)
        assert model["r_squared"] == pytest.approx(1)

    def test_r_squared_in_unit_interval(self):
        from liftlog.prediction import log_regression
        model = log_regression(_points([100, 130, 90, 140, 95, 120]))
        assert 0 <= model["r_squared"] <= 1
        assert model["standard_error"] > 0

    def test_fewer_than_two_points(self):
        from liftlog.prediction import log_regression
        assert log_regression([]) is None
        assert log_regression(None) is None
        assert log_regression(_points([100])) is None

    def test_invalid_points_filtered(self):
        from liftlog.prediction import log_regression
        model = log_regression([
            {"week": 0, "value": 50},
            {"week": -1, "value": 50},
            {"week": 2, "value": float("nan")},
            {"week": 3, "value": None},
            {"week": 1, "value": 100},
            {"week": 4, "value": 120},
        ])
        assert model["data_points"] == 2

    def test_numpy_numbers_accepted(self):
        from liftlog.prediction import log_regression
        weeks = np.arange(1, 5, dtype=np.int64)
        values = np.array([100.0, 110.0, 115.0, 118.0], dtype=np.float64)
        model = log_regression([{"week": w, "value": v} for w, v in zip(weeks, values)])
        assert model is not None
        assert model["data_points"] == 4
        assert model["a"] > 0

    def test_all_same_week_does_not_blow_up(self):
        from liftlog.prediction import log_regression
        model = log_regression([{"week": 1, "value": 100}, {"week": 1, "value": 110}])
        assert model["a"] == 0
        assert model["b"] == pytest.approx(105)


class TestPrepareRegressionData:

    def test_weeks_and_values(self):
        from liftlog.prediction import prepare_regression_data
        timeline = [
            {"date": "2024-01-15", "epley_1rm": None, "max_weight": 180.0},
            {"date": "2024-01-01", "epley_1rm": 204.2, "max_weight": 175.0},
            {"date": "never", "epley_1rm": 999.0, "max_weight": 999.0},
        ]
        data = prepare_regression_data(timeline)
        assert [(d["week"], d["value"]) for d in data] == [(1, 204.2), (3, 180.0)]

    def test_empty(self):
        from liftlog.prediction import prepare_regression_data
        assert prepare_regression_data([]) == []


# ═══════════════════════════════════════════════════════════════════════
# FORECAST
# ═══════════════════════════════════════════════════════════════════════

UP = {"a": 10.0, "b": 200.0, "r_squared": 0.9, "standard_error": 2.0, "data_points": 8}
FLAT_NOISY = {"a": 0.0, "b": 200.0, "r_squared": 0.1, "standard_error": 9.0, "data_points": 8}
DOWN = {"a": -5.0, "b": 220.0, "r_squared": 0.6, "standard_error": 3.0, "data_points": 8}


class TestPredictFuture1RM:

    @pytest.mark.parametrize("model", [UP, FLAT_NOISY, DOWN])
    @pytest.mark.parametrize("age", ["novice", "intermediate", "advanced"])
    def test_guarantees(self, model, age):
        from liftlog.config import CEILING_MULTIPLIERS
        from liftlog.prediction import predict_future_1rm
        preds = predict_future_1rm(model, 10, 52, age, current_1rm=100.0)
        assert len(preds) == 52
        ceiling = 100.0 * CEILING_MULTIPLIERS[age]
        predicted = [p["predicted"] for p in preds]
        assert all(b >= a for a, b in zip(predicted, predicted[1:]))
        for p in preds:
            assert 100.0 <= p["predicted"] <= ceiling + 0.05
            assert p["lower"] <= p["predicted"] <= p["upper"]
            assert p["lower"] >= 100.0
            assert p["upper"] <= ceiling + 0.05

    def test_week_numbers_continue(self):
        from liftlog.prediction import predict_future_1rm
        preds = predict_future_1rm(UP, 10, 3, "novice", current_1rm=100.0)
        assert [p["week"] for p in preds] == [11, 12, 13]

    def test_first_week_gain(self):
        from liftlog.prediction import predict_future_1rm
        # novice base 1.5%, strong momentum 1.2, no progress yet
        (p,) = predict_future_1rm(UP, 10, 1, "novice", current_1rm=100.0)
        assert p["predicted"] == pytest.approx(101.8)

    def test_declining_momentum_is_slower(self):
        from liftlog.prediction import predict_future_1rm
        up = predict_future_1rm(UP, 10, 12, "intermediate", current_1rm=100.0)
        down = predict_future_1rm(DOWN, 10, 12, "intermediate", current_1rm=100.0)
        assert down[-1]["predicted"] < up[-1]["predicted"]

    def test_start_from_model(self):
        from liftlog.prediction import predict_future_1rm
        preds = predict_future_1rm(UP, 1, 1, "advanced")
        # start = 10·ln(1) + 200 = 200
        assert preds[0]["predicted"] > 200

    def test_non_positive_start_gives_nothing(self):
        from liftlog.prediction import predict_future_1rm
        model = {"a": -100.0, "b": 10.0, "r_squared": 0.9}
        assert predict_future_1rm(model, 10, 4, "novice") == []

    def test_unknown_age_falls_back_to_intermediate(self):
        from liftlog.prediction import predict_future_1rm
        a = predict_future_1rm(UP, 10, 4, "elite", current_1rm=100.0)
        b = predict_future_1rm(UP, 10, 4, "intermediate", current_1rm=100.0)
        assert a == b

    def test_approaches_but_never_exceeds_ceiling(self):
        from liftlog.prediction import predict_future_1rm
        preds = predict_future_1rm(UP, 1, 520, "advanced", current_1rm=100.0)
        assert preds[-1]["predicted"] <= 115.0
        assert preds[-1]["predicted"] > 110.0


class TestForecastExercise:

    def test_bench_pipeline(self, bench_sessions):
        from liftlog.prediction import forecast_exercise
        result = forecast_exercise(bench_sessions, "Bench Press (Barbell)", 12)
        assert result["model"]["data_points"] == 3
        assert result["model"]["r_squared"] >= 0.1
        assert result["training_age"] == "novice"
        assert result["current_1rm"] == pytest.approx(215.8)
        assert len(result["predictions"]) == 12
        assert result["predictions"][0]["predicted"] >= result["current_1rm"]

    def test_explicit_training_age_used(self, bench_sessions):
        from liftlog.prediction import forecast_exercise
        result = forecast_exercise(bench_sessions, "Bench Press (Barbell)", 52, training_age="advanced")
        assert result["training_age"] == "advanced"
        ceiling = result["current_1rm"] * 1.15
        assert all(p["upper"] <= ceiling + 0.1 for p in result["predictions"])

    def test_not_enough_history(self, row):
        from liftlog.prediction import forecast_exercise
        from liftlog.sessions import build_sessions
        sessions = build_sessions([row(weight_lbs=100.0, reps=5)])
        result = forecast_exercise(sessions, "Bench Press (Barbell)")
        assert result["model"] is None
        assert result["predictions"] == []

    def test_two_sessions_too_few_to_forecast(self, row):
        from liftlog.prediction import forecast_exercise
        sessions = _weekly_sessions(row, [200, 200])
        result = forecast_exercise(sessions, "Bench Press (Barbell)")
        assert result["model"]["data_points"] == 2
        assert len(result["history"]) == 2
        assert result["predictions"] == []

    def test_poor_fit_not_forecast(self, row):
        from liftlog.prediction import forecast_exercise
        sessions = _weekly_sessions(row, [200, 200, 200, 200])
        result = forecast_exercise(sessions, "Bench Press (Barbell)")
        assert result["model"]["data_points"] == 4
        assert result["model"]["r_squared"] < 0.1
        assert result["current_1rm"] == pytest.approx(233.3)
        assert result["predictions"] == []

    def test_unknown_exercise(self, bench_sessions):
        from liftlog.prediction import forecast_exercise
        result = forecast_exercise(bench_sessions, "Nope")
        assert result["predictions"] == []
        assert result["current_1rm"] is None
