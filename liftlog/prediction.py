"""
Liftlog Analytics — Regression & Forecast

Fits a logarithmic growth curve to an exercise's 1RM history and projects
it forward with a ceiling-bounded, diminishing-returns model.
"""
import math
from typing import Iterable, Mapping

import numpy as np

from liftlog.analytics import exercise_progression, infer_training_age
from liftlog.config import (
    CEILING_MULTIPLIERS,
    DEFAULT_FORECAST_WEEKS,
    DEFAULT_TRAINING_AGE,
    MIN_FORECAST_POINTS,
    MIN_FORECAST_R2,
    MOMENTUM,
    MOMENTUM_NOISY_R2,
    MOMENTUM_STRONG_R2,
    UPPER_BAND_FACTOR,
    WEEKLY_GAIN_RATES,
)
from liftlog.sessions import Session, as_number, date_sort_value, parse_workout_date


# ═══════════════════════════════════════════════════════════════════════
# 1. LOG REGRESSION — y = a·ln(week) + b
# ═══════════════════════════════════════════════════════════════════════

def log_regression(points: Iterable[Mapping]) -> dict | None:
    """
    Ordinary least squares on (ln(week), value).

    Points need week > 0 and a finite value; fewer than two valid points
    gives None. r_squared is 0 when every value is identical (no variance to
    explain) and standard_error uses n − 2 degrees of freedom (min 1).
    """
    valid = []
    for p in points or []:
        week = as_number(p.get("week"))
        value = as_number(p.get("value"))
        if week is None or value is None or week <= 0:
            continue
        valid.append((week, value))
    if len(valid) < 2:
        return None

    x = np.log(np.array([w for w, _ in valid], dtype=float))
    y = np.array([v for _, v in valid], dtype=float)
    n = len(valid)

    x_mean, y_mean = x.mean(), y.mean()
    sxx = float(((x - x_mean) ** 2).sum())
    sxy = float(((x - x_mean) * (y - y_mean)).sum())

    a = sxy / sxx if sxx != 0 else 0.0
    b = float(y_mean - a * x_mean)

    residuals = y - (a * x + b)
    ss_res = float((residuals ** 2).sum())
    ss_tot = float(((y - y_mean) ** 2).sum())
    r_squared = 1 - ss_res / ss_tot if ss_tot != 0 else 0.0
    r_squared = min(1.0, max(0.0, r_squared))

    return {
        "a": a,
        "b": b,
        "r_squared": r_squared,
        "standard_error": math.sqrt(ss_res / max(1, n - 2)),
        "data_points": n,
    }


def prepare_regression_data(timeline: Iterable[Mapping]) -> list[dict]:
    """
    Turn a progression timeline into {week, value, date} points.

    Week 1 is the week of the first dated point; value is the best Epley
    estimate, falling back to the session's max weight.
    """
    dated = []
    for point in timeline or []:
        ts = parse_workout_date(point.get("date"))
        if ts is not None:
            dated.append((ts, point))
    if not dated:
        return []
    dated.sort(key=lambda tp: tp[0].value)

    first = dated[0][0]
    data = []
    for ts, point in dated:
        value = point.get("epley_1rm")
        if not value:
            value = point.get("max_weight")
        if value is None:
            continue
        week = max(1, int((ts - first).total_seconds() // (7 * 86400)) + 1)
        data.append({"week": week, "value": value, "date": point.get("date")})
    return data


# ═══════════════════════════════════════════════════════════════════════
# 2. FORECAST
# ═══════════════════════════════════════════════════════════════════════

def _momentum(model: Mapping | None) -> float:
    if not model or model.get("a") is None:
        return MOMENTUM["normal"]
    slope = model["a"]
    r2 = model.get("r_squared", 0) or 0
    if slope > 0 and r2 > MOMENTUM_STRONG_R2:
        return MOMENTUM["strong"]
    if slope > 0:
        return MOMENTUM["normal"]
    if r2 < MOMENTUM_NOISY_R2:
        return MOMENTUM["noisy"]
    return MOMENTUM["declining"]


def predict_future_1rm(
    model: Mapping | None,
    current_week: float,
    weeks_ahead: int,
    training_age: str = DEFAULT_TRAINING_AGE,
    current_1rm: float | None = None,
) -> list[dict]:
    """
    Project 1RM week by week toward a training-age ceiling.

    The start is ``current_1rm`` if given, else the model's value at
    ``current_week``. Each week adds current × base rate × momentum ×
    (1 − √progress-to-ceiling), so gains shrink as the ceiling gets close.
    Predictions never decrease, never drop below the start and never exceed
    the ceiling; the band is clipped to [start, ceiling].
    """
    if not model and not current_1rm:
        return []

    rates = WEEKLY_GAIN_RATES.get(training_age, WEEKLY_GAIN_RATES[DEFAULT_TRAINING_AGE])
    ceiling_multiplier = CEILING_MULTIPLIERS.get(
        training_age, CEILING_MULTIPLIERS[DEFAULT_TRAINING_AGE]
    )

    start = current_1rm
    if not start and model:
        if current_week is None or current_week <= 0:
            return []
        start = model["a"] * math.log(current_week) + model["b"]
    if start is None or not math.isfinite(start) or start <= 0:
        return []

    ceiling = start * ceiling_multiplier
    momentum = _momentum(model)

    predictions = []
    current = start
    for i in range(1, int(weeks_ahead) + 1):
        progress = min(1.0, max(0.0, (current - start) / (ceiling - start)))
        diminishing = 1 - math.sqrt(progress)
        gain = current * max(0.0, rates["base"] * momentum * diminishing)
        current = min(current + gain, ceiling)

        spread = rates["variance"] * current * i
        lower = max(start, current - spread)
        upper = min(ceiling, current + UPPER_BAND_FACTOR * spread)

        predictions.append({
            "week": current_week + i,
            "predicted": round(current, 1),
            "lower": round(lower, 1),
            "upper": round(upper, 1),
        })
    return predictions


def forecast_exercise(
    sessions: Iterable[Session],
    exercise: str,
    weeks_ahead: int = DEFAULT_FORECAST_WEEKS,
    training_age: str | None = None,
) -> dict:
    """
    Timeline → regression → forecast for one exercise.

    The model and history are always returned; predictions stay empty when
    there are fewer than MIN_FORECAST_POINTS timeline or regression points,
    or the fit's r_squared is under MIN_FORECAST_R2.
    """
    sessions = list(sessions)
    timeline = exercise_progression(sessions, exercise)
    data = prepare_regression_data(timeline)
    model = log_regression(data)
    if training_age is None:
        training_age = infer_training_age(sessions)["classification"]

    current_week = data[-1]["week"] if data else None
    current_1rm = None
    for point in sorted(timeline, key=lambda p: date_sort_value(p["date"]), reverse=True):
        if point["epley_1rm"]:
            current_1rm = point["epley_1rm"]
            break

    forecastable = (
        model is not None
        and current_week is not None
        and len(timeline) >= MIN_FORECAST_POINTS
        and len(data) >= MIN_FORECAST_POINTS
        and model["r_squared"] >= MIN_FORECAST_R2
    )
    predictions = []
    if forecastable:
        predictions = predict_future_1rm(
            model, current_week, weeks_ahead, training_age, current_1rm
        )

    return {
        "exercise": exercise,
        "training_age": training_age,
        "model": model,
        "current_week": current_week,
        "current_1rm": round(current_1rm, 1) if current_1rm else None,
        "history": data,
        "predictions": predictions,
    }
